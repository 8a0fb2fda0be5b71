# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Cooperative cancellation.

A ``CancellationToken`` is handed to the request queue alongside a piece of
work. The queue checks it before dispatch, while sleeping for the rate
limiter and while the outbound call runs; collaborators may also check it
to abort their own I/O.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable

logger = logging.getLogger(__name__)


class CancellationToken:
    """
    One-shot cancellation signal.

    ``cancel`` may be called from any coroutine (or from a loop callback);
    it is idempotent. Registered callbacks run once, in registration order,
    when the token is first cancelled.

    Example:
        >>> token = CancellationToken()
        >>> future = queue.enqueue(work, cancel_token=token)
        >>> token.cancel("user left the chat screen")
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self._reason: str | None = None
        self._callbacks: list[Callable[[], None]] = []

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> str | None:
        return self._reason

    def cancel(self, reason: str | None = None) -> None:
        if self._event.is_set():
            return
        self._reason = reason
        self._event.set()
        callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            try:
                callback()
            except Exception as e:
                logger.warning(f"Cancellation callback failed: {e}")

    def add_callback(self, callback: Callable[[], None]) -> None:
        """Run ``callback`` on cancellation (immediately if already cancelled)."""
        if self._event.is_set():
            callback()
        else:
            self._callbacks.append(callback)

    def remove_callback(self, callback: Callable[[], None]) -> None:
        try:
            self._callbacks.remove(callback)
        except ValueError:
            pass

    async def wait(self) -> None:
        """Block until the token is cancelled."""
        await self._event.wait()


__all__ = ["CancellationToken"]
