# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Outbound call deadline enforcement.

Timeouts belong to the outbound call, not to the queue: the wrapper aborts
a call that overruns its deadline and raises ``TransportTimeoutError``,
which the classifier maps to Network.timeout.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

from ..exceptions import TransportTimeoutError

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def call_with_deadline(
    call: Callable[[], Awaitable[T]], timeout_ms: float | None
) -> T:
    """
    Await ``call()`` with a deadline.

    Args:
        call: Zero-argument async callable performing the I/O
        timeout_ms: Deadline in milliseconds, None for no deadline

    Raises:
        TransportTimeoutError: If the deadline expired (the call is cancelled)
    """
    if timeout_ms is None:
        return await call()
    try:
        return await asyncio.wait_for(call(), timeout=timeout_ms / 1000)
    except asyncio.TimeoutError as e:
        logger.warning(f"Outbound call aborted after {timeout_ms:.0f}ms deadline")
        raise TransportTimeoutError(timeout_ms) from e


def with_deadline(
    call: Callable[[], Awaitable[T]], timeout_ms: float | None
) -> Callable[[], Awaitable[T]]:
    """Wrap a zero-argument async callable so every invocation has a deadline."""

    async def bounded() -> T:
        return await call_with_deadline(call, timeout_ms)

    return bounded


__all__ = ["call_with_deadline", "with_deadline"]
