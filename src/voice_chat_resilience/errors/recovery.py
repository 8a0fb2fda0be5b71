# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Recovery action registry.

Builds the menu of concrete remedies offered for an error. Actions that
need the UI (opening settings, showing the account page) are delegated to
a ``Navigator`` collaborator; actions the library can perform itself
(waiting out a rate limit, clearing cached data) run directly.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from ..protocols.collaborators import Navigator
from ..storage.base import BaseStorage
from ..types.errors import AppError, ErrorFamily, ErrorType, RecoveryAction

logger = logging.getLogger(__name__)

DEFAULT_WAIT_RETRY_MS = 60_000
"""Wait used by ``wait_retry`` when the server sent no retry delay."""

RetryCallback = Callable[[], Awaitable[Any]]


class RecoveryActionRegistry:
    """
    Maps error types to recovery actions.

    Args:
        storage: Storage whose cache ``clear_cache`` empties. Without it the
            action is not offered.
        navigator: UI collaborator for navigation actions. Without it those
            actions complete without doing anything.
        sleep: Coroutine used by ``wait_retry`` (injectable for tests)
    """

    def __init__(
        self,
        storage: BaseStorage | None = None,
        navigator: Navigator | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self.storage = storage
        self.navigator = navigator
        self._sleep = sleep

    def actions_for(
        self, error: AppError, retry: RetryCallback | None = None
    ) -> tuple[RecoveryAction, ...]:
        """
        Build recovery actions for an error.

        Args:
            error: The classified error
            retry: Re-issues the failed operation, used by retry actions

        Returns:
            Actions in display order, primary first
        """
        family = error.family
        if family is ErrorFamily.NETWORK:
            return self._network_actions(error.error_type, retry)
        if family is ErrorFamily.API:
            return self._api_actions(error, retry)
        if family is ErrorFamily.AUDIO:
            return self._audio_actions(error.error_type, retry)
        if family is ErrorFamily.STORAGE:
            return self._storage_actions(error.error_type)
        if error.error_type is ErrorType.UNKNOWN_ERROR and retry is not None:
            return (self._retry("Try the operation again", retry, primary=True),)
        return ()

    # === Action factories ===

    def _navigate(self, destination: str) -> Callable[[], Awaitable[None]]:
        async def run() -> None:
            if self.navigator is None:
                logger.info(f"No navigator configured for recovery action {destination}")
                return
            await self.navigator.navigate(destination)

        return run

    def _retry(
        self, description: str, retry: RetryCallback | None, primary: bool
    ) -> RecoveryAction:
        async def run() -> None:
            if retry is not None:
                await retry()

        return RecoveryAction("retry", "Retry", description, run, is_primary=primary)

    def _wait_retry(
        self, error: AppError, retry: RetryCallback | None
    ) -> RecoveryAction:
        wait_ms = error.retry_after_ms or DEFAULT_WAIT_RETRY_MS

        async def run() -> None:
            await self._sleep(wait_ms / 1000)
            if retry is not None:
                await retry()

        return RecoveryAction(
            "wait_retry",
            "Wait & Retry",
            "Wait for the rate limit to reset",
            run,
            is_primary=True,
        )

    def _clear_cache(self) -> RecoveryAction | None:
        storage = self.storage
        if storage is None:
            return None

        async def run() -> None:
            removed = await storage.clear_cache()
            logger.info(f"Recovery cleared {removed} cached entries")

        return RecoveryAction(
            "clear_cache",
            "Clear App Cache",
            "Clear temporary files to free up space",
            run,
        )

    # === Per-family tables ===

    def _network_actions(
        self, error_type: ErrorType, retry: RetryCallback | None
    ) -> tuple[RecoveryAction, ...]:
        if error_type is ErrorType.NETWORK_OFFLINE:
            return (
                RecoveryAction(
                    "check_connection",
                    "Check Connection",
                    "Verify your internet connection",
                    self._navigate("check_connection"),
                    is_primary=True,
                ),
                self._retry("Try the operation again", retry, primary=False),
            )
        if error_type is ErrorType.NETWORK_TIMEOUT:
            return (self._retry("Try again with a longer timeout", retry, primary=True),)
        return ()

    def _api_actions(
        self, error: AppError, retry: RetryCallback | None
    ) -> tuple[RecoveryAction, ...]:
        error_type = error.error_type
        if error_type is ErrorType.API_RATE_LIMITED:
            return (self._wait_retry(error, retry),)
        if error_type is ErrorType.API_INVALID_KEY:
            return (
                RecoveryAction(
                    "update_key",
                    "Update API Key",
                    "Go to settings to update your API key",
                    self._navigate("update_key"),
                    is_primary=True,
                ),
            )
        if error_type in (ErrorType.API_QUOTA_EXCEEDED, ErrorType.API_INSUFFICIENT_FUNDS):
            return (
                RecoveryAction(
                    "check_account",
                    "Check Account",
                    "Visit your provider dashboard to check your account",
                    self._navigate("check_account"),
                    is_primary=True,
                ),
            )
        return (self._retry("Try the operation again", retry, primary=True),)

    def _audio_actions(
        self, error_type: ErrorType, retry: RetryCallback | None
    ) -> tuple[RecoveryAction, ...]:
        if error_type is ErrorType.AUDIO_PERMISSION_DENIED:
            return (
                RecoveryAction(
                    "open_settings",
                    "Open Settings",
                    "Open device settings to grant microphone permission",
                    self._navigate("open_settings"),
                    is_primary=True,
                ),
            )
        if error_type is ErrorType.AUDIO_DEVICE_BUSY:
            return (
                RecoveryAction(
                    "close_apps",
                    "Close Other Apps",
                    "Close other apps using audio and try again",
                    self._navigate("close_apps"),
                    is_primary=True,
                ),
            )
        return (self._retry("Try the audio operation again", retry, primary=True),)

    def _storage_actions(self, error_type: ErrorType) -> tuple[RecoveryAction, ...]:
        if error_type is ErrorType.STORAGE_FULL:
            actions = [
                RecoveryAction(
                    "free_space",
                    "Free Up Space",
                    "Delete unused files to free up storage",
                    self._navigate("free_space"),
                    is_primary=True,
                )
            ]
            clear_cache = self._clear_cache()
            if clear_cache is not None:
                actions.append(clear_cache)
            return tuple(actions)
        if error_type is ErrorType.STORAGE_QUOTA_EXCEEDED:
            return (
                RecoveryAction(
                    "archive_old",
                    "Archive Old Data",
                    "Archive older conversations to free up space",
                    self._navigate("archive_old"),
                    is_primary=True,
                ),
            )
        return ()


__all__ = ["DEFAULT_WAIT_RETRY_MS", "RecoveryActionRegistry"]
