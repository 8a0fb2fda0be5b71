# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Retry decisions and exponential backoff.

Only errors whose recovery strategy is RETRY are retried, and only while
the attempt count is below the request's retry budget. Errors that need
the user (bad credentials, spent quota, no connectivity) or an app restart
are never retried blindly.
"""

from __future__ import annotations

import logging
import random

from ..types.errors import AppError, RecoveryStrategy

logger = logging.getLogger(__name__)

BACKOFF_JITTER_FACTOR = 0.1
"""Upper bound of the random jitter, as a fraction of the exponential delay."""

DEFAULT_MAX_BACKOFF_MS = 30000
"""Hard ceiling for any single backoff delay."""

NEVER_RETRY = frozenset({RecoveryStrategy.USER_ACTION, RecoveryStrategy.RESTART})


class RetryPolicy:
    """
    Decides whether a failed attempt is retried and how long to wait.

    Args:
        max_backoff_ms: Ceiling applied to every computed delay
        rng: Random source for jitter (injectable for deterministic tests)
    """

    def __init__(
        self,
        max_backoff_ms: float = DEFAULT_MAX_BACKOFF_MS,
        rng: random.Random | None = None,
    ) -> None:
        self.max_backoff_ms = max_backoff_ms
        self._rng = rng or random.Random()

    def should_retry(self, error: AppError, attempt: int, max_retries: int) -> bool:
        """
        Return True if another attempt should be made.

        Args:
            error: The classified failure of the last attempt
            attempt: Retries already performed (0 for the first failure)
            max_retries: Retry budget of the request
        """
        if error.recovery_strategy in NEVER_RETRY:
            return False
        if error.recovery_strategy is not RecoveryStrategy.RETRY:
            return False
        return attempt < max_retries

    def backoff_ms(self, attempt: int, base_delay_ms: float) -> float:
        """
        Exponential backoff with jitter, capped at ``max_backoff_ms``.

        ``base * 2**attempt`` plus a uniform jitter of up to 10% of that.
        """
        cap = self.max_backoff_ms
        if base_delay_ms <= 0:
            return 0.0
        exponential = base_delay_ms * (2 ** max(0, attempt))
        if exponential >= cap:
            return float(cap)
        jitter = self._rng.uniform(0, BACKOFF_JITTER_FACTOR * exponential)
        return float(min(exponential + jitter, cap))

    def delay_for(self, error: AppError, attempt: int, base_delay_ms: float) -> float:
        """Backoff for a failed attempt, honoring a server-provided retry delay."""
        delay = self.backoff_ms(attempt, base_delay_ms)
        if error.retry_after_ms is not None and error.retry_after_ms > delay:
            delay = min(error.retry_after_ms, self.max_backoff_ms)
        logger.debug(
            f"Backoff for {error.code} attempt {attempt}: {delay:.0f}ms"
        )
        return delay


__all__ = ["BACKOFF_JITTER_FACTOR", "DEFAULT_MAX_BACKOFF_MS", "RetryPolicy"]
