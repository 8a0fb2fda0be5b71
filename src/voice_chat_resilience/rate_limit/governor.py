# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Per-minute request and token governor.

The governor keeps one accounting window of sixty seconds. The window is
reset wholesale once it has elapsed rather than sliding, so a burst that
straddles a boundary can briefly admit up to twice the limit. Reservations
are counted optimistically before the outbound call completes.
"""

from __future__ import annotations

import dataclasses
import logging
import re
import time
from collections.abc import Callable, Mapping

from ..types.rate_limit import RateLimitState, RateLimitType

logger = logging.getLogger(__name__)

WINDOW_MS = 60_000
"""Length of the accounting window."""

DEFAULT_REQUEST_HEADROOM = 5
"""Requests held back below the request limit."""

_DURATION_RE = re.compile(r"(\d+(?:\.\d+)?)(ms|s|m|h)")
_UNIT_MS = {"ms": 1.0, "s": 1000.0, "m": 60_000.0, "h": 3_600_000.0}


def parse_duration_ms(value: str | None) -> float | None:
    """
    Parse a rate-limit reset duration into milliseconds.

    Handles plain seconds (``"12"``, ``"0.5"``) and compound durations
    (``"500ms"``, ``"2s"``, ``"6m0s"``). Returns None if parsing fails.
    """
    if not value:
        return None
    try:
        return float(value) * 1000.0
    except (ValueError, TypeError):
        pass

    matches = _DURATION_RE.findall(value)
    if not matches:
        return None
    return sum(float(amount) * _UNIT_MS[unit] for amount, unit in matches)


def _parse_int(headers: Mapping[str, str], name: str) -> int | None:
    raw = headers.get(name)
    if raw is None:
        return None
    try:
        return int(float(raw))
    except (ValueError, TypeError):
        logger.warning(f"Invalid {name} header: {raw}")
        return None


class RateGovernor:
    """
    Tracks request and token usage in a hard-reset one-minute window.

    A reservation must wait when the window already holds
    ``requests_per_minute - headroom`` requests, or when adding the
    estimate would reach the token limit. The first reservation of a
    window is always admitted so that an oversized request cannot stall
    forever.

    Args:
        requests_per_minute: Request ceiling per window
        tokens_per_minute: Estimated token ceiling per window
        headroom: Requests held back below the request ceiling
        clock: Monotonic clock in seconds (injectable for tests)

    Example:
        >>> governor = RateGovernor(requests_per_minute=60)
        >>> wait_ms = governor.reserve(estimated_tokens=350)
        >>> if wait_ms:
        ...     await asyncio.sleep(wait_ms / 1000)
    """

    def __init__(
        self,
        requests_per_minute: int = 60,
        tokens_per_minute: int = 90000,
        headroom: int = DEFAULT_REQUEST_HEADROOM,
        clock: Callable[[], float] | None = None,
    ) -> None:
        self._clock = clock or time.monotonic
        self.headroom = headroom
        self._state = RateLimitState(
            window_start_ms=self._now_ms(),
            requests_in_window=0,
            tokens_in_window=0,
            requests_per_minute_limit=requests_per_minute,
            tokens_per_minute_limit=tokens_per_minute,
        )
        self.last_limited_by: RateLimitType | None = None

    def _now_ms(self) -> float:
        return self._clock() * 1000.0

    def _roll_window(self, now_ms: float) -> None:
        state = self._state
        if now_ms - state.window_start_ms >= WINDOW_MS:
            state.window_start_ms = now_ms
            state.requests_in_window = 0
            state.tokens_in_window = 0

    def _limiting_factor(self, estimated_tokens: int) -> RateLimitType | None:
        state = self._state
        if state.requests_in_window == 0:
            return None
        if state.requests_in_window >= state.requests_per_minute_limit - self.headroom:
            return RateLimitType.RPM
        if state.tokens_in_window + estimated_tokens >= state.tokens_per_minute_limit:
            return RateLimitType.TPM
        return None

    def check(self, estimated_tokens: int = 0) -> float:
        """Return the wait a reservation would need now, without reserving."""
        now = self._now_ms()
        self._roll_window(now)
        if self._limiting_factor(estimated_tokens) is None:
            return 0.0
        return max(1.0, WINDOW_MS - (now - self._state.window_start_ms))

    def reserve(self, estimated_tokens: int = 0) -> float:
        """
        Reserve capacity for one request.

        Returns:
            0 when the request was admitted (and counted), otherwise the
            milliseconds until the window resets. Nothing is counted when
            a wait is returned; call ``reserve`` again after sleeping.
        """
        estimated_tokens = max(0, estimated_tokens)
        now = self._now_ms()
        self._roll_window(now)

        limited_by = self._limiting_factor(estimated_tokens)
        self.last_limited_by = limited_by
        if limited_by is not None:
            wait_ms = max(1.0, WINDOW_MS - (now - self._state.window_start_ms))
            logger.info(
                f"Rate limit ({limited_by.value}) reached, waiting {wait_ms:.0f}ms "
                f"for window reset"
            )
            return wait_ms

        self._state.requests_in_window += 1
        self._state.tokens_in_window += estimated_tokens
        return 0.0

    def update_from_headers(self, headers: Mapping[str, str]) -> bool:
        """
        Refine accounting from vendor rate-limit response headers.

        Reads ``x-ratelimit-limit-*``, ``x-ratelimit-remaining-*`` and
        ``x-ratelimit-reset-requests``. Limits are only ever lowered and
        usage is only ever raised, so headers never make the governor
        less conservative.

        Returns:
            True if any header was applied
        """
        headers = {str(k).lower(): str(v) for k, v in headers.items()}
        now = self._now_ms()
        self._roll_window(now)
        state = self._state
        applied = False

        limit_requests = _parse_int(headers, "x-ratelimit-limit-requests")
        if limit_requests and limit_requests < state.requests_per_minute_limit:
            state.requests_per_minute_limit = limit_requests
            applied = True

        limit_tokens = _parse_int(headers, "x-ratelimit-limit-tokens")
        if limit_tokens and limit_tokens < state.tokens_per_minute_limit:
            state.tokens_per_minute_limit = limit_tokens
            applied = True

        remaining_requests = _parse_int(headers, "x-ratelimit-remaining-requests")
        if remaining_requests is not None:
            used = max(0, state.requests_per_minute_limit - remaining_requests)
            state.requests_in_window = max(state.requests_in_window, used)
            applied = True

        remaining_tokens = _parse_int(headers, "x-ratelimit-remaining-tokens")
        if remaining_tokens is not None:
            used = max(0, state.tokens_per_minute_limit - remaining_tokens)
            state.tokens_in_window = max(state.tokens_in_window, used)
            applied = True

        reset_ms = parse_duration_ms(headers.get("x-ratelimit-reset-requests"))
        if reset_ms is not None and reset_ms <= WINDOW_MS:
            state.window_start_ms = now + reset_ms - WINDOW_MS
            applied = True

        if applied:
            logger.debug(
                f"Rate window refined from headers: "
                f"{state.requests_in_window}/{state.requests_per_minute_limit} requests, "
                f"{state.tokens_in_window}/{state.tokens_per_minute_limit} tokens"
            )
        return applied

    def snapshot(self) -> RateLimitState:
        """Return a copy of the current window state."""
        self._roll_window(self._now_ms())
        return dataclasses.replace(self._state)

    def reset(self) -> None:
        """Start a fresh window now."""
        state = self._state
        state.window_start_ms = self._now_ms()
        state.requests_in_window = 0
        state.tokens_in_window = 0


__all__ = ["DEFAULT_REQUEST_HEADROOM", "WINDOW_MS", "RateGovernor", "parse_duration_ms"]
