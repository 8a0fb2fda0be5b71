# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Rate limit types.

This module defines the limit kinds tracked by the rate governor and the
per-window accounting state it mutates.
"""

from dataclasses import dataclass
from enum import Enum


class RateLimitType(Enum):
    """
    Kinds of per-minute limits enforced by hosted AI services.

    Limit Types:
        * **RPM**: Requests Per Minute
        * **TPM**: Tokens Per Minute, counted from pre-dispatch estimates
    """

    RPM = "RPM"
    TPM = "TPM"


@dataclass
class RateLimitState:
    """
    Accounting for the current one-minute rate window.

    Mutated only by the rate governor. The window is reset wholesale once
    ``now - window_start_ms >= 60_000``.

    Attributes:
        window_start_ms: Clock reading (ms) when the window opened
        requests_in_window: Requests admitted in this window
        tokens_in_window: Estimated tokens admitted in this window
        requests_per_minute_limit: Request ceiling per window
        tokens_per_minute_limit: Token ceiling per window
    """

    window_start_ms: float
    requests_in_window: int
    tokens_in_window: int
    requests_per_minute_limit: int
    tokens_per_minute_limit: int

    @property
    def remaining_requests(self) -> int:
        return max(0, self.requests_per_minute_limit - self.requests_in_window)

    @property
    def remaining_tokens(self) -> int:
        return max(0, self.tokens_per_minute_limit - self.tokens_in_window)


__all__ = ["RateLimitState", "RateLimitType"]
