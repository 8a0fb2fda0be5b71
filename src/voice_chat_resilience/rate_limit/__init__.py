# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""Rate limit governor."""

from .governor import (
    DEFAULT_REQUEST_HEADROOM,
    WINDOW_MS,
    RateGovernor,
    parse_duration_ms,
)

__all__ = ["DEFAULT_REQUEST_HEADROOM", "WINDOW_MS", "RateGovernor", "parse_duration_ms"]
