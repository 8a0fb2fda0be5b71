# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""Retry policy."""

from .policy import BACKOFF_JITTER_FACTOR, DEFAULT_MAX_BACKOFF_MS, RetryPolicy

__all__ = ["BACKOFF_JITTER_FACTOR", "DEFAULT_MAX_BACKOFF_MS", "RetryPolicy"]
