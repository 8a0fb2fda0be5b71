# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Metric name constants following Prometheus naming conventions.

All metric names use the ``voice_chat_`` prefix.

Naming Conventions:
    - Counter metrics end with ``_total``
    - Histogram metrics for time end with ``_seconds``
    - Gauges use present-tense descriptive names

Label Best Practices:
    Use only categorical labels:
    - ``queue`` - Queue name (completion, transcription)
    - ``error_code`` - ErrorType value (API.rate-limited, Network.timeout, ...)
    - ``severity`` - ErrorSeverity value
    - ``limit`` - Rate limit type (RPM, TPM)

    NEVER use request ids or conversation ids as labels (unbounded).
"""


# =============================================================================
# Global Prefix
# =============================================================================

METRIC_PREFIX = "voice_chat"
"""Prefix for all Prometheus metrics in this library."""


# =============================================================================
# Queue Metrics (scheduler/request_queue.py)
# =============================================================================

REQUESTS_ENQUEUED_TOTAL = f"{METRIC_PREFIX}_requests_enqueued_total"
"""Total requests accepted by a queue."""

REQUESTS_COMPLETED_TOTAL = f"{METRIC_PREFIX}_requests_completed_total"
"""Total requests resolved successfully."""

REQUESTS_FAILED_TOTAL = f"{METRIC_PREFIX}_requests_failed_total"
"""Total requests rejected after classification (retries exhausted or not retriable)."""

REQUESTS_RETRIED_TOTAL = f"{METRIC_PREFIX}_requests_retried_total"
"""Total retry attempts scheduled."""

REQUESTS_CANCELLED_TOTAL = f"{METRIC_PREFIX}_requests_cancelled_total"
"""Total requests rejected because their cancellation token fired."""

RATE_LIMIT_WAITS_TOTAL = f"{METRIC_PREFIX}_rate_limit_waits_total"
"""Total times dispatch slept for the rate governor."""

QUEUE_DEPTH = f"{METRIC_PREFIX}_queue_depth"
"""Pending requests in a queue."""

REQUEST_LATENCY_SECONDS = f"{METRIC_PREFIX}_request_latency_seconds"
"""Duration of a single outbound attempt."""


# =============================================================================
# Error Handling Metrics (errors/service.py)
# =============================================================================

ERRORS_HANDLED_TOTAL = f"{METRIC_PREFIX}_errors_handled_total"
"""Total errors handled by the error handling service."""

RECOVERY_ACTIONS_TOTAL = f"{METRIC_PREFIX}_recovery_actions_total"
"""Total recovery actions run, labelled by outcome."""


# =============================================================================
# Histogram Buckets
# =============================================================================

LATENCY_BUCKETS: list[float] = [
    0.05,
    0.1,
    0.25,
    0.5,
    1.0,
    2.5,
    5.0,
    10.0,
    30.0,
    60.0,
]
"""Buckets for outbound call latency; completions routinely take seconds."""


__all__ = [
    "ERRORS_HANDLED_TOTAL",
    "LATENCY_BUCKETS",
    "METRIC_PREFIX",
    "QUEUE_DEPTH",
    "RATE_LIMIT_WAITS_TOTAL",
    "RECOVERY_ACTIONS_TOTAL",
    "REQUESTS_CANCELLED_TOTAL",
    "REQUESTS_COMPLETED_TOTAL",
    "REQUESTS_ENQUEUED_TOTAL",
    "REQUESTS_FAILED_TOTAL",
    "REQUESTS_RETRIED_TOTAL",
    "REQUEST_LATENCY_SECONDS",
]
