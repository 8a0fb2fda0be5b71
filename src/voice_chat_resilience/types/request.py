# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Request metadata types.

This module defines the priority scale and the metadata the request queue
keeps for every piece of work it orders and dispatches.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import IntEnum


class RequestPriority(IntEnum):
    """
    Queue priority. Higher values are more urgent.

    Any int is accepted by the queue; these are the named levels used by
    the chat and transcription services.
    """

    LOW = 0
    MEDIUM = 1
    HIGH = 2
    URGENT = 3


@dataclass
class RequestMetadata:
    """
    Metadata for ordering, accounting and tracing a queued request.

    Attributes:
        request_id: Unique identifier for this request instance
        priority: Queue priority (higher = more urgent)
        max_retries: Retry budget for this request
        estimated_tokens: Token estimate reserved with the rate governor
        component: Caller component, copied into error contexts
        operation: Caller operation, copied into error contexts
        submitted_at: UTC timestamp when the request was enqueued
    """

    request_id: str
    priority: int = RequestPriority.MEDIUM
    max_retries: int = 3
    estimated_tokens: int = 0
    component: str | None = None
    operation: str | None = None
    submitted_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


__all__ = ["RequestMetadata", "RequestPriority"]
