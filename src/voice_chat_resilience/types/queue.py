# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Queue types for request orchestration.

This module defines the per-item state machine and the data structures the
request queue owns for the lifetime of each request.
"""

from __future__ import annotations

import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

from .request import RequestMetadata

if TYPE_CHECKING:
    from asyncio import Future

    from ..scheduler.cancellation import CancellationToken


class QueueState(Enum):
    """
    Lifecycle of a queued request.

    PENDING -> DISPATCHED -> RESOLVED
                          -> RETRYING -> PENDING
                          -> REJECTED
    """

    PENDING = "pending"
    DISPATCHED = "dispatched"
    RETRYING = "retrying"
    RESOLVED = "resolved"
    REJECTED = "rejected"


@dataclass
class QueuedRequest:
    """
    A request owned by the request queue.

    Attributes:
        metadata: Ordering and accounting metadata
        work: Async callable performing the outbound call
        future: Resolved with the work result or rejected with RequestFailedError
        cancel_token: Optional cooperative cancellation token
        attempt: Retries performed so far (never exceeds metadata.max_retries)
        state: Current lifecycle state
        queue_entry_time: Monotonic time of the last (re)insertion
    """

    metadata: RequestMetadata
    work: Callable[[], Awaitable[Any]]
    future: Future[Any]
    cancel_token: CancellationToken | None = None
    attempt: int = 0
    state: QueueState = QueueState.PENDING
    queue_entry_time: float = field(default_factory=time.monotonic)

    @property
    def request_id(self) -> str:
        return self.metadata.request_id

    @property
    def priority(self) -> int:
        return self.metadata.priority

    @property
    def is_cancelled(self) -> bool:
        if self.future.cancelled():
            return True
        return self.cancel_token is not None and self.cancel_token.is_cancelled


@dataclass
class QueueStatus:
    """Point-in-time view of a request queue."""

    name: str
    queue_length: int
    is_processing: bool
    in_flight_id: str | None = None
    retrying: int = 0


__all__ = ["QueueState", "QueueStatus", "QueuedRequest"]
