# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""Exception classes for the voice chat resilience library.

This module defines two families of exceptions:

* The library hierarchy rooted at ``OrchestratorError``. Everything the
  library itself raises inherits from it, so a single except clause catches
  any failure coming out of the request queue, the storage layer or the
  configuration.
* Transport failure types (``HttpFailure``, ``TransportTimeoutError``,
  ``ConnectivityError``) and explicit domain errors that collaborators raise
  and that the error classifier turns into typed ``AppError`` values.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .types.errors import AppError, ErrorType


class OrchestratorError(Exception):
    """Base exception for all voice chat resilience errors.

    Example:
        try:
            reply = await core.completions.send_message("chat-1", "Hello")
        except OrchestratorError as e:
            logger.error(f"Request orchestration failed: {e}")
    """

    pass


class ConfigurationError(OrchestratorError, ValueError):
    """Raised when a configuration value is invalid or unknown.

    Subclasses ValueError so callers validating user supplied settings can
    keep catching the builtin type.
    """

    pass


class QueueClosedError(OrchestratorError):
    """Raised when work is enqueued on a request queue that has been stopped.

    Attributes:
        queue_name: Name of the closed queue.
    """

    def __init__(self, queue_name: str):
        super().__init__(f"Request queue '{queue_name}' is closed")
        self.queue_name = queue_name


class QueueOverflowError(OrchestratorError):
    """Raised when a request queue has reached its maximum size.

    Attributes:
        queue_name: Name of the full queue.
        max_size: The configured capacity that was hit.

    Example:
        try:
            future = queue.enqueue(work, priority=RequestPriority.LOW)
        except QueueOverflowError as e:
            logger.warning(f"Dropping background request, {e.queue_name} is full")
    """

    def __init__(self, queue_name: str, max_size: int):
        super().__init__(f"Request queue '{queue_name}' is full ({max_size} items)")
        self.queue_name = queue_name
        self.max_size = max_size


class RequestFailedError(OrchestratorError):
    """Rejection value of every request queue future.

    Carries the classified, immutable ``AppError`` describing the failure
    together with the number of attempts that were made. Cancelled requests
    reject with an error whose type is ``ErrorType.REQUEST_CANCELLED``.

    Attributes:
        error: The classified error occurrence.
        attempts: How many times the work was dispatched.
        request_id: Identifier of the failed request, if known.

    Example:
        try:
            result = await queue.submit(work)
        except RequestFailedError as e:
            if e.error.severity is ErrorSeverity.CRITICAL:
                show_blocking_modal(e.error.user_message)
    """

    def __init__(
        self,
        error: AppError,
        attempts: int = 0,
        request_id: str | None = None,
    ):
        super().__init__(f"[{error.code}] {error.message}")
        self.error = error
        self.attempts = attempts
        self.request_id = request_id

    @property
    def error_type(self) -> ErrorType:
        return self.error.error_type

    @property
    def cancelled(self) -> bool:
        from .types.errors import ErrorType

        return self.error.error_type is ErrorType.REQUEST_CANCELLED


class StorageError(OrchestratorError):
    """Raised when a storage backend operation fails.

    Attributes:
        operation: Name of the storage operation that failed.
    """

    def __init__(self, message: str, operation: str | None = None):
        super().__init__(message)
        self.operation = operation


# =============================================================================
# Transport failures consumed by the classifier
# =============================================================================


class HttpFailure(Exception):
    """A hosted service answered with a non-success HTTP status.

    Collaborators raise this from ``send`` so the classifier can map the
    status code (and, for 429, the body) to an error type.

    Attributes:
        status_code: HTTP status code of the response.
        body: Decoded response body, if any.
        headers: Response headers, if any.
    """

    def __init__(
        self,
        status_code: int,
        body: Mapping[str, Any] | str | None = None,
        headers: Mapping[str, str] | None = None,
        message: str | None = None,
    ):
        super().__init__(message or f"HTTP {status_code}")
        self.status_code = status_code
        self.body = body
        self.headers = dict(headers or {})


class TransportTimeoutError(Exception):
    """The outbound call exceeded its deadline and was aborted.

    Attributes:
        timeout_ms: The deadline that expired, in milliseconds.
    """

    def __init__(self, timeout_ms: float | None = None):
        msg = (
            f"Request timed out after {timeout_ms:.0f}ms"
            if timeout_ms is not None
            else "Request timed out"
        )
        super().__init__(msg)
        self.timeout_ms = timeout_ms


class ConnectivityError(Exception):
    """No network connectivity is available."""

    pass


class DomainError(Exception):
    """An explicit failure that already knows its error type.

    Raised upstream of the queue (audio file checks, storage checks) where
    the failure is understood without looking at a transport response.

    Attributes:
        error_type: The error type the classifier should produce.
        metadata: Extra details copied into the error context.
    """

    def __init__(
        self,
        error_type: ErrorType,
        message: str,
        metadata: Mapping[str, Any] | None = None,
    ):
        super().__init__(message)
        self.error_type = error_type
        self.metadata = dict(metadata or {})


class AudioValidationError(DomainError):
    """An audio file failed validation before transcription."""

    pass


class StorageCheckError(DomainError):
    """A storage availability or integrity check failed."""

    pass


__all__ = [
    "AudioValidationError",
    "ConfigurationError",
    "ConnectivityError",
    "DomainError",
    "HttpFailure",
    "OrchestratorError",
    "QueueClosedError",
    "QueueOverflowError",
    "RequestFailedError",
    "StorageCheckError",
    "StorageError",
    "TransportTimeoutError",
]
