# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Failure classification.

``ErrorClassifier`` turns whatever a collaborator raised (an HTTP failure,
a timeout, a connectivity loss, a domain error or an arbitrary exception)
into a fresh, typed ``AppError``. Classification is pure: it never logs
metrics, notifies anyone or retries.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any

from ..exceptions import (
    ConnectivityError,
    DomainError,
    RequestFailedError,
    TransportTimeoutError,
)
from ..types.errors import AppError, ErrorType
from .catalog import build_error

logger = logging.getLogger(__name__)

STATUS_ERROR_TYPES: dict[int, ErrorType] = {
    401: ErrorType.API_INVALID_KEY,
    402: ErrorType.API_INSUFFICIENT_FUNDS,
    429: ErrorType.API_RATE_LIMITED,
    500: ErrorType.API_SERVER_ERROR,
    502: ErrorType.API_SERVER_ERROR,
    503: ErrorType.API_MODEL_OVERLOADED,
    504: ErrorType.API_SERVER_ERROR,
}
"""Vendor HTTP status to error type, shared by completion and transcription."""

QUOTA_ERROR_CODES = frozenset({"insufficient_quota", "quota_exceeded"})
"""429 body error codes that mean the account quota is spent, not a burst limit."""


def extract_status_code(failure: object) -> int | None:
    """
    Find an HTTP status code on an exception-like object.

    Checks ``status_code``, ``status`` and ``response.status_code`` so that
    exceptions from common HTTP client libraries classify without adapters.
    """
    for candidate in (
        getattr(failure, "status_code", None),
        getattr(failure, "status", None),
        getattr(getattr(failure, "response", None), "status_code", None),
    ):
        if isinstance(candidate, int) and not isinstance(candidate, bool):
            return candidate
    return None


def _extract_headers(failure: object) -> dict[str, str]:
    headers = getattr(failure, "headers", None)
    if headers is None:
        headers = getattr(getattr(failure, "response", None), "headers", None)
    if not isinstance(headers, Mapping):
        return {}
    return {str(k).lower(): str(v) for k, v in headers.items()}


def _extract_body(failure: object) -> Any:
    body = getattr(failure, "body", None)
    if body is None:
        response = getattr(failure, "response", None)
        body = getattr(response, "body", None)
    return body


def _body_error_code(body: Any) -> str | None:
    """Pull ``error.code`` (or ``error.type``) out of a decoded error body."""
    if isinstance(body, Mapping):
        error = body.get("error", body)
        if isinstance(error, Mapping):
            for key in ("code", "type"):
                value = error.get(key)
                if isinstance(value, str) and value:
                    return value
        return None
    if isinstance(body, str):
        for code in QUOTA_ERROR_CODES:
            if code in body:
                return code
    return None


def parse_retry_after(headers: Mapping[str, str]) -> float | None:
    """
    Parse a retry delay from response headers, in milliseconds.

    Understands ``retry-after-ms``, and ``retry-after`` as either seconds or
    an HTTP date.
    """
    raw_ms = headers.get("retry-after-ms")
    if raw_ms:
        try:
            return max(0.0, float(raw_ms))
        except ValueError:
            pass

    raw = headers.get("retry-after")
    if not raw:
        return None
    try:
        return max(0.0, float(raw) * 1000.0)
    except ValueError:
        pass
    try:
        when = parsedate_to_datetime(raw)
    except (TypeError, ValueError):
        logger.debug(f"Unparseable Retry-After header: {raw!r}")
        return None
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    return max(0.0, (when - datetime.now(timezone.utc)).total_seconds() * 1000.0)


class ErrorClassifier:
    """
    Default classifier for transport and domain failures.

    Mapping policy:
        * ``AppError`` / ``RequestFailedError``: returned unchanged
        * ``DomainError``: its declared error type
        * deadline expiry (``TransportTimeoutError``, ``TimeoutError``): Network.timeout
        * ``ConnectivityError``: Network.offline
        * HTTP status: see ``STATUS_ERROR_TYPES``; a 429 whose body reports an
          exhausted quota becomes API.quota-exceeded
        * ``asyncio.CancelledError``: Request.cancelled
        * anything else: Unknown
    """

    def classify(
        self,
        failure: object,
        component: str | None = None,
        operation: str | None = None,
    ) -> AppError:
        if isinstance(failure, AppError):
            return failure
        if isinstance(failure, RequestFailedError):
            return failure.error

        if isinstance(failure, DomainError):
            return build_error(
                failure.error_type,
                message=str(failure) or None,
                component=component,
                operation=operation,
                metadata=failure.metadata,
            )

        if isinstance(failure, (TransportTimeoutError, TimeoutError, asyncio.TimeoutError)):
            return build_error(
                ErrorType.NETWORK_TIMEOUT,
                message=str(failure) or None,
                component=component,
                operation=operation,
            )

        if isinstance(failure, ConnectivityError):
            return build_error(
                ErrorType.NETWORK_OFFLINE,
                message=str(failure) or None,
                component=component,
                operation=operation,
            )

        if isinstance(failure, asyncio.CancelledError):
            return build_error(
                ErrorType.REQUEST_CANCELLED, component=component, operation=operation
            )

        status = extract_status_code(failure)
        if status is not None:
            return self.classify_status(
                status,
                body=_extract_body(failure),
                headers=_extract_headers(failure),
                message=str(failure) or None,
                component=component,
                operation=operation,
            )

        return build_error(
            ErrorType.UNKNOWN_ERROR,
            message=f"{type(failure).__name__}: {failure}",
            component=component,
            operation=operation,
        )

    def classify_status(
        self,
        status_code: int,
        body: Any = None,
        headers: Mapping[str, str] | None = None,
        message: str | None = None,
        component: str | None = None,
        operation: str | None = None,
    ) -> AppError:
        """Classify an HTTP status code with its response body and headers."""
        headers = {str(k).lower(): str(v) for k, v in (headers or {}).items()}
        error_type = STATUS_ERROR_TYPES.get(status_code, ErrorType.UNKNOWN_ERROR)
        retry_after_ms = None

        if status_code == 429:
            if _body_error_code(body) in QUOTA_ERROR_CODES:
                error_type = ErrorType.API_QUOTA_EXCEEDED
            else:
                retry_after_ms = parse_retry_after(headers)

        return build_error(
            error_type,
            message=message,
            component=component,
            operation=operation,
            metadata={"status_code": status_code},
            retry_after_ms=retry_after_ms,
        )


__all__ = [
    "QUOTA_ERROR_CODES",
    "STATUS_ERROR_TYPES",
    "ErrorClassifier",
    "extract_status_code",
    "parse_retry_after",
]
