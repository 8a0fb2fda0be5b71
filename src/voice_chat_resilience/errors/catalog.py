# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Error catalog.

Maps every ``ErrorType`` to its internal message, user facing message,
severity and default recovery strategy, and builds ``AppError`` values
from it.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from ..types.errors import (
    AppError,
    ErrorContext,
    ErrorSeverity,
    ErrorType,
    RecoveryStrategy,
)


@dataclass(frozen=True)
class CatalogEntry:
    """Static description of an error type."""

    message: str
    user_message: str
    severity: ErrorSeverity
    strategy: RecoveryStrategy


_S = ErrorSeverity
_R = RecoveryStrategy

ERROR_CATALOG: dict[ErrorType, CatalogEntry] = {
    # === Network ===
    ErrorType.NETWORK_OFFLINE: CatalogEntry(
        "No internet connection available",
        "Please check your internet connection and try again.",
        _S.HIGH,
        _R.USER_ACTION,
    ),
    ErrorType.NETWORK_TIMEOUT: CatalogEntry(
        "Network request timed out",
        "The request is taking longer than expected. Please try again.",
        _S.MEDIUM,
        _R.RETRY,
    ),
    ErrorType.NETWORK_SLOW: CatalogEntry(
        "Slow network connection detected",
        "Your connection is slow. Some features may be limited.",
        _S.MEDIUM,
        _R.DEGRADE,
    ),
    # === API ===
    ErrorType.API_INVALID_KEY: CatalogEntry(
        "Invalid API key",
        "Your API key is invalid. Please check your settings.",
        _S.CRITICAL,
        _R.USER_ACTION,
    ),
    ErrorType.API_RATE_LIMITED: CatalogEntry(
        "API rate limit exceeded",
        "Too many requests. Please wait a moment before trying again.",
        _S.MEDIUM,
        _R.RETRY,
    ),
    ErrorType.API_QUOTA_EXCEEDED: CatalogEntry(
        "API quota exceeded",
        "Your API usage limit has been reached. Please check your account.",
        _S.HIGH,
        _R.USER_ACTION,
    ),
    ErrorType.API_INSUFFICIENT_FUNDS: CatalogEntry(
        "Insufficient API credits",
        "Your account has insufficient credits. Please add funds.",
        _S.HIGH,
        _R.USER_ACTION,
    ),
    ErrorType.API_MODEL_OVERLOADED: CatalogEntry(
        "API model overloaded",
        "The AI model is currently overloaded. Please try again in a moment.",
        _S.MEDIUM,
        _R.RETRY,
    ),
    ErrorType.API_SERVER_ERROR: CatalogEntry(
        "API server error",
        "An error occurred while communicating with the AI service.",
        _S.MEDIUM,
        _R.RETRY,
    ),
    # === Audio ===
    ErrorType.AUDIO_PERMISSION_DENIED: CatalogEntry(
        "Audio permission denied",
        "Microphone access is required for voice features. "
        "Please enable it in Settings.",
        _S.HIGH,
        _R.USER_ACTION,
    ),
    ErrorType.AUDIO_DEVICE_BUSY: CatalogEntry(
        "Audio device busy",
        "Another app is using the microphone. "
        "Please close other audio apps and try again.",
        _S.MEDIUM,
        _R.RETRY,
    ),
    ErrorType.AUDIO_RECORDING_FAILED: CatalogEntry(
        "Audio recording failed",
        "Failed to record audio. Please try again.",
        _S.MEDIUM,
        _R.RETRY,
    ),
    ErrorType.AUDIO_PLAYBACK_FAILED: CatalogEntry(
        "Audio playback failed",
        "Failed to play audio. Please try again.",
        _S.MEDIUM,
        _R.RETRY,
    ),
    ErrorType.AUDIO_FORMAT_UNSUPPORTED: CatalogEntry(
        "Audio format not supported",
        "This audio format is not supported. Please record again.",
        _S.MEDIUM,
        _R.USER_ACTION,
    ),
    # === Storage ===
    ErrorType.STORAGE_FULL: CatalogEntry(
        "Storage space full",
        "Your device is running low on storage space. Please free up some space.",
        _S.HIGH,
        _R.USER_ACTION,
    ),
    ErrorType.STORAGE_CORRUPTED: CatalogEntry(
        "Storage corrupted",
        "Storage error detected. Some data may be lost.",
        _S.HIGH,
        _R.USER_ACTION,
    ),
    ErrorType.STORAGE_QUOTA_EXCEEDED: CatalogEntry(
        "Storage quota exceeded",
        "App storage limit reached. Some older conversations may be archived.",
        _S.MEDIUM,
        _R.DEGRADE,
    ),
    ErrorType.STORAGE_PERMISSION_DENIED: CatalogEntry(
        "Storage permission denied",
        "The app cannot access storage. Please check app permissions.",
        _S.HIGH,
        _R.USER_ACTION,
    ),
    # === Other ===
    ErrorType.REQUEST_CANCELLED: CatalogEntry(
        "Request cancelled",
        "The request was cancelled.",
        _S.LOW,
        _R.IGNORE,
    ),
    ErrorType.VALIDATION_ERROR: CatalogEntry(
        "Validation failed",
        "The request could not be processed. Please check your input.",
        _S.MEDIUM,
        _R.USER_ACTION,
    ),
    ErrorType.UNKNOWN_ERROR: CatalogEntry(
        "Unexpected error",
        "An unexpected error occurred. Please try again.",
        _S.MEDIUM,
        _R.RETRY,
    ),
}


def catalog_entry(error_type: ErrorType) -> CatalogEntry:
    return ERROR_CATALOG[error_type]


def build_error(
    error_type: ErrorType,
    *,
    message: str | None = None,
    component: str | None = None,
    operation: str | None = None,
    metadata: Mapping[str, Any] | None = None,
    retry_after_ms: float | None = None,
    timestamp: datetime | None = None,
) -> AppError:
    """
    Create a fresh ``AppError`` for an error type.

    Args:
        error_type: The classified error type
        message: Internal message overriding the catalog text
        component: Component the error originated in
        operation: Operation that failed
        metadata: Extra diagnostic details
        retry_after_ms: Server-provided minimum retry delay
        timestamp: Occurrence time, defaults to now (UTC)
    """
    entry = ERROR_CATALOG[error_type]
    context = None
    if component is not None or operation is not None or metadata:
        context = ErrorContext(
            component=component,
            operation=operation,
            metadata=dict(metadata or {}),
        )
    return AppError(
        error_type=error_type,
        message=message or entry.message,
        user_message=entry.user_message,
        severity=entry.severity,
        recovery_strategy=entry.strategy,
        timestamp=timestamp or datetime.now(timezone.utc),
        context=context,
        retry_after_ms=retry_after_ms,
    )


__all__ = ["ERROR_CATALOG", "CatalogEntry", "build_error", "catalog_entry"]
