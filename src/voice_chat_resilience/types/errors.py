# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Error taxonomy types.

This module defines the closed set of error types the library understands,
the severity and recovery strategy scales, and the immutable ``AppError``
value that describes a single failure occurrence. ``ErrorMetric`` is the
per-code aggregate the error handling service persists between runs.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator


class ErrorFamily(Enum):
    """Top-level grouping of error types."""

    NETWORK = "Network"
    API = "API"
    AUDIO = "Audio"
    STORAGE = "Storage"
    REQUEST = "Request"
    UNKNOWN = "Unknown"
    VALIDATION = "Validation"


class ErrorType(Enum):
    """
    Closed enumeration of every failure the library can classify.

    Values are the stable error codes used as metric keys and in persisted
    logs. The family is the part before the first dot.
    """

    NETWORK_OFFLINE = "Network.offline"
    NETWORK_TIMEOUT = "Network.timeout"
    NETWORK_SLOW = "Network.slow"

    API_INVALID_KEY = "API.invalid-key"
    API_RATE_LIMITED = "API.rate-limited"
    API_QUOTA_EXCEEDED = "API.quota-exceeded"
    API_INSUFFICIENT_FUNDS = "API.insufficient-funds"
    API_MODEL_OVERLOADED = "API.model-overloaded"
    API_SERVER_ERROR = "API.server-error"

    AUDIO_PERMISSION_DENIED = "Audio.permission-denied"
    AUDIO_DEVICE_BUSY = "Audio.device-busy"
    AUDIO_RECORDING_FAILED = "Audio.recording-failed"
    AUDIO_PLAYBACK_FAILED = "Audio.playback-failed"
    AUDIO_FORMAT_UNSUPPORTED = "Audio.format-unsupported"

    STORAGE_FULL = "Storage.full"
    STORAGE_CORRUPTED = "Storage.corrupted"
    STORAGE_QUOTA_EXCEEDED = "Storage.quota-exceeded"
    STORAGE_PERMISSION_DENIED = "Storage.permission-denied"

    REQUEST_CANCELLED = "Request.cancelled"
    VALIDATION_ERROR = "Validation"
    UNKNOWN_ERROR = "Unknown"

    @property
    def family(self) -> ErrorFamily:
        return ErrorFamily(self.value.split(".", 1)[0])


class ErrorSeverity(Enum):
    """How disruptive an error is to the user. Drives the UI treatment."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class RecoveryStrategy(Enum):
    """Default way of recovering from an error type."""

    RETRY = "retry"
    FALLBACK = "fallback"
    DEGRADE = "degrade"
    USER_ACTION = "user_action"
    RESTART = "restart"
    IGNORE = "ignore"


@dataclass(frozen=True)
class ErrorContext:
    """Where an error happened."""

    component: str | None = None
    operation: str | None = None
    metadata: Mapping[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "component": self.component,
            "operation": self.operation,
            "metadata": dict(self.metadata),
        }


@dataclass(frozen=True)
class RecoveryAction:
    """
    A concrete remedy offered for an error.

    Never persisted. Built on demand by the recovery action registry; the
    ``action`` coroutine function performs the remedy and may raise.

    Attributes:
        id: Stable identifier such as ``update_key`` or ``wait_retry``
        label: Short button text
        description: One line explanation shown next to the label
        action: Async callable that performs the remedy
        is_primary: Whether this is the recommended action
        is_destructive: Whether running it discards user data
    """

    id: str
    label: str
    description: str
    action: Callable[[], Awaitable[None]] = field(compare=False, repr=False)
    is_primary: bool = False
    is_destructive: bool = False

    async def run(self) -> None:
        await self.action()


@dataclass(frozen=True)
class AppError:
    """
    A single, immutable failure occurrence.

    Each failure produces a fresh instance; occurrences are only aggregated
    in ``ErrorMetric``. Use ``with_recovery_actions`` to derive a copy with
    a menu of recovery actions attached.

    Attributes:
        error_type: Classified type of the failure
        message: Internal description for logs
        user_message: Text suitable for display
        severity: How disruptive the error is
        recovery_strategy: Default recovery approach
        timestamp: UTC time the occurrence was created
        context: Optional component/operation/metadata
        recovery_actions: Remedies offered to the user
        retry_after_ms: Server-provided minimum delay before retrying
    """

    error_type: ErrorType
    message: str
    user_message: str
    severity: ErrorSeverity
    recovery_strategy: RecoveryStrategy
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    context: ErrorContext | None = None
    recovery_actions: tuple[RecoveryAction, ...] = ()
    retry_after_ms: float | None = None

    @property
    def code(self) -> str:
        return self.error_type.value

    @property
    def family(self) -> ErrorFamily:
        return self.error_type.family

    @property
    def primary_action(self) -> RecoveryAction | None:
        """The primary recovery action, falling back to the first one."""
        for action in self.recovery_actions:
            if action.is_primary:
                return action
        return self.recovery_actions[0] if self.recovery_actions else None

    def with_recovery_actions(self, actions: tuple[RecoveryAction, ...]) -> AppError:
        return dataclasses.replace(self, recovery_actions=tuple(actions))

    def to_log_entry(self) -> dict[str, Any]:
        """Serialize to a JSON-compatible dict for the persisted error log."""
        return {
            "code": self.code,
            "message": self.message,
            "user_message": self.user_message,
            "severity": self.severity.value,
            "recovery_strategy": self.recovery_strategy.value,
            "timestamp": self.timestamp.isoformat(),
            "context": self.context.to_dict() if self.context else None,
            "retry_after_ms": self.retry_after_ms,
        }


class ErrorMetric(BaseModel):
    """
    Running count of occurrences for one error code.

    Uses Pydantic so that metrics restored from storage are validated.
    """

    error_code: str
    count: int = Field(default=0, ge=0)
    last_occurrence: datetime | None = None

    @field_validator("last_occurrence")
    @classmethod
    def _ensure_utc(cls, value: datetime | None) -> datetime | None:
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    def record(self, when: datetime) -> None:
        self.count += 1
        if self.last_occurrence is None or when > self.last_occurrence:
            self.last_occurrence = when

    def to_dict(self) -> dict[str, Any]:
        return {
            "error_code": self.error_code,
            "count": self.count,
            "last_occurrence": (
                self.last_occurrence.isoformat() if self.last_occurrence else None
            ),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ErrorMetric:
        last = data.get("last_occurrence")
        return cls(
            error_code=str(data["error_code"]),
            count=int(data.get("count", 0)),
            last_occurrence=datetime.fromisoformat(last) if last else None,
        )


__all__ = [
    "AppError",
    "ErrorContext",
    "ErrorFamily",
    "ErrorMetric",
    "ErrorSeverity",
    "ErrorType",
    "RecoveryAction",
    "RecoveryStrategy",
]
