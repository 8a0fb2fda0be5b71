# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""Type definitions and constants."""

from .errors import (
    AppError,
    ErrorContext,
    ErrorFamily,
    ErrorMetric,
    ErrorSeverity,
    ErrorType,
    RecoveryAction,
    RecoveryStrategy,
)
from .messages import ChatMessage, MessageRole
from .queue import QueuedRequest, QueueState, QueueStatus
from .rate_limit import RateLimitState, RateLimitType
from .responses import CompletionResponse, TranscriptionResult
from .request import RequestMetadata, RequestPriority

__all__ = [
    # Error taxonomy
    "AppError",
    # Messages
    "ChatMessage",
    # Collaborator results
    "CompletionResponse",
    "ErrorContext",
    "ErrorFamily",
    "ErrorMetric",
    "ErrorSeverity",
    "ErrorType",
    "MessageRole",
    # Queue types
    "QueueState",
    "QueueStatus",
    "QueuedRequest",
    # Rate limit types
    "RateLimitState",
    "RateLimitType",
    "RecoveryAction",
    "RecoveryStrategy",
    # Request metadata
    "RequestMetadata",
    "RequestPriority",
    "TranscriptionResult",
]
