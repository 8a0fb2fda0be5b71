# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""Voice Chat Resilience - Request orchestration for voice chat clients.

This library sits between a voice chat UI and hosted language and speech
models. It keeps outbound calls inside per-minute rate limits, trims
conversation context to a token budget, retries transient failures and
turns every failure into a typed, user presentable error.

Key Features:
    - Priority request queues with cooperative cancellation
    - Per-minute request and token governance refined by vendor headers
    - Exponential backoff retries driven by a typed error taxonomy
    - Context trimming by message count and estimated tokens
    - Error metrics, a persisted error log and severity-driven UI treatment
    - Multiple storage options (memory, Redis)

Quick Start:
    >>> from voice_chat_resilience import OrchestratorConfig, create_core
    >>>
    >>> core = create_core(OrchestratorConfig(), completion=MyCompletionClient())
    >>> async with core:
    ...     reply = await core.completions.send_message("chat-1", "Hello!")
    ...     print(reply.content)

Main Exports:
    - create_core, VoiceChatCore: Composition root
    - RequestQueue, CancellationToken: Request scheduling
    - ErrorHandlingService, ErrorClassifier: Error handling
    - MemoryStorage, RedisStorage: Storage backends
    - OrchestratorConfig: Configuration options

Note: RedisStorage requires the 'redis' extra. Install with:
    pip install voice-chat-resilience[redis]

Version: 1.0.0
"""

__version__ = "1.0.0"

from typing import TYPE_CHECKING

from .config import (
    AGGRESSIVE_BUDGET,
    DEFAULT_BUDGET,
    QUALITY_FIRST_BUDGET,
    ContextBudget,
    OrchestratorConfig,
    budget_for_history,
    estimate_cost,
)
from .context import ContextOptimizer, ConversationStore, TokenEstimator
from .core import VoiceChatCore, create_core
from .errors import (
    ErrorClassifier,
    ErrorHandlingService,
    RecoveryActionRegistry,
    UIPresentation,
    UITreatment,
    present_error,
)
from .exceptions import (
    AudioValidationError,
    ConfigurationError,
    ConnectivityError,
    DomainError,
    HttpFailure,
    OrchestratorError,
    QueueClosedError,
    QueueOverflowError,
    RequestFailedError,
    StorageCheckError,
    StorageError,
    TransportTimeoutError,
)
from .rate_limit import RateGovernor
from .retry import RetryPolicy
from .scheduler import CancellationToken, RequestQueue, call_with_deadline
from .services import CompletionService, TranscriptionService
from .storage import BaseStorage, MemoryStorage
from .types import (
    AppError,
    ChatMessage,
    CompletionResponse,
    ErrorMetric,
    ErrorSeverity,
    ErrorType,
    RecoveryAction,
    RecoveryStrategy,
    RequestPriority,
    TranscriptionResult,
)

# Lazy import for optional redis storage
if TYPE_CHECKING:
    from .storage import RedisStorage

__all__ = [
    "AGGRESSIVE_BUDGET",
    "DEFAULT_BUDGET",
    "QUALITY_FIRST_BUDGET",
    # Types
    "AppError",
    "AudioValidationError",
    # Storage
    "BaseStorage",
    # Scheduling
    "CancellationToken",
    "ChatMessage",
    # Services
    "CompletionResponse",
    "CompletionService",
    "ConfigurationError",
    "ConnectivityError",
    # Context
    "ContextBudget",
    "ContextOptimizer",
    "ConversationStore",
    "DomainError",
    # Errors
    "ErrorClassifier",
    "ErrorHandlingService",
    "ErrorMetric",
    "ErrorSeverity",
    "ErrorType",
    "HttpFailure",
    "MemoryStorage",
    # Configuration
    "OrchestratorConfig",
    # Exceptions
    "OrchestratorError",
    "QueueClosedError",
    "QueueOverflowError",
    "RateGovernor",
    "RecoveryAction",
    "RecoveryActionRegistry",
    "RecoveryStrategy",
    "RedisStorage",
    "RequestFailedError",
    "RequestPriority",
    "RequestQueue",
    "RetryPolicy",
    "StorageCheckError",
    "StorageError",
    "TokenEstimator",
    "TranscriptionResult",
    "TranscriptionService",
    "TransportTimeoutError",
    "UIPresentation",
    "UITreatment",
    # Core
    "VoiceChatCore",
    "__version__",
    "budget_for_history",
    "call_with_deadline",
    "create_core",
    "estimate_cost",
    "present_error",
]


def __getattr__(name: str) -> type:
    """Lazy import for the optional redis storage."""
    if name == "RedisStorage":
        from .storage import RedisStorage

        return RedisStorage
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
