# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Composition root for the voice chat resilience layer.

``create_core`` wires one error handling service, one metrics collector and
two independent request queues (completion and transcription, each with its
own rate governor) into a ``VoiceChatCore``.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from typing_extensions import Self

from .config import OrchestratorConfig
from .context.store import ConversationStore
from .errors.classifier import ErrorClassifier
from .errors.recovery import RecoveryActionRegistry
from .errors.service import ErrorHandlingService
from .observability.collector import UnifiedMetricsCollector
from .protocols.classifier import ClassifierProtocol
from .protocols.collaborators import (
    CompletionCollaborator,
    ConnectivityChecker,
    Navigator,
    Presenter,
    TranscriptionCollaborator,
)
from .scheduler.request_queue import RequestQueue
from .services.completion import CompletionService
from .services.transcription import TranscriptionService
from .storage.base import BaseStorage
from .storage.memory import MemoryStorage

logger = logging.getLogger(__name__)

COMPLETION_QUEUE = "completion"
TRANSCRIPTION_QUEUE = "transcription"


class VoiceChatCore:
    """
    The wired orchestration layer.

    Attributes:
        config: Shared configuration
        error_service: The single error handling service
        completion_queue: Queue for chat completion calls
        transcription_queue: Queue for transcription calls
        completions: Completion service (None without a completion client)
        transcriptions: Transcription service (None without a transcription client)
        conversations: Conversation history store
        metrics: Metrics collector (None when metrics are disabled)
    """

    def __init__(
        self,
        config: OrchestratorConfig,
        error_service: ErrorHandlingService,
        completion_queue: RequestQueue,
        transcription_queue: RequestQueue,
        conversations: ConversationStore,
        completions: CompletionService | None = None,
        transcriptions: TranscriptionService | None = None,
        metrics: UnifiedMetricsCollector | None = None,
    ) -> None:
        self.config = config
        self.error_service = error_service
        self.completion_queue = completion_queue
        self.transcription_queue = transcription_queue
        self.conversations = conversations
        self.completions = completions
        self.transcriptions = transcriptions
        self.metrics = metrics

    @property
    def storage(self) -> BaseStorage:
        return self.error_service.storage

    @property
    def queues(self) -> tuple[RequestQueue, RequestQueue]:
        return (self.completion_queue, self.transcription_queue)

    async def start(self) -> None:
        """Restore persisted error metrics and start both queues."""
        await self.error_service.load_metrics()
        for queue in self.queues:
            await queue.start()
        logger.info("Voice chat core started")

    async def stop(self) -> None:
        """Stop both queues and close the storage backend."""
        await asyncio.gather(*(queue.stop() for queue in self.queues))
        await self.storage.close()
        logger.info("Voice chat core stopped")

    async def __aenter__(self) -> Self:
        await self.start()
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.stop()

    def start_metrics_server(self) -> bool:
        """Expose metrics for Prometheus scraping on the configured address."""
        if self.metrics is None:
            logger.warning("Metrics are disabled; not starting the metrics server")
            return False
        return self.metrics.start_http_server(
            self.config.prometheus_host, self.config.prometheus_port
        )


def create_core(
    config: OrchestratorConfig | None = None,
    completion: CompletionCollaborator | None = None,
    transcription: TranscriptionCollaborator | None = None,
    storage: BaseStorage | None = None,
    navigator: Navigator | None = None,
    presenter: Presenter | None = None,
    metrics: UnifiedMetricsCollector | None = None,
    classifier: ClassifierProtocol | None = None,
    connectivity: ConnectivityChecker | None = None,
    sleep: Callable[[float], Awaitable[Any]] | None = None,
) -> VoiceChatCore:
    """
    Build a ``VoiceChatCore`` with proper dependency injection.

    Args:
        config: Shared configuration (defaults if omitted)
        completion: Completion collaborator; enables ``core.completions``
        transcription: Transcription collaborator; enables ``core.transcriptions``
        storage: Storage backend for the error log and metrics
            (``MemoryStorage`` if omitted)
        navigator: UI navigation collaborator for recovery actions
        presenter: UI collaborator receiving error presentations
        metrics: Metrics collector (created when ``config.metrics_enabled``)
        classifier: Failure classifier (``ErrorClassifier`` if omitted)
        connectivity: Network reachability check run before each dispatch
        sleep: Async sleep used by the queues (injectable for tests)

    Returns:
        A configured, not yet started ``VoiceChatCore``
    """
    config = config or OrchestratorConfig()
    storage = storage or MemoryStorage()
    if metrics is None and config.metrics_enabled:
        metrics = UnifiedMetricsCollector()

    error_service = ErrorHandlingService(
        classifier=classifier or ErrorClassifier(),
        storage=storage,
        recovery=RecoveryActionRegistry(storage=storage, navigator=navigator),
        metrics=metrics,
        presenter=presenter,
        log_limit=config.error_log_limit,
        auto_dismiss_ms=config.surface_auto_dismiss_ms,
    )

    def build_queue(name: str) -> RequestQueue:
        return RequestQueue(
            name,
            config=config,
            error_service=error_service,
            metrics=metrics,
            connectivity=connectivity,
            sleep=sleep,
        )

    completion_queue = build_queue(COMPLETION_QUEUE)
    transcription_queue = build_queue(TRANSCRIPTION_QUEUE)
    conversations = ConversationStore(config.max_conversations, config.max_history_messages)

    completions = None
    if completion is not None:
        completions = CompletionService(
            completion,
            completion_queue,
            store=conversations,
            cache=storage,
            config=config,
        )
    transcriptions = None
    if transcription is not None:
        transcriptions = TranscriptionService(
            transcription, transcription_queue, config=config
        )

    return VoiceChatCore(
        config=config,
        error_service=error_service,
        completion_queue=completion_queue,
        transcription_queue=transcription_queue,
        conversations=conversations,
        completions=completions,
        transcriptions=transcriptions,
        metrics=metrics,
    )


__all__ = ["COMPLETION_QUEUE", "TRANSCRIPTION_QUEUE", "VoiceChatCore", "create_core"]
