# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Error handling service.

The façade every terminal failure flows through. For each error it:

1. classifies raw exceptions into an ``AppError``
2. attaches recovery actions
3. updates per-code ``ErrorMetric`` counts and persists them as a flat map
4. appends to the bounded, persisted error log
5. notifies listeners in registration order, isolating their failures
6. hands the severity-driven ``UIPresentation`` to the presenter
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from ..exceptions import StorageError
from ..observability.constants import ERRORS_HANDLED_TOTAL, RECOVERY_ACTIONS_TOTAL
from ..observability.protocols import MetricsCollectorProtocol
from ..protocols.classifier import ClassifierProtocol
from ..protocols.collaborators import Presenter
from ..storage.base import BaseStorage
from ..storage.memory import MemoryStorage
from ..types.errors import AppError, ErrorMetric, ErrorSeverity, RecoveryAction
from .classifier import ErrorClassifier
from .presentation import UIPresentation, present_error
from .recovery import RecoveryActionRegistry

logger = logging.getLogger(__name__)

ERROR_LOG_KEY = "error_logs"
METRICS_STATE_KEY = "error_metrics"

Listener = Callable[[AppError], Any]

_LOG_LEVELS = {
    ErrorSeverity.CRITICAL: logging.CRITICAL,
    ErrorSeverity.HIGH: logging.ERROR,
    ErrorSeverity.MEDIUM: logging.WARNING,
    ErrorSeverity.LOW: logging.INFO,
}


class Subscription:
    """
    Handle returned by ``ErrorHandlingService.subscribe``.

    Calling the handle (or ``unsubscribe``) removes exactly this
    registration; repeated calls are harmless.
    """

    def __init__(self, service: ErrorHandlingService, listener: Listener) -> None:
        self._service = service
        self.listener = listener
        self.active = True

    def unsubscribe(self) -> None:
        if self.active:
            self.active = False
            self._service._drop_subscription(self)

    def __call__(self) -> None:
        self.unsubscribe()


class ErrorHandlingService:
    """
    Records, logs, broadcasts and presents errors.

    Args:
        classifier: Turns raw failures into ``AppError`` values
        storage: Durable storage for the error log and metrics map
        recovery: Builds recovery actions for handled errors
        metrics: Optional collector for Prometheus-style counters
        presenter: Optional UI collaborator receiving presentations
        log_limit: Error log entries kept in storage
        auto_dismiss_ms: Expiry of non-blocking UI surfaces

    Example:
        >>> service = ErrorHandlingService(storage=MemoryStorage())
        >>> unsubscribe = service.subscribe(lambda err: print(err.user_message))
        >>> await service.handle_error(HttpFailure(401))
        Your API key is invalid. Please check your settings.
        >>> unsubscribe()
    """

    def __init__(
        self,
        classifier: ClassifierProtocol | None = None,
        storage: BaseStorage | None = None,
        recovery: RecoveryActionRegistry | None = None,
        metrics: MetricsCollectorProtocol | None = None,
        presenter: Presenter | None = None,
        log_limit: int = 100,
        auto_dismiss_ms: int = 5000,
    ) -> None:
        self.classifier = classifier or ErrorClassifier()
        self.storage = storage or MemoryStorage()
        self.recovery = recovery or RecoveryActionRegistry(storage=self.storage)
        self.metrics = metrics
        self.presenter = presenter
        self.log_limit = log_limit
        self.auto_dismiss_ms = auto_dismiss_ms

        self._error_metrics: dict[str, ErrorMetric] = {}
        self._subscriptions: list[Subscription] = []
        self._persist_lock = asyncio.Lock()

    # === Handling ===

    async def handle_error(
        self,
        failure: object,
        component: str | None = None,
        operation: str | None = None,
        retry: Callable[[], Awaitable[Any]] | None = None,
    ) -> AppError:
        """
        Run the full handling pipeline for a failure.

        Args:
            failure: An ``AppError`` or any exception
            component: Component to record if the failure is classified here
            operation: Operation to record if the failure is classified here
            retry: Re-issues the failed operation from retry recovery actions

        Returns:
            The handled error, with recovery actions attached
        """
        error = self.classifier.classify(failure, component, operation)
        if not error.recovery_actions:
            actions = self.recovery.actions_for(error, retry)
            if actions:
                error = error.with_recovery_actions(actions)

        self._count(error)
        where = ""
        if error.context and (error.context.component or error.context.operation):
            where = f" in {error.context.component or '?'}.{error.context.operation or '?'}"
        logger.log(_LOG_LEVELS[error.severity], f"[{error.code}] {error.message}{where}")
        if self.metrics is not None:
            self.metrics.inc_counter(
                ERRORS_HANDLED_TOTAL,
                labels={"error_code": error.code, "severity": error.severity.value},
            )

        await self._persist_metrics()
        await self._append_log(error)
        await self._notify(error)
        await self._present(present_error(error, self.auto_dismiss_ms))
        return error

    async def record_occurrence(self, failure: object) -> AppError:
        """
        Count an error in the metrics without logging, notifying or presenting it.

        Used for transient failures that are absorbed by a retry.
        """
        error = self.classifier.classify(failure)
        self._count(error)
        logger.debug(f"Recorded absorbed {error.code} occurrence")
        await self._persist_metrics()
        return error

    def presentation_for(self, error: AppError) -> UIPresentation:
        return present_error(error, self.auto_dismiss_ms)

    async def run_recovery_action(self, action: RecoveryAction) -> bool:
        """
        Run a recovery action, reporting its failure as a new error.

        Returns:
            True if the action completed, False if it raised
        """
        try:
            await action.run()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.warning(f"Recovery action {action.id} failed: {e}")
            self._count_action(action.id, "failed")
            await self.handle_error(e, component="recovery", operation=action.id)
            return False
        self._count_action(action.id, "succeeded")
        return True

    # === Listeners ===

    def subscribe(self, listener: Listener) -> Subscription:
        """Register a listener; call the returned handle to unsubscribe."""
        subscription = Subscription(self, listener)
        self._subscriptions.append(subscription)
        return subscription

    def add_listener(self, listener: Listener) -> Subscription:
        return self.subscribe(listener)

    def remove_listener(self, listener: Listener) -> bool:
        """Remove the earliest registration of ``listener``."""
        for subscription in self._subscriptions:
            if subscription.listener is listener:
                subscription.unsubscribe()
                return True
        return False

    @property
    def listener_count(self) -> int:
        return len(self._subscriptions)

    def _drop_subscription(self, subscription: Subscription) -> None:
        try:
            self._subscriptions.remove(subscription)
        except ValueError:
            pass

    async def _notify(self, error: AppError) -> None:
        for subscription in list(self._subscriptions):
            if not subscription.active:
                continue
            try:
                result = subscription.listener(error)
                if inspect.isawaitable(result):
                    await result
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception(f"Error listener failed while handling {error.code}")

    async def _present(self, presentation: UIPresentation) -> None:
        if self.presenter is None or not presentation.visible:
            return
        try:
            result = self.presenter.present(presentation)
            if inspect.isawaitable(result):
                await result
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception(f"Presenter failed for {presentation.error.code}")

    # === Metrics ===

    def _count(self, error: AppError) -> None:
        metric = self._error_metrics.get(error.code)
        if metric is None:
            metric = self._error_metrics[error.code] = ErrorMetric(error_code=error.code)
        metric.record(error.timestamp)

    def _count_action(self, action_id: str, outcome: str) -> None:
        if self.metrics is not None:
            self.metrics.inc_counter(
                RECOVERY_ACTIONS_TOTAL, labels={"action": action_id, "outcome": outcome}
            )

    def get_metrics(self) -> dict[str, ErrorMetric]:
        """Return a copy of the per-code metrics."""
        return {
            code: metric.model_copy()
            for code, metric in self._error_metrics.items()
        }

    def get_metric(self, code: str) -> ErrorMetric | None:
        metric = self._error_metrics.get(code)
        if metric is None:
            return None
        return metric.model_copy()

    async def load_metrics(self) -> int:
        """
        Restore persisted metrics, merging them into any counted so far.

        Returns:
            Number of error codes restored
        """
        state = await self.storage.get_state(METRICS_STATE_KEY)
        if not state:
            return 0
        restored = 0
        for code, data in state.items():
            try:
                persisted = ErrorMetric.from_dict(data)
            except (KeyError, TypeError, ValueError):
                logger.warning(f"Skipping corrupt persisted metric for {code}")
                continue
            current = self._error_metrics.get(code)
            if current is not None:
                persisted.count += current.count
                if current.last_occurrence and (
                    persisted.last_occurrence is None
                    or current.last_occurrence > persisted.last_occurrence
                ):
                    persisted.last_occurrence = current.last_occurrence
            self._error_metrics[code] = persisted
            restored += 1
        logger.info(f"Restored error metrics for {restored} error codes")
        return restored

    async def clear_metrics(self) -> None:
        self._error_metrics.clear()
        await self.storage.delete_state(METRICS_STATE_KEY)

    async def _persist_metrics(self) -> None:
        snapshot = {code: m.to_dict() for code, m in self._error_metrics.items()}
        async with self._persist_lock:
            try:
                await self.storage.set_state(METRICS_STATE_KEY, snapshot)
            except StorageError as e:
                logger.warning(f"Could not persist error metrics: {e}")

    # === Error Log ===

    async def _append_log(self, error: AppError) -> None:
        try:
            await self.storage.append_log(
                ERROR_LOG_KEY, error.to_log_entry(), self.log_limit
            )
        except StorageError as e:
            logger.warning(f"Could not persist error log entry for {error.code}: {e}")

    async def get_error_log(self) -> list[dict[str, Any]]:
        """Return persisted error log entries, oldest first."""
        return await self.storage.read_log(ERROR_LOG_KEY)

    async def clear_error_log(self) -> None:
        await self.storage.clear_log(ERROR_LOG_KEY)


__all__ = [
    "ERROR_LOG_KEY",
    "METRICS_STATE_KEY",
    "ErrorHandlingService",
    "Subscription",
]
