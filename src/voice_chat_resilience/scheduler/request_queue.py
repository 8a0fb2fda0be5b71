# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Priority request queue with rate governance, retries and cancellation.

``RequestQueue`` owns every request from enqueue until its future settles.
A single drain task dispatches at most one request at a time: it asks the
rate governor for capacity, runs the work, classifies failures, schedules
retries and hands terminal failures to the error handling service.

Ordering:
    Higher priority first; equal priorities are served in arrival order.
    A retried request re-enters at the front of the queue once its backoff
    delay has elapsed. The drain loop keeps serving other work while a
    retry is waiting.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable, Mapping
from typing import Any

from typing_extensions import Self

from ..config import OrchestratorConfig
from ..errors.catalog import build_error
from ..errors.classifier import ErrorClassifier
from ..errors.service import ErrorHandlingService
from ..exceptions import (
    ConnectivityError,
    QueueClosedError,
    QueueOverflowError,
    RequestFailedError,
)
from ..observability.constants import (
    QUEUE_DEPTH,
    RATE_LIMIT_WAITS_TOTAL,
    REQUEST_LATENCY_SECONDS,
    REQUESTS_CANCELLED_TOTAL,
    REQUESTS_COMPLETED_TOTAL,
    REQUESTS_ENQUEUED_TOTAL,
    REQUESTS_FAILED_TOTAL,
    REQUESTS_RETRIED_TOTAL,
)
from ..observability.protocols import MetricsCollectorProtocol
from ..protocols.classifier import ClassifierProtocol
from ..protocols.collaborators import ConnectivityChecker
from ..rate_limit.governor import RateGovernor
from ..retry.policy import RetryPolicy
from ..types.errors import AppError, ErrorType
from ..types.queue import QueuedRequest, QueueState, QueueStatus
from ..types.request import RequestMetadata, RequestPriority
from .cancellation import CancellationToken

logger = logging.getLogger(__name__)

Work = Callable[[], Awaitable[Any]]
Sleep = Callable[[float], Awaitable[Any]]


class _DispatchCancelled(Exception):
    """The request's token fired while its work was running."""


class RequestQueue:
    """
    Serializes outbound work for one upstream service.

    Args:
        name: Queue name used in request ids, logs and metric labels
        config: Retry, rate limit, timeout and size settings
        governor: Rate governor (built from ``config`` if omitted)
        retry_policy: Retry decisions and backoff (built from ``config`` if omitted)
        classifier: Failure classifier (taken from ``error_service`` if omitted)
        error_service: Receives terminal failures and absorbed retry occurrences
        metrics: Optional metrics collector
        connectivity: Checked before each dispatch; offline requests fail
            with Network.offline without spending rate capacity
        sleep: Async sleep in seconds (injectable for tests)

    Example:
        >>> async with RequestQueue("completion", config=config) as queue:
        ...     reply = await queue.submit(
        ...         lambda: client.send(messages, options, None),
        ...         priority=RequestPriority.HIGH,
        ...     )
    """

    def __init__(
        self,
        name: str = "default",
        config: OrchestratorConfig | None = None,
        governor: RateGovernor | None = None,
        retry_policy: RetryPolicy | None = None,
        classifier: ClassifierProtocol | None = None,
        error_service: ErrorHandlingService | None = None,
        metrics: MetricsCollectorProtocol | None = None,
        connectivity: ConnectivityChecker | None = None,
        sleep: Sleep | None = None,
    ) -> None:
        self.name = name
        self.config = config or OrchestratorConfig()
        self.governor = governor or RateGovernor(
            requests_per_minute=self.config.requests_per_minute,
            tokens_per_minute=self.config.tokens_per_minute,
            headroom=self.config.request_headroom,
        )
        self.retry_policy = retry_policy or RetryPolicy(self.config.max_backoff_ms)
        if classifier is None:
            classifier = (
                error_service.classifier if error_service is not None else ErrorClassifier()
            )
        self.classifier = classifier
        self.error_service = error_service
        self.metrics = metrics
        self.connectivity = connectivity
        self._sleep: Sleep = sleep or asyncio.sleep

        self._pending: list[QueuedRequest] = []
        self._wakeup = asyncio.Event()
        self._in_flight: QueuedRequest | None = None
        self._retry_tasks: set[asyncio.Task[None]] = set()
        self._request_counter = 0

        self._running = False
        self._closed = False
        self._drain_task: asyncio.Task[None] | None = None
        self._shutdown_lock = asyncio.Lock()

    # === Enqueue ===

    def enqueue(
        self,
        work: Work,
        priority: int = RequestPriority.MEDIUM,
        max_retries: int | None = None,
        *,
        estimated_tokens: int = 0,
        cancel_token: CancellationToken | None = None,
        request_id: str | None = None,
        component: str | None = None,
        operation: str | None = None,
    ) -> asyncio.Future[Any]:
        """
        Add work to the queue and return the future of its outcome.

        Insertion runs synchronously on the event loop thread, so concurrent
        callers never interleave inside it. Enqueueing before ``start`` is
        allowed; the work runs once the queue is started.

        Args:
            work: Zero-argument async callable performing the outbound call
            priority: Higher values are dispatched first
            max_retries: Retry budget, defaults to ``config.max_retries``
            estimated_tokens: Tokens to reserve with the rate governor
            cancel_token: Cancels the request wherever it currently is
            request_id: Explicit id, generated from the queue name if omitted
            component: Caller component recorded on errors
            operation: Caller operation recorded on errors

        Returns:
            Future resolved with the work's result or rejected with
            ``RequestFailedError``

        Raises:
            QueueClosedError: If the queue has been stopped
            QueueOverflowError: If ``config.max_queue_size`` items are pending
            ValueError: If ``max_retries`` is negative
        """
        if max_retries is not None and max_retries < 0:
            raise ValueError(f"max_retries must be non-negative, got {max_retries}")
        if self._closed:
            raise QueueClosedError(self.name)
        if len(self._pending) >= self.config.max_queue_size:
            raise QueueOverflowError(self.name, self.config.max_queue_size)

        loop = asyncio.get_running_loop()
        future: asyncio.Future[Any] = loop.create_future()

        self._request_counter += 1
        metadata = RequestMetadata(
            request_id=request_id or f"{self.name}-{self._request_counter}",
            priority=int(priority),
            max_retries=self.config.max_retries if max_retries is None else max_retries,
            estimated_tokens=max(0, estimated_tokens),
            component=component,
            operation=operation,
        )
        item = QueuedRequest(
            metadata=metadata,
            work=work,
            future=future,
            cancel_token=self._link_token(future, cancel_token),
        )

        self._insert(item)
        logger.debug(
            f"Enqueued {item.request_id} on {self.name} "
            f"(priority={item.priority}, depth={len(self._pending)})"
        )
        self._inc(REQUESTS_ENQUEUED_TOTAL)
        return future

    async def submit(
        self,
        work: Work,
        priority: int = RequestPriority.MEDIUM,
        max_retries: int | None = None,
        **kwargs: Any,
    ) -> Any:
        """Enqueue work and await its result."""
        return await self.enqueue(work, priority, max_retries, **kwargs)

    def _link_token(
        self, future: asyncio.Future[Any], caller_token: CancellationToken | None
    ) -> CancellationToken:
        """
        Build the request's own token.

        It fires when the caller's token fires or when the caller cancels
        the returned future. The link to the caller's token is removed once
        the future settles.
        """
        token = CancellationToken()

        def on_future_done(done: asyncio.Future[Any]) -> None:
            if done.cancelled():
                token.cancel("future cancelled")

        future.add_done_callback(on_future_done)

        if caller_token is not None:

            def propagate() -> None:
                token.cancel(caller_token.reason)

            caller_token.add_callback(propagate)
            future.add_done_callback(lambda _: caller_token.remove_callback(propagate))
        return token

    def _insert(self, item: QueuedRequest) -> None:
        index = len(self._pending)
        for i, queued in enumerate(self._pending):
            if queued.priority < item.priority:
                index = i
                break
        self._pending.insert(index, item)
        self._on_depth_change()

    def _insert_front(self, item: QueuedRequest) -> None:
        self._pending.insert(0, item)
        self._on_depth_change()

    def _pop(self) -> QueuedRequest | None:
        if not self._pending:
            return None
        item = self._pending.pop(0)
        self._on_depth_change()
        return item

    def _on_depth_change(self) -> None:
        self._wakeup.set()
        if self.metrics is not None:
            self.metrics.set_gauge(
                QUEUE_DEPTH, len(self._pending), labels={"queue": self.name}
            )

    # === Lifecycle ===

    async def start(self) -> None:
        """Start the drain task. Calling start on a running queue is a no-op."""
        if self._closed:
            raise QueueClosedError(self.name)
        if self._running:
            return
        self._running = True
        self._drain_task = asyncio.create_task(
            self._drain_loop(), name=f"request-queue-{self.name}"
        )
        logger.info(f"{self.__class__.__name__} '{self.name}' started")

    async def stop(self) -> None:
        """
        Stop the queue.

        The in-flight request and every pending or retrying request reject
        as cancelled. Further enqueues raise ``QueueClosedError``.
        """
        async with self._shutdown_lock:
            if self._closed:
                return
            self._closed = True
            self._running = False

            if self._drain_task is not None:
                self._drain_task.cancel()
                try:
                    await self._drain_task
                except asyncio.CancelledError:
                    pass
                self._drain_task = None

            retry_tasks = list(self._retry_tasks)
            for task in retry_tasks:
                task.cancel()
            if retry_tasks:
                await asyncio.gather(*retry_tasks, return_exceptions=True)

            dropped = self.clear(reason="queue stopped")
            logger.info(
                f"{self.__class__.__name__} '{self.name}' stopped "
                f"({dropped} pending requests cancelled)"
            )

    async def __aenter__(self) -> Self:
        await self.start()
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.stop()

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def is_closed(self) -> bool:
        return self._closed

    # === Introspection ===

    def status(self) -> QueueStatus:
        in_flight = self._in_flight
        return QueueStatus(
            name=self.name,
            queue_length=len(self._pending),
            is_processing=in_flight is not None,
            in_flight_id=in_flight.request_id if in_flight is not None else None,
            retrying=len(self._retry_tasks),
        )

    def pending_ids(self) -> list[str]:
        """Ids of pending requests in dispatch order."""
        return [item.request_id for item in self._pending]

    def __len__(self) -> int:
        return len(self._pending)

    def clear(self, reason: str = "queue cleared") -> int:
        """
        Reject every pending request as cancelled.

        Returns:
            Number of requests removed
        """
        dropped, self._pending = self._pending, []
        self._on_depth_change()
        for item in dropped:
            item.cancel_token.cancel(reason)
            self._reject_cancelled(item)
        return len(dropped)

    # === Drain Loop ===

    async def _drain_loop(self) -> None:
        while self._running:
            item = self._pop()
            if item is None:
                self._wakeup.clear()
                await self._wakeup.wait()
                continue

            try:
                await self._process(item)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.exception(f"Unexpected error while processing {item.request_id}")
                self._reject(item, self.classifier.classify(e), item.attempt + 1)

    async def _process(self, item: QueuedRequest) -> None:
        if item.is_cancelled:
            self._reject_cancelled(item)
            return

        try:
            if not await self._is_connected():
                raise ConnectivityError("No network connection")
            if not await self._await_capacity(item):
                self._reject_cancelled(item)
                return

            item.state = QueueState.DISPATCHED
            self._in_flight = item
            started = time.monotonic()
            try:
                result = await self._run_work(item)
            finally:
                self._in_flight = None
                self._observe(REQUEST_LATENCY_SECONDS, time.monotonic() - started)
        except _DispatchCancelled:
            self._reject_cancelled(item)
            return
        except asyncio.CancelledError:
            item.cancel_token.cancel("queue stopped")
            self._reject_cancelled(item)
            raise
        except Exception as e:
            try:
                await self._handle_failure(item, e)
            except asyncio.CancelledError:
                item.cancel_token.cancel("queue stopped")
                if not item.future.done():
                    self._reject_cancelled(item)
                raise
            return

        self._apply_headers(getattr(result, "headers", None))
        item.state = QueueState.RESOLVED
        if not item.future.done():
            item.future.set_result(result)
        self._inc(REQUESTS_COMPLETED_TOTAL)
        logger.debug(
            f"Resolved {item.request_id} on {self.name} after {item.attempt + 1} attempt(s)"
        )

    async def _is_connected(self) -> bool:
        if self.connectivity is None:
            return True
        try:
            return bool(await self.connectivity.is_connected())
        except Exception as e:
            logger.warning(f"Connectivity check failed on {self.name}: {e}")
            return False

    async def _await_capacity(self, item: QueuedRequest) -> bool:
        """Wait for the rate governor to admit the request. False if cancelled."""
        while True:
            if item.is_cancelled:
                return False
            wait_ms = self.governor.reserve(item.metadata.estimated_tokens)
            if wait_ms <= 0:
                return True
            limited_by = self.governor.last_limited_by
            self._inc(
                RATE_LIMIT_WAITS_TOTAL,
                limit=limited_by.value if limited_by is not None else "unknown",
            )
            if await self._sleep_unless_cancelled(wait_ms / 1000, item.cancel_token):
                return False

    async def _sleep_unless_cancelled(
        self, seconds: float, token: CancellationToken
    ) -> bool:
        """Sleep, returning early if the token fires. True if it fired."""
        if token.is_cancelled:
            return True
        sleeper = asyncio.ensure_future(self._sleep(seconds))
        watcher = asyncio.ensure_future(token.wait())
        try:
            await asyncio.wait({sleeper, watcher}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in (sleeper, watcher):
                if not task.done():
                    task.cancel()
            await asyncio.gather(sleeper, watcher, return_exceptions=True)
        return token.is_cancelled

    async def _run_work(self, item: QueuedRequest) -> Any:
        token = item.cancel_token
        work_task = asyncio.ensure_future(item.work())
        watcher = asyncio.ensure_future(token.wait())
        try:
            await asyncio.wait({work_task, watcher}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in (work_task, watcher):
                if not task.done():
                    task.cancel()
            await asyncio.gather(work_task, watcher, return_exceptions=True)

        if work_task.cancelled():
            raise _DispatchCancelled()
        return work_task.result()

    # === Failure Handling ===

    async def _handle_failure(self, item: QueuedRequest, failure: Exception) -> None:
        meta = item.metadata
        error = self.classifier.classify(failure, meta.component, meta.operation)
        self._apply_headers(getattr(failure, "headers", None))

        if self.retry_policy.should_retry(error, item.attempt, meta.max_retries):
            delay_ms = self.retry_policy.delay_for(
                error, item.attempt, self.config.base_delay_ms
            )
            item.attempt += 1
            item.state = QueueState.RETRYING
            logger.info(
                f"Retrying {item.request_id} after {error.code} "
                f"(retry {item.attempt}/{meta.max_retries}) in {delay_ms:.0f}ms"
            )
            self._inc(REQUESTS_RETRIED_TOTAL, error_code=error.code)
            if self.error_service is not None:
                await self.error_service.record_occurrence(error)
            self._schedule_retry(item, delay_ms)
            return

        attempts = item.attempt + 1
        if self.error_service is not None:
            try:
                error = await self.error_service.handle_error(
                    error, retry=self._retry_callback(item)
                )
            except asyncio.CancelledError:
                self._reject(item, error, attempts)
                raise
            except Exception:
                logger.exception(f"Error handling failed for {item.request_id}")
        self._reject(item, error, attempts)

    def _retry_callback(self, item: QueuedRequest) -> Work:
        """Re-submit the same work as a fresh request, for retry recovery actions."""
        meta = item.metadata

        async def retry() -> Any:
            return await self.submit(
                item.work,
                meta.priority,
                meta.max_retries,
                estimated_tokens=meta.estimated_tokens,
                component=meta.component,
                operation=meta.operation,
            )

        return retry

    def _schedule_retry(self, item: QueuedRequest, delay_ms: float) -> None:
        async def requeue() -> None:
            try:
                cancelled = await self._sleep_unless_cancelled(
                    delay_ms / 1000, item.cancel_token
                )
            except asyncio.CancelledError:
                self._reject_cancelled(item)
                raise
            if cancelled or self._closed:
                self._reject_cancelled(item)
                return
            item.state = QueueState.PENDING
            item.queue_entry_time = time.monotonic()
            self._insert_front(item)

        task = asyncio.create_task(requeue(), name=f"retry-{item.request_id}")
        self._retry_tasks.add(task)
        task.add_done_callback(self._retry_tasks.discard)

    # === Settlement ===

    def _reject(self, item: QueuedRequest, error: AppError, attempts: int) -> None:
        item.state = QueueState.REJECTED
        if not item.future.done():
            item.future.set_exception(
                RequestFailedError(error, attempts=attempts, request_id=item.request_id)
            )
        self._inc(REQUESTS_FAILED_TOTAL, error_code=error.code)

    def _reject_cancelled(self, item: QueuedRequest) -> None:
        item.state = QueueState.REJECTED
        meta = item.metadata
        reason = item.cancel_token.reason
        error = build_error(
            ErrorType.REQUEST_CANCELLED,
            component=meta.component,
            operation=meta.operation,
            metadata={"reason": reason} if reason else None,
        )
        if not item.future.done():
            item.future.set_exception(
                RequestFailedError(error, attempts=item.attempt, request_id=item.request_id)
            )
        self._inc(REQUESTS_CANCELLED_TOTAL)
        logger.debug(f"Cancelled {item.request_id} on {self.name}")

    def _apply_headers(self, headers: object) -> None:
        if isinstance(headers, Mapping) and headers:
            self.governor.update_from_headers(headers)

    # === Metrics ===

    def _inc(self, name: str, **labels: str) -> None:
        if self.metrics is not None:
            self.metrics.inc_counter(name, labels={"queue": self.name, **labels})

    def _observe(self, name: str, value: float) -> None:
        if self.metrics is not None:
            self.metrics.observe_histogram(name, value, labels={"queue": self.name})


__all__ = ["RequestQueue"]
