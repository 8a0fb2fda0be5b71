"""Tests for the composition root."""

import asyncio
from unittest.mock import AsyncMock, patch

import pytest

from voice_chat_resilience.config import OrchestratorConfig
from voice_chat_resilience.core import (
    COMPLETION_QUEUE,
    TRANSCRIPTION_QUEUE,
    create_core,
)
from voice_chat_resilience.errors.service import METRICS_STATE_KEY
from voice_chat_resilience.exceptions import QueueClosedError
from voice_chat_resilience.observability.collector import UnifiedMetricsCollector
from voice_chat_resilience.storage.memory import MemoryStorage


async def noop():
    return None


class TestCreateCore:
    def test_defaults(self):
        core = create_core()

        assert isinstance(core.storage, MemoryStorage)
        assert isinstance(core.metrics, UnifiedMetricsCollector)
        assert core.completions is None
        assert core.transcriptions is None
        assert [q.name for q in core.queues] == [COMPLETION_QUEUE, TRANSCRIPTION_QUEUE]

    def test_queues_share_error_service_but_not_governor(self):
        core = create_core()
        completion, transcription = core.queues

        assert completion.error_service is core.error_service
        assert transcription.error_service is core.error_service
        assert completion.governor is not transcription.governor

    def test_metrics_disabled(self):
        core = create_core(OrchestratorConfig(metrics_enabled=False))
        assert core.metrics is None
        assert core.start_metrics_server() is False

    def test_services_built_for_clients(self):
        completion = AsyncMock()
        transcription = AsyncMock()
        core = create_core(completion=completion, transcription=transcription)

        assert core.completions.client is completion
        assert core.completions.queue is core.completion_queue
        assert core.completions.store is core.conversations
        assert core.transcriptions.queue is core.transcription_queue

    def test_config_flows_to_error_service(self):
        config = OrchestratorConfig(error_log_limit=7, surface_auto_dismiss_ms=100)
        core = create_core(config)
        assert core.error_service.log_limit == 7
        assert core.error_service.auto_dismiss_ms == 100

    def test_metrics_server_uses_configured_address(self):
        config = OrchestratorConfig(prometheus_host="0.0.0.0", prometheus_port=9200)
        metrics = UnifiedMetricsCollector(enable_prometheus=False)
        core = create_core(config, metrics=metrics)

        with patch.object(metrics, "start_http_server", return_value=True) as start:
            assert core.start_metrics_server() is True
        start.assert_called_once_with("0.0.0.0", 9200)


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_start_restores_metrics(self):
        storage = MemoryStorage()
        await storage.set_state(
            METRICS_STATE_KEY,
            {"Network.timeout": {"error_code": "Network.timeout", "count": 4}},
        )
        core = create_core(storage=storage)

        async with core:
            assert core.error_service.get_metric("Network.timeout").count == 4
            assert all(q.is_running for q in core.queues)

    @pytest.mark.asyncio
    async def test_stop_closes_queues_and_storage(self):
        storage = MemoryStorage()
        core = create_core(storage=storage)

        with patch.object(storage, "close", wraps=storage.close) as close:
            await core.start()
            pending = core.completion_queue.enqueue(noop)
            await core.stop()

        close.assert_awaited_once()
        assert all(q.is_closed for q in core.queues)
        with pytest.raises(QueueClosedError):
            core.transcription_queue.enqueue(noop)
        await asyncio.gather(pending, return_exceptions=True)
