"""Tests for the chat completion service."""

import asyncio
import time

import pytest

from voice_chat_resilience.config import AGGRESSIVE_BUDGET, OrchestratorConfig
from voice_chat_resilience.context.store import ConversationStore
from voice_chat_resilience.exceptions import HttpFailure, RequestFailedError
from voice_chat_resilience.scheduler.request_queue import RequestQueue
from voice_chat_resilience.services.completion import CompletionService
from voice_chat_resilience.storage.memory import MemoryStorage
from voice_chat_resilience.types.errors import ErrorType
from voice_chat_resilience.types.messages import ChatMessage, MessageRole
from voice_chat_resilience.types.responses import CompletionResponse


class FakeCompletionClient:
    def __init__(self, responses=None):
        self.responses = list(responses or [])
        self.calls = []

    async def send(self, messages, options, cancel_token=None):
        self.calls.append((messages, options))
        outcome = self.responses.pop(0) if self.responses else CompletionResponse("ok")
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


async def instant_sleep(seconds):
    await asyncio.sleep(0)


@pytest.fixture
def config():
    return OrchestratorConfig(
        max_context_messages=20, max_context_tokens=500, max_history_messages=100
    )


@pytest.fixture
def queue(config):
    return RequestQueue("completion", config=config, sleep=instant_sleep)


def user_turns(count):
    # 50 estimated tokens each
    return [ChatMessage.user("a" * 176) for _ in range(count)]


class TestBuildMessages:
    @pytest.mark.asyncio
    async def test_system_prompt_first_user_message_last(self, queue, config):
        service = CompletionService(FakeCompletionClient(), queue, config=config)
        service.store.extend("chat", user_turns(3))

        messages = service.build_messages(
            "chat", ChatMessage.user("new"), system_prompt="be brief"
        )

        assert messages[0] == ChatMessage.system("be brief")
        assert messages[-1] == ChatMessage.user("new")
        assert len(messages) == 5

    @pytest.mark.asyncio
    async def test_history_trimmed_to_token_budget(self, queue, config):
        service = CompletionService(FakeCompletionClient(), queue, config=config)
        service.store.extend("chat", user_turns(60))

        messages = service.build_messages("chat", ChatMessage.user("new"))

        assert len(messages) == 11

    @pytest.mark.asyncio
    async def test_disabled_optimization_sends_full_history(self, queue):
        config = OrchestratorConfig(
            enable_context_optimization=False, max_history_messages=100
        )
        service = CompletionService(FakeCompletionClient(), queue, config=config)
        service.store.extend("chat", user_turns(60))

        assert len(service.build_messages("chat", ChatMessage.user("new"))) == 61
        assert service.budget_for([]).enabled is False

    @pytest.mark.asyncio
    async def test_adaptive_budget(self, queue, config):
        service = CompletionService(
            FakeCompletionClient(), queue, config=config, adaptive_budget=True
        )
        assert service.budget_for(user_turns(60)) == AGGRESSIVE_BUDGET
        assert service.budget_for(user_turns(20)).max_messages == 15


class TestSendMessage:
    @pytest.mark.asyncio
    async def test_records_exchange(self, queue, config):
        client = FakeCompletionClient(
            [CompletionResponse("hi there", prompt_tokens=12, completion_tokens=3)]
        )
        store = ConversationStore()
        service = CompletionService(client, queue, store=store, config=config)

        async with queue:
            response = await service.send_message("chat", "hello", system_prompt="sys")

        assert response.content == "hi there"
        payload, options = client.calls[0]
        assert payload == [
            {"role": "system", "content": "sys"},
            {"role": "user", "content": "hello"},
        ]
        assert options == {
            "model": config.model,
            "max_tokens": config.max_response_tokens,
            "temperature": config.temperature,
        }
        history = store.history("chat")
        assert [m.role for m in history] == [MessageRole.USER, MessageRole.ASSISTANT]
        assert history[1].content == "hi there"

    @pytest.mark.asyncio
    async def test_image_urls_in_payload(self, queue, config):
        client = FakeCompletionClient()
        service = CompletionService(client, queue, config=config)

        async with queue:
            await service.send_message("chat", "what is this?", image_urls=["img://1"])

        payload, _ = client.calls[0]
        assert payload[-1]["image_urls"] == ["img://1"]

    @pytest.mark.asyncio
    async def test_failure_leaves_history_untouched(self, queue, config):
        client = FakeCompletionClient([HttpFailure(401)])
        service = CompletionService(client, queue, config=config)

        async with queue:
            with pytest.raises(RequestFailedError) as exc_info:
                await service.send_message("chat", "hello")

        assert exc_info.value.error_type is ErrorType.API_INVALID_KEY
        assert exc_info.value.error.context.component == "completion"
        assert service.store.history("chat") == []

    @pytest.mark.asyncio
    async def test_deadline_expiry_classified_as_timeout(self, queue):
        config = OrchestratorConfig(request_timeout_ms=10, max_retries=0)

        class SlowClient:
            async def send(self, messages, options, cancel_token=None):
                await asyncio.sleep(10)

        service = CompletionService(SlowClient(), queue, config=config)

        async with queue:
            with pytest.raises(RequestFailedError) as exc_info:
                await service.send_message("chat", "hello")

        assert exc_info.value.error_type is ErrorType.NETWORK_TIMEOUT


class SwitchableConnectivity:
    def __init__(self):
        self.connected = True

    async def is_connected(self):
        return self.connected


class TestOfflineFallback:
    @pytest.fixture
    def connectivity(self):
        return SwitchableConnectivity()

    @pytest.fixture
    def offline_queue(self, config, connectivity):
        return RequestQueue(
            "completion", config=config, connectivity=connectivity, sleep=instant_sleep
        )

    @pytest.mark.asyncio
    async def test_cached_reply_served_when_offline(
        self, offline_queue, config, connectivity
    ):
        client = FakeCompletionClient([CompletionResponse("hi there", model="gpt-4o")])
        service = CompletionService(
            client, offline_queue, cache=MemoryStorage(), config=config
        )

        async with offline_queue:
            first = await service.send_message("chat", "hello")
            connectivity.connected = False
            second = await service.send_message("chat", "hello", fallback_offline=True)

        assert not first.from_cache
        assert second.from_cache
        assert second.content == "hi there"
        assert second.model == "gpt-4o"
        assert len(client.calls) == 1
        assert len(service.store.history("chat")) == 2

    @pytest.mark.asyncio
    async def test_offline_without_fallback_raises(
        self, offline_queue, config, connectivity
    ):
        service = CompletionService(
            FakeCompletionClient(), offline_queue, cache=MemoryStorage(), config=config
        )

        async with offline_queue:
            await service.send_message("chat", "hello")
            connectivity.connected = False
            with pytest.raises(RequestFailedError) as exc_info:
                await service.send_message("chat", "hello")

        assert exc_info.value.error_type is ErrorType.NETWORK_OFFLINE

    @pytest.mark.asyncio
    async def test_uncached_message_raises_offline(
        self, offline_queue, config, connectivity
    ):
        service = CompletionService(
            FakeCompletionClient(), offline_queue, cache=MemoryStorage(), config=config
        )
        connectivity.connected = False

        async with offline_queue:
            with pytest.raises(RequestFailedError) as exc_info:
                await service.send_message("chat", "hello", fallback_offline=True)

        assert exc_info.value.error_type is ErrorType.NETWORK_OFFLINE

    @pytest.mark.asyncio
    async def test_expired_reply_not_served(self, offline_queue, config, connectivity):
        cache = MemoryStorage()
        service = CompletionService(
            FakeCompletionClient(), offline_queue, cache=cache, config=config
        )
        key = service.cache_key("chat", ChatMessage.user("hello"))
        stale = time.time() - (config.response_cache_ttl_ms / 1000) - 1
        await cache.set_cache(key, {"content": "old", "model": None, "cached_at": stale})
        connectivity.connected = False

        async with offline_queue:
            with pytest.raises(RequestFailedError):
                await service.send_message("chat", "hello", fallback_offline=True)

    @pytest.mark.asyncio
    async def test_other_failures_do_not_use_cache(self, queue, config):
        client = FakeCompletionClient([CompletionResponse("hi"), HttpFailure(401)])
        service = CompletionService(client, queue, cache=MemoryStorage(), config=config)

        async with queue:
            await service.send_message("chat", "hello")
            with pytest.raises(RequestFailedError) as exc_info:
                await service.send_message("chat", "hello", fallback_offline=True)

        assert exc_info.value.error_type is ErrorType.API_INVALID_KEY
