"""Tests for the recovery action registry."""

from unittest.mock import AsyncMock

import pytest

from voice_chat_resilience.errors.catalog import build_error
from voice_chat_resilience.errors.recovery import (
    DEFAULT_WAIT_RETRY_MS,
    RecoveryActionRegistry,
)
from voice_chat_resilience.storage.memory import MemoryStorage
from voice_chat_resilience.types.errors import ErrorType


def action_ids(actions):
    return [action.id for action in actions]


class TestRecoveryActionRegistry:
    @pytest.fixture
    def navigator(self):
        return AsyncMock()

    @pytest.fixture
    def sleep(self):
        return AsyncMock()

    @pytest.fixture
    def registry(self, navigator, sleep):
        return RecoveryActionRegistry(
            storage=MemoryStorage(), navigator=navigator, sleep=sleep
        )

    @pytest.mark.parametrize(
        "error_type,expected",
        [
            (ErrorType.NETWORK_OFFLINE, ["check_connection", "retry"]),
            (ErrorType.NETWORK_TIMEOUT, ["retry"]),
            (ErrorType.API_RATE_LIMITED, ["wait_retry"]),
            (ErrorType.API_INVALID_KEY, ["update_key"]),
            (ErrorType.API_QUOTA_EXCEEDED, ["check_account"]),
            (ErrorType.API_INSUFFICIENT_FUNDS, ["check_account"]),
            (ErrorType.API_MODEL_OVERLOADED, ["retry"]),
            (ErrorType.AUDIO_PERMISSION_DENIED, ["open_settings"]),
            (ErrorType.AUDIO_DEVICE_BUSY, ["close_apps"]),
            (ErrorType.AUDIO_RECORDING_FAILED, ["retry"]),
            (ErrorType.STORAGE_FULL, ["free_space", "clear_cache"]),
            (ErrorType.STORAGE_QUOTA_EXCEEDED, ["archive_old"]),
            (ErrorType.REQUEST_CANCELLED, []),
        ],
    )
    def test_action_tables(self, registry, error_type, expected):
        actions = registry.actions_for(build_error(error_type))
        assert action_ids(actions) == expected
        if actions:
            assert actions[0].is_primary

    def test_clear_cache_needs_storage(self):
        registry = RecoveryActionRegistry()
        actions = registry.actions_for(build_error(ErrorType.STORAGE_FULL))
        assert action_ids(actions) == ["free_space"]

    def test_unknown_offers_retry_only_with_callback(self, registry):
        error = build_error(ErrorType.UNKNOWN_ERROR)
        assert registry.actions_for(error) == ()
        assert action_ids(registry.actions_for(error, AsyncMock())) == ["retry"]

    @pytest.mark.asyncio
    async def test_navigation_action_delegates(self, registry, navigator):
        (action,) = registry.actions_for(build_error(ErrorType.API_INVALID_KEY))
        await action.run()
        navigator.navigate.assert_awaited_once_with("update_key")

    @pytest.mark.asyncio
    async def test_navigation_without_navigator_is_noop(self):
        registry = RecoveryActionRegistry()
        (action,) = registry.actions_for(build_error(ErrorType.AUDIO_PERMISSION_DENIED))
        await action.run()

    @pytest.mark.asyncio
    async def test_retry_invokes_callback(self, registry):
        retry = AsyncMock()
        (action,) = registry.actions_for(build_error(ErrorType.NETWORK_TIMEOUT), retry)
        await action.run()
        retry.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_wait_retry_honors_retry_after(self, registry, sleep):
        retry = AsyncMock()
        error = build_error(ErrorType.API_RATE_LIMITED, retry_after_ms=1500)
        (action,) = registry.actions_for(error, retry)
        await action.run()
        sleep.assert_awaited_once_with(1.5)
        retry.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_wait_retry_default_wait(self, registry, sleep):
        (action,) = registry.actions_for(build_error(ErrorType.API_RATE_LIMITED))
        await action.run()
        sleep.assert_awaited_once_with(DEFAULT_WAIT_RETRY_MS / 1000)

    @pytest.mark.asyncio
    async def test_clear_cache_runs_storage(self, registry):
        await registry.storage.set_cache("audio:1", {"path": "/tmp/a.m4a"})
        actions = registry.actions_for(build_error(ErrorType.STORAGE_FULL))
        await actions[1].run()
        assert await registry.storage.get_cache("audio:1") is None
