"""Tests for cooperative cancellation tokens."""

import asyncio
from unittest.mock import Mock

import pytest

from voice_chat_resilience.scheduler.cancellation import CancellationToken


class TestCancellationToken:
    @pytest.mark.asyncio
    async def test_initial_state(self):
        token = CancellationToken()
        assert token.is_cancelled is False
        assert token.reason is None

    @pytest.mark.asyncio
    async def test_cancel_is_idempotent(self):
        token = CancellationToken()
        callback = Mock()
        token.add_callback(callback)

        token.cancel("first")
        token.cancel("second")

        assert token.is_cancelled
        assert token.reason == "first"
        callback.assert_called_once()

    @pytest.mark.asyncio
    async def test_callback_after_cancel_runs_immediately(self):
        token = CancellationToken()
        token.cancel()
        callback = Mock()
        token.add_callback(callback)
        callback.assert_called_once()

    @pytest.mark.asyncio
    async def test_removed_callback_is_not_run(self):
        token = CancellationToken()
        callback = Mock()
        token.add_callback(callback)
        token.remove_callback(callback)
        token.remove_callback(callback)
        token.cancel()
        callback.assert_not_called()

    @pytest.mark.asyncio
    async def test_failing_callback_does_not_block_others(self):
        token = CancellationToken()
        second = Mock()
        token.add_callback(Mock(side_effect=RuntimeError("bad callback")))
        token.add_callback(second)
        token.cancel()
        second.assert_called_once()

    @pytest.mark.asyncio
    async def test_wait(self):
        token = CancellationToken()
        waiter = asyncio.create_task(token.wait())
        await asyncio.sleep(0)
        assert not waiter.done()

        token.cancel()
        await asyncio.wait_for(waiter, timeout=1)
