"""Tests for queue item types."""

import asyncio

import pytest

from voice_chat_resilience.scheduler.cancellation import CancellationToken
from voice_chat_resilience.types.queue import QueuedRequest, QueueState
from voice_chat_resilience.types.request import RequestMetadata, RequestPriority


async def noop():
    return None


def make_item(future, token=None, priority=RequestPriority.MEDIUM):
    return QueuedRequest(
        metadata=RequestMetadata(request_id="req-1", priority=priority),
        work=noop,
        future=future,
        cancel_token=token,
    )


class TestQueuedRequest:
    @pytest.mark.asyncio
    async def test_defaults(self):
        item = make_item(asyncio.get_running_loop().create_future(), priority=2)
        assert item.request_id == "req-1"
        assert item.priority == 2
        assert item.attempt == 0
        assert item.state is QueueState.PENDING

    @pytest.mark.asyncio
    async def test_cancelled_by_token(self):
        token = CancellationToken()
        item = make_item(asyncio.get_running_loop().create_future(), token)
        assert item.is_cancelled is False
        token.cancel()
        assert item.is_cancelled is True

    @pytest.mark.asyncio
    async def test_cancelled_by_future(self):
        future = asyncio.get_running_loop().create_future()
        item = make_item(future)
        future.cancel()
        assert item.is_cancelled is True
