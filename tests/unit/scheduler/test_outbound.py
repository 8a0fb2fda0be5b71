"""Tests for outbound deadline enforcement."""

import asyncio

import pytest

from voice_chat_resilience.errors.classifier import ErrorClassifier
from voice_chat_resilience.exceptions import HttpFailure, TransportTimeoutError
from voice_chat_resilience.scheduler.outbound import call_with_deadline, with_deadline
from voice_chat_resilience.types.errors import ErrorType


async def slow():
    await asyncio.sleep(10)
    return "late"


async def fast():
    return "on time"


class TestCallWithDeadline:
    @pytest.mark.asyncio
    async def test_returns_result_within_deadline(self):
        assert await call_with_deadline(fast, 1000) == "on time"

    @pytest.mark.asyncio
    async def test_no_deadline(self):
        assert await call_with_deadline(fast, None) == "on time"

    @pytest.mark.asyncio
    async def test_expired_deadline_raises_transport_timeout(self):
        with pytest.raises(TransportTimeoutError) as exc_info:
            await call_with_deadline(slow, 20)
        assert exc_info.value.timeout_ms == 20
        assert ErrorClassifier().classify(exc_info.value).error_type is (
            ErrorType.NETWORK_TIMEOUT
        )

    @pytest.mark.asyncio
    async def test_call_errors_propagate(self):
        async def failing():
            raise HttpFailure(500)

        with pytest.raises(HttpFailure):
            await call_with_deadline(failing, 1000)


class TestWithDeadline:
    @pytest.mark.asyncio
    async def test_wraps_each_invocation(self):
        calls = []

        async def call():
            calls.append(1)
            return len(calls)

        bounded = with_deadline(call, 1000)
        assert await bounded() == 1
        assert await bounded() == 2

    @pytest.mark.asyncio
    async def test_wrapped_call_times_out(self):
        with pytest.raises(TransportTimeoutError):
            await with_deadline(slow, 10)()
