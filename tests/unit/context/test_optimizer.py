"""Tests for conversation context trimming."""

import logging

import pytest

from voice_chat_resilience.config import QUALITY_FIRST_BUDGET, ContextBudget
from voice_chat_resilience.context.optimizer import ContextOptimizer, optimize
from voice_chat_resilience.context.tokens import estimate_messages
from voice_chat_resilience.types.messages import ChatMessage


def fifty_token_history(count: int) -> list[ChatMessage]:
    """History where every message costs exactly 50 tokens."""
    return [ChatMessage.user("a" * 176) for _ in range(count)]


def numbered_history(count: int) -> list[ChatMessage]:
    return [ChatMessage.user(f"message {i}") for i in range(count)]


class TestOptimize:
    """Test the trimming function."""

    def test_short_history_within_budget_is_copied(self):
        history = numbered_history(5)
        result = optimize(history, max_messages=20, max_tokens=3000)
        assert result == history
        assert result is not history

    def test_keeps_most_recent_messages(self):
        history = numbered_history(30)
        result = optimize(history, max_messages=20, max_tokens=100_000)
        assert result == history[-20:]

    @pytest.mark.parametrize("max_messages", [0, -1, -5])
    def test_non_positive_message_limit_keeps_nothing(self, max_messages):
        history = numbered_history(5)
        assert optimize(history, max_messages=max_messages, max_tokens=100_000) == []

    def test_token_budget_drops_oldest_first(self):
        # 60 messages of 50 tokens: 20 newest cost 1000 > 500, so 10 remain
        history = fifty_token_history(60)
        result = optimize(history, max_messages=20, max_tokens=500)
        assert len(result) == 10
        assert result == history[-10:]
        assert estimate_messages(result) <= 500

    def test_token_budget_applies_to_short_histories(self):
        history = fifty_token_history(5)
        result = optimize(history, max_messages=20, max_tokens=120)
        assert result == history[-2:]

    def test_result_is_contiguous_suffix(self):
        history = numbered_history(12) + fifty_token_history(3)
        result = optimize(history, max_messages=10, max_tokens=160)
        assert result == history[len(history) - len(result) :]

    def test_oversized_newest_message_yields_empty(self, caplog):
        history = [ChatMessage.user("short"), ChatMessage.user("x" * 4000)]
        with caplog.at_level(logging.WARNING):
            result = optimize(history, max_messages=20, max_tokens=100)
        assert result == []
        assert "exceeds the context budget" in caplog.text

    def test_empty_history(self):
        assert optimize([], max_messages=20, max_tokens=3000) == []

    def test_input_is_not_mutated(self):
        history = fifty_token_history(40)
        snapshot = list(history)
        optimize(history, max_messages=20, max_tokens=500)
        assert history == snapshot

    @pytest.mark.parametrize("length", [0, 1, 19, 20, 21, 100])
    def test_bounds_hold_for_any_length(self, length):
        history = fifty_token_history(length)
        result = optimize(history, max_messages=20, max_tokens=500)
        assert len(result) <= 20
        assert estimate_messages(result) <= 500


class TestContextOptimizer:
    """Test the budget-driven optimizer."""

    def test_applies_its_budget(self):
        optimizer = ContextOptimizer(ContextBudget(max_messages=3, max_tokens=10_000))
        history = numbered_history(10)
        assert optimizer.optimize(history) == history[-3:]

    def test_override_budget(self):
        optimizer = ContextOptimizer(ContextBudget(max_messages=3, max_tokens=10_000))
        history = numbered_history(10)
        override = ContextBudget(max_messages=5, max_tokens=10_000)
        assert optimizer.optimize(history, override) == history[-5:]

    def test_disabled_budget_returns_full_copy(self):
        optimizer = ContextOptimizer(QUALITY_FIRST_BUDGET)
        history = numbered_history(80)
        result = optimizer.optimize(history)
        assert result == history
        assert result is not history
