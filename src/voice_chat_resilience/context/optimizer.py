# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Conversation context trimming.

The optimizer returns a trimmed copy of a conversation history that fits
both a message-count and a token budget. It never mutates, reorders or
splits messages: the result is always a contiguous suffix of the input.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from ..config import ContextBudget
from ..types.messages import ChatMessage
from .tokens import TokenEstimator

logger = logging.getLogger(__name__)


def optimize(
    history: Sequence[ChatMessage],
    max_messages: int,
    max_tokens: int,
    estimator: TokenEstimator | None = None,
) -> list[ChatMessage]:
    """
    Trim a history to at most ``max_messages`` messages and ``max_tokens`` tokens.

    The most recent ``max_messages`` messages are kept. If they exceed the
    token budget, messages are accumulated from the newest backwards and the
    walk stops at the first message that would overflow, so older messages
    are dropped first.

    The result is empty when ``max_messages`` is zero or negative, or when
    the newest message alone costs more than ``max_tokens``.

    Args:
        history: Conversation history, oldest first
        max_messages: Maximum messages to keep
        max_tokens: Maximum estimated tokens to keep

    Returns:
        A new list holding a contiguous suffix of ``history``
    """
    estimator = estimator or TokenEstimator()

    if max_messages <= 0:
        return []
    if len(history) <= max_messages:
        candidates = list(history)
    else:
        candidates = list(history[-max_messages:])

    costs = [estimator.estimate_message(m) for m in candidates]
    if sum(costs) <= max_tokens:
        return candidates

    total = 0
    start = len(candidates)
    for index in range(len(candidates) - 1, -1, -1):
        if total + costs[index] > max_tokens:
            break
        total += costs[index]
        start = index

    trimmed = candidates[start:]
    if not trimmed and candidates:
        logger.warning(
            f"Newest message ({costs[-1]} tokens) exceeds the context budget "
            f"of {max_tokens} tokens; sending no history"
        )
    else:
        logger.debug(
            f"Trimmed context from {len(history)} to {len(trimmed)} messages "
            f"({total}/{max_tokens} tokens)"
        )
    return trimmed


class ContextOptimizer:
    """
    Applies a ``ContextBudget`` to conversation histories.

    When the budget is disabled the history is returned untouched (as a
    copy).
    """

    def __init__(
        self,
        budget: ContextBudget,
        estimator: TokenEstimator | None = None,
    ) -> None:
        self.budget = budget
        self.estimator = estimator or TokenEstimator()

    def optimize(
        self,
        history: Sequence[ChatMessage],
        budget: ContextBudget | None = None,
    ) -> list[ChatMessage]:
        budget = budget or self.budget
        if not budget.enabled:
            return list(history)
        return optimize(history, budget.max_messages, budget.max_tokens, self.estimator)


__all__ = ["ContextOptimizer", "optimize"]
