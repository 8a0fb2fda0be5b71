# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""Conversation context: token estimation, trimming and history storage."""

from .optimizer import ContextOptimizer, optimize
from .store import ConversationStore
from .tokens import (
    IMAGE_TOKENS,
    MESSAGE_OVERHEAD_TOKENS,
    TokenEstimator,
    estimate,
    estimate_message,
    estimate_messages,
)

__all__ = [
    "IMAGE_TOKENS",
    "MESSAGE_OVERHEAD_TOKENS",
    "ContextOptimizer",
    "ConversationStore",
    "TokenEstimator",
    "estimate",
    "estimate_message",
    "estimate_messages",
    "optimize",
]
