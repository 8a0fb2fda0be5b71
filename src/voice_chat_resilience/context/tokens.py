# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Token estimation for conversation text.

Estimates are deliberately pessimistic: the larger of a character based
and a word based estimate is used so that context trimming and rate-limit
reservations never under-reserve.
"""

from __future__ import annotations

import math
from collections.abc import Iterable

from ..types.messages import ChatMessage

CHARS_PER_TOKEN = 4
"""Average characters per token for English text."""

WORDS_PER_TOKEN = 0.75
"""Average words per token for English text."""

MESSAGE_OVERHEAD_TOKENS = 4
"""Fixed framing cost added for every message."""

IMAGE_TOKENS = 765
"""Fixed cost of one image attachment."""


def estimate(text: str) -> int:
    """Estimate the token cost of a piece of text. Always returns >= 0."""
    if not text:
        return 0
    by_chars = math.ceil(len(text) / CHARS_PER_TOKEN)
    by_words = math.ceil(len(text.split()) / WORDS_PER_TOKEN)
    return max(by_chars, by_words)


def estimate_message(message: ChatMessage) -> int:
    """Estimate one message including overhead, role label and images."""
    return (
        MESSAGE_OVERHEAD_TOKENS
        + estimate(message.role.value)
        + estimate(message.content)
        + IMAGE_TOKENS * len(message.image_urls)
    )


def estimate_messages(messages: Iterable[ChatMessage]) -> int:
    """Estimate the total token cost of a message sequence."""
    return sum(estimate_message(m) for m in messages)


class TokenEstimator:
    """Injectable wrapper around the module level estimation functions."""

    def estimate(self, text: str) -> int:
        return estimate(text)

    def estimate_message(self, message: ChatMessage) -> int:
        return estimate_message(message)

    def estimate_messages(self, messages: Iterable[ChatMessage]) -> int:
        return estimate_messages(messages)


__all__ = [
    "IMAGE_TOKENS",
    "MESSAGE_OVERHEAD_TOKENS",
    "TokenEstimator",
    "estimate",
    "estimate_message",
    "estimate_messages",
]
