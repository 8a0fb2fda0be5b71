# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Bounded in-memory conversation history.

``ConversationStore`` keeps the most recently used conversations, evicting
the least recently used one once ``max_conversations`` is exceeded. Each
conversation keeps at most ``max_messages`` messages, dropping the oldest.
"""

from __future__ import annotations

import logging
from collections import OrderedDict
from collections.abc import Iterable

from ..types.messages import ChatMessage

logger = logging.getLogger(__name__)


class ConversationStore:
    """LRU store of conversation histories keyed by conversation id."""

    def __init__(self, max_conversations: int = 100, max_messages: int = 50) -> None:
        if max_conversations < 1:
            raise ValueError("max_conversations must be at least 1")
        if max_messages < 1:
            raise ValueError("max_messages must be at least 1")
        self.max_conversations = max_conversations
        self.max_messages = max_messages
        # OrderedDict for LRU behavior (move_to_end on access)
        self._conversations: OrderedDict[str, list[ChatMessage]] = OrderedDict()

    def history(self, conversation_id: str) -> list[ChatMessage]:
        """Return a copy of a conversation's history (empty if unknown)."""
        messages = self._conversations.get(conversation_id)
        if messages is None:
            return []
        self._conversations.move_to_end(conversation_id)
        return list(messages)

    def append(self, conversation_id: str, *messages: ChatMessage) -> None:
        self.extend(conversation_id, messages)

    def extend(self, conversation_id: str, messages: Iterable[ChatMessage]) -> None:
        history = self._conversations.setdefault(conversation_id, [])
        history.extend(messages)
        if len(history) > self.max_messages:
            del history[: len(history) - self.max_messages]
        self._conversations.move_to_end(conversation_id)

        while len(self._conversations) > self.max_conversations:
            evicted, _ = self._conversations.popitem(last=False)
            logger.debug(f"Evicted conversation {evicted} from history store")

    def clear(self, conversation_id: str) -> None:
        """Empty a conversation's history but keep its slot."""
        if conversation_id in self._conversations:
            self._conversations[conversation_id] = []

    def remove(self, conversation_id: str) -> bool:
        return self._conversations.pop(conversation_id, None) is not None

    def __contains__(self, conversation_id: object) -> bool:
        return conversation_id in self._conversations

    def __len__(self) -> int:
        return len(self._conversations)


__all__ = ["ConversationStore"]
