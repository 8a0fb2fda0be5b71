# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""Conversation message types."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


class MessageRole(Enum):
    """Role label attached to every conversation message."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


@dataclass(frozen=True)
class ChatMessage:
    """
    A single role-tagged conversation message.

    Attributes:
        role: Who authored the message
        content: Text content
        image_urls: References to attached images, each billed at a fixed cost
    """

    role: MessageRole
    content: str
    image_urls: tuple[str, ...] = ()

    @classmethod
    def system(cls, content: str) -> ChatMessage:
        return cls(MessageRole.SYSTEM, content)

    @classmethod
    def user(cls, content: str, image_urls: tuple[str, ...] = ()) -> ChatMessage:
        return cls(MessageRole.USER, content, tuple(image_urls))

    @classmethod
    def assistant(cls, content: str) -> ChatMessage:
        return cls(MessageRole.ASSISTANT, content)

    def to_dict(self) -> dict[str, Any]:
        """Vendor-neutral wire shape handed to completion collaborators."""
        data: dict[str, Any] = {"role": self.role.value, "content": self.content}
        if self.image_urls:
            data["image_urls"] = list(self.image_urls)
        return data


__all__ = ["ChatMessage", "MessageRole"]
