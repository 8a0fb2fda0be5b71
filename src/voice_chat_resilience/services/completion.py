# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Chat completion service.

Trims the stored conversation to the context budget, sends it through the
completion request queue and records the exchange once the reply arrives.
Successful replies are cached so that a repeated message can be answered
from the cache while the device is offline.
"""

from __future__ import annotations

import hashlib
import json
import logging
import time
from collections.abc import Sequence
from typing import Any

from ..config import ContextBudget, OrchestratorConfig, budget_for_history, estimate_cost
from ..context.optimizer import ContextOptimizer
from ..context.store import ConversationStore
from ..context.tokens import TokenEstimator
from ..exceptions import RequestFailedError, StorageError
from ..protocols.collaborators import CompletionCollaborator
from ..scheduler.cancellation import CancellationToken
from ..scheduler.outbound import with_deadline
from ..scheduler.request_queue import RequestQueue
from ..storage.base import BaseStorage
from ..types.errors import ErrorType
from ..types.messages import ChatMessage
from ..types.request import RequestPriority
from ..types.responses import CompletionResponse

logger = logging.getLogger(__name__)


class CompletionService:
    """
    Sends chat messages with trimmed history through a request queue.

    Args:
        client: Completion collaborator performing the vendor call
        queue: Request queue serializing completion calls
        store: Conversation history store
        cache: Storage for the offline response cache (disabled if omitted)
        config: Model, timeout and context budget settings
        adaptive_budget: Pick the budget from the conversation length with
            ``budget_for_history`` instead of the configured budget
    """

    def __init__(
        self,
        client: CompletionCollaborator,
        queue: RequestQueue,
        store: ConversationStore | None = None,
        cache: BaseStorage | None = None,
        config: OrchestratorConfig | None = None,
        adaptive_budget: bool = False,
    ) -> None:
        self.client = client
        self.queue = queue
        self.cache = cache
        self.config = config or queue.config
        self.store = store or ConversationStore(
            self.config.max_conversations, self.config.max_history_messages
        )
        self.adaptive_budget = adaptive_budget
        self.estimator = TokenEstimator()
        self.optimizer = ContextOptimizer(self.config.context_budget, self.estimator)

    def budget_for(self, history: Sequence[ChatMessage]) -> ContextBudget:
        if not self.config.enable_context_optimization:
            return ContextBudget(
                max_messages=self.config.max_context_messages,
                max_tokens=self.config.max_context_tokens,
                enabled=False,
            )
        if self.adaptive_budget:
            return budget_for_history(len(history))
        return self.config.context_budget

    def build_messages(
        self,
        conversation_id: str,
        user_message: ChatMessage,
        system_prompt: str | None = None,
    ) -> list[ChatMessage]:
        """Return ``[system] + trimmed history + [user_message]``."""
        history = self.store.history(conversation_id)
        trimmed = self.optimizer.optimize(history, self.budget_for(history))
        messages: list[ChatMessage] = []
        if system_prompt:
            messages.append(ChatMessage.system(system_prompt))
        messages.extend(trimmed)
        messages.append(user_message)
        return messages

    async def send_message(
        self,
        conversation_id: str,
        text: str,
        *,
        system_prompt: str | None = None,
        priority: int = RequestPriority.HIGH,
        image_urls: Sequence[str] = (),
        cancel_token: CancellationToken | None = None,
        fallback_offline: bool = False,
    ) -> CompletionResponse:
        """
        Send a user message and return the assistant reply.

        On success the user message and the reply are appended to the
        conversation. On failure the conversation is left untouched and the
        ``RequestFailedError`` from the queue propagates.

        With ``fallback_offline``, a Network.offline failure is answered
        with the cached reply to the same message when one is fresher than
        ``config.response_cache_ttl_ms``. The cached reply is returned with
        ``from_cache`` set and is not appended to the conversation.
        """
        user_message = ChatMessage.user(text, image_urls=image_urls)
        messages = self.build_messages(conversation_id, user_message, system_prompt)
        estimated_tokens = self.estimator.estimate_messages(messages)
        payload = [m.to_dict() for m in messages]
        options = {
            "model": self.config.model,
            "max_tokens": self.config.max_response_tokens,
            "temperature": self.config.temperature,
        }
        cache_key = self.cache_key(conversation_id, user_message, system_prompt)

        async def call() -> CompletionResponse:
            return await self.client.send(payload, options, cancel_token)

        try:
            response: CompletionResponse = await self.queue.enqueue(
                with_deadline(call, self.config.request_timeout_ms),
                priority,
                estimated_tokens=estimated_tokens,
                cancel_token=cancel_token,
                component="completion",
                operation="send_message",
            )
        except RequestFailedError as e:
            if not fallback_offline or e.error_type is not ErrorType.NETWORK_OFFLINE:
                raise
            cached = await self._read_cached(cache_key)
            if cached is None:
                raise
            logger.info(f"Offline; serving cached reply for {conversation_id}")
            return cached

        self.store.append(
            conversation_id, user_message, ChatMessage.assistant(response.content)
        )
        await self._write_cached(cache_key, response)
        prompt_tokens = response.prompt_tokens or estimated_tokens
        completion_tokens = response.completion_tokens or self.estimator.estimate(
            response.content
        )
        logger.debug(
            f"Completion for {conversation_id}: {len(messages)} messages, "
            f"~${estimate_cost(prompt_tokens, completion_tokens, self.config.model):.4f}"
        )
        return response

    # === Offline Cache ===

    def cache_key(
        self,
        conversation_id: str,
        user_message: ChatMessage,
        system_prompt: str | None = None,
    ) -> str:
        """Cache key for a message in a conversation under the configured model."""
        material = json.dumps(
            {
                "conversation": conversation_id,
                "message": user_message.to_dict(),
                "system": system_prompt,
                "model": self.config.model,
            },
            sort_keys=True,
        )
        return "completion:" + hashlib.sha256(material.encode()).hexdigest()

    async def _write_cached(self, key: str, response: CompletionResponse) -> None:
        if self.cache is None:
            return
        entry: dict[str, Any] = {
            "content": response.content,
            "model": response.model,
            "cached_at": time.time(),
        }
        try:
            await self.cache.set_cache(key, entry)
        except StorageError as e:
            logger.warning(f"Failed to cache completion: {e}")

    async def _read_cached(self, key: str) -> CompletionResponse | None:
        if self.cache is None:
            return None
        try:
            entry = await self.cache.get_cache(key)
        except StorageError as e:
            logger.warning(f"Failed to read cached completion: {e}")
            return None
        if not isinstance(entry, dict) or "content" not in entry:
            return None
        age_ms = (time.time() - float(entry.get("cached_at", 0))) * 1000
        if age_ms > self.config.response_cache_ttl_ms:
            return None
        return CompletionResponse(
            content=entry["content"], model=entry.get("model"), from_cache=True
        )


__all__ = ["CompletionService"]
