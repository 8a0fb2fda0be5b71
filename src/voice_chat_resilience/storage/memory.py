# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
MemoryStorage for the Voice Chat Resilience Layer

This module provides an in-memory storage implementation that doesn't
require Redis. Suitable for tests, development and single-process apps
where losing the error log on restart is acceptable.
"""

import asyncio
import copy
import logging
from collections import deque
from typing import Any

from .base import BaseStorage, HealthCheckResult

logger = logging.getLogger(__name__)


class MemoryStorage(BaseStorage):
    """
    An in-memory storage implementation.

    Key Features:
    - Pure in-memory dict-based storage
    - Logs held in bounded deques
    - Async-safe operations using asyncio.Lock
    - Values are deep-copied in and out so callers never share state

    Note:
        Data does not survive a process restart.
    """

    def __init__(self, namespace: str = "voice_chat_memory") -> None:
        super().__init__(namespace)
        self._logs: dict[str, deque[dict[str, Any]]] = {}
        self._states: dict[str, dict[str, Any]] = {}
        self._cache: dict[str, Any] = {}

        # Async lock for thread safety
        self._lock = asyncio.Lock()

    async def append_log(
        self, key: str, entry: dict[str, Any], max_entries: int
    ) -> None:
        async with self._lock:
            log = self._logs.get(key)
            if log is None or log.maxlen != max_entries:
                log = deque(log or (), maxlen=max_entries)
                self._logs[key] = log
            log.append(copy.deepcopy(entry))

    async def read_log(self, key: str) -> list[dict[str, Any]]:
        async with self._lock:
            return copy.deepcopy(list(self._logs.get(key, ())))

    async def clear_log(self, key: str) -> None:
        async with self._lock:
            self._logs.pop(key, None)

    async def get_state(self, key: str) -> dict[str, Any] | None:
        async with self._lock:
            state = self._states.get(key)
            return copy.deepcopy(state) if state is not None else None

    async def set_state(self, key: str, state: dict[str, Any]) -> None:
        async with self._lock:
            self._states[key] = copy.deepcopy(state)

    async def delete_state(self, key: str) -> None:
        async with self._lock:
            self._states.pop(key, None)

    async def set_cache(self, key: str, value: Any) -> None:
        async with self._lock:
            self._cache[key] = value

    async def get_cache(self, key: str) -> Any | None:
        async with self._lock:
            return self._cache.get(key)

    async def clear_cache(self) -> int:
        async with self._lock:
            removed = len(self._cache)
            self._cache.clear()
        logger.info(f"Cleared {removed} cache entries")
        return removed

    async def health_check(self) -> HealthCheckResult:
        return HealthCheckResult(
            healthy=True, backend_type="memory", namespace=self.namespace
        )


__all__ = ["MemoryStorage"]
