# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Storage implementations for the error log, error metrics and cache.

Available storage:
- BaseStorage: Abstract base class defining the storage interface
- MemoryStorage: In-memory storage for tests and single-process apps
- RedisStorage: Redis-based storage that survives restarts (requires redis extra)

Note: RedisStorage is lazily imported to avoid requiring the redis package
when only using MemoryStorage.
"""

from typing import TYPE_CHECKING, cast

from voice_chat_resilience.storage.base import BaseStorage, HealthCheckResult
from voice_chat_resilience.storage.memory import MemoryStorage

if TYPE_CHECKING:
    from voice_chat_resilience.storage.redis import RedisStorage

__all__ = [
    "BaseStorage",
    "HealthCheckResult",
    "MemoryStorage",
    # Redis storage (lazy loaded)
    "RedisStorage",
]


def __getattr__(name: str) -> type:
    """Lazy import for the optional redis storage."""
    if name == "RedisStorage":
        try:
            from voice_chat_resilience.storage import redis as redis_module

            return cast(type, redis_module.RedisStorage)
        except ImportError as e:  # pragma: no cover
            raise ImportError(  # pragma: no cover
                f"'{name}' requires the 'redis' extra. "
                "Install with: pip install voice-chat-resilience[redis]"
            ) from e
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
