# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Base Storage for the Voice Chat Resilience Layer

This module provides the BaseStorage abstract class: the durable storage
collaborator used by the error handling service for its bounded error log
and its flat metrics map, and by recovery actions that clear cached data.
"""

import abc
import logging
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)


@dataclass
class HealthCheckResult:
    """
    Structured health check result for storage monitoring.

    Attributes:
        healthy: Whether the storage is operational
        backend_type: Type of storage (e.g., 'redis', 'memory')
        namespace: Storage namespace
        error: Error message if unhealthy
    """

    healthy: bool
    backend_type: str
    namespace: str
    error: str | None = None


class BaseStorage(abc.ABC):
    """
    Abstract durable storage used by the orchestration layer.

    Implementations hold three kinds of data under a namespace:

    * bounded logs: append-only lists trimmed to their newest entries
    * state blobs: flat JSON-compatible mappings read and written whole
    * cache entries: disposable data that ``clear_cache`` may drop at any time
    """

    def __init__(self, namespace: str = "voice_chat"):
        """
        Initialize the storage with a namespace for isolation.

        Args:
            namespace: Namespace for isolating data across different instances
        """
        self.namespace = namespace

    # ==========================================================================
    # Bounded Logs
    # ==========================================================================

    @abc.abstractmethod
    async def append_log(
        self, key: str, entry: dict[str, Any], max_entries: int
    ) -> None:
        """
        Append an entry to a log, evicting the oldest beyond ``max_entries``.

        Args:
            key: Log name
            entry: JSON-compatible entry
            max_entries: Number of newest entries to keep
        """
        pass

    @abc.abstractmethod
    async def read_log(self, key: str) -> list[dict[str, Any]]:
        """Return a log's entries, oldest first."""
        pass

    @abc.abstractmethod
    async def clear_log(self, key: str) -> None:
        pass

    # ==========================================================================
    # State Blobs
    # ==========================================================================

    @abc.abstractmethod
    async def get_state(self, key: str) -> dict[str, Any] | None:
        """
        Get the state blob stored under a key.

        Returns:
            The state dictionary if it exists, None otherwise
        """
        pass

    @abc.abstractmethod
    async def set_state(self, key: str, state: dict[str, Any]) -> None:
        """Replace the state blob stored under a key."""
        pass

    @abc.abstractmethod
    async def delete_state(self, key: str) -> None:
        pass

    # ==========================================================================
    # Cache
    # ==========================================================================

    @abc.abstractmethod
    async def set_cache(self, key: str, value: Any) -> None:
        pass

    @abc.abstractmethod
    async def get_cache(self, key: str) -> Any | None:
        pass

    @abc.abstractmethod
    async def clear_cache(self) -> int:
        """
        Drop every cache entry.

        Returns:
            Number of entries removed
        """
        pass

    # ==========================================================================
    # Lifecycle
    # ==========================================================================

    @abc.abstractmethod
    async def health_check(self) -> HealthCheckResult:
        pass

    async def close(self) -> None:  # noqa: B027
        """Release connections. The default implementation holds none."""
        pass


__all__ = ["BaseStorage", "HealthCheckResult"]
