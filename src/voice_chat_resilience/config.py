# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Configuration for the Voice Chat Resilience Layer

This module provides the orchestrator configuration (retry, rate limit,
context budget, queue and error-log settings) together with the context
budget presets and the per-model cost table used for spend estimates.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, fields
from typing import Any, ClassVar

from .exceptions import ConfigurationError


@dataclass
class OrchestratorConfig:
    """
    Configuration for the request orchestration layer.

    Every queue, governor and the error handling service built by
    ``create_core`` reads its settings from one instance of this class.
    """

    # === Retry ===

    max_retries: int = 3
    """Default retry budget per request."""

    base_delay_ms: int = 1000
    """Base delay for exponential backoff in milliseconds."""

    max_backoff_ms: int = 30000
    """Hard ceiling for a single backoff delay in milliseconds."""

    # === Rate Limiting ===

    requests_per_minute: int = 60
    """Requests admitted per one-minute window."""

    tokens_per_minute: int = 90000
    """Estimated tokens admitted per one-minute window."""

    request_headroom: int = 5
    """Requests kept in reserve below the per-minute request limit."""

    # === Context Budget ===

    max_context_messages: int = 20
    """Maximum history messages sent with a completion request."""

    max_context_tokens: int = 3000
    """Maximum estimated tokens of trimmed history."""

    enable_context_optimization: bool = True
    """Trim history before every completion request."""

    # === Request Processing ===

    request_timeout_ms: int = 60000
    """Deadline for a single outbound call in milliseconds."""

    max_queue_size: int = 1000
    """Maximum pending items per request queue."""

    response_cache_ttl_ms: int = 300000
    """Age after which a cached completion is no longer served offline."""

    model: str = "gpt-4o"
    """Completion model passed to the completion collaborator."""

    max_response_tokens: int = 4000
    """Response length cap passed to the completion collaborator."""

    temperature: float = 0.7
    """Sampling temperature passed to the completion collaborator."""

    # === Conversation Store ===

    max_conversations: int = 100
    """Conversations kept in the LRU conversation store."""

    max_history_messages: int = 50
    """Messages kept per conversation before the oldest are dropped."""

    # === Error Handling ===

    error_log_limit: int = 100
    """Entries kept in the persisted error log."""

    surface_auto_dismiss_ms: int = 5000
    """Delay after which non-blocking error surfaces expire."""

    # === Metrics and Monitoring ===

    metrics_enabled: bool = True
    """Enable metrics collection."""

    prometheus_host: str = "127.0.0.1"
    """Prometheus metrics host."""

    prometheus_port: int = 9090
    """Prometheus metrics port."""

    # camelCase option names accepted by from_options
    _OPTION_ALIASES: ClassVar[dict[str, str]] = {
        "maxRetries": "max_retries",
        "baseDelayMs": "base_delay_ms",
        "requestsPerMinute": "requests_per_minute",
        "tokensPerMinute": "tokens_per_minute",
        "maxContextMessages": "max_context_messages",
        "maxContextTokens": "max_context_tokens",
        "requestTimeoutMs": "request_timeout_ms",
    }

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        if self.max_retries < 0:
            raise ConfigurationError("max_retries must be non-negative")
        if self.base_delay_ms < 0:
            raise ConfigurationError("base_delay_ms must be non-negative")
        if self.max_backoff_ms < self.base_delay_ms:
            raise ConfigurationError("max_backoff_ms must be at least base_delay_ms")
        if self.requests_per_minute < 1:
            raise ConfigurationError("requests_per_minute must be at least 1")
        if self.tokens_per_minute < 1:
            raise ConfigurationError("tokens_per_minute must be at least 1")
        if self.request_headroom < 0:
            raise ConfigurationError("request_headroom must be non-negative")
        if self.max_context_messages < 1:
            raise ConfigurationError("max_context_messages must be at least 1")
        if self.max_context_tokens < 1:
            raise ConfigurationError("max_context_tokens must be at least 1")
        if self.request_timeout_ms <= 0:
            raise ConfigurationError("request_timeout_ms must be positive")
        if self.max_queue_size < 1:
            raise ConfigurationError("max_queue_size must be at least 1")
        if self.response_cache_ttl_ms < 0:
            raise ConfigurationError("response_cache_ttl_ms must be non-negative")
        if self.max_conversations < 1:
            raise ConfigurationError("max_conversations must be at least 1")
        if self.max_history_messages < 1:
            raise ConfigurationError("max_history_messages must be at least 1")
        if self.error_log_limit < 1:
            raise ConfigurationError("error_log_limit must be at least 1")

    @classmethod
    def from_options(cls, options: Mapping[str, Any]) -> OrchestratorConfig:
        """
        Build a config from an options mapping.

        Accepts the camelCase option names used by application settings
        (``maxRetries``, ``baseDelayMs``, ...) as well as field names.

        Raises:
            ConfigurationError: If an option is not recognized
        """
        known = {f.name for f in fields(cls)}
        kwargs: dict[str, Any] = {}
        for key, value in options.items():
            name = cls._OPTION_ALIASES.get(key, key)
            if name not in known:
                raise ConfigurationError(f"Unknown configuration option: {key}")
            kwargs[name] = value
        return cls(**kwargs)

    @property
    def context_budget(self) -> ContextBudget:
        return ContextBudget(
            max_messages=self.max_context_messages,
            max_tokens=self.max_context_tokens,
            enabled=self.enable_context_optimization,
        )


@dataclass(frozen=True)
class ContextBudget:
    """How much conversation history may accompany a completion request."""

    max_messages: int
    max_tokens: int
    enabled: bool = True
    max_response_tokens: int = 1000
    temperature: float = 0.7


DEFAULT_BUDGET = ContextBudget(max_messages=20, max_tokens=3000)
"""About ten exchanges of context."""

AGGRESSIVE_BUDGET = ContextBudget(
    max_messages=10, max_tokens=1500, max_response_tokens=500, temperature=0.5
)
"""Minimal context and shorter replies for long-running conversations."""

QUALITY_FIRST_BUDGET = ContextBudget(
    max_messages=50,
    max_tokens=6000,
    enabled=False,
    max_response_tokens=2000,
    temperature=0.8,
)
"""Full context. Trimming is disabled."""


def budget_for_history(total_messages: int) -> ContextBudget:
    """Pick a context budget that tightens as a conversation grows."""
    if total_messages < 10:
        return DEFAULT_BUDGET
    if total_messages < 50:
        return ContextBudget(max_messages=15, max_tokens=2000)
    return AGGRESSIVE_BUDGET


# USD per 1K tokens
MODEL_RATES: dict[str, tuple[float, float]] = {
    "gpt-4o": (0.005, 0.015),
    "gpt-4": (0.03, 0.06),
    "gpt-3.5-turbo": (0.001, 0.002),
}

_DEFAULT_RATE_MODEL = "gpt-4o"


def estimate_cost(
    input_tokens: int, output_tokens: int, model: str = _DEFAULT_RATE_MODEL
) -> float:
    """Estimate the USD cost of a completion. Unknown models use gpt-4o rates."""
    input_rate, output_rate = MODEL_RATES.get(model, MODEL_RATES[_DEFAULT_RATE_MODEL])
    return (input_tokens / 1000) * input_rate + (output_tokens / 1000) * output_rate


__all__ = [
    "AGGRESSIVE_BUDGET",
    "DEFAULT_BUDGET",
    "MODEL_RATES",
    "QUALITY_FIRST_BUDGET",
    "ContextBudget",
    "OrchestratorConfig",
    "budget_for_history",
    "estimate_cost",
]
