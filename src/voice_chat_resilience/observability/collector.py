# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Metrics collector with optional Prometheus export.

``UnifiedMetricsCollector`` keeps dict-based counters, gauges and histogram
observations that can always be snapshotted as JSON, and mirrors every
update to ``prometheus_client`` metrics when that package is installed.

Usage:
    >>> from voice_chat_resilience.observability import UnifiedMetricsCollector
    >>> collector = UnifiedMetricsCollector(enable_prometheus=False)
    >>> collector.inc_counter('voice_chat_requests_enqueued_total',
    ...                       labels={'queue': 'completion'})
    >>> collector.get_metrics()["counters"]
    {'voice_chat_requests_enqueued_total': {'queue=completion': 1}}

The collector is created once at the application's composition root and
passed to the queues and the error handling service.
"""

from __future__ import annotations

import logging
import threading
from collections import defaultdict
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, ClassVar

from .constants import (
    ERRORS_HANDLED_TOTAL,
    LATENCY_BUCKETS,
    QUEUE_DEPTH,
    RATE_LIMIT_WAITS_TOTAL,
    RECOVERY_ACTIONS_TOTAL,
    REQUEST_LATENCY_SECONDS,
    REQUESTS_CANCELLED_TOTAL,
    REQUESTS_COMPLETED_TOTAL,
    REQUESTS_ENQUEUED_TOTAL,
    REQUESTS_FAILED_TOTAL,
    REQUESTS_RETRIED_TOTAL,
)

logger = logging.getLogger(__name__)

# Type declarations for optional prometheus_client imports
if TYPE_CHECKING:
    from prometheus_client import (
        CollectorRegistry as CollectorRegistryType,
    )
else:
    CollectorRegistryType = object

# Check Prometheus availability with aliased imports to avoid no-redef
try:
    from prometheus_client import (
        REGISTRY as _REGISTRY,
        Counter as _Counter,
        Gauge as _Gauge,
        Histogram as _Histogram,
        start_http_server as _start_http_server,
    )

    _PROM_TYPES: dict[str, Any] = {
        "counter": _Counter,
        "gauge": _Gauge,
        "histogram": _Histogram,
    }
    REGISTRY: CollectorRegistryType | None = _REGISTRY
    start_http_server: Callable[..., Any] | None = _start_http_server
    PROMETHEUS_AVAILABLE = True
except ImportError:
    _PROM_TYPES = {}
    REGISTRY = None
    start_http_server = None
    PROMETHEUS_AVAILABLE = False


@dataclass
class MetricDefinition:
    """Schema for a predefined metric."""

    name: str
    metric_type: str  # 'counter', 'gauge', 'histogram'
    description: str
    label_names: tuple[str, ...] = ()
    buckets: list[float] | None = None


METRIC_DEFINITIONS: dict[str, MetricDefinition] = {
    definition.name: definition
    for definition in (
        MetricDefinition(
            REQUESTS_ENQUEUED_TOTAL, "counter", "Requests accepted", ("queue",)
        ),
        MetricDefinition(
            REQUESTS_COMPLETED_TOTAL, "counter", "Requests resolved", ("queue",)
        ),
        MetricDefinition(
            REQUESTS_FAILED_TOTAL,
            "counter",
            "Requests rejected with a classified error",
            ("queue", "error_code"),
        ),
        MetricDefinition(
            REQUESTS_RETRIED_TOTAL,
            "counter",
            "Retry attempts scheduled",
            ("queue", "error_code"),
        ),
        MetricDefinition(
            REQUESTS_CANCELLED_TOTAL, "counter", "Requests cancelled", ("queue",)
        ),
        MetricDefinition(
            RATE_LIMIT_WAITS_TOTAL,
            "counter",
            "Dispatch waits imposed by the rate governor",
            ("queue", "limit"),
        ),
        MetricDefinition(QUEUE_DEPTH, "gauge", "Pending requests", ("queue",)),
        MetricDefinition(
            REQUEST_LATENCY_SECONDS,
            "histogram",
            "Outbound attempt latency",
            ("queue",),
            buckets=LATENCY_BUCKETS,
        ),
        MetricDefinition(
            ERRORS_HANDLED_TOTAL,
            "counter",
            "Errors handled by the error handling service",
            ("error_code", "severity"),
        ),
        MetricDefinition(
            RECOVERY_ACTIONS_TOTAL,
            "counter",
            "Recovery actions run",
            ("action", "outcome"),
        ),
    )
}


class UnifiedMetricsCollector:
    """
    Dict-backed metrics collector mirrored to Prometheus when available.

    Thread Safety:
        All dict updates happen under an RLock.

    Cardinality Protection:
        At most MAX_LABEL_COMBINATIONS label sets are tracked per metric;
        further combinations are dropped with a warning.
    """

    MAX_LABEL_COMBINATIONS: ClassVar[int] = 1000

    def __init__(
        self,
        enable_prometheus: bool = True,
        registry: Any | None = None,
    ) -> None:
        """
        Initialize the metrics collector.

        Args:
            enable_prometheus: Whether to mirror metrics to Prometheus (if installed)
            registry: Optional Prometheus CollectorRegistry, mainly for tests
        """
        self._enable_prometheus = enable_prometheus and PROMETHEUS_AVAILABLE
        self._registry = registry if registry is not None else REGISTRY

        self._counters: dict[str, dict[str, int]] = defaultdict(
            lambda: defaultdict(int)
        )
        self._gauges: dict[str, dict[str, float]] = defaultdict(
            lambda: defaultdict(float)
        )
        self._histograms: dict[str, dict[str, list[float]]] = defaultdict(
            lambda: defaultdict(list)
        )
        self._label_combinations: dict[str, set[str]] = defaultdict(set)
        self._lock = threading.RLock()

        self._prom_metrics: dict[str, Any] = {}
        self._server_running = False

        logger.debug(
            f"UnifiedMetricsCollector initialized "
            f"(prometheus={'enabled' if self._enable_prometheus else 'disabled'})"
        )

    @staticmethod
    def _labels_to_key(labels: dict[str, str] | None) -> str:
        if not labels:
            return ""
        return ",".join(f"{k}={v}" for k, v in sorted(labels.items()))

    def _admit_labels(self, name: str, label_key: str) -> bool:
        seen = self._label_combinations[name]
        if label_key in seen:
            return True
        if len(seen) >= self.MAX_LABEL_COMBINATIONS:
            logger.warning(
                f"Cardinality limit ({self.MAX_LABEL_COMBINATIONS}) reached "
                f"for metric {name}. Dropping label combination: {label_key}"
            )
            return False
        seen.add(label_key)
        return True

    def _prom_metric(self, metric_type: str, name: str) -> Any | None:
        """Get or lazily create the Prometheus metric backing ``name``."""
        if not self._enable_prometheus:
            return None
        if name in self._prom_metrics:
            return self._prom_metrics[name]

        defn = METRIC_DEFINITIONS.get(name)
        if defn is None or defn.metric_type != metric_type:
            defn = MetricDefinition(name, metric_type, f"Dynamic {metric_type}: {name}")
        kwargs: dict[str, Any] = {"registry": self._registry}
        if metric_type == "histogram":
            kwargs["buckets"] = defn.buckets or LATENCY_BUCKETS
        try:
            metric = _PROM_TYPES[metric_type](
                name, defn.description, list(defn.label_names), **kwargs
            )
        except Exception as e:
            logger.warning(f"Failed to create Prometheus {metric_type} {name}: {e}")
            metric = None
        self._prom_metrics[name] = metric
        return metric

    def _mirror(
        self,
        metric_type: str,
        name: str,
        method: str,
        value: float,
        labels: dict[str, str] | None,
    ) -> None:
        metric = self._prom_metric(metric_type, name)
        if metric is None:
            return
        try:
            target = metric.labels(**labels) if labels else metric
            getattr(target, method)(value)
        except Exception as e:
            logger.debug(f"Prometheus {metric_type} update failed for {name}: {e}")

    # === Recording ===

    def inc_counter(
        self,
        name: str,
        value: int = 1,
        labels: dict[str, str] | None = None,
    ) -> None:
        """
        Increment a counter metric.

        Raises:
            ValueError: If value is negative
        """
        if value < 0:
            raise ValueError("Counter increment must be non-negative")

        label_key = self._labels_to_key(labels)
        with self._lock:
            if not self._admit_labels(name, label_key):
                return
            self._counters[name][label_key] += value
        self._mirror("counter", name, "inc", value, labels)

    def set_gauge(
        self,
        name: str,
        value: float,
        labels: dict[str, str] | None = None,
    ) -> None:
        label_key = self._labels_to_key(labels)
        with self._lock:
            if not self._admit_labels(name, label_key):
                return
            self._gauges[name][label_key] = value
        self._mirror("gauge", name, "set", value, labels)

    def observe_histogram(
        self,
        name: str,
        value: float,
        labels: dict[str, str] | None = None,
    ) -> None:
        label_key = self._labels_to_key(labels)
        with self._lock:
            if not self._admit_labels(name, label_key):
                return
            observations = self._histograms[name][label_key]
            observations.append(value)
            # Keep only recent observations to bound memory
            if len(observations) > 10000:
                del observations[:5000]
        self._mirror("histogram", name, "observe", value, labels)

    # === Snapshots ===

    def get_counter(self, name: str, labels: dict[str, str] | None = None) -> int:
        with self._lock:
            return self._counters.get(name, {}).get(self._labels_to_key(labels), 0)

    def get_gauge(self, name: str, labels: dict[str, str] | None = None) -> float:
        with self._lock:
            return self._gauges.get(name, {}).get(self._labels_to_key(labels), 0.0)

    def get_metrics(self) -> dict[str, Any]:
        """
        Snapshot all metrics as a JSON-serializable dict.

        Histograms are summarized as count/sum/avg/min/max per label set.
        """
        with self._lock:
            counters = {name: dict(values) for name, values in self._counters.items()}
            gauges = {name: dict(values) for name, values in self._gauges.items()}
            histograms: dict[str, dict[str, dict[str, Any]]] = {}
            for name, label_values in self._histograms.items():
                histograms[name] = {
                    label_key: {
                        "count": len(obs),
                        "sum": sum(obs),
                        "avg": sum(obs) / len(obs),
                        "min": min(obs),
                        "max": max(obs),
                    }
                    for label_key, obs in label_values.items()
                    if obs
                }

        return {"counters": counters, "gauges": gauges, "histograms": histograms}

    def reset(self) -> None:
        """Reset all dict-based metrics. Prometheus metrics are left as is."""
        with self._lock:
            self._counters.clear()
            self._gauges.clear()
            self._histograms.clear()
            self._label_combinations.clear()
        logger.debug("Metrics collector reset")

    # === Prometheus HTTP Server ===

    def start_http_server(self, host: str = "127.0.0.1", port: int = 9090) -> bool:
        """
        Start the Prometheus HTTP server for metrics scraping.

        Returns:
            True if the server is running, False otherwise
        """
        if not PROMETHEUS_AVAILABLE or start_http_server is None:
            logger.warning(
                "Cannot start Prometheus server: prometheus_client not installed"
            )
            return False
        if self._server_running:
            return True

        try:
            start_http_server(port, addr=host, registry=self._registry)
        except Exception as e:
            logger.error(f"Failed to start Prometheus server: {e}")
            return False
        self._server_running = True
        logger.info(f"Prometheus metrics server started on {host}:{port}")
        return True

    @property
    def prometheus_enabled(self) -> bool:
        return self._enable_prometheus

    @property
    def server_running(self) -> bool:
        return self._server_running


__all__ = [
    "METRIC_DEFINITIONS",
    "PROMETHEUS_AVAILABLE",
    "MetricDefinition",
    "UnifiedMetricsCollector",
]
