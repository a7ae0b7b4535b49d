"""
Metrics Collection for the BC Legal RAG core

Tracks retrieval, initialization and recommendation counters plus call
latency, in process. Nothing is exported or persisted.
"""

import time
import logging
from dataclasses import dataclass, field
from collections import defaultdict
from typing import Optional
from datetime import datetime, timedelta

logger = logging.getLogger(__name__)


@dataclass
class CallMetrics:
    """Metrics for a single retrieve or recommend call."""
    operation: str
    query_text: str
    start_time: float
    end_time: float = 0
    latency_ms: float = 0
    results_count: int = 0
    degraded: bool = False
    error: Optional[str] = None


@dataclass
class SystemMetrics:
    """Aggregated system metrics."""
    # Retrieval
    total_retrievals: int = 0
    empty_retrievals: int = 0
    degraded_retrievals: int = 0

    # Recommendations
    total_recommendations: int = 0
    failed_recommendations: int = 0
    candidates_skipped: int = 0

    # Initialization
    initializations: int = 0
    degraded_initializations: int = 0
    documents_indexed: int = 0
    chunks_indexed: int = 0

    # Latency tracking (in ms), all operations
    latencies: dict = field(default_factory=lambda: defaultdict(list))

    errors_by_type: dict = field(default_factory=lambda: defaultdict(int))

    def avg_latency_ms(self, operation: str) -> float:
        values = self.latencies.get(operation) or []
        if not values:
            return 0
        return sum(values) / len(values)

    def p95_latency_ms(self, operation: str) -> float:
        values = self.latencies.get(operation) or []
        if not values:
            return 0
        ordered = sorted(values)
        index = int(len(ordered) * 0.95)
        return ordered[min(index, len(ordered) - 1)]

    @property
    def empty_retrieval_rate(self) -> float:
        if self.total_retrievals == 0:
            return 0
        return self.empty_retrievals / self.total_retrievals

    def to_dict(self) -> dict:
        """Convert to dictionary for display."""
        return {
            "retrieval": {
                "total": self.total_retrievals,
                "empty": self.empty_retrievals,
                "degraded": self.degraded_retrievals,
                "empty_rate": f"{self.empty_retrieval_rate:.2%}",
                "avg_latency_ms": round(self.avg_latency_ms("retrieve"), 2),
                "p95_latency_ms": round(self.p95_latency_ms("retrieve"), 2),
            },
            "recommendations": {
                "total": self.total_recommendations,
                "failed": self.failed_recommendations,
                "candidates_skipped": self.candidates_skipped,
                "avg_latency_ms": round(self.avg_latency_ms("recommend"), 2),
            },
            "initialization": {
                "count": self.initializations,
                "degraded": self.degraded_initializations,
                "documents": self.documents_indexed,
                "chunks": self.chunks_indexed,
            },
            "errors": dict(self.errors_by_type),
        }


class MetricsCollector:
    """
    Collects and aggregates system metrics.

    Usage:
        collector = MetricsCollector()

        with collector.track("retrieve", query) as tracker:
            fragments = orchestrator.retrieve(query)
            tracker.set_results(len(fragments))

        metrics = collector.get_metrics()
    """

    _instance = None

    def __new__(cls):
        """Singleton pattern for global metrics collection."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self):
        if self._initialized:
            return

        self.metrics = SystemMetrics()
        self._history: list[CallMetrics] = []
        self._max_history = 1000
        self._start_time = datetime.now()
        self._initialized = True

    def reset(self):
        """Reset all metrics (for testing)."""
        self.metrics = SystemMetrics()
        self._history = []
        self._start_time = datetime.now()

    class CallTracker:
        """Context manager for tracking one call."""

        def __init__(self, collector: 'MetricsCollector', operation: str, query_text: str):
            self.collector = collector
            self.call = CallMetrics(
                operation=operation,
                query_text=query_text[:200],
                start_time=time.time(),
            )

        def __enter__(self):
            return self

        def __exit__(self, exc_type, exc_val, exc_tb):
            self.call.end_time = time.time()
            self.call.latency_ms = (self.call.end_time - self.call.start_time) * 1000

            if exc_type:
                self.call.error = str(exc_val)
                self.collector._record_error(exc_type.__name__)

            self.collector._record_call(self.call)
            return False

        def set_results(self, count: int, degraded: bool = False):
            self.call.results_count = count
            self.call.degraded = degraded

        def set_error(self, error: str):
            """Mark a call that failed but returned a fallback value."""
            self.call.error = error

    def track(self, operation: str, query_text: str) -> CallTracker:
        """Create a call tracker for "retrieve" or "recommend"."""
        return self.CallTracker(self, operation, query_text)

    def _record_call(self, call: CallMetrics):
        if call.operation == "retrieve":
            self.metrics.total_retrievals += 1
            if call.results_count == 0:
                self.metrics.empty_retrievals += 1
            if call.degraded:
                self.metrics.degraded_retrievals += 1
        elif call.operation == "recommend":
            self.metrics.total_recommendations += 1
            if call.error:
                self.metrics.failed_recommendations += 1

        latencies = self.metrics.latencies[call.operation]
        latencies.append(call.latency_ms)
        if len(latencies) > self._max_history:
            self.metrics.latencies[call.operation] = latencies[-self._max_history:]

        self._history.append(call)
        if len(self._history) > self._max_history:
            self._history = self._history[-self._max_history:]

    def _record_error(self, error_type: str):
        self.metrics.errors_by_type[error_type] += 1

    def record_error(self, error_type: str):
        """Record an error that was absorbed rather than raised."""
        self._record_error(error_type)

    def record_initialization(self, documents: int, chunks: int, degraded: bool):
        self.metrics.initializations += 1
        self.metrics.documents_indexed += documents
        self.metrics.chunks_indexed += chunks
        if degraded:
            self.metrics.degraded_initializations += 1

    def record_skipped_candidates(self, count: int):
        self.metrics.candidates_skipped += count

    def get_metrics(self) -> SystemMetrics:
        return self.metrics

    def get_metrics_dict(self) -> dict:
        return self.metrics.to_dict()

    def get_recent_calls(self, limit: int = 10) -> list[CallMetrics]:
        return self._history[-limit:]

    def get_uptime(self) -> timedelta:
        return datetime.now() - self._start_time


# Global metrics collector instance
_collector = None


def get_metrics_collector() -> MetricsCollector:
    """Get the global metrics collector instance."""
    global _collector
    if _collector is None:
        _collector = MetricsCollector()
    return _collector
