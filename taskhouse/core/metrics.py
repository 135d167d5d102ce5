from __future__ import annotations

from dataclasses import dataclass
from threading import Lock


@dataclass
class EndpointMetric:
    total_requests: int = 0
    total_duration_ms: float = 0.0
    error_count: int = 0
    denied_count: int = 0

    def record(self, status_code: int, duration_ms: float) -> None:
        self.total_requests += 1
        self.total_duration_ms += duration_ms
        if status_code >= 400:
            self.error_count += 1
        if status_code in (401, 403):
            self.denied_count += 1

    def as_dict(self) -> dict[str, float | int]:
        avg = self.total_duration_ms / self.total_requests if self.total_requests else 0.0
        return {
            "total_requests": self.total_requests,
            "total_duration_ms": round(self.total_duration_ms, 2),
            "avg_duration_ms": round(avg, 2),
            "error_count": self.error_count,
            "denied_count": self.denied_count,
        }


class InMemoryRequestMetrics:
    """Per-process request counters; reset on restart."""

    def __init__(self) -> None:
        self._metrics: dict[tuple[str, str], EndpointMetric] = {}
        self._tenant_metrics: dict[str, EndpointMetric] = {}
        self._lock = Lock()

    def observe(
        self,
        endpoint: str,
        method: str,
        status_code: int,
        duration_ms: float,
        tenant_id: str | None = None,
    ) -> None:
        with self._lock:
            self._metrics.setdefault((endpoint, method), EndpointMetric()).record(status_code, duration_ms)
            if tenant_id:
                self._tenant_metrics.setdefault(tenant_id, EndpointMetric()).record(status_code, duration_ms)

    def snapshot(self) -> dict[str, dict[str, float | int]]:
        with self._lock:
            return {f"{method} {endpoint}": metric.as_dict() for (endpoint, method), metric in self._metrics.items()}

    def snapshot_for_tenant(self, tenant_id: str) -> dict[str, float | int]:
        with self._lock:
            metric = self._tenant_metrics.get(tenant_id)
            return metric.as_dict() if metric else EndpointMetric().as_dict()

    def reset(self) -> None:
        with self._lock:
            self._metrics.clear()
            self._tenant_metrics.clear()


request_metrics = InMemoryRequestMetrics()
