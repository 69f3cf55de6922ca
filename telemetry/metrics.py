from __future__ import annotations

import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from telemetry.logging_utils import get_logger

logger = get_logger("telemetry.metrics")


def log_metric(component: str, *, latency_ms: float, **fields: Any) -> None:
    """Emit one latency sample as a structured log line."""
    payload: Dict[str, Any] = {"component": component, "latency_ms": round(latency_ms, 3)}
    payload.update({k: v for k, v in fields.items() if v is not None})
    logger.info("metric", extra=payload)


@dataclass
class MetricTimer:
    component: str
    _start: float = field(default_factory=time.perf_counter)
    _latency_ms: Optional[float] = None

    def elapsed_ms(self) -> int:
        """Whole milliseconds since the timer started (or until it was stopped)."""
        if self._latency_ms is not None:
            return int(self._latency_ms)
        return int((time.perf_counter() - self._start) * 1000)

    def done(self, **fields: Any) -> float:
        if self._latency_ms is None:
            self._latency_ms = (time.perf_counter() - self._start) * 1000
            log_metric(self.component, latency_ms=self._latency_ms, **fields)
        return self._latency_ms


def start_timer(component: str) -> MetricTimer:
    return MetricTimer(component=component)


@contextmanager
def timed_operation(component: str, **fields: Any):
    """Context manager wrapper to log latency for arbitrary operations."""
    timer = start_timer(component)
    try:
        yield timer
    finally:
        timer.done(**fields)
