import threading
import time
from typing import Any


_lock = threading.Lock()
_COUNTER_KEYS = (
    "sessions_active",
    "sessions_started_total",
    "sessions_completed_total",
    "ws_connections_active",
    "ws_disconnects_total",
    "submissions_total",
    "submissions_rejected",
    "stale_timer_discards",
    "capture_restarts_total",
    "capture_permission_denied",
    "evaluation_failures_total",
    "initialization_failures_total",
    "playback_failures_total",
)
_metrics: dict[str, float] = {key: 0.0 for key in _COUNTER_KEYS}
_metrics.update({
    "evaluation_latency_total_ms": 0.0,
    "evaluation_latency_samples": 0.0,
})


def increment_metric(name: str, amount: float = 1.0) -> None:
    key = str(name or "").strip()
    if not key:
        return
    with _lock:
        _metrics[key] = float(_metrics.get(key, 0.0)) + float(amount)


def decrement_metric(name: str, amount: float = 1.0) -> None:
    key = str(name or "").strip()
    if not key:
        return
    with _lock:
        next_value = float(_metrics.get(key, 0.0)) - float(amount)
        _metrics[key] = max(0.0, next_value)


def set_metric(name: str, value: float) -> None:
    key = str(name or "").strip()
    if not key:
        return
    with _lock:
        _metrics[key] = max(0.0, float(value))


def observe_evaluation_latency_ms(value_ms: float) -> None:
    latency = max(0.0, float(value_ms or 0.0))
    with _lock:
        _metrics["evaluation_latency_total_ms"] = float(_metrics.get("evaluation_latency_total_ms", 0.0)) + latency
        _metrics["evaluation_latency_samples"] = float(_metrics.get("evaluation_latency_samples", 0.0)) + 1.0


def get_metric(name: str) -> float:
    with _lock:
        return float(_metrics.get(str(name or "").strip(), 0.0))


def get_metrics_snapshot(extra: dict[str, Any] | None = None) -> dict[str, Any]:
    with _lock:
        data = dict(_metrics)

    latency_samples = max(1.0, float(data.get("evaluation_latency_samples") or 0.0))

    payload: dict[str, Any] = {"generated_at": time.time()}
    payload.update({key: int(data.get(key) or 0.0) for key in _COUNTER_KEYS})
    payload["evaluation_latency_samples"] = int(data.get("evaluation_latency_samples") or 0.0)
    payload["avg_evaluation_latency_ms"] = round(
        float(data.get("evaluation_latency_total_ms") or 0.0) / latency_samples, 2
    )

    if extra:
        payload.update(extra)
    return payload
