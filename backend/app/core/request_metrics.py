from __future__ import annotations

import re
from collections import defaultdict, deque
from threading import Lock
from typing import Deque

_MAX_SAMPLES = 500
_JOB_PATH = re.compile(r'^(/api/v1/sync/jobs/)[^/]+$')


def route_key(path: str) -> str:
    """Collapse per-job status URLs into one series."""
    key = str(path or 'unknown').strip() or 'unknown'
    return _JOB_PATH.sub(r'\1{job_id}', key)


def _percentile(sorted_values: list[float], p: float) -> float:
    if not sorted_values:
        return 0.0
    if len(sorted_values) == 1:
        return float(sorted_values[0])
    rank = (len(sorted_values) - 1) * p
    low = int(rank)
    high = min(low + 1, len(sorted_values) - 1)
    weight = rank - low
    return float(sorted_values[low] * (1.0 - weight) + sorted_values[high] * weight)


class MetricsRecorder:
    """Bounded in-process samples: request latency per route, sync throughput per run mode."""

    def __init__(self, max_samples: int = _MAX_SAMPLES) -> None:
        self._latencies: dict[str, Deque[float]] = defaultdict(lambda: deque(maxlen=max_samples))
        self._sync_runs: dict[str, Deque[tuple[float, int]]] = defaultdict(lambda: deque(maxlen=max_samples))
        self._lock = Lock()

    def observe_request(self, path: str, latency_ms: float) -> None:
        with self._lock:
            self._latencies[route_key(path)].append(float(max(0.0, latency_ms)))

    def observe_sync_run(self, mode: str, elapsed_seconds: float, records: int) -> None:
        with self._lock:
            self._sync_runs[mode or 'inline'].append((float(max(0.0, elapsed_seconds)), int(records)))

    def latency_summary(self) -> dict:
        with self._lock:
            items = {k: sorted(v) for k, v in self._latencies.items() if v}
        return {
            endpoint: {
                'count': len(arr),
                'p50_ms': round(_percentile(arr, 0.50), 2),
                'p95_ms': round(_percentile(arr, 0.95), 2),
                'p99_ms': round(_percentile(arr, 0.99), 2),
                'max_ms': round(float(arr[-1]), 2),
            }
            for endpoint, arr in items.items()
        }

    def sync_summary(self) -> dict:
        with self._lock:
            items = {k: list(v) for k, v in self._sync_runs.items() if v}
        out: dict[str, dict] = {}
        for mode, runs in items.items():
            durations = sorted(d for d, _ in runs)
            total_seconds = sum(durations)
            total_records = sum(r for _, r in runs)
            out[mode] = {
                'runs': len(runs),
                'records': total_records,
                'p50_seconds': round(_percentile(durations, 0.50), 2),
                'max_seconds': round(durations[-1], 2),
                'records_per_second': round(total_records / total_seconds, 2) if total_seconds > 0 else 0.0,
            }
        return out

    def reset(self) -> None:
        with self._lock:
            self._latencies.clear()
            self._sync_runs.clear()


recorder = MetricsRecorder()


def observe(endpoint: str, latency_ms: float) -> None:
    recorder.observe_request(endpoint, latency_ms)


def observe_sync_run(mode: str, elapsed_seconds: float, records: int) -> None:
    recorder.observe_sync_run(mode, elapsed_seconds, records)


def summary() -> dict:
    return recorder.latency_summary()


def sync_summary() -> dict:
    return recorder.sync_summary()
