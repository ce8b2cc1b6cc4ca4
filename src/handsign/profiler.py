"""Per-stage timing for the hand sign pipeline.

Wraps each stage of a frame's trip (throttle check, classification,
debounce, action dispatch) with high-resolution timing so slow stages show
up in ``GesturePipeline.stats`` and the ``benchmark`` command.
"""

from __future__ import annotations

import time
from collections import deque
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator

import numpy as np


@dataclass
class StageStats:
    """Timing statistics for a single pipeline stage."""
    name: str
    avg_ms: float
    min_ms: float
    max_ms: float
    p95_ms: float
    call_count: int


class PipelineProfiler:
    """Rolling-window timer keyed by stage name.

    Usage:
        profiler = PipelineProfiler()

        with profiler.stage("classification"):
            label = classifier.classify(landmarks)

        print(profiler.summary())
    """

    STAGES = ("throttle", "classification", "debounce", "dispatch")

    def __init__(self, window_size: int = 120, enabled: bool = True):
        self._window_size = window_size
        self._timings: dict[str, deque[float]] = {}
        self._counts: dict[str, int] = {}
        self.enabled = enabled
        for name in self.STAGES:
            self._add_stage(name)

    def _add_stage(self, name: str):
        self._timings[name] = deque(maxlen=self._window_size)
        self._counts[name] = 0

    @contextmanager
    def stage(self, name: str) -> Iterator[None]:
        """Context manager to time a pipeline stage."""
        if not self.enabled:
            yield
            return

        if name not in self._timings:
            self._add_stage(name)

        t0 = time.perf_counter()
        try:
            yield
        finally:
            self._timings[name].append((time.perf_counter() - t0) * 1000.0)
            self._counts[name] += 1

    def get_stage_stats(self, name: str) -> StageStats | None:
        timings = self._timings.get(name)
        if not timings:
            return None

        values = np.fromiter(timings, dtype=np.float64)
        return StageStats(
            name=name,
            avg_ms=float(values.mean()),
            min_ms=float(values.min()),
            max_ms=float(values.max()),
            p95_ms=float(np.percentile(values, 95)),
            call_count=self._counts[name],
        )

    def summary(self) -> dict[str, dict]:
        """Stats for every stage that has been timed, as plain dicts."""
        result = {}
        for name in self._timings:
            stats = self.get_stage_stats(name)
            if stats is None:
                continue
            result[name] = {
                "avg_ms": round(stats.avg_ms, 3),
                "min_ms": round(stats.min_ms, 3),
                "max_ms": round(stats.max_ms, 3),
                "p95_ms": round(stats.p95_ms, 3),
                "calls": stats.call_count,
            }
        return result

    def reset(self):
        for name in list(self._timings):
            self._timings[name].clear()
            self._counts[name] = 0
