"""
Driving-loop metrics: frame rate, per-stage latency and recognition counts.

Stage latencies come from ``measure(stage)`` blocks in the loop. Pause fires,
rejections and emissions are counted from pipeline events once the monitor
is attached to the event bus.
"""

import time
import logging
from collections import deque
from contextlib import contextmanager
from typing import Deque, Dict, Optional

from signbridge.core.events import EventBus, Events

logger = logging.getLogger(__name__)

_COUNTERS = ("frames", "gaps", "fires", "rejections", "emissions")


class PerformanceMonitor:
    """Rolling-window timing for capture -> detection -> recognition -> render."""

    STAGES = ("capture", "detection", "recognition", "render", "total")

    def __init__(self, window_size: int = 100):
        self._window = window_size
        self._intervals: Deque[float] = deque(maxlen=window_size)
        self._stages: Dict[str, Deque[float]] = {
            stage: deque(maxlen=window_size) for stage in self.STAGES
        }
        self._previous_tick: Optional[float] = None
        self._counts = dict.fromkeys(_COUNTERS, 0)
        self._started = time.time()

    def attach(self, bus: EventBus):
        """Count pause fires and their outcomes from pipeline events."""
        bus.subscribe(Events.PAUSE_FIRED, self._on_fired)
        bus.subscribe(Events.PREDICTION_REJECTED, self._on_rejected)
        bus.subscribe(Events.GESTURE_RECOGNIZED, self._on_recognized)

    @contextmanager
    def measure(self, stage: str):
        """Time the enclosed block as one sample of ``stage`` (in ms)."""
        started = time.perf_counter()
        try:
            yield
        finally:
            samples = self._stages.setdefault(stage, deque(maxlen=self._window))
            samples.append((time.perf_counter() - started) * 1000)

    def tick(self):
        """Mark the end of one loop iteration."""
        now = time.perf_counter()
        if self._previous_tick is not None:
            self._intervals.append(now - self._previous_tick)
        self._previous_tick = now
        self._counts["frames"] += 1

    def record_gap(self):
        """A frame where detection produced no landmarks."""
        self._counts["gaps"] += 1

    def _on_fired(self, **kwargs):
        self._counts["fires"] += 1

    def _on_rejected(self, **kwargs):
        self._counts["rejections"] += 1

    def _on_recognized(self, **kwargs):
        self._counts["emissions"] += 1

    @property
    def fps(self) -> float:
        if len(self._intervals) < 2:
            return 0.0
        mean = sum(self._intervals) / len(self._intervals)
        return 1.0 / mean if mean > 0 else 0.0

    def get_stage_latency(self, stage: str) -> float:
        """Mean latency of ``stage`` over the window, in ms."""
        samples = self._stages.get(stage)
        return sum(samples) / len(samples) if samples else 0.0

    def get_report(self) -> dict:
        counts = self._counts
        return {
            "fps": round(self.fps, 1),
            "total_frames": counts["frames"],
            "gap_frames": counts["gaps"],
            "gap_rate": round(counts["gaps"] / max(counts["frames"], 1) * 100, 2),
            "pause_fires": counts["fires"],
            "rejections": counts["rejections"],
            "emissions": counts["emissions"],
            "uptime_seconds": round(time.time() - self._started, 1),
            "latencies_ms": {
                stage: round(self.get_stage_latency(stage), 2) for stage in self._stages
            },
        }

    def print_report(self):
        report = self.get_report()
        logger.info("=" * 60)
        logger.info("SESSION REPORT")
        logger.info("=" * 60)
        logger.info("Frames:      %d (%d without landmarks, %.1f%%)",
                    report["total_frames"], report["gap_frames"], report["gap_rate"])
        logger.info("FPS:         %.1f", report["fps"])
        logger.info("Pauses:      %d fired, %d rejected, %d emitted",
                    report["pause_fires"], report["rejections"], report["emissions"])
        logger.info("Uptime:      %.1fs", report["uptime_seconds"])
        for stage, latency in report["latencies_ms"].items():
            logger.info("  %-12s %7.2f ms", stage, latency)
        logger.info("=" * 60)

    def reset(self):
        self._intervals.clear()
        self._previous_tick = None
        for samples in self._stages.values():
            samples.clear()
        self._counts = dict.fromkeys(_COUNTERS, 0)
        self._started = time.time()

    @property
    def frame_count(self) -> int:
        return self._counts["frames"]
