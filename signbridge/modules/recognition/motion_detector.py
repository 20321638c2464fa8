"""
Frame-to-frame motion detection.

Classifies each feature vector as "moving" or "still" by its mean absolute
difference from the previous vector. The first vector of a session has no
predecessor and is treated as still.
"""

import logging
from typing import Optional, NamedTuple

import numpy as np

logger = logging.getLogger(__name__)


def motion_delta(prev, curr) -> float:
    """Mean absolute per-dimension difference over the overlapping length."""
    a = np.asarray(prev, dtype=np.float32).ravel()
    b = np.asarray(curr, dtype=np.float32).ravel()
    n = min(a.size, b.size)
    if n == 0:
        return 0.0
    return float(np.mean(np.abs(a[:n] - b[:n])))


class MotionSample(NamedTuple):
    delta: float
    moving: bool


class MotionDetector:
    """Tracks the last vector and thresholds the motion delta."""

    def __init__(self, movement_threshold: float = 0.02):
        if movement_threshold < 0:
            raise ValueError("movement_threshold must be >= 0")
        self._threshold = movement_threshold
        self._last_vector: Optional[np.ndarray] = None
        self._last_delta = 0.0

    @classmethod
    def from_config(cls, config: dict) -> "MotionDetector":
        return cls(movement_threshold=config.get("movement_threshold", 0.02))

    def update(self, vector: np.ndarray) -> MotionSample:
        """Compare against the previous vector, then remember this one."""
        if self._last_vector is None:
            delta = 0.0
        else:
            delta = motion_delta(self._last_vector, vector)
        self._last_vector = np.array(vector, dtype=np.float32, copy=True)
        self._last_delta = delta
        return MotionSample(delta=delta, moving=self.is_moving(delta))

    def is_moving(self, delta: float) -> bool:
        return delta > self._threshold

    def reset(self):
        self._last_vector = None
        self._last_delta = 0.0

    @property
    def threshold(self) -> float:
        return self._threshold

    @property
    def last_vector(self) -> Optional[np.ndarray]:
        return self._last_vector

    @property
    def last_delta(self) -> float:
        return self._last_delta
