"""
Sliding window of the most recent feature vectors.

Feeds the classifier a fixed ``(capacity, feature_dim)`` array, left-padded
with zero rows until enough frames have been collected.
"""

import logging
from collections import deque
from typing import Deque

import numpy as np

logger = logging.getLogger(__name__)


class SequenceBuffer:
    """Bounded FIFO of feature vectors.

    Example:
        >>> buf = SequenceBuffer(capacity=20, feature_dim=258)
        >>> buf.push(vector)
        >>> window = buf.snapshot()   # (20, 258), zero rows first
    """

    def __init__(self, capacity: int, feature_dim: int):
        if capacity < 1:
            raise ValueError("capacity must be >= 1, got %r" % capacity)
        if feature_dim < 0:
            raise ValueError("feature_dim must be >= 0, got %r" % feature_dim)
        self._capacity = capacity
        self._feature_dim = feature_dim
        self._frames: Deque[np.ndarray] = deque(maxlen=capacity)

    def push(self, vector) -> None:
        """Append the newest vector, evicting the oldest when full."""
        self._frames.append(self._conform(vector))

    def snapshot(self) -> np.ndarray:
        """Copy of the window, oldest first, zero rows at the front."""
        window = np.zeros((self._capacity, self._feature_dim), dtype=np.float32)
        n = len(self._frames)
        if n:
            window[self._capacity - n:] = np.stack(self._frames)
        return window

    def latest(self):
        """Most recent vector, or None when empty."""
        return self._frames[-1].copy() if self._frames else None

    def clear(self) -> None:
        self._frames.clear()

    def _conform(self, vector) -> np.ndarray:
        arr = np.asarray(vector, dtype=np.float32).ravel()
        if arr.size == self._feature_dim:
            return arr.copy()
        out = np.zeros(self._feature_dim, dtype=np.float32)
        n = min(arr.size, self._feature_dim)
        out[:n] = arr[:n]
        return out

    def __len__(self):
        return len(self._frames)

    @property
    def real_frames(self) -> int:
        """Number of non-padded rows in the snapshot."""
        return len(self._frames)

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def feature_dim(self) -> int:
        return self._feature_dim

    @property
    def is_full(self) -> bool:
        return len(self._frames) == self._capacity

    @property
    def fill(self) -> float:
        """How full the window is (0.0 - 1.0)."""
        return len(self._frames) / self._capacity
