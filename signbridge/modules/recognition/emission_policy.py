"""
Emission policy: confidence gating and repeat suppression.

A prediction becomes a sentence word only if its confidence reaches the
threshold and its label differs from the previously emitted label, so a
single held sign does not repeat across several pause cycles.
"""

import logging
from collections import deque
from typing import Optional, Dict, NamedTuple

import numpy as np

from signbridge.core.types import PredictionResult

logger = logging.getLogger(__name__)


ACCEPTED = "accepted"
LOW_CONFIDENCE = "low_confidence"
REPEAT = "repeat"
NO_PREDICTION = "no_prediction"


class EmissionDecision(NamedTuple):
    accepted: bool
    reason: str
    prediction: Optional[PredictionResult]


class EmissionPolicy:
    """Decides which predictions are emitted."""

    def __init__(self, confidence_threshold: float = 0.6, suppress_repeats: bool = True,
                 per_label_thresholds: Optional[Dict[str, float]] = None):
        self._default_threshold = confidence_threshold
        self._thresholds = dict(per_label_thresholds or {})
        self._suppress_repeats = suppress_repeats
        self._last_emitted: Optional[str] = None

        # Confidence history per label for statistics
        self._history: Dict[str, deque] = {}

    @classmethod
    def from_config(cls, config: dict) -> "EmissionPolicy":
        """Create from the ``recognition`` config section."""
        return cls(
            confidence_threshold=config.get("confidence_threshold", 0.6),
            suppress_repeats=config.get("suppress_repeats", True),
            per_label_thresholds=config.get("label_thresholds") or {},
        )

    def get_threshold(self, label: str) -> float:
        return self._thresholds.get(label, self._default_threshold)

    def evaluate(self, prediction: Optional[PredictionResult]) -> EmissionDecision:
        """Accept or reject one prediction; accepting updates the last label."""
        if prediction is None:
            return EmissionDecision(False, NO_PREDICTION, None)

        self._record(prediction.label, prediction.confidence)

        threshold = self.get_threshold(prediction.label)
        # compare at float32, the precision classifiers emit scores in
        if np.float32(prediction.confidence) < np.float32(threshold):
            logger.debug("Rejected %s: confidence %.3f < %.3f",
                         prediction.label, prediction.confidence, threshold)
            return EmissionDecision(False, LOW_CONFIDENCE, prediction)

        if self._suppress_repeats and prediction.label == self._last_emitted:
            logger.debug("Suppressed repeat of %s", prediction.label)
            return EmissionDecision(False, REPEAT, prediction)

        self._last_emitted = prediction.label
        return EmissionDecision(True, ACCEPTED, prediction)

    def reset(self):
        """Forget the last emitted label."""
        self._last_emitted = None

    @property
    def last_emitted_label(self) -> Optional[str]:
        return self._last_emitted

    def _record(self, label: str, confidence: float):
        if label not in self._history:
            self._history[label] = deque(maxlen=200)
        self._history[label].append(confidence)

    def get_stats(self, label: str) -> dict:
        """Confidence statistics for a label."""
        values = self._history.get(label)
        if not values:
            return {"count": 0, "mean": 0.0, "min": 0.0, "max": 0.0}
        arr = np.array(values)
        return {
            "count": len(values),
            "mean": round(float(arr.mean()), 3),
            "min": round(float(arr.min()), 3),
            "max": round(float(arr.max()), 3),
        }

    def get_all_stats(self) -> dict:
        return {label: self.get_stats(label) for label in self._history}
