"""
Shared domain types for the SignBridge recognition core.

Centralizes landmark/observation containers, prediction results and the
label set so that the feature extractor, classifier adapter and controller
agree on one vocabulary.
"""

import time
from dataclasses import dataclass
from typing import Optional, Dict, List, Sequence, Tuple


# =============================================================================
# Landmark cardinalities (MediaPipe Holistic)
# =============================================================================

POSE_LANDMARKS = 33
HAND_LANDMARKS = 21

GROUP_NAMES = ("pose", "left_hand", "right_hand")


# =============================================================================
# Landmarks & Observations
# =============================================================================

@dataclass(frozen=True)
class Landmark:
    """One detected keypoint in normalized image coordinates."""
    x: Optional[float] = 0.0
    y: Optional[float] = 0.0
    z: Optional[float] = 0.0
    visibility: Optional[float] = None

    @classmethod
    def from_any(cls, value) -> "Landmark":
        """Build from a Landmark, a mapping, a sequence or a MediaPipe point."""
        if isinstance(value, Landmark):
            return value
        if isinstance(value, dict):
            return cls(
                x=value.get("x"),
                y=value.get("y"),
                z=value.get("z"),
                visibility=value.get("visibility"),
            )
        if isinstance(value, (list, tuple)):
            padded = list(value) + [None] * (4 - len(value))
            return cls(x=padded[0], y=padded[1], z=padded[2], visibility=padded[3])
        # MediaPipe NormalizedLandmark
        return cls(
            x=getattr(value, "x", None),
            y=getattr(value, "y", None),
            z=getattr(value, "z", None),
            visibility=getattr(value, "visibility", None),
        )


def _to_landmarks(points) -> Optional[Tuple[Landmark, ...]]:
    # an empty group means the part was not detected
    if points is None or len(points) == 0:
        return None
    return tuple(Landmark.from_any(p) for p in points)


@dataclass(frozen=True)
class Observation:
    """One frame's detected landmark groups.

    Any group may be ``None`` when that body part was not visible.
    """
    pose: Optional[Tuple[Landmark, ...]] = None
    left_hand: Optional[Tuple[Landmark, ...]] = None
    right_hand: Optional[Tuple[Landmark, ...]] = None
    timestamp: Optional[float] = None

    @property
    def is_empty(self) -> bool:
        return not (self.pose or self.left_hand or self.right_hand)

    @classmethod
    def from_holistic(cls, results, timestamp: Optional[float] = None) -> Optional["Observation"]:
        """Convert a MediaPipe Holistic results object.

        Returns None when nothing was detected so the caller can treat the
        frame as a gap.
        """
        if results is None:
            return None

        def group(name):
            lms = getattr(results, name, None)
            if lms is None:
                return None
            return _to_landmarks(getattr(lms, "landmark", lms))

        observation = cls(
            pose=group("pose_landmarks"),
            left_hand=group("left_hand_landmarks"),
            right_hand=group("right_hand_landmarks"),
            timestamp=timestamp,
        )
        return None if observation.is_empty else observation

    @classmethod
    def from_dict(cls, data: dict) -> "Observation":
        """Build from a JSON-compatible dict (replay files).

        ``t`` is an optional timestamp in milliseconds.
        """
        t = data.get("t")
        return cls(
            pose=_to_landmarks(data.get("pose")),
            left_hand=_to_landmarks(data.get("left_hand")),
            right_hand=_to_landmarks(data.get("right_hand")),
            timestamp=t / 1000.0 if t is not None else None,
        )


# =============================================================================
# Classification results
# =============================================================================

class PredictionResult:
    """Arg-max label and its probability from one classifier call."""

    __slots__ = ("label", "confidence", "index", "scores")

    def __init__(self, label: str, confidence: float, index: int = -1,
                 scores: Optional[Dict[str, float]] = None):
        self.label = label
        self.confidence = confidence
        self.index = index
        self.scores = scores or {}

    def __repr__(self):
        return f"PredictionResult({self.label}, conf={self.confidence:.2f})"


class Emission:
    """A label accepted by the emission policy."""

    __slots__ = ("label", "confidence", "timestamp")

    def __init__(self, label: str, confidence: float, timestamp: Optional[float] = None):
        self.label = label
        self.confidence = confidence
        self.timestamp = timestamp if timestamp is not None else time.time()

    def __repr__(self):
        return f"Emission({self.label}, conf={self.confidence:.2f})"

    def __eq__(self, other):
        if not isinstance(other, Emission):
            return NotImplemented
        return self.label == other.label and self.confidence == other.confidence

    def __hash__(self):
        return hash((self.label, self.confidence))


class LabelSet:
    """Ordered class labels, index-aligned with the classifier output."""

    __slots__ = ("_labels",)

    def __init__(self, labels: Sequence[str] = ()):
        self._labels: Tuple[str, ...] = tuple(str(label) for label in labels)

    def label_for(self, index: int) -> str:
        if 0 <= index < len(self._labels):
            return self._labels[index]
        return f"class_{index}"

    def __len__(self):
        return len(self._labels)

    def __iter__(self):
        return iter(self._labels)

    def __getitem__(self, index):
        return self._labels[index]

    def __repr__(self):
        return f"LabelSet({len(self._labels)} labels)"

    @property
    def labels(self) -> List[str]:
        return list(self._labels)
