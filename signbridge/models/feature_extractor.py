"""
Feature extraction: one Holistic observation -> fixed-length feature vector.

Feature layout (258 dimensions with the defaults):
    [0:132]    Pose landmarks (33 x (x, y, z, visibility))
    [132:195]  Left hand landmarks (21 x (x, y, z))
    [195:258]  Right hand landmarks (21 x (x, y, z))

The block order and the pose visibility channel must match what the
classifier was trained on, so both are configuration constants.
Missing groups are zero-filled; the vector length never changes.
"""

import logging
from typing import Optional, Sequence

import numpy as np

from signbridge.core.types import Observation, Landmark, POSE_LANDMARKS, HAND_LANDMARKS

logger = logging.getLogger(__name__)


def _coord(value) -> float:
    return 0.0 if value is None else float(value)


class ObservationFeatureExtractor:
    """Converts an Observation into a constant-length float32 vector."""

    def __init__(self, pose_landmarks: int = POSE_LANDMARKS,
                 hand_landmarks: int = HAND_LANDMARKS,
                 include_pose_visibility: bool = True):
        self._pose_count = pose_landmarks
        self._hand_count = hand_landmarks
        self._include_visibility = include_pose_visibility

        self._pose_channels = 4 if include_pose_visibility else 3
        self._pose_width = self._pose_count * self._pose_channels
        self._hand_width = self._hand_count * 3
        self._feature_dim = self._pose_width + 2 * self._hand_width

    @classmethod
    def from_config(cls, config: dict) -> "ObservationFeatureExtractor":
        """Create from the ``features`` config section."""
        return cls(
            pose_landmarks=config.get("pose_landmarks", POSE_LANDMARKS),
            hand_landmarks=config.get("hand_landmarks", HAND_LANDMARKS),
            include_pose_visibility=config.get("include_pose_visibility", True),
        )

    @property
    def feature_dim(self) -> int:
        return self._feature_dim

    @property
    def include_pose_visibility(self) -> bool:
        return self._include_visibility

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def extract(self, observation: Optional[Observation]) -> np.ndarray:
        """Convert one observation -> (feature_dim,) vector.

        Args:
            observation: Observation with optional pose/left/right groups.
                ``None`` yields an all-zero vector.

        Returns:
            np.ndarray of shape (feature_dim,), dtype float32
        """
        features = np.zeros(self._feature_dim, dtype=np.float32)
        if observation is None:
            return features

        offset = 0
        features[offset:offset + self._pose_width] = self._group_block(
            observation.pose, self._pose_count, self._include_visibility)
        offset += self._pose_width

        features[offset:offset + self._hand_width] = self._group_block(
            observation.left_hand, self._hand_count, False)
        offset += self._hand_width

        features[offset:offset + self._hand_width] = self._group_block(
            observation.right_hand, self._hand_count, False)

        return features

    def extract_batch(self, observations: Sequence[Observation]) -> np.ndarray:
        """Extract a batch of observations -> (N, feature_dim)."""
        out = np.zeros((len(observations), self._feature_dim), dtype=np.float32)
        for i, observation in enumerate(observations):
            out[i] = self.extract(observation)
        return out

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _group_block(landmarks: Optional[Sequence[Landmark]], count: int,
                     include_visibility: bool) -> np.ndarray:
        channels = 4 if include_visibility else 3
        block = np.zeros((count, channels), dtype=np.float32)
        if landmarks is None:
            return block.ravel()

        if len(landmarks) != count:
            logger.debug("Landmark group has %d points, expected %d", len(landmarks), count)

        for i, lm in enumerate(landmarks[:count]):
            block[i, 0] = _coord(lm.x)
            block[i, 1] = _coord(lm.y)
            block[i, 2] = _coord(lm.z)
            if include_visibility:
                block[i, 3] = _coord(lm.visibility)
        return block.ravel()
