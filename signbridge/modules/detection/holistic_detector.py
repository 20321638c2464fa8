"""
MediaPipe Holistic wrapper producing Observations for the recognition core.
"""

import logging
from typing import Optional

import numpy as np
import mediapipe as mp

from signbridge.core.types import Observation

logger = logging.getLogger(__name__)


class HolisticDetector:
    """MediaPipe Holistic (pose + both hands) with live-video settings."""

    def __init__(self, config: dict):
        self._model_complexity = config.get("model_complexity", 1)
        self._smooth_landmarks = config.get("smooth_landmarks", True)
        self._min_detect_conf = config.get("min_detection_confidence", 0.5)
        self._min_track_conf = config.get("min_tracking_confidence", 0.5)

        self._mp_holistic = mp.solutions.holistic
        self._mp_drawing = mp.solutions.drawing_utils

        self._holistic = None
        self._initialized = False

    def initialize(self):
        """Initialize MediaPipe Holistic solution."""
        self._holistic = self._mp_holistic.Holistic(
            static_image_mode=False,
            model_complexity=self._model_complexity,
            smooth_landmarks=self._smooth_landmarks,
            refine_face_landmarks=False,
            min_detection_confidence=self._min_detect_conf,
            min_tracking_confidence=self._min_track_conf,
        )
        self._initialized = True
        logger.info(
            "MediaPipe Holistic initialized (complexity=%d, detect_conf=%.2f, track_conf=%.2f)",
            self._model_complexity, self._min_detect_conf, self._min_track_conf,
        )

    def detect(self, rgb_frame: np.ndarray):
        """Run Holistic on an RGB frame and return the raw results."""
        if not self._initialized:
            self.initialize()

        rgb_frame.flags.writeable = False
        results = self._holistic.process(rgb_frame)
        rgb_frame.flags.writeable = True
        return results

    def observe(self, rgb_frame: np.ndarray, timestamp: Optional[float] = None):
        """Detect and convert in one step.

        Returns:
            (Observation or None, raw results)
        """
        results = self.detect(rgb_frame)
        return Observation.from_holistic(results, timestamp=timestamp), results

    def draw_landmarks(self, frame: np.ndarray, results):
        """Draw pose and hand landmarks on a BGR frame."""
        if results is None:
            return frame
        hand_spec = self._mp_drawing.DrawingSpec(color=(129, 185, 16), thickness=1, circle_radius=2)
        pose_spec = self._mp_drawing.DrawingSpec(color=(139, 116, 100), thickness=1, circle_radius=1)

        if results.pose_landmarks:
            self._mp_drawing.draw_landmarks(
                frame, results.pose_landmarks, self._mp_holistic.POSE_CONNECTIONS,
                pose_spec, pose_spec,
            )
        for hand in (results.left_hand_landmarks, results.right_hand_landmarks):
            if hand:
                self._mp_drawing.draw_landmarks(
                    frame, hand, self._mp_holistic.HAND_CONNECTIONS,
                    hand_spec, hand_spec,
                )
        return frame

    def close(self):
        """Release MediaPipe resources."""
        if self._holistic:
            self._holistic.close()
            self._holistic = None
            self._initialized = False
            logger.info("MediaPipe Holistic closed")

    def __enter__(self):
        self.initialize()
        return self

    def __exit__(self, *args):
        self.close()
