"""
OpenCV webcam source for the live driving loop.

Frames are grabbed synchronously, one per loop iteration, and stamped with
``time.monotonic()`` so pause deadlines are measured against capture time
rather than the time processing finished.
"""

import time
import logging
import cv2

logger = logging.getLogger(__name__)


class CameraManager:
    """Mirrored webcam capture with warmup and lost-device detection."""

    def __init__(self, config: dict):
        self._device_id = config.get("device_id", 0)
        self._size = (config.get("width", 640), config.get("height", 480))
        self._fps = config.get("fps", 30)
        self._mirror = config.get("flip_horizontal", True)
        self._warmup = config.get("warmup_frames", 5)
        self._max_failures = config.get("max_read_failures", 10)

        self._cap = None
        self._consecutive_failures = 0

    def open(self) -> bool:
        cap = cv2.VideoCapture(self._device_id)
        if not cap.isOpened():
            logger.error("Camera %s could not be opened", self._device_id)
            return False

        width, height = self._size
        cap.set(cv2.CAP_PROP_FRAME_WIDTH, width)
        cap.set(cv2.CAP_PROP_FRAME_HEIGHT, height)
        cap.set(cv2.CAP_PROP_FPS, self._fps)

        # auto-exposure settles over the first frames
        for _ in range(self._warmup):
            cap.grab()

        self._cap = cap
        self._consecutive_failures = 0
        logger.info("Camera %s opened at %dx%d",
                    self._device_id,
                    int(cap.get(cv2.CAP_PROP_FRAME_WIDTH)),
                    int(cap.get(cv2.CAP_PROP_FRAME_HEIGHT)))
        return True

    def read(self):
        """Grab one BGR frame.

        Returns:
            (capture_time, frame), or (None, None) when no frame was read
        """
        if self._cap is None:
            return None, None

        ok, frame = self._cap.read()
        captured_at = time.monotonic()
        if not ok or frame is None:
            self._consecutive_failures += 1
            return None, None

        self._consecutive_failures = 0
        return captured_at, cv2.flip(frame, 1) if self._mirror else frame

    @property
    def lost(self) -> bool:
        """More than ``max_read_failures`` reads in a row came back empty."""
        return self._consecutive_failures > self._max_failures

    @property
    def is_open(self) -> bool:
        return self._cap is not None and self._cap.isOpened()

    def stop(self):
        if self._cap is not None:
            self._cap.release()
            self._cap = None
            logger.info("Camera %s released", self._device_id)

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, *args):
        self.stop()
