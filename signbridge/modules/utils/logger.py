"""
Logging setup and the recognition event log.
"""

import os
import logging
import logging.handlers
import time
from collections import deque
from functools import wraps

CONSOLE_FORMAT = "%(asctime)s  %(levelname)-5s  %(message)s"
FILE_FORMAT = "%(asctime)s [%(levelname)-7s] %(name)-40s | %(message)s"
DATE_FORMAT = "%H:%M:%S"

# Chatty third-party loggers (MediaPipe logs through absl)
NOISY_LOGGERS = ("absl", "matplotlib", "PIL")


def setup_logging(level="INFO", log_file=None, max_size_mb=10, backup_count=3):
    """Configure the root logger: console always, rotating file if ``log_file``."""
    level = getattr(logging, str(level).upper(), logging.INFO)

    handlers = []
    console = logging.StreamHandler()
    console.setLevel(level)
    console.setFormatter(logging.Formatter(CONSOLE_FORMAT, datefmt=DATE_FORMAT))
    handlers.append(console)

    if log_file:
        os.makedirs(os.path.dirname(log_file) or ".", exist_ok=True)
        rotating = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=int(max_size_mb * 1024 * 1024),
            backupCount=backup_count,
        )
        rotating.setLevel(logging.DEBUG)
        rotating.setFormatter(logging.Formatter(FILE_FORMAT, datefmt=DATE_FORMAT))
        handlers.append(rotating)

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(logging.DEBUG if log_file else level)
    for handler in handlers:
        root.addHandler(handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return root


class RecognitionLogger:
    """Keeps a bounded history of emitted labels and logs each one.

    Subscribe ``on_recognized`` to ``Events.GESTURE_RECOGNIZED``.
    """

    def __init__(self, max_history=500):
        self.logger = logging.getLogger("signbridge.recognitions")
        self._history = deque(maxlen=max_history)
        self._last_time = None

    def log_recognition(self, label, confidence, timestamp=None):
        now = timestamp if timestamp is not None else time.time()
        gap_s = now - self._last_time if self._last_time is not None else None
        self._last_time = now

        self._history.append({
            "timestamp": now,
            "label": label,
            "confidence": confidence,
            "since_previous_s": gap_s,
        })
        self.logger.info(
            "Sign: %-15s | Confidence: %.2f | Since previous: %s",
            label, confidence, "%.1fs" % gap_s if gap_s is not None else "-",
        )

    def on_recognized(self, label, confidence, timestamp=None, **kwargs):
        self.log_recognition(label, confidence, timestamp)

    def get_history(self, last_n=None):
        history = list(self._history)
        return history[-last_n:] if last_n else history

    @property
    def total_recognitions(self):
        return len(self._history)


def log_timing(func):
    """Debug-log how long each call of ``func`` takes."""
    logger = logging.getLogger(func.__module__)

    @wraps(func)
    def wrapper(*args, **kwargs):
        if not logger.isEnabledFor(logging.DEBUG):
            return func(*args, **kwargs)
        start = time.perf_counter()
        try:
            return func(*args, **kwargs)
        finally:
            logger.debug("%s took %.2fms", func.__qualname__,
                         (time.perf_counter() - start) * 1000)

    return wrapper
