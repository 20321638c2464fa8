"""
Event bus connecting the recognition controller to its observers.

The controller publishes pause and emission events; the sentence aggregator,
the recognition logger, the performance monitor and the live display
subscribe. Each pipeline owns its own bus.

Usage:
    bus = EventBus()
    bus.subscribe(Events.GESTURE_RECOGNIZED, on_sign)
    bus.emit(Events.GESTURE_RECOGNIZED, label="HELLO", confidence=0.92)
"""

import time
import logging
import threading
from collections import defaultdict, deque
from typing import Callable, Dict, List, Tuple

logger = logging.getLogger(__name__)


def _name(callback) -> str:
    return getattr(callback, "__qualname__", None) or repr(callback)


class EventBus:
    """Synchronous publish/subscribe with priority-ordered listeners.

    Listeners run in the emitting thread, highest priority first, ties in
    subscription order. A failing listener is logged and skipped.
    """

    def __init__(self, max_history: int = 100):
        self._listeners: Dict[str, List[Tuple[int, Callable]]] = defaultdict(list)
        self._lock = threading.Lock()
        self._history = deque(maxlen=max_history)
        self._enabled = True

    def subscribe(self, event_name: str, callback: Callable, priority: int = 0):
        """Register ``callback(**payload)`` for ``event_name``."""
        with self._lock:
            listeners = self._listeners[event_name]
            listeners.append((priority, callback))
            # stable sort keeps subscription order within a priority
            listeners.sort(key=lambda entry: -entry[0])
        logger.debug("%s subscribed to '%s' (priority=%d)", _name(callback), event_name, priority)

    def unsubscribe(self, event_name: str, callback: Callable):
        with self._lock:
            remaining = [entry for entry in self._listeners.get(event_name, ()) if entry[1] is not callback]
            if remaining:
                self._listeners[event_name] = remaining
            else:
                self._listeners.pop(event_name, None)

    def emit(self, event_name: str, **payload) -> int:
        """Deliver ``payload`` to every listener. Returns how many ran cleanly."""
        if not self._enabled:
            return 0

        with self._lock:
            listeners = list(self._listeners.get(event_name, ()))
        self._history.append((time.time(), event_name, tuple(payload)))

        delivered = 0
        for _, callback in listeners:
            try:
                callback(**payload)
                delivered += 1
            except Exception as e:
                logger.error("Listener %s failed on '%s': %s", _name(callback), event_name, e)
        return delivered

    def set_enabled(self, enabled: bool):
        self._enabled = enabled

    def clear(self, event_name: str = None):
        """Drop listeners for one event, or for all events."""
        with self._lock:
            if event_name is None:
                self._listeners.clear()
            else:
                self._listeners.pop(event_name, None)

    @property
    def registered_events(self) -> list:
        with self._lock:
            return list(self._listeners)

    @property
    def listener_count(self) -> int:
        with self._lock:
            return sum(len(entries) for entries in self._listeners.values())

    def get_history(self, last_n: int = 10) -> list:
        """Most recent emissions as dicts: event, time, data_keys."""
        recent = list(self._history)[-last_n:]
        return [
            {"event": name, "time": at, "data_keys": list(keys)}
            for at, name, keys in recent
        ]


# =============================================================================
# Event names
# =============================================================================

class Events:
    """Event names published by the recognition pipeline."""

    # Per observation
    OBSERVATION_SKIPPED = "observation_skipped"    # timestamp
    PAUSE_ARMED = "pause_armed"                    # pause_ms, timestamp
    PAUSE_CANCELLED = "pause_cancelled"            # movement, timestamp
    PAUSE_FIRED = "pause_fired"                    # real_frames, timestamp

    # Classification outcome
    PREDICTION_REJECTED = "prediction_rejected"    # label, confidence, reason
    GESTURE_RECOGNIZED = "gesture_recognized"      # label, confidence, timestamp

    # Lifecycle
    PIPELINE_RESET = "pipeline_reset"
    SYSTEM_STARTED = "system_started"
    SYSTEM_SHUTDOWN = "system_shutdown"
