"""
Pause debouncer: turns sustained stillness into one "gesture complete" fire.

States:
    ARMED    - no pending trigger
    WAITING  - a trigger is due ``pause_ms`` after the first still frame

Transitions (driven by the recognition controller):
    arm()     ARMED -> WAITING          (no-op while WAITING)
    cancel()  WAITING -> ARMED          (movement before the deadline)
    poll()    WAITING -> fire -> ARMED  (deadline reached, fires once)

The scheduler holds a single deadline instead of a background timer, so at
most one trigger can be pending and nothing runs outside the driving loop.
"""

import time
import logging
from enum import Enum
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class PauseState(Enum):
    ARMED = "armed"
    WAITING = "waiting"


class PauseScheduler:
    """Single cancellable deadline polled by the driving loop."""

    def __init__(self, pause_ms: float = 600, clock: Callable[[], float] = time.monotonic):
        if pause_ms < 0:
            raise ValueError("pause_ms must be >= 0")
        self._pause_ms = float(pause_ms)
        self._clock = clock

        self._state = PauseState.ARMED
        self._deadline: Optional[float] = None  # seconds, clock domain
        self._armed_at: Optional[float] = None
        self._active = True
        self._fire_count = 0

    @classmethod
    def from_config(cls, config: dict, clock: Callable[[], float] = time.monotonic) -> "PauseScheduler":
        return cls(pause_ms=config.get("pause_ms", 600), clock=clock)

    def _now(self, now: Optional[float]) -> float:
        return self._clock() if now is None else now

    def arm(self, now: Optional[float] = None) -> bool:
        """Schedule a fire ``pause_ms`` from now. Returns True if newly armed."""
        if not self._active or self._state is PauseState.WAITING:
            return False
        now = self._now(now)
        self._state = PauseState.WAITING
        self._armed_at = now
        self._deadline = now + self._pause_ms / 1000.0
        logger.debug("Pause armed, fires in %.0fms", self._pause_ms)
        return True

    def cancel(self) -> bool:
        """Drop the pending fire. Returns True if one was pending."""
        if self._state is not PauseState.WAITING:
            return False
        self._state = PauseState.ARMED
        self._deadline = None
        self._armed_at = None
        logger.debug("Pause cancelled by movement")
        return True

    def poll(self, now: Optional[float] = None) -> bool:
        """Return True exactly once when the pending deadline has passed."""
        if not self._active or self._state is not PauseState.WAITING:
            return False
        now = self._now(now)
        if now < self._deadline:
            return False
        held_ms = (now - self._armed_at) * 1000
        self._state = PauseState.ARMED
        self._deadline = None
        self._armed_at = None
        self._fire_count += 1
        logger.debug("Pause fired after %.0fms of stillness", held_ms)
        return True

    def remaining_ms(self, now: Optional[float] = None) -> float:
        """Milliseconds until the pending fire (0 when nothing is pending)."""
        if self._state is not PauseState.WAITING:
            return 0.0
        return max(0.0, (self._deadline - self._now(now)) * 1000)

    def shutdown(self):
        """Cancel and refuse to arm again until restart()."""
        self.cancel()
        self._active = False

    def restart(self):
        self._active = True

    @property
    def state(self) -> PauseState:
        return self._state

    @property
    def is_waiting(self) -> bool:
        return self._state is PauseState.WAITING

    @property
    def is_active(self) -> bool:
        return self._active

    @property
    def pause_ms(self) -> float:
        return self._pause_ms

    @property
    def fire_count(self) -> int:
        return self._fire_count
