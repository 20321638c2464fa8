"""Aggregates recognized labels into a space-joined sentence."""

import logging
from typing import List, Optional

from signbridge.core.events import EventBus, Events

logger = logging.getLogger(__name__)


class SentenceAggregator:
    """Collects emitted labels; clears on pipeline reset.

    Subscribes itself when given an event bus.
    """

    def __init__(self, event_bus: Optional[EventBus] = None, max_words: Optional[int] = None):
        self._words: List[str] = []
        self._current_word = ""
        self._max_words = max_words

        if event_bus is not None:
            event_bus.subscribe(Events.GESTURE_RECOGNIZED, self._on_recognized)
            event_bus.subscribe(Events.PIPELINE_RESET, self._on_reset)

    def append(self, label: str):
        if not label:
            return
        self._words.append(label)
        if self._max_words and len(self._words) > self._max_words:
            self._words = self._words[-self._max_words:]
        self._current_word = label
        logger.debug("Sentence: %s", self.sentence)

    def clear(self):
        self._words.clear()
        self._current_word = ""

    def _on_recognized(self, label: str, **kwargs):
        self.append(label)

    def _on_reset(self, **kwargs):
        self.clear()

    @property
    def sentence(self) -> str:
        return " ".join(self._words)

    @property
    def current_word(self) -> str:
        return self._current_word

    @property
    def words(self) -> List[str]:
        return list(self._words)
