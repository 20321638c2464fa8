"""
Recognition controller: per-observation orchestration of the core pipeline.

Architecture:
    Observation -> ObservationFeatureExtractor -> MotionDetector
    -> SequenceBuffer -> PauseScheduler -> ClassifierAdapter
    -> EmissionPolicy -> EventBus (gesture_recognized)

Observations are processed one at a time by the driving loop. The pause
deadline is checked at the start of every tick (and by ``poll`` on frames
without an observation), so classification always runs inside the loop and
never overlaps buffer updates.
"""

import time
import logging
from typing import Callable, Optional

from signbridge.core.events import EventBus, Events
from signbridge.core.types import Emission, Observation
from signbridge.models.classifier_adapter import ClassifierAdapter
from signbridge.models.feature_extractor import ObservationFeatureExtractor
from signbridge.modules.recognition.emission_policy import EmissionPolicy
from signbridge.modules.recognition.motion_detector import MotionDetector
from signbridge.modules.recognition.pause_scheduler import PauseScheduler
from signbridge.modules.recognition.temporal_buffer import SequenceBuffer

logger = logging.getLogger(__name__)


class RecognitionState:
    """All mutable per-session state, cleared as one unit."""

    __slots__ = (
        "buffer", "motion", "scheduler", "policy",
        "last_movement", "current_word", "last_prediction",
        "frames_processed", "fires", "emissions",
    )

    def __init__(self, buffer: SequenceBuffer, motion: MotionDetector,
                 scheduler: PauseScheduler, policy: EmissionPolicy):
        self.buffer = buffer
        self.motion = motion
        self.scheduler = scheduler
        self.policy = policy
        self.last_movement = 0.0
        self.current_word = ""
        self.last_prediction = None
        self.frames_processed = 0
        self.fires = 0
        self.emissions = 0

    def clear(self):
        self.scheduler.cancel()
        self.buffer.clear()
        self.motion.reset()
        self.policy.reset()
        self.last_movement = 0.0
        self.current_word = ""
        self.last_prediction = None

    @property
    def last_vector(self):
        return self.motion.last_vector

    @property
    def last_emitted_label(self) -> Optional[str]:
        return self.policy.last_emitted_label

    @property
    def pause_pending(self) -> bool:
        return self.scheduler.is_waiting


class RecognitionController:
    """Turns a stream of observations into emitted sign labels.

    Example:
        >>> controller = RecognitionController(extractor, adapter)
        >>> while running:
        ...     emission = controller.process(observation)
        ...     if emission:
        ...         print(emission.label)
    """

    def __init__(
        self,
        extractor: ObservationFeatureExtractor,
        adapter: ClassifierAdapter,
        motion_detector: Optional[MotionDetector] = None,
        scheduler: Optional[PauseScheduler] = None,
        policy: Optional[EmissionPolicy] = None,
        event_bus: Optional[EventBus] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._extractor = extractor
        self._adapter = adapter
        self._bus = event_bus or EventBus()
        self._clock = clock

        if adapter.feature_dim and adapter.feature_dim != extractor.feature_dim:
            logger.warning(
                "Feature dimension mismatch: extractor produces %d, model expects %d; "
                "frames will be truncated/zero-padded",
                extractor.feature_dim, adapter.feature_dim,
            )

        self._state = RecognitionState(
            buffer=SequenceBuffer(adapter.sequence_length, extractor.feature_dim),
            motion=motion_detector or MotionDetector(),
            scheduler=scheduler or PauseScheduler(clock=clock),
            policy=policy or EmissionPolicy(),
        )

        self._running = True
        self._classifying = False

    @classmethod
    def from_config(cls, config, event_bus: Optional[EventBus] = None,
                    adapter: Optional[ClassifierAdapter] = None,
                    clock: Callable[[], float] = time.monotonic) -> "RecognitionController":
        """Build the full pipeline from a Config.

        Raises:
            ResourceLoadError: the model or label set failed to load
        """
        adapter = adapter or ClassifierAdapter.from_config(config.resource_section("classifier"))
        return cls(
            extractor=ObservationFeatureExtractor.from_config(config.get_section("features")),
            adapter=adapter,
            motion_detector=MotionDetector.from_config(config.get_section("motion")),
            scheduler=PauseScheduler.from_config(config.get_section("pause"), clock=clock),
            policy=EmissionPolicy.from_config(config.get_section("recognition")),
            event_bus=event_bus,
            clock=clock,
        )

    def _now(self, now: Optional[float]) -> float:
        return self._clock() if now is None else now

    # ------------------------------------------------------------------
    # Per-observation processing
    # ------------------------------------------------------------------

    def process(self, observation: Optional[Observation], now: Optional[float] = None) -> Optional[Emission]:
        """Run one tick of the pipeline.

        Args:
            observation: this frame's landmarks, or None when detection had
                nothing for the frame
            now: timestamp in seconds (defaults to the controller clock)

        Returns:
            The Emission accepted during this tick, if any
        """
        if not self._running:
            return None

        now = self._now(now)
        emission = self.poll(now)

        if observation is None or observation.is_empty:
            self._bus.emit(Events.OBSERVATION_SKIPPED, timestamp=now)
            return emission

        try:
            self._step(observation, now)
        except Exception as e:
            logger.warning("Dropping observation after error: %s", e,
                           exc_info=logger.isEnabledFor(logging.DEBUG))
        return emission

    def poll(self, now: Optional[float] = None) -> Optional[Emission]:
        """Fire the pending pause if its deadline has passed."""
        if not self._running:
            return None
        now = self._now(now)
        if not self._state.scheduler.poll(now):
            return None
        return self._fire(now)

    def _step(self, observation: Observation, now: float):
        state = self._state

        vector = self._extractor.extract(observation)
        if vector.size == 0:
            return

        sample = state.motion.update(vector)
        state.last_movement = sample.delta
        state.buffer.push(vector)
        state.frames_processed += 1

        if sample.moving:
            if state.scheduler.cancel():
                self._bus.emit(Events.PAUSE_CANCELLED, movement=sample.delta, timestamp=now)
            return

        if state.scheduler.arm(now):
            self._bus.emit(Events.PAUSE_ARMED, pause_ms=state.scheduler.pause_ms, timestamp=now)

    def _fire(self, now: float) -> Optional[Emission]:
        """Classify the buffered window and apply the emission policy."""
        if self._classifying:
            logger.debug("Classification already in progress, fire ignored")
            return None

        state = self._state
        self._classifying = True
        try:
            state.fires += 1
            self._bus.emit(Events.PAUSE_FIRED, real_frames=state.buffer.real_frames, timestamp=now)

            prediction = self._adapter.predict(state.buffer.snapshot(), state.buffer.real_frames)
            state.last_prediction = prediction

            decision = state.policy.evaluate(prediction)
            if not decision.accepted:
                if prediction is not None:
                    self._bus.emit(
                        Events.PREDICTION_REJECTED,
                        label=prediction.label,
                        confidence=prediction.confidence,
                        reason=decision.reason,
                    )
                return None

            emission = Emission(prediction.label, prediction.confidence, timestamp=now)
            state.current_word = emission.label
            state.emissions += 1
            logger.debug("Emitting %s (%.2f)", emission.label, emission.confidence)
            self._bus.emit(
                Events.GESTURE_RECOGNIZED,
                label=emission.label,
                confidence=emission.confidence,
                timestamp=now,
            )
            return emission
        except Exception as e:
            logger.warning("Classification step failed: %s", e)
            return None
        finally:
            self._classifying = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def reset(self):
        """Clear buffers and pending pause (user "clear" action)."""
        self._state.clear()
        self._bus.emit(Events.PIPELINE_RESET)
        logger.info("Recognition state reset")

    def shutdown(self):
        """Stream teardown: clear state and stop accepting observations."""
        if not self._running:
            return
        self._state.clear()
        self._state.scheduler.shutdown()
        self._running = False
        self._bus.emit(Events.PIPELINE_RESET)
        self._bus.emit(Events.SYSTEM_SHUTDOWN)
        logger.info("Recognition controller stopped")

    def start(self):
        """Re-open after shutdown()."""
        if self._running:
            return
        self._state.scheduler.restart()
        self._running = True
        self._bus.emit(Events.SYSTEM_STARTED)
        logger.info("Recognition controller started")

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def build_state(self, now: Optional[float] = None) -> dict:
        """State dict for display and logging."""
        state = self._state
        prediction = state.last_prediction
        return {
            "running": self._running,
            "pause_state": state.scheduler.state.value,
            "pause_remaining_ms": state.scheduler.remaining_ms(self._now(now)),
            "buffer_fill": state.buffer.fill,
            "movement": state.last_movement,
            "current_word": state.current_word,
            "last_label": state.last_emitted_label,
            "last_prediction": prediction.label if prediction else None,
            "last_confidence": prediction.confidence if prediction else 0.0,
            "frames_processed": state.frames_processed,
            "fires": state.fires,
            "emissions": state.emissions,
        }

    @property
    def state(self) -> RecognitionState:
        return self._state

    @property
    def event_bus(self) -> EventBus:
        return self._bus

    @property
    def adapter(self) -> ClassifierAdapter:
        return self._adapter

    @property
    def extractor(self) -> ObservationFeatureExtractor:
        return self._extractor

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def current_word(self) -> str:
        return self._state.current_word
