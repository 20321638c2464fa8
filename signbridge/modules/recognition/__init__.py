"""Gesture segmentation and emission."""
from .motion_detector import MotionDetector, motion_delta
from .temporal_buffer import SequenceBuffer
from .pause_scheduler import PauseScheduler, PauseState
from .emission_policy import EmissionPolicy
from .sentence import SentenceAggregator

__all__ = [
    "MotionDetector",
    "motion_delta",
    "SequenceBuffer",
    "PauseScheduler",
    "PauseState",
    "EmissionPolicy",
    "SentenceAggregator",
]
