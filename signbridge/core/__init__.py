"""Core domain types and event bus."""
from .types import (
    Landmark,
    Observation,
    PredictionResult,
    Emission,
    LabelSet,
    POSE_LANDMARKS,
    HAND_LANDMARKS,
)
from .events import EventBus, Events

__all__ = [
    "Landmark",
    "Observation",
    "PredictionResult",
    "Emission",
    "LabelSet",
    "POSE_LANDMARKS",
    "HAND_LANDMARKS",
    "EventBus",
    "Events",
]
