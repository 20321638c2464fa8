"""
ML model package for sign classification.

Provides:
    - ObservationFeatureExtractor: Observation -> fixed-length feature vector
    - ClassifierAdapter: buffered window -> PredictionResult
    - load_model / load_labels: startup resource loading
"""

__all__ = [
    "ObservationFeatureExtractor",
    "ClassifierAdapter",
    "load_model",
    "load_labels",
]
