"""
SignBridge Recognition Core
===========================

Turns a live stream of body/hand landmark observations into recognized
sign labels and an aggregated sentence.

Modules:
    - core: domain types, event bus, recognition controller
    - models: feature extraction, model backends, classifier adapter
    - modules.recognition: motion, buffering, pause and emission policy
    - modules.capture / modules.detection: camera and MediaPipe Holistic
    - modules.utils: configuration, logging, performance monitoring
"""

__version__ = "1.0.0"
__author__ = "SignBridge Team"
