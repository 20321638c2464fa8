"""
ClassifierAdapter: packages the buffered window for the model and decodes
its output into a PredictionResult.

Input modes (chosen once, from the model's declared input shape):
    [batch, T, D]  temporal     (the whole padded window)
    [batch, D]     single-frame (only the most recent vector)

Output handling:
    scores -> softmax (unless already a distribution) -> arg-max -> label
"""

import logging
from typing import Optional

import numpy as np

from signbridge.core.types import PredictionResult, LabelSet
from signbridge.models.backends import ResourceLoadError, load_model
from signbridge.models.labels import load_labels
from signbridge.modules.utils.logger import log_timing

logger = logging.getLogger(__name__)

TEMPORAL = "temporal"
SINGLE_FRAME = "single_frame"

DEFAULT_SEQUENCE_LENGTH = 20


def softmax(scores: np.ndarray) -> np.ndarray:
    shifted = scores - np.max(scores)
    exp = np.exp(shifted)
    return exp / np.sum(exp)


def _is_distribution(scores: np.ndarray) -> bool:
    return bool(np.all(scores >= 0.0) and np.all(scores <= 1.0)
                and abs(float(np.sum(scores)) - 1.0) < 1e-3)


class ClassifierAdapter:
    """Adapts a sequence model to the recognition controller.

    Usage::

        adapter = ClassifierAdapter(model, labels)
        buffer = SequenceBuffer(adapter.sequence_length, extractor.feature_dim)
        result = adapter.predict(buffer.snapshot(), buffer.real_frames)
    """

    def __init__(self, model, labels: Optional[LabelSet] = None,
                 default_sequence_length: int = DEFAULT_SEQUENCE_LENGTH,
                 min_real_frames: int = 3, output_activation: str = "auto"):
        """
        Args:
            model: object with ``input_shape`` and ``predict(batch)``
            labels: class labels, index-aligned with the model output
            default_sequence_length: window length when the model leaves T open
            min_real_frames: fewer non-padded frames than this -> no prediction
            output_activation: "softmax", "none" or "auto"

        Raises:
            ResourceLoadError: the declared input shape is neither rank 2 nor 3
        """
        if output_activation not in ("softmax", "none", "auto"):
            raise ValueError("output_activation must be softmax, none or auto")

        self._model = model
        self._labels = labels if labels is not None else LabelSet()
        self._min_real_frames = max(0, int(min_real_frames))
        self._activation = output_activation

        shape = tuple(model.input_shape)
        if len(shape) == 3:
            self._mode = TEMPORAL
            self._sequence_length = shape[1] or default_sequence_length
            self._feature_dim = shape[2]
        elif len(shape) == 2:
            self._mode = SINGLE_FRAME
            self._sequence_length = default_sequence_length
            self._feature_dim = shape[1]
        else:
            raise ResourceLoadError(
                "Model input must be [batch, T, D] or [batch, D], got %s" % (shape,)
            )

        self._calls = 0
        self._skipped = 0
        logger.info("Classifier adapter: mode=%s T=%d D=%s labels=%d",
                    self._mode, self._sequence_length, self._feature_dim, len(self._labels))

    @classmethod
    def from_config(cls, config: dict) -> "ClassifierAdapter":
        """Load model and labels from the ``classifier`` config section.

        Raises:
            ResourceLoadError: model or labels failed to load
        """
        model = load_model(
            config.get("model_path"),
            input_shape=config.get("input_shape"),
            device=config.get("device", "cpu"),
        )
        labels = load_labels(config.get("labels_path"))
        return cls(
            model,
            labels,
            default_sequence_length=config.get("default_sequence_length", DEFAULT_SEQUENCE_LENGTH),
            min_real_frames=config.get("min_real_frames", 3),
            output_activation=config.get("output_activation", "auto"),
        )

    # ------------------------------------------------------------------
    # Prediction
    # ------------------------------------------------------------------

    @log_timing
    def predict(self, sequence, real_frames: Optional[int] = None) -> Optional[PredictionResult]:
        """Classify a buffered window.

        Args:
            sequence: array (n, d) of feature vectors, oldest first
            real_frames: how many trailing rows are real (defaults to n)

        Returns:
            PredictionResult, or None when the window cannot be classified
        """
        seq = np.asarray(sequence, dtype=np.float32)
        if seq.ndim == 1:
            seq = seq[np.newaxis]
        if real_frames is None:
            real_frames = seq.shape[0]

        dim = self._feature_dim or (seq.shape[1] if seq.size else 0)
        if not dim:
            self._skipped += 1
            logger.warning("Skipping prediction: classifier input dimension is unknown or 0")
            return None

        if real_frames < self._min_real_frames or real_frames == 0:
            self._skipped += 1
            logger.debug("Skipping prediction: %d real frames < %d",
                         real_frames, self._min_real_frames)
            return None

        batch = self._build_batch(seq, dim)

        try:
            raw = np.asarray(self._model.predict(batch), dtype=np.float64)
        except Exception as e:
            self._skipped += 1
            logger.warning("Model inference error: %s", e)
            return None

        self._calls += 1
        scores = raw[0] if raw.ndim > 1 else raw
        scores = scores.ravel()
        if scores.size == 0:
            logger.warning("Model returned an empty score vector")
            return None

        probs = self._normalize(scores)
        index = int(np.argmax(probs))
        confidence = float(probs[index])
        label = self._labels.label_for(index)

        return PredictionResult(
            label=label,
            confidence=confidence,
            index=index,
            scores={self._labels.label_for(i): float(p) for i, p in enumerate(probs)},
        )

    def _build_batch(self, seq: np.ndarray, dim: int) -> np.ndarray:
        # Conform every frame to D (truncate or zero-pad columns)
        frames = np.zeros((seq.shape[0], dim), dtype=np.float32)
        width = min(dim, seq.shape[1])
        frames[:, :width] = seq[:, :width]

        if self._mode == SINGLE_FRAME:
            return frames[-1][np.newaxis]

        window = np.zeros((self._sequence_length, dim), dtype=np.float32)
        n = min(self._sequence_length, frames.shape[0])
        window[self._sequence_length - n:] = frames[frames.shape[0] - n:]
        return window[np.newaxis]

    def _normalize(self, scores: np.ndarray) -> np.ndarray:
        if self._activation == "none":
            return scores
        if self._activation == "auto" and _is_distribution(scores):
            return scores
        return softmax(scores)

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def mode(self) -> str:
        return self._mode

    @property
    def sequence_length(self) -> int:
        return self._sequence_length

    @property
    def feature_dim(self) -> Optional[int]:
        return self._feature_dim

    @property
    def labels(self) -> LabelSet:
        return self._labels

    @property
    def stats(self) -> dict:
        return {"mode": self._mode, "calls": self._calls, "skipped": self._skipped}
