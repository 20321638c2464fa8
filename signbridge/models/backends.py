"""
Model backends behind the classifier adapter.

Every backend exposes the same two things:
    input_shape  - declared input shape including the batch dim,
                   ``None`` for dimensions the model leaves symbolic
    predict(x)   - np.ndarray batch in, per-class scores out

Backends:
    1. ONNX Runtime  (.onnx, shape read from the graph)
    2. TorchScript   (.pt / .pth / .ts, shape supplied by config)
    3. Callable      (any python function, used for embedding and tests)
"""

import os
import logging
from typing import Callable, Optional, Sequence, Tuple

import numpy as np

logger = logging.getLogger(__name__)

# PyTorch is optional; only TorchScript models need it
try:
    import torch
    TORCH_AVAILABLE = True
except ImportError:
    TORCH_AVAILABLE = False
    logger.debug("PyTorch not available, TorchScriptModel disabled")


class ResourceLoadError(RuntimeError):
    """A model or label set could not be loaded at startup."""


Shape = Tuple[Optional[int], ...]


def _normalize_shape(shape) -> Shape:
    """Symbolic / negative / zero-sized dims become None."""
    dims = []
    for dim in shape:
        if isinstance(dim, (int, np.integer)) and int(dim) > 0:
            dims.append(int(dim))
        else:
            dims.append(None)
    return tuple(dims)


class CallableModel:
    """Wraps a function ``fn(batch) -> scores`` with a declared shape."""

    def __init__(self, fn: Callable[[np.ndarray], np.ndarray], input_shape: Sequence):
        self._fn = fn
        self._input_shape = _normalize_shape(input_shape)

    @property
    def input_shape(self) -> Shape:
        return self._input_shape

    def predict(self, batch: np.ndarray) -> np.ndarray:
        return np.asarray(self._fn(batch))


class OnnxSequenceModel:
    """ONNX Runtime session; the input shape comes from the graph."""

    def __init__(self, model_path: str, providers: Optional[Sequence[str]] = None):
        if not os.path.isfile(model_path):
            raise ResourceLoadError("ONNX model not found: %s" % model_path)

        import onnxruntime as ort

        providers = list(providers or ["CUDAExecutionProvider", "CPUExecutionProvider"])
        available = set(ort.get_available_providers())
        providers = [p for p in providers if p in available] or ["CPUExecutionProvider"]

        try:
            self._session = ort.InferenceSession(model_path, providers=providers)
        except Exception as e:
            raise ResourceLoadError("Failed to load ONNX model %s: %s" % (model_path, e)) from e

        model_input = self._session.get_inputs()[0]
        self._input_name = model_input.name
        self._input_shape = _normalize_shape(model_input.shape)
        logger.info("ONNX model loaded from %s (input %s %s)",
                    model_path, self._input_name, self._input_shape)

    @property
    def input_shape(self) -> Shape:
        return self._input_shape

    def predict(self, batch: np.ndarray) -> np.ndarray:
        batch = np.asarray(batch, dtype=np.float32)
        return self._session.run(None, {self._input_name: batch})[0]


class TorchScriptModel:
    """TorchScript module; TorchScript carries no shape so it is configured."""

    def __init__(self, model_path: str, input_shape: Sequence, device: str = "cpu"):
        if not TORCH_AVAILABLE:
            raise ResourceLoadError(
                "PyTorch is required for TorchScript models. "
                "Install with: pip install signbridge[torch]"
            )
        if not os.path.isfile(model_path):
            raise ResourceLoadError("TorchScript model not found: %s" % model_path)

        try:
            self._module = torch.jit.load(model_path, map_location=device)
        except Exception as e:
            raise ResourceLoadError("Failed to load TorchScript model %s: %s" % (model_path, e)) from e

        self._module.eval()
        self._device = device
        self._input_shape = _normalize_shape(input_shape)
        logger.info("TorchScript model loaded from %s on %s", model_path, device)

    @property
    def input_shape(self) -> Shape:
        return self._input_shape

    def predict(self, batch: np.ndarray) -> np.ndarray:
        tensor = torch.from_numpy(np.asarray(batch, dtype=np.float32)).to(self._device)
        with torch.no_grad():
            out = self._module(tensor)
        return out.cpu().numpy()


def load_model(model_path: str, input_shape: Optional[Sequence] = None, device: str = "cpu"):
    """Load a model by file extension.

    Raises:
        ResourceLoadError: missing file, unknown format or load failure
    """
    if not model_path:
        raise ResourceLoadError("No classifier model configured (classifier.model_path)")

    ext = os.path.splitext(model_path)[1].lower()
    if ext == ".onnx":
        return OnnxSequenceModel(model_path)
    if ext in (".pt", ".pth", ".ts"):
        if input_shape is None:
            raise ResourceLoadError(
                "TorchScript model %s needs classifier.input_shape in config" % model_path
            )
        return TorchScriptModel(model_path, input_shape, device=device)
    raise ResourceLoadError("Unsupported model format: %s" % model_path)
