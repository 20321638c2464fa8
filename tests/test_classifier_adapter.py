"""
Tests for the Classifier Adapter, Model Backends and Label Loading
===================================================================
"""

import json

import pytest
import numpy as np

from signbridge.core.types import LabelSet
from signbridge.models.backends import CallableModel, ResourceLoadError, load_model
from signbridge.models.classifier_adapter import (
    ClassifierAdapter, TEMPORAL, SINGLE_FRAME, softmax,
)
from signbridge.models.labels import load_labels, parse_labels


class RecordingModel:
    """Model stub that records the batches it receives."""

    def __init__(self, input_shape, scores):
        self.input_shape = input_shape
        self.scores = np.asarray(scores)
        self.batches = []

    def predict(self, batch):
        self.batches.append(batch)
        return self.scores[np.newaxis]


def create_window(rows: int, dim: int, value: float = 0.5):
    window = np.zeros((rows, dim), dtype=np.float32)
    for i in range(rows):
        window[i] = value + i
    return window


class TestClassifierAdapterModes:
    """Input mode selection and batch packaging."""

    def test_temporal_mode(self):
        model = RecordingModel((1, 20, 258), [0.1, 0.9])
        adapter = ClassifierAdapter(model, LabelSet(["A", "B"]))
        assert adapter.mode == TEMPORAL
        assert adapter.sequence_length == 20
        assert adapter.feature_dim == 258

        adapter.predict(np.zeros((20, 258)), real_frames=20)
        assert model.batches[0].shape == (1, 20, 258)

    def test_single_frame_mode_uses_latest(self):
        model = RecordingModel((1, 4), [0.2, 0.8])
        adapter = ClassifierAdapter(model, min_real_frames=1)
        assert adapter.mode == SINGLE_FRAME

        adapter.predict(create_window(5, 4), real_frames=5)
        batch = model.batches[0]
        assert batch.shape == (1, 4)
        # Most recent row only
        assert np.all(batch[0] == 4.5)

    def test_symbolic_time_dim_uses_default(self):
        model = RecordingModel((None, None, 6), [1.0])
        adapter = ClassifierAdapter(model, default_sequence_length=12)
        assert adapter.sequence_length == 12

    def test_window_left_padded(self):
        model = RecordingModel((1, 6, 3), [0.5, 0.5])
        adapter = ClassifierAdapter(model, min_real_frames=1)
        adapter.predict(create_window(2, 3), real_frames=2)
        batch = model.batches[0][0]
        assert np.all(batch[:4] == 0.0)
        assert np.all(batch[4] == 0.5)
        assert np.all(batch[5] == 1.5)

    def test_window_keeps_most_recent(self):
        model = RecordingModel((1, 2, 3), [0.5, 0.5])
        adapter = ClassifierAdapter(model, min_real_frames=1)
        adapter.predict(create_window(5, 3), real_frames=5)
        batch = model.batches[0][0]
        np.testing.assert_array_equal(batch[:, 0], [3.5, 4.5])

    def test_feature_columns_conformed(self):
        """Frames wider than the model are truncated, narrower are padded."""
        model = RecordingModel((1, 2, 4), [0.5, 0.5])
        adapter = ClassifierAdapter(model, min_real_frames=1)

        adapter.predict(np.ones((2, 6)), real_frames=2)
        assert model.batches[0].shape == (1, 2, 4)

        adapter.predict(np.ones((2, 2)), real_frames=2)
        np.testing.assert_array_equal(model.batches[1][0, 0], [1, 1, 0, 0])

    def test_unknown_dim_resolved_from_sequence(self):
        model = RecordingModel((None, 3, None), [0.3, 0.7])
        adapter = ClassifierAdapter(model, min_real_frames=1)
        assert adapter.feature_dim is None
        result = adapter.predict(np.ones((3, 5)), real_frames=3)
        assert result is not None
        assert model.batches[0].shape == (1, 3, 5)

    def test_zero_dim_skips(self):
        model = RecordingModel((None, 3, None), [0.3, 0.7])
        adapter = ClassifierAdapter(model, min_real_frames=1)
        assert adapter.predict(np.zeros((3, 0)), real_frames=3) is None
        assert model.batches == []

    def test_invalid_rank(self):
        with pytest.raises(ResourceLoadError):
            ClassifierAdapter(RecordingModel((1, 2, 3, 4), [1.0]))

    def test_invalid_activation(self):
        with pytest.raises(ValueError):
            ClassifierAdapter(RecordingModel((1, 4), [1.0]), output_activation="sigmoid")


class TestClassifierAdapterDecoding:
    """Output decoding into PredictionResult."""

    @pytest.fixture
    def labels(self):
        return LabelSet(["HELLO", "THANKS", "YES"])

    def test_argmax_label(self, labels):
        adapter = ClassifierAdapter(RecordingModel((1, 3, 2), [0.1, 0.7, 0.2]), labels)
        result = adapter.predict(np.ones((3, 2)))
        assert result.label == "THANKS"
        assert result.index == 1
        assert result.confidence == pytest.approx(0.7)
        assert set(result.scores) == {"HELLO", "THANKS", "YES"}

    def test_softmax_applied_to_logits(self, labels):
        logits = [1.0, 3.0, 0.5]
        adapter = ClassifierAdapter(RecordingModel((1, 3, 2), logits), labels)
        result = adapter.predict(np.ones((3, 2)))
        expected = softmax(np.array(logits))
        assert result.label == "THANKS"
        assert result.confidence == pytest.approx(float(expected[1]))
        assert sum(result.scores.values()) == pytest.approx(1.0)

    def test_forced_softmax(self, labels):
        adapter = ClassifierAdapter(RecordingModel((1, 3, 2), [0.1, 0.7, 0.2]), labels,
                                    output_activation="softmax")
        result = adapter.predict(np.ones((3, 2)))
        assert result.confidence < 0.7

    def test_no_activation(self, labels):
        adapter = ClassifierAdapter(RecordingModel((1, 3, 2), [2.0, 5.0, 1.0]), labels,
                                    output_activation="none")
        result = adapter.predict(np.ones((3, 2)))
        assert result.confidence == pytest.approx(5.0)

    def test_missing_label_falls_back(self):
        adapter = ClassifierAdapter(RecordingModel((1, 3, 2), [0.1, 0.1, 0.8]), LabelSet(["A"]))
        result = adapter.predict(np.ones((3, 2)))
        assert result.label == "class_2"

    def test_too_few_real_frames(self, labels):
        model = RecordingModel((1, 5, 2), [0.1, 0.8, 0.1])
        adapter = ClassifierAdapter(model, labels, min_real_frames=3)
        assert adapter.predict(np.ones((5, 2)), real_frames=2) is None
        assert adapter.predict(np.ones((5, 2)), real_frames=0) is None
        assert model.batches == []
        assert adapter.stats["skipped"] == 2

    def test_model_error_returns_none(self, labels):
        def broken(batch):
            raise RuntimeError("inference failed")

        adapter = ClassifierAdapter(CallableModel(broken, (1, 3, 2)), labels)
        assert adapter.predict(np.ones((3, 2))) is None

    def test_empty_output_returns_none(self, labels):
        adapter = ClassifierAdapter(CallableModel(lambda b: np.zeros((1, 0)), (1, 3, 2)), labels)
        assert adapter.predict(np.ones((3, 2))) is None

    def test_flat_output(self, labels):
        adapter = ClassifierAdapter(CallableModel(lambda b: [0.2, 0.2, 0.6], (1, 3, 2)), labels)
        assert adapter.predict(np.ones((3, 2))).label == "YES"


class TestCallableModel:
    """Test suite for the in-process model wrapper."""

    def test_shape_normalized(self):
        model = CallableModel(lambda b: b, (-1, "T", 0, 258))
        assert model.input_shape == (None, None, None, 258)

    def test_predict(self):
        model = CallableModel(lambda b: b.sum(axis=1), (1, 3))
        np.testing.assert_array_equal(model.predict(np.ones((1, 3))), [3.0])


class TestLoadModel:
    """Test suite for model loading errors."""

    def test_no_path(self):
        with pytest.raises(ResourceLoadError):
            load_model("")

    def test_unsupported_extension(self, tmp_path):
        path = tmp_path / "model.bin"
        path.write_bytes(b"\x00")
        with pytest.raises(ResourceLoadError):
            load_model(str(path))

    def test_torchscript_needs_shape(self, tmp_path):
        with pytest.raises(ResourceLoadError):
            load_model(str(tmp_path / "model.pt"))


class TestLabels:
    """Test suite for labels.json handling."""

    def test_list(self):
        assert parse_labels(["A", "B"]).labels == ["A", "B"]

    def test_wrapped_list(self):
        assert parse_labels({"labels": ["A", "B"]}).labels == ["A", "B"]

    def test_index_mapping_with_gap(self):
        labels = parse_labels({"0": "A", "2": "C"})
        assert labels.labels == ["A", "class_1", "C"]

    def test_bad_mapping_keys(self):
        with pytest.raises(ResourceLoadError):
            parse_labels({"first": "A"})

    def test_unsupported_type(self):
        with pytest.raises(ResourceLoadError):
            parse_labels("A,B")

    def test_load_file(self, tmp_path):
        path = tmp_path / "labels.json"
        path.write_text(json.dumps({"labels": ["HELLO", "THANKS"]}))
        labels = load_labels(str(path))
        assert len(labels) == 2
        assert labels[1] == "THANKS"

    def test_missing_file_falls_back(self, tmp_path):
        labels = load_labels(str(tmp_path / "missing.json"))
        assert len(labels) == 0
        assert labels.label_for(4) == "class_4"

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "labels.json"
        path.write_text("{not json")
        with pytest.raises(ResourceLoadError):
            load_labels(str(path))


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
