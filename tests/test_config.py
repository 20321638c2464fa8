"""
Tests for Configuration, Logging and Performance Utilities
===========================================================
"""

import os
import time
import logging

import pytest

from signbridge.core.events import EventBus, Events
from signbridge.modules.utils.config import Config
from signbridge.modules.utils.logger import RecognitionLogger, log_timing
from signbridge.modules.utils.performance_monitor import PerformanceMonitor


@pytest.fixture(autouse=True)
def fresh_config():
    Config.reset()
    yield
    Config.reset()


class TestConfig:
    """Test suite for the YAML configuration manager."""

    def test_singleton(self):
        assert Config() is Config()

    def test_default_file(self):
        config = Config().load()
        assert config.get("pause.pause_ms") == 600
        assert config.get("motion.movement_threshold") == pytest.approx(0.02)
        assert config.get("recognition.confidence_threshold") == pytest.approx(0.6)
        assert config.features["include_pose_visibility"] is True
        assert os.path.isdir(os.path.join(config.base_dir, "config"))

    def test_missing_file_uses_defaults(self, tmp_path):
        config = Config().load(str(tmp_path / "nope.yaml"))
        assert config.get("pause.pause_ms", 600) == 600
        assert config.get_section("classifier") == {}

    def test_load_yaml(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("pause:\n  pause_ms: 900\nmotion:\n  movement_threshold: 0.05\n")
        config = Config().load(str(path))
        assert config.pause == {"pause_ms": 900}
        assert config.get("motion.movement_threshold") == 0.05

    def test_dot_get_default(self):
        config = Config().load_dict({"pause": {"pause_ms": 700}})
        assert config.get("pause.pause_ms") == 700
        assert config.get("pause.missing", 5) == 5
        assert config.get("nothing.at.all") is None

    def test_null_section(self):
        config = Config().load_dict({"sentence": None})
        assert config.sentence == {}

    def test_update_deep_merges(self):
        config = Config().load_dict({"classifier": {"model_path": "a.onnx", "device": "cpu"}})
        config.update({"classifier": {"model_path": "b.onnx"}})
        assert config.get("classifier.model_path") == "b.onnx"
        assert config.get("classifier.device") == "cpu"

    def test_validation_warns(self, caplog):
        with caplog.at_level(logging.WARNING):
            Config().load_dict({
                "pause": {"pause_ms": "slow"},
                "recognition": {"confidence_threshold": True},
            })
        assert "pause.pause_ms" in caplog.text
        assert "recognition.confidence_threshold" in caplog.text

    def test_validation_accepts_int_for_float(self):
        config = Config().load_dict({"motion": {"movement_threshold": 0}})
        assert config._validate() == []

    def test_validation_bad_section(self):
        config = Config().load_dict({"motion": [1, 2]})
        assert len(config._validate()) == 1

    def test_validation_ranges(self):
        config = Config().load_dict({
            "pause": {"pause_ms": -5},
            "recognition": {"confidence_threshold": 1.5},
        })
        problems = config._validate()
        assert len(problems) == 2
        assert any("below" in p for p in problems)
        assert any("above" in p for p in problems)

    def test_relative_paths_resolved(self):
        config = Config().load_dict({
            "classifier": {"model_path": "models/weights/none.onnx", "device": "cpu"},
        })
        section = config.classifier
        assert section["model_path"] == os.path.join(config.base_dir, "models/weights/none.onnx")
        assert section["device"] == "cpu"
        # Raw value untouched
        assert config.get("classifier.model_path") == "models/weights/none.onnx"

    def test_absolute_path_kept(self, tmp_path):
        path = str(tmp_path / "m.onnx")
        config = Config().load_dict({"classifier": {"model_path": path}})
        assert config.classifier["model_path"] == path

    def test_reset(self):
        Config().load_dict({"pause": {"pause_ms": 1}})
        Config.reset()
        assert Config().get("pause.pause_ms") is None


class TestRecognitionLogger:
    """Test suite for emission logging."""

    def test_history(self):
        rec = RecognitionLogger(max_history=2)
        rec.on_recognized(label="A", confidence=0.9, timestamp=1.0)
        rec.on_recognized(label="B", confidence=0.8)
        rec.on_recognized(label="C", confidence=0.7)
        assert rec.total_recognitions == 2
        assert [h["label"] for h in rec.get_history()] == ["B", "C"]
        assert rec.get_history(last_n=1)[0]["label"] == "C"

    def test_log_timing_preserves_result(self):
        @log_timing
        def double(x):
            return x * 2

        assert double(4) == 8
        assert double.__name__ == "double"


class TestPerformanceMonitor:
    """Test suite for the driving-loop monitor."""

    def test_measure(self):
        monitor = PerformanceMonitor()
        with monitor.measure("recognition"):
            time.sleep(0.01)
        assert monitor.get_stage_latency("recognition") >= 9

    def test_measure_records_on_error(self):
        monitor = PerformanceMonitor()
        with pytest.raises(RuntimeError):
            with monitor.measure("custom"):
                raise RuntimeError("stage failed")
        assert "custom" in monitor.get_report()["latencies_ms"]

    def test_report(self):
        monitor = PerformanceMonitor()
        for _ in range(3):
            monitor.tick()
        monitor.record_gap()
        report = monitor.get_report()
        assert report["total_frames"] == 3
        assert report["gap_frames"] == 1
        assert "recognition" in report["latencies_ms"]

    def test_counts_pipeline_events(self):
        bus = EventBus()
        monitor = PerformanceMonitor()
        monitor.attach(bus)
        bus.emit(Events.PAUSE_FIRED, real_frames=10)
        bus.emit(Events.PAUSE_FIRED, real_frames=10)
        bus.emit(Events.PREDICTION_REJECTED, label="A", confidence=0.1, reason="low_confidence")
        bus.emit(Events.GESTURE_RECOGNIZED, label="B", confidence=0.9)
        report = monitor.get_report()
        assert report["pause_fires"] == 2
        assert report["rejections"] == 1
        assert report["emissions"] == 1

    def test_reset(self):
        monitor = PerformanceMonitor()
        monitor.tick()
        monitor.reset()
        assert monitor.frame_count == 0
        assert monitor.fps == 0.0


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
