#!/usr/bin/env python3
"""
SignBridge - sign recognition from live landmark streams.
Application entry point and driving loop.

Usage:
    signbridge                                 # Live webcam mode
    signbridge --mode replay --input obs.jsonl # Replay recorded observations
    signbridge --model models/weights/sign_model.onnx --labels labels.json

Replay files hold one JSON observation per line:
    {"t": 1033, "pose": [[x, y, z, v], ...], "left_hand": [[x, y, z], ...], "right_hand": null}
"""

import sys
import json
import time
import signal
import argparse
import logging
from typing import Iterator, Optional, Tuple

from signbridge import __version__
from signbridge.core.events import EventBus, Events
from signbridge.core.pipeline import RecognitionController
from signbridge.core.types import Observation
from signbridge.models.backends import ResourceLoadError
from signbridge.modules.recognition.sentence import SentenceAggregator
from signbridge.modules.utils.config import Config
from signbridge.modules.utils.logger import setup_logging, RecognitionLogger
from signbridge.modules.utils.performance_monitor import PerformanceMonitor

logger = logging.getLogger(__name__)


def read_replay(path: str, frame_interval_ms: float = 33.0) -> Iterator[Tuple[float, Optional[Observation]]]:
    """Yield ``(timestamp_s, observation)`` pairs from a JSON-lines file.

    Lines without ``t`` are spaced ``frame_interval_ms`` apart. Undecodable
    lines are logged and skipped.
    """
    with open(path, "r", encoding="utf-8") as f:
        index = 0
        for line_no, line in enumerate(f, 1):
            line = line.strip()
            if not line:
                continue
            try:
                data = json.loads(line)
                observation = Observation.from_dict(data)
            except (ValueError, TypeError, AttributeError) as e:
                logger.warning("Skipping replay line %d: %s", line_no, e)
                continue
            if observation.timestamp is not None:
                t = observation.timestamp
            else:
                t = index * frame_interval_ms / 1000.0
            index += 1
            yield t, (None if observation.is_empty else observation)


class SignBridgeApp:
    """Wires the recognition controller to its collaborators.

    Owns the event bus, the sentence aggregator and the emission logger;
    the driving loop (live camera or replay) feeds the controller.
    """

    def __init__(self, config: Config, adapter=None):
        self._config = config
        self._running = False

        self._bus = EventBus()
        self._controller = RecognitionController.from_config(
            config, event_bus=self._bus, adapter=adapter,
        )
        self._sentence = SentenceAggregator(
            self._bus, max_words=config.get("sentence.max_words"),
        )
        self._recognition_logger = RecognitionLogger()
        self._bus.subscribe(Events.GESTURE_RECOGNIZED, self._recognition_logger.on_recognized)

        self._perf = PerformanceMonitor(
            window_size=config.get("performance.metrics_window", 100)
        )
        self._perf.attach(self._bus)

        logger.info("SignBridgeApp initialized (T=%d, D=%d, mode=%s)",
                    self._controller.adapter.sequence_length,
                    self._controller.extractor.feature_dim,
                    self._controller.adapter.mode)

    # ------------------------------------------------------------------
    # Driving loops
    # ------------------------------------------------------------------

    def run_replay(self, path: str, frame_interval_ms: float = 33.0) -> str:
        """Feed a recorded observation stream and return the sentence."""
        self._running = True
        self._bus.emit(Events.SYSTEM_STARTED, mode="replay")
        last_t = 0.0

        for t, observation in read_replay(path, frame_interval_ms):
            if not self._running:
                break
            with self._perf.measure("recognition"):
                self._controller.process(observation, now=t)
            if observation is None:
                self._perf.record_gap()
            self._perf.tick()
            last_t = t

        # Let a trailing pause complete
        pause_s = self._config.get("pause.pause_ms", 600) / 1000.0
        self._controller.poll(now=last_t + pause_s)

        sentence = self._sentence.sentence
        self._shutdown()
        return sentence

    def run_live(self) -> bool:
        """Camera -> Holistic -> controller loop with an OpenCV window."""
        import cv2
        from signbridge.modules.capture.camera_manager import CameraManager
        from signbridge.modules.detection.holistic_detector import HolisticDetector

        camera = CameraManager(self._config.camera)
        if not camera.open():
            logger.error("Failed to open camera. Check connection and permissions.")
            return False

        detector = HolisticDetector(self._config.holistic)
        detector.initialize()

        show = self._config.get("visualization.enabled", True)
        window_name = self._config.get("visualization.window_name", "SignBridge")

        self._running = True
        self._bus.emit(Events.SYSTEM_STARTED, mode="live")
        logger.info("Starting live loop ('c' clears, 'q' quits)")

        try:
            while self._running:
                with self._perf.measure("total"):
                    with self._perf.measure("capture"):
                        captured_at, frame = camera.read()

                    if frame is None:
                        if camera.lost:
                            logger.error("Lost camera connection.")
                            break
                        # stalled camera: still honour the pause deadline and keys
                        self._controller.poll()
                    else:
                        self._handle_frame(cv2, detector, frame, captured_at, show, window_name)

                self._perf.tick()

                key = cv2.waitKey(1) & 0xFF
                if key == ord("q"):
                    self._running = False
                elif key == ord("c"):
                    self.clear()
        finally:
            self._shutdown()
            camera.stop()
            detector.close()
            if show:
                cv2.destroyAllWindows()
        return True

    def _handle_frame(self, cv2, detector, frame, captured_at, show, window_name):
        with self._perf.measure("detection"):
            rgb = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
            observation, results = detector.observe(rgb, timestamp=captured_at)

        if observation is None:
            self._perf.record_gap()

        with self._perf.measure("recognition"):
            self._controller.process(observation, now=captured_at)

        if show:
            with self._perf.measure("render"):
                detector.draw_landmarks(frame, results)
                self._draw_overlay(cv2, frame)
                cv2.imshow(window_name, frame)

    def _draw_overlay(self, cv2, frame):
        state = self._controller.build_state()
        lines = [
            "Word: %s" % (self._sentence.current_word or "-"),
            "Sentence: %s" % (self._sentence.sentence or "-"),
            "Pause: %s  Motion: %.3f  FPS: %.0f" % (
                state["pause_state"], state["movement"], self._perf.fps),
        ]
        for i, text in enumerate(lines):
            cv2.putText(frame, text, (10, 25 + 22 * i), cv2.FONT_HERSHEY_SIMPLEX,
                        0.6, (129, 185, 16), 2, cv2.LINE_AA)

    # ------------------------------------------------------------------
    # Controls
    # ------------------------------------------------------------------

    def clear(self):
        """User "clear": empties sentence, buffers and pending pause."""
        self._controller.reset()

    def _shutdown(self):
        logger.info("Shutting down...")
        self._running = False
        final = self._sentence.sentence
        self._controller.shutdown()
        self._perf.print_report()
        logger.info("Final sentence: %s", final or "(empty)")

    def handle_signal(self, signum, frame):
        """Handle SIGINT/SIGTERM for graceful shutdown."""
        logger.info("Signal %d received, shutting down...", signum)
        self._running = False

    @property
    def controller(self) -> RecognitionController:
        return self._controller

    @property
    def sentence(self) -> SentenceAggregator:
        return self._sentence

    @property
    def recognition_logger(self) -> RecognitionLogger:
        return self._recognition_logger


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description="SignBridge - sign recognition from landmark streams"
    )
    parser.add_argument(
        "--mode", choices=["live", "replay"], default="live",
        help="Operating mode"
    )
    parser.add_argument("--config", type=str, default=None, help="Path to config.yaml")
    parser.add_argument("--input", type=str, default=None, help="Replay file (JSON lines)")
    parser.add_argument("--model", type=str, default=None, help="Classifier model path")
    parser.add_argument("--labels", type=str, default=None, help="labels.json path")
    parser.add_argument("--camera", type=int, default=None, help="Camera device ID")
    parser.add_argument("--pause-ms", type=int, default=None, help="Stillness before classification")
    parser.add_argument("--threshold", type=float, default=None, help="Confidence threshold")
    parser.add_argument("--log-level", type=str, default=None, help="Logging level")
    return parser.parse_args(argv)


def _overrides_from_args(args) -> dict:
    overrides = {}
    if args.model is not None:
        overrides.setdefault("classifier", {})["model_path"] = args.model
    if args.labels is not None:
        overrides.setdefault("classifier", {})["labels_path"] = args.labels
    if args.camera is not None:
        overrides.setdefault("camera", {})["device_id"] = args.camera
    if args.pause_ms is not None:
        overrides.setdefault("pause", {})["pause_ms"] = args.pause_ms
    if args.threshold is not None:
        overrides.setdefault("recognition", {})["confidence_threshold"] = args.threshold
    return overrides


def main(argv=None) -> int:
    args = parse_args(argv)

    config = Config()
    config.load(config_path=args.config)
    config.update(_overrides_from_args(args))

    log_cfg = config.get_section("logging")
    setup_logging(
        level=args.log_level or log_cfg.get("level", "INFO"),
        log_file=log_cfg.get("file"),
        max_size_mb=log_cfg.get("max_size_mb", 10),
        backup_count=log_cfg.get("backup_count", 3),
    )

    logger.info("=" * 60)
    logger.info("  SIGNBRIDGE - sign recognition")
    logger.info("  Version: %s", __version__)
    logger.info("  Mode: %s", args.mode)
    logger.info("=" * 60)

    if args.mode == "replay" and not args.input:
        logger.error("--input is required in replay mode")
        return 2

    try:
        app = SignBridgeApp(config)
    except ResourceLoadError as e:
        logger.error("Startup failed: %s", e)
        return 1

    signal.signal(signal.SIGINT, app.handle_signal)
    signal.signal(signal.SIGTERM, app.handle_signal)

    if args.mode == "replay":
        started = time.perf_counter()
        sentence = app.run_replay(args.input)
        logger.info("Replay finished in %.2fs", time.perf_counter() - started)
        print(sentence)
        return 0

    return 0 if app.run_live() else 1


if __name__ == "__main__":
    sys.exit(main())
