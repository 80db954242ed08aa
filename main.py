#!/usr/bin/env python3
"""
Sign Capture Dashboard - headless entry point.

Usage:
    python main.py record --label A               # Record samples for "A" while a hand is visible
    python main.py record --label 5 --interval 500
    python main.py capture --label E              # Capture a single sample
    python main.py predict --model modelo_senas_v1
    python main.py train --model modelo_senas_v1
    python main.py models                         # List trained models
    python main.py samples                        # Show the sample inventory
    python main.py clear                          # Delete all samples
"""

import sys
import time
import signal
import argparse
import logging

from signcapture.core.events import Events
from signcapture.core.types import SYMBOL_CATEGORIES
from signcapture.dashboard import Dashboard
from signcapture.utils.config import Config
from signcapture.utils.logger import setup_logging

logger = logging.getLogger(__name__)


class HeadlessRunner:
    """Drives a Dashboard from the command line instead of a view."""

    def __init__(self, dashboard: Dashboard):
        self._dashboard = dashboard
        self._running = True
        dashboard.bus.subscribe(Events.DETECTION_CHANGED, self._on_detection)
        dashboard.bus.subscribe(Events.SAMPLE_UPLOADED, self._on_uploaded)

    def _on_detection(self, state, **kwargs):
        logger.info("Hands detected: %d", state.hands_present)

    def _on_uploaded(self, label, queued, **kwargs):
        logger.info("Uploaded sample '%s' (%d still queued)", label, queued)

    def wait_for_hand(self, timeout: float) -> bool:
        deadline = time.time() + timeout
        while self._running and time.time() < deadline:
            if self._dashboard.detection_state.is_active:
                return True
            time.sleep(0.05)
        return False

    def record(self, duration: float, hand_timeout: float) -> bool:
        if not self.wait_for_hand(hand_timeout):
            logger.error("No hand detected within %.0fs", hand_timeout)
            return False
        if not self._dashboard.start_recording():
            return False
        deadline = time.time() + duration if duration > 0 else None
        while self._running and (deadline is None or time.time() < deadline):
            time.sleep(0.1)
        self._dashboard.stop_recording()
        return True

    def capture(self, hand_timeout: float) -> bool:
        if not self.wait_for_hand(hand_timeout):
            logger.error("No hand detected within %.0fs", hand_timeout)
            return False
        return self._dashboard.capture_once()

    def predict(self, hand_timeout: float) -> bool:
        if not self.wait_for_hand(hand_timeout):
            logger.error("No hand detected within %.0fs", hand_timeout)
            return False
        result = self._dashboard.predict_once()
        if result is None:
            return False
        for rank, entry in enumerate(result.ranked, start=1):
            logger.info("%2d. %-6s %6.2f%%", rank, entry.label, entry.confidence * 100)
        return True

    def handle_signal(self, signum, frame):
        """Handle SIGINT/SIGTERM for graceful shutdown."""
        logger.info("Signal %d received, shutting down...", signum)
        self._running = False


def parse_args():
    parser = argparse.ArgumentParser(description="Sign Capture Dashboard")
    parser.add_argument("command", choices=["record", "capture", "predict", "train", "models", "samples", "clear"])
    parser.add_argument("--label", type=str, default=None, help="Sample label")
    parser.add_argument("--category", choices=list(SYMBOL_CATEGORIES), default=None, help="Label category")
    parser.add_argument("--model", type=str, default=None, help="Model name")
    parser.add_argument("--interval", type=int, default=None, help="Recording interval in ms (500-5000)")
    parser.add_argument("--duration", type=float, default=0, help="Recording duration in seconds (0 = until Ctrl+C)")
    parser.add_argument("--hand-timeout", type=float, default=30, help="Seconds to wait for a visible hand")
    parser.add_argument("--config", type=str, default=None, help="Path to config.yaml")
    parser.add_argument("--camera", type=int, default=None, help="Camera device ID")
    parser.add_argument("--api-url", type=str, default=None, help="Remote service base URL")
    return parser.parse_args()


def main():
    args = parse_args()

    config = Config()
    config.load(config_path=args.config)
    if args.camera is not None:
        config.set("camera.device_id", args.camera)
    if args.api_url:
        config.set("api.base_url", args.api_url)

    log_cfg = config.get_section("logging")
    setup_logging(
        level=log_cfg.get("level", "INFO"),
        log_file=log_cfg.get("file"),
        max_size_mb=log_cfg.get("max_size_mb", 10),
        backup_count=log_cfg.get("backup_count", 3),
    )

    dashboard = Dashboard(config)
    runner = HeadlessRunner(dashboard)
    signal.signal(signal.SIGINT, runner.handle_signal)
    signal.signal(signal.SIGTERM, runner.handle_signal)

    ok = True
    try:
        if args.category:
            dashboard.set_category(args.category)
        if args.label:
            dashboard.set_label(args.label)
        if args.model:
            dashboard.set_model_name(args.model)
        if args.interval is not None and not dashboard.set_recording_interval(args.interval):
            return 2

        dashboard.start()
        if args.command in ("record", "capture", "predict"):
            if not dashboard.start_camera():
                return 1
            if args.command == "record":
                ok = runner.record(args.duration, args.hand_timeout)
            elif args.command == "capture":
                ok = runner.capture(args.hand_timeout)
            else:
                ok = runner.predict(args.hand_timeout)
        elif args.command == "train":
            ok = dashboard.train_model() is not None
        elif args.command == "models":
            for model in dashboard.session.models:
                logger.info("%-24s accuracy=%.2f%% samples=%d classes=%d",
                            model.name, model.accuracy * 100, model.sample_count, len(model.classes))
        elif args.command == "samples":
            inventory = dashboard.session.inventory
            logger.info("Total samples: %d", inventory.total_samples)
            for label, count in sorted(inventory.samples_per_class.items()):
                logger.info("  %-4s %d", label, count)
        elif args.command == "clear":
            ok = dashboard.clear_samples()
    finally:
        dashboard.shutdown()

    error = dashboard.session.error
    if error:
        logger.error(error)
    return 0 if ok else 1


if __name__ == "__main__":
    sys.exit(main())
