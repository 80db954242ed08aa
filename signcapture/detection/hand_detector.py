"""
MediaPipe hand detection wrapper.

Frames are pushed in with send(); every processed frame fires the
registered result callbacks with the list of hand landmark sets
(or None when MediaPipe found no hands).
"""

import logging
import threading
from typing import Callable, List, Optional

import numpy as np
import mediapipe as mp

logger = logging.getLogger(__name__)

ResultsCallback = Callable[[Optional[list]], None]


class HandDetector:
    """MediaPipe Hands wrapper with callback-style result delivery."""

    def __init__(self, config: dict):
        self._model_complexity = config.get("model_complexity", 1)
        self._max_hands = config.get("max_num_hands", 2)
        self._min_detect_conf = config.get("min_detection_confidence", 0.5)
        self._min_track_conf = config.get("min_tracking_confidence", 0.5)

        self._hands = None
        self._initialized = False
        self._callbacks: List[ResultsCallback] = []
        # MediaPipe graphs are not re-entrant
        self._process_lock = threading.Lock()

    def initialize(self):
        """Initialize MediaPipe Hands solution."""
        self._hands = mp.solutions.hands.Hands(
            static_image_mode=False,
            model_complexity=self._model_complexity,
            max_num_hands=self._max_hands,
            min_detection_confidence=self._min_detect_conf,
            min_tracking_confidence=self._min_track_conf,
        )
        self._initialized = True
        logger.info(
            "MediaPipe Hands initialized (complexity=%d, max_hands=%d, "
            "detect_conf=%.2f, track_conf=%.2f)",
            self._model_complexity, self._max_hands,
            self._min_detect_conf, self._min_track_conf,
        )

    def on_results(self, callback: ResultsCallback):
        """Register a callback receiving each frame's hand landmark sets."""
        self._callbacks.append(callback)

    def clear_callbacks(self):
        self._callbacks = []

    def detect(self, rgb_frame: np.ndarray):
        """Run hand detection on an RGB frame.

        Args:
            rgb_frame: Frame in RGB color space

        Returns:
            MediaPipe results object
        """
        with self._process_lock:
            if self._hands is None:
                raise RuntimeError("Hand detector is not initialized")
            # Set frame as non-writable for performance
            rgb_frame.flags.writeable = False
            try:
                return self._hands.process(rgb_frame)
            finally:
                rgb_frame.flags.writeable = True

    def send(self, rgb_frame: np.ndarray):
        """Detect hands in a frame and deliver the result to all callbacks.

        Detection failures are logged and the frame is dropped; the stream
        of frames keeps flowing. Frames arriving before initialize() or
        after close() are dropped.
        """
        if not self._initialized:
            return
        try:
            results = self.detect(rgb_frame)
        except Exception as e:
            logger.error("Error sending frame to MediaPipe: %s", e)
            return

        landmark_sets = getattr(results, "multi_hand_landmarks", None)
        for callback in list(self._callbacks):
            callback(landmark_sets)

    @staticmethod
    def get_hand_count(landmark_sets) -> int:
        """Get number of detected hands."""
        return len(landmark_sets) if landmark_sets else 0

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    def close(self):
        """Release MediaPipe resources once no frame is being processed."""
        with self._process_lock:
            self._initialized = False
            if self._hands is not None:
                self._hands.close()
                self._hands = None
                logger.info("MediaPipe Hands closed")

    def __enter__(self):
        self.initialize()
        return self

    def __exit__(self, *args):
        self.close()
