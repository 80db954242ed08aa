"""
Camera Frame Source
====================

Owns the live camera stream and always holds the latest decoded frame.
Capture runs on a background thread; frame listeners (the hand detector)
are called from that thread for every frame.
"""

import cv2
import time
import threading
import logging
from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple
from collections import deque
import numpy as np

from signcapture.core.errors import CameraError

logger = logging.getLogger(__name__)


@dataclass
class CameraConfig:
    """Camera configuration settings."""
    device_id: int = 0
    width: int = 800
    height: int = 600
    fps: int = 30
    buffer_size: int = 1  # Minimal buffering for low latency
    flip_horizontal: bool = False
    warmup_frames: int = 5

    @classmethod
    def from_dict(cls, config: dict) -> "CameraConfig":
        """Create config from dictionary (YAML parsed)."""
        return cls(
            device_id=config.get("device_id", 0),
            width=config.get("width", 800),
            height=config.get("height", 600),
            fps=config.get("fps", 30),
            buffer_size=config.get("buffer_size", 1),
            flip_horizontal=config.get("flip_horizontal", False),
            warmup_frames=config.get("warmup_frames", 5),
        )


@dataclass
class Frame:
    """Container for captured frame with metadata."""
    image: np.ndarray
    timestamp: float
    frame_number: int

    @property
    def rgb(self) -> np.ndarray:
        """Convert BGR to RGB."""
        return cv2.cvtColor(self.image, cv2.COLOR_BGR2RGB)

    @property
    def is_empty(self) -> bool:
        return self.image is None or self.image.size == 0


FrameListener = Callable[[Frame], None]


class FrameSource:
    """
    Camera capture with a background thread holding the latest frame.

    Only one device acquisition is live per instance: calling start()
    while running releases the current device before reopening.

    Example:
        >>> source = FrameSource(CameraConfig())
        >>> source.start()
        >>> frame = source.read()
        >>> if frame is not None:
        ...     encode(frame)
        >>> source.stop()
    """

    def __init__(self, config: Optional[CameraConfig] = None):
        self.config = config or CameraConfig()
        self._cap: Optional[cv2.VideoCapture] = None
        self._frame_number = 0
        self._running = False

        # Threading components
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()
        self._latest_frame: Optional[Frame] = None
        self._listeners: List[FrameListener] = []

        # Performance tracking
        self._capture_times = deque(maxlen=30)

    def start(self) -> "FrameSource":
        """
        Acquire the camera and begin producing frames.

        Raises:
            CameraError: device missing, busy, or permission denied
        """
        if self._running or self._cap is not None:
            logger.info("Camera already active, releasing before restart")
            self.stop()

        logger.info("Starting camera (device=%d, %dx%d@%dfps)",
                    self.config.device_id, self.config.width,
                    self.config.height, self.config.fps)

        cap = cv2.VideoCapture(self.config.device_id)
        try:
            if not cap.isOpened():
                raise CameraError(f"Failed to open camera device {self.config.device_id}")

            cap.set(cv2.CAP_PROP_FRAME_WIDTH, self.config.width)
            cap.set(cv2.CAP_PROP_FRAME_HEIGHT, self.config.height)
            cap.set(cv2.CAP_PROP_FPS, self.config.fps)
            cap.set(cv2.CAP_PROP_BUFFERSIZE, self.config.buffer_size)

            # Verify we can actually read frames
            ret, test_frame = cap.read()
            if not ret or test_frame is None:
                raise CameraError(f"Camera device {self.config.device_id} opened but returned no frames")

            actual_width = int(cap.get(cv2.CAP_PROP_FRAME_WIDTH))
            actual_height = int(cap.get(cv2.CAP_PROP_FRAME_HEIGHT))
            logger.info("Camera initialized: %dx%d", actual_width, actual_height)

            # Let auto-exposure settle
            for _ in range(self.config.warmup_frames):
                cap.read()
        except Exception:
            cap.release()
            raise

        self._cap = cap
        self._frame_number = 0
        with self._lock:
            self._latest_frame = None
        self._running = True

        self._thread = threading.Thread(target=self._capture_loop, name="frame-source", daemon=True)
        self._thread.start()
        return self

    def stop(self) -> None:
        """Stop capture and release the device. Safe to call repeatedly."""
        if not self._running and self._cap is None:
            return

        logger.info("Stopping camera...")
        self._running = False

        if self._thread is not None:
            if self._thread is not threading.current_thread():
                self._thread.join(timeout=1.0)
            self._thread = None

        if self._cap is not None:
            self._cap.release()
            self._cap = None

        with self._lock:
            self._latest_frame = None

        logger.info("Camera stopped")

    def read(self) -> Optional[Frame]:
        """
        Return the most recent frame.

        Returns:
            Frame, or None when nothing usable has been captured yet
        """
        if not self._running:
            return None
        with self._lock:
            frame = self._latest_frame
        if frame is None or frame.is_empty:
            return None
        return frame

    def add_frame_listener(self, listener: FrameListener) -> None:
        """Call `listener(frame)` on the capture thread for each new frame."""
        with self._lock:
            self._listeners.append(listener)

    def remove_frame_listener(self, listener: FrameListener) -> None:
        with self._lock:
            self._listeners = [cb for cb in self._listeners if cb != listener]

    def _capture_frame(self) -> Optional[Frame]:
        """Capture a single frame from the camera."""
        cap = self._cap
        if cap is None:
            return None

        start_time = time.perf_counter()
        ret, image = cap.read()
        capture_time = time.perf_counter() - start_time

        if not ret or image is None:
            return None

        if self.config.flip_horizontal:
            image = cv2.flip(image, 1)

        self._frame_number += 1
        self._capture_times.append(capture_time)

        return Frame(image=image, timestamp=time.time(), frame_number=self._frame_number)

    def _capture_loop(self) -> None:
        """Background thread for continuous frame capture."""
        while self._running:
            frame = self._capture_frame()
            if frame is None:
                time.sleep(0.005)
                continue

            with self._lock:
                self._latest_frame = frame
                listeners = list(self._listeners)

            for listener in listeners:
                try:
                    listener(frame)
                except Exception as e:
                    logger.error("Frame listener error: %s", e)

    @property
    def is_running(self) -> bool:
        """Check if camera is currently running."""
        return self._running

    @property
    def resolution(self) -> Tuple[int, int]:
        """Get requested camera resolution."""
        return (self.config.width, self.config.height)

    @property
    def avg_capture_time_ms(self) -> float:
        """Get average frame capture time in milliseconds."""
        if not self._capture_times:
            return 0.0
        return (sum(self._capture_times) / len(self._capture_times)) * 1000

    def __enter__(self):
        """Context manager entry."""
        return self.start()

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.stop()
        return False
