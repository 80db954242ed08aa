"""
Timer-driven recording controller.

While armed, a timer thread captures one frame per interval, encodes it
and enqueues it with the label snapshotted when recording started.
Stopping cancels only the timer: samples already queued keep draining.
"""

import logging
import threading
from typing import Optional

from signcapture.capture.camera import FrameSource
from signcapture.capture.encoder import CaptureEncoder
from signcapture.core.errors import EncodeError, PreconditionError
from signcapture.core.events import EventBus, Events
from signcapture.core.session import SessionState
from signcapture.core.types import RecorderState, Sample
from signcapture.detection.gate import DetectionGate
from signcapture.upload.queue import UploadQueue

logger = logging.getLogger(__name__)


class RecordingController:
    """Idle/Armed state machine producing samples on a fixed interval."""

    def __init__(
        self,
        frame_source: FrameSource,
        encoder: CaptureEncoder,
        queue: UploadQueue,
        gate: DetectionGate,
        session: SessionState,
        bus: Optional[EventBus] = None,
    ):
        self._frame_source = frame_source
        self._encoder = encoder
        self._queue = queue
        self._gate = gate
        self._session = session
        self._bus = bus

        self._lock = threading.Lock()
        self._state = RecorderState.IDLE
        self._label: Optional[str] = None
        self._captures = 0
        self._skipped = 0
        self._stop_event: Optional[threading.Event] = None
        self._thread: Optional[threading.Thread] = None

    def start(self) -> str:
        """Arm the recorder.

        Returns:
            The label every sample of this session will carry

        Raises:
            PreconditionError: no hand is currently detected
        """
        with self._lock:
            if self._state is RecorderState.ARMED:
                return self._label

            if not self._gate.current_state().is_active:
                raise PreconditionError("No hand detected. Cannot start recording.")

            label = self._session.begin_recording()
            interval_s = self._session.interval_ms / 1000.0

            self._label = label
            self._captures = 0
            self._skipped = 0
            self._stop_event = threading.Event()
            self._thread = threading.Thread(
                target=self._timer_loop,
                args=(self._stop_event, interval_s),
                name="recording-timer",
                daemon=True,
            )
            self._state = RecorderState.ARMED
            self._thread.start()

        logger.info("Recording started for '%s' every %.1fs", label, interval_s)
        self._emit(Events.RECORDING_STARTED, label=label, interval_ms=int(interval_s * 1000))
        return label

    def stop(self) -> int:
        """Disarm the recorder. Queued samples are not touched.

        Returns:
            Number of samples captured during the session
        """
        with self._lock:
            if self._state is RecorderState.IDLE:
                return 0
            self._state = RecorderState.IDLE
            stop_event, thread = self._stop_event, self._thread
            self._stop_event = None
            self._thread = None
            label, captures = self._label, self._captures

        stop_event.set()
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=2.0)
        self._session.end_recording()

        logger.info("Recording stopped for '%s': %d captures (%d skipped), %d still queued",
                    label, captures, self._skipped, self._session.queued_count)
        self._emit(Events.RECORDING_STOPPED, label=label, captures=captures)
        return captures

    def toggle(self) -> bool:
        """Start if idle, stop if armed. Returns True when now armed."""
        if self.is_armed:
            self.stop()
            return False
        self.start()
        return True

    def tick(self) -> bool:
        """Capture one frame for the running session.

        The hand is only required when recording starts; a tick may fire
        after it has left the frame. Skips when idle or when the frame is
        not ready yet.

        Returns:
            True if a sample was enqueued
        """
        with self._lock:
            if self._state is not RecorderState.ARMED:
                return False
            label = self._label

        try:
            payload = self._encoder.encode(self._frame_source.read())
        except EncodeError as e:
            self._count_skip(str(e))
            return False

        self._queue.enqueue(Sample(label=label, payload=payload))
        with self._lock:
            self._captures += 1
        return True

    def _count_skip(self, reason: str):
        with self._lock:
            self._skipped += 1
        logger.debug("Recording tick skipped: %s", reason)

    def _timer_loop(self, stop_event: threading.Event, interval_s: float):
        while not stop_event.wait(interval_s):
            try:
                self.tick()
            except Exception:
                logger.exception("Recording tick failed")

    def _emit(self, event_name: str, **kwargs):
        if self._bus is not None:
            self._bus.emit(event_name, **kwargs)

    @property
    def state(self) -> RecorderState:
        with self._lock:
            return self._state

    @property
    def is_armed(self) -> bool:
        return self.state is RecorderState.ARMED

    @property
    def label(self) -> Optional[str]:
        """Label of the running session, None when idle."""
        with self._lock:
            return self._label if self._state is RecorderState.ARMED else None

    @property
    def capture_count(self) -> int:
        with self._lock:
            return self._captures

    @property
    def skipped_count(self) -> int:
        with self._lock:
            return self._skipped
