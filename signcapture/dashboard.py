"""
Dashboard: wires the capture pipeline together and exposes the action set.

Architecture:
    FrameSource -> HandDetector -> DetectionGate
    FrameSource -> CaptureEncoder -> UploadQueue -> RemoteClient
    RecordingController drives the encoder on a timer, armed only while a hand is detected

The action methods are the session boundary: pipeline errors raised
below are turned into user-facing messages on the SessionState here and
the action returns a falsy result instead of raising.
"""

import logging
import threading
from typing import List, Optional

from signcapture.capture.camera import CameraConfig, Frame, FrameSource
from signcapture.capture.encoder import CaptureEncoder, EncoderConfig
from signcapture.core.errors import (
    CameraError,
    EncodeError,
    PreconditionError,
    RemoteValidationError,
    SignCaptureError,
)
from signcapture.core.events import EventBus, Events
from signcapture.core.session import SessionState
from signcapture.core.types import (
    MIN_TRAINING_SAMPLES,
    DetectionState,
    ModelInfo,
    PredictionResult,
    Sample,
    SampleInventory,
)
from signcapture.detection.gate import DetectionGate
from signcapture.detection.hand_detector import HandDetector
from signcapture.recording.controller import RecordingController
from signcapture.upload.client import ApiConfig, RemoteClient
from signcapture.upload.queue import UploadQueue
from signcapture.utils.config import Config

logger = logging.getLogger(__name__)


class Dashboard:
    """Capture, recording, training and prediction actions over one session."""

    def __init__(
        self,
        config: Config,
        client: Optional[RemoteClient] = None,
        frame_source: Optional[FrameSource] = None,
        detector: Optional[HandDetector] = None,
        encoder: Optional[CaptureEncoder] = None,
        bus: Optional[EventBus] = None,
    ):
        self._config = config
        self._bus = bus or EventBus()

        api = config.api
        self._session = SessionState(
            bus=self._bus,
            interval_ms=config.get("recording.interval_ms", 1000),
            model_name=api.get("model_name", "modelo_senas_v1"),
        )

        # Capture
        self._frame_source = frame_source or FrameSource(CameraConfig.from_dict(config.camera))
        self._encoder = encoder or CaptureEncoder(EncoderConfig.from_dict(config.encoder))

        # Detection
        self._detector = detector or HandDetector(config.mediapipe)
        self._gate = DetectionGate(self._bus)

        # Upload
        self._client = client or RemoteClient(ApiConfig.from_dict(api))
        self._queue = UploadQueue(
            self._client,
            self._session,
            bus=self._bus,
            settle_delay_ms=config.get("upload.settle_delay_ms", 200),
        )

        # Recording
        self._recorder = RecordingController(
            self._frame_source, self._encoder, self._queue,
            self._gate, self._session, bus=self._bus,
        )

        self._camera_active = False
        self._camera_lock = threading.Lock()

        self._poll_interval_s = float(api.get("poll_interval_sec", 5))
        self._poll_stop = threading.Event()
        self._poll_thread: Optional[threading.Thread] = None

        logger.info("Dashboard initialized (api=%s)", self._client.config.base_url)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self):
        """Load remote lists and begin polling the sample inventory."""
        self.refresh_models()
        self.refresh_samples()
        if self._poll_thread is None and self._poll_interval_s > 0:
            self._poll_stop.clear()
            self._poll_thread = threading.Thread(
                target=self._poll_loop, name="inventory-poller", daemon=True
            )
            self._poll_thread.start()

    def shutdown(self, drain_timeout: float = 35.0):
        """Stop producers, let queued samples drain, release everything."""
        logger.info("Shutting down dashboard...")
        self.stop_recording()
        self.stop_camera()

        self._poll_stop.set()
        if self._poll_thread is not None:
            self._poll_thread.join(timeout=2.0)
            self._poll_thread = None

        self._queue.close(timeout=drain_timeout)
        self._client.close()
        self._bus.clear()
        logger.info("Shutdown complete (%d uploaded, %d failed)",
                    self._queue.uploaded_count, self._queue.failed_count)

    def _poll_loop(self):
        while not self._poll_stop.wait(self._poll_interval_s):
            self.refresh_samples(report=False)

    # ------------------------------------------------------------------
    # Camera
    # ------------------------------------------------------------------

    def start_camera(self) -> bool:
        """Acquire the camera and feed frames to the hand detector.

        Any previous acquisition is released first. If any step fails,
        everything acquired so far is released before returning.
        """
        with self._camera_lock:
            if self._camera_active:
                self._teardown_camera()
            try:
                self._frame_source.start()
                try:
                    self._detector.initialize()
                except Exception as e:
                    raise CameraError(f"Hand detector failed to start: {e}") from e
                self._detector.on_results(self._gate.update)
                self._frame_source.add_frame_listener(self._on_frame)
            except CameraError as e:
                self._teardown_camera()
                self._session.report_error(f"Error initializing the camera: {e}")
                self._bus.emit(Events.CAMERA_ERROR, error=str(e))
                return False
            self._camera_active = True

        self._bus.emit(Events.CAMERA_STARTED)
        return True

    def stop_camera(self):
        """Release the camera. Recording stops too since no frames arrive."""
        self.stop_recording()
        with self._camera_lock:
            was_active = self._camera_active
            self._teardown_camera()
        if was_active:
            self._bus.emit(Events.CAMERA_STOPPED)

    def _teardown_camera(self):
        """Release device and detector. Caller holds the camera lock.

        The capture thread is joined before the detector closes, so no
        frame is inside MediaPipe when its graph is released.
        """
        self._frame_source.remove_frame_listener(self._on_frame)
        try:
            self._frame_source.stop()
        finally:
            self._detector.clear_callbacks()
            self._detector.close()
            self._gate.reset()
            self._camera_active = False

    def _on_frame(self, frame: Frame):
        self._detector.send(frame.rgb)

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    def set_label(self, label: str):
        self._session.set_label(label)

    def set_category(self, key: str):
        self._session.set_category(key)

    def set_model_name(self, name: str):
        self._session.set_model_name(name)

    def set_recording_interval(self, interval_ms: int) -> bool:
        try:
            self._session.set_interval(interval_ms)
        except ValueError as e:
            self._session.report_error(str(e))
            return False
        return True

    # ------------------------------------------------------------------
    # Capture & recording
    # ------------------------------------------------------------------

    def capture_once(self) -> bool:
        """Queue one sample tagged with the currently selected label."""
        try:
            self._require_hand("No hand detected. Cannot capture.")
            payload = self._encode_current()
            label = self._session.label
            self._queue.enqueue(Sample(label=label, payload=payload))
        except SignCaptureError as e:
            self._session.report_error(f"Error capturing image: {e}")
            return False
        self._session.report_success(f"Image captured for: {label}")
        return True

    def start_recording(self) -> bool:
        try:
            label = self._recorder.start()
        except PreconditionError as e:
            self._session.report_error(str(e))
            return False
        self._session.report_success(f"Recording started for: {label}")
        return True

    def stop_recording(self) -> int:
        if not self._recorder.is_armed:
            return 0
        captures = self._recorder.stop()
        self._session.report_success(f"Recording finished. {captures} captures processed.")
        return captures

    def toggle_recording(self) -> bool:
        """Returns True when recording is running after the call."""
        if self._recorder.is_armed:
            self.stop_recording()
            return False
        return self.start_recording()

    # ------------------------------------------------------------------
    # Remote model operations
    # ------------------------------------------------------------------

    def predict_once(self) -> Optional[PredictionResult]:
        """Send the current frame to the selected model."""
        try:
            model_name = self._session.model_name
            if not model_name:
                raise PreconditionError("Please select a model")
            self._require_hand("No hand detected. Cannot predict.")
            payload = self._encode_current()
            result = self._client.predict(payload, model_name)
        except SignCaptureError as e:
            self._session.report_error(f"Prediction error: {e}")
            return None

        self._session.set_prediction(result)
        self._session.report_success(
            result.message or f"Prediction: {result.prediction} ({result.confidence * 100:.2f}%)"
        )
        self._bus.emit(Events.PREDICTION_READY, result=result)
        return result

    def train_model(self, name: Optional[str] = None) -> Optional[float]:
        """Train a model on the remote corpus. Returns its accuracy."""
        if name is not None:
            self._session.set_model_name(name)
        model_name = self._session.model_name
        try:
            if not model_name:
                raise RemoteValidationError("Please enter a name for the model")
            if self._session.inventory.total_samples < MIN_TRAINING_SAMPLES:
                raise RemoteValidationError(
                    f"At least {MIN_TRAINING_SAMPLES} samples are needed to train the model"
                )
            accuracy = self._client.train(model_name)
        except SignCaptureError as e:
            self._session.report_error(f"Error training model: {e}")
            return None

        self._session.report_success(
            f'Model "{model_name}" trained with accuracy: {accuracy * 100:.2f}%'
        )
        self.refresh_models()
        return accuracy

    def refresh_models(self) -> List[ModelInfo]:
        try:
            models = self._client.list_models()
        except SignCaptureError as e:
            self._session.report_error(f"Error loading models: {e}")
            return self._session.models
        self._session.set_models(models)
        return models

    def refresh_samples(self, report: bool = True) -> SampleInventory:
        try:
            inventory = self._client.get_samples()
        except SignCaptureError as e:
            logger.warning("Error fetching samples info: %s", e)
            if report:
                self._session.report_error(f"Error loading samples: {e}")
            return self._session.inventory
        self._session.set_inventory(inventory)
        return inventory

    def clear_samples(self) -> bool:
        try:
            self._client.clear_samples()
        except SignCaptureError as e:
            self._session.report_error(f"Error deleting samples: {e}")
            return False
        self._session.set_inventory(SampleInventory())
        self._session.report_success("All samples have been deleted")
        return True

    def delete_model(self, name: str) -> bool:
        try:
            self._client.delete_model(name)
        except SignCaptureError as e:
            self._session.report_error(f"Error deleting model: {e}")
            return False
        self._session.report_success(f'Model "{name}" deleted')
        self.refresh_models()
        return True

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _require_hand(self, message: str):
        if not self._gate.current_state().is_active:
            raise PreconditionError(message)

    def _encode_current(self) -> bytes:
        try:
            return self._encoder.encode(self._frame_source.read())
        except EncodeError as e:
            raise EncodeError(f"Could not capture the image ({e})") from e

    # ------------------------------------------------------------------
    # View access
    # ------------------------------------------------------------------

    def view_state(self) -> dict:
        """Everything the view layer renders, as one snapshot."""
        detection = self._gate.current_state()
        state = self._session.to_view_dict()
        state.update({
            "camera_active": self._camera_active,
            "hand_detected": detection.is_active,
            "hands_detected": detection.hands_present,
            "upload_pending": self._queue.pending,
            "upload_in_flight": self._queue.in_flight,
        })
        return state

    @property
    def detection_state(self) -> DetectionState:
        return self._gate.current_state()

    @property
    def session(self) -> SessionState:
        return self._session

    @property
    def bus(self) -> EventBus:
        return self._bus

    @property
    def gate(self) -> DetectionGate:
        return self._gate

    @property
    def queue(self) -> UploadQueue:
        return self._queue

    @property
    def recorder(self) -> RecordingController:
        return self._recorder

    @property
    def camera_active(self) -> bool:
        return self._camera_active
