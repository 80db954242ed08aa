"""
Session state shared by the capture pipeline and observed by the view.

A single SessionState is created per dashboard and passed by reference
to the components that need it. Every access goes through the internal
lock because the capture, timer, upload and polling threads all touch it.
"""

import logging
import threading
from typing import List, Optional

from signcapture.core.events import EventBus, Events
from signcapture.core.types import (
    DEFAULT_CATEGORY,
    DEFAULT_LABEL,
    DEFAULT_MODEL_NAME,
    RECORDING_INTERVAL_BOUNDS_MS,
    SYMBOL_CATEGORIES,
    ModelInfo,
    PredictionResult,
    RecordingSession,
    SampleInventory,
)

logger = logging.getLogger(__name__)


def validate_interval(interval_ms: int) -> int:
    """Check a recording interval against the allowed bounds."""
    low, high = RECORDING_INTERVAL_BOUNDS_MS
    interval_ms = int(interval_ms)
    if not low <= interval_ms <= high:
        raise ValueError(f"Recording interval must be within [{low}, {high}] ms, got {interval_ms}")
    return interval_ms


class SessionState:
    """Mutable dashboard state: selection, recording session, queue depth, messages."""

    def __init__(self, bus: Optional[EventBus] = None, interval_ms: int = 1000,
                 model_name: str = DEFAULT_MODEL_NAME):
        self._bus = bus
        self._lock = threading.RLock()

        # Selection
        self._category = DEFAULT_CATEGORY
        self._label = DEFAULT_LABEL
        self._model_name = model_name

        # Recording session
        self._armed = False
        self._recording_label = DEFAULT_LABEL
        self._interval_ms = validate_interval(interval_ms)
        self._queued_count = 0

        # Remote mirrors
        self._inventory = SampleInventory()
        self._models: List[ModelInfo] = []
        self._prediction: Optional[PredictionResult] = None

        # Messages
        self._error: Optional[str] = None
        self._success: Optional[str] = None

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    @property
    def label(self) -> str:
        with self._lock:
            return self._label

    def set_label(self, label: str):
        label = str(label)
        if not label:
            raise ValueError("Label must not be empty")
        with self._lock:
            self._label = label
        logger.debug("Selected label: %s", label)

    @property
    def category(self) -> str:
        with self._lock:
            return self._category

    def set_category(self, key: str):
        """Switch category and select its first symbol."""
        category = SYMBOL_CATEGORIES.get(key)
        if category is None:
            raise ValueError(f"Unknown category: {key!r}")
        with self._lock:
            self._category = key
            self._label = category.symbols[0]

    @property
    def model_name(self) -> str:
        with self._lock:
            return self._model_name

    def set_model_name(self, name: str):
        with self._lock:
            self._model_name = str(name).strip()

    # ------------------------------------------------------------------
    # Recording session
    # ------------------------------------------------------------------

    @property
    def interval_ms(self) -> int:
        with self._lock:
            return self._interval_ms

    def set_interval(self, interval_ms: int):
        interval_ms = validate_interval(interval_ms)
        with self._lock:
            if self._armed:
                raise ValueError("Cannot change the recording interval while recording")
            self._interval_ms = interval_ms

    def begin_recording(self) -> str:
        """Arm the session and snapshot the selected label. Returns the session label."""
        with self._lock:
            self._armed = True
            self._recording_label = self._label
            return self._recording_label

    def end_recording(self):
        with self._lock:
            self._armed = False

    @property
    def recording(self) -> RecordingSession:
        with self._lock:
            return RecordingSession(
                armed=self._armed,
                label=self._recording_label if self._armed else self._label,
                interval_ms=self._interval_ms,
                queued_count=self._queued_count,
            )

    # ------------------------------------------------------------------
    # Queue depth
    # ------------------------------------------------------------------

    @property
    def queued_count(self) -> int:
        with self._lock:
            return self._queued_count

    def add_queued(self) -> int:
        with self._lock:
            self._queued_count += 1
            return self._queued_count

    def remove_queued(self) -> int:
        with self._lock:
            if self._queued_count <= 0:
                logger.warning("Queued count already zero, ignoring decrement")
                return 0
            self._queued_count -= 1
            return self._queued_count

    # ------------------------------------------------------------------
    # Remote mirrors
    # ------------------------------------------------------------------

    @property
    def inventory(self) -> SampleInventory:
        with self._lock:
            return self._inventory

    def set_inventory(self, inventory: SampleInventory):
        with self._lock:
            self._inventory = inventory
        self._emit(Events.INVENTORY_UPDATED, inventory=inventory)

    def record_upload(self, label: str):
        """Count one confirmed upload locally until the next inventory poll."""
        with self._lock:
            self._inventory = self._inventory.with_sample(label)
            inventory = self._inventory
        self._emit(Events.INVENTORY_UPDATED, inventory=inventory)

    @property
    def models(self) -> List[ModelInfo]:
        with self._lock:
            return list(self._models)

    def set_models(self, models: List[ModelInfo]):
        with self._lock:
            self._models = list(models)
        self._emit(Events.MODELS_UPDATED, models=list(models))

    @property
    def prediction(self) -> Optional[PredictionResult]:
        with self._lock:
            return self._prediction

    def set_prediction(self, result: Optional[PredictionResult]):
        with self._lock:
            self._prediction = result

    # ------------------------------------------------------------------
    # Messages
    # ------------------------------------------------------------------

    @property
    def error(self) -> Optional[str]:
        with self._lock:
            return self._error

    @property
    def success(self) -> Optional[str]:
        with self._lock:
            return self._success

    def report_error(self, message: str):
        with self._lock:
            self._error = message
            self._success = None
        logger.warning(message)
        self._emit(Events.MESSAGE, level="error", text=message)

    def report_success(self, message: str):
        with self._lock:
            self._success = message
            self._error = None
        logger.info(message)
        self._emit(Events.MESSAGE, level="success", text=message)

    def clear_messages(self):
        with self._lock:
            self._error = None
            self._success = None

    def _emit(self, event_name: str, **kwargs):
        if self._bus is not None:
            self._bus.emit(event_name, **kwargs)

    def to_view_dict(self) -> dict:
        """Convert to the dict format consumed by the view layer."""
        recording = self.recording
        with self._lock:
            prediction = self._prediction
            return {
                "category": self._category,
                "label": self._label,
                "model_name": self._model_name,
                "recording": recording.armed,
                "recording_label": recording.label,
                "recording_interval_ms": recording.interval_ms,
                "queued_count": recording.queued_count,
                "total_samples": self._inventory.total_samples,
                "samples_per_class": dict(self._inventory.samples_per_class),
                "models": [m.name for m in self._models],
                "prediction": prediction.prediction if prediction else None,
                "confidence": prediction.confidence if prediction else 0.0,
                "all_predictions": [
                    {"class": p.label, "confidence": p.confidence} for p in prediction.ranked
                ] if prediction else [],
                "error": self._error,
                "success": self._success,
            }
