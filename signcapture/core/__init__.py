"""Shared types, errors, event bus and session state."""
from .errors import (
    SignCaptureError,
    CameraError,
    EncodeError,
    PreconditionError,
    NetworkError,
    RemoteTimeoutError,
    RemoteValidationError,
)
from .events import EventBus, Events
from .session import SessionState
from .types import (
    DetectionState,
    ModelInfo,
    Prediction,
    PredictionResult,
    RecorderState,
    RecordingSession,
    Sample,
    SampleInventory,
)

__all__ = [
    "SignCaptureError",
    "CameraError",
    "EncodeError",
    "PreconditionError",
    "NetworkError",
    "RemoteTimeoutError",
    "RemoteValidationError",
    "EventBus",
    "Events",
    "SessionState",
    "DetectionState",
    "ModelInfo",
    "Prediction",
    "PredictionResult",
    "RecorderState",
    "RecordingSession",
    "Sample",
    "SampleInventory",
]
