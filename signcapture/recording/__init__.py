"""Timer-driven recording controller."""
from .controller import RecordingController

__all__ = ["RecordingController"]
