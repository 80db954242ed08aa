"""Hand detection using MediaPipe and the hand-presence gate."""
from .gate import DetectionGate
from .hand_detector import HandDetector

__all__ = ["DetectionGate", "HandDetector"]
