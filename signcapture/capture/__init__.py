"""Camera frame acquisition and JPEG encoding."""
from .camera import FrameSource, CameraConfig, Frame
from .encoder import CaptureEncoder, EncoderConfig

__all__ = ["FrameSource", "CameraConfig", "Frame", "CaptureEncoder", "EncoderConfig"]
