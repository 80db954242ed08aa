"""
JPEG capture encoder.

Renders a camera frame into the compressed buffer uploaded as a sample
or sent for prediction.
"""

import logging
from dataclasses import dataclass
from typing import Optional

import cv2

from signcapture.capture.camera import Frame
from signcapture.core.errors import EncodeError
from signcapture.utils.logger import log_timing

logger = logging.getLogger(__name__)


@dataclass
class EncoderConfig:
    """Output size and JPEG quality (0.0 - 1.0)."""
    width: int = 800
    height: int = 600
    quality: float = 0.9

    @classmethod
    def from_dict(cls, d: dict) -> "EncoderConfig":
        return cls(
            width=d.get("width", 800),
            height=d.get("height", 600),
            quality=d.get("quality", 0.9),
        )


class CaptureEncoder:
    """Encodes frames to JPEG at a fixed size and quality."""

    def __init__(self, config: Optional[EncoderConfig] = None):
        self.config = config or EncoderConfig()
        if not 0.0 < self.config.quality <= 1.0:
            raise ValueError(f"JPEG quality must be in (0, 1], got {self.config.quality}")
        self._params = [cv2.IMWRITE_JPEG_QUALITY, int(round(self.config.quality * 100))]

    @log_timing
    def encode(self, frame: Optional[Frame]) -> bytes:
        """
        Encode a frame to JPEG bytes.

        Args:
            frame: Frame from the frame source, or None if none is ready

        Returns:
            JPEG-encoded image

        Raises:
            EncodeError: frame not ready (camera warming up) or encoding failed
        """
        if frame is None or frame.is_empty:
            raise EncodeError("Frame not ready for capture")

        image = frame.image
        height, width = image.shape[:2]
        if width == 0 or height == 0:
            raise EncodeError("Frame has zero dimensions")

        if (width, height) != (self.config.width, self.config.height):
            image = cv2.resize(image, (self.config.width, self.config.height),
                               interpolation=cv2.INTER_AREA)

        ok, buffer = cv2.imencode(".jpg", image, self._params)
        if not ok:
            raise EncodeError("JPEG encoding failed")
        return buffer.tobytes()
