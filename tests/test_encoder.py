"""
Tests for the Capture Encoder
==============================
"""

import pytest
import numpy as np
import sys
from pathlib import Path

import cv2

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from signcapture.capture.camera import Frame
from signcapture.capture.encoder import CaptureEncoder, EncoderConfig
from signcapture.core.errors import EncodeError


def make_frame(height=120, width=160):
    rng = np.random.default_rng(seed=7)
    image = rng.integers(0, 255, size=(height, width, 3), dtype=np.uint8)
    return Frame(image=image, timestamp=0.0, frame_number=1)


class TestCaptureEncoder:
    """Test suite for JPEG encoding."""

    @pytest.fixture
    def encoder(self):
        return CaptureEncoder(EncoderConfig(width=80, height=60, quality=0.9))

    def test_encodes_jpeg(self, encoder):
        """Output is a JPEG at the configured size."""
        payload = encoder.encode(make_frame())

        assert isinstance(payload, bytes)
        assert payload[:2] == b"\xff\xd8"

        decoded = cv2.imdecode(np.frombuffer(payload, dtype=np.uint8), cv2.IMREAD_COLOR)
        assert decoded.shape == (60, 80, 3)

    def test_deterministic(self, encoder):
        """Identical frames encode to identical bytes."""
        assert encoder.encode(make_frame()) == encoder.encode(make_frame())

    def test_frame_not_ready(self, encoder):
        """A missing frame is an EncodeError, not a crash."""
        with pytest.raises(EncodeError):
            encoder.encode(None)

    def test_empty_frame(self, encoder):
        empty = Frame(image=np.zeros((0, 0, 3), dtype=np.uint8), timestamp=0.0, frame_number=1)

        with pytest.raises(EncodeError):
            encoder.encode(empty)

    def test_quality_affects_size(self):
        """Lower quality gives a smaller buffer."""
        frame = make_frame()
        high = CaptureEncoder(EncoderConfig(width=160, height=120, quality=0.95)).encode(frame)
        low = CaptureEncoder(EncoderConfig(width=160, height=120, quality=0.3)).encode(frame)

        assert len(low) < len(high)

    def test_invalid_quality(self):
        with pytest.raises(ValueError):
            CaptureEncoder(EncoderConfig(quality=0))

    def test_from_dict(self):
        config = EncoderConfig.from_dict({"quality": 0.8})

        assert config.quality == 0.8
        assert (config.width, config.height) == (800, 600)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
