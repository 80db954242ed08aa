"""
Tests for Hand Detection and the Detection Gate
================================================
"""

import pytest
import numpy as np
import sys
import threading
import time
from pathlib import Path
from types import SimpleNamespace
from unittest.mock import patch

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from signcapture.core.events import EventBus, Events
from signcapture.core.types import DetectionState
from signcapture.detection.gate import DetectionGate
from signcapture.detection.hand_detector import HandDetector


class TestDetectionGate:
    """Test suite for the latest-value detection cell."""

    @pytest.fixture
    def bus(self):
        return EventBus()

    @pytest.fixture
    def gate(self, bus):
        return DetectionGate(bus)

    def test_initial_state(self, gate):
        """No hands until the detector reports some."""
        assert gate.current_state() == DetectionState(hands_present=0, is_active=False)
        assert not gate.is_active

    def test_update_with_hands(self, gate):
        state = gate.update([object(), object()])

        assert state.hands_present == 2
        assert state.is_active
        assert gate.current_state() == state

    def test_none_means_no_hands(self, gate):
        gate.update([object()])
        state = gate.update(None)

        assert state.hands_present == 0
        assert not state.is_active

    def test_empty_list_means_no_hands(self, gate):
        assert not gate.update([]).is_active

    def test_latest_value_wins(self, gate):
        """Only the most recent event matters."""
        for sets in ([object()], None, [object(), object()], [object()]):
            gate.update(sets)

        assert gate.current_state().hands_present == 1
        assert gate.event_count == 4

    def test_listeners_notified_on_change_only(self, gate, bus):
        """Repeated identical events do not re-notify."""
        seen, published = [], []
        gate.subscribe(seen.append)
        bus.subscribe(Events.DETECTION_CHANGED, lambda state: published.append(state))

        gate.update([object()])
        gate.update([object()])
        gate.update(None)

        assert [s.hands_present for s in seen] == [1, 0]
        assert len(published) == 2

    def test_failing_listener_isolated(self, gate):
        def broken(state):
            raise RuntimeError("view gone")

        gate.subscribe(broken)

        assert gate.update([object()]).is_active

    def test_unsubscribe(self, gate):
        seen = []
        gate.subscribe(seen.append)
        gate.unsubscribe(seen.append)

        gate.update([object()])

        assert seen == []

    def test_reset(self, gate):
        gate.update([object()])
        gate.reset()

        assert not gate.is_active


class TestHandDetector:
    """Test suite for the MediaPipe wrapper."""

    @pytest.fixture
    def mock_mp(self):
        with patch("signcapture.detection.hand_detector.mp") as mock:
            yield mock

    @pytest.fixture
    def rgb(self):
        return np.zeros((60, 80, 3), dtype=np.uint8)

    def test_initialize_uses_config(self, mock_mp):
        detector = HandDetector({"max_num_hands": 2, "min_detection_confidence": 0.5})
        detector.initialize()

        kwargs = mock_mp.solutions.hands.Hands.call_args.kwargs
        assert kwargs["max_num_hands"] == 2
        assert kwargs["min_detection_confidence"] == 0.5
        assert kwargs["min_tracking_confidence"] == 0.5
        assert detector.is_initialized

    def test_send_delivers_landmarks(self, mock_mp, rgb):
        """Each frame fires the callbacks with the landmark sets."""
        hands = mock_mp.solutions.hands.Hands.return_value
        hands.process.return_value = SimpleNamespace(multi_hand_landmarks=["left", "right"])

        detector = HandDetector({})
        detector.initialize()
        received = []
        detector.on_results(received.append)
        detector.send(rgb)

        assert received == [["left", "right"]]
        assert rgb.flags.writeable

    def test_send_no_hands(self, mock_mp, rgb):
        hands = mock_mp.solutions.hands.Hands.return_value
        hands.process.return_value = SimpleNamespace(multi_hand_landmarks=None)

        detector = HandDetector({})
        detector.initialize()
        received = []
        detector.on_results(received.append)
        detector.send(rgb)

        assert received == [None]

    def test_send_failure_is_logged(self, mock_mp, rgb):
        """A MediaPipe failure drops the frame without raising."""
        hands = mock_mp.solutions.hands.Hands.return_value
        hands.process.side_effect = RuntimeError("graph error")

        detector = HandDetector({})
        detector.initialize()
        received = []
        detector.on_results(received.append)
        detector.send(rgb)

        assert received == []
        assert rgb.flags.writeable

    def test_feeds_gate(self, mock_mp, rgb):
        hands = mock_mp.solutions.hands.Hands.return_value
        hands.process.return_value = SimpleNamespace(multi_hand_landmarks=["hand"])

        gate = DetectionGate()
        detector = HandDetector({})
        detector.initialize()
        detector.on_results(gate.update)
        detector.send(rgb)

        assert gate.current_state().hands_present == 1

    def test_close(self, mock_mp):
        detector = HandDetector({})
        detector.initialize()
        detector.close()
        detector.close()

        mock_mp.solutions.hands.Hands.return_value.close.assert_called_once()
        assert not detector.is_initialized

    def test_close_waits_for_running_process(self, mock_mp, rgb):
        """The graph is not closed while a frame is still being processed."""
        entered, release = threading.Event(), threading.Event()
        hands = mock_mp.solutions.hands.Hands.return_value
        events = []

        def slow_process(frame):
            entered.set()
            release.wait(timeout=5)
            events.append("process done")
            return SimpleNamespace(multi_hand_landmarks=None)

        hands.process.side_effect = slow_process
        hands.close.side_effect = lambda: events.append("close")

        detector = HandDetector({})
        detector.initialize()
        sender = threading.Thread(target=detector.send, args=(rgb,))
        sender.start()
        assert entered.wait(timeout=2)

        closer = threading.Thread(target=detector.close)
        closer.start()
        time.sleep(0.05)
        assert events == []

        release.set()
        sender.join(timeout=2)
        closer.join(timeout=2)
        assert events == ["process done", "close"]

    def test_no_reinitialize_after_close(self, mock_mp, rgb):
        """Frames arriving after close are dropped without a new graph."""
        detector = HandDetector({})
        detector.initialize()
        detector.close()
        received = []
        detector.on_results(received.append)

        detector.send(rgb)

        assert received == []
        assert mock_mp.solutions.hands.Hands.call_count == 1
        mock_mp.solutions.hands.Hands.return_value.process.assert_not_called()

    def test_detect_requires_initialize(self, mock_mp, rgb):
        with pytest.raises(RuntimeError):
            HandDetector({}).detect(rgb)

    def test_hand_count(self):
        assert HandDetector.get_hand_count(None) == 0
        assert HandDetector.get_hand_count(["a", "b"]) == 2


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
