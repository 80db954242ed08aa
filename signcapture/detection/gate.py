"""
Detection gate: reduces detector output to a hand-presence signal.

The gate is a single latest-value cell, not a queue. Each detector event
fully replaces the previous state, so capture and prediction actions react
to the hands visible right now rather than to a backlog of detections.
"""

import logging
import threading
from typing import Callable, List, Optional, Sequence

from signcapture.core.events import EventBus, Events
from signcapture.core.types import DetectionState

logger = logging.getLogger(__name__)

StateListener = Callable[[DetectionState], None]


class DetectionGate:
    """Thread-safe holder of the latest DetectionState."""

    def __init__(self, bus: Optional[EventBus] = None):
        self._bus = bus
        self._lock = threading.Lock()
        self._state = DetectionState()
        self._listeners: List[StateListener] = []
        self._event_count = 0

    def update(self, landmark_sets: Optional[Sequence]) -> DetectionState:
        """Normalize one detector event and publish it.

        Args:
            landmark_sets: hand landmark sets for one frame, or None

        Returns:
            The new state
        """
        state = DetectionState.from_count(len(landmark_sets) if landmark_sets else 0)
        with self._lock:
            previous = self._state
            self._state = state
            self._event_count += 1
            listeners = list(self._listeners)

        if state != previous:
            logger.debug("Detection changed: %d -> %d hands",
                         previous.hands_present, state.hands_present)
            for listener in listeners:
                try:
                    listener(state)
                except Exception as e:
                    logger.error("Detection listener error: %s", e)
            if self._bus is not None:
                self._bus.emit(Events.DETECTION_CHANGED, state=state)

        return state

    def reset(self):
        """Drop back to 'no hands', e.g. when the camera stops."""
        self.update(None)

    def current_state(self) -> DetectionState:
        with self._lock:
            return self._state

    @property
    def is_active(self) -> bool:
        return self.current_state().is_active

    def subscribe(self, listener: StateListener):
        """Call `listener(state)` whenever the state changes."""
        with self._lock:
            self._listeners.append(listener)

    def unsubscribe(self, listener: StateListener):
        with self._lock:
            self._listeners = [cb for cb in self._listeners if cb != listener]

    @property
    def event_count(self) -> int:
        """Number of detector events seen."""
        with self._lock:
            return self._event_count
