"""
Lightweight event bus through which the view layer observes the pipeline.

Components publish state changes (detection, queued and uploaded samples,
recording start/stop, predictions, messages) and the view subscribes,
so no component needs a reference to the view.

Usage:
    bus = EventBus()
    bus.subscribe(Events.SAMPLE_UPLOADED, my_handler)
    bus.emit(Events.SAMPLE_UPLOADED, label="A", queued=3)
"""

import logging
import threading
from collections import defaultdict
from typing import Callable

logger = logging.getLogger(__name__)


class EventBus:
    """Thread-safe publish/subscribe event bus.

    One bus is owned by each dashboard and handed to its components.
    Listeners run synchronously on the emitting thread in subscription
    order; a failing listener is logged and never breaks the emitter.
    """

    def __init__(self):
        self._listeners = defaultdict(list)  # event_name -> [callback]
        self._lock = threading.Lock()

    def subscribe(self, event_name: str, callback: Callable):
        """Register a listener for an event.

        Args:
            event_name: Event to listen for
            callback: Function to call. Receives **kwargs from emit().
        """
        with self._lock:
            self._listeners[event_name].append(callback)
        logger.debug("Subscribed to '%s': %s",
                     event_name, getattr(callback, "__name__", callback))

    def unsubscribe(self, event_name: str, callback: Callable):
        """Remove a listener for an event."""
        with self._lock:
            self._listeners[event_name] = [
                cb for cb in self._listeners[event_name] if cb != callback
            ]

    def emit(self, event_name: str, **kwargs):
        """Emit an event to all registered listeners."""
        with self._lock:
            listeners = list(self._listeners.get(event_name, []))

        for callback in listeners:
            try:
                callback(**kwargs)
            except Exception as e:
                logger.error("Event handler error [%s -> %s]: %s",
                             event_name, getattr(callback, "__name__", callback), e)

    def clear(self):
        """Remove all listeners."""
        with self._lock:
            self._listeners.clear()


# =============================================================================
# Standard Event Names (constants to avoid typos)
# =============================================================================

class Events:
    """Standard event names used throughout the system."""

    # Detection
    DETECTION_CHANGED = "detection_changed"

    # Camera lifecycle
    CAMERA_STARTED = "camera_started"
    CAMERA_STOPPED = "camera_stopped"
    CAMERA_ERROR = "camera_error"

    # Upload queue
    SAMPLE_QUEUED = "sample_queued"
    SAMPLE_UPLOADED = "sample_uploaded"
    UPLOAD_FAILED = "upload_failed"

    # Recording
    RECORDING_STARTED = "recording_started"
    RECORDING_STOPPED = "recording_stopped"

    # Remote model operations
    PREDICTION_READY = "prediction_ready"
    MODELS_UPDATED = "models_updated"
    INVENTORY_UPDATED = "inventory_updated"

    # User-facing messages (error / success)
    MESSAGE = "message"
