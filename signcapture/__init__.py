"""
Sign Capture Dashboard Core
============================

Camera-driven collection of labeled hand-sign samples, remote model
training, and live prediction.

Modules:
    - core: Shared types, errors, event bus and session state
    - capture: Camera frame acquisition and JPEG encoding
    - detection: MediaPipe hand detection and the hand-presence gate
    - upload: Remote API client and the ordered upload queue
    - recording: Timer-driven recording controller
    - utils: Configuration and logging
"""

__version__ = "1.0.0"
__author__ = "HCI Team"
