"""
Error taxonomy for the capture pipeline.

Core components raise these; the dashboard turns them into user-facing
messages at the session boundary.
"""


class SignCaptureError(Exception):
    """Base class for all pipeline errors."""


class CameraError(SignCaptureError):
    """Camera device unavailable or access denied. Fatal to the session."""


class EncodeError(SignCaptureError):
    """Frame not ready for encoding. Callers skip the tick."""


class PreconditionError(SignCaptureError):
    """Action refused because its precondition (usually a visible hand) is unmet."""


class NetworkError(SignCaptureError):
    """Remote call failed."""


class RemoteTimeoutError(NetworkError):
    """Remote call exceeded the client timeout."""


class RemoteValidationError(SignCaptureError):
    """Remote service (or a local pre-check) rejected the request."""
