"""Remote API client and the ordered sample upload queue."""
from .client import RemoteClient, ApiConfig
from .queue import UploadQueue

__all__ = ["RemoteClient", "ApiConfig", "UploadQueue"]
