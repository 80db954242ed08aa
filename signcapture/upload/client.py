"""
HTTP client for the remote storage, training and prediction service.

Every call blocks until the response arrives or the client timeout
expires. `requests` failures are translated into the pipeline error
taxonomy so callers never see transport-specific exceptions.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional
from urllib.parse import quote

import requests

from signcapture.core.errors import NetworkError, RemoteTimeoutError, RemoteValidationError
from signcapture.core.types import ModelInfo, PredictionResult, SampleInventory

logger = logging.getLogger(__name__)

# Status codes meaning "the request itself was rejected"
_VALIDATION_STATUSES = {400, 404, 409, 422}


@dataclass
class ApiConfig:
    """Remote service settings."""
    base_url: str = "https://wa-b6c3.onrender.com"
    timeout_sec: float = 30.0

    @classmethod
    def from_dict(cls, d: dict) -> "ApiConfig":
        return cls(
            base_url=d.get("base_url", "https://wa-b6c3.onrender.com"),
            timeout_sec=float(d.get("timeout_sec", 30.0)),
        )


class RemoteClient:
    """Thin wrapper over the REST API using a pooled requests.Session."""

    def __init__(self, config: Optional[ApiConfig] = None, session: Optional[requests.Session] = None):
        self.config = config or ApiConfig()
        self._base_url = self.config.base_url.rstrip("/")
        self._session = session or requests.Session()

    # ------------------------------------------------------------------
    # Samples
    # ------------------------------------------------------------------

    def upload_sample(self, label: str, payload: bytes) -> dict:
        """POST one labeled JPEG to the training corpus.

        Raises:
            RemoteValidationError: service answered without status "success"
        """
        data = self._request(
            "POST", "/api/upload_sample",
            files={"file": ("capture.jpg", payload, "image/jpeg")},
            data={"label": label},
        )
        if data.get("status") != "success":
            raise RemoteValidationError(
                f"Upload rejected: {data.get('detail') or data.get('status') or 'unknown status'}"
            )
        return data

    def get_samples(self) -> SampleInventory:
        return SampleInventory.from_dict(self._request("GET", "/api/samples"))

    def clear_samples(self) -> dict:
        return self._request("DELETE", "/api/clear_samples")

    # ------------------------------------------------------------------
    # Models
    # ------------------------------------------------------------------

    def train(self, model_name: str) -> float:
        """Train a model on the current corpus. Returns its accuracy."""
        data = self._request("POST", "/api/train", data={"name": model_name})
        try:
            return float(data["accuracy"])
        except (KeyError, TypeError, ValueError):
            raise NetworkError(f"Malformed training response: {data!r}")

    def predict(self, payload: bytes, model_name: str) -> PredictionResult:
        data = self._request(
            "POST", "/api/predict",
            files={"file": ("predict.jpg", payload, "image/jpeg")},
            data={"model": model_name},
        )
        return PredictionResult.from_dict(data)

    def list_models(self) -> List[ModelInfo]:
        data = self._request("GET", "/api/models")
        return [ModelInfo.from_dict(m) for m in data.get("models") or []]

    def delete_model(self, model_name: str) -> dict:
        return self._request("DELETE", f"/api/model/{quote(model_name, safe='')}")

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def _request(self, method: str, path: str, **kwargs) -> dict:
        url = f"{self._base_url}{path}"
        logger.debug("%s %s", method, url)
        try:
            response = self._session.request(method, url, timeout=self.config.timeout_sec, **kwargs)
            response.raise_for_status()
        except requests.exceptions.Timeout as exc:
            raise RemoteTimeoutError(
                f"Timeout: the server took longer than {self.config.timeout_sec:.0f}s to respond"
            ) from exc
        except requests.exceptions.HTTPError as exc:
            status = exc.response.status_code if exc.response is not None else None
            detail = _error_detail(exc.response) or str(exc)
            if status in _VALIDATION_STATUSES:
                raise RemoteValidationError(detail) from exc
            raise NetworkError(f"HTTP {status}: {detail}") from exc
        except requests.exceptions.ConnectionError as exc:
            raise NetworkError("Connection error: could not reach the server") from exc
        except requests.exceptions.RequestException as exc:
            raise NetworkError(f"Request failed: {exc}") from exc

        if not response.content:
            return {}
        try:
            data = response.json()
        except ValueError as exc:
            raise NetworkError(f"Invalid JSON from {path}") from exc
        return data if isinstance(data, dict) else {"data": data}

    def close(self):
        self._session.close()

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()


def _error_detail(response) -> Optional[str]:
    """Extract the `detail` field FastAPI-style services put in error bodies."""
    if response is None:
        return None
    try:
        body = response.json()
    except ValueError:
        return response.text.strip() or None
    if isinstance(body, dict) and body.get("detail"):
        return str(body["detail"])
    return None
