"""
Ordered upload queue for captured samples.

Samples are transmitted strictly FIFO by a single worker thread. At most
one drain is in flight at any time; a drain requested while another is
running is folded into a re-run after the current one completes.

Failure policy is best-effort: a sample whose upload fails is dropped,
the failure is reported to the session, and the worker moves on. There
are no retries. Every attempt is followed by a settle delay so uploads
never hammer the remote service back to back.
"""

import time
import logging
import threading
from collections import deque
from typing import Optional

from signcapture.core.errors import SignCaptureError
from signcapture.core.events import EventBus, Events
from signcapture.core.session import SessionState
from signcapture.core.types import Sample
from signcapture.upload.client import RemoteClient
from signcapture.utils.logger import UploadLogger

logger = logging.getLogger(__name__)


class UploadQueue:
    """Unbounded FIFO of pending samples drained by one worker thread."""

    def __init__(
        self,
        client: RemoteClient,
        session: SessionState,
        bus: Optional[EventBus] = None,
        settle_delay_ms: int = 200,
        upload_logger: Optional[UploadLogger] = None,
    ):
        self._client = client
        self._session = session
        self._bus = bus
        self._settle_delay_s = max(0, settle_delay_ms) / 1000.0
        self._upload_logger = upload_logger or UploadLogger()

        self._items = deque()
        self._cond = threading.Condition()
        self._draining = False
        self._rerun = False
        self._worker: Optional[threading.Thread] = None
        self._closed = False

        self._uploaded = 0
        self._failed = 0

    def enqueue(self, sample: Sample) -> int:
        """Append a sample to the tail and make sure the worker is running.

        Returns:
            The queued count after the append
        """
        with self._cond:
            if self._closed:
                raise RuntimeError("Upload queue is closed")
            self._items.append(sample)
            queued = self._session.add_queued()
            self._ensure_worker()

        logger.debug("Queued %r (queued=%d)", sample, queued)
        self._emit(Events.SAMPLE_QUEUED, label=sample.label, queued=queued)
        return queued

    def drain_once(self) -> bool:
        """Transmit the head of the queue.

        If another drain is in flight this is a no-op that schedules a
        re-run once the in-flight drain completes.

        Returns:
            True if a sample was attempted, False otherwise
        """
        with self._cond:
            if self._draining:
                self._rerun = True
                return False
            if not self._items:
                return False
            sample = self._items.popleft()
            self._draining = True

        try:
            self._transmit(sample)
        finally:
            if self._settle_delay_s:
                time.sleep(self._settle_delay_s)
            with self._cond:
                self._draining = False
                rerun, self._rerun = self._rerun, False
                if rerun and self._items:
                    self._ensure_worker()
                self._cond.notify_all()
        return True

    def _transmit(self, sample: Sample):
        start = time.perf_counter()
        try:
            self._client.upload_sample(sample.label, sample.payload)
        except SignCaptureError as e:
            self._on_failure(sample, str(e), start)
        except Exception as e:
            logger.exception("Unexpected upload error for %r", sample)
            self._on_failure(sample, f"Unexpected error: {e}", start)
        else:
            latency_ms = (time.perf_counter() - start) * 1000
            queued = self._session.remove_queued()
            self._uploaded += 1
            self._session.record_upload(sample.label)
            self._upload_logger.log_upload(sample.label, len(sample.payload), True, latency_ms)
            self._emit(Events.SAMPLE_UPLOADED, label=sample.label, queued=queued)

    def _on_failure(self, sample: Sample, detail: str, start: float):
        latency_ms = (time.perf_counter() - start) * 1000
        queued = self._session.remove_queued()
        self._failed += 1
        self._upload_logger.log_upload(sample.label, len(sample.payload), False, latency_ms, detail)
        self._session.report_error(f"Error uploading sample: {detail}")
        self._emit(Events.UPLOAD_FAILED, label=sample.label, queued=queued, error=detail)

    def _ensure_worker(self):
        """Start the worker if none is alive. Caller holds the condition."""
        if self._worker is None:
            self._worker = threading.Thread(target=self._run, name="upload-worker", daemon=True)
            self._worker.start()

    def _run(self):
        """Worker loop: drain until the queue is empty, then exit."""
        while True:
            with self._cond:
                while self._draining:
                    self._cond.wait()
                if not self._items:
                    self._worker = None
                    self._cond.notify_all()
                    return
            self.drain_once()

    def wait_idle(self, timeout: Optional[float] = None) -> bool:
        """Block until the queue is empty and no drain is in flight.

        Returns:
            False if the timeout expired first
        """
        with self._cond:
            return self._cond.wait_for(
                lambda: not self._items and not self._draining, timeout=timeout
            )

    def close(self, timeout: Optional[float] = None) -> bool:
        """Refuse new samples and wait for the pending ones to drain."""
        with self._cond:
            self._closed = True
        drained = self.wait_idle(timeout)
        if not drained:
            logger.warning("Upload queue closed with %d samples still pending", self.pending)
        return drained

    def _emit(self, event_name: str, **kwargs):
        if self._bus is not None:
            self._bus.emit(event_name, **kwargs)

    @property
    def pending(self) -> int:
        """Samples waiting, excluding one in flight."""
        with self._cond:
            return len(self._items)

    @property
    def in_flight(self) -> bool:
        with self._cond:
            return self._draining

    @property
    def uploaded_count(self) -> int:
        return self._uploaded

    @property
    def failed_count(self) -> int:
        return self._failed

    @property
    def upload_logger(self) -> UploadLogger:
        return self._upload_logger
