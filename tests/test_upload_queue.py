"""
Tests for the Upload Queue
===========================
"""

import pytest
import sys
import threading
import time
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from signcapture.core.errors import RemoteValidationError
from signcapture.core.events import EventBus, Events
from signcapture.core.session import SessionState
from signcapture.core.types import Sample
from signcapture.upload.queue import UploadQueue

from fakes import FakeClient, wait_until


def make_samples(*labels):
    return [Sample(label=label, payload=f"jpeg-{i}".encode()) for i, label in enumerate(labels)]


class TestUploadQueue:
    """Test suite for FIFO draining and failure policy."""

    @pytest.fixture
    def bus(self):
        return EventBus()

    @pytest.fixture
    def session(self, bus):
        return SessionState(bus=bus)

    def test_fifo_order_and_count_returns_to_zero(self, session):
        """N enqueues with no failures are uploaded exactly once, in order."""
        client = FakeClient()
        queue = UploadQueue(client, session, settle_delay_ms=0)

        samples = make_samples("A", "E", "I", "O", "U", "A")
        for sample in samples:
            queue.enqueue(sample)

        assert queue.wait_idle(timeout=5)
        assert client.uploads == [(s.label, s.payload) for s in samples]
        assert session.queued_count == 0
        assert queue.uploaded_count == 6
        assert queue.failed_count == 0

    def test_enqueue_increments_queued_count(self, session):
        """Queued count covers pending samples plus the one in flight."""
        gate = threading.Event()
        client = FakeClient(gate=gate)
        queue = UploadQueue(client, session, settle_delay_ms=0)

        for sample in make_samples("A", "B", "C"):
            queue.enqueue(sample)

        assert wait_until(lambda: queue.in_flight)
        assert session.queued_count == 3
        assert queue.pending == 2

        gate.set()
        assert queue.wait_idle(timeout=5)
        assert session.queued_count == 0

    def test_failed_upload_is_dropped_and_worker_advances(self, session, bus):
        """A network failure drops the sample, reports it, and moves on."""
        failures = []
        bus.subscribe(Events.UPLOAD_FAILED, lambda **kw: failures.append(kw))

        client = FakeClient(fail_labels={"B"})
        queue = UploadQueue(client, session, bus=bus, settle_delay_ms=0)

        for sample in make_samples("A", "B", "C"):
            queue.enqueue(sample)

        assert queue.wait_idle(timeout=5)
        assert client.labels == ["A", "B", "C"]
        assert session.queued_count == 0
        assert queue.failed_count == 1
        assert queue.uploaded_count == 2
        assert len(failures) == 1
        assert failures[0]["label"] == "B"
        assert "Error uploading sample" in session.error

    def test_failed_upload_not_retried(self, session):
        """Every sample is attempted exactly once."""
        client = FakeClient(fail_labels={"A"})
        queue = UploadQueue(client, session, settle_delay_ms=0)

        queue.enqueue(make_samples("A")[0])

        assert queue.wait_idle(timeout=5)
        assert client.labels == ["A"]

    def test_rejected_status_counts_as_failure(self, session):
        """A non-success response drops the sample like a network error."""

        class RejectingClient(FakeClient):
            def upload_sample(self, label, payload):
                super().upload_sample(label, payload)
                raise RemoteValidationError("Upload rejected: error")

        queue = UploadQueue(RejectingClient(), session, settle_delay_ms=0)
        queue.enqueue(make_samples("A")[0])

        assert queue.wait_idle(timeout=5)
        assert queue.failed_count == 1
        assert session.queued_count == 0
        assert session.inventory.total_samples == 0

    def test_drain_while_in_flight_is_noop(self, session):
        """A second drain during an in-flight upload does nothing itself."""
        gate = threading.Event()
        client = FakeClient(gate=gate)
        queue = UploadQueue(client, session, settle_delay_ms=0)

        for sample in make_samples("A", "B"):
            queue.enqueue(sample)
        assert wait_until(lambda: queue.in_flight)

        assert queue.drain_once() is False
        assert queue.pending == 1

        gate.set()
        assert queue.wait_idle(timeout=5)
        assert client.labels == ["A", "B"]

    def test_drain_on_empty_queue(self, session):
        """Draining an empty queue attempts nothing."""
        queue = UploadQueue(FakeClient(), session, settle_delay_ms=0)

        assert queue.drain_once() is False
        assert queue.wait_idle(timeout=0.1)

    def test_settle_delay_between_uploads(self, session):
        """Each attempt is followed by the settle pause."""
        client = FakeClient()
        queue = UploadQueue(client, session, settle_delay_ms=50)

        start = time.perf_counter()
        for sample in make_samples("A", "B", "C"):
            queue.enqueue(sample)
        assert queue.wait_idle(timeout=5)
        elapsed = time.perf_counter() - start

        assert elapsed >= 0.14

    def test_success_updates_local_inventory(self, session):
        """Confirmed uploads are counted per label."""
        queue = UploadQueue(FakeClient(), session, settle_delay_ms=0)

        for sample in make_samples("A", "A", "E"):
            queue.enqueue(sample)
        assert queue.wait_idle(timeout=5)

        assert session.inventory.total_samples == 3
        assert session.inventory.samples_per_class == {"A": 2, "E": 1}

    def test_upload_events(self, session, bus):
        """Queued and uploaded events are published with the queue depth."""
        queued, uploaded = [], []
        bus.subscribe(Events.SAMPLE_QUEUED, lambda **kw: queued.append(kw["queued"]))
        bus.subscribe(Events.SAMPLE_UPLOADED, lambda **kw: uploaded.append(kw["label"]))

        gate = threading.Event()
        queue = UploadQueue(FakeClient(gate=gate), session, bus=bus, settle_delay_ms=0)
        for sample in make_samples("A", "B"):
            queue.enqueue(sample)
        gate.set()
        assert queue.wait_idle(timeout=5)

        assert queued == [1, 2]
        assert uploaded == ["A", "B"]

    def test_worker_restarts_after_idle(self, session):
        """Samples enqueued after the queue went idle are still drained."""
        client = FakeClient()
        queue = UploadQueue(client, session, settle_delay_ms=0)

        queue.enqueue(make_samples("A")[0])
        assert queue.wait_idle(timeout=5)
        queue.enqueue(make_samples("B")[0])
        assert queue.wait_idle(timeout=5)

        assert client.labels == ["A", "B"]

    def test_close_refuses_new_samples(self, session):
        """A closed queue drains what it has and rejects new samples."""
        client = FakeClient()
        queue = UploadQueue(client, session, settle_delay_ms=0)
        queue.enqueue(make_samples("A")[0])

        assert queue.close(timeout=5)
        with pytest.raises(RuntimeError):
            queue.enqueue(make_samples("B")[0])
        assert client.labels == ["A"]

    def test_upload_logger_history(self, session):
        """Every attempt lands in the upload log."""
        queue = UploadQueue(FakeClient(fail_labels={"B"}), session, settle_delay_ms=0)
        for sample in make_samples("A", "B"):
            queue.enqueue(sample)
        assert queue.wait_idle(timeout=5)

        assert queue.upload_logger.total_uploads == 2
        assert queue.upload_logger.failed_uploads == 1


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
