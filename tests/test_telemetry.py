"""
Tests for the telemetry event channel and the periodic task runner.
"""

import threading
import time

import pytest

from netmeta.scheduler import PeriodicTask
from netmeta.telemetry import EventLogger, EventType


class TestEventLogger:
    """Bounded, drop-newest delivery."""

    def test_queue_and_drain(self):
        events = EventLogger(capacity=5)

        assert events.log_event(EventType.BGP_FLAP, "10.0.0.1", "down", {"flap_count": 1})

        drained = events.drain()
        assert len(drained) == 1
        assert drained[0].source == "10.0.0.1"
        assert drained[0].metadata == {"flap_count": 1}
        assert events.pending == 0

    def test_drops_newest_when_full(self):
        events = EventLogger(capacity=2)

        assert events.log_event(EventType.BGP_FLAP, "a", "first")
        assert events.log_event(EventType.BGP_FLAP, "b", "second")
        assert not events.log_event(EventType.BGP_FLAP, "c", "third")

        assert events.dropped == 1
        assert [event.source for event in events.drain()] == ["a", "b"]

    def test_to_dict(self):
        events = EventLogger(capacity=1)
        events.log_event(EventType.REMEDIATION, "10.0.0.1", "withdrawn")

        data = events.drain()[0].to_dict()
        assert data["type"] == "remediation"
        assert data["source"] == "10.0.0.1"
        assert data["message"] == "withdrawn"

    def test_consumer_delivers_to_sink(self):
        delivered = []
        events = EventLogger(capacity=10, sink=delivered.append)
        events.start()

        events.log_event(EventType.OSPF_ADJACENCY, "1.1.1.1", "adjacency up")
        events.log_event(EventType.RPKI_INVALID, "192.0.2.0/24", "invalid origin")
        events.close()

        assert [event.type for event in delivered] == [
            EventType.OSPF_ADJACENCY,
            EventType.RPKI_INVALID,
        ]

    def test_sink_errors_do_not_stop_consumer(self):
        delivered = []

        def sink(event):
            if event.source == "bad":
                raise RuntimeError("sink failed")
            delivered.append(event)

        events = EventLogger(capacity=10, sink=sink)
        events.start()
        events.log_event(EventType.BGP_FLAP, "bad", "x")
        events.log_event(EventType.BGP_FLAP, "good", "y")
        events.close()

        assert [event.source for event in delivered] == ["good"]


class TestPeriodicTask:
    """Timer-driven background tasks."""

    def test_rejects_non_positive_interval(self):
        with pytest.raises(ValueError):
            PeriodicTask("bad", 0, lambda: None)

    def test_runs_and_stops(self):
        ran = threading.Event()
        task = PeriodicTask("test", 0.01, ran.set)

        task.start()
        assert ran.wait(2.0)
        task.stop(timeout=2.0)

        assert not task.running
        cycles = task.cycles
        time.sleep(0.05)
        assert task.cycles == cycles

    def test_failing_cycle_keeps_running(self):
        calls = []

        def func():
            calls.append(1)
            raise RuntimeError("boom")

        task = PeriodicTask("failing", 0.01, func)
        task.start()
        deadline = time.monotonic() + 2.0
        while len(calls) < 3 and time.monotonic() < deadline:
            time.sleep(0.01)
        task.stop(timeout=2.0)

        assert len(calls) >= 3

    def test_stop_waits_for_in_flight_cycle(self):
        started = threading.Event()
        finished = []

        def slow():
            started.set()
            time.sleep(0.1)
            finished.append(1)

        task = PeriodicTask("slow", 0.01, slow)
        task.start()
        assert started.wait(2.0)
        task.stop(timeout=2.0)

        assert finished
