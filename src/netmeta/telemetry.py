"""
Telemetry event channel.

Distributes live notifications (flaps, corruption, remediations) through a
bounded queue. Producers never block: when the queue is full the newest
event is dropped and counted.

Copyright (c) 2025 DNS Science.io, an After Dark Systems, LLC company.
All rights reserved.
"""

import json
import logging
import queue
import threading
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable

logger = logging.getLogger(__name__)

DEFAULT_CAPACITY = 1000


class EventType(str, Enum):
    """Telemetry event types."""
    BGP_FLAP = "bgp_flap"
    RPKI_INVALID = "rpki_invalid"
    OSPF_ADJACENCY = "ospf_adjacency"
    REMEDIATION = "remediation"
    MPLS_CORRUPTION = "mpls_corruption"


@dataclass
class TelemetryEvent:
    """A single telemetry notification."""
    type: EventType
    source: str
    message: str
    timestamp: datetime = field(default_factory=datetime.now)
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        data = {
            "timestamp": self.timestamp.isoformat(),
            "type": self.type.value,
            "source": self.source,
            "message": self.message,
        }
        if self.metadata:
            data["metadata"] = self.metadata
        return data


class EventLogger:
    """
    Bounded, drop-newest event channel with a background consumer.

    Usage:
        events = EventLogger()
        events.start()
        events.log_event(EventType.BGP_FLAP, "10.0.0.1", "session dropped")
        events.close()
    """

    def __init__(
        self,
        capacity: int = DEFAULT_CAPACITY,
        sink: Callable[[TelemetryEvent], None] | None = None,
    ):
        self._queue: queue.Queue[TelemetryEvent] = queue.Queue(maxsize=capacity)
        self._sink = sink or _log_sink
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None
        self._dropped = 0
        self._lock = threading.Lock()

    @property
    def dropped(self) -> int:
        """Number of events shed because the queue was full."""
        with self._lock:
            return self._dropped

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    def log_event(
        self,
        event_type: EventType,
        source: str,
        message: str,
        metadata: dict[str, Any] | None = None,
    ) -> bool:
        """Queue an event without blocking.

        Returns:
            True if queued, False if the channel was full and the event dropped
        """
        event = TelemetryEvent(
            type=event_type,
            source=source,
            message=message,
            metadata=metadata or {},
        )
        try:
            self._queue.put_nowait(event)
        except queue.Full:
            with self._lock:
                self._dropped += 1
            logger.warning(f"Event channel full, dropping event: {message}")
            return False
        return True

    def start(self) -> None:
        """Start the background consumer thread."""
        if self._thread and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._run, name="netmeta-telemetry", daemon=True
        )
        self._thread.start()

    def _run(self) -> None:
        while not self._stop.is_set() or not self._queue.empty():
            try:
                event = self._queue.get(timeout=0.2)
            except queue.Empty:
                continue
            try:
                self._sink(event)
            except Exception as e:
                logger.error(f"Error delivering telemetry event: {e}")
            finally:
                self._queue.task_done()

    def drain(self) -> list[TelemetryEvent]:
        """Remove and return everything currently queued."""
        events = []
        while True:
            try:
                events.append(self._queue.get_nowait())
            except queue.Empty:
                return events
            self._queue.task_done()

    def close(self, timeout: float = 5.0) -> None:
        """Stop the consumer after it has flushed queued events."""
        self._stop.set()
        if self._thread:
            self._thread.join(timeout)
            self._thread = None


def _log_sink(event: TelemetryEvent) -> None:
    logger.info(f"Event: {json.dumps(event.to_dict(), default=str)}")
