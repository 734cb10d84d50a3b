"""
Rule-based auto-remediation engine.

Evaluates peer flap counts against the configured threshold and window,
withdraws routes from misbehaving peers, and keeps an auditable ledger of
every remediation attempt (automatic or operator-triggered).

Per peer the engine cycles through:
    Monitoring -> ThresholdExceeded -> Remediating -> Cooldown -> Monitoring
where Cooldown is the flap count reset done by a successful withdrawal.

Copyright (c) 2025 DNS Science.io, an After Dark Systems, LLC company.
All rights reserved.
"""

import logging
import threading
from collections import deque
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any, Callable

from netmeta.bgp.registry import PeerStateRegistry
from netmeta.config import AutoConfig
from netmeta.errors import (
    EmptyRemediationTarget,
    ExternalCallFailure,
    NetmetaError,
)
from netmeta.scheduler import PeriodicTask
from netmeta.telemetry import EventLogger
from netmeta.telemetry import EventType as TelemetryType

logger = logging.getLogger(__name__)

MAX_LEDGER_EVENTS = 1000


class EventType(str, Enum):
    """Remediation event types."""
    FLAP = "flap"
    RPKI_INVALID = "rpki_invalid"
    OSPF_ADJACENCY = "ospf_adjacency"
    MANUAL = "manual"


# Reasons, as counted by get_remediation_count()
REASON_FLAP = "flap"
REASON_RPKI = "rpki"
REASON_ADJACENCY_DOWN = "adjacency_down"

ACTION_WITHDRAW_ALL = "withdraw_all_prefixes"
ACTION_WITHDRAW_PREFIX = "withdraw_prefix"
ACTION_RESTART_INTERFACE = "restart_interface"
ACTION_MANUAL = "manual_remediation"


@dataclass
class RemediationEvent:
    """One remediation attempt."""
    type: EventType
    target: str
    reason: str
    action: str
    success: bool = False
    timestamp: datetime = field(default_factory=datetime.now)

    def copy(self) -> "RemediationEvent":
        return replace(self)

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp.isoformat(),
            "type": self.type.value,
            "target": self.target,
            "reason": self.reason,
            "action": self.action,
            "success": self.success,
        }


class EventLedger:
    """Append-only event log keeping the most recent ``capacity`` entries."""

    def __init__(self, capacity: int = MAX_LEDGER_EVENTS):
        self.capacity = capacity
        self._events: deque[RemediationEvent] = deque(maxlen=capacity)
        self._lock = threading.Lock()

    def append(self, event: RemediationEvent) -> None:
        # deque(maxlen) evicts from the left on overflow
        with self._lock:
            self._events.append(event.copy())

    def recent(self, limit: int = 0) -> list[RemediationEvent]:
        """Most recent ``limit`` events, oldest first; all if limit <= 0."""
        with self._lock:
            events = list(self._events)
        if 0 < limit < len(events):
            events = events[-limit:]
        return [event.copy() for event in events]

    def count(self, reason: str, success: bool = True) -> int:
        with self._lock:
            return sum(
                1 for event in self._events
                if event.reason == reason and event.success == success
            )

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)


class RemediationEngine:
    """
    Periodic flap evaluator plus manual remediation triggers.

    Usage:
        engine = RemediationEngine(config.auto, registry)
        engine.start()           # no-op when auto-remediation is disabled
        engine.remediate_manual("10.0.0.1", "", "maintenance")
        engine.stop()
    """

    def __init__(
        self,
        config: AutoConfig,
        peers: PeerStateRegistry,
        ledger: EventLedger | None = None,
        telemetry: EventLogger | None = None,
        interface_controller: Callable[[str], None] | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.config = config
        self.peers = peers
        self.ledger = ledger or EventLedger()
        self._telemetry = telemetry
        self._interface_controller = interface_controller
        self._clock = clock
        self._listeners: list[Callable[[RemediationEvent], None]] = []
        self._task: PeriodicTask | None = None

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def start(self) -> bool:
        """Start the evaluation timer if auto-remediation is enabled."""
        if not self.config.enabled:
            logger.info("Auto-remediation disabled")
            return False
        if self._task is None:
            self._task = PeriodicTask(
                "netmeta-remediation",
                self.config.evaluation_interval,
                self.evaluation_cycle,
            )
        self._task.start()
        logger.info(
            f"Auto-remediation enabled: threshold {self.config.flap_threshold} flaps "
            f"in {self.config.flap_window_sec}s"
        )
        return True

    def stop(self) -> None:
        """Stop the timer; an in-flight cycle completes first."""
        if self._task:
            self._task.stop()

    def add_listener(self, listener: Callable[[RemediationEvent], None]) -> None:
        """Call ``listener`` with a copy of every recorded event."""
        self._listeners.append(listener)

    # -------------------------------------------------------------------------
    # Automatic remediation
    # -------------------------------------------------------------------------

    def _threshold_exceeded(self, peer, now: datetime) -> bool:
        threshold = self.config.flap_threshold
        window = self.config.flap_window_sec
        if peer.flap_count <= threshold or peer.last_flap_time is None:
            return False
        return (now - peer.last_flap_time).total_seconds() < window

    def evaluation_cycle(self, now: datetime | None = None) -> list[RemediationEvent]:
        """Check every peer once and remediate those over the threshold.

        Returns:
            Events recorded during this cycle
        """
        now = now or self._clock()
        events = []
        for peer in self.peers.get_all_peers():
            if self._threshold_exceeded(peer, now):
                logger.warning(
                    f"Peer {peer.address} exceeded flap threshold "
                    f"({peer.flap_count} > {self.config.flap_threshold})"
                )
                events.append(self._remediate_flap(peer.address, now))
        return events

    def _remediate_flap(self, address: str, now: datetime) -> RemediationEvent:
        event = RemediationEvent(
            type=EventType.FLAP,
            target=address,
            reason=REASON_FLAP,
            action=ACTION_WITHDRAW_ALL,
            timestamp=now,
        )
        try:
            self.peers.withdraw_all_prefixes(address)
            event.success = True
        except NetmetaError as e:
            logger.error(f"Flap remediation for {address} failed: {e}")
        self.record_event(event)
        return event

    # -------------------------------------------------------------------------
    # Triggered remediation
    # -------------------------------------------------------------------------

    def remediate_rpki_invalid(self, prefix: str) -> RemediationEvent:
        """Withdraw an RPKI-invalid prefix and record the attempt."""
        event = RemediationEvent(
            type=EventType.RPKI_INVALID,
            target=prefix,
            reason=REASON_RPKI,
            action=ACTION_WITHDRAW_PREFIX,
            timestamp=self._clock(),
        )
        try:
            self.peers.withdraw_prefix(prefix)
        except NetmetaError:
            self.record_event(event)
            raise
        event.success = True
        self.record_event(event)
        return event

    def remediate_ospf_adjacency_down(self, interface_name: str) -> RemediationEvent:
        """Restart an interface whose OSPF adjacency went down."""
        event = RemediationEvent(
            type=EventType.OSPF_ADJACENCY,
            target=interface_name,
            reason=REASON_ADJACENCY_DOWN,
            action=ACTION_RESTART_INTERFACE,
            timestamp=self._clock(),
        )
        if self._interface_controller is not None:
            try:
                self._interface_controller(interface_name)
            except Exception as e:
                self.record_event(event)
                raise ExternalCallFailure(
                    f"failed to restart interface {interface_name}: {e}"
                ) from e
        event.success = True
        self.record_event(event)
        return event

    def remediate_manual(self, peer: str, prefix: str, reason: str) -> RemediationEvent:
        """Operator-triggered remediation by peer and/or prefix.

        Exactly one ``manual`` event is recorded whatever the outcome.

        Raises:
            EmptyRemediationTarget: Neither peer nor prefix was given
            PeerNotFound, ExternalCallFailure, InvalidAddress: A sub-operation
                failed; later sub-operations are skipped
        """
        if not peer and not prefix:
            raise EmptyRemediationTarget()

        event = RemediationEvent(
            type=EventType.MANUAL,
            target=" ".join(part for part in (peer, prefix) if part),
            reason=reason,
            action=ACTION_MANUAL,
            timestamp=self._clock(),
        )

        if peer:
            try:
                self.peers.withdraw_all_prefixes(peer)
            except NetmetaError as e:
                logger.error(f"Manual remediation of peer {peer} failed: {e}")
                self.record_event(event)
                raise

        if prefix:
            try:
                self.peers.withdraw_prefix(prefix)
            except NetmetaError as e:
                logger.error(f"Manual remediation of prefix {prefix} failed: {e}")
                self.record_event(event)
                raise

        event.success = True
        self.record_event(event)
        logger.info(f"Manual remediation done: peer={peer!r} prefix={prefix!r} reason={reason!r}")
        return event

    # -------------------------------------------------------------------------
    # Ledger
    # -------------------------------------------------------------------------

    def record_event(self, event: RemediationEvent) -> None:
        self.ledger.append(event)

        if self._telemetry:
            self._telemetry.log_event(
                TelemetryType.REMEDIATION,
                event.target,
                f"{event.action} ({event.reason}): {'ok' if event.success else 'failed'}",
                {"type": event.type.value, "success": event.success},
            )

        for listener in self._listeners:
            try:
                listener(event.copy())
            except Exception as e:
                logger.error(f"Remediation listener failed: {e}")

    def get_events(self, limit: int = 0) -> list[RemediationEvent]:
        return self.ledger.recent(limit)

    def get_remediation_count(self, reason: str) -> int:
        return self.ledger.count(reason, success=True)
