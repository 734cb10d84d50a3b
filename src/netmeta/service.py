"""
Service container.

Builds every registry exactly once and hands the same instances to the
periodic tasks, the API and the capture listeners.

Copyright (c) 2025 DNS Science.io, an After Dark Systems, LLC company.
All rights reserved.
"""

import logging
from datetime import datetime
from typing import Callable

from netmeta.auto.engine import RemediationEngine
from netmeta.bgp.registry import PeerStateRegistry
from netmeta.bgp.session import SessionEngine
from netmeta.config import NetmetaConfig
from netmeta.errors import NetmetaError
from netmeta.logging_config import ErrorTracker
from netmeta.monitor.metrics import MetricsExporter
from netmeta.mpls.validator import LabelStackValidator
from netmeta.ospf.capture import MPLSCaptureListener, OSPFCaptureListener
from netmeta.ospf.topology import TopologyGraph
from netmeta.scheduler import PeriodicTask
from netmeta.store import EventArchive, KVStore
from netmeta.telemetry import EventLogger

logger = logging.getLogger(__name__)


class NetmetaService:
    """All long-lived netmeta state for one process."""

    def __init__(
        self,
        config: NetmetaConfig,
        engine: SessionEngine,
        store: KVStore | None = None,
        interface_controller: Callable[[str], None] | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.config = config
        self.engine = engine
        self.store = store

        self.errors = ErrorTracker()
        self.telemetry = EventLogger()
        self.validator = LabelStackValidator(telemetry=self.telemetry)
        self.topology = TopologyGraph()
        self.peers = PeerStateRegistry(
            engine,
            telemetry=self.telemetry,
            error_tracker=self.errors,
            clock=clock,
        )
        self.remediation = RemediationEngine(
            config.auto,
            self.peers,
            telemetry=self.telemetry,
            interface_controller=interface_controller,
            clock=clock,
        )
        self.metrics = MetricsExporter(
            self.peers, self.validator, self.topology, errors=self.errors
        )
        self.remediation.add_listener(self.metrics.record_remediation)
        if store is not None:
            self.remediation.add_listener(EventArchive(store))

        self.ospf_listener = OSPFCaptureListener(self.topology)
        self.mpls_listener = MPLSCaptureListener(self.validator)
        self._refresh_task = PeriodicTask(
            "netmeta-bgp-refresh",
            config.bgp.refresh_interval,
            self.peers.refresh_from_session,
        )
        self._started = False

    def __enter__(self) -> "NetmetaService":
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.stop()

    def add_configured_peers(self) -> int:
        """Add peers from the configuration; failures are warnings.

        Returns:
            Number of peers tracked afterwards
        """
        for peer in self.config.bgp.peers:
            try:
                self.peers.add_peer(peer.address, peer.asn, peer.port)
            except NetmetaError as e:
                logger.warning(f"Failed to add BGP peer {peer.address}: {e}")
        return len(self.peers)

    def start_capture(self) -> None:
        """Load the OSPF capture file or start live listeners."""
        ospf = self.config.ospf
        try:
            if ospf.pcap_file:
                self.ospf_listener.parse_pcap(ospf.pcap_file)
            elif ospf.interface:
                self.ospf_listener.start_live(ospf.interface)
        except NetmetaError as e:
            logger.warning(f"OSPF capture unavailable: {e}")

        mpls = self.config.mpls
        if mpls.enabled and mpls.interface:
            try:
                self.mpls_listener.start_live(mpls.interface)
            except NetmetaError as e:
                logger.warning(f"MPLS capture unavailable: {e}")

    def start(self) -> None:
        if self._started:
            return
        self.telemetry.start()
        self.add_configured_peers()
        self.start_capture()
        self._refresh_task.start()
        self.remediation.start()
        self._started = True
        logger.info("netmeta service started")

    def stop(self) -> None:
        if not self._started:
            return
        self.remediation.stop()
        self._refresh_task.stop()
        self.ospf_listener.stop()
        self.mpls_listener.stop()
        self.telemetry.close()
        self.engine.close()
        if self.store is not None:
            self.store.close()
        self._started = False
        logger.info("netmeta service stopped")
