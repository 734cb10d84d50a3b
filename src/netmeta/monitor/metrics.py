"""
Prometheus metrics exporter.

Counters are cumulative since process start. The registries expose
resettable values (flap counts, the corruption counter), so the exporter
remembers the last value it saw and adds only the difference; a value that
went down is treated as a reset of the source and its new value is added.

Copyright (c) 2025 DNS Science.io, an After Dark Systems, LLC company.
All rights reserved.
"""

import logging

from prometheus_client import CollectorRegistry, Counter, Gauge, generate_latest
from prometheus_client.exposition import CONTENT_TYPE_LATEST

from netmeta.auto.engine import RemediationEvent
from netmeta.bgp.registry import PeerStateRegistry
from netmeta.logging_config import ErrorTracker
from netmeta.mpls.validator import LabelStackValidator
from netmeta.ospf.topology import TopologyGraph

logger = logging.getLogger(__name__)

__all__ = ["MetricsExporter", "CONTENT_TYPE_LATEST"]


class MetricsExporter:
    """Mirror registry state into a private Prometheus registry."""

    def __init__(
        self,
        peers: PeerStateRegistry,
        validator: LabelStackValidator,
        topology: TopologyGraph | None = None,
        errors: ErrorTracker | None = None,
        registry: CollectorRegistry | None = None,
    ):
        self.peers = peers
        self.validator = validator
        self.topology = topology
        self.errors = errors
        self.registry = registry or CollectorRegistry()

        self.bgp_peer_up = Gauge(
            "bgp_peer_up",
            "BGP peer up status (1 = up, 0 = down)",
            ["peer"],
            registry=self.registry,
        )
        self.bgp_prefix_count = Gauge(
            "bgp_prefix_count",
            "Number of prefixes advertised by BGP peer",
            ["peer", "afi"],
            registry=self.registry,
        )
        self.bgp_session_flaps = Counter(
            "bgp_session_flaps_total",
            "Total number of BGP session flaps",
            ["peer"],
            registry=self.registry,
        )
        self.mpls_corruption_events = Counter(
            "mpls_corruption_events_total",
            "Total number of MPLS corruption events",
            registry=self.registry,
        )
        self.remediation_total = Counter(
            "netmeta_remediation_total",
            "Total number of remediation actions",
            ["reason", "success"],
            registry=self.registry,
        )
        self.ospf_routers = Gauge(
            "ospf_topology_routers",
            "Routers present in the OSPF topology",
            registry=self.registry,
        )
        self.ospf_links = Gauge(
            "ospf_topology_links",
            "Links present in the OSPF topology",
            registry=self.registry,
        )
        self.errors_total = Counter(
            "netmeta_errors_total",
            "Total number of tracked errors",
            ["type"],
            registry=self.registry,
        )

        self._last_flaps: dict[str, int] = {}
        self._last_corruption = 0
        self._last_errors: dict[str, int] = {}

    @staticmethod
    def _delta(current: int, last: int) -> int:
        if current < last:
            return current
        return current - last

    def update_metrics(self) -> None:
        """Refresh gauges and advance counters from the registries."""
        for peer in self.peers.get_all_peers():
            self.bgp_peer_up.labels(peer=peer.address).set(1 if peer.established else 0)
            self.bgp_prefix_count.labels(peer=peer.address, afi="ipv4").set(peer.prefix_count)

            delta = self._delta(peer.total_flaps, self._last_flaps.get(peer.address, 0))
            if delta:
                self.bgp_session_flaps.labels(peer=peer.address).inc(delta)
            else:
                # Make the series visible before the first flap
                self.bgp_session_flaps.labels(peer=peer.address)
            self._last_flaps[peer.address] = peer.total_flaps

        corruption = self.validator.corruption_count
        delta = self._delta(corruption, self._last_corruption)
        if delta:
            self.mpls_corruption_events.inc(delta)
        self._last_corruption = corruption

        if self.topology is not None:
            self.ospf_routers.set(self.topology.router_count)
            self.ospf_links.set(self.topology.link_count)

        if self.errors is not None:
            for error_type, count in self.errors.get_error_counts().items():
                delta = self._delta(count, self._last_errors.get(error_type, 0))
                if delta:
                    self.errors_total.labels(type=error_type).inc(delta)
                self._last_errors[error_type] = count

    def record_remediation(self, event: RemediationEvent) -> None:
        """Remediation listener: count each event as it is recorded."""
        self.remediation_total.labels(
            reason=event.reason,
            success="true" if event.success else "false",
        ).inc()

    def render(self) -> bytes:
        """Text exposition of the current metrics."""
        self.update_metrics()
        return generate_latest(self.registry)
