"""
JSON-ready snapshots of the registries.

Shared by the REST handlers, the WebSocket feed and the CLI so all three
render peers, topology and events the same way.

Copyright (c) 2025 DNS Science.io, an After Dark Systems, LLC company.
All rights reserved.
"""

from datetime import datetime
from typing import Any

from netmeta.auto.engine import RemediationEngine
from netmeta.bgp.registry import PeerStateRegistry
from netmeta.ospf.topology import TopologyGraph

DEFAULT_PUSH_EVENTS = 10


def peers_snapshot(peers: PeerStateRegistry) -> list[dict[str, Any]]:
    return [peer.to_dict() for peer in peers.get_all_peers()]


def topology_snapshot(topology: TopologyGraph) -> dict[str, list[dict[str, Any]]]:
    return {
        router_id: [link.to_dict() for link in links]
        for router_id, links in sorted(topology.snapshot().items())
    }


def events_snapshot(engine: RemediationEngine, limit: int = 0) -> list[dict[str, Any]]:
    return [event.to_dict() for event in engine.get_events(limit)]


def update_message(
    peers: PeerStateRegistry,
    topology: TopologyGraph,
    engine: RemediationEngine,
    event_limit: int = DEFAULT_PUSH_EVENTS,
) -> dict[str, Any]:
    """Payload pushed to live dashboard clients."""
    return {
        "type": "update",
        "peers": peers_snapshot(peers),
        "topology": topology_snapshot(topology),
        "events": events_snapshot(engine, event_limit),
        "timestamp": datetime.now().isoformat(),
    }
