"""
Data models for BGP peer tracking.

Copyright (c) 2025 DNS Science.io, an After Dark Systems, LLC company.
All rights reserved.
"""

from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import Any


class BGPState(str, Enum):
    """BGP session states (RFC 4271)."""
    IDLE = "Idle"
    CONNECT = "Connect"
    ACTIVE = "Active"
    OPENSENT = "OpenSent"
    OPENCONFIRM = "OpenConfirm"
    ESTABLISHED = "Established"

    @classmethod
    def normalize(cls, label: str) -> str:
        """Map an engine-specific label onto the canonical spelling.

        Unknown labels are passed through untouched.
        """
        compact = label.replace("_", "").replace("-", "").lower()
        for state in cls:
            if state.value.lower() == compact:
                return state.value
        return label


@dataclass
class SessionStatus:
    """Session state as reported by the session engine."""
    state: str
    established: bool
    advertised_prefixes: int = 0


@dataclass
class AdvertisedPath:
    """A route the session engine currently advertises."""
    prefix: str
    peer_address: str
    next_hop: str | None = None
    path_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.path_id,
            "prefix": self.prefix,
            "peer": self.peer_address,
            "next_hop": self.next_hop,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AdvertisedPath":
        return cls(
            prefix=data["prefix"],
            peer_address=data["peer"],
            next_hop=data.get("next_hop"),
            path_id=data.get("id"),
        )


@dataclass
class PeerState:
    """Tracked state of one BGP peer."""
    address: str
    asn: int
    port: int = 179
    state: str = BGPState.IDLE.value
    prefix_count: int = 0
    flap_count: int = 0  # Reset by a successful withdrawal
    last_flap_time: datetime | None = None
    established: bool = False
    total_flaps: int = 0  # Never reset

    def copy(self) -> "PeerState":
        return replace(self)

    def to_dict(self) -> dict[str, Any]:
        return {
            "address": self.address,
            "asn": self.asn,
            "port": self.port,
            "state": self.state,
            "prefixCount": self.prefix_count,
            "flapCount": self.flap_count,
            "lastFlapTime": self.last_flap_time.isoformat() if self.last_flap_time else None,
            "established": self.established,
        }
