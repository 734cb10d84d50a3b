"""
BGP peer session tracking.

Provides the peer state registry with flap detection, and the interface to
the external BGP session engine.

Copyright (c) 2025 DNS Science.io, an After Dark Systems, LLC company.
All rights reserved.
"""

from netmeta.bgp.models import (
    AdvertisedPath,
    BGPState,
    PeerState,
    SessionStatus,
)
from netmeta.bgp.registry import PeerStateRegistry
from netmeta.bgp.session import SessionEngine

__all__ = [
    "AdvertisedPath",
    "BGPState",
    "PeerState",
    "SessionStatus",
    "PeerStateRegistry",
    "SessionEngine",
]
