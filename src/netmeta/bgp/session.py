"""
Base class for BGP session engines.

The session engine establishes and maintains peer sessions and owns the
routes; netmeta only asks it for state and for withdrawals.

Copyright (c) 2025 DNS Science.io, an After Dark Systems, LLC company.
All rights reserved.
"""

from abc import ABC, abstractmethod
from typing import Iterator

from netmeta.bgp.models import AdvertisedPath, SessionStatus


class SessionEngine(ABC):
    """Abstract interface to a BGP speaker.

    Implementations raise ``ExternalCallFailure`` for any engine-side error.
    """

    @abstractmethod
    def add_peer(self, address: str, asn: int, port: int) -> None:
        """Request session establishment with a peer."""
        pass

    @abstractmethod
    def get_session_state(self, address: str) -> SessionStatus:
        """Return the current session state for a peer."""
        pass

    @abstractmethod
    def list_advertised_paths(self) -> Iterator[AdvertisedPath]:
        """Stream every path currently held by the engine."""
        pass

    @abstractmethod
    def withdraw_path(self, path: AdvertisedPath) -> None:
        """Withdraw a single path."""
        pass

    def close(self) -> None:
        """Release engine resources."""
        pass
