"""
Exception hierarchy for netmeta.

Copyright (c) 2025 DNS Science.io, an After Dark Systems, LLC company.
All rights reserved.
"""

from typing import Any


class NetmetaError(Exception):
    """Base exception for netmeta errors."""
    pass


# =============================================================================
# Not found
# =============================================================================

class NotFound(NetmetaError):
    """A peer, prefix or key is not tracked."""
    pass


class PeerNotFound(NotFound):
    """Peer address is not tracked by the registry."""

    def __init__(self, address: str):
        super().__init__(f"peer {address} not found")
        self.address = address


class KeyNotFound(NotFound):
    """Key is not present in the key-value store."""

    def __init__(self, key: bytes):
        super().__init__(f"key {key!r} not found")
        self.key = key


# =============================================================================
# Validation
# =============================================================================

class ValidationFailure(NetmetaError):
    """Input failed validation."""
    pass


class NoLabelLayer(ValidationFailure):
    """Packet carries no MPLS label stack."""

    def __init__(self):
        super().__init__("no MPLS layer found")


class InvalidLabelValue(ValidationFailure):
    """Label value outside the 16-1048575 range."""

    def __init__(self, value: int, position: int, stack: Any = None):
        super().__init__(
            f"invalid label value at position {position}: {value} (must be 16-1048575)"
        )
        self.value = value
        self.position = position
        self.stack = stack


class TTLExpired(ValidationFailure):
    """Label TTL is zero."""

    def __init__(self, position: int, stack: Any = None):
        super().__init__(f"TTL expired at position {position}")
        self.position = position
        self.stack = stack


class EmptyStack(ValidationFailure):
    """No labels were supplied."""

    def __init__(self):
        super().__init__("empty label stack")


class InvalidAddress(ValidationFailure):
    """Peer address or prefix could not be parsed."""
    pass


class EmptyRemediationTarget(ValidationFailure):
    """Manual remediation requested with neither a peer nor a prefix."""

    def __init__(self):
        super().__init__("manual remediation needs a peer or a prefix")


class ConfigurationError(ValidationFailure):
    """A NETMETA_* setting does not parse."""
    pass


# =============================================================================
# External collaborators and capacity
# =============================================================================

class ExternalCallFailure(NetmetaError):
    """The session or capture engine reported an error."""
    pass


class CapacityExceeded(NetmetaError):
    """A bounded buffer is full; the item was shed."""
    pass


class PeerAlreadyExists(NetmetaError):
    """Peer address is already tracked."""

    def __init__(self, address: str):
        super().__init__(f"peer {address} already exists")
        self.address = address
