"""
Authoritative per-peer BGP session state.

Polls the session engine, detects flaps (Established -> anything else) and
withdraws routes on request.

Copyright (c) 2025 DNS Science.io, an After Dark Systems, LLC company.
All rights reserved.
"""

import logging
import threading
from datetime import datetime
from typing import Callable

from netaddr import AddrFormatError, IPAddress, IPNetwork

from netmeta.bgp.models import (
    AdvertisedPath,
    BGPState,
    PeerState,
    SessionStatus,
)
from netmeta.bgp.session import SessionEngine
from netmeta.errors import (
    ExternalCallFailure,
    InvalidAddress,
    PeerAlreadyExists,
    PeerNotFound,
)
from netmeta.logging_config import ErrorTracker
from netmeta.telemetry import EventLogger, EventType

logger = logging.getLogger(__name__)


def normalize_address(address: str) -> str:
    """Canonical text form of a peer address."""
    try:
        return str(IPAddress(address.strip()))
    except (AddrFormatError, ValueError, TypeError) as e:
        raise InvalidAddress(f"invalid peer address: {address!r}") from e


def normalize_prefix(prefix: str) -> str:
    """Canonical CIDR form of a prefix (host bits cleared)."""
    try:
        return str(IPNetwork(prefix.strip()).cidr)
    except (AddrFormatError, ValueError, TypeError) as e:
        raise InvalidAddress(f"invalid prefix: {prefix!r}") from e


class PeerStateRegistry:
    """Copy-on-write table of PeerState keyed by address.

    Published PeerState objects are never mutated. Writers hold
    ``_write_lock`` only while swapping in a new table, never across calls
    into the session engine. Readers take the current table without
    locking and hand out copies.
    """

    def __init__(
        self,
        engine: SessionEngine,
        telemetry: EventLogger | None = None,
        error_tracker: ErrorTracker | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self._engine = engine
        self._telemetry = telemetry
        self._errors = error_tracker or ErrorTracker()
        self._clock = clock
        self._peers: dict[str, PeerState] = {}
        self._write_lock = threading.Lock()

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    def _publish(self, peer: PeerState) -> None:
        # Caller holds _write_lock
        peers = dict(self._peers)
        peers[peer.address] = peer
        self._peers = peers

    def _update(
        self,
        address: str,
        change: Callable[[PeerState], PeerState],
    ) -> tuple[PeerState, PeerState]:
        """Apply ``change`` to the current entry and publish the result."""
        with self._write_lock:
            current = self._peers.get(address)
            if current is None:
                raise PeerNotFound(address)
            updated = change(current.copy())
            self._publish(updated)
        return current, updated

    def add_peer(self, address: str, asn: int, port: int = 179) -> PeerState:
        """Track a peer and ask the session engine to bring it up.

        Raises:
            InvalidAddress: The address does not parse
            PeerAlreadyExists: The address is already tracked
            ExternalCallFailure: The session engine refused the peer; the
                peer stays tracked in Idle
        """
        address = normalize_address(address)
        with self._write_lock:
            if address in self._peers:
                raise PeerAlreadyExists(address)
            peer = PeerState(address=address, asn=asn, port=port)
            self._publish(peer)

        logger.info(f"Tracking BGP peer {address} AS{asn} port {port}")

        try:
            self._engine.add_peer(address, asn, port)
        except ExternalCallFailure as e:
            raise ExternalCallFailure(f"failed to add peer {address}: {e}") from e

        return peer.copy()

    def refresh_from_session(self) -> int:
        """Poll the session engine once for every tracked peer.

        Failures for one peer are logged and do not affect the others.

        Returns:
            Number of flaps detected in this cycle
        """
        flaps = 0
        for address in list(self._peers):
            try:
                status = self._engine.get_session_state(address)
            except Exception as e:
                self._errors.log_error(
                    "session_refresh",
                    f"failed to refresh peer {address}: {e}",
                    context={"peer": address},
                )
                continue

            if self._apply_status(address, status):
                flaps += 1

        return flaps

    def _apply_status(self, address: str, status: SessionStatus) -> bool:
        now = self._clock()

        def transition(peer: PeerState) -> PeerState:
            was_established = peer.established
            if status.established:
                peer.state = BGPState.ESTABLISHED.value
                peer.established = True
                peer.prefix_count = status.advertised_prefixes
            else:
                peer.state = status.state
                peer.established = False

            if was_established and not peer.established:
                peer.flap_count += 1
                peer.total_flaps += 1
                peer.last_flap_time = now
            return peer

        before, after = self._update(address, transition)
        flapped = after.flap_count > before.flap_count

        if flapped:
            logger.warning(
                f"BGP peer {address} flapped: Established -> {after.state} "
                f"(flap count {after.flap_count})"
            )
            if self._telemetry:
                self._telemetry.log_event(
                    EventType.BGP_FLAP,
                    address,
                    f"session left Established ({after.state})",
                    {"flap_count": after.flap_count},
                )
        return flapped

    def withdraw_all_prefixes(self, address: str) -> int:
        """Withdraw every path learned from a peer and reset its flap count.

        Returns:
            Number of paths withdrawn

        Raises:
            PeerNotFound: The peer is not tracked
            ExternalCallFailure: Listing or withdrawing paths failed; the flap
                count is left untouched
        """
        address = self._resolve(address)

        paths = self._collect_paths(lambda path: _same_address(path.peer_address, address))
        self._withdraw(paths, f"peer {address}")

        def reset(peer: PeerState) -> PeerState:
            peer.flap_count = 0
            return peer

        self._update(address, reset)
        logger.info(f"Withdrew {len(paths)} path(s) for peer {address}, flap count reset")
        return len(paths)

    def withdraw_prefix(self, prefix: str) -> int:
        """Withdraw every advertised path for a prefix.

        Returns:
            Number of paths withdrawn
        """
        prefix = normalize_prefix(prefix)
        paths = self._collect_paths(lambda path: _same_prefix(path.prefix, prefix))
        self._withdraw(paths, f"prefix {prefix}")
        logger.info(f"Withdrew {len(paths)} path(s) for prefix {prefix}")
        return len(paths)

    def _collect_paths(
        self,
        match: Callable[[AdvertisedPath], bool],
    ) -> list[AdvertisedPath]:
        try:
            return [path for path in self._engine.list_advertised_paths() if match(path)]
        except ExternalCallFailure as e:
            raise ExternalCallFailure(f"failed to list paths: {e}") from e

    def _withdraw(self, paths: list[AdvertisedPath], target: str) -> None:
        failures: list[tuple[AdvertisedPath, ExternalCallFailure]] = []
        for path in paths:
            try:
                self._engine.withdraw_path(path)
            except ExternalCallFailure as e:
                logger.warning(f"Failed to withdraw {path.prefix} via {path.peer_address}: {e}")
                failures.append((path, e))

        if failures:
            raise ExternalCallFailure(
                f"failed to withdraw {len(failures)} of {len(paths)} path(s) "
                f"for {target}: {failures[0][1]}"
            )

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def _resolve(self, address: str) -> str:
        try:
            address = normalize_address(address)
        except InvalidAddress:
            raise PeerNotFound(address) from None
        if address not in self._peers:
            raise PeerNotFound(address)
        return address

    def get_peer(self, address: str) -> PeerState:
        """Return a copy of one peer's state."""
        address = self._resolve(address)
        return self._peers[address].copy()

    def get_all_peers(self) -> list[PeerState]:
        """Return copies of every peer, ordered by address."""
        peers = self._peers
        return [peers[address].copy() for address in sorted(peers)]

    def __len__(self) -> int:
        return len(self._peers)

    def __contains__(self, address: str) -> bool:
        try:
            return normalize_address(address) in self._peers
        except InvalidAddress:
            return False

    def peer_metrics(self) -> dict[str, float]:
        """Per-peer gauges in Prometheus exposition naming."""
        metrics: dict[str, float] = {}
        for peer in self.get_all_peers():
            metrics[f'bgp_peer_up{{peer="{peer.address}"}}'] = 1.0 if peer.established else 0.0
            metrics[f'bgp_prefix_count{{peer="{peer.address}",afi="ipv4"}}'] = float(peer.prefix_count)
            metrics[f'bgp_session_flaps_total{{peer="{peer.address}"}}'] = float(peer.flap_count)
        return metrics


def _same_address(left: str, right: str) -> bool:
    try:
        return normalize_address(left) == right
    except InvalidAddress:
        return False


def _same_prefix(left: str, right: str) -> bool:
    try:
        return normalize_prefix(left) == right
    except InvalidAddress:
        return False
