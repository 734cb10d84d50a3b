"""
Shared fixtures: an in-memory session engine and a controllable clock.
"""

from datetime import datetime, timedelta

import pytest

from netmeta.bgp.models import AdvertisedPath, BGPState, SessionStatus
from netmeta.bgp.registry import PeerStateRegistry
from netmeta.bgp.session import SessionEngine
from netmeta.errors import ExternalCallFailure


class FakeSessionEngine(SessionEngine):
    """Session engine whose state is set directly by the test."""

    def __init__(self):
        self.peers: dict[str, tuple[int, int]] = {}
        self.states: dict[str, SessionStatus] = {}
        self.paths: list[AdvertisedPath] = []
        self.withdrawn: list[AdvertisedPath] = []
        self.fail_add = False
        self.fail_state: set[str] = set()
        self.fail_withdraw: set[str] = set()
        self.closed = False

    def set_established(self, address: str, prefixes: int = 0) -> None:
        self.states[address] = SessionStatus(
            state=BGPState.ESTABLISHED.value,
            established=True,
            advertised_prefixes=prefixes,
        )

    def set_down(self, address: str, state: str = BGPState.IDLE.value) -> None:
        self.states[address] = SessionStatus(state=state, established=False)

    def add_path(self, prefix: str, peer: str) -> AdvertisedPath:
        path = AdvertisedPath(prefix=prefix, peer_address=peer, path_id=str(len(self.paths)))
        self.paths.append(path)
        return path

    def add_peer(self, address, asn, port):
        if self.fail_add:
            raise ExternalCallFailure("engine refused peer")
        self.peers[address] = (asn, port)

    def get_session_state(self, address):
        if address in self.fail_state:
            raise ExternalCallFailure(f"no state for {address}")
        return self.states.get(address, SessionStatus(state=BGPState.IDLE.value, established=False))

    def list_advertised_paths(self):
        return iter(list(self.paths))

    def withdraw_path(self, path):
        if path.prefix in self.fail_withdraw:
            raise ExternalCallFailure(f"cannot withdraw {path.prefix}")
        self.paths.remove(path)
        self.withdrawn.append(path)

    def close(self):
        self.closed = True


class FakeClock:
    """Callable clock advanced explicitly by tests."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2025, 1, 1, 12, 0, 0)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> datetime:
        self.now += timedelta(seconds=seconds)
        return self.now


@pytest.fixture
def engine():
    return FakeSessionEngine()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def registry(engine, clock):
    return PeerStateRegistry(engine, clock=clock)


def flap(registry: PeerStateRegistry, engine: FakeSessionEngine, address: str) -> None:
    """Drive one Established -> Idle transition through the registry."""
    engine.set_established(address)
    registry.refresh_from_session()
    engine.set_down(address)
    registry.refresh_from_session()


@pytest.fixture(name="flap")
def flap_fixture():
    return flap
