"""
Tests for the service container wiring.
"""

from scapy.contrib.ospf import OSPF_Hdr, OSPF_Hello
from scapy.layers.inet import IP
from scapy.layers.l2 import Ether
from scapy.utils import wrpcap

from netmeta.config import NetmetaConfig
from netmeta.service import NetmetaService
from netmeta.store import EVENT_KEY_PREFIX, KVStore


def make_config(**env):
    return NetmetaConfig.from_env({f"NETMETA_{k}": v for k, v in env.items()})


class TestNetmetaService:
    """Lifecycle and shared state."""

    def test_start_loads_peers_and_capture(self, engine, clock, tmp_path):
        pcap = tmp_path / "hello.pcap"
        wrpcap(str(pcap), [
            Ether(src="02:00:00:00:00:01", dst="01:00:5e:00:00:05")
            / IP(src="192.0.2.1", dst="224.0.0.5")
            / OSPF_Hdr(src="3.3.3.3")
            / OSPF_Hello(),
        ])
        config = make_config(
            BGP_PEERS="10.0.0.1:65001,10.0.0.2:65002",
            OSPF_PCAP_FILE=str(pcap),
        )
        service = NetmetaService(config, engine, clock=clock)

        with service:
            assert len(service.peers) == 2
            assert set(engine.peers) == {"10.0.0.1", "10.0.0.2"}
            assert service.topology.snapshot() == {"3.3.3.3": []}

        assert engine.closed

    def test_engine_refusal_is_not_fatal(self, engine, clock):
        engine.fail_add = True
        service = NetmetaService(make_config(BGP_PEERS="10.0.0.1:65001"), engine, clock=clock)

        assert service.add_configured_peers() == 1

    def test_missing_pcap_is_not_fatal(self, engine, clock, tmp_path):
        config = make_config(OSPF_PCAP_FILE=str(tmp_path / "missing.pcap"))
        service = NetmetaService(config, engine, clock=clock)

        service.start_capture()
        assert service.topology.router_count == 0

    def test_remediation_feeds_archive_and_metrics(self, engine, clock):
        store = KVStore(":memory:")
        service = NetmetaService(make_config(), engine, store=store, clock=clock)
        engine.add_path("192.0.2.0/24", "10.0.0.1")

        service.remediation.remediate_manual("", "192.0.2.0/24", "test")

        assert len(store.keys(EVENT_KEY_PREFIX)) == 1
        value = service.metrics.registry.get_sample_value(
            "netmeta_remediation_total", {"reason": "test", "success": "true"}
        )
        assert value == 1.0
        store.close()
