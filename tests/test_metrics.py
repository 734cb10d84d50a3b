"""
Tests for the Prometheus metrics exporter.
"""

import pytest

from netmeta.auto.engine import ACTION_MANUAL, EventType, RemediationEvent
from netmeta.errors import InvalidLabelValue
from netmeta.logging_config import ErrorTracker
from netmeta.monitor.metrics import MetricsExporter
from netmeta.mpls.validator import LabelStackValidator
from netmeta.ospf.topology import LinkStateAdvertisement, TopologyGraph


@pytest.fixture
def validator():
    return LabelStackValidator()


@pytest.fixture
def topology():
    return TopologyGraph()


@pytest.fixture
def errors():
    return ErrorTracker()


@pytest.fixture
def exporter(registry, validator, topology, errors):
    return MetricsExporter(registry, validator, topology, errors=errors)


def sample(exporter, name, **labels):
    return exporter.registry.get_sample_value(name, labels or None)


class TestPeerMetrics:
    """BGP gauges and counters."""

    def test_peer_gauges(self, exporter, registry, engine):
        registry.add_peer("10.0.0.1", 65001)
        engine.set_established("10.0.0.1", prefixes=9)
        registry.refresh_from_session()

        exporter.update_metrics()

        assert sample(exporter, "bgp_peer_up", peer="10.0.0.1") == 1.0
        assert sample(exporter, "bgp_prefix_count", peer="10.0.0.1", afi="ipv4") == 9.0
        assert sample(exporter, "bgp_session_flaps_total", peer="10.0.0.1") == 0.0

    def test_flap_counter_survives_reset(self, exporter, registry, engine, flap):
        registry.add_peer("10.0.0.1", 65001)
        flap(registry, engine, "10.0.0.1")
        flap(registry, engine, "10.0.0.1")
        exporter.update_metrics()
        assert sample(exporter, "bgp_session_flaps_total", peer="10.0.0.1") == 2.0

        registry.withdraw_all_prefixes("10.0.0.1")
        exporter.update_metrics()
        assert sample(exporter, "bgp_session_flaps_total", peer="10.0.0.1") == 2.0

        flap(registry, engine, "10.0.0.1")
        exporter.update_metrics()
        assert sample(exporter, "bgp_session_flaps_total", peer="10.0.0.1") == 3.0


class TestCorruptionMetrics:
    """MPLS corruption counter."""

    def test_monotonic_across_validator_reset(self, exporter, validator):
        for value in (1, 2):
            with pytest.raises(InvalidLabelValue):
                validator.validate_label_stack([value])
        exporter.update_metrics()
        assert sample(exporter, "mpls_corruption_events_total") == 2.0

        validator.reset_corruption_count()
        exporter.update_metrics()
        assert sample(exporter, "mpls_corruption_events_total") == 2.0

        with pytest.raises(InvalidLabelValue):
            validator.validate_label_stack([3])
        exporter.update_metrics()
        assert sample(exporter, "mpls_corruption_events_total") == 3.0


class TestOtherMetrics:
    """Topology gauges, remediation counter and exposition."""

    def test_topology_gauges(self, exporter, topology):
        topology.merge_link_state_update("1.1.1.1", [
            LinkStateAdvertisement("2.2.2.2"),
            LinkStateAdvertisement("3.3.3.3"),
        ])
        topology.observe_router("4.4.4.4")

        exporter.update_metrics()

        assert sample(exporter, "ospf_topology_routers") == 2.0
        assert sample(exporter, "ospf_topology_links") == 2.0

    def test_record_remediation(self, exporter):
        event = RemediationEvent(
            type=EventType.MANUAL,
            target="10.0.0.1",
            reason="test",
            action=ACTION_MANUAL,
            success=True,
        )
        exporter.record_remediation(event)
        exporter.record_remediation(event)

        assert sample(exporter, "netmeta_remediation_total", reason="test", success="true") == 2.0

    def test_render(self, exporter, registry):
        registry.add_peer("10.0.0.1", 65001)

        text = exporter.render().decode()

        assert 'bgp_peer_up{peer="10.0.0.1"} 0.0' in text
        assert "mpls_corruption_events_total" in text

    def test_error_counter_survives_reset(self, exporter, errors):
        errors.log_error("session_refresh", "boom", context={"peer": "10.0.0.1"})
        errors.log_error("session_refresh", "boom", context={"peer": "10.0.0.1"})
        exporter.update_metrics()
        assert sample(exporter, "netmeta_errors_total", type="session_refresh") == 2.0

        errors.reset_counts()
        errors.log_error("session_refresh", "boom")
        exporter.update_metrics()
        assert sample(exporter, "netmeta_errors_total", type="session_refresh") == 3.0
