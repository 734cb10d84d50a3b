"""
Tests for the MPLS label stack validator.
"""

import pytest
from scapy.contrib.mpls import MPLS
from scapy.layers.inet import IP
from scapy.layers.l2 import Ether

from netmeta.errors import (
    EmptyStack,
    InvalidLabelValue,
    NoLabelLayer,
    TTLExpired,
    ValidationFailure,
)
from netmeta.mpls.validator import (
    MAX_LABEL_VALUE,
    MIN_LABEL_VALUE,
    LabelStackValidator,
)
from netmeta.telemetry import EventLogger, EventType


def labelled(*entries):
    """Build Ether/MPLS.../IP with (label, ttl) entries, top first."""
    packet = Ether()
    for i, (label, ttl) in enumerate(entries):
        packet = packet / MPLS(label=label, s=1 if i == len(entries) - 1 else 0, ttl=ttl)
    return packet / IP(dst="192.0.2.1")


@pytest.fixture
def validator():
    return LabelStackValidator()


class TestValidatePacket:
    """Decoded packet validation."""

    def test_single_label(self, validator):
        stack = validator.validate_packet(labelled((100, 64)))

        assert stack.valid
        assert stack.error is None
        assert len(stack.labels) == 1
        assert stack.labels[0].value == 100
        assert stack.labels[0].bottom_of_stack
        assert stack.labels[0].ttl == 64

    def test_stacked_labels(self, validator):
        stack = validator.validate_packet(labelled((100, 64), (200, 63), (300, 62)))

        assert [label.value for label in stack.labels] == [100, 200, 300]
        assert [label.bottom_of_stack for label in stack.labels] == [False, False, True]
        assert validator.corruption_count == 0

    def test_range_boundaries_accepted(self, validator):
        stack = validator.validate_packet(labelled((MIN_LABEL_VALUE, 1), (MAX_LABEL_VALUE, 1)))
        assert stack.valid
        assert validator.corruption_count == 0

    def test_reserved_label_rejected(self, validator):
        with pytest.raises(InvalidLabelValue) as exc_info:
            validator.validate_packet(labelled((15, 64)))

        err = exc_info.value
        assert err.value == 15
        assert err.position == 0
        assert err.stack is not None
        assert not err.stack.valid
        assert "invalid label value" in err.stack.error
        assert validator.corruption_count == 1

    def test_invalid_inner_label_keeps_partial_stack(self, validator):
        with pytest.raises(InvalidLabelValue) as exc_info:
            validator.validate_packet(labelled((100, 64), (3, 64)))

        err = exc_info.value
        assert err.position == 1
        assert [label.value for label in err.stack.labels] == [100]

    def test_ttl_expired(self, validator):
        with pytest.raises(TTLExpired) as exc_info:
            validator.validate_packet(labelled((100, 0)))

        assert exc_info.value.stack.error == "TTL expired"
        assert not exc_info.value.stack.valid
        assert validator.corruption_count == 1

    def test_no_label_layer(self, validator):
        with pytest.raises(NoLabelLayer):
            validator.validate_packet(Ether() / IP())
        # Not a corrupted stack
        assert validator.corruption_count == 0

    def test_failure_counted_once(self, validator):
        # Both out of range and TTL 0: one failure, one count
        with pytest.raises(ValidationFailure):
            validator.validate_packet(labelled((5, 0)))
        assert validator.corruption_count == 1


class TestValidateLabelStack:
    """Out-of-band label value checks."""

    def test_valid_values(self, validator):
        stack = validator.validate_label_stack([100, 200, 300])

        assert stack.valid
        assert [label.value for label in stack.labels] == [100, 200, 300]
        assert stack.labels[-1].bottom_of_stack
        assert not stack.labels[0].bottom_of_stack

    def test_empty(self, validator):
        with pytest.raises(EmptyStack):
            validator.validate_label_stack([])

    def test_out_of_range_position(self, validator):
        with pytest.raises(InvalidLabelValue) as exc_info:
            validator.validate_label_stack([100, MAX_LABEL_VALUE + 1])

        assert exc_info.value.position == 1
        assert exc_info.value.value == MAX_LABEL_VALUE + 1
        assert validator.corruption_count == 1

    def test_to_dict(self, validator):
        data = validator.validate_label_stack([16]).to_dict()
        assert data == {
            "labels": [{"value": 16, "bos": True, "ttl": 64, "tc": 0}],
            "valid": True,
            "error": None,
        }


class TestCorruptionCounter:
    """Corruption counter behavior."""

    def test_accumulates_and_resets(self, validator):
        for value in (0, 1, 2):
            with pytest.raises(InvalidLabelValue):
                validator.validate_label_stack([value])
        assert validator.corruption_count == 3

        validator.reset_corruption_count()
        assert validator.corruption_count == 0

    def test_emits_telemetry(self):
        telemetry = EventLogger(capacity=10)
        validator = LabelStackValidator(telemetry=telemetry)

        with pytest.raises(TTLExpired):
            validator.validate_packet(labelled((100, 0)))

        events = telemetry.drain()
        assert len(events) == 1
        assert events[0].type == EventType.MPLS_CORRUPTION
