"""
MPLS label stack validator.

Checks decoded label stacks for out-of-range label values and expired
TTLs, and counts every corrupted stack it sees.

Copyright (c) 2025 DNS Science.io, an After Dark Systems, LLC company.
All rights reserved.
"""

import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Iterable

from scapy.contrib.mpls import MPLS
from scapy.packet import Packet

from netmeta.errors import (
    EmptyStack,
    InvalidLabelValue,
    NoLabelLayer,
    TTLExpired,
)
from netmeta.telemetry import EventLogger, EventType

logger = logging.getLogger(__name__)

# Labels 0-15 are reserved (RFC 3032); the field is 20 bits wide
MIN_LABEL_VALUE = 16
MAX_LABEL_VALUE = 1048575


@dataclass
class Label:
    """A single MPLS label stack entry."""
    value: int
    bottom_of_stack: bool = False
    ttl: int = 64
    traffic_class: int = 0

    @property
    def in_range(self) -> bool:
        return MIN_LABEL_VALUE <= self.value <= MAX_LABEL_VALUE

    def to_dict(self) -> dict[str, Any]:
        return {
            "value": self.value,
            "bos": self.bottom_of_stack,
            "ttl": self.ttl,
            "tc": self.traffic_class,
        }


@dataclass
class LabelStack:
    """Labels walked so far, outer to inner, plus the validation verdict."""
    labels: list[Label] = field(default_factory=list)
    valid: bool = True
    error: str | None = None

    def mark_invalid(self, error: str) -> None:
        self.valid = False
        self.error = error

    def to_dict(self) -> dict[str, Any]:
        return {
            "labels": [label.to_dict() for label in self.labels],
            "valid": self.valid,
            "error": self.error,
        }


class LabelStackValidator:
    """Stateless label checks plus a thread-safe corruption counter."""

    def __init__(self, telemetry: EventLogger | None = None):
        self._corruption_events = 0
        self._lock = threading.Lock()
        self._telemetry = telemetry

    def validate_packet(self, packet: Packet) -> LabelStack:
        """Validate the label stack of a decoded packet.

        Args:
            packet: Decoded packet carrying one or more MPLS layers

        Returns:
            The valid label stack

        Raises:
            NoLabelLayer: The packet has no MPLS layer
            InvalidLabelValue: A label is outside 16-1048575; ``.stack`` holds
                the partial stack marked invalid
            TTLExpired: A label has TTL 0; ``.stack`` as above
        """
        layer = packet.getlayer(MPLS)
        if layer is None:
            raise NoLabelLayer()

        stack = LabelStack()
        position = 0
        while layer is not None:
            label = Label(
                value=int(layer.label),
                bottom_of_stack=bool(layer.s),
                ttl=int(layer.ttl),
                traffic_class=int(layer.cos),
            )

            if not label.in_range:
                stack.mark_invalid(
                    f"invalid label value: {label.value} "
                    f"(must be {MIN_LABEL_VALUE}-{MAX_LABEL_VALUE})"
                )
                self._record_corruption(stack.error)
                raise InvalidLabelValue(label.value, position, stack=stack)

            if label.ttl == 0:
                stack.mark_invalid("TTL expired")
                self._record_corruption(stack.error)
                raise TTLExpired(position, stack=stack)

            stack.labels.append(label)

            if label.bottom_of_stack:
                break

            # Stacked entries decode as nested MPLS payloads
            nxt = layer.payload
            layer = nxt if isinstance(nxt, MPLS) else None
            position += 1

        return stack

    def validate_label_stack(self, values: Iterable[int]) -> LabelStack:
        """Range-check label values known out of band (CLI, tests).

        Raises:
            EmptyStack: No labels were given
            InvalidLabelValue: A value is out of range, with its position
        """
        values = list(values)
        if not values:
            raise EmptyStack()

        stack = LabelStack()
        for position, value in enumerate(values):
            label = Label(
                value=int(value),
                bottom_of_stack=position == len(values) - 1,
            )
            if not label.in_range:
                stack.mark_invalid(
                    f"invalid label value at position {position}: {label.value} "
                    f"(must be {MIN_LABEL_VALUE}-{MAX_LABEL_VALUE})"
                )
                self._record_corruption(stack.error)
                raise InvalidLabelValue(label.value, position, stack=stack)
            stack.labels.append(label)

        return stack

    def _record_corruption(self, reason: str | None) -> None:
        with self._lock:
            self._corruption_events += 1
        logger.debug(f"MPLS corruption: {reason}")
        if self._telemetry:
            self._telemetry.log_event(
                EventType.MPLS_CORRUPTION, "mpls", reason or "corrupted label stack"
            )

    @property
    def corruption_count(self) -> int:
        with self._lock:
            return self._corruption_events

    def reset_corruption_count(self) -> None:
        with self._lock:
            self._corruption_events = 0
