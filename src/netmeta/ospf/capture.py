"""
Capture listeners feeding decoded packets into the registries.

Reads OSPF control packets (and MPLS-labelled packets) from a capture file
or a live interface using scapy, and hands each decoded packet to the
topology graph or the label validator.

Copyright (c) 2025 DNS Science.io, an After Dark Systems, LLC company.
All rights reserved.
"""

import logging
from pathlib import Path

from scapy.contrib.ospf import OSPF_Hdr, OSPF_LSUpd
from scapy.error import Scapy_Exception
from scapy.packet import Packet
from scapy.sendrecv import AsyncSniffer
from scapy.utils import PcapReader

from netmeta.errors import ExternalCallFailure, ValidationFailure
from netmeta.mpls.validator import LabelStackValidator
from netmeta.ospf.topology import LinkStateAdvertisement, TopologyGraph

logger = logging.getLogger(__name__)

# Capture filters
OSPF_FILTER = "ip proto 89"
MPLS_FILTER = "mpls"


def advertisements_from_update(update: OSPF_LSUpd) -> list[LinkStateAdvertisement]:
    """Convert every LSA carried by an LS Update."""
    advertisements = []
    for lsa in update.lsalist:
        cost = None
        if any(f.name == "metric" for f in lsa.fields_desc):
            cost = int(lsa.metric)
        advertisements.append(LinkStateAdvertisement(
            advertising_router=str(lsa.adrouter),
            cost=cost,
            lsa_type=int(lsa.type),
        ))
    return advertisements


class _LiveSniffer:
    """Shared start/stop handling for scapy's AsyncSniffer."""

    capture_filter: str = ""

    def __init__(self):
        self._sniffer: AsyncSniffer | None = None

    @property
    def live(self) -> bool:
        return self._sniffer is not None and self._sniffer.running

    def process_packet(self, packet: Packet) -> None:
        raise NotImplementedError

    def start_live(self, interface: str) -> None:
        """Start sniffing on an interface in a background thread."""
        if self.live:
            return
        try:
            self._sniffer = AsyncSniffer(
                iface=interface,
                filter=self.capture_filter,
                prn=self.process_packet,
                store=False,
            )
            self._sniffer.start()
        except (OSError, Scapy_Exception) as e:
            self._sniffer = None
            raise ExternalCallFailure(f"error opening interface {interface}: {e}") from e
        logger.info(f"Started live capture on {interface} ({self.capture_filter})")

    def stop(self) -> None:
        if self._sniffer is not None:
            if self._sniffer.running:
                self._sniffer.stop()
            self._sniffer = None


class OSPFCaptureListener(_LiveSniffer):
    """Feeds OSPF control packets into a TopologyGraph."""

    capture_filter = OSPF_FILTER

    def __init__(self, topology: TopologyGraph):
        super().__init__()
        self.topology = topology
        self.packets_processed = 0

    def process_packet(self, packet: Packet) -> bool:
        """Apply one decoded packet to the topology.

        Returns:
            True if the packet carried OSPF
        """
        header = packet.getlayer(OSPF_Hdr)
        if header is None:
            return False

        router_id = str(header.src)
        update = packet.getlayer(OSPF_LSUpd)
        if update is not None:
            self.topology.merge_link_state_update(
                router_id, advertisements_from_update(update)
            )
        else:
            # Hello, DBD, LSR and LSAck only prove liveness
            self.topology.observe_router(router_id)

        self.packets_processed += 1
        return True

    def parse_pcap(self, filename: str | Path) -> int:
        """Replay a capture file into the topology.

        Returns:
            Number of OSPF packets processed
        """
        count = 0
        try:
            with PcapReader(str(filename)) as reader:
                for packet in reader:
                    if self.process_packet(packet):
                        count += 1
        except (OSError, Scapy_Exception) as e:
            raise ExternalCallFailure(f"error reading pcap file {filename}: {e}") from e

        logger.info(f"Processed {count} OSPF packets from {filename}")
        return count


class MPLSCaptureListener(_LiveSniffer):
    """Feeds labelled packets into the validator for corruption counting."""

    capture_filter = MPLS_FILTER

    def __init__(self, validator: LabelStackValidator):
        super().__init__()
        self.validator = validator

    def process_packet(self, packet: Packet) -> None:
        try:
            self.validator.validate_packet(packet)
        except ValidationFailure:
            # Counted by the validator
            pass
