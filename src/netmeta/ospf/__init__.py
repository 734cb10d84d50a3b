"""
OSPF link-state topology tracking.

Copyright (c) 2025 DNS Science.io, an After Dark Systems, LLC company.
All rights reserved.
"""

from netmeta.ospf.topology import (
    Link,
    LinkStateAdvertisement,
    Topology,
    TopologyGraph,
    DEFAULT_LINK_COST,
)

__all__ = [
    "Link",
    "LinkStateAdvertisement",
    "Topology",
    "TopologyGraph",
    "DEFAULT_LINK_COST",
]
