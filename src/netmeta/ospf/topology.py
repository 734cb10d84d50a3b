"""
OSPF link-state topology graph.

Merges link-state advertisements into a router -> links adjacency map.
Merges are idempotent: a router never holds two links to the same remote
router.

Copyright (c) 2025 DNS Science.io, an After Dark Systems, LLC company.
All rights reserved.
"""

import logging
import threading
from dataclasses import dataclass, replace
from typing import Any, Iterable

logger = logging.getLogger(__name__)

DEFAULT_LINK_COST = 100
LINK_STATE_UP = "Up"


@dataclass
class Link:
    """Adjacency from a router to a remote router."""
    remote_router_id: str
    cost: int = DEFAULT_LINK_COST
    state: str = LINK_STATE_UP

    def to_dict(self) -> dict[str, Any]:
        return {
            "remoteRouterID": self.remote_router_id,
            "cost": self.cost,
            "state": self.state,
        }


@dataclass
class LinkStateAdvertisement:
    """Decoder-neutral view of one received LSA."""
    advertising_router: str
    cost: int | None = None
    lsa_type: int | None = None


Topology = dict[str, list[Link]]


class TopologyGraph:
    """Copy-on-write adjacency map.

    Writers serialize on ``_write_lock`` and publish a fresh mapping; readers
    take the current mapping reference without locking.
    """

    def __init__(self):
        self._routers: dict[str, tuple[Link, ...]] = {}
        self._write_lock = threading.Lock()

    def observe_router(self, router_id: str) -> None:
        """Ensure an entry exists for a router seen on the wire."""
        if router_id in self._routers:
            return
        with self._write_lock:
            if router_id not in self._routers:
                routers = dict(self._routers)
                routers[router_id] = ()
                self._routers = routers
                logger.debug(f"Discovered OSPF router {router_id}")

    def merge_link_state_update(
        self,
        router_id: str,
        advertisements: Iterable[LinkStateAdvertisement],
    ) -> int:
        """Merge the LSAs carried by one link-state update.

        Args:
            router_id: Router that sent the update
            advertisements: LSAs in the update

        Returns:
            Number of links added
        """
        advertisements = list(advertisements)
        with self._write_lock:
            links = list(self._routers.get(router_id, ()))
            known = {link.remote_router_id for link in links}
            added = 0

            for lsa in advertisements:
                if lsa.advertising_router in known:
                    continue
                links.append(Link(
                    remote_router_id=lsa.advertising_router,
                    cost=lsa.cost if lsa.cost is not None else DEFAULT_LINK_COST,
                    state=LINK_STATE_UP,
                ))
                known.add(lsa.advertising_router)
                added += 1

            if added or router_id not in self._routers:
                routers = dict(self._routers)
                routers[router_id] = tuple(links)
                self._routers = routers

        if added:
            logger.debug(f"Merged {added} new link(s) for router {router_id}")
        return added

    def snapshot(self) -> Topology:
        """Return a deep copy of the topology."""
        routers = self._routers
        return {
            router_id: [replace(link) for link in links]
            for router_id, links in routers.items()
        }

    @property
    def router_count(self) -> int:
        return len(self._routers)

    @property
    def link_count(self) -> int:
        return sum(len(links) for links in self._routers.values())
