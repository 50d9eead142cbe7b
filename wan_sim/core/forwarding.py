"""Per-packet route selection and delivery.

The ForwardingEngine picks an egress interface for every packet at the moment
it is sent. Disabling an interface does not withdraw the routes that use it, so
the engine walks the candidate routes in preference order and skips any whose
egress interface is inactive. This is what makes a backup route carry traffic
once the primary link is down.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple, Union

from wan_sim.core.enums import DropReason
from wan_sim.core.node import Node
from wan_sim.core.packet import Packet
from wan_sim.core.routing import Route
from wan_sim.core.topology import Topology

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Delivered:
    """The packet reached the node owning its destination address.

    Attributes:
        destination: ID of the node the packet was delivered to.
        path: Node IDs traversed, source first.
        latency: Accumulated link delay in seconds.
    """

    destination: str
    path: Tuple[str, ...]
    latency: float = 0.0

    @property
    def delivered(self) -> bool:
        return True


@dataclass(frozen=True)
class Dropped:
    """The packet was dropped.

    Attributes:
        reason: Why the packet was dropped.
        node: ID of the node where the drop happened.
        path: Node IDs traversed before the drop, source first.
    """

    reason: DropReason
    node: str
    path: Tuple[str, ...] = ()

    @property
    def delivered(self) -> bool:
        return False


Outcome = Union[Delivered, Dropped]


class ForwardingEngine:
    """Forwards packets hop by hop using each node's routing table.

    Attributes:
        topology: Topology the packets travel over.
        max_hops: Links a packet may cross before it is dropped.
    """

    def __init__(self, topology: Topology, max_hops: int = 64) -> None:
        if max_hops < 1:
            raise ValueError(f"max_hops must be at least 1, got {max_hops}")
        self.topology = topology
        self.max_hops = max_hops

    def select_route(self, node: Node, candidates: List[Route]) -> Optional[Route]:
        """Return the first candidate whose egress interface is active.

        Args:
            node: Node the packet is leaving.
            candidates: Routes in preference order, as returned by lookup.

        Returns:
            The chosen route, or None if every egress interface is down.
        """
        for route in candidates:
            if node.get_interface(route.interface).active:
                return route
            logger.debug("%s: skipping %s, interface down", node.id, route)
        return None

    def forward(self, source: Node, packet: Packet) -> Outcome:
        """Move ``packet`` from ``source`` toward its destination address.

        Each node on the way looks up its own candidates, so interface state
        is re-evaluated for every packet at every hop.

        Args:
            source: Node the packet leaves from.
            packet: The packet to forward.

        Returns:
            Delivered with the destination node ID, or Dropped with a reason.
        """
        node = source
        while True:
            if node.owns(packet.destination):
                node.packet_arrived(packet)
                logger.debug(
                    "Packet %d delivered to %s via %s",
                    packet.id,
                    node.id,
                    "->".join(packet.path),
                )
                return Delivered(node.id, tuple(packet.path), packet.latency)

            if packet.get_hop_count() >= self.max_hops:
                return self._drop(node, packet, DropReason.TTL_EXPIRED)

            candidates = node.routing_table.lookup_candidates(packet.destination)
            if not candidates:
                return self._drop(node, packet, DropReason.NO_ROUTE)

            route = self.select_route(node, candidates)
            if route is None:
                return self._drop(node, packet, DropReason.ALL_ROUTES_DOWN)

            egress = node.get_interface(route.interface)
            if egress.link is None:
                raise ValueError(f"Route {route} on {node.id} uses unlinked interface {egress.name}")
            peer = egress.link.peer(egress)
            delay = egress.link.transmit(packet)
            node.packets_forwarded += 1
            packet.record_hop(peer.node.id, delay)
            node = peer.node

    def _drop(self, node: Node, packet: Packet, reason: DropReason) -> Dropped:
        packet.dropped = True
        node.packet_dropped(packet)
        logger.info(
            "Packet %d to %s dropped at %s: %s", packet.id, packet.destination, node.id, reason
        )
        return Dropped(reason, node.id, tuple(packet.path))
