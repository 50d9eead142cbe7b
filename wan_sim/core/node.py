"""Node and Interface classes for network simulation.

This module defines the Node class, which represents a site router in the
simulated WAN, and the Interface class, a node's attachment point to a link.
"""

from ipaddress import IPv4Address, IPv4Interface, IPv4Network
from typing import TYPE_CHECKING, Any, Callable, List, Optional

from wan_sim.core.packet import Packet
from wan_sim.core.routing import RoutingTable

if TYPE_CHECKING:
    from wan_sim.core.link import Link


class Interface:
    """A node's attachment point to a point-to-point link.

    Attributes:
        node: Node that owns the interface.
        index: Position of the interface in the node's interface list.
        ip: Assigned address and mask, or None before assignment.
        active: Whether the interface can transmit. Only the
            LinkStateController changes it.
        link: Link terminated by this interface.
    """

    def __init__(self, node: "Node", index: int) -> None:
        self.node = node
        self.index = index
        self.ip: Optional[IPv4Interface] = None
        self.active = True
        self.link: Optional["Link"] = None

    @property
    def address(self) -> Optional[IPv4Address]:
        return self.ip.ip if self.ip is not None else None

    @property
    def mask(self) -> Optional[IPv4Address]:
        return self.ip.netmask if self.ip is not None else None

    @property
    def network(self) -> Optional[IPv4Network]:
        return self.ip.network if self.ip is not None else None

    @property
    def name(self) -> str:
        return f"{self.node.id}/{self.index}"

    def __repr__(self) -> str:
        state = "up" if self.active else "down"
        return f"Interface({self.name}, {self.ip}, {state})"


class Node:
    """Represents a site router.

    Attributes:
        id: Unique identifier for the node.
        description: Human readable label, e.g. "HQ (n0)".
        interfaces: Interfaces in index order.
        routing_table: Static routing table owned by this node.
        packets_arrived: Number of packets delivered to this node.
        packets_forwarded: Number of packets this node sent onto a link.
        packets_dropped: Number of packets dropped at this node.
        receive_callbacks: Called with each packet delivered to this node.
    """

    def __init__(self, node_id: str, description: Optional[str] = None) -> None:
        """Initialize a network node.

        Args:
            node_id: Unique identifier for the node.
            description: Optional label used in reports.
        """
        self.id = node_id
        self.description = description or node_id
        self.interfaces: List[Interface] = []
        self.routing_table = RoutingTable(self)
        self.packets_arrived = 0
        self.packets_forwarded = 0
        self.packets_dropped = 0
        self.receive_callbacks: List[Callable[[Packet], Any]] = []

    def add_interface(self) -> Interface:
        """Append a new, unbound interface and return it."""
        interface = Interface(self, len(self.interfaces))
        self.interfaces.append(interface)
        return interface

    def get_interface(self, index: int) -> Interface:
        """Return the interface at ``index``.

        Raises:
            IndexError: If the node has no such interface.
        """
        if not 0 <= index < len(self.interfaces):
            raise IndexError(f"Node {self.id} has no interface {index}")
        return self.interfaces[index]

    def owns(self, address: IPv4Address) -> bool:
        """Check whether ``address`` is assigned to one of this node's interfaces."""
        return any(iface.address == address for iface in self.interfaces)

    def packet_arrived(self, packet: Packet) -> None:
        """Handle packet delivery at this node.

        Args:
            packet: The packet that has arrived.
        """
        self.packets_arrived += 1
        for callback in self.receive_callbacks:
            callback(packet)

    def packet_dropped(self, packet: Packet) -> None:
        """Handle packet drop at this node."""
        self.packets_dropped += 1

    def __repr__(self) -> str:
        return f"Node({self.id})"
