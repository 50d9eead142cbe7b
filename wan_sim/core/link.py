"""Link class for network simulation.

This module defines the Link class, which represents a point-to-point link
between two interfaces on two distinct nodes.
"""

from typing import Tuple

from wan_sim.core.node import Interface
from wan_sim.core.packet import Packet


class Link:
    """Represents a point-to-point link.

    Capacity and propagation delay are carried for latency accounting; they
    play no part in route selection.

    Attributes:
        name: Unique name of the link, e.g. "HQ-DC".
        endpoints: The two interfaces joined by the link.
        capacity: Link capacity in bits per second.
        propagation_delay: Propagation delay in seconds.
        packets_sent: Number of packets sent through this link.
        bytes_sent: Number of bytes sent through this link.
    """

    def __init__(
        self,
        name: str,
        a: Interface,
        b: Interface,
        capacity: float,
        propagation_delay: float,
    ):
        """Initialize a point-to-point link.

        Args:
            name: Unique name of the link.
            a: First endpoint interface.
            b: Second endpoint interface.
            capacity: Link capacity in bits per second.
            propagation_delay: Propagation delay in seconds.
        """
        self.name = name
        self.endpoints: Tuple[Interface, Interface] = (a, b)
        self.capacity = capacity
        self.propagation_delay = propagation_delay
        self.packets_sent = 0
        self.bytes_sent = 0

    def peer(self, interface: Interface) -> Interface:
        """Return the interface at the other end of the link.

        Raises:
            ValueError: If ``interface`` is not an endpoint of this link.
        """
        a, b = self.endpoints
        if interface is a:
            return b
        if interface is b:
            return a
        raise ValueError(f"{interface!r} is not an endpoint of link {self.name}")

    def calculate_transmission_delay(self, packet_size: int) -> float:
        """Calculate transmission delay based on packet size and link capacity.

        Args:
            packet_size: Size of the packet in bytes.

        Returns:
            Transmission delay in seconds.
        """
        return (packet_size * 8) / self.capacity

    def get_total_delay(self, packet: Packet) -> float:
        """Calculate total delay for a packet (transmission + propagation)."""
        return self.calculate_transmission_delay(packet.size) + self.propagation_delay

    def transmit(self, packet: Packet) -> float:
        """Account for ``packet`` crossing the link and return its delay."""
        self.packets_sent += 1
        self.bytes_sent += packet.size
        return self.get_total_delay(packet)

    def __repr__(self) -> str:
        a, b = self.endpoints
        return (
            f"Link({self.name}: {a.name}<->{b.name}, "
            f"{self.capacity/1000000:.1f}Mbps, {self.propagation_delay*1000:.1f}ms)"
        )
