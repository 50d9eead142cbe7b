"""Packet class for network simulation.

This module defines the Packet class, which represents a logical network packet
sent from a node toward a destination address.
"""

from dataclasses import dataclass, field
from ipaddress import IPv4Address
from typing import List, Optional


@dataclass
class Packet:
    """Represents a network packet.

    Attributes:
        source: Source node ID.
        destination: Destination IPv4 address.
        size: Payload size in bytes.
        creation_time: Simulated time when the packet was sent.
        id: Unique identifier for the packet.
        path: Node IDs visited by the packet, starting with the source.
        latency: Accumulated transmission and propagation delay in seconds.
        arrival_time: Time the packet reached its destination, if delivered.
        dropped: Whether the packet was dropped.
        flow_id: Identifier for the flow (source-destination pair).
    """

    source: str
    destination: IPv4Address
    size: int
    creation_time: float = 0.0
    id: int = field(init=False)
    path: List[str] = field(init=False)
    latency: float = 0.0
    arrival_time: Optional[float] = None
    dropped: bool = False
    flow_id: str = field(init=False)

    _id_counter = 0

    def __post_init__(self):
        """Initialize derived attributes after initialization."""
        type(self)._id_counter += 1
        self.id = type(self)._id_counter
        self.path = [self.source]
        self.flow_id = f"{self.source}-{self.destination}"

    @property
    def current_node(self) -> str:
        """ID of the node the packet was last handed to."""
        return self.path[-1]

    def record_hop(self, node: str, delay: float) -> None:
        """Record a hop in the packet's journey.

        Args:
            node: Node ID the packet has been handed to.
            delay: Delay incurred crossing the link, in seconds.
        """
        self.path.append(node)
        self.latency += delay

    def get_hop_count(self) -> int:
        """Get number of links crossed."""
        return len(self.path) - 1

    def get_total_delay(self) -> Optional[float]:
        """Calculate total delay if packet has arrived.

        Returns:
            Total delay in seconds or None if packet hasn't arrived.
        """
        if self.arrival_time is None:
            return None
        return self.arrival_time - self.creation_time
