"""Network simulator class for WAN failover simulation.

This module defines the NetworkSimulator class, which wires the EventScheduler,
Topology, LinkStateController and ForwardingEngine together and exposes the
primitives used by scenario drivers, traffic sources and reporters.
"""

import logging
import random
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

import numpy as np
import simpy

from wan_sim.core.enums import DropReason
from wan_sim.core.errors import ConfigurationError
from wan_sim.core.forwarding import Delivered, ForwardingEngine, Outcome
from wan_sim.core.link import Link
from wan_sim.core.link_state import LinkStateChange, LinkStateController
from wan_sim.core.node import Node
from wan_sim.core.packet import Packet
from wan_sim.core.routing import AddressLike, Route, RouteEntry, parse_address
from wan_sim.core.scheduler import Event, EventScheduler
from wan_sim.core.topology import Topology

logger = logging.getLogger(__name__)


@dataclass
class RoutingTableDump:
    """Routing table rows captured at a scheduled time.

    Attributes:
        node: Node ID.
        description: Node label.
        time: Simulated time of the capture.
        entries: Captured rows, empty until the capture event has run.
        captured: Whether the capture event has run.
    """

    node: str
    description: str
    time: float
    entries: List[RouteEntry] = field(default_factory=list)
    captured: bool = False


class NetworkSimulator:
    """WAN simulation environment.

    Attributes:
        scheduler: Event scheduler owning the simulated clock.
        env: SimPy environment underneath the scheduler.
        topology: Nodes, interfaces and links.
        link_state: Controller for scheduled interface failures.
        engine: Forwarding engine used by ``send``.
        packets: All packets sent so far.
        outcomes: (packet, outcome) pairs in send order.
        completed_packets: Packets that reached their destination.
        dropped_packets: Packets that were dropped, with the reason.
        dumps: Routing table dumps requested so far.
        metrics: Metrics from the last ``calculate_metrics`` call.
    """

    def __init__(
        self,
        env: Optional[simpy.Environment] = None,
        max_hops: int = 64,
        seed: int = 42,
    ):
        """Initialize the network simulator.

        Args:
            env: SimPy environment (a fresh one is created if omitted).
            max_hops: Links a packet may cross before it is dropped.
            seed: Random seed for reproducible traffic.
        """
        self.scheduler = EventScheduler(env)
        self.env = self.scheduler.env
        self.topology = Topology()
        self.link_state = LinkStateController(self.scheduler, self.topology, self._link_changed)
        self.engine = ForwardingEngine(self.topology, max_hops)
        self.packets: List[Packet] = []
        self.outcomes: List[Tuple[Packet, Outcome]] = []
        self.completed_packets: List[Packet] = []
        self.dropped_packets: List[Tuple[Packet, DropReason]] = []
        self.dumps: List[RoutingTableDump] = []
        self.metrics: Dict[str, Any] = {}

        random.seed(seed)
        np.random.seed(seed)

        self.hooks: Dict[str, List[Callable[..., Any]]] = {
            "packet_sent": [],  # packet handed to the forwarding engine
            "packet_arrived": [],  # packet reaches destination
            "packet_dropped": [],  # packet dropped
            "link_down": [],  # interface disabled
            "sim_end": [],  # the simulation ends
        }

    @property
    def now(self) -> float:
        return self.scheduler.now

    @property
    def nodes(self) -> Dict[str, Node]:
        return self.topology.nodes

    @property
    def links(self) -> Dict[str, Link]:
        return self.topology.links

    def add_node(self, node_id: str, description: Optional[str] = None) -> Node:
        """Add a node to the network."""
        return self.topology.add_node(node_id, description)

    def add_link(
        self,
        a: str,
        b: str,
        capacity: float,
        propagation_delay: float,
        network: Optional[AddressLike] = None,
        mask: Optional[AddressLike] = None,
        name: Optional[str] = None,
    ) -> Link:
        """Add a point-to-point link, optionally addressing both ends.

        Args:
            a: First node ID (gets the first host address).
            b: Second node ID (gets the second host address).
            capacity: Link capacity in bits per second.
            propagation_delay: Propagation delay in seconds.
            network: Network address for the link, if it should be addressed.
            mask: Network mask, required with ``network``.
            name: Link name (defaults to "a-b").

        Returns:
            The created Link.
        """
        if (network is None) != (mask is None):
            raise ConfigurationError("network and mask must be given together")
        link = self.topology.add_link(a, b, capacity, propagation_delay, name)
        if network is not None:
            self.topology.assign_network(link, network, mask)
        return link

    def assign_address(self, node_id: str, index: int, address: AddressLike, mask: AddressLike) -> None:
        """Assign an address to an interface."""
        self.topology.assign_address(node_id, index, address, mask)

    def add_route(
        self,
        node_id: str,
        network: AddressLike,
        mask: AddressLike,
        next_hop: AddressLike,
        interface: int,
        metric: int = 0,
    ) -> Route:
        """Add a static route to a node's routing table. Setup time only.

        Raises:
            ConfigurationError: If the route is malformed or a duplicate, or
                the simulation has already started.
            TopologyError: If the node does not exist.
        """
        node = self.topology.get_node(node_id)
        return node.routing_table.add_route(network, mask, next_hop, interface, metric)

    def schedule(self, time: float, action: Callable[..., Any], *args: Any, **kwargs: Any) -> Event:
        """Schedule ``action`` at absolute simulated time ``time``."""
        return self.scheduler.schedule(time, action, *args, **kwargs)

    def schedule_failure(self, time: float, node_id: str, index: int) -> Event:
        """Schedule a single interface to go down at ``time``."""
        return self.link_state.schedule_failure(time, node_id, index)

    def schedule_link_failure(self, time: float, link_name: str) -> Tuple[Event, Event]:
        """Schedule both ends of a link to go down at ``time``.

        This is two explicit single-interface failures, scheduled in endpoint
        order.
        """
        link = self.topology.links.get(link_name)
        if link is None:
            raise ConfigurationError(f"Link {link_name} does not exist")
        a, b = link.endpoints
        return (
            self.schedule_failure(time, a.node.id, a.index),
            self.schedule_failure(time, b.node.id, b.index),
        )

    def send(self, source: str, destination: AddressLike, size: int) -> Outcome:
        """Send a packet from ``source`` to ``destination`` now.

        Args:
            source: Source node ID.
            destination: Destination IPv4 address.
            size: Payload size in bytes.

        Returns:
            Delivered with the destination node ID, or Dropped with a reason.
        """
        node = self.topology.get_node(source)
        packet = Packet(source, parse_address(destination), size, self.now)
        self.packets.append(packet)
        self.call_hooks("packet_sent", packet, self.now)

        outcome = self.engine.forward(node, packet)
        self.outcomes.append((packet, outcome))

        if isinstance(outcome, Delivered):
            packet.arrival_time = self.now + packet.latency
            self.completed_packets.append(packet)
            self.call_hooks("packet_arrived", packet, outcome, self.now)
        else:
            self.dropped_packets.append((packet, outcome.reason))
            self.call_hooks("packet_dropped", packet, outcome, self.now)
        return outcome

    def schedule_send(self, time: float, source: str, destination: AddressLike, size: int) -> Event:
        """Schedule a single ``send`` at ``time``.

        Raises:
            TopologyError: If the source node does not exist.
            ConfigurationError: If the destination address is malformed.
            SchedulingError: If ``time`` is in the past.
        """
        self.topology.get_node(source)
        address = parse_address(destination)
        return self.scheduler.schedule(time, self.send, source, address, size)

    def packet_generator(
        self,
        source: str,
        destination: AddressLike,
        packet_size: Callable[[], int],
        interval: Callable[[], float],
        start: float = 0.0,
        stop: Optional[float] = None,
        max_packets: Optional[int] = None,
    ) -> Optional[Event]:
        """Send packets periodically through the event scheduler.

        The first send is scheduled when this is called; each send schedules
        the next one ``interval()`` seconds later.

        Args:
            source: Source node ID.
            destination: Destination IPv4 address.
            packet_size: Function returning the size of the next packet.
            interval: Function returning the time until the next packet.
            start: Time of the first packet.
            stop: No packet is sent at or after this time.
            max_packets: Maximum number of packets to send.

        Returns:
            The event of the first send, or None if no packet will be sent.
        """
        self.topology.get_node(source)
        address = parse_address(destination)
        if start < self.now:
            raise ConfigurationError(f"Generator start {start} is in the past")
        if max_packets is not None and max_packets <= 0:
            return None
        sent = 0

        def send_next() -> None:
            nonlocal sent
            if stop is not None and self.now >= stop:
                return
            self.send(source, address, packet_size())
            sent += 1
            if max_packets is None or sent < max_packets:
                self.scheduler.schedule_in(interval(), send_next)

        return self.scheduler.schedule(start, send_next)

    def routing_table_snapshot(self, node_id: str) -> List[RouteEntry]:
        """Return a node's routing table rows as of now."""
        return self.topology.get_node(node_id).routing_table.entries()

    def dump_routing_table(self, node_id: str, at_time: float) -> RoutingTableDump:
        """Capture a node's routing table at ``at_time``.

        Returns:
            A RoutingTableDump that is filled when the capture event runs.
        """
        node = self.topology.get_node(node_id)
        dump = RoutingTableDump(node.id, node.description, at_time)

        def capture() -> None:
            dump.entries = node.routing_table.entries()
            dump.captured = True

        self.scheduler.schedule(at_time, capture)
        self.dumps.append(dump)
        return dump

    def dump_all_routing_tables(self, at_time: float) -> List[RoutingTableDump]:
        """Capture every node's routing table at ``at_time``."""
        return [self.dump_routing_table(node_id, at_time) for node_id in self.topology.nodes]

    def calculate_metrics(self) -> Dict[str, Any]:
        """Calculate delivery metrics.

        Returns:
            Dictionary of calculated metrics.
        """
        total_packets = len(self.completed_packets) + len(self.dropped_packets)
        latencies = np.array([p.latency for p in self.completed_packets])

        self.metrics = {
            "simulation_time": self.now,
            "packets_sent": len(self.packets),
            "packets_delivered": len(self.completed_packets),
            "packets_dropped": len(self.dropped_packets),
            "packet_loss_rate": (
                len(self.dropped_packets) / total_packets if total_packets > 0 else 0
            ),
            "drops_by_reason": dict(Counter(str(reason) for _, reason in self.dropped_packets)),
            "path_usage": dict(Counter("->".join(p.path) for p in self.completed_packets)),
            "average_latency": float(latencies.mean()) if latencies.size else 0.0,
            "max_latency": float(latencies.max()) if latencies.size else 0.0,
            "link_packets": {name: link.packets_sent for name, link in self.links.items()},
            "link_bytes": {name: link.bytes_sent for name, link in self.links.items()},
            "link_state_changes": [
                {
                    "time": change.time,
                    "node": change.node,
                    "interface": change.interface,
                    "active": change.active,
                }
                for change in self.link_state.transitions
            ],
        }
        return self.metrics

    def register_hook(self, event_type: str, callback: Callable[..., Any]) -> None:
        """Register a callback function for a specific event type.

        Args:
            event_type: The type of event to register for.
            callback: The function to call when the event occurs.
        """
        if event_type not in self.hooks:
            raise ValueError(f"Unknown hook type: {event_type}")
        self.hooks[event_type].append(callback)

    def call_hooks(self, event_type: str, *args: Any, **kwargs: Any) -> None:
        """Call all registered callbacks for the given event type."""
        for callback in self.hooks.get(event_type, []):
            callback(*args, **kwargs)

    def run(self, until: Optional[float] = None) -> Dict[str, Any]:
        """Run the simulation up to ``until``.

        The first run seals the topology and routing tables.

        Args:
            until: Stop time in seconds, or None to run until no events remain.

        Returns:
            Dictionary of calculated metrics.
        """
        if not self.topology.sealed:
            self.topology.seal()
        self.scheduler.run(until)
        self.calculate_metrics()
        logger.info(
            "Simulation at t=%.3fs: %d delivered, %d dropped",
            self.now,
            self.metrics["packets_delivered"],
            self.metrics["packets_dropped"],
        )
        self.call_hooks("sim_end", self.metrics)
        return self.metrics

    def _link_changed(self, change: LinkStateChange) -> None:
        self.call_hooks("link_down", change, self.now)
