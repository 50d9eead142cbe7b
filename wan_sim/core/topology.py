"""Topology of the simulated network.

This module defines the Topology class, which builds the graph of nodes and
point-to-point links, assigns interface addresses, and answers peer queries.
The structure is fixed once the simulation starts; only interface ``active``
flags change afterwards.
"""

import logging
from ipaddress import IPv4Address, IPv4Interface
from typing import Dict, List, Optional, Tuple

import networkx as nx

from wan_sim.core.errors import TopologyError
from wan_sim.core.link import Link
from wan_sim.core.node import Interface, Node
from wan_sim.core.routing import UNSPECIFIED, AddressLike, parse_address, parse_network

logger = logging.getLogger(__name__)


class Topology:
    """Nodes, interfaces and links of the simulated network.

    Attributes:
        graph: NetworkX multigraph with one edge per link, keyed by link name.
        nodes: Node objects keyed by node ID.
        links: Link objects keyed by link name.
        sealed: Once True, structural changes are rejected.
    """

    def __init__(self) -> None:
        self.graph = nx.MultiGraph()
        self.nodes: Dict[str, Node] = {}
        self.links: Dict[str, Link] = {}
        self.sealed = False
        self._addresses: Dict[IPv4Address, Interface] = {}

    def add_node(self, node_id: str, description: Optional[str] = None) -> Node:
        """Add a node to the network.

        Args:
            node_id: Unique identifier for the node.
            description: Optional label used in reports.

        Returns:
            The created Node object.

        Raises:
            TopologyError: If the ID is already taken.
        """
        self._check_open()
        if node_id in self.nodes:
            raise TopologyError(f"Node {node_id} already exists")
        node = Node(node_id, description)
        self.nodes[node_id] = node
        self.graph.add_node(node_id)
        return node

    def add_link(
        self,
        a: str,
        b: str,
        capacity: float,
        propagation_delay: float,
        name: Optional[str] = None,
    ) -> Link:
        """Create one new interface on each node and join them with a link.

        Args:
            a: First node ID.
            b: Second node ID.
            capacity: Link capacity in bits per second.
            propagation_delay: Propagation delay in seconds.
            name: Link name (defaults to "a-b").

        Returns:
            The created Link.
        """
        self._check_open()
        node_a, node_b = self.get_node(a), self.get_node(b)
        if node_a is node_b:
            raise TopologyError(f"Cannot link node {a} to itself")
        return self.connect(node_a.add_interface(), node_b.add_interface(), capacity, propagation_delay, name)

    def connect(
        self,
        a: Interface,
        b: Interface,
        capacity: float,
        propagation_delay: float,
        name: Optional[str] = None,
    ) -> Link:
        """Join two existing interfaces with a point-to-point link.

        Raises:
            TopologyError: If either interface is already bound to a link,
                both belong to the same node, the name is taken, or the
                link parameters are invalid.
        """
        self._check_open()
        for iface in (a, b):
            if self.nodes.get(iface.node.id) is not iface.node:
                raise TopologyError(f"Interface {iface.name} does not belong to this topology")
            if iface.link is not None:
                raise TopologyError(f"Interface {iface.name} is already bound to link {iface.link.name}")
        if a.node is b.node:
            raise TopologyError(f"Cannot link node {a.node.id} to itself")
        if capacity <= 0:
            raise TopologyError(f"Link capacity must be positive, got {capacity}")
        if propagation_delay < 0:
            raise TopologyError(f"Propagation delay must be non-negative, got {propagation_delay}")

        name = name or f"{a.node.id}-{b.node.id}"
        if name in self.links:
            raise TopologyError(f"Link {name} already exists")

        link = Link(name, a, b, capacity, propagation_delay)
        a.link = link
        b.link = link
        self.links[name] = link
        self.graph.add_edge(
            a.node.id,
            b.node.id,
            key=name,
            capacity=capacity,
            delay=propagation_delay,
        )
        logger.debug("Added %r", link)
        return link

    def assign_address(self, node_id: str, index: int, address: AddressLike, mask: AddressLike) -> Interface:
        """Assign an address to an interface and install its connected route.

        Args:
            node_id: Node owning the interface.
            index: Interface index.
            address: Interface address.
            mask: Network mask of the attached network.

        Returns:
            The updated Interface.

        Raises:
            TopologyError: If the interface does not exist, already has an
                address, or the address is used elsewhere.
            ConfigurationError: If the address or mask is malformed.
        """
        self._check_open()
        iface = self.get_interface(node_id, index)
        ip = parse_address(address)
        network = parse_network(int(ip) & int(parse_address(mask)), mask)

        if iface.ip is not None:
            raise TopologyError(f"Interface {iface.name} already has address {iface.ip}")
        if ip in self._addresses:
            raise TopologyError(f"Address {ip} is already assigned to {self._addresses[ip].name}")
        if ip in (network.network_address, network.broadcast_address) and network.prefixlen < 31:
            raise TopologyError(f"{ip} is not a host address in {network}")

        iface.ip = IPv4Interface(f"{ip}/{network.prefixlen}")
        self._addresses[ip] = iface
        iface.node.routing_table.add_route(network.network_address, network.netmask, UNSPECIFIED, index)
        logger.debug("Assigned %s to %s", iface.ip, iface.name)
        return iface

    def assign_network(self, link: Link, base: AddressLike, mask: AddressLike) -> Tuple[IPv4Address, IPv4Address]:
        """Assign the first two host addresses of ``base/mask`` to a link's endpoints.

        Returns:
            The addresses given to the first and second endpoint.
        """
        network = parse_network(base, mask)
        hosts = network.hosts()
        try:
            first, second = next(hosts), next(hosts)
        except StopIteration:
            raise TopologyError(f"Network {network} has fewer than two host addresses") from None
        a, b = link.endpoints
        self.assign_address(a.node.id, a.index, first, network.netmask)
        self.assign_address(b.node.id, b.index, second, network.netmask)
        return first, second

    def get_node(self, node_id: str) -> Node:
        """Return the node with ``node_id``.

        Raises:
            TopologyError: If no such node exists.
        """
        node = self.nodes.get(node_id)
        if node is None:
            raise TopologyError(f"Node {node_id} does not exist")
        return node

    def get_interface(self, node_id: str, index: int) -> Interface:
        """Return interface ``index`` of node ``node_id``.

        Raises:
            TopologyError: If the node or interface does not exist.
        """
        node = self.get_node(node_id)
        try:
            return node.get_interface(index)
        except IndexError as e:
            raise TopologyError(str(e)) from e

    def peer(self, node_id: str, index: int) -> Tuple[Interface, Node]:
        """Return the interface and node across the link attached to an interface.

        Raises:
            TopologyError: If the interface is not bound to a link.
        """
        iface = self.get_interface(node_id, index)
        if iface.link is None:
            raise TopologyError(f"Interface {iface.name} is not bound to a link")
        remote = iface.link.peer(iface)
        return remote, remote.node

    def node_for_address(self, address: AddressLike) -> Optional[Node]:
        """Return the node that owns ``address``, if any."""
        iface = self._addresses.get(parse_address(address))
        return iface.node if iface is not None else None

    def neighbours(self, node_id: str) -> List[str]:
        """Return IDs of nodes directly linked to ``node_id``."""
        self.get_node(node_id)
        return sorted(self.graph.neighbors(node_id))

    def active_graph(self) -> nx.MultiGraph:
        """Return the subgraph of links whose two interfaces are both active."""
        graph = nx.MultiGraph()
        graph.add_nodes_from(self.graph.nodes)
        for u, v, key, data in self.graph.edges(keys=True, data=True):
            if all(iface.active for iface in self.links[key].endpoints):
                graph.add_edge(u, v, key=key, **data)
        return graph

    def is_reachable(self, source: str, target: str) -> bool:
        """Check whether a path of fully active links joins two nodes."""
        self.get_node(source)
        self.get_node(target)
        return nx.has_path(self.active_graph(), source, target)

    def seal(self) -> None:
        """Freeze the structure and every node's routing table."""
        self.sealed = True
        for node in self.nodes.values():
            node.routing_table.seal()

    def _check_open(self) -> None:
        if self.sealed:
            raise TopologyError("The topology cannot change after the simulation starts")

    def __repr__(self) -> str:
        return f"Topology({len(self.nodes)} nodes, {len(self.links)} links)"
