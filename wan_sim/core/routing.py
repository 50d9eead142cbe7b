"""Static routing tables for network simulation.

This module defines the Route and RoutingTable classes. A table can hold
several routes to the same destination network with different metrics (a
primary/backup pair); candidates are ordered by preference at lookup time and
the forwarding engine decides which one is usable.
"""

import logging
from dataclasses import dataclass
from ipaddress import IPv4Address, IPv4Network
from typing import TYPE_CHECKING, Iterator, List, Optional, Tuple, Union

from wan_sim.core.errors import ConfigurationError

if TYPE_CHECKING:
    from wan_sim.core.node import Node

logger = logging.getLogger(__name__)

AddressLike = Union[str, int, IPv4Address]

UNSPECIFIED = IPv4Address("0.0.0.0")


def parse_address(value: AddressLike) -> IPv4Address:
    """Parse an IPv4 address.

    Raises:
        ConfigurationError: If ``value`` is not a valid IPv4 address.
    """
    if isinstance(value, IPv4Address):
        return value
    try:
        return IPv4Address(value)
    except ValueError as e:
        raise ConfigurationError(f"Malformed IPv4 address {value!r}: {e}") from e


def parse_network(network: AddressLike, mask: AddressLike) -> IPv4Network:
    """Parse a network address and dotted-quad prefix mask.

    Raises:
        ConfigurationError: If the mask is not a contiguous prefix mask or the
            network address has host bits set.
    """
    address = parse_address(network)
    netmask = parse_address(mask)
    try:
        parsed = IPv4Network(f"{address}/{netmask}")
    except ValueError as e:
        raise ConfigurationError(f"Malformed network {address}/{netmask}: {e}") from e
    # ipaddress also accepts host masks such as 0.0.0.255.
    if parsed.netmask != netmask:
        raise ConfigurationError(f"{netmask} is not a valid prefix mask")
    return parsed


@dataclass(frozen=True)
class Route:
    """A static route.

    Attributes:
        network: Destination network address.
        mask: Destination network mask.
        next_hop: Next-hop address (0.0.0.0 for directly connected networks).
        interface: Egress interface index on the owning node.
        metric: Preference, lower is preferred.
    """

    network: IPv4Address
    mask: IPv4Address
    next_hop: IPv4Address
    interface: int
    metric: int = 0

    @property
    def prefix_length(self) -> int:
        return bin(int(self.mask)).count("1")

    @property
    def identity(self) -> Tuple[IPv4Address, IPv4Address, IPv4Address, int]:
        return self.network, self.mask, self.next_hop, self.interface

    @property
    def is_gateway(self) -> bool:
        return self.next_hop != UNSPECIFIED

    def matches(self, address: IPv4Address) -> bool:
        return int(address) & int(self.mask) == int(self.network)

    def __str__(self) -> str:
        return (
            f"{self.network}/{self.prefix_length} via {self.next_hop} "
            f"if {self.interface} metric {self.metric}"
        )


@dataclass(frozen=True)
class RouteEntry:
    """A routing table row as seen at a given moment.

    Attributes:
        network: Destination network address.
        mask: Destination network mask.
        next_hop: Next-hop address.
        interface: Egress interface index.
        metric: Route metric.
        active: Whether the egress interface was active when captured.
    """

    network: IPv4Address
    mask: IPv4Address
    next_hop: IPv4Address
    interface: int
    metric: int
    active: bool


class RoutingTable:
    """Per-node set of static routes.

    Routes are kept in insertion order; no sorting happens on insert.

    Attributes:
        node: Node owning the table, used to validate interface indices.
        routes: Routes in insertion order.
        sealed: Once True, the table rejects new routes.
    """

    def __init__(self, node: Optional["Node"] = None) -> None:
        self.node = node
        self.routes: List[Route] = []
        self.sealed = False

    def add_route(
        self,
        network: AddressLike,
        mask: AddressLike,
        next_hop: AddressLike,
        interface: int,
        metric: int = 0,
    ) -> Route:
        """Insert a route.

        Args:
            network: Destination network address.
            mask: Destination network mask.
            next_hop: Next-hop address.
            interface: Egress interface index on the owning node.
            metric: Route preference, lower is preferred.

        Returns:
            The inserted Route.

        Raises:
            ConfigurationError: If the table is sealed, the network/mask or an
                address is malformed, the interface or metric is invalid, or
                the route duplicates an existing (network, mask, next hop,
                interface) tuple.
        """
        if self.sealed:
            raise ConfigurationError("Routes can only be added before the simulation starts")

        prefix = parse_network(network, mask)
        gateway = parse_address(next_hop)

        if isinstance(interface, bool) or not isinstance(interface, int) or interface < 0:
            raise ConfigurationError(f"Invalid interface index {interface!r}")
        if self.node is not None and interface >= len(self.node.interfaces):
            raise ConfigurationError(f"Node {self.node.id} has no interface {interface}")
        if isinstance(metric, bool) or not isinstance(metric, int) or metric < 0:
            raise ConfigurationError(f"Invalid metric {metric!r}")

        route = Route(prefix.network_address, prefix.netmask, gateway, interface, metric)
        if any(existing.identity == route.identity for existing in self.routes):
            raise ConfigurationError(f"Duplicate route {route}")

        self.routes.append(route)
        logger.debug("%s: added route %s", self._owner(), route)
        return route

    def add_host_route(
        self, destination: AddressLike, next_hop: AddressLike, interface: int, metric: int = 0
    ) -> Route:
        """Insert a /32 route to a single host."""
        return self.add_route(destination, "255.255.255.255", next_hop, interface, metric)

    def set_default_route(self, next_hop: AddressLike, interface: int, metric: int = 0) -> Route:
        """Insert a 0.0.0.0/0 route."""
        return self.add_route("0.0.0.0", "0.0.0.0", next_hop, interface, metric)

    def lookup_candidates(self, destination: AddressLike) -> List[Route]:
        """Return the candidate routes for ``destination`` in preference order.

        Only routes with the longest matching prefix are candidates. They are
        sorted by ascending metric; equal metrics keep insertion order.

        Args:
            destination: Destination address.

        Returns:
            Ordered candidate routes, empty if nothing matches.
        """
        address = parse_address(destination)
        matching = [route for route in self.routes if route.matches(address)]
        if not matching:
            return []
        longest = max(route.prefix_length for route in matching)
        # sorted() is stable, so equal metrics stay in insertion order
        return sorted(
            (route for route in matching if route.prefix_length == longest),
            key=lambda route: route.metric,
        )

    def entries(self) -> List[RouteEntry]:
        """Return all routes as rows in preference order.

        Longest prefix first, then ascending metric, then insertion order.
        Each row carries the current state of its egress interface.
        """
        ordered = sorted(self.routes, key=lambda route: (-route.prefix_length, route.metric))
        return [
            RouteEntry(
                route.network,
                route.mask,
                route.next_hop,
                route.interface,
                route.metric,
                self._interface_active(route.interface),
            )
            for route in ordered
        ]

    def seal(self) -> None:
        self.sealed = True

    def _interface_active(self, index: int) -> bool:
        if self.node is None:
            return True
        return self.node.get_interface(index).active

    def _owner(self) -> str:
        return self.node.id if self.node is not None else "<unbound>"

    def __iter__(self) -> Iterator[Route]:
        return iter(self.routes)

    def __len__(self) -> int:
        return len(self.routes)
