"""Enumerations for network simulation.

This module defines enumerations used throughout the network simulator.
"""

from enum import Enum


class DropReason(Enum):
    """Enum for the reasons a packet can be dropped.

    Attributes:
        NO_ROUTE: No route in the node's table matches the destination.
        ALL_ROUTES_DOWN: Every candidate route's egress interface is inactive.
        TTL_EXPIRED: The packet exceeded the hop limit (forwarding loop).
    """

    NO_ROUTE = "NoRoute"
    ALL_ROUTES_DOWN = "AllRoutesDown"
    TTL_EXPIRED = "TtlExpired"

    def __str__(self) -> str:
        return self.value
