"""Exceptions raised by the WAN simulator.

Packet drops are not exceptions; they are reported as ``Dropped`` outcomes by
the forwarding engine.
"""


class WanSimError(Exception):
    """Base class for all simulator errors."""


class ConfigurationError(WanSimError):
    """Raised for malformed or duplicate setup-time configuration."""


class TopologyError(ConfigurationError):
    """Raised when the node/link graph cannot be built as requested."""


class SchedulingError(WanSimError):
    """Raised when an event cannot be scheduled or cancelled."""
