"""YAML scenario configuration for WAN failover simulations.

This module parses scenario files into dataclasses. Validation happens in
``__post_init__``; every problem with the file contents is reported as a
ConfigurationError.

Example YAML:
    simulation:
      stop_time: 16.0
      seed: 42

    nodes:
      - id: HQ
        description: HQ (n0)
      - id: DC

    links:
      - endpoints: [HQ, DC]
        data_rate: 5Mbps
        delay: 2ms
        network: 10.1.2.0
        mask: 255.255.255.0

    routes:
      HQ:
        - {network: 10.1.3.0, mask: 255.255.255.0, next_hop: 10.1.2.2, interface: 0, metric: 10}

    failures:
      - {time: 4.0, node: HQ, interface: 0}

    traffic:
      - {source: HQ, destination: 10.1.3.2, start: 2.0, interval: 1.0, packet_size: 1024, max_packets: 10}

    reports:
      routing_table_times: [1.0, 5.0]
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from wan_sim.core.errors import ConfigurationError
from wan_sim.utils.units import parse_data_rate, parse_time

TRAFFIC_PATTERNS = ("constant", "poisson")


@dataclass
class NodeConfig:
    """A site in the scenario."""

    id: str
    description: Optional[str] = None

    def __post_init__(self):
        if not isinstance(self.id, str) or not self.id:
            raise ConfigurationError(f"Node id must be a non-empty string, got {self.id!r}")


@dataclass
class LinkConfig:
    """A point-to-point link.

    Attributes:
        endpoints: The two node IDs; the first gets the first host address.
        data_rate: Capacity in bits per second.
        delay: Propagation delay in seconds.
        network: Network address of the link, or None to leave it unaddressed.
        mask: Network mask of the link.
        name: Link name, defaults to "a-b".
    """

    endpoints: List[str]
    data_rate: float
    delay: float
    network: Optional[str] = None
    mask: Optional[str] = None
    name: Optional[str] = None

    def __post_init__(self):
        if not isinstance(self.endpoints, list) or len(self.endpoints) != 2:
            raise ConfigurationError(f"Link endpoints must be a list of two node ids, got {self.endpoints!r}")
        if self.data_rate <= 0:
            raise ConfigurationError(f"Link data_rate must be positive, got {self.data_rate}")
        if self.delay < 0:
            raise ConfigurationError(f"Link delay must be non-negative, got {self.delay}")
        if (self.network is None) != (self.mask is None):
            raise ConfigurationError(f"Link {self.endpoints}: network and mask must be given together")


@dataclass
class RouteConfig:
    """A static route on one node."""

    network: str
    mask: str
    next_hop: str
    interface: int
    metric: int = 0


@dataclass
class FailureConfig:
    """A scheduled interface failure."""

    time: float
    node: str
    interface: int

    def __post_init__(self):
        if self.time < 0:
            raise ConfigurationError(f"Failure time must be non-negative, got {self.time}")


@dataclass
class TrafficConfig:
    """A periodic packet source.

    Attributes:
        source: Sending node ID.
        destination: Destination IPv4 address.
        start: Time of the first packet.
        interval: Seconds between packets (mean for "poisson").
        packet_size: Payload size in bytes, used when ``size_range`` is unset.
        stop: No packets at or after this time.
        max_packets: Maximum number of packets.
        pattern: "constant" or "poisson".
        size_range: ``[min, max]`` payload sizes for uniformly drawn sizes.
    """

    source: str
    destination: str
    start: float = 0.0
    interval: float = 1.0
    packet_size: int = 1024
    stop: Optional[float] = None
    max_packets: Optional[int] = None
    pattern: str = "constant"
    size_range: Optional[List[int]] = None

    def __post_init__(self):
        if self.interval <= 0:
            raise ConfigurationError(f"Traffic interval must be positive, got {self.interval}")
        if self.packet_size <= 0:
            raise ConfigurationError(f"Traffic packet_size must be positive, got {self.packet_size}")
        if self.start < 0:
            raise ConfigurationError(f"Traffic start must be non-negative, got {self.start}")
        if self.max_packets is not None and self.max_packets < 0:
            raise ConfigurationError(f"Traffic max_packets must be non-negative, got {self.max_packets}")
        if self.pattern not in TRAFFIC_PATTERNS:
            raise ConfigurationError(f"Traffic pattern must be one of {TRAFFIC_PATTERNS}, got '{self.pattern}'")
        if self.size_range is not None:
            if (
                not isinstance(self.size_range, list)
                or len(self.size_range) != 2
                or not 0 < self.size_range[0] <= self.size_range[1]
            ):
                raise ConfigurationError(
                    f"Traffic size_range must be [min, max] with 0 < min <= max, got {self.size_range!r}"
                )


@dataclass
class ReportConfig:
    """Times at which every routing table is captured."""

    routing_table_times: List[float] = field(default_factory=list)


@dataclass
class Scenario:
    """Simulation scenario configuration.

    Attributes:
        stop_time: Simulation stop time in seconds.
        seed: Random seed for deterministic execution.
        max_hops: Links a packet may cross before it is dropped.
        nodes: Sites.
        links: Point-to-point links.
        routes: Static routes keyed by node ID.
        failures: Scheduled interface failures.
        traffic: Packet sources.
        reports: Routing table capture times.
    """

    stop_time: float
    seed: int = 42
    max_hops: int = 64
    nodes: List[NodeConfig] = field(default_factory=list)
    links: List[LinkConfig] = field(default_factory=list)
    routes: Dict[str, List[RouteConfig]] = field(default_factory=dict)
    failures: List[FailureConfig] = field(default_factory=list)
    traffic: List[TrafficConfig] = field(default_factory=list)
    reports: ReportConfig = field(default_factory=ReportConfig)

    def __post_init__(self):
        """Validate scenario after initialization."""
        if self.stop_time <= 0:
            raise ConfigurationError(f"stop_time must be positive, got {self.stop_time}")
        if self.max_hops < 1:
            raise ConfigurationError(f"max_hops must be at least 1, got {self.max_hops}")
        if not self.nodes:
            raise ConfigurationError("No nodes defined in scenario")

        ids = [node.id for node in self.nodes]
        if len(set(ids)) != len(ids):
            raise ConfigurationError(f"Duplicate node ids in {ids}")

        known = set(ids)
        referenced = [endpoint for link in self.links for endpoint in link.endpoints]
        referenced += list(self.routes)
        referenced += [failure.node for failure in self.failures]
        referenced += [flow.source for flow in self.traffic]
        for node_id in referenced:
            if node_id not in known:
                raise ConfigurationError(f"Unknown node '{node_id}' referenced in scenario")


def _section(data: Dict[str, Any], name: str, kind: type, default: Any) -> Any:
    value = data.get(name)
    if value is None:
        return default
    if not isinstance(value, kind):
        raise ConfigurationError(f"'{name}' section must be a {kind.__name__}")
    return value


def _build(cls: type, values: Any, where: str) -> Any:
    if not isinstance(values, dict):
        raise ConfigurationError(f"{where} must be a dict, got {type(values).__name__}")
    try:
        return cls(**values)
    except TypeError as e:
        raise ConfigurationError(f"{where}: {e}") from e


def parse_scenario(data: Any) -> Scenario:
    """Build a Scenario from already-parsed YAML data.

    Args:
        data: Mapping loaded from a scenario file.

    Returns:
        The validated Scenario.

    Raises:
        ConfigurationError: If required sections or fields are missing or invalid.
    """
    if not isinstance(data, dict):
        raise ConfigurationError(f"Scenario must be a dict, got {type(data).__name__}")

    if "simulation" not in data:
        raise ConfigurationError("Missing required section: 'simulation'")
    sim = _section(data, "simulation", dict, {})
    if sim.get("stop_time") is None:
        raise ConfigurationError("Missing required field: simulation.stop_time")

    nodes = [_build(NodeConfig, n, f"Node {i}") for i, n in enumerate(_section(data, "nodes", list, []))]

    links = []
    for i, raw in enumerate(_section(data, "links", list, [])):
        if not isinstance(raw, dict):
            raise ConfigurationError(f"Link {i} must be a dict")
        values = dict(raw)
        values["data_rate"] = parse_data_rate(values.get("data_rate", "5Mbps"))
        values["delay"] = parse_time(values.get("delay", "2ms"))
        links.append(_build(LinkConfig, values, f"Link {i}"))

    routes: Dict[str, List[RouteConfig]] = {}
    for node_id, entries in _section(data, "routes", dict, {}).items():
        if not isinstance(entries, list):
            raise ConfigurationError(f"Routes for node '{node_id}' must be a list")
        routes[node_id] = [_build(RouteConfig, r, f"Route {i} of node '{node_id}'") for i, r in enumerate(entries)]

    failures = [_build(FailureConfig, f, f"Failure {i}") for i, f in enumerate(_section(data, "failures", list, []))]
    traffic = [_build(TrafficConfig, t, f"Traffic {i}") for i, t in enumerate(_section(data, "traffic", list, []))]
    reports = _build(ReportConfig, _section(data, "reports", dict, {}), "'reports' section")

    return Scenario(
        stop_time=float(sim["stop_time"]),
        seed=sim.get("seed", 42),
        max_hops=sim.get("max_hops", 64),
        nodes=nodes,
        links=links,
        routes=routes,
        failures=failures,
        traffic=traffic,
        reports=reports,
    )


def load_scenario(yaml_path: str) -> Scenario:
    """Load a scenario from a YAML file.

    Args:
        yaml_path: Path to the YAML scenario file.

    Returns:
        Scenario object with the parsed configuration.

    Raises:
        FileNotFoundError: If the YAML file doesn't exist.
        ConfigurationError: If the YAML is invalid or fields are missing or invalid.
    """
    path = Path(yaml_path)
    if not path.exists():
        raise FileNotFoundError(f"Scenario file not found: {yaml_path}")

    with open(path, "r") as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML syntax in {yaml_path}: {e}") from e

    return parse_scenario(data)
