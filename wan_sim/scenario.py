"""Building and running simulations from scenario configurations.

This module turns a Scenario into a configured NetworkSimulator, runs it, and
optionally writes the routing table dumps, packet trace and metrics. It also
provides the built-in three-site redundant WAN scenario: headquarters, a branch
office and a data-center joined pairwise, with primary and backup routes
between headquarters and the data-center and a failure of the direct link at
t=4s.
"""

import logging
import os
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from wan_sim.config import (
    FailureConfig,
    LinkConfig,
    NodeConfig,
    ReportConfig,
    RouteConfig,
    Scenario,
    TrafficConfig,
)
from wan_sim.core.simulator import NetworkSimulator, RoutingTableDump
from wan_sim.traffic.generators import constant_interval, constant_size, poisson_traffic, variable_size
from wan_sim.utils.metrics import save_metrics_to_json, save_packet_trace_to_csv
from wan_sim.utils.report import write_routing_tables

logger = logging.getLogger(__name__)

MASK_24 = "255.255.255.0"


def redundant_wan_scenario() -> Scenario:
    """Return the three-site redundant WAN scenario.

    Interface indices follow link creation order on each node:
    HQ 0=HQ-Branch 1=HQ-DC, Branch 0=HQ-Branch 1=Branch-DC,
    DC 0=HQ-DC 1=Branch-DC.
    """
    return Scenario(
        stop_time=16.0,
        seed=42,
        nodes=[
            NodeConfig("HQ", "HQ (n0)"),
            NodeConfig("Branch", "Branch (n1)"),
            NodeConfig("DC", "DC (n2)"),
        ],
        links=[
            LinkConfig(["HQ", "Branch"], 5e6, 0.002, "10.1.1.0", MASK_24),
            LinkConfig(["HQ", "DC"], 5e6, 0.002, "10.1.2.0", MASK_24),
            LinkConfig(["Branch", "DC"], 5e6, 0.002, "10.1.3.0", MASK_24),
        ],
        routes={
            # Primary direct to DC, backup through Branch
            "HQ": [
                RouteConfig("10.1.3.0", MASK_24, "10.1.2.2", 1, 10),
                RouteConfig("10.1.3.0", MASK_24, "10.1.1.2", 0, 20),
            ],
            "Branch": [
                RouteConfig("10.1.2.0", MASK_24, "10.1.3.2", 1),
                RouteConfig("10.1.2.0", MASK_24, "10.1.1.1", 0),
            ],
            "DC": [
                RouteConfig("10.1.1.0", MASK_24, "10.1.2.1", 0, 10),
                RouteConfig("10.1.1.0", MASK_24, "10.1.3.1", 1, 20),
            ],
        },
        failures=[
            FailureConfig(4.0, "HQ", 1),
            FailureConfig(4.0, "DC", 0),
        ],
        traffic=[
            TrafficConfig("HQ", "10.1.3.2", start=2.0, interval=1.0, packet_size=1024, stop=15.0, max_packets=10),
        ],
        reports=ReportConfig(routing_table_times=[1.0, 5.0]),
    )


def build_simulator(scenario: Scenario) -> NetworkSimulator:
    """Create a simulator with the scenario's topology, routes, failures and traffic.

    Raises:
        ConfigurationError: If any part of the scenario cannot be applied.
    """
    simulator = NetworkSimulator(max_hops=scenario.max_hops, seed=scenario.seed)

    for node in scenario.nodes:
        simulator.add_node(node.id, node.description)

    for link in scenario.links:
        a, b = link.endpoints
        simulator.add_link(a, b, link.data_rate, link.delay, link.network, link.mask, link.name)

    for node_id, routes in scenario.routes.items():
        for route in routes:
            simulator.add_route(node_id, route.network, route.mask, route.next_hop, route.interface, route.metric)

    for failure in scenario.failures:
        simulator.schedule_failure(failure.time, failure.node, failure.interface)

    for flow in scenario.traffic:
        if flow.pattern == "poisson":
            interval = poisson_traffic(1 / flow.interval)
        else:
            interval = constant_interval(flow.interval)
        if flow.size_range is not None:
            packet_size = variable_size(*flow.size_range)
        else:
            packet_size = constant_size(flow.packet_size)
        simulator.packet_generator(
            flow.source,
            flow.destination,
            packet_size,
            interval,
            start=flow.start,
            stop=flow.stop,
            max_packets=flow.max_packets,
        )

    for at_time in scenario.reports.routing_table_times:
        simulator.dump_all_routing_tables(at_time)

    return simulator


@dataclass
class ScenarioResult:
    """Outcome of a scenario run.

    Attributes:
        simulator: The simulator after the run.
        metrics: Metrics returned by the run.
        dumps: Routing table dumps captured during the run.
    """

    simulator: NetworkSimulator
    metrics: Dict[str, Any]
    dumps: List[RoutingTableDump]


def run_scenario(scenario: Scenario, output_dir: Optional[str] = None) -> ScenarioResult:
    """Build and run a scenario.

    Args:
        scenario: Scenario to run.
        output_dir: If given, ``routes.txt``, ``packets.csv`` and
            ``metrics.json`` are written there.

    Returns:
        ScenarioResult for the run.
    """
    simulator = build_simulator(scenario)
    logger.info(
        "Running scenario with %d nodes and %d links until t=%.1fs",
        len(simulator.nodes),
        len(simulator.links),
        scenario.stop_time,
    )
    metrics = simulator.run(scenario.stop_time)

    if output_dir is not None:
        os.makedirs(output_dir, exist_ok=True)
        write_routing_tables(simulator.dumps, os.path.join(output_dir, "routes.txt"))
        save_packet_trace_to_csv(simulator, os.path.join(output_dir, "packets.csv"))
        save_metrics_to_json(metrics, os.path.join(output_dir, "metrics.json"))
        logger.info("Results written to %s", output_dir)

    return ScenarioResult(simulator, metrics, list(simulator.dumps))
