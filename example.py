#!/usr/bin/env python3
"""Example WAN failover simulation using the wan_sim package.

This script runs the built-in three-site scenario (HQ, Branch, DC) in which
the direct HQ-DC link fails at t=4s, prints where each packet went, and saves
the routing tables, packet trace and metrics to the results directory.
"""

from pprint import pprint

from wan_sim.scenario import redundant_wan_scenario, run_scenario
from wan_sim.utils.logging_config import setup_logger
from wan_sim.utils.metrics import path_changes
from wan_sim.utils.report import format_routing_table


def main() -> None:
    """Run the redundant WAN scenario and print a summary."""
    setup_logger("wan_sim")

    output_dir: str = "results"
    result = run_scenario(redundant_wan_scenario(), output_dir)

    for dump in result.dumps:
        print(format_routing_table(dump))

    print("Path changes:")
    for time, change in path_changes(result.simulator):
        print(f"  t={time:5.2f}s  {change}")

    metrics = result.metrics
    print(f"\n  Packets sent:   {metrics['packets_sent']}")
    print(f"  Delivered:      {metrics['packets_delivered']}")
    print(f"  Packet loss:    {metrics['packet_loss_rate'] * 100:.2f}%")
    print(f"  Average delay:  {metrics['average_latency'] * 1000:.2f} ms")
    print("  Path usage:")
    pprint(metrics["path_usage"])

    print(f"\nSimulation complete. Results saved to '{output_dir}' directory.")


if __name__ == "__main__":
    main()
