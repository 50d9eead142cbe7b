"""Metrics utilities for network simulation.

This module provides functions for saving simulation metrics and per-packet
traces, and for summarizing how traffic moved between paths over time.
"""

import csv
import json
import os
from typing import Any, Dict, List, Optional, Tuple

from wan_sim.core.forwarding import Delivered
from wan_sim.core.simulator import NetworkSimulator

TRACE_FIELDS = ["id", "time", "source", "destination", "size", "outcome", "reason", "node", "path", "latency"]


def _ensure_parent(filename: str) -> None:
    directory = os.path.dirname(filename)
    if directory:
        os.makedirs(directory, exist_ok=True)


def save_metrics_to_json(metrics: Dict[str, Any], filename: str = "results/metrics.json") -> None:
    """Save metrics to a JSON file.

    Args:
        metrics: Dictionary of metrics to save.
        filename: Output filename.
    """
    _ensure_parent(filename)

    with open(filename, "w") as f:
        json.dump(metrics, f, indent=2)


def packet_trace(simulator: NetworkSimulator) -> List[Dict[str, Any]]:
    """Return one row per sent packet, in send order.

    Args:
        simulator: NetworkSimulator instance.

    Returns:
        Rows keyed by TRACE_FIELDS.
    """
    rows = []
    for packet, outcome in simulator.outcomes:
        delivered = isinstance(outcome, Delivered)
        rows.append(
            {
                "id": packet.id,
                "time": packet.creation_time,
                "source": packet.source,
                "destination": str(packet.destination),
                "size": packet.size,
                "outcome": "Delivered" if delivered else "Dropped",
                "reason": "" if delivered else str(outcome.reason),
                "node": outcome.destination if delivered else outcome.node,
                "path": "->".join(outcome.path),
                "latency": packet.latency if delivered else "",
            }
        )
    return rows


def save_packet_trace_to_csv(simulator: NetworkSimulator, filename: str = "results/packets.csv") -> None:
    """Save the per-packet trace to a CSV file.

    Args:
        simulator: NetworkSimulator instance.
        filename: Output filename.
    """
    _ensure_parent(filename)

    with open(filename, "w", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=TRACE_FIELDS)
        writer.writeheader()
        writer.writerows(packet_trace(simulator))


def path_changes(simulator: NetworkSimulator, flow_id: Optional[str] = None) -> List[Tuple[float, str]]:
    """List the times at which a flow's outcome changed.

    A flow's outcome is its delivery path, or the drop reason for dropped
    packets. The first packet of each flow always counts as a change.

    Args:
        simulator: NetworkSimulator instance.
        flow_id: Only consider this flow ("source-destination"), or all flows.

    Returns:
        (send time, "flow: outcome") pairs in send order.
    """
    last: Dict[str, str] = {}
    changes = []
    for packet, outcome in simulator.outcomes:
        if flow_id is not None and packet.flow_id != flow_id:
            continue
        if isinstance(outcome, Delivered):
            label = "->".join(outcome.path)
        else:
            label = f"dropped ({outcome.reason})"
        if last.get(packet.flow_id) != label:
            last[packet.flow_id] = label
            changes.append((packet.creation_time, f"{packet.flow_id}: {label}"))
    return changes
