"""Text rendering of routing table dumps."""

import os
from typing import Iterable, List

from wan_sim.core.routing import UNSPECIFIED
from wan_sim.core.simulator import RoutingTableDump

HEADER = f"{'Destination':<16}{'Gateway':<16}{'Genmask':<16}{'Flags':<6}{'Metric':<7}{'Iface':<6}State"


def format_routing_table(dump: RoutingTableDump) -> str:
    """Render one dump as a text table.

    Flags follow the usual convention: U for a route whose interface is up,
    G for a route through a gateway.
    """
    lines: List[str] = [f"Node: {dump.description}, Time: {dump.time:.2f}s, static routing table"]
    if not dump.captured:
        lines.append("(not captured)")
        return "\n".join(lines) + "\n"

    lines.append(HEADER)
    for entry in dump.entries:
        flags = ("U" if entry.active else "") + ("G" if entry.next_hop != UNSPECIFIED else "")
        state = "up" if entry.active else "down"
        lines.append(
            f"{str(entry.network):<16}{str(entry.next_hop):<16}{str(entry.mask):<16}"
            f"{flags:<6}{entry.metric:<7}{entry.interface:<6}{state}"
        )
    return "\n".join(lines) + "\n"


def write_routing_tables(dumps: Iterable[RoutingTableDump], filename: str) -> None:
    """Write every dump to ``filename``, separated by blank lines."""
    directory = os.path.dirname(filename)
    if directory:
        os.makedirs(directory, exist_ok=True)
    with open(filename, "w") as f:
        f.write("\n".join(format_routing_table(dump) for dump in dumps))
