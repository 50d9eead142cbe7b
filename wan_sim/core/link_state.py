"""Scheduled interface failures.

The LinkStateController is the only component that changes an interface's
``active`` flag, and it only does so from inside scheduled events. Disabling
one end of a link never disables the other end.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, List, Optional

from wan_sim.core.node import Interface
from wan_sim.core.scheduler import Event, EventScheduler
from wan_sim.core.topology import Topology

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LinkStateChange:
    """A recorded interface state transition."""

    time: float
    node: str
    interface: int
    active: bool


class LinkStateController:
    """Schedules interface failures on the EventScheduler.

    Attributes:
        scheduler: Scheduler the failure events are placed on.
        topology: Topology holding the interfaces.
        transitions: Every state change applied so far, in order.
        on_change: Optional callback invoked with each LinkStateChange.
    """

    def __init__(
        self,
        scheduler: EventScheduler,
        topology: Topology,
        on_change: Optional[Callable[[LinkStateChange], Any]] = None,
    ) -> None:
        self.scheduler = scheduler
        self.topology = topology
        self.on_change = on_change
        self.transitions: List[LinkStateChange] = []

    def schedule_failure(self, time: float, node_id: str, index: int) -> Event:
        """Schedule interface ``index`` of ``node_id`` to go down at ``time``.

        Args:
            time: Simulated time of the failure.
            node_id: Node owning the interface.
            index: Interface index.

        Returns:
            The scheduled Event.

        Raises:
            TopologyError: If the interface does not exist.
            SchedulingError: If ``time`` is in the past.
        """
        interface = self.topology.get_interface(node_id, index)
        return self.scheduler.schedule(time, self.disable, interface)

    def disable(self, interface: Interface) -> None:
        """Mark ``interface`` inactive. Disabling an inactive interface is a no-op.

        Called by the scheduler when a failure event fires.
        """
        if not interface.active:
            logger.debug(
                "Interface %s already down at t=%.3fs", interface.name, self.scheduler.now
            )
            return

        interface.active = False
        change = LinkStateChange(self.scheduler.now, interface.node.id, interface.index, False)
        self.transitions.append(change)
        logger.info(
            "Link disabled for interface %s (%s) at t=%.3fs",
            interface.name,
            interface.ip,
            self.scheduler.now,
        )
        if self.on_change is not None:
            self.on_change(change)
