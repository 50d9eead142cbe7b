import pytest

from wan_sim.core.enums import DropReason
from wan_sim.core.errors import ConfigurationError, SchedulingError
from wan_sim.core.simulator import NetworkSimulator
from wan_sim.traffic.generators import constant_interval, constant_size

DC_ADDRESS = "10.1.3.2"


def test_hooks_receive_outcomes(wan):
    arrived, dropped = [], []
    wan.register_hook("packet_arrived", lambda packet, outcome, now: arrived.append(outcome.destination))
    wan.register_hook("packet_dropped", lambda packet, outcome, now: dropped.append(outcome.reason))

    wan.send("HQ", DC_ADDRESS, 100)
    wan.send("HQ", "172.31.0.1", 100)

    assert arrived == ["DC"]
    assert dropped == [DropReason.NO_ROUTE]


def test_unknown_hook_rejected(wan):
    with pytest.raises(ValueError):
        wan.register_hook("packet_teleported", print)


def test_setup_is_sealed_after_run(wan):
    wan.run(1.0)

    with pytest.raises(ConfigurationError):
        wan.add_route("HQ", "10.9.0.0", "255.255.0.0", "10.1.1.2", 0)
    with pytest.raises(ConfigurationError):
        wan.add_node("Late")


def test_add_link_requires_network_and_mask_together():
    simulator = NetworkSimulator()
    simulator.add_node("A")
    simulator.add_node("B")
    with pytest.raises(ConfigurationError):
        simulator.add_link("A", "B", 1e6, 0.001, network="10.0.0.0")


def test_unknown_link_failure_rejected(wan):
    with pytest.raises(ConfigurationError):
        wan.schedule_link_failure(4.0, "HQ-Mars")


def test_routing_table_dumps_before_and_after_failure(wan):
    wan.schedule_link_failure(4.0, "HQ-DC")
    before = wan.dump_routing_table("HQ", 1.0)
    after = wan.dump_routing_table("HQ", 5.0)
    assert not before.captured

    wan.run(6.0)

    assert before.captured and after.captured

    def rows(dump):
        return [(str(e.network), e.interface, e.metric, e.active) for e in dump.entries]

    assert rows(before) == [
        ("10.1.1.0", 0, 0, True),
        ("10.1.2.0", 1, 0, True),
        ("10.1.3.0", 1, 10, True),
        ("10.1.3.0", 0, 20, True),
    ]
    assert rows(after) == [
        ("10.1.1.0", 0, 0, True),
        ("10.1.2.0", 1, 0, False),
        ("10.1.3.0", 1, 10, False),
        ("10.1.3.0", 0, 20, True),
    ]


def test_dump_all_routing_tables(wan):
    dumps = wan.dump_all_routing_tables(1.0)
    wan.run(2.0)

    assert [d.node for d in dumps] == ["HQ", "Branch", "DC"]
    assert dumps[1].description == "Branch (n1)"
    assert all(d.captured for d in dumps)


def test_dump_in_the_past_rejected(wan):
    wan.run(3.0)
    with pytest.raises(SchedulingError):
        wan.dump_routing_table("HQ", 1.0)


def test_snapshot_reflects_current_state(wan):
    assert all(entry.active for entry in wan.routing_table_snapshot("HQ"))

    wan.schedule_failure(2.0, "HQ", 1)
    wan.run(2.0)

    assert [entry.active for entry in wan.routing_table_snapshot("HQ")] == [True, False, False, True]


def test_packet_generator_respects_max_packets(wan):
    wan.packet_generator("HQ", DC_ADDRESS, constant_size(1024), constant_interval(1.0), start=2.0, max_packets=3)

    wan.run(20.0)

    assert [p.creation_time for p in wan.packets] == [2.0, 3.0, 4.0]


def test_packet_generator_respects_stop(wan):
    wan.packet_generator("HQ", DC_ADDRESS, constant_size(64), constant_interval(0.5), start=1.0, stop=3.0)

    wan.run(10.0)

    assert [p.creation_time for p in wan.packets] == [1.0, 1.5, 2.0, 2.5]


def test_packet_generator_with_zero_packets_schedules_nothing(wan):
    assert wan.packet_generator("HQ", DC_ADDRESS, constant_size(64), constant_interval(1.0), max_packets=0) is None

    wan.run(5.0)

    assert wan.packets == []


@pytest.mark.parametrize(
    "source, destination",
    [("HQ", "not-an-address"), ("Mars", DC_ADDRESS), ("HQ", "10.1.3.0/24")],
)
def test_schedule_send_rejects_bad_arguments_at_call_time(wan, source, destination):
    with pytest.raises(ConfigurationError):
        wan.schedule_send(2.0, source, destination, 64)

    log = []
    wan.schedule(3.0, log.append, "later")
    wan.run(5.0)

    assert log == ["later"]
    assert wan.packets == []


def test_metrics_summarize_outcomes(wan):
    wan.schedule_link_failure(4.0, "HQ-DC")
    wan.packet_generator("HQ", DC_ADDRESS, constant_size(1000), constant_interval(1.0), start=2.0, max_packets=5)
    wan.schedule_send(7.0, "HQ", "192.0.2.1", 10)

    metrics = wan.run(10.0)

    assert metrics["packets_sent"] == 6
    assert metrics["packets_delivered"] == 5
    assert metrics["packets_dropped"] == 1
    assert metrics["packet_loss_rate"] == pytest.approx(1 / 6)
    assert metrics["drops_by_reason"] == {"NoRoute": 1}
    assert metrics["path_usage"] == {"HQ->DC": 2, "HQ->Branch->DC": 3}
    assert metrics["link_packets"] == {"HQ-Branch": 3, "HQ-DC": 2, "Branch-DC": 3}
    assert metrics["link_bytes"]["HQ-DC"] == 2000
    assert [c["node"] for c in metrics["link_state_changes"]] == ["HQ", "DC"]
    assert metrics["max_latency"] >= metrics["average_latency"] > 0
    assert metrics["simulation_time"] == 10.0


def test_sim_end_hook_receives_metrics(wan):
    seen = []
    wan.register_hook("sim_end", seen.append)

    metrics = wan.run(1.0)

    assert seen == [metrics]


def test_identical_setups_replay_identically():
    from wan_sim.scenario import build_simulator, redundant_wan_scenario

    def run_once():
        simulator = build_simulator(redundant_wan_scenario())
        simulator.run(16.0)
        return [(p.creation_time, o.path) for p, o in simulator.outcomes]

    assert run_once() == run_once()


def test_arrival_time_includes_latency(wan):
    wan.run(2.0)
    outcome = wan.send("HQ", DC_ADDRESS, 1024)
    packet = wan.completed_packets[-1]

    assert packet.arrival_time == pytest.approx(2.0 + outcome.latency)
    assert packet.get_total_delay() == pytest.approx(outcome.latency)
