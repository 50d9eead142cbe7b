import csv
import json
import logging

import pytest

from wan_sim.core.errors import ConfigurationError
from wan_sim.core.simulator import RoutingTableDump
from wan_sim.traffic.generators import constant_interval, poisson_traffic, variable_size
from wan_sim.utils.logging_config import setup_logger
from wan_sim.utils.metrics import path_changes, save_metrics_to_json, save_packet_trace_to_csv
from wan_sim.utils.report import format_routing_table, write_routing_tables
from wan_sim.utils.units import parse_data_rate, parse_time

DC_ADDRESS = "10.1.3.2"


@pytest.mark.parametrize(
    "text, expected",
    [("5Mbps", 5e6), ("100Kbps", 1e5), ("1.5Gbps", 1.5e9), ("9600bps", 9600), ("1200", 1200), (64000, 64000)],
)
def test_parse_data_rate(text, expected):
    assert parse_data_rate(text) == pytest.approx(expected)


@pytest.mark.parametrize("text, expected", [("2ms", 0.002), ("1.5s", 1.5), ("250us", 2.5e-4), ("3", 3.0)])
def test_parse_time(text, expected):
    assert parse_time(text) == pytest.approx(expected)


@pytest.mark.parametrize("text", ["fast", "5 parsecs", "", "ms", True])
def test_parse_invalid_quantities(text):
    with pytest.raises(ConfigurationError):
        parse_time(text)


def test_traffic_generators():
    assert constant_interval(0.25)() == 0.25
    assert 10 <= variable_size(10, 20)() <= 20
    assert poisson_traffic(10)() >= 0
    with pytest.raises(ValueError):
        constant_interval(0)
    with pytest.raises(ValueError):
        variable_size(20, 10)


def test_format_routing_table(wan):
    wan.schedule_failure(4.0, "HQ", 1)
    dump = wan.dump_routing_table("HQ", 5.0)
    pending = format_routing_table(wan.dump_routing_table("DC", 6.0))
    assert "(not captured)" in pending

    wan.run(5.0)
    lines = format_routing_table(dump).splitlines()

    assert lines[0] == "Node: HQ (n0), Time: 5.00s, static routing table"
    assert lines[1].startswith("Destination")
    assert lines[2].split() == ["10.1.1.0", "0.0.0.0", "255.255.255.0", "U", "0", "0", "up"]
    assert lines[4].split() == ["10.1.3.0", "10.1.2.2", "255.255.255.0", "G", "10", "1", "down"]
    assert lines[5].split() == ["10.1.3.0", "10.1.1.2", "255.255.255.0", "UG", "20", "0", "up"]


def test_write_routing_tables(tmp_path):
    dumps = [RoutingTableDump("A", "A", 1.0), RoutingTableDump("B", "B", 1.0)]
    target = tmp_path / "out" / "routes.txt"

    write_routing_tables(dumps, str(target))

    assert target.read_text().count("(not captured)") == 2


def test_save_metrics_and_trace(wan, tmp_path):
    wan.send("HQ", DC_ADDRESS, 1024)
    wan.send("HQ", "192.0.2.1", 1024)
    metrics = wan.run(1.0)

    save_metrics_to_json(metrics, str(tmp_path / "metrics.json"))
    save_packet_trace_to_csv(wan, str(tmp_path / "trace" / "packets.csv"))

    assert json.loads((tmp_path / "metrics.json").read_text())["drops_by_reason"] == {"NoRoute": 1}
    with open(tmp_path / "trace" / "packets.csv", newline="") as f:
        rows = list(csv.DictReader(f))
    assert [(r["outcome"], r["reason"], r["node"], r["path"]) for r in rows] == [
        ("Delivered", "", "DC", "HQ->DC"),
        ("Dropped", "NoRoute", "HQ", "HQ"),
    ]


def test_path_changes(wan):
    wan.schedule_failure(4.0, "HQ", 1)
    wan.schedule_failure(6.0, "HQ", 0)
    for t in range(2, 9):
        wan.schedule_send(float(t), "HQ", DC_ADDRESS, 100)

    wan.run(10.0)

    flow = f"HQ-{DC_ADDRESS}"
    assert path_changes(wan, flow) == [
        (2.0, f"{flow}: HQ->DC"),
        (4.0, f"{flow}: HQ->Branch->DC"),
        (6.0, f"{flow}: dropped (AllRoutesDown)"),
    ]
    assert path_changes(wan, "Branch-10.0.0.1") == []


def test_setup_logger_does_not_duplicate_handlers(tmp_path):
    log_file = str(tmp_path / "logs" / "sim.log")

    logger = setup_logger("wan_sim.test_logging", log_file)
    setup_logger("wan_sim.test_logging", log_file)
    logger.info("hello")

    assert len(logger.handlers) == 1
    for handler in logger.handlers:
        handler.flush()
    assert "hello" in (tmp_path / "logs" / "sim.log").read_text()

    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)
