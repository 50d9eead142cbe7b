"""Parsing of data rate and time quantities such as "5Mbps" and "2ms"."""

import re
from typing import Union

from wan_sim.core.errors import ConfigurationError

_QUANTITY = re.compile(r"^\s*([0-9]*\.?[0-9]+(?:[eE][-+]?[0-9]+)?)\s*([A-Za-z]*)\s*$")

DATA_RATE_UNITS = {
    "bps": 1.0,
    "kbps": 1e3,
    "Kbps": 1e3,
    "Mbps": 1e6,
    "Gbps": 1e9,
}

TIME_UNITS = {
    "s": 1.0,
    "ms": 1e-3,
    "us": 1e-6,
    "ns": 1e-9,
}


def _parse(value: Union[str, int, float], units: dict, default_unit: str, kind: str) -> float:
    if isinstance(value, bool):
        raise ConfigurationError(f"Invalid {kind}: {value!r}")
    if isinstance(value, (int, float)):
        return float(value)
    match = _QUANTITY.match(str(value))
    if match is None:
        raise ConfigurationError(f"Invalid {kind}: {value!r}")
    number, unit = match.groups()
    unit = unit or default_unit
    if unit not in units:
        raise ConfigurationError(f"Unknown {kind} unit {unit!r} in {value!r}")
    return float(number) * units[unit]


def parse_data_rate(value: Union[str, int, float]) -> float:
    """Parse a data rate into bits per second. Bare numbers are bits per second."""
    return _parse(value, DATA_RATE_UNITS, "bps", "data rate")


def parse_time(value: Union[str, int, float]) -> float:
    """Parse a duration into seconds. Bare numbers are seconds."""
    return _parse(value, TIME_UNITS, "s", "time")
