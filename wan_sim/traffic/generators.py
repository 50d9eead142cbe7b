"""Traffic generators for network simulation.

This module provides functions for generating packet intervals and sizes,
including constant and Poisson arrival patterns.
"""

import random
from typing import Callable

import numpy as np


def constant_interval(interval: float) -> Callable[[], float]:
    """Generate packets every ``interval`` seconds."""
    if interval <= 0:
        raise ValueError(f"interval must be positive, got {interval}")
    return lambda: interval


def poisson_traffic(rate: float) -> Callable[[], float]:
    """Generate Poisson traffic.

    Args:
        rate: Average rate of packet generation in packets per second.

    Returns:
        Function that returns exponentially distributed interval between packets.
    """
    if rate <= 0:
        raise ValueError(f"rate must be positive, got {rate}")
    return lambda: np.random.exponential(1 / rate)


def constant_size(size: int) -> Callable[[], int]:
    """Generate constant size packets.

    Args:
        size: Size of packets in bytes.

    Returns:
        Function that returns constant packet size.
    """
    return lambda: size


def variable_size(min_size: int, max_size: int) -> Callable[[], int]:
    """Generate variable size packets.

    Args:
        min_size: Minimum size of packets in bytes.
        max_size: Maximum size of packets in bytes.

    Returns:
        Function that returns random packet size between min_size and max_size.
    """
    if min_size <= 0 or max_size < min_size:
        raise ValueError(f"invalid size range {min_size}..{max_size}")
    return lambda: random.randint(min_size, max_size)
