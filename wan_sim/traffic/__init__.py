"""Traffic generation for network simulation.

This module provides functions that produce packet intervals and sizes for the
simulator's packet generator.
"""
