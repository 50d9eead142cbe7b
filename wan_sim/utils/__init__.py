"""Utilities for metrics, reports, unit parsing and logging setup."""
