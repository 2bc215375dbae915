"""Shared pytest configuration for pubcal_lite tests."""

from typing import Any


def pytest_configure(config: Any) -> None:
    """Register the markers used across the suite."""
    config.addinivalue_line("markers", "unit: Fast unit tests")
