"""Pytest configuration and shared fixtures.

This module defines:
- Test markers (unit, integration)
- Shared pool fixtures built from the documented first-fit scenario
"""

from pathlib import Path

import pytest

from poolsim.domain.services import MemoryPool

# Capacity used by the reference scenario (allocate 30, allocate 40, free 0, ...)
SCENARIO_CAPACITY = 100

WORKLOADS_DIR = Path(__file__).resolve().parents[1] / "workloads"


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers."""
    config.addinivalue_line(
        "markers",
        "unit: Fast unit tests of a single layer",
    )
    config.addinivalue_line(
        "markers",
        "integration: Tests through the HTTP application or CLI",
    )


@pytest.fixture
def pool() -> MemoryPool:
    """Empty pool with the scenario capacity."""
    return MemoryPool(SCENARIO_CAPACITY)


@pytest.fixture
def scenario_pool() -> MemoryPool:
    """Pool after: allocate(30) -> 0, allocate(40) -> 30, free(0), allocate(20) -> 0.

    Active: 0 [20], 30 [40]. Available: 20 [10], 70 [30].
    """
    pool = MemoryPool(SCENARIO_CAPACITY)
    assert pool.allocate(30) == 0
    assert pool.allocate(40) == 30
    assert pool.free(0) is True
    assert pool.allocate(20) == 0
    return pool


@pytest.fixture
def workloads_dir() -> Path:
    """Directory holding the bundled workload YAML files."""
    return WORKLOADS_DIR
