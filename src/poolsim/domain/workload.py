"""Workload domain model.

Pure Python dataclasses describing a scripted sequence of pool
operations, loaded from YAML by the config adapter. No external
dependencies.
"""

from __future__ import annotations

from dataclasses import dataclass

OP_ALLOC = "alloc"
OP_FREE = "free"
OP_REALLOC = "realloc"
OP_WRITE = "write"
OP_REPORT = "report"

REPORT_ACTIVE = "active"
REPORT_AVAILABLE = "available"
REPORT_BOTH = "both"

# Sentinel meaning "no expectation recorded for this step"
UNSET = object()


@dataclass(frozen=True)
class WorkloadStep:
    """One operation in a workload.

    ``target`` is either a label bound by an earlier step or a raw
    integer address. ``expected`` holds the expected outcome (address or
    None for alloc/realloc, bool for free) or UNSET.
    """

    op: str
    size: int | None = None
    label: str | None = None
    target: str | int | None = None
    data: str | None = None
    kind: str = REPORT_BOTH
    expected: object = UNSET

    @property
    def has_expectation(self) -> bool:
        return self.expected is not UNSET


@dataclass(frozen=True)
class WorkloadSpec:
    """A named sequence of steps against a pool of fixed capacity."""

    id: str
    title: str
    capacity: int
    steps: tuple[WorkloadStep, ...]
    description: str = ""
