"""Domain value objects (immutable data structures).

Value objects are immutable data structures that represent concepts
from the domain model. They have no identity - two instances with
the same values are considered equal.

This module also owns the canonical text format of the pool reports.
The report text is the simulator's only observable output and downstream
tooling may parse it, so the format is defined exactly once here.
"""

from collections.abc import Iterable
from dataclasses import dataclass

ACTIVE_LABEL = "active"
AVAILABLE_LABEL = "available"
NONE_MARKER = "none"


@dataclass(frozen=True)
class Gap:
    """A maximal free sub-range ``[start, end)`` of the pool buffer.

    Gaps sit before the first record, between two records, or after the
    last record (the whole buffer when the pool is empty).
    """

    start: int
    end: int

    @property
    def size(self) -> int:
        return self.end - self.start

    def fits(self, size: int) -> bool:
        """Check whether a request of ``size`` bytes fits in this gap."""
        return self.size >= size


@dataclass(frozen=True)
class PoolStats:
    """Point-in-time summary of pool occupancy.

    Invariant: used_bytes + available_bytes == capacity.

    Attributes:
        capacity: Total pool size in bytes.
        used_bytes: Bytes covered by allocation records.
        available_bytes: Bytes not covered by any record.
        allocation_count: Number of live allocation records.
        gap_count: Number of free gaps with positive size.
        largest_gap: Size of the largest free gap (0 if the pool is full).
    """

    capacity: int
    used_bytes: int
    available_bytes: int
    allocation_count: int
    gap_count: int
    largest_gap: int

    @property
    def utilization(self) -> float:
        """Fraction of the pool currently allocated (0.0 to 1.0)."""
        return self.used_bytes / self.capacity

    @property
    def fragmentation(self) -> float:
        """External fragmentation: 1 - largest_gap / available_bytes.

        Returns 0.0 when nothing is free.
        """
        if self.available_bytes == 0:
            return 0.0
        return 1.0 - self.largest_gap / self.available_bytes


def format_ranges(label: str, ranges: Iterable[tuple[int, int]]) -> str:
    """Render ``(start, size)`` pairs in the canonical report format.

    Args:
        label: Report label ("active" or "available").
        ranges: ``(start, size)`` pairs in ascending start order.

    Returns:
        ``"<label>: <start> [<size>], <start> [<size>]\\n"``, or
        ``"<label>: none\\n"`` when there are no ranges.

    Example:
        >>> format_ranges("active", [(0, 30), (30, 40)])
        'active: 0 [30], 30 [40]\\n'
        >>> format_ranges("available", [])
        'available: none\\n'
    """
    body = ", ".join(f"{start} [{size}]" for start, size in ranges)
    return f"{label}: {body or NONE_MARKER}\n"
