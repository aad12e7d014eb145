"""Domain entities for the memory pool simulator.

Entities represent objects with identity and lifecycle in the domain.
Unlike value objects, entities are mutable and can change over time.

All entities in this module have NO external dependencies - only Python
stdlib and typing imports.
"""

from dataclasses import dataclass

from poolsim.domain.errors import RecordValidationError


@dataclass
class AllocationRecord:
    """One occupied sub-range ``[start, end)`` of the pool buffer.

    Records are owned exclusively by the MemoryPool's ordered collection.
    Callers never hold a record directly: they hold the derived address,
    an integer equal to ``start``.

    Lifecycle:
    - Created by a successful allocate, or by the move branch of resize.
    - Mutated in place by the in-place branches of resize (``end`` changes).
    - Destroyed by free, or by the move branch of resize after the copy.

    Attributes:
        start: Offset of the first byte of the allocation.
        end: Offset one past the last byte of the allocation.

    Example:
        >>> record = AllocationRecord(start=30, end=70)
        >>> record.size
        40
        >>> record.address
        30
    """

    start: int
    end: int

    @property
    def size(self) -> int:
        """Number of bytes covered by this record."""
        return self.end - self.start

    @property
    def address(self) -> int:
        """Opaque handle returned to callers (equal to ``start``)."""
        return self.start

    def contains(self, offset: int) -> bool:
        """Check whether an offset falls inside ``[start, end)``."""
        return self.start <= offset < self.end

    def __post_init__(self) -> None:
        """Validate record invariants after construction."""
        if self.start < 0:
            raise RecordValidationError(f"start must be >= 0, got {self.start}")
        if self.end <= self.start:
            raise RecordValidationError(
                f"end must be > start, got start={self.start} end={self.end}"
            )
