"""Domain services for the memory pool simulator.

MemoryPool is the single stateful service of the domain: it owns a
fixed-capacity byte buffer and the ordered collection of allocation
records laid over it. Placement, release, resize and introspection all
operate on that collection.
"""

import bisect
import threading
from collections.abc import Iterator
from dataclasses import replace
from operator import attrgetter

from poolsim.domain.entities import AllocationRecord
from poolsim.domain.errors import (
    InvalidAddressError,
    InvalidSizeError,
    PoolConfigurationError,
    PoolDestroyedError,
    PoolInvariantError,
)
from poolsim.domain.value_objects import (
    ACTIVE_LABEL,
    AVAILABLE_LABEL,
    Gap,
    PoolStats,
    format_ranges,
)

_start_key = attrgetter("start")


class MemoryPool:
    """Fixed-capacity memory pool with first-fit placement.

    The pool keeps its allocation records in a list sorted by ``start``.
    No two records overlap and none extends past ``capacity``. Every public
    operation leaves that invariant intact.

    Error tiers:
    - Contract violations (non-positive capacity or size, use after
      destroy, buffer access through a bad handle) raise PoolSimError
      subclasses.
    - Operational failures (no gap large enough, unknown address, pool
      still in use at destroy time) are reported through the return value
      (None / False) and leave the pool byte-for-byte unchanged.

    Thread safety:
    - THREAD-SAFE: All operations protected by internal lock.
    - Lock is acquired for the duration of each operation, including
      resize's search-copy-free sequence.

    Attributes:
        capacity: Total size of the buffer in bytes. Never changes.

    Example:
        >>> pool = MemoryPool(100)
        >>> pool.allocate(30)
        0
        >>> pool.allocate(40)
        30
        >>> pool.free(0)
        True
        >>> pool.allocate(20)
        0
        >>> pool.report_available()
        'available: 20 [10], 70 [30]\\n'
    """

    def __init__(self, capacity: int) -> None:
        """Initialize the pool with a zeroed buffer and no allocations.

        Args:
            capacity: Size of the buffer in bytes.

        Raises:
            PoolConfigurationError: If capacity is not a positive integer.
        """
        if not isinstance(capacity, int) or capacity <= 0:
            raise PoolConfigurationError(f"capacity must be > 0, got {capacity!r}")

        self.capacity = capacity

        self._lock = threading.Lock()

        # None once the pool has been destroyed
        self._buffer: bytearray | None = bytearray(capacity)

        # Sorted by start, non-overlapping
        self._records: list[AllocationRecord] = []

    def __repr__(self) -> str:
        state = "destroyed" if self._buffer is None else f"{len(self._records)} allocations"
        return f"MemoryPool(capacity={self.capacity}, {state})"

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def destroyed(self) -> bool:
        """True once destroy() has succeeded."""
        return self._buffer is None

    def destroy(self) -> bool:
        """Release the buffer if no allocations are outstanding.

        Outstanding allocations block destruction: the caller must free
        everything first. A refused destroy leaves the pool fully usable.

        Returns:
            True if the pool was destroyed, False if allocations remain.

        Raises:
            PoolDestroyedError: If the pool was already destroyed.
        """
        with self._lock:
            self._ensure_live()
            if self._records:
                return False
            self._buffer = None
            return True

    # ------------------------------------------------------------------
    # Allocation
    # ------------------------------------------------------------------

    def allocate(self, size: int) -> int | None:
        """Allocate ``size`` contiguous bytes using first-fit placement.

        Gaps are scanned in ascending offset order (leading gap, gaps
        between records, trailing gap) and the first one large enough is
        used. This is deliberately greedy: it does not look for the
        tightest fit.

        Args:
            size: Number of bytes to allocate.

        Returns:
            Address of the new allocation, or None if no gap fits.

        Raises:
            InvalidSizeError: If size is not positive.
            PoolDestroyedError: If the pool was destroyed.

        Example:
            >>> pool = MemoryPool(100)
            >>> pool.allocate(100)
            0
            >>> pool.allocate(1) is None
            True
        """
        with self._lock:
            self._ensure_live()
            self._validate_size(size, "size")
            return self._allocate(size)

    def free(self, address: int | None) -> bool:
        """Release the allocation that starts exactly at ``address``.

        An address strictly inside an allocation does not match: only
        handles returned by allocate/resize are valid.

        Args:
            address: Handle returned by allocate or resize (None allowed).

        Returns:
            True if an allocation was released, False otherwise.

        Raises:
            PoolDestroyedError: If the pool was destroyed.
        """
        with self._lock:
            self._ensure_live()
            if address is None or not self._records:
                return False
            return self._release(address)

    def resize(self, address: int | None, new_size: int) -> int | None:
        """Change the size of an allocation, moving it if necessary.

        In-place cases (same address returned, only ``end`` changes):
        1. new_size <= old size (shrink).
        2. A following allocation exists and the gap up to it is enough.
        3. This is the last allocation and the tail space is enough.

        Otherwise a first-fit search for ``new_size`` runs while the old
        allocation still occupies its range, so that range can never be
        chosen as its own replacement. On success the first ``old size``
        bytes are copied to the new range and the old allocation is freed.

        Args:
            address: Handle returned by allocate or resize.
            new_size: Requested size in bytes.

        Returns:
            The (possibly new) address, or None if the address is unknown
            or no space is available. On None the pool is unchanged.

        Raises:
            InvalidSizeError: If new_size is not positive.
            PoolDestroyedError: If the pool was destroyed.
        """
        with self._lock:
            self._ensure_live()
            self._validate_size(new_size, "new_size")
            if address is None:
                return None

            index = self._find(address)
            if index is None:
                return None

            record = self._records[index]
            old_size = record.size
            if index + 1 < len(self._records):
                limit = self._records[index + 1].start
            else:
                limit = self.capacity

            if new_size <= old_size or new_size <= limit - record.start:
                record.end = record.start + new_size
                return record.start

            new_address = self._allocate(new_size)
            if new_address is None:
                return None

            buffer = self._live_buffer()
            buffer[new_address : new_address + old_size] = buffer[
                record.start : record.start + old_size
            ]
            self._release(record.start)
            return new_address

    # ------------------------------------------------------------------
    # Buffer access
    # ------------------------------------------------------------------

    def read(self, address: int) -> bytes:
        """Return a copy of the bytes covered by an allocation.

        Raises:
            InvalidAddressError: If no allocation starts at address.
            PoolDestroyedError: If the pool was destroyed.
        """
        with self._lock:
            self._ensure_live()
            record = self._record_at(address)
            return bytes(self._live_buffer()[record.start : record.end])

    def write(self, address: int, data: bytes, offset: int = 0) -> None:
        """Copy ``data`` into an allocation starting at ``offset``.

        Raises:
            InvalidAddressError: If no allocation starts at address, or the
                write would cross the allocation's bounds.
            PoolDestroyedError: If the pool was destroyed.
        """
        with self._lock:
            self._ensure_live()
            record = self._record_at(address)
            if offset < 0 or offset + len(data) > record.size:
                raise InvalidAddressError(
                    f"write of {len(data)} bytes at offset {offset} exceeds "
                    f"allocation {record.start} [{record.size}]"
                )
            begin = record.start + offset
            self._live_buffer()[begin : begin + len(data)] = data

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def report_active(self) -> str:
        """Render occupied ranges as ``active: <start> [<size>], ...``."""
        with self._lock:
            self._ensure_live()
            return format_ranges(ACTIVE_LABEL, ((r.start, r.size) for r in self._records))

    def report_available(self) -> str:
        """Render free gaps as ``available: <start> [<size>], ...``."""
        with self._lock:
            self._ensure_live()
            return format_ranges(AVAILABLE_LABEL, ((g.start, g.size) for g in self._free_gaps()))

    def records(self) -> tuple[AllocationRecord, ...]:
        """Snapshot of the allocation records in ascending start order.

        The returned records are copies; mutating them does not affect the pool.
        """
        with self._lock:
            self._ensure_live()
            return tuple(replace(record) for record in self._records)

    def gaps(self) -> tuple[Gap, ...]:
        """Free gaps with positive size in ascending start order."""
        with self._lock:
            self._ensure_live()
            return tuple(self._free_gaps())

    def size_of(self, address: int) -> int | None:
        """Size of the allocation starting at address, or None if unknown."""
        with self._lock:
            self._ensure_live()
            index = self._find(address)
            return None if index is None else self._records[index].size

    def allocation_count(self) -> int:
        with self._lock:
            self._ensure_live()
            return len(self._records)

    def used_bytes(self) -> int:
        with self._lock:
            self._ensure_live()
            return sum(record.size for record in self._records)

    def available_bytes(self) -> int:
        with self._lock:
            self._ensure_live()
            return self.capacity - sum(record.size for record in self._records)

    def stats(self) -> PoolStats:
        """Summarize occupancy.

        Note:
            Invariant: stats.used_bytes + stats.available_bytes == capacity
        """
        with self._lock:
            self._ensure_live()
            used = sum(record.size for record in self._records)
            free_gaps = list(self._free_gaps())
            return PoolStats(
                capacity=self.capacity,
                used_bytes=used,
                available_bytes=self.capacity - used,
                allocation_count=len(self._records),
                gap_count=len(free_gaps),
                largest_gap=max((gap.size for gap in free_gaps), default=0),
            )

    def check_invariants(self) -> None:
        """Verify the record collection is sorted, disjoint and in bounds.

        Raises:
            PoolInvariantError: On the first violated condition.
            PoolDestroyedError: If the pool was destroyed.
        """
        with self._lock:
            self._ensure_live()
            cursor = 0
            for record in self._records:
                if record.end <= record.start:
                    raise PoolInvariantError(f"empty record {record.start} [{record.size}]")
                if record.start < cursor:
                    raise PoolInvariantError(
                        f"record at {record.start} overlaps or precedes offset {cursor}"
                    )
                cursor = record.end
            if cursor > self.capacity:
                raise PoolInvariantError(
                    f"last record ends at {cursor}, past capacity {self.capacity}"
                )

    # ------------------------------------------------------------------
    # Internals (caller holds the lock)
    # ------------------------------------------------------------------

    def _ensure_live(self) -> None:
        if self._buffer is None:
            raise PoolDestroyedError("pool has been destroyed")

    def _live_buffer(self) -> bytearray:
        self._ensure_live()
        assert self._buffer is not None
        return self._buffer

    @staticmethod
    def _validate_size(size: int, name: str) -> None:
        if not isinstance(size, int) or size <= 0:
            raise InvalidSizeError(f"{name} must be > 0, got {size!r}")

    def _iter_gaps(self) -> Iterator[tuple[int, Gap]]:
        """Yield (insert index, gap) pairs in ascending offset order.

        Zero-size gaps between touching records are included.
        """
        cursor = 0
        for index, record in enumerate(self._records):
            yield index, Gap(start=cursor, end=record.start)
            cursor = record.end
        yield len(self._records), Gap(start=cursor, end=self.capacity)

    def _free_gaps(self) -> Iterator[Gap]:
        return (gap for _, gap in self._iter_gaps() if gap.size > 0)

    def _allocate(self, size: int) -> int | None:
        for index, gap in self._iter_gaps():
            if gap.fits(size):
                self._records.insert(index, AllocationRecord(start=gap.start, end=gap.start + size))
                return gap.start
        return None

    def _find(self, address: int) -> int | None:
        if not isinstance(address, int):
            return None
        index = bisect.bisect_left(self._records, address, key=_start_key)
        if index < len(self._records) and self._records[index].start == address:
            return index
        return None

    def _release(self, address: int) -> bool:
        index = self._find(address)
        if index is None:
            return False
        del self._records[index]
        return True

    def _record_at(self, address: int) -> AllocationRecord:
        index = self._find(address)
        if index is None:
            raise InvalidAddressError(f"no allocation starts at address {address}")
        return self._records[index]
