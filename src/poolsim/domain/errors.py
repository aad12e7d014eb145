"""Domain exception hierarchy.

All domain-level errors inherit from PoolSimError.
This allows clean exception handling at adapter boundaries.

Exceptions signal contract violations by the caller (bad capacity, bad
size, use of a destroyed pool). Ordinary operational failures such as
insufficient contiguous space or an unknown address are reported by the
pool through return values (None / False), never by raising.
"""


class PoolSimError(Exception):
    """Base exception for all domain errors."""


class PoolConfigurationError(PoolSimError):
    """MemoryPool configuration error (non-positive or non-integer capacity)."""


class InvalidSizeError(PoolSimError):
    """Allocation or resize requested with a non-positive size."""


class PoolDestroyedError(PoolSimError):
    """Operation attempted on a pool that has already been destroyed."""


class InvalidAddressError(PoolSimError):
    """Buffer access through an address that is not a live allocation handle."""


class RecordValidationError(PoolSimError):
    """AllocationRecord validation failed (negative start, empty or inverted range)."""


class PoolInvariantError(PoolSimError):
    """Record collection is unsorted, overlapping, or extends past capacity."""


class WorkloadError(PoolSimError):
    """Workload step could not be executed (unbound label, bad target)."""


# Adapter-facing errors: raised by inbound adapters when translating
# the pool's return values into HTTP responses.


class PoolExhaustedError(PoolSimError):
    """No free gap is large enough for the requested size."""


class AllocationNotFoundError(PoolSimError):
    """No allocation starts at the given address."""


class PoolBusyError(PoolSimError):
    """Pool still holds allocations (destroy refused) or is already live (create refused)."""
