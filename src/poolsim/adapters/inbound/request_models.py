"""Pydantic request and response models for the pool API adapter."""

from pydantic import BaseModel, Field

from poolsim.domain.entities import AllocationRecord
from poolsim.domain.value_objects import Gap, PoolStats


class CreatePoolRequest(BaseModel):
    """Request to create a fresh pool (POST /v1/pool)."""

    capacity: int = Field(..., ge=1, le=1 << 30, description="Pool buffer size in bytes")


class AllocateRequest(BaseModel):
    """Request to allocate bytes (POST /v1/pool/allocations)."""

    size: int = Field(..., ge=1, description="Number of bytes to allocate")


class ResizeRequest(BaseModel):
    """Request to resize an allocation (PATCH /v1/pool/allocations/{address})."""

    size: int = Field(..., ge=1, description="New size in bytes")


class AllocationResponse(BaseModel):
    """A live allocation."""

    address: int
    size: int

    @classmethod
    def from_record(cls, record: AllocationRecord) -> "AllocationResponse":
        return cls(address=record.address, size=record.size)


class ResizeResponse(AllocationResponse):
    """Result of a resize: ``moved`` is True when the address changed."""

    moved: bool


class GapResponse(BaseModel):
    """A free gap."""

    start: int
    size: int

    @classmethod
    def from_gap(cls, gap: Gap) -> "GapResponse":
        return cls(start=gap.start, size=gap.size)


class PoolStatusResponse(BaseModel):
    """Pool occupancy summary (GET /v1/pool)."""

    capacity: int
    used_bytes: int
    available_bytes: int
    allocation_count: int
    gap_count: int
    largest_gap: int
    utilization: float = Field(..., description="Fraction of capacity allocated")
    fragmentation: float = Field(..., description="1 - largest_gap / available_bytes")

    @classmethod
    def from_stats(cls, stats: PoolStats) -> "PoolStatusResponse":
        return cls(
            capacity=stats.capacity,
            used_bytes=stats.used_bytes,
            available_bytes=stats.available_bytes,
            allocation_count=stats.allocation_count,
            gap_count=stats.gap_count,
            largest_gap=stats.largest_gap,
            utilization=round(stats.utilization, 4),
            fragmentation=round(stats.fragmentation, 4),
        )
