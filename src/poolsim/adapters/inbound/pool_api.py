"""Pool API adapter (/v1/pool/*).

Exposes one MemoryPool per server process over HTTP:
- Create, inspect and destroy the pool
- Allocate, resize and free allocations
- Canonical text reports of active ranges and free gaps

The pool's return-value failures (None / False) are translated into
domain errors here; the application's error handlers map those to HTTP
status codes.
"""

import threading
from typing import Any

import structlog
from fastapi import APIRouter, HTTPException, Request, Response, status
from fastapi.responses import PlainTextResponse

from poolsim.adapters.inbound.metrics import observe_pool, record_operation
from poolsim.adapters.inbound.request_models import (
    AllocateRequest,
    AllocationResponse,
    CreatePoolRequest,
    GapResponse,
    PoolStatusResponse,
    ResizeRequest,
    ResizeResponse,
)
from poolsim.domain.errors import (
    AllocationNotFoundError,
    PoolBusyError,
    PoolDestroyedError,
    PoolExhaustedError,
)
from poolsim.domain.services import MemoryPool

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/v1/pool", tags=["pool"])


class AppState:
    """Application state container for dependency injection."""

    def __init__(self, pool: MemoryPool | None = None) -> None:
        self.pool = pool
        # Guards replacing the pool itself (create / destroy)
        self.lifecycle_lock = threading.Lock()


def get_pool_state(request: Request) -> AppState:
    """Safely get pool state from request, raising clear error if not initialized.

    Raises:
        HTTPException: 503 if the application state is not initialized
    """
    state = getattr(request.app.state, "poolsim", None)
    if state is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Server is still initializing. Please retry in a few seconds.",
        )
    return state


def get_live_pool(request: Request) -> MemoryPool:
    """Return the live pool, or raise 503 if none exists."""
    pool = get_pool_state(request).pool
    if pool is None or pool.destroyed:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="No live pool. Create one with POST /v1/pool.",
        )
    return pool


def _refresh_gauges(pool: MemoryPool) -> None:
    # The pool may be destroyed by a concurrent DELETE /v1/pool once it is empty
    try:
        stats = pool.stats()
    except PoolDestroyedError:
        logger.debug("gauge_refresh_skipped", reason="pool_destroyed")
        return
    observe_pool(stats)


# --- Pool lifecycle ---


@router.get("", response_model=PoolStatusResponse)
def get_pool(request: Request) -> PoolStatusResponse:
    """Pool occupancy summary (GET /v1/pool)."""
    stats = get_live_pool(request).stats()
    observe_pool(stats)
    return PoolStatusResponse.from_stats(stats)


@router.post("", status_code=status.HTTP_201_CREATED, response_model=PoolStatusResponse)
def create_pool(body: CreatePoolRequest, request: Request) -> PoolStatusResponse:
    """Create a fresh pool (POST /v1/pool).

    Raises:
        PoolBusyError: If a live pool already exists.
    """
    state = get_pool_state(request)
    with state.lifecycle_lock:
        if state.pool is not None and not state.pool.destroyed:
            record_operation("create", ok=False)
            raise PoolBusyError(
                f"a pool of capacity {state.pool.capacity} is already live; destroy it first"
            )
        state.pool = MemoryPool(body.capacity)
        pool = state.pool

    record_operation("create", ok=True)
    logger.info("pool_created", capacity=body.capacity)
    stats = pool.stats()
    observe_pool(stats)
    return PoolStatusResponse.from_stats(stats)


@router.delete("", status_code=status.HTTP_204_NO_CONTENT)
def destroy_pool(request: Request) -> Response:
    """Destroy the pool (DELETE /v1/pool).

    Raises:
        PoolBusyError: If allocations are still outstanding.
    """
    state = get_pool_state(request)
    with state.lifecycle_lock:
        pool = get_live_pool(request)
        if not pool.destroy():
            record_operation("destroy", ok=False)
            raise PoolBusyError(
                f"pool still holds {pool.allocation_count()} allocations; free them first"
            )
        state.pool = None

    record_operation("destroy", ok=True)
    logger.info("pool_destroyed", capacity=pool.capacity)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# --- Allocations ---


@router.get("/allocations", response_model=list[AllocationResponse])
def list_allocations(request: Request) -> list[AllocationResponse]:
    """Live allocations in ascending address order."""
    return [AllocationResponse.from_record(r) for r in get_live_pool(request).records()]


@router.post(
    "/allocations",
    status_code=status.HTTP_201_CREATED,
    response_model=AllocationResponse,
)
def allocate(body: AllocateRequest, request: Request) -> AllocationResponse:
    """Allocate with first-fit placement (POST /v1/pool/allocations).

    Raises:
        PoolExhaustedError: If no free gap is large enough.
    """
    pool = get_live_pool(request)
    address = pool.allocate(body.size)
    record_operation("allocate", ok=address is not None)
    if address is None:
        raise PoolExhaustedError(
            f"no free gap of {body.size} bytes (available: {pool.available_bytes()})"
        )

    logger.info("allocated", address=address, size=body.size)
    _refresh_gauges(pool)
    return AllocationResponse(address=address, size=body.size)


@router.patch("/allocations/{address}", response_model=ResizeResponse)
def resize(address: int, body: ResizeRequest, request: Request) -> ResizeResponse:
    """Resize an allocation, moving it if needed (PATCH /v1/pool/allocations/{address}).

    Raises:
        AllocationNotFoundError: If no allocation starts at address.
        PoolExhaustedError: If the allocation must move and no gap fits.
    """
    pool = get_live_pool(request)
    new_address = pool.resize(address, body.size)
    record_operation("resize", ok=new_address is not None)
    if new_address is None:
        if pool.size_of(address) is None:
            raise AllocationNotFoundError(f"no allocation starts at address {address}")
        raise PoolExhaustedError(
            f"cannot grow allocation {address} to {body.size} bytes: no free gap large enough"
        )

    moved = new_address != address
    logger.info("resized", address=address, new_address=new_address, size=body.size, moved=moved)
    _refresh_gauges(pool)
    return ResizeResponse(address=new_address, size=body.size, moved=moved)


@router.delete("/allocations/{address}", status_code=status.HTTP_204_NO_CONTENT)
def free(address: int, request: Request) -> Response:
    """Free an allocation (DELETE /v1/pool/allocations/{address}).

    Raises:
        AllocationNotFoundError: If no allocation starts at address.
    """
    pool = get_live_pool(request)
    freed = pool.free(address)
    record_operation("free", ok=freed)
    if not freed:
        raise AllocationNotFoundError(f"no allocation starts at address {address}")

    logger.info("freed", address=address)
    _refresh_gauges(pool)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# --- Introspection ---


@router.get("/gaps", response_model=list[GapResponse])
def list_gaps(request: Request) -> list[GapResponse]:
    """Free gaps with positive size in ascending offset order."""
    return [GapResponse.from_gap(gap) for gap in get_live_pool(request).gaps()]


@router.get("/report/active", response_class=PlainTextResponse)
def report_active(request: Request) -> Any:
    """Canonical active report as text/plain."""
    return get_live_pool(request).report_active()


@router.get("/report/available", response_class=PlainTextResponse)
def report_available(request: Request) -> Any:
    """Canonical available report as text/plain."""
    return get_live_pool(request).report_available()
