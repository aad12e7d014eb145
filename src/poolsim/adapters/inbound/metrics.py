"""Prometheus metrics for pool monitoring.

Defines core metrics for observability:
- Pool operation counts by outcome
- Pool occupancy and fragmentation
"""

from prometheus_client import CollectorRegistry, Counter, Gauge

from poolsim.domain.value_objects import PoolStats

# Create registry (separate from default to avoid conflicts)
registry = CollectorRegistry()

# Operation metrics
pool_operations_total = Counter(
    "poolsim_operations_total",
    "Total number of pool operations",
    ["op", "result"],  # result: "ok" or "failed"
    registry=registry
)

# Pool metrics
pool_used_bytes = Gauge(
    "poolsim_pool_used_bytes",
    "Bytes covered by live allocations",
    registry=registry
)

pool_utilization_ratio = Gauge(
    "poolsim_pool_utilization_ratio",
    "MemoryPool utilization ratio (0.0 to 1.0)",
    registry=registry
)

pool_fragmentation_ratio = Gauge(
    "poolsim_pool_fragmentation_ratio",
    "External fragmentation: 1 - largest_gap / available_bytes",
    registry=registry
)

pool_allocations_active = Gauge(
    "poolsim_pool_allocations_active",
    "Number of live allocations",
    registry=registry
)


def record_operation(op: str, ok: bool) -> None:
    """Count one pool operation."""
    pool_operations_total.labels(op=op, result="ok" if ok else "failed").inc()


def observe_pool(stats: PoolStats) -> None:
    """Update occupancy gauges from a stats snapshot."""
    pool_used_bytes.set(stats.used_bytes)
    pool_utilization_ratio.set(stats.utilization)
    pool_fragmentation_ratio.set(stats.fragmentation)
    pool_allocations_active.set(stats.allocation_count)
