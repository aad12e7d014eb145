"""Domain layer for the memory pool simulator.

This package contains pure business logic with zero external dependencies.
All domain code uses only Python stdlib (bisect, dataclasses, threading)
and internal poolsim.domain imports.

Modules:
    entities: Domain entities (AllocationRecord)
    value_objects: Immutable value objects (Gap, PoolStats) and report formatting
    services: Domain services (MemoryPool)
    workload: Scripted operation sequences (WorkloadSpec, WorkloadStep)
    errors: Domain exception hierarchy
"""
