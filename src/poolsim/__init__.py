"""poolsim: First-fit memory pool simulator.

Models the bookkeeping of a fixed-capacity allocator over a single
in-process byte buffer. Addresses are integer offsets into that buffer.

Architecture: Hexagonal (Ports & Adapters)
- Domain core: MemoryPool and its records (no external dependencies)
- Application: workload runner
- Adapters: configuration, YAML workloads, FastAPI router, metrics
- Entrypoints: CLI and HTTP server
"""

__version__ = "0.1.0"

__all__ = ["__version__"]
