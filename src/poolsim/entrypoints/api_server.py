"""FastAPI application factory and server setup.

This module provides the main FastAPI application with dependency injection,
error handlers, and route registration.
"""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from prometheus_client import generate_latest

from poolsim import __version__
from poolsim.adapters.config.logging import configure_logging
from poolsim.adapters.config.settings import get_settings
from poolsim.adapters.inbound.metrics import observe_pool, registry
from poolsim.adapters.inbound.pool_api import AppState
from poolsim.adapters.inbound.pool_api import router as pool_router
from poolsim.domain.errors import (
    AllocationNotFoundError,
    InvalidAddressError,
    InvalidSizeError,
    PoolBusyError,
    PoolConfigurationError,
    PoolDestroyedError,
    PoolExhaustedError,
    PoolSimError,
)
from poolsim.domain.services import MemoryPool

# Health check thresholds
POOL_UTILIZATION_THRESHOLD = 0.9  # 90% utilization triggers degraded state


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager (startup/shutdown).

    Creates the pool from settings on startup. On shutdown, logs any
    allocations still outstanding (the pool cannot be destroyed while
    they exist).

    Args:
        app: FastAPI application instance

    Yields:
        Control to application during its lifetime
    """
    logger = structlog.get_logger(__name__)
    settings = get_settings()

    pool = MemoryPool(settings.pool.capacity)
    app.state.poolsim = AppState(pool=pool)
    logger.info("pool_initialized", capacity=pool.capacity)

    yield

    current = app.state.poolsim.pool
    if current is not None and not current.destroyed:
        outstanding = current.allocation_count()
        if outstanding:
            logger.warning("pool_outstanding_at_shutdown", allocations=outstanding)
        else:
            current.destroy()
    logger.info("server_shutdown_complete")


def _register_health_endpoints(app: FastAPI):
    """Register health check endpoints.

    Args:
        app: FastAPI application
    """
    @app.get("/health")
    async def health():
        """Basic health check - alias for /health/live."""
        return {"status": "ok"}

    @app.get("/health/live")
    async def health_live():
        """Liveness probe - process is alive."""
        return {"status": "alive"}

    @app.get("/health/ready")
    async def health_ready(response: Response):
        """Readiness probe - a live pool with headroom exists."""
        state = getattr(app.state, "poolsim", None)
        pool = state.pool if state is not None else None

        if pool is None or pool.destroyed:
            response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
            return {"status": "not_ready", "reason": "pool_not_initialized"}

        stats = pool.stats()
        observe_pool(stats)
        utilization = stats.utilization

        if utilization > POOL_UTILIZATION_THRESHOLD:
            response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
            return {
                "status": "not_ready",
                "reason": "pool_near_exhaustion",
                "pool_utilization": round(utilization * 100, 1),
            }

        return {"status": "ready", "pool_utilization": round(utilization * 100, 1)}


def _register_metrics_endpoint(app: FastAPI):
    """Register Prometheus metrics endpoint.

    Args:
        app: FastAPI application
    """
    @app.get("/metrics")
    async def metrics():
        """Prometheus metrics endpoint."""
        return Response(
            content=generate_latest(registry),
            media_type="text/plain; version=0.0.4"
        )


def _format_error_response(status_code: int, error_type: str, message: str) -> JSONResponse:
    """Format error response as ``{"error": {"type": ..., "message": ...}}``."""
    content = {
        "error": {
            "type": error_type,
            "message": message,
        }
    }
    return JSONResponse(status_code=status_code, content=content)


def _get_pool_error_details(exc: PoolSimError) -> tuple[int, str]:
    """Get HTTP status code and error type for PoolSimError subclasses.

    Args:
        exc: The PoolSimError instance

    Returns:
        Tuple of (status_code, error_type)
    """
    if isinstance(exc, PoolExhaustedError):
        return status.HTTP_409_CONFLICT, "insufficient_space_error"
    elif isinstance(exc, AllocationNotFoundError):
        return status.HTTP_404_NOT_FOUND, "not_found_error"
    elif isinstance(exc, PoolBusyError):
        return status.HTTP_409_CONFLICT, "pool_busy_error"
    elif isinstance(exc, PoolDestroyedError):
        return status.HTTP_503_SERVICE_UNAVAILABLE, "pool_destroyed_error"
    elif isinstance(exc, (InvalidSizeError, InvalidAddressError, PoolConfigurationError)):
        return status.HTTP_400_BAD_REQUEST, "invalid_request_error"
    else:
        return status.HTTP_500_INTERNAL_SERVER_ERROR, "api_error"


def _register_error_handlers(app: FastAPI):
    """Register error handlers for exceptions.

    Args:
        app: FastAPI application
    """
    logger = structlog.get_logger(__name__)

    @app.exception_handler(PoolSimError)
    async def pool_error_handler(request: Request, exc: PoolSimError):
        """Handle domain errors with appropriate status codes."""
        status_code, error_type = _get_pool_error_details(exc)
        logger.info(
            "domain_error",
            error_type=exc.__class__.__name__,
            http_status=status_code,
            message=str(exc),
            path=request.url.path,
        )
        return _format_error_response(status_code, error_type, str(exc))

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        """Handle request validation errors."""
        logger.warning("validation_error", error=str(exc))
        error_messages = []
        for error in exc.errors():
            loc = ".".join(str(part) for part in error["loc"])
            error_messages.append(f"{loc}: {error['msg']}")
        message = "; ".join(error_messages)
        return _format_error_response(
            status.HTTP_422_UNPROCESSABLE_ENTITY,
            "invalid_request_error",
            message,
        )


def _register_routes(app: FastAPI):
    """Register API route handlers.

    Args:
        app: FastAPI application
    """
    logger = structlog.get_logger(__name__)

    @app.get("/", status_code=status.HTTP_200_OK)
    async def root():
        """Root endpoint with API info."""
        return {
            "name": "poolsim",
            "version": __version__,
            "endpoints": {
                "health": "/health",
                "metrics": "/metrics",
                "pool": "/v1/pool",
            },
        }

    app.include_router(pool_router)
    logger.info("routes_registered", router="pool", path="/v1/pool")


def create_app() -> FastAPI:
    """Create and configure FastAPI application.

    Returns:
        Configured FastAPI application instance.
    """
    settings = get_settings()

    configure_logging(log_level=settings.server.log_level, json_output=settings.server.json_logs)

    logger = structlog.get_logger(__name__)
    logger.info("creating_fastapi_app", version=__version__)

    app = FastAPI(
        title="poolsim",
        description="First-fit memory pool simulator",
        version=__version__,
        lifespan=lifespan,
    )

    _register_health_endpoints(app)
    _register_metrics_endpoint(app)
    _register_error_handlers(app)
    _register_routes(app)

    logger.info("fastapi_app_created", log_level=settings.server.log_level)
    return app
