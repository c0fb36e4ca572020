"""
Event mesh backend - serves the eventing resource graph of a cluster.

Features:
- Per-request event mesh built with the caller's bearer token
- Structured logging with correlation IDs
- Prometheus metrics
- Health checks (liveness and readiness)
"""
from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from prometheus_client import make_asgi_app
from .config import get_settings
from .logging import setup_logging, get_logger
from .api.router import router
from .middleware import (
    CorrelationIdMiddleware,
    ErrorHandlerMiddleware,
    MetricsMiddleware,
    get_correlation_id,
)
from .metrics import Metrics
from .health import HealthChecker
from .services.mesh_service import get_mesh_service, set_metrics

VERSION = "0.1.0"

# Initialize configuration
settings = get_settings()

# Setup logging
setup_logging(json_output=settings.LOG_JSON, level=settings.LOG_LEVEL)
logger = get_logger()

# Initialize metrics
metrics = Metrics(service_name="eventmesh", version=VERSION)
set_metrics(metrics)

# Initialize health checker
health_checker = HealthChecker(
    cluster_probe=lambda: get_mesh_service().health_check(),
    service_name="eventmesh",
    version=VERSION,
)

# Create FastAPI app
app = FastAPI(
    title="Event Mesh Backend",
    version=VERSION,
    description="Brokers, channels, sources and event types of a cluster, correlated for catalog tooling",
)

# Last added runs first: correlation ID, then metrics, then error responses
app.add_middleware(ErrorHandlerMiddleware)
app.add_middleware(MetricsMiddleware, metrics=metrics)
app.add_middleware(CorrelationIdMiddleware)


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    """Render HTTP errors in the structured error shape."""
    logger.warning(
        "http.exception",
        status_code=exc.status_code,
        detail=exc.detail,
        path=request.url.path,
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": exc.__class__.__name__,
            "message": exc.detail,
            "status_code": exc.status_code,
            "correlation_id": get_correlation_id(),
            "path": str(request.url.path),
        },
        headers=exc.headers,
    )


# Include API routes
app.include_router(router)

# Mount Prometheus metrics endpoint
metrics_app = make_asgi_app(registry=metrics.registry)
app.mount("/metrics", metrics_app)


@app.get("/health")
async def health():
    """
    Liveness probe - basic health check.

    Returns 200 if service is running.
    """
    logger.debug("health_check_liveness")
    return health_checker.liveness()


@app.get("/health/ready")
def health_ready():
    """
    Readiness probe.

    Returns:
        200: Service is ready to handle traffic
        503: Service is not ready
    """
    logger.debug("health_check_readiness")
    result = health_checker.readiness()
    status_code = 200 if result["status"] == "ready" else 503
    return JSONResponse(result, status_code=status_code)


@app.on_event("startup")
async def startup_event():
    """Log service startup."""
    logger.info(
        "service_starting",
        version=VERSION,
        env=settings.ENV,
        cluster_adapter=settings.CLUSTER_ADAPTER,
        require_auth=settings.REQUIRE_AUTH,
    )


@app.on_event("shutdown")
async def shutdown_event():
    """Log service shutdown."""
    logger.info("service_stopping")
    metrics.app_up.labels(service="eventmesh", version=VERSION).set(0)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "eventmesh.main:app",
        host="0.0.0.0",
        port=settings.SERVICE_PORT,
    )
