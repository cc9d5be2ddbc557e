"""FastAPI application factory"""

from fastapi import FastAPI
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from starlette.responses import Response

from retirement_engine.api.middleware import MetricsMiddleware, RequestIDMiddleware
from retirement_engine.api.v1 import health_score, projection, stress_test
from retirement_engine.config import settings
from retirement_engine.infrastructure.observability.logging import setup_logging

# Setup structured logging
setup_logging(settings.log_level)


def create_app() -> FastAPI:
    """Create and configure FastAPI application"""
    app = FastAPI(
        title="Retirement Engine",
        description="Retirement projection, financial health scoring and stress testing",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # Add middleware (order matters: last added = first executed)
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)

    # Health check endpoint
    @app.get("/health")
    def health_check():
        return {"status": "ok", "service": settings.service_name}

    # Prometheus metrics endpoint
    @app.get("/metrics")
    def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    # Register API routers
    app.include_router(projection.router, prefix="/v1", tags=["projections"])
    app.include_router(health_score.router, prefix="/v1", tags=["health-scores"])
    app.include_router(stress_test.router, prefix="/v1", tags=["stress-tests"])

    return app


app = create_app()
