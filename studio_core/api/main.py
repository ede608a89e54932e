"""FastAPI application factory"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from studio_core.api.middleware import RequestIDMiddleware, MetricsMiddleware
from studio_core.api.v1 import attendance, payments, students
from studio_core.infrastructure.database.session import init_db
from studio_core.infrastructure.observability.logging import setup_logging
from studio_core.config import settings

# Setup structured logging
setup_logging(settings.log_level)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    yield


def create_app() -> FastAPI:
    """Create and configure FastAPI application"""
    app = FastAPI(
        title="Studio Core",
        description="Attendance, makeup credits and monthly billing for a small studio",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
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
    app.include_router(students.router, prefix="/v1", tags=["students"])
    app.include_router(attendance.router, prefix="/v1", tags=["attendance"])
    app.include_router(payments.router, prefix="/v1", tags=["payments"])

    return app


app = create_app()
