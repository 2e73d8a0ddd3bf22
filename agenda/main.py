"""
FastAPI application for the appointment scheduling core

Availability, booking and appointment status changes; everything else in the
product calls into these endpoints.
"""
import logging
from collections import defaultdict
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.routing import APIRoute

from agenda.config.settings import get_settings
from agenda.core.errors import register_error_handlers
from agenda.core.middleware import correlation_id_middleware, request_logging_middleware
from agenda.core.monitoring import health_router
from agenda.api.v1.router import api_v1_router
from agenda.utils.my_logging import setup_logging

settings = get_settings()
logger = logging.getLogger(__name__)


def _log_routes(app: FastAPI):
    routes_by_tag = defaultdict(list)
    for route in app.routes:
        if isinstance(route, APIRoute):
            tag = route.tags[-1] if route.tags else "other"
            for method in sorted(route.methods):
                routes_by_tag[tag].append((method, route.path))

    total = 0
    for tag, routes in sorted(routes_by_tag.items()):
        logger.info(f"[{tag.upper()}]")
        for method, path in sorted(routes, key=lambda r: (r[1], r[0])):
            logger.info(f"  {method:8} {path}")
            total += 1
    logger.info(f"Total routes registered: {total}")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events"""
    # Startup
    setup_logging()
    logger.info(f"{settings.APP_NAME} starting up")
    if settings.DEBUG:
        _log_routes(app)

    yield

    # Shutdown
    logger.info(f"{settings.APP_NAME} shutting down")


def create_app() -> FastAPI:
    """Create and configure FastAPI application"""

    app = FastAPI(
        title="Agenda Scheduling API",
        description="Availability, atomic booking and appointment lifecycle for service businesses",
        version="0.1.0",
        lifespan=lifespan,
        docs_url="/docs" if settings.DEBUG else None,
        redoc_url="/redoc" if settings.DEBUG else None,
    )

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE"],
        allow_headers=["*"],
    )

    # Add custom middleware
    app.middleware("http")(request_logging_middleware)
    app.middleware("http")(correlation_id_middleware)

    register_error_handlers(app)

    # Include routers
    app.include_router(health_router, prefix="/health", tags=["monitoring"])
    app.include_router(api_v1_router, prefix="/api/v1", tags=["api"])

    @app.get("/")
    async def root():
        return {
            "service": settings.APP_NAME,
            "version": "0.1.0",
            "status": "running",
            "endpoints": {
                "api": "/api/v1/",
                "health": "/health",
                "docs": "/docs" if settings.DEBUG else "disabled"
            }
        }

    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run(
        "agenda.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level="info"
    )
