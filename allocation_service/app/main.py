"""
Allocation Service FastAPI Application
======================================

Main application entry point for the Allocation Service microservice.
Assigns a location's stock of a product to named color/shape variants,
merging duplicate variant rows and gating variants on their images.
"""

import time
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api.v1.allocation import router as allocation_router
from .api.v1.health import router as health_router
from .core.database import database_manager
from .core.setting import get_settings
from .middleware.error.error_handler import setup_allocation_error_handling
from .utils.logging import setup_allocation_logging as setup_logging

settings = get_settings()
enable_file_logging = settings.ENVIRONMENT.lower() in ["production", "staging"]

logger = setup_logging(
    "allocation_service",
    log_level=settings.LOG_LEVEL,
    enable_file_logging=enable_file_logging,
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan context manager for startup and shutdown."""
    startup_start = time.time()
    logger.info(
        "Starting allocation service initialization",
        extra={
            "environment": settings.ENVIRONMENT,
            "debug_mode": settings.DEBUG,
            "file_logging_enabled": enable_file_logging,
            "service_version": settings.APP_VERSION,
            "blob_provider": settings.BLOB_PROVIDER,
        },
    )

    try:
        await database_manager.create_tables()
    except Exception as e:
        logger.error(
            "Failed to start allocation service",
            exc_info=True,
            extra={
                "startup_duration_ms": int((time.time() - startup_start) * 1000),
                "error_type": type(e).__name__,
            },
        )
        raise

    logger.info(
        "Allocation service started successfully",
        extra={"total_startup_duration_ms": int((time.time() - startup_start) * 1000)},
    )

    yield

    logger.info("Starting allocation service shutdown")
    await database_manager.close()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        debug=settings.DEBUG,
        lifespan=lifespan,
        openapi_url="/openapi.json" if settings.DEBUG else None,
        docs_url="/docs" if settings.DEBUG else None,
        redoc_url="/redoc" if settings.DEBUG else None,
    )

    setup_allocation_error_handling(app)
    _setup_cors(app)
    _setup_routers(app)

    return app


def _setup_cors(app: FastAPI) -> None:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    logger.info(
        "CORS middleware configured",
        extra={"allowed_origins": len(settings.CORS_ORIGINS)},
    )


def _setup_routers(app: FastAPI) -> None:
    routers_info: list[dict[str, Any]] = []

    app.include_router(health_router, tags=["Health"])
    routers_info.append({"router": "health", "prefix": "", "tags": ["Health"]})

    app.include_router(allocation_router, prefix="/api/v1", tags=["Variant Allocation"])
    routers_info.append(
        {"router": "allocation", "prefix": "/api/v1", "tags": ["Variant Allocation"]}
    )

    logger.info(
        "API routes configured",
        extra={"total_routers": len(routers_info), "routers": routers_info},
    )


app = create_app()
