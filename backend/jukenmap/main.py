"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.gzip import GZipMiddleware

from jukenmap import __version__
from jukenmap.api.v1 import router as api_v1_router
from jukenmap.config import ConfigurationError, get_settings
from jukenmap.services.school_repository import SchoolRepository
from jukenmap.services.transit_times import TransitCache

logger = logging.getLogger(__name__)
settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown."""
    logger.info("Starting %s...", settings.app_name)
    if not settings.google_maps_api_key:
        logger.warning("GOOGLE_MAPS_API_KEY is not set; transit times and directions are disabled")
    schools = await app.state.repository.load()
    logger.info("School dataset ready (%d schools)", len(schools))
    yield
    logger.info("Shutting down...")
    app.state.transit_cache.clear()


def create_app(repository: SchoolRepository | None = None) -> FastAPI:
    app = FastAPI(
        title=settings.app_name,
        description="School search map: filtering, distances and transit times",
        version=__version__,
        debug=settings.debug,
        lifespan=lifespan,
    )

    app.state.repository = repository or SchoolRepository()
    app.state.transit_cache = TransitCache()

    app.add_middleware(GZipMiddleware, minimum_size=500)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(ConfigurationError)
    async def configuration_error_handler(request: Request, exc: ConfigurationError):
        logger.error(f"Configuration error on {request.url.path}: {exc}")
        return JSONResponse(status_code=503, content={"detail": str(exc)})

    # Include API routers
    app.include_router(api_v1_router)

    @app.get("/health")
    async def health_check():
        return {
            "status": "healthy",
            "app": settings.app_name,
            "schools_loaded": app.state.repository.loaded,
            "transit_enabled": bool(settings.google_maps_api_key),
        }

    return app


app = create_app()
