"""FastAPI application - document extraction and chunk review."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from backend.app.api.deps import AppServices, build_services, shutdown, startup
from backend.app.api.routes.chunks import router as chunks_router
from backend.app.api.routes.documents import router as documents_router
from backend.app.api.routes.health import router as health_router
from backend.app.api.routes.metrics import router as metrics_router
from backend.app.api.routes.stats import router as stats_router
from backend.app.config import get_settings
from backend.app.exceptions import NotFoundError, ValidationError
from backend.app.utils.logging import configure_logging


def create_app(services: AppServices | None = None) -> FastAPI:
    """Build the application.

    Args:
        services: Pre-built services (tests); built from settings when omitted
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        if getattr(app.state, "services", None) is None:
            settings = get_settings()
            configure_logging(settings.log_level)
            app.state.services = build_services(settings)

        await startup(app.state.services)
        yield
        await shutdown(app.state.services)

    app = FastAPI(title="Document Review API", version="0.1.0", lifespan=lifespan)
    app.state.services = services

    @app.exception_handler(ValidationError)
    async def validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": str(exc)})

    @app.exception_handler(NotFoundError)
    async def not_found_handler(request: Request, exc: NotFoundError) -> JSONResponse:
        return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"detail": str(exc)})

    # Register routes
    app.include_router(health_router, tags=["health"])
    app.include_router(metrics_router, tags=["metrics"])
    app.include_router(stats_router)
    app.include_router(documents_router)
    app.include_router(chunks_router)

    @app.get("/")
    async def root() -> dict[str, str]:
        """Root endpoint."""
        return {"message": "Document Review API", "version": "0.1.0"}

    return app


app = create_app()
