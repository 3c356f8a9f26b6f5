"""Service wiring and FastAPI dependencies."""

import logging
from dataclasses import dataclass
from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncEngine

from backend.app.config import Settings
from backend.app.db.engine import (
    create_async_engine_from_settings,
    create_session_factory,
    create_tables,
)
from backend.app.db.inmemory import InMemoryDocumentRepository
from backend.app.db.repositories import DocumentRepository
from backend.app.db.sql_repositories import SqlDocumentRepository
from backend.app.llm.client import ExtractionClient, get_extraction_client
from backend.app.processing.encoding import ImageEncoder, PillowImageEncoder
from backend.app.processing.pipeline import ProcessingPipeline
from backend.app.review.service import ReviewService

logger = logging.getLogger(__name__)


@dataclass
class AppServices:
    """Everything the routes need, built once per application."""

    settings: Settings
    repository: DocumentRepository
    pipeline: ProcessingPipeline
    review: ReviewService
    engine: AsyncEngine | None = None


def build_services(
    settings: Settings,
    *,
    repository: DocumentRepository | None = None,
    extractor: ExtractionClient | None = None,
    encoder: ImageEncoder | None = None,
) -> AppServices:
    """Assemble services from settings, allowing collaborators to be injected.

    Without an explicit repository, DATABASE_URL selects the SQL
    repository; an unset URL falls back to the in-memory one.
    """
    engine: AsyncEngine | None = None

    if repository is None:
        if settings.database_url:
            engine = create_async_engine_from_settings(settings)
            repository = SqlDocumentRepository(create_session_factory(engine))
        else:
            logger.warning("DATABASE_URL not set, using in-memory repository")
            repository = InMemoryDocumentRepository()

    pipeline = ProcessingPipeline(
        repository=repository,
        extractor=extractor or get_extraction_client(settings),
        encoder=encoder
        or PillowImageEncoder(
            max_dimension=settings.image_max_dimension, quality=settings.jpeg_quality
        ),
        settings=settings,
    )

    return AppServices(
        settings=settings,
        repository=repository,
        pipeline=pipeline,
        review=ReviewService(repository),
        engine=engine,
    )


async def startup(services: AppServices) -> None:
    """Prepare storage before serving."""
    if services.engine is not None:
        await create_tables(services.engine)


async def shutdown(services: AppServices) -> None:
    """Let in-flight runs finish, then release the engine."""
    await services.pipeline.wait_idle()
    if services.engine is not None:
        await services.engine.dispose()


def get_services(request: Request) -> AppServices:
    """FastAPI dependency returning the application's services."""
    return request.app.state.services


Services = Annotated[AppServices, Depends(get_services)]
