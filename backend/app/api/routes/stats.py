"""Dashboard stats endpoint."""

from datetime import datetime

from fastapi import APIRouter

from backend.app.api.deps import Services
from backend.app.models.documents import ProcessingStats

router = APIRouter(tags=["stats"])


@router.get("/stats", response_model=ProcessingStats)
async def get_stats(services: Services) -> ProcessingStats:
    """Processed-today, awaiting-review and accuracy aggregates.

    accuracy_rate is mean chunk confidence; avg_process_time is a fixed
    placeholder until run timings are stored.
    """
    return await services.repository.get_stats(
        datetime.now(), services.settings.avg_process_time_placeholder
    )
