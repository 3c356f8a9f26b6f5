"""Health check endpoints.

- /health: process is up
- /healthz: storage reachable, with component details
"""

from typing import Any

from fastapi import APIRouter, Response
from fastapi.responses import JSONResponse
from sqlalchemy import text

from backend.app.api.deps import AppServices, Services

router = APIRouter()


async def check_db(services: AppServices) -> tuple[bool, str]:
    """Check database connectivity.

    Returns:
        (is_ok, status_message)
    """
    if services.engine is None:
        return (True, "in_memory")

    try:
        async with services.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return (True, "ok")
    except Exception as e:
        return (False, f"error: {type(e).__name__}")


@router.get("/health")
async def health() -> dict[str, str]:
    """Simple health check for Docker/k8s.

    Returns:
        200 OK always (application is running)
    """
    return {"status": "ok"}


@router.get("/healthz", response_model=None)
async def healthz(services: Services) -> dict[str, Any] | Response:
    """Health check endpoint.

    Returns:
        200 with component status if storage is ok
        503 if storage is unreachable
    """
    db_ok, db_status = await check_db(services)

    response_body = {
        "status": "ok" if db_ok else "degraded",
        "components": {
            "db": db_status,
            "active_runs": str(len(services.pipeline.active_runs())),
        },
    }

    if not db_ok:
        return JSONResponse(content=response_body, status_code=503)

    return response_body
