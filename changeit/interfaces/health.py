"""
Health check router.

Liveness/readiness probe. Reports the application version and whether
the ledger database answers a trivial query; an unreachable database
degrades the status instead of failing the probe.
"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.engine import Engine

from changeit.core.config import settings
from changeit.domain.exchange.errors import TransientStorageError
from changeit.infrastructure.exchange.database import storage_errors
from changeit.interfaces.exchange.dependencies import get_db_engine
from changeit.interfaces.exchange.schemas import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


def _database_status(engine: Engine) -> str:
    try:
        with storage_errors("health check"):
            with engine.connect() as conn:
                conn.execute(text("SELECT 1"))
    except TransientStorageError:
        return "unavailable"
    return "ok"


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
    description="Returns application health, version and database reachability.",
)
def health_check(engine: Engine = Depends(get_db_engine)) -> HealthResponse:
    """Return current application health status."""
    database = _database_status(engine)
    status = "ok" if database == "ok" else "degraded"
    if status != "ok":
        logger.warning("Health check degraded: database %s", database)
    return HealthResponse(status=status, version=settings.version, database=database)
