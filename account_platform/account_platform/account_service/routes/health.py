"""
Health check endpoints for the Account Service
"""
from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from ..db import Database
from ..dependencies import get_database
from ..schemas import HealthResponse, ReadinessResponse

router = APIRouter(prefix="/api/health", tags=["Health"])


@router.get("", response_model=HealthResponse, status_code=status.HTTP_200_OK)
async def health_check() -> HealthResponse:
    """Liveness: status 0 means healthy."""
    return HealthResponse()


@router.get(
    "/ready",
    response_model=ReadinessResponse,
    responses={503: {"description": "Database unreachable", "model": ReadinessResponse}},
)
def readiness_check(database: Database = Depends(get_database)):
    """
    Readiness check with database status.

    Returns 503 if the database cannot be reached.
    """
    if database.check_connection():
        return ReadinessResponse(status="ready", database="connected")

    body = ReadinessResponse(status="not_ready", database="disconnected")
    return JSONResponse(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, content=body.model_dump())
