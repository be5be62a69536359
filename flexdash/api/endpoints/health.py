"""
Health Check Endpoints
======================
Liveness probe for the dashboard server.
"""

from fastapi import APIRouter
from pydantic import BaseModel

from flexdash import __version__

router = APIRouter()


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """
    Liveness probe endpoint.
    Returns OK if the service is running.
    """
    return HealthResponse(status="ok", version=__version__)
