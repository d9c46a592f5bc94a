"""
Router for the health check endpoint.
"""

from fastapi import APIRouter

from ..models import HealthResponse

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Health check endpoint. Unauthenticated."""
    return HealthResponse(status="OK")
