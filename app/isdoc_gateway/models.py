"""
Pydantic models for the gateway's JSON responses.
"""

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


def iso_timestamp() -> str:
    """Current UTC time as ISO-8601 with millisecond precision, e.g. 2024-05-01T12:00:00.000Z."""
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


class HealthResponse(BaseModel):
    """Response model for the health check endpoint."""

    status: str = Field(default="OK", description="Service status")
    timestamp: str = Field(default_factory=iso_timestamp)


class ErrorResponse(BaseModel):
    """Body of every error response."""

    error: str = Field(..., description="Client-facing error message")
    message: str | None = Field(default=None, description="Additional context, if any")


class ExtractionResponse(BaseModel):
    """
    Successful ISDOC extraction.

    Serialized as:
    {
        "success": true,
        "data": {...},
        "extractedAt": "2024-05-01T12:00:00.000Z"
    }
    """

    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    data: dict[str, Any] = Field(..., description="Parsed ISDOC invoice")
    extracted_at: str = Field(default_factory=iso_timestamp, alias="extractedAt")
