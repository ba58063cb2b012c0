"""Pydantic models for API requests and responses."""

from pydantic import BaseModel, Field
from datetime import datetime, timezone

from kopfolio.backup.status import ImportStatus


class ImportAccepted(BaseModel):
    message: str = "Import started"
    status: ImportStatus


class HealthStatus(BaseModel):
    status: str  # "healthy", "unhealthy"
    database: bool
    importing: bool
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class ErrorResponse(BaseModel):
    detail: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
