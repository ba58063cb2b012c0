"""Dependency injection for FastAPI."""

from fastapi import Request
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from kopfolio.backup import ArchiveExporter, ArchiveImporter, ImportProgressTracker, RecordStore
    from kopfolio.config import KopfolioConfig


async def get_config(request: Request) -> "KopfolioConfig":
    """Get backup configuration from app state."""
    return request.app.state.config


async def get_tracker(request: Request) -> "ImportProgressTracker":
    """Get the process-wide import progress tracker."""
    return request.app.state.tracker


async def get_exporter(request: Request) -> "ArchiveExporter":
    return request.app.state.exporter


async def get_importer(request: Request) -> "ArchiveImporter":
    return request.app.state.importer


async def get_record_store(request: Request) -> "RecordStore":
    return request.app.state.record_store


async def get_operator(request: Request) -> Optional[str]:
    """Username of the authenticated caller, if the auth layer provided one."""
    return getattr(request.state, "username", None)
