"""Backup export and import API endpoints."""

import uuid
from pathlib import Path
from typing import Optional

import aiofiles
from fastapi import APIRouter, BackgroundTasks, Depends, File, UploadFile
from fastapi.responses import StreamingResponse
from starlette.background import BackgroundTask

from ..config import settings
from ..dependencies import get_config, get_exporter, get_importer, get_operator, get_tracker
from ..exceptions import (
    BackupExportFailedError,
    BackupTooLargeError,
    ImportInProgressError,
    InvalidBackupUploadError,
)
from ..models import ErrorResponse, ImportAccepted
from kopfolio.backup import (
    ArchiveExporter,
    ArchiveImporter,
    BackupError,
    ConcurrencyError,
    ImportProgressTracker,
    ImportStatus,
)
from kopfolio.backup.utils import discard_path
from kopfolio.config import KopfolioConfig
from kopfolio._utils import logger

router = APIRouter(prefix="/backup", tags=["backup"])


@router.get(
    "/export",
    responses={500: {"model": ErrorResponse}},
)
async def export_backup(exporter: ArchiveExporter = Depends(get_exporter)) -> StreamingResponse:
    """Download an archive of the database and uploads."""
    try:
        archive = await exporter.export()
    except BackupError as e:
        logger.error(f"Export failed: {e}")
        raise BackupExportFailedError(str(e))

    return StreamingResponse(
        archive.stream(settings.stream_chunk_size),
        media_type="application/gzip",
        headers={
            "Content-Disposition": f"attachment; filename={archive.filename}",
            "Content-Length": str(archive.size_bytes),
        },
        # Covers responses whose body never started streaming
        background=BackgroundTask(archive.cleanup),
    )


async def _save_upload(upload: UploadFile, target_dir: Path) -> Path:
    """Copy the uploaded archive to disk, enforcing the size limit."""
    target_dir.mkdir(parents=True, exist_ok=True)
    target = target_dir / f"{uuid.uuid4().hex}.upload"
    written = 0

    try:
        async with aiofiles.open(target, "wb") as f:
            while True:
                chunk = await upload.read(settings.stream_chunk_size)
                if not chunk:
                    break
                written += len(chunk)
                if written > settings.max_upload_bytes:
                    raise BackupTooLargeError(settings.max_upload_bytes)
                await f.write(chunk)
    except BaseException:
        discard_path(target)
        raise

    if written == 0:
        discard_path(target)
        raise InvalidBackupUploadError("Uploaded backup file is empty")

    logger.info(f"Uploaded backup file: {upload.filename} ({written:,} bytes)")
    return target


@router.post(
    "/import",
    status_code=202,
    response_model=ImportAccepted,
    responses={400: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def import_backup(
    background_tasks: BackgroundTasks,
    backup: Optional[UploadFile] = File(None),
    importer: ArchiveImporter = Depends(get_importer),
    tracker: ImportProgressTracker = Depends(get_tracker),
    config: KopfolioConfig = Depends(get_config),
    operator: Optional[str] = Depends(get_operator),
) -> ImportAccepted:
    """Restore the system from an uploaded archive.

    Returns as soon as the run is scheduled; poll ``/backup/import/status``
    for its outcome.
    """
    if backup is None or not backup.filename:
        raise InvalidBackupUploadError("No backup file received")

    # Cheap early rejection; begin() below is the authoritative check
    if tracker.is_importing:
        raise ImportInProgressError()

    upload_path = await _save_upload(backup, config.backup.incoming_dir)

    try:
        importer.begin()
    except ConcurrencyError:
        discard_path(upload_path)
        raise ImportInProgressError()

    background_tasks.add_task(importer.run, upload_path, operator)

    return ImportAccepted(status=tracker.snapshot())


@router.get("/import/status", response_model=ImportStatus)
async def import_status(tracker: ImportProgressTracker = Depends(get_tracker)) -> ImportStatus:
    """Current state of the running (or last finished) import."""
    return tracker.snapshot()
