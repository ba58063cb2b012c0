"""Custom exceptions for FastAPI application."""

from fastapi import HTTPException
from starlette.status import (
    HTTP_400_BAD_REQUEST,
    HTTP_409_CONFLICT,
    HTTP_413_REQUEST_ENTITY_TOO_LARGE,
    HTTP_500_INTERNAL_SERVER_ERROR,
)


class BackupAPIError(HTTPException):
    """Base exception for backup API errors."""
    pass


class ImportInProgressError(BackupAPIError):
    def __init__(self):
        super().__init__(HTTP_409_CONFLICT, "An import is already in progress")


class InvalidBackupUploadError(BackupAPIError):
    def __init__(self, reason: str):
        super().__init__(HTTP_400_BAD_REQUEST, reason)


class BackupTooLargeError(BackupAPIError):
    def __init__(self, limit: int):
        super().__init__(HTTP_413_REQUEST_ENTITY_TOO_LARGE, f"Backup exceeds the {limit:,} byte upload limit")


class BackupExportFailedError(BackupAPIError):
    def __init__(self, reason: str):
        super().__init__(HTTP_500_INTERNAL_SERVER_ERROR, f"Creating the backup failed: {reason}")
