"""Process-wide progress record of the running import."""

import threading
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from .._utils import logger


class ImportStep(str, Enum):
    """States of an import run, in execution order."""
    IDLE = "idle"
    PREPARING = "preparing"
    EXTRACTING = "extracting"
    VALIDATING = "validating"
    CAPTURING_CREDENTIAL = "capturing_credential"
    RESETTING = "resetting"
    RESTORING = "restoring"
    REINJECTING_CREDENTIAL = "reinjecting_credential"
    RECONCILING_SCHEMA = "reconciling_schema"
    SYNCING_ASSETS = "syncing_assets"
    CLEANUP = "cleanup"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def progress(self) -> Optional[int]:
        """Progress reported on entering this step; None keeps the last value."""
        return STEP_PROGRESS.get(self)


STEP_PROGRESS = {
    ImportStep.IDLE: 0,
    ImportStep.PREPARING: 5,
    ImportStep.EXTRACTING: 15,
    ImportStep.VALIDATING: 25,
    ImportStep.CAPTURING_CREDENTIAL: 30,
    ImportStep.RESETTING: 40,
    ImportStep.RESTORING: 55,
    ImportStep.REINJECTING_CREDENTIAL: 75,
    ImportStep.RECONCILING_SCHEMA: 80,
    ImportStep.SYNCING_ASSETS: 90,
    ImportStep.CLEANUP: 95,
    ImportStep.COMPLETED: 100,
}


class ImportStatus(BaseModel):
    """Snapshot of the import progress record."""

    model_config = ConfigDict(populate_by_name=True)

    is_importing: bool = Field(False, alias="isImporting")
    current_step: str = Field(ImportStep.IDLE.value, alias="currentStep")
    progress: int = Field(0, ge=0, le=100)
    error: Optional[str] = None


class ImportProgressTracker:
    """Single-writer, many-reader holder of the current ImportStatus.

    ``try_begin`` is the mutual-exclusion point: only the caller that flips
    ``is_importing`` from False to True may write until ``complete`` or
    ``fail``. Readers take copies and only wait for a field assignment.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._status = ImportStatus()

    def try_begin(self) -> bool:
        with self._lock:
            if self._status.is_importing:
                return False
            self._status = ImportStatus(
                is_importing=True,
                current_step=ImportStep.PREPARING.value,
                progress=0,
                error=None,
            )
        logger.info("Import run started")
        return True

    def advance(self, step: ImportStep) -> None:
        with self._lock:
            self._status.current_step = step.value
            if step.progress is not None:
                self._status.progress = max(self._status.progress, step.progress)
            progress = self._status.progress
        logger.info(f"Import step: {step.value} ({progress}%)")

    def complete(self) -> None:
        with self._lock:
            self._status.current_step = ImportStep.COMPLETED.value
            self._status.progress = 100
            self._status.is_importing = False
        logger.info("Import run completed")

    def fail(self, message: str) -> None:
        with self._lock:
            self._status.current_step = ImportStep.FAILED.value
            self._status.error = message
            self._status.is_importing = False
        logger.error(f"Import run failed: {message}")

    def snapshot(self) -> ImportStatus:
        with self._lock:
            return self._status.model_copy()

    @property
    def is_importing(self) -> bool:
        with self._lock:
            return self._status.is_importing
