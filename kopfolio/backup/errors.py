"""Error taxonomy for backup export/import."""

from typing import Optional, Sequence


class BackupError(Exception):
    """Base class for all backup subsystem errors."""


class ConcurrencyError(BackupError):
    """An import was requested while another one is running."""

    def __init__(self, message: str = "An import is already in progress"):
        super().__init__(message)


class FormatError(BackupError):
    """The uploaded archive is corrupt or lacks its database dump."""


class ToolInvocationError(BackupError):
    """pg_dump/psql exited non-zero, could not be launched, or produced no output."""

    def __init__(
        self,
        message: str,
        command: Optional[Sequence[str]] = None,
        exit_code: Optional[int] = None,
        stderr: str = "",
    ):
        super().__init__(message)
        self.command = list(command) if command else []
        self.exit_code = exit_code
        self.stderr = stderr


class BackupIOError(BackupError, OSError):
    """A filesystem operation (create/remove/copy) failed."""
