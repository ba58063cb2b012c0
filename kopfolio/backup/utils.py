"""Filesystem helpers for backup/restore operations."""

import shutil
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from .._utils import logger
from .errors import BackupIOError

ARCHIVE_PREFIX = "kopfolio-backup"
ARCHIVE_SUFFIX = ".tar.gz"


def generate_archive_name(now: Optional[datetime] = None) -> str:
    """Generate the download name of an export.

    Returns:
        Name in format: kopfolio-backup-YYYY-MM-DD.tar.gz
    """
    now = now or datetime.now(timezone.utc)
    return f"{ARCHIVE_PREFIX}-{now.strftime('%Y-%m-%d')}{ARCHIVE_SUFFIX}"


def remove_path(path: Path) -> None:
    """Remove a file or directory tree if it exists.

    Raises:
        BackupIOError: removal failed
    """
    try:
        if path.is_dir() and not path.is_symlink():
            shutil.rmtree(path)
        elif path.exists() or path.is_symlink():
            path.unlink()
    except OSError as e:
        raise BackupIOError(f"Failed to remove {path}: {e}") from e


def prepare_workspace(path: Path) -> Path:
    """Create an empty directory at ``path``, discarding stale contents."""
    remove_path(path)
    try:
        path.mkdir(parents=True)
    except OSError as e:
        raise BackupIOError(f"Failed to create workspace {path}: {e}") from e

    logger.debug(f"Workspace ready: {path}")
    return path


def replace_tree(target: Path, source: Optional[Path]) -> int:
    """Replace ``target`` with a copy of ``source``.

    The existing tree is removed and an empty directory recreated first. A
    missing ``source`` leaves ``target`` empty.

    Returns:
        Number of files copied
    """
    remove_path(target)
    try:
        target.mkdir(parents=True)
        if source is None or not source.is_dir():
            return 0

        shutil.copytree(source, target, dirs_exist_ok=True)
    except OSError as e:
        raise BackupIOError(f"Failed to copy {source} to {target}: {e}") from e

    return sum(1 for p in target.rglob("*") if p.is_file())


def discard_path(path: Path) -> bool:
    """Best-effort ``remove_path`` for cleanup paths; failures are logged, not raised."""
    try:
        remove_path(path)
        return True
    except BackupIOError as e:
        logger.error(f"Cleanup failed: {e}")
        return False
