"""Destructive restore of the database and uploads from an uploaded archive."""

import asyncio
import os
import signal
from dataclasses import dataclass, field
from pathlib import Path
from typing import Awaitable, Callable, Optional

from .._utils import logger
from .archive import extract_archive
from .errors import ConcurrencyError
from .invoker import DatabaseTools
from .reconcile import SchemaReconciler
from .records import RecordStore
from .status import ImportProgressTracker, ImportStatus, ImportStep
from .utils import discard_path, prepare_workspace, replace_tree

RestoreHook = Callable[[], Awaitable[None]]


@dataclass(frozen=True)
class CapturedCredential:
    """Password hash of the operator, held only for the duration of one run."""
    username: str
    secret: str = field(repr=False)


class ArchiveImporter:
    """Run the import state machine against the live database and uploads.

    Steps run strictly in order; the first failure ends the run as failed.
    Everything from ``resetting`` on changes live state and is not rolled
    back. Temporary files are removed whatever the outcome.
    """

    def __init__(
        self,
        tracker: ImportProgressTracker,
        tools: DatabaseTools,
        store: RecordStore,
        uploads_dir: Path,
        extract_dir: Path,
        reconciler: Optional[SchemaReconciler] = None,
        on_restored: Optional[RestoreHook] = None,
        admin_username: str = "admin",
    ):
        self.tracker = tracker
        self.tools = tools
        self.store = store
        self.uploads_dir = Path(uploads_dir)
        self.extract_dir = Path(extract_dir)
        self.reconciler = reconciler or SchemaReconciler(store)
        self.on_restored = on_restored
        self.admin_username = admin_username

    def begin(self) -> None:
        """Claim the import slot.

        Raises:
            ConcurrencyError: another run holds it; its status is left untouched
        """
        if not self.tracker.try_begin():
            logger.warning("Rejected import request: an import is already running")
            raise ConcurrencyError()

    async def start(self, upload_path: Path, operator: Optional[str] = None) -> ImportStatus:
        """Claim the import slot and run the import to its end."""
        self.begin()
        return await self.run(upload_path, operator)

    async def run(self, upload_path: Path, operator: Optional[str] = None) -> ImportStatus:
        """Execute a claimed import run.

        Must follow a successful ``begin``. Errors do not propagate; they end
        up in the tracker's ``error`` field.

        Args:
            upload_path: Uploaded archive; deleted when the run ends
            operator: User whose credential survives the restore
                (defaults to the configured admin user)

        Returns:
            Final status of the run
        """
        username = operator or self.admin_username
        failure: Optional[str] = "Import was interrupted"

        try:
            await self._restore(Path(upload_path), username)
            self.tracker.advance(ImportStep.CLEANUP)
            failure = None
        except Exception as e:
            step = self.tracker.snapshot().current_step
            failure = f"{type(e).__name__}: {e}"
            logger.error(f"Import failed during {step}: {failure}")
        finally:
            await self._cleanup(Path(upload_path))
            if failure is None:
                self.tracker.complete()
            else:
                self.tracker.fail(failure)

        if failure is None and self.on_restored is not None:
            try:
                await self.on_restored()
            except Exception as e:
                logger.error(f"Post-restore hook failed: {e}")

        return self.tracker.snapshot()

    async def _restore(self, upload_path: Path, username: str) -> None:
        self.tracker.advance(ImportStep.PREPARING)
        await asyncio.to_thread(prepare_workspace, self.extract_dir)

        self.tracker.advance(ImportStep.EXTRACTING)
        extracted = await asyncio.to_thread(extract_archive, upload_path, self.extract_dir)

        self.tracker.advance(ImportStep.VALIDATING)
        dump_file = extracted.require_dump()

        self.tracker.advance(ImportStep.CAPTURING_CREDENTIAL)
        credential = await self._capture_credential(username)

        # Point of no return: live records are gone from here on
        self.tracker.advance(ImportStep.RESETTING)
        await self.store.reset_schema()

        self.tracker.advance(ImportStep.RESTORING)
        await self.tools.restore(dump_file)

        self.tracker.advance(ImportStep.REINJECTING_CREDENTIAL)
        if credential is not None:
            await self.store.write_admin_secret(credential.username, credential.secret)
            logger.info(f"Credential of {credential.username} carried over")
        else:
            logger.info("No credential captured, keeping the restored credentials")

        self.tracker.advance(ImportStep.RECONCILING_SCHEMA)
        await self.reconciler.reconcile()

        self.tracker.advance(ImportStep.SYNCING_ASSETS)
        copied = await asyncio.to_thread(replace_tree, self.uploads_dir, extracted.assets_path)
        logger.info(f"Uploads replaced ({copied} files)")

    async def _capture_credential(self, username: str) -> Optional[CapturedCredential]:
        secret = await self.store.read_admin_secret(username)
        if not secret:
            logger.info(f"No existing credential for {username}")
            return None
        return CapturedCredential(username=username, secret=secret)

    async def _cleanup(self, upload_path: Path) -> None:
        await asyncio.to_thread(discard_path, self.extract_dir)
        await asyncio.to_thread(discard_path, upload_path)
        logger.debug("Import workspace and upload removed")


def exit_process_hook(delay: float = 2.0) -> RestoreHook:
    """Restart through the supervisor: SIGTERM ourselves after ``delay`` seconds.

    The delay leaves pollers time to see the completed status.
    """
    async def _exit() -> None:
        logger.warning(f"Restore complete, terminating process in {delay}s for restart")
        asyncio.get_running_loop().call_later(delay, os.kill, os.getpid(), signal.SIGTERM)

    return _exit


def reconnect_hook(store: RecordStore) -> RestoreHook:
    """Stay up and drop pooled connections that predate the restore."""
    async def _reconnect() -> None:
        await store.dispose()
        logger.info("Restore complete, database connections recycled")

    return _reconnect
