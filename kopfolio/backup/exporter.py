"""Export of the live database and uploads into a single archive."""

import asyncio
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import AsyncIterator

import aiofiles

from .._utils import logger
from .archive import create_archive
from .invoker import DatabaseTools
from .utils import discard_path, generate_archive_name, prepare_workspace, remove_path


@dataclass
class ExportedArchive:
    """A finished archive waiting to be delivered."""
    path: Path
    filename: str
    size_bytes: int
    workspace: Path
    _cleaned: bool = field(default=False, repr=False)

    async def stream(self, chunk_size: int = 64 * 1024) -> AsyncIterator[bytes]:
        """Yield the archive bytes, removing the workspace once done or aborted."""
        try:
            async with aiofiles.open(self.path, "rb") as f:
                while True:
                    chunk = await f.read(chunk_size)
                    if not chunk:
                        break
                    yield chunk
        finally:
            self.cleanup()

    def cleanup(self) -> None:
        if self._cleaned:
            return
        self._cleaned = True
        discard_path(self.workspace)
        logger.debug(f"Export workspace removed: {self.workspace}")


class ArchiveExporter:
    """Dump the database, pack it with the uploads tree and hand it over."""

    def __init__(self, tools: DatabaseTools, uploads_dir: Path, export_dir: Path):
        """Initialize exporter.

        Args:
            tools: Runs pg_dump
            uploads_dir: Live asset tree to include
            export_dir: Parent directory for per-export workspaces
        """
        self.tools = tools
        self.uploads_dir = Path(uploads_dir)
        self.export_dir = Path(export_dir)

    async def export(self) -> ExportedArchive:
        """Build an archive of the current state.

        The archive is only returned once complete. On failure the dump and any
        partial archive are removed before the error propagates.

        Raises:
            ToolInvocationError: pg_dump failed
            BackupIOError: a filesystem step failed
        """
        workspace = await asyncio.to_thread(
            prepare_workspace, self.export_dir / uuid.uuid4().hex
        )
        dump_file = workspace / "database.sql"
        filename = generate_archive_name()
        archive_path = workspace / filename

        logger.info(f"Starting export: {filename}")

        try:
            await self.tools.dump(dump_file)
            size = await asyncio.to_thread(
                create_archive, dump_file, self.uploads_dir, archive_path
            )
            await asyncio.to_thread(remove_path, dump_file)
        except BaseException:
            # Also on cancellation: the dump holds every credential hash
            logger.error(f"Export failed, removing workspace {workspace}")
            await asyncio.to_thread(discard_path, workspace)
            raise

        logger.info(f"Export ready: {filename} ({size:,} bytes)")
        return ExportedArchive(
            path=archive_path,
            filename=filename,
            size_bytes=size,
            workspace=workspace,
        )

    def remove_stale_workspaces(self) -> None:
        """Delete workspaces left behind by a process that died mid-export.

        Only safe before the first export of this process starts, since
        workspaces of running exports live in the same directory.
        """
        if not self.export_dir.is_dir():
            return
        for stale in self.export_dir.iterdir():
            logger.warning(f"Removing stale export artifact: {stale}")
            remove_path(stale)
