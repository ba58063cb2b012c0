"""Invocation of the external pg_dump/psql tools."""

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from .._utils import logger
from ..config import DatabaseConfig
from .errors import ToolInvocationError


@dataclass(frozen=True)
class ToolResult:
    """Outcome of a single external tool run."""
    exit_code: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.exit_code == 0


class ToolInvoker(ABC):
    """Runs an external command to completion and reports its result."""

    @abstractmethod
    async def invoke(
        self,
        command: str,
        args: Sequence[str],
        env: Optional[Dict[str, str]] = None,
    ) -> ToolResult:
        """Run ``command`` with ``args`` and wait for it to exit.

        Non-zero exit codes are returned, not raised. Failures to launch the
        process propagate unchanged.
        """


class SubprocessInvoker(ToolInvoker):
    """Runs tools as child processes without a shell."""

    async def invoke(
        self,
        command: str,
        args: Sequence[str],
        env: Optional[Dict[str, str]] = None,
    ) -> ToolResult:
        logger.debug(f"Running {command} with {len(args)} arguments")

        process = await asyncio.create_subprocess_exec(
            command,
            *args,
            env=env,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        stdout, stderr = await process.communicate()

        return ToolResult(
            exit_code=process.returncode,
            stdout=stdout.decode(errors="replace"),
            stderr=stderr.decode(errors="replace"),
        )


class DatabaseTools:
    """The two opaque full-state operations: produce a dump, apply a dump."""

    def __init__(self, config: DatabaseConfig, invoker: Optional[ToolInvoker] = None):
        self.config = config
        self.invoker = invoker or SubprocessInvoker()

    def _connection_args(self) -> List[str]:
        return [
            "--host", self.config.host,
            "--port", str(self.config.port),
            "--username", self.config.user,
            "--dbname", self.config.name,
        ]

    async def dump(self, target_file: Path) -> Path:
        """Write a plain-text dump of the whole database to ``target_file``.

        Raises:
            ToolInvocationError: pg_dump failed or left no output file
        """
        args = self._connection_args() + [
            "--no-owner",
            "--no-privileges",
            "--file", str(target_file),
        ]
        await self._run(self.config.pg_dump_path, args)

        if not target_file.exists():
            raise ToolInvocationError(
                f"{self.config.pg_dump_path} produced no dump file at {target_file}",
                command=[self.config.pg_dump_path, *args],
            )

        logger.info(f"Database dump written: {target_file} ({target_file.stat().st_size:,} bytes)")
        return target_file

    async def restore(self, dump_file: Path) -> None:
        """Apply ``dump_file`` to the database.

        Raises:
            ToolInvocationError: psql failed
        """
        args = self._connection_args() + [
            "--set", "ON_ERROR_STOP=1",
            "--quiet",
            "--file", str(dump_file),
        ]
        await self._run(self.config.psql_path, args)
        logger.info(f"Database restored from: {dump_file}")

    async def _run(self, command: str, args: List[str]) -> ToolResult:
        try:
            result = await self.invoker.invoke(command, args, env=self.config.tool_env())
        except OSError as e:
            raise ToolInvocationError(
                f"Failed to run {command}: {e}", command=[command, *args]
            ) from e

        if not result.ok:
            raise ToolInvocationError(
                f"{command} exited with code {result.exit_code}: {result.stderr.strip()}",
                command=[command, *args],
                exit_code=result.exit_code,
                stderr=result.stderr,
            )
        return result
