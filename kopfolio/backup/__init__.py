"""Backup export/import of the database and uploads."""

from .errors import (
    BackupError,
    BackupIOError,
    ConcurrencyError,
    FormatError,
    ToolInvocationError,
)
from .exporter import ArchiveExporter, ExportedArchive
from .importer import ArchiveImporter, CapturedCredential, exit_process_hook, reconnect_hook
from .invoker import DatabaseTools, SubprocessInvoker, ToolInvoker, ToolResult
from .reconcile import SchemaReconciler
from .records import PostgresRecordStore, RecordStore
from .status import ImportProgressTracker, ImportStatus, ImportStep

__all__ = [
    "ArchiveExporter",
    "ArchiveImporter",
    "BackupError",
    "BackupIOError",
    "CapturedCredential",
    "ConcurrencyError",
    "DatabaseTools",
    "ExportedArchive",
    "FormatError",
    "ImportProgressTracker",
    "ImportStatus",
    "ImportStep",
    "PostgresRecordStore",
    "RecordStore",
    "SchemaReconciler",
    "SubprocessInvoker",
    "ToolInvocationError",
    "ToolInvoker",
    "ToolResult",
    "exit_process_hook",
    "reconnect_hook",
]
