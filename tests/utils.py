"""Test doubles for the database tools and the record store."""

import io
import json
import tarfile
import zipfile
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from kopfolio.backup.invoker import ToolInvoker, ToolResult
from kopfolio.backup.records import RecordStore


class InMemoryRecordStore(RecordStore):
    """Record store holding a table -> columns map and the users' password hashes."""

    def __init__(self, tables: Optional[Dict[str, List[str]]] = None, users: Optional[Dict[str, str]] = None):
        self.tables: Dict[str, List[str]] = {k: list(v) for k, v in (tables or {}).items()}
        self.users: Dict[str, str] = dict(users or {})
        if self.users and "users" not in self.tables:
            self.tables["users"] = ["id", "username", "password"]
        self.statements: List[str] = []
        self.reset_count = 0
        self.disposed = 0

    # Serialization used by the fake pg_dump/psql
    def dump_state(self) -> str:
        return json.dumps({"tables": self.tables, "users": self.users})

    def load_state(self, text: str) -> None:
        state = json.loads(text)
        self.tables = {k: list(v) for k, v in state.get("tables", {}).items()}
        self.users = dict(state.get("users", {}))

    async def read_admin_secret(self, username: str) -> Optional[str]:
        if "users" not in self.tables:
            return None
        return self.users.get(username)

    async def write_admin_secret(self, username: str, secret: str) -> None:
        self.tables.setdefault("users", ["id", "username", "password"])
        self.users[username] = secret

    async def reset_schema(self) -> None:
        self.reset_count += 1
        self.tables.clear()
        self.users.clear()

    async def table_exists(self, table: str) -> bool:
        return table in self.tables

    async def column_exists(self, table: str, column: str) -> bool:
        return column in self.tables.get(table, [])

    async def add_column(self, table: str, column: str, ddl: str) -> None:
        columns = self.tables[table]
        if column in columns:
            raise RuntimeError(f'column "{column}" of relation "{table}" already exists')
        columns.append(column)

    async def execute(self, statement: str, params: Optional[Dict[str, Any]] = None) -> int:
        self.statements.append(statement)
        return 1

    async def ping(self) -> bool:
        return True

    async def dispose(self) -> None:
        self.disposed += 1


class FakeInvoker(ToolInvoker):
    """Stands in for pg_dump and psql, moving state between a store and dump files."""

    def __init__(
        self,
        store: InMemoryRecordStore,
        fail: Optional[str] = None,
        exit_code: int = 1,
        produce_file: bool = True,
    ):
        self.store = store
        self.fail = fail
        self.exit_code = exit_code
        self.produce_file = produce_file
        self.calls: List[Dict[str, Any]] = []

    async def invoke(self, command: str, args: Sequence[str], env: Optional[Dict[str, str]] = None) -> ToolResult:
        self.calls.append({"command": command, "args": list(args), "env": env or {}})
        target = Path(args[list(args).index("--file") + 1])
        tool = Path(command).name

        if self.fail == tool:
            return ToolResult(self.exit_code, "", f"{tool}: error: simulated failure")

        if tool == "pg_dump":
            if self.produce_file:
                target.write_text(self.store.dump_state())
        elif tool == "psql":
            self.store.load_state(target.read_text())

        return ToolResult(0, "", "")


def build_archive(
    path: Path,
    dump: Optional[str] = None,
    assets: Optional[Dict[str, bytes]] = None,
    fmt: str = "tar",
) -> Path:
    """Write a backup archive with an optional dump and asset files."""
    members: Dict[str, bytes] = {}
    if dump is not None:
        members["database.sql"] = dump.encode()
    for name, content in (assets or {}).items():
        members[f"uploads/{name}"] = content

    if fmt == "zip":
        with zipfile.ZipFile(path, "w") as archive:
            for name, content in members.items():
                archive.writestr(name, content)
        return path

    with tarfile.open(path, "w:gz") as tar:
        for name, content in members.items():
            info = tarfile.TarInfo(name)
            info.size = len(content)
            tar.addfile(info, io.BytesIO(content))
    return path


def seeded_store(admin_secret: Optional[str] = "live-hash") -> InMemoryRecordStore:
    """Store shaped like a running site: settings, pages and an admin user."""
    users = {"admin": admin_secret} if admin_secret else {}
    return InMemoryRecordStore(
        tables={
            "users": ["id", "username", "password"],
            "settings": ["id", "site_title", "font"],
            "pages": ["id", "title", "slug"],
        },
        users=users,
    )
