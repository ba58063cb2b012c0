"""Access to the live record store needed by restore runs."""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from .._utils import logger
from ..config import DatabaseConfig


class RecordStore(ABC):
    """Operations the importer performs directly against the database."""

    @abstractmethod
    async def read_admin_secret(self, username: str) -> Optional[str]:
        """Return the stored password hash of ``username``, or None if there is none."""

    @abstractmethod
    async def write_admin_secret(self, username: str, secret: str) -> None:
        """Set the password hash of ``username``, creating the user if it is missing."""

    @abstractmethod
    async def reset_schema(self) -> None:
        """Drop every table, sequence and function and start from an empty schema."""

    @abstractmethod
    async def table_exists(self, table: str) -> bool:
        ...

    @abstractmethod
    async def column_exists(self, table: str, column: str) -> bool:
        ...

    @abstractmethod
    async def add_column(self, table: str, column: str, ddl: str) -> None:
        ...

    @abstractmethod
    async def execute(self, statement: str, params: Optional[Dict[str, Any]] = None) -> int:
        """Run a data statement and return the affected row count."""

    @abstractmethod
    async def ping(self) -> bool:
        ...

    @abstractmethod
    async def dispose(self) -> None:
        """Drop pooled connections so later queries see the current schema."""


def _quote_identifier(name: str) -> str:
    if not name.replace("_", "").isalnum():
        raise ValueError(f"Invalid SQL identifier: {name!r}")
    return f'"{name}"'


class PostgresRecordStore(RecordStore):
    """RecordStore backed by PostgreSQL through a SQLAlchemy async engine."""

    def __init__(self, config: DatabaseConfig, engine: Optional[AsyncEngine] = None):
        self.config = config
        self.engine = engine or create_async_engine(config.url, pool_pre_ping=True)

    async def read_admin_secret(self, username: str) -> Optional[str]:
        # Fresh installs have no users table yet; any other failure propagates
        if not await self.table_exists("users"):
            logger.warning(f"No users table, nothing to read for {username}")
            return None

        async with self.engine.connect() as conn:
            result = await conn.execute(
                text("SELECT password FROM users WHERE username = :username"),
                {"username": username},
            )
            row = result.first()

        return row[0] if row else None

    async def write_admin_secret(self, username: str, secret: str) -> None:
        async with self.engine.begin() as conn:
            result = await conn.execute(
                text("UPDATE users SET password = :secret WHERE username = :username"),
                {"username": username, "secret": secret},
            )
            if result.rowcount == 0:
                logger.warning(f"Restored data has no user {username}, recreating it")
                await conn.execute(
                    text("INSERT INTO users (username, password) VALUES (:username, :secret)"),
                    {"username": username, "secret": secret},
                )

    async def reset_schema(self) -> None:
        role = _quote_identifier(self.config.user)
        async with self.engine.begin() as conn:
            await conn.execute(text("DROP SCHEMA IF EXISTS public CASCADE"))
            await conn.execute(text("CREATE SCHEMA public"))
            await conn.execute(text(f"GRANT ALL ON SCHEMA public TO {role}"))
            await conn.execute(text("GRANT ALL ON SCHEMA public TO public"))
        # Cached statement plans reference the dropped tables
        await self.engine.dispose()
        logger.info("Database schema reset")

    async def table_exists(self, table: str) -> bool:
        async with self.engine.connect() as conn:
            result = await conn.execute(
                text(
                    "SELECT 1 FROM information_schema.tables "
                    "WHERE table_schema = 'public' AND table_name = :table"
                ),
                {"table": table},
            )
            return result.first() is not None

    async def column_exists(self, table: str, column: str) -> bool:
        async with self.engine.connect() as conn:
            result = await conn.execute(
                text(
                    "SELECT 1 FROM information_schema.columns "
                    "WHERE table_schema = 'public' AND table_name = :table "
                    "AND column_name = :column"
                ),
                {"table": table, "column": column},
            )
            return result.first() is not None

    async def add_column(self, table: str, column: str, ddl: str) -> None:
        statement = (
            f"ALTER TABLE {_quote_identifier(table)} "
            f"ADD COLUMN IF NOT EXISTS {_quote_identifier(column)} {ddl}"
        )
        async with self.engine.begin() as conn:
            await conn.execute(text(statement))

    async def execute(self, statement: str, params: Optional[Dict[str, Any]] = None) -> int:
        async with self.engine.begin() as conn:
            result = await conn.execute(text(statement), params or {})
            return result.rowcount

    async def ping(self) -> bool:
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            return True
        except (SQLAlchemyError, OSError) as e:
            logger.debug(f"Database ping failed: {e}")
            return False

    async def dispose(self) -> None:
        await self.engine.dispose()
