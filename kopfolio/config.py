"""Configuration management for kopfolio backups."""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional


@dataclass(frozen=True)
class DatabaseConfig:
    """PostgreSQL connection settings shared by the record store and the dump tools."""
    host: str = "localhost"
    port: int = 5432
    user: str = "kopfolio"
    password: Optional[str] = None
    name: str = "kopfolio"
    pg_dump_path: str = "pg_dump"
    psql_path: str = "psql"

    @classmethod
    def from_env(cls) -> 'DatabaseConfig':
        """Create config from environment variables."""
        return cls(
            host=os.getenv("DB_HOST", "localhost"),
            port=int(os.getenv("DB_PORT", "5432")),
            user=os.getenv("DB_USER", "kopfolio"),
            password=os.getenv("DB_PASSWORD"),
            name=os.getenv("DB_NAME", "kopfolio"),
            pg_dump_path=os.getenv("PG_DUMP_PATH", "pg_dump"),
            psql_path=os.getenv("PSQL_PATH", "psql"),
        )

    def __post_init__(self):
        """Validate configuration."""
        if not 0 < self.port < 65536:
            raise ValueError(f"port must be between 1 and 65535, got {self.port}")
        if not self.name:
            raise ValueError("database name must not be empty")
        if not self.user:
            raise ValueError("database user must not be empty")

    @property
    def url(self) -> str:
        """SQLAlchemy URL for the asyncpg driver."""
        credentials = self.user
        if self.password:
            credentials = f"{self.user}:{self.password}"
        return f"postgresql+asyncpg://{credentials}@{self.host}:{self.port}/{self.name}"

    def tool_env(self) -> Dict[str, str]:
        """Environment for pg_dump/psql; the password never goes on the command line."""
        env = dict(os.environ)
        if self.password:
            env["PGPASSWORD"] = self.password
        return env


@dataclass(frozen=True)
class BackupConfig:
    """Filesystem layout and identity settings for export/import runs."""
    uploads_dir: Path = Path("./public/uploads")
    temp_dir: Path = Path("./temp")
    admin_username: str = "admin"

    @classmethod
    def from_env(cls) -> 'BackupConfig':
        """Create config from environment variables."""
        return cls(
            uploads_dir=Path(os.getenv("UPLOADS_DIR", "./public/uploads")),
            temp_dir=Path(os.getenv("BACKUP_TEMP_DIR", "./temp")),
            admin_username=os.getenv("ADMIN_USERNAME", "admin"),
        )

    def __post_init__(self):
        """Validate configuration."""
        if not self.admin_username:
            raise ValueError("admin_username must not be empty")
        if Path(self.uploads_dir).resolve() == Path(self.temp_dir).resolve():
            raise ValueError("uploads_dir and temp_dir must be different directories")

    @property
    def export_dir(self) -> Path:
        return Path(self.temp_dir) / "export"

    @property
    def extract_dir(self) -> Path:
        return Path(self.temp_dir) / "extract"

    @property
    def incoming_dir(self) -> Path:
        return Path(self.temp_dir) / "incoming"


@dataclass(frozen=True)
class KopfolioConfig:
    """Complete backup subsystem configuration."""
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    backup: BackupConfig = field(default_factory=BackupConfig)

    @classmethod
    def from_env(cls) -> 'KopfolioConfig':
        """Create complete config from environment variables."""
        return cls(
            database=DatabaseConfig.from_env(),
            backup=BackupConfig.from_env(),
        )
