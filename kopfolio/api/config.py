"""Configuration for FastAPI application."""

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator, Field
from typing import List, Literal, Union
import json


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",  # Ignore extra environment variables
    )

    # API Configuration
    api_prefix: str = "/api"
    api_title: str = "Kopfolio backup API"
    api_version: str = "0.3.0"
    allowed_origins: Union[str, List[str]] = ["*"]

    @field_validator('allowed_origins', mode='before')
    @classmethod
    def parse_allowed_origins(cls, v):
        """Parse allowed_origins from string or list."""
        if isinstance(v, str):
            # If it's a JSON array string, parse it
            if v.startswith('['):
                try:
                    return json.loads(v)
                except json.JSONDecodeError:
                    return [v]
            # Single origin string
            return [v]
        return v

    # What to do once a restore completes: hand over to the supervisor or
    # keep running with fresh connections
    restart_mode: Literal["exit", "reconnect"] = "exit"
    restart_delay: float = Field(default=2.0, ge=0.0)

    # Transfers
    stream_chunk_size: int = Field(default=64 * 1024, gt=0)
    max_upload_bytes: int = Field(default=2 * 1024 ** 3, gt=0, description="Largest accepted backup upload")

    # Startup
    db_wait_attempts: int = Field(default=30, ge=1)
    db_wait_max_seconds: float = Field(default=5.0, gt=0.0)


settings = Settings()
