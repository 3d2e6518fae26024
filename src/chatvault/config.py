"""Runtime configuration. Defaults come from CHATVAULT_* environment variables; the CLI overrides them."""

import os
from pathlib import Path

from pydantic import BaseModel, Field, field_validator

from chatvault.application import (
    DEFAULT_REFRESH_INTERVAL_SECONDS,
    MIN_REFRESH_INTERVAL_SECONDS,
)

DEFAULT_PORT = 8080


def _env_path(name: str) -> Path | None:
    raw = os.environ.get(name, "").strip()
    return Path(raw) if raw else None


class ServerSettings(BaseModel):
    """Settings for one API server process."""

    db_path: Path | None = Field(default_factory=lambda: _env_path("CHATVAULT_DB_PATH"))
    auth_key: str = Field(default_factory=lambda: os.environ.get("CHATVAULT_AUTH_KEY", "").strip())
    host: str = Field(default_factory=lambda: os.environ.get("CHATVAULT_HOST", "0.0.0.0"))
    port: int = Field(default_factory=lambda: int(os.environ.get("CHATVAULT_PORT", str(DEFAULT_PORT))))
    refresh_interval: int = Field(
        default_factory=lambda: int(
            os.environ.get("CHATVAULT_REFRESH_INTERVAL", str(DEFAULT_REFRESH_INTERVAL_SECONDS))
        )
    )
    log_level: str = Field(default_factory=lambda: os.environ.get("CHATVAULT_LOG_LEVEL", "INFO"))

    @field_validator("port")
    @classmethod
    def _port_in_range(cls, value: int) -> int:
        if not 1 <= value <= 65535:
            raise ValueError(f"invalid port {value}, must be 1-65535")
        return value

    @field_validator("refresh_interval")
    @classmethod
    def _refresh_above_floor(cls, value: int) -> int:
        if value < MIN_REFRESH_INTERVAL_SECONDS:
            raise ValueError(
                f"invalid refresh interval {value}s, minimum is {MIN_REFRESH_INTERVAL_SECONDS}s"
            )
        return value

    @field_validator("log_level")
    @classmethod
    def _upper_level(cls, value: str) -> str:
        return value.strip().upper() or "INFO"


__all__ = ["DEFAULT_PORT", "ServerSettings"]
