"""FileDrop configuration — Pydantic BaseSettings loaded from .env."""

from __future__ import annotations

from functools import lru_cache
from importlib.resources import files
from pathlib import Path

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings, fixed for the lifetime of the process."""

    app_name: str = "FileDrop"
    debug: bool = False
    log_level: str = "INFO"

    # Network
    host: str = "127.0.0.1"
    port: int = 8080
    api_prefix: str = "/api"
    cors_origins: list[str] = [
        "http://localhost:8080",
    ]

    # Storage paths (relative resolved from the working directory at runtime)
    upload_dir: str = "./uploaded"
    static_dir: str = ""  # empty = assets shipped inside the package

    # Download streaming
    chunk_size: int = 64 * 1024  # 64 KB

    uvicorn_workers: int = 1

    model_config = SettingsConfigDict(
        env_file=(".env", "../.env"),
        env_file_encoding="utf-8",
        env_prefix="FILEDROP_",
        extra="ignore",
    )

    @field_validator("cors_origins", mode="before")
    @classmethod
    def assemble_cors_origins(cls, value: list[str] | str) -> list[str]:
        if isinstance(value, str) and not value.startswith("["):
            return [o.strip() for o in value.split(",") if o.strip()]
        if isinstance(value, list):
            return value
        return ["http://localhost:8080"]

    @field_validator("chunk_size")
    @classmethod
    def _positive_chunk_size(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("chunk_size must be positive")
        return value

    @model_validator(mode="after")
    def _resolve_paths(self) -> "Settings":
        """Ensure storage directories are absolute."""
        if not self.static_dir:
            self.static_dir = str(files("filedrop") / "static")
        base = Path.cwd()
        for field in ("upload_dir", "static_dir"):
            val = getattr(self, field)
            if not Path(val).is_absolute():
                setattr(self, field, str(base / val))
        return self


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
