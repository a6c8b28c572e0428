"""Pydantic models describing Release Radar configuration."""

from __future__ import annotations

import os
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator


class StorageBackend(str, Enum):
    """Document stores the reconciler can persist into."""

    MONGODB = "mongodb"
    SQLITE = "sqlite"


class GitHubConfig(BaseModel):
    """Upstream GraphQL endpoint and credentials."""

    url: str = "https://api.github.com/graphql"
    token: str = ""
    timeout: float = 30.0

    @model_validator(mode="after")
    def _token_from_env(self) -> "GitHubConfig":
        if not self.token:
            self.token = os.environ.get("GITHUB_TOKEN", "")
        if self.timeout <= 0:
            raise ValueError("timeout must be > 0")
        return self


class StorageConfig(BaseModel):
    """Where tracked repositories and their version history live."""

    backend: StorageBackend = StorageBackend.SQLITE
    mongo_uri: str = "mongodb://localhost:27017"
    database: str = "release_radar"
    collection: str = "repos"
    sqlite_path: Path = Field(default=Path("data/release_radar.db"))

    @field_validator("sqlite_path", mode="before")
    @classmethod
    def _coerce_path(cls, value: Any) -> Path:
        return Path(value)

    def resolved_sqlite_path(self, base_dir: Path) -> Path:
        """Return the SQLite path relative to the project home."""

        if not self.sqlite_path.is_absolute():
            return (base_dir / self.sqlite_path).resolve()
        return self.sqlite_path


class PollingConfig(BaseModel):
    """Knobs for the periodic reconciliation cycle."""

    # GitHub rejects aggregated queries that address too many repositories.
    batch_size: int = 50
    per_entity_count: int = 1
    interval_seconds: float = 300
    history_cap: int = 5
    fetch_workers: int = 4
    persist_workers: int = 4

    @model_validator(mode="after")
    def _validate_bounds(self) -> "PollingConfig":
        for field_name in (
            "batch_size",
            "per_entity_count",
            "history_cap",
            "fetch_workers",
            "persist_workers",
        ):
            if getattr(self, field_name) < 1:
                raise ValueError(f"{field_name} must be >= 1")
        if self.interval_seconds <= 0:
            raise ValueError("interval_seconds must be > 0")
        # A fetch window wider than the cap re-reports trimmed records as new.
        if self.per_entity_count > self.history_cap:
            raise ValueError("per_entity_count must not exceed history_cap")
        return self


class AppConfig(BaseModel):
    """Top level configuration file."""

    github: GitHubConfig = Field(default_factory=GitHubConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    polling: PollingConfig = Field(default_factory=PollingConfig)


__all__ = [
    "AppConfig",
    "GitHubConfig",
    "PollingConfig",
    "StorageBackend",
    "StorageConfig",
]
