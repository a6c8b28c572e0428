"""Configuration loading helpers for Release Radar."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path

import yaml

from .models import AppConfig

CONFIG_EXTENSIONS = (".yaml", ".yml", ".json")
CONFIG_FILENAME = "config.yaml"


def _read_file(path: Path) -> dict:
    if path.suffix not in CONFIG_EXTENSIONS:
        raise ValueError(f"Unsupported configuration format: {path.suffix}")
    text = path.read_text(encoding="utf-8")
    if path.suffix in (".yaml", ".yml"):
        data = yaml.safe_load(text) or {}
    else:
        data = json.loads(text)
    if not isinstance(data, dict):
        raise ValueError(f"Configuration file must contain a mapping: {path}")
    return data


def _write_file(path: Path, payload: dict) -> None:
    with path.open("w", encoding="utf-8") as stream:
        if path.suffix in (".yaml", ".yml"):
            yaml.safe_dump(payload, stream, allow_unicode=True, sort_keys=False)
        else:
            json.dump(payload, stream, indent=2, ensure_ascii=False)


@dataclass(slots=True)
class ConfigLocator:
    """Resolve important paths from project root."""

    project_root: Path | None = None
    data_dir: Path | None = None
    logs_dir: Path | None = None

    def __post_init__(self) -> None:
        env_root = os.environ.get("RELEASE_RADAR_HOME")
        if env_root:
            root = Path(env_root).expanduser().resolve()
        else:
            root = (self.project_root or Path(__file__).resolve().parents[2]).resolve()
        self.project_root = root
        self.data_dir = (root / "data").resolve()
        self.logs_dir = (root / "logs").resolve()
        self.ensure_directories()

    def ensure_directories(self) -> None:
        for directory in (self.data_dir, self.logs_dir):
            directory.mkdir(parents=True, exist_ok=True)

    def config_path(self) -> Path:
        return self.data_dir / CONFIG_FILENAME


class ConfigRepository:
    """Repository encapsulating config IO and schema validation."""

    def __init__(self, locator: ConfigLocator | None = None) -> None:
        self.locator = locator or ConfigLocator()
        self._cache: AppConfig | None = None

    def load_config(self) -> AppConfig:
        if self._cache is not None:
            return self._cache
        path = self.locator.config_path()
        if path.exists():
            config = AppConfig.model_validate(_read_file(path))
        else:
            config = AppConfig()
            self.save_config(config)
        self._cache = config
        return config

    def save_config(self, config: AppConfig) -> Path:
        path = self.locator.config_path()
        payload = config.model_dump(mode="json")
        # Tokens picked up from the environment stay out of the file.
        if payload["github"]["token"] == os.environ.get("GITHUB_TOKEN"):
            payload["github"]["token"] = ""
        _write_file(path, payload)
        self._cache = config
        return path

    def sqlite_path(self) -> Path:
        config = self.load_config()
        return config.storage.resolved_sqlite_path(self.locator.project_root)


__all__ = ["ConfigLocator", "ConfigRepository", "CONFIG_EXTENSIONS"]
