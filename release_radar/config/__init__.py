"""Configuration package exports."""

from .loader import ConfigLocator, ConfigRepository
from .models import (
    AppConfig,
    GitHubConfig,
    PollingConfig,
    StorageBackend,
    StorageConfig,
)

__all__ = [
    "AppConfig",
    "ConfigLocator",
    "ConfigRepository",
    "GitHubConfig",
    "PollingConfig",
    "StorageBackend",
    "StorageConfig",
]
