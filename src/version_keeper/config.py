"""Configuration management for Version-Keeper."""

import logging
import os
import tomllib
from pathlib import Path

import tomli_w
from pydantic import BaseModel, ConfigDict, Field, field_validator

from .store import StorageKeys
from .utils import ensure_dir, expand_path

logger = logging.getLogger(__name__)

DEFAULT_STORE_FILE = "~/.local/share/version-keeper/store.json"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class Config(BaseModel):
    """Configuration for Version-Keeper.

    Pydantic model that validates configuration values, including path
    expansion of the store file.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    store_file: Path
    table_name: str = Field(default="storage", min_length=1)
    version_key: str = Field(default=StorageKeys.APP_VERSION, min_length=1)
    log_level: str = "WARNING"

    @field_validator("store_file", mode="before")
    @classmethod
    def expand_paths(cls, v: str | Path) -> Path:
        """Expand path strings with ~ and environment variables."""
        if isinstance(v, str):
            return expand_path(v)
        return v

    @field_validator("log_level")
    @classmethod
    def check_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(LOG_LEVELS)}")
        return level

    def save(self, path: Path) -> None:
        """
        Save configuration to TOML file.

        Args:
            path: Path to save config file
        """
        ensure_dir(path.parent)

        data = {
            "store": {
                "file": str(self.store_file),
                "table": self.table_name,
                "version_key": self.version_key,
            },
            "logging": {
                "level": self.log_level,
            },
        }

        with open(path, "wb") as f:
            tomli_w.dump(data, f)


def get_config_path() -> Path:
    """
    Get configuration file path.

    Priority:
    1. VERSION_KEEPER_CONFIG environment variable
    2. Default: ~/.config/version-keeper/config.toml

    Returns:
        Path to config file
    """
    env_config = os.environ.get("VERSION_KEEPER_CONFIG")
    if env_config:
        return expand_path(env_config)

    return expand_path("~/.config/version-keeper/config.toml")


def create_default_config() -> Config:
    """Create default configuration."""
    return Config(store_file=expand_path(DEFAULT_STORE_FILE))


def load_config(config_path: Path | None = None) -> Config:
    """
    Load configuration from TOML file using Pydantic validation.

    Args:
        config_path: Optional custom config path

    Returns:
        Config instance with validated values

    Raises:
        ValueError: If config validation fails
    """
    if config_path is None:
        config_path = get_config_path()

    if config_path.exists():
        with open(config_path, "rb") as f:
            data = tomllib.load(f)

        store = data.get("store", {})
        flat_data = {
            "store_file": store.get("file", DEFAULT_STORE_FILE),
            "table_name": store.get("table", "storage"),
            "version_key": store.get("version_key", StorageKeys.APP_VERSION),
            "log_level": data.get("logging", {}).get("level", "WARNING"),
        }

        return Config.model_validate(flat_data)

    config = create_default_config()

    # Fall back to the in-memory config if it cannot be written
    try:
        config.save(config_path)
    except (OSError, PermissionError) as e:
        logger.warning(f"Could not save default config to {config_path}: {e}")

    return config
