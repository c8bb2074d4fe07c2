"""Configuration management for the trip widget engine.

Provides:
- A ``Config`` base class with dict and JSON round-tripping
- Storage and auto-save settings with working defaults
- ``AppConfig``, the environment-driven settings used by the API entry point
- The canonical collection names shared by every layer
"""

import json
import os as _os
from pathlib import Path
from typing import Any, Dict

from utils.access import AccessTier, ItemTypeId

# ── Collection names ─────────────────────────────────────────────────────────
# Logical keys in the key-value store. A deployment-specific prefix from
# StorageConfig.key_prefix is prepended by UnifiedStorage.

WIDGET_CONFIGS = "widget-configs"
PENDING_WIDGET_LINKS = "pending-widget-links"
AUTO_SAVE_METADATA = "auto-save-metadata"


def items_collection(item_type: ItemTypeId | str) -> str:
    """Collection holding the saved items of one type, e.g. ``budget-items``."""
    return f"{ItemTypeId(item_type).value}-items"


def draft_slot(item_type: ItemTypeId | str) -> str:
    """Key of the per-type scratch slot for unbound widget edits."""
    return f"current-{ItemTypeId(item_type).value}"


class Config:
    """Base configuration class for organizing application settings."""

    def __init__(self):
        pass

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary.

        Returns:
            Dictionary of all public config attributes
        """
        return {k: v for k, v in self.__dict__.items() if not k.startswith("_")}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Config":
        """Create config from dictionary, starting from the class defaults.

        Args:
            data: Configuration dictionary

        Returns:
            Config instance with values from dictionary
        """
        config = cls()
        for key, value in data.items():
            setattr(config, key, value)
        return config

    def save_json(self, path: Path) -> None:
        """Save configuration to JSON file.

        Args:
            path: Path to save configuration file
        """
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            json.dump(self.to_dict(), f, indent=2, default=str)

    @classmethod
    def load_json(cls, path: Path) -> "Config":
        """Load configuration from JSON file.

        Raises:
            FileNotFoundError: If file doesn't exist
            json.JSONDecodeError: If file is not valid JSON
        """
        with open(path, "r") as f:
            data = json.load(f)
        return cls.from_dict(data)


class StorageConfig(Config):
    """Configuration for the key-value store and its collections."""

    def __init__(self):
        super().__init__()
        self.backend = "memory"  # memory | sqlite
        self.db_path = Path("trip_widgets.sqlite")
        self.key_prefix = ""
        self.quota_bytes: int | None = None


class AutoSaveConfig(Config):
    """Configuration for debounced write-back."""

    def __init__(self):
        super().__init__()
        self.delay_seconds = 1.0
        self.capability = "saveData"
        self.metadata_limit = 40


class AppConfig(Config):
    """Application-level configuration loaded from environment variables.

    All env vars have defaults so the engine works without any configuration.

    Environment variables:
        APP_STORAGE_BACKEND: "memory" or "sqlite" (default: sqlite)
        APP_DB_PATH: SQLite key-value file (default: trip_widgets.sqlite)
        APP_KEY_PREFIX: Prefix prepended to every stored key (default: none)
        APP_STORAGE_QUOTA_BYTES: Byte quota for the memory backend (default: none)
        APP_USER_TIER: anonymous | standard | premium (default: standard)
        AUTOSAVE_DELAY_MS: Debounce window in milliseconds (default: 1000)
        APP_LOG_FORMAT: "text" or "json" (default: text)
        APP_HOST: API bind address (default: 127.0.0.1)
        APP_PORT: API port (default: 8000)
        APP_CORS_ORIGINS: Comma-separated allowed origins (default: *)
    """

    def __init__(self) -> None:
        super().__init__()
        self.storage_backend = _os.getenv("APP_STORAGE_BACKEND", "sqlite")
        self.db_path = Path(_os.getenv("APP_DB_PATH", "trip_widgets.sqlite"))
        self.key_prefix = _os.getenv("APP_KEY_PREFIX", "")
        raw_quota = _os.getenv("APP_STORAGE_QUOTA_BYTES", "")
        self.quota_bytes: int | None = int(raw_quota) if raw_quota else None
        self.user_tier = AccessTier(_os.getenv("APP_USER_TIER", "standard"))
        self.autosave_delay_ms = int(_os.getenv("AUTOSAVE_DELAY_MS", "1000"))
        self.log_format = _os.getenv("APP_LOG_FORMAT", "text")
        self.api_host = _os.getenv("APP_HOST", "127.0.0.1")
        self.api_port = int(_os.getenv("APP_PORT", "8000"))
        raw_origins = _os.getenv("APP_CORS_ORIGINS", "*")
        self.cors_origins: list[str] = (
            ["*"] if raw_origins == "*"
            else [o.strip() for o in raw_origins.split(",") if o.strip()]
        )

    @classmethod
    def from_env(cls) -> "AppConfig":
        """Create an AppConfig instance populated from environment variables."""
        return cls()

    def storage_config(self) -> StorageConfig:
        sc = StorageConfig()
        sc.backend = self.storage_backend
        sc.db_path = self.db_path
        sc.key_prefix = self.key_prefix
        sc.quota_bytes = self.quota_bytes
        return sc

    def autosave_config(self) -> AutoSaveConfig:
        ac = AutoSaveConfig()
        ac.delay_seconds = self.autosave_delay_ms / 1000.0
        return ac
