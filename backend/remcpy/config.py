"""remcpy application configuration.

Loads settings from a single YAML file:
  * remcpy.settings.yaml: listen address, store location, retention, logging

Every key is optional; a missing file means all defaults. Command-line flags
(see ``remcpy.__main__``) are applied on top of the loaded settings.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml
from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

SETTINGS_FILE = Path("remcpy.settings.yaml")


def _load_yaml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        logger.warning("Config file not found: %s", path)
        return {}
    with path.open(encoding="utf-8") as fh:
        return yaml.safe_load(fh) or {}


# ---------------------------------------------------------------------------
# Settings models
# ---------------------------------------------------------------------------


class ServerSettings(BaseModel):
    host: str = "0.0.0.0"
    port: int = Field(5000, ge=1, le=65535)


class StoreSettings(BaseModel):
    """Where objects live and how long they are kept."""
    root:        str   = "./store"
    ttl_seconds: float = Field(3600, gt=0)
    chunk_size:  int   = Field(64 * 1024, gt=0)


LOG_LEVELS = ("critical", "error", "warning", "info", "debug")


class LoggingSettings(BaseModel):
    level: str = "info"

    @field_validator("level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        if value.lower() not in LOG_LEVELS:
            raise ValueError(f"Unknown log level: {value}")
        return value.lower()


class AppSettings(BaseModel):
    server:  ServerSettings  = Field(default_factory=ServerSettings)
    store:   StoreSettings   = Field(default_factory=StoreSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


# ---------------------------------------------------------------------------
# Public loader
# ---------------------------------------------------------------------------

_config: Optional[AppSettings] = None


def load_config(settings_path: Optional[Union[str, Path]] = None) -> AppSettings:
    """Load *settings_path* (default ``remcpy.settings.yaml``) into AppSettings."""
    path = Path(settings_path) if settings_path is not None else SETTINGS_FILE
    settings = AppSettings(**_load_yaml(path))
    logger.info(
        "Settings loaded (server=%s:%s, store=%s, ttl=%ss)",
        settings.server.host,
        settings.server.port,
        settings.store.root,
        settings.store.ttl_seconds,
    )
    return settings


def get_config() -> AppSettings:
    """Return the process-wide settings, loading them on first use."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def set_config(config: Optional[AppSettings]) -> None:
    """Set (or clear) the process-wide settings."""
    global _config
    _config = config
