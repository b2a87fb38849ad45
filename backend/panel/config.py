"""Admin panel backend configuration.

Loads settings from two YAML files:
  * panel.settings.yaml: non-secret configuration
  * panel.secrets.yaml: secrets (never committed)

The ``uploads`` section is shared by the ingest endpoint and by the
client-side upload orchestrator/surface, so both ends agree on size and
count limits.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

SETTINGS_FILE = Path("panel.settings.yaml")
SECRETS_FILE  = Path("panel.secrets.yaml")

MIB = 1024 * 1024


def _load_yaml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        logger.warning("Config file not found: %s", path)
        return {}
    with path.open(encoding="utf-8") as fh:
        return yaml.safe_load(fh) or {}


# ---------------------------------------------------------------------------
# Secrets models
# ---------------------------------------------------------------------------


class CloudinarySecrets(BaseModel):
    cloud_name: Optional[str] = None
    api_key:    Optional[str] = None
    api_secret: Optional[str] = None

    @property
    def configured(self) -> bool:
        return bool(self.cloud_name and self.api_key and self.api_secret)


class JWTSecrets(BaseModel):
    secret_key: str = "change-me-in-production"
    algorithm:  str = "HS256"


class Secrets(BaseModel):
    cloudinary: CloudinarySecrets = Field(default_factory=CloudinarySecrets)
    jwt:        JWTSecrets        = Field(default_factory=JWTSecrets)


# ---------------------------------------------------------------------------
# Settings models
# ---------------------------------------------------------------------------


class ServerSettings(BaseModel):
    host:   str  = "0.0.0.0"
    port:   int  = 8000
    reload: bool = False


class LoggingSettings(BaseModel):
    level: str = "info"


class AuthSettings(BaseModel):
    session_cookie:       str = "panel-session"
    token_expire_minutes: int = 60


class UploadSettings(BaseModel):
    """Limits and defaults for the media upload pipeline."""
    max_size_bytes:        int           = 10 * MIB
    max_files:             int           = 5
    folder:                str           = "uploads"
    multiple:              bool          = False
    accept:                Optional[str] = None
    show_preview:          bool          = True
    compensate_on_failure: bool          = True

    @field_validator("max_size_bytes", "max_files")
    @classmethod
    def _positive(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("must be a positive integer")
        return value

    @field_validator("folder")
    @classmethod
    def _folder_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("folder must not be empty")
        return value


class ClientSettings(BaseModel):
    base_url: str = "http://localhost:8000"


class AppSettings(BaseModel):
    server:  ServerSettings  = Field(default_factory=ServerSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    auth:    AuthSettings    = Field(default_factory=AuthSettings)
    uploads: UploadSettings  = Field(default_factory=UploadSettings)
    client:  ClientSettings  = Field(default_factory=ClientSettings)
    secrets: Secrets         = Field(default_factory=Secrets)


# ---------------------------------------------------------------------------
# Public loader
# ---------------------------------------------------------------------------


def load_settings(
    settings_file: Path = SETTINGS_FILE,
    secrets_file: Path = SECRETS_FILE,
) -> AppSettings:
    """Load and merge settings + secrets into a single *AppSettings* object."""
    settings_data = _load_yaml(settings_file)
    secrets_data  = _load_yaml(secrets_file)

    # Merge: secrets live under the "secrets" key in AppSettings
    settings_data["secrets"] = secrets_data

    app_settings = AppSettings(**settings_data)
    logger.info(
        "Settings loaded (server=%s:%s, uploads.folder=%s, uploads.max_size_bytes=%d, cloudinary=%s)",
        app_settings.server.host,
        app_settings.server.port,
        app_settings.uploads.folder,
        app_settings.uploads.max_size_bytes,
        "configured" if app_settings.secrets.cloudinary.configured else "missing",
    )
    return app_settings


_config: Optional[AppSettings] = None


def get_config() -> AppSettings:
    """Return the process-wide settings, loading them on first use."""
    global _config
    if _config is None:
        _config = load_settings()
    return _config


def set_config(config: Optional[AppSettings]) -> None:
    """Replace (or clear, with ``None``) the cached settings."""
    global _config
    _config = config
