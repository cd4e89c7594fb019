"""Configuration helpers for roster sync."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


class ConfigurationError(RuntimeError):
    """Raised when required configuration values are absent or invalid."""


@dataclass(slots=True)
class Settings:
    """Runtime configuration values loaded from environment variables."""

    registry_url: str
    registry_client_id: str
    registry_client_secret: str
    api_key: Optional[str] = None
    sheet_id: Optional[str] = None
    worksheet_name: str = "Teachers"
    google_service_account_json: Optional[str] = None
    google_service_account_file: Optional[Path] = None
    sync_interval_seconds: float = 60.0
    write_quiet_period_seconds: float = 600.0
    base_path: str = ""


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from exc


def load_settings(env_file: str | None = None) -> Settings:
    """Load settings from the environment, optionally from a specific file."""

    if env_file:
        load_dotenv(env_file)
    else:
        load_dotenv()

    registry_url = os.getenv("REGISTRY_URL")
    client_id = os.getenv("REGISTRY_CLIENT_ID")
    client_secret = os.getenv("REGISTRY_CLIENT_SECRET")

    if not registry_url:
        raise ConfigurationError("REGISTRY_URL must be configured")
    if not client_id:
        raise ConfigurationError("REGISTRY_CLIENT_ID must be configured")
    if not client_secret:
        raise ConfigurationError("REGISTRY_CLIENT_SECRET must be configured")

    service_account_json = os.getenv("GOOGLE_SERVICE_ACCOUNT_JSON") or None
    service_account_file = os.getenv("GOOGLE_SERVICE_ACCOUNT_FILE")
    if not service_account_json and not service_account_file:
        raise ConfigurationError(
            "GOOGLE_SERVICE_ACCOUNT_JSON or GOOGLE_SERVICE_ACCOUNT_FILE must be configured"
        )

    return Settings(
        registry_url=registry_url,
        registry_client_id=client_id,
        registry_client_secret=client_secret,
        api_key=os.getenv("API_KEY") or None,
        sheet_id=os.getenv("SHEET_ID") or None,
        worksheet_name=os.getenv("WORKSHEET_NAME", "Teachers"),
        google_service_account_json=service_account_json,
        google_service_account_file=(
            Path(service_account_file).expanduser() if service_account_file else None
        ),
        sync_interval_seconds=_float_env("SYNC_INTERVAL_SECONDS", 60.0),
        write_quiet_period_seconds=_float_env("WRITE_QUIET_PERIOD_SECONDS", 600.0),
        base_path=os.getenv("BASE_PATH", "").rstrip("/"),
    )


__all__ = ["Settings", "ConfigurationError", "load_settings"]
