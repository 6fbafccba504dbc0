"""Core configuration.

Why here:
- Centralizes environment variables (pydantic-settings) without leaking them
  into the CLI.
- Lets adapters (HTTP gateway, logging) read config consistently.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Any, Mapping

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


APP_DIR_NAME = "crm-sync"
ENV_PREFIX = "CRM_SYNC_"


def get_user_config_dir() -> Path:
    """Per-user config directory: %APPDATA% on Windows, XDG elsewhere."""

    if sys.platform.startswith("win"):
        root = os.environ.get("APPDATA") or str(Path.home())
    else:
        root = os.environ.get("XDG_CONFIG_HOME") or str(Path.home() / ".config")
    return Path(root) / APP_DIR_NAME


def get_user_env_file() -> Path:
    return get_user_config_dir() / ".env"


def _read_env_file(path: Path) -> dict[str, str]:
    if not path.exists():
        return {}
    entries: dict[str, str] = {}
    for line in path.read_text(encoding="utf-8").splitlines():
        key, sep, value = line.partition("=")
        key = key.strip()
        if sep and key and not key.startswith("#"):
            entries[key] = value.strip().strip("\"'")
    return entries


class AppSettings(BaseSettings):
    """Central application settings.

    Why pydantic-settings:
    - Typing and validation at the edge (env vars) without cluttering the Core.
    - One configuration contract for the CLI and the adapters.
    """

    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX,
        extra="ignore",
        case_sensitive=False,
        # Order: project first (dev), then the user's global config.
        env_file=(".env", str(get_user_env_file())),
        env_file_encoding="utf-8",
    )

    remote_base_url: str = Field(
        default="http://localhost:8080",
        min_length=8,
        description="Base URL of the document/blob gateway.",
    )
    remote_api_token: str | None = Field(
        default=None,
        description="Bearer token sent to the gateway (if it requires one).",
    )
    http_timeout_seconds: float = Field(
        default=20.0,
        gt=0,
        description="Per-request timeout (seconds).",
    )
    user_agent: str = Field(
        default="crm-sync/0.1",
        min_length=1,
        description="User-Agent sent to the gateway.",
    )
    current_user_ttl_seconds: float = Field(
        default=60.0,
        ge=0,
        description="How long the current-user lookup stays cached.",
    )
    user_id: str | None = Field(
        default=None,
        description="Uid the CLI acts as (stands in for the auth service).",
    )
    log_level: str = Field(
        default="WARNING",
        description="Root logging level for the CLI.",
    )


def save_user_settings(updates: Mapping[str, Any], env_path: Path | None = None) -> Path:
    """Persist `AppSettings` fields into the user's .env.

    Keys are field names (`user_id`), stored under their `CRM_SYNC_` variable.
    A None value leaves the stored entry untouched. Unknown fields raise
    ValueError so a typo never lands in the file.
    """

    unknown = sorted(set(updates) - set(AppSettings.model_fields))
    if unknown:
        raise ValueError(f"Unknown setting(s): {', '.join(unknown)}")

    env_path = env_path or get_user_env_file()
    entries = _read_env_file(env_path)
    for name, value in updates.items():
        if value is not None:
            entries[f"{ENV_PREFIX}{name.upper()}"] = str(value)

    env_path.parent.mkdir(parents=True, exist_ok=True)
    body = "".join(f"{key}={entries[key]}\n" for key in sorted(entries))
    env_path.write_text("# crm-sync user settings\n" + body, encoding="utf-8")
    return env_path
