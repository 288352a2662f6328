from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional


# Environment variable names
ENV_DATA_DIR = "FINTRACK_DATA_DIR"
ENV_SLOT_QUOTA = "FINTRACK_SLOT_QUOTA"
ENV_REMOTE_URL_TEMPLATE = "FINTRACK_REMOTE_URL_TEMPLATE"
ENV_REMOTE_TIMEOUT = "FINTRACK_REMOTE_TIMEOUT"
ENV_ALLOW_REMOTE_UNSET = "FINTRACK_ALLOW_REMOTE_UNSET"

DEFAULT_DATA_DIR = ".fintrack"
DEFAULT_SLOT_QUOTA = 5_000_000
DEFAULT_REMOTE_URL_TEMPLATE = "https://script.google.com/macros/s/{key}/exec"
DEFAULT_REMOTE_TIMEOUT = 15.0

SLOT_FILE_NAME = "slots.json"

_TRUTHY = {"1", "true", "yes", "on"}


class ConfigError(RuntimeError):
    """Raised when environment configuration is present but unusable."""


def _getenv(name: str, default: Optional[str] = None) -> Optional[str]:
    val = os.environ.get(name)
    return val if val not in (None, "") else default


def _parse_quota(raw: Optional[str]) -> int:
    if raw is None:
        return DEFAULT_SLOT_QUOTA
    try:
        quota = int(raw)
    except ValueError as ex:
        raise ConfigError(f"{ENV_SLOT_QUOTA} must be an integer, got {raw!r}") from ex
    if quota <= 0:
        raise ConfigError(f"{ENV_SLOT_QUOTA} must be > 0")
    return quota


def _parse_timeout(raw: Optional[str]) -> float:
    if raw is None:
        return DEFAULT_REMOTE_TIMEOUT
    try:
        timeout = float(raw)
    except ValueError as ex:
        raise ConfigError(f"{ENV_REMOTE_TIMEOUT} must be a number, got {raw!r}") from ex
    if timeout <= 0:
        raise ConfigError(f"{ENV_REMOTE_TIMEOUT} must be > 0")
    return timeout


@dataclass(frozen=True)
class AppConfig:
    """
    Process configuration for the tracker's persistence layer.

    Environment variables (all optional)
    - `FINTRACK_DATA_DIR`:            directory for the local slot file
    - `FINTRACK_SLOT_QUOTA`:          byte quota of the local slot file
    - `FINTRACK_REMOTE_URL_TEMPLATE`: remote base URL, `{key}` = endpoint identifier
    - `FINTRACK_REMOTE_TIMEOUT`:      seconds per remote request
    - `FINTRACK_ALLOW_REMOTE_UNSET`:  allow clearing a configured remote endpoint
    """

    data_dir: Path = Path(DEFAULT_DATA_DIR)
    slot_quota: int = DEFAULT_SLOT_QUOTA
    remote_url_template: str = DEFAULT_REMOTE_URL_TEMPLATE
    remote_timeout: float = DEFAULT_REMOTE_TIMEOUT
    allow_remote_unset: bool = False

    @property
    def slot_path(self) -> Path:
        return self.data_dir / SLOT_FILE_NAME

    @classmethod
    def from_env(cls) -> "AppConfig":
        template = _getenv(ENV_REMOTE_URL_TEMPLATE, DEFAULT_REMOTE_URL_TEMPLATE) or DEFAULT_REMOTE_URL_TEMPLATE
        if "{key}" not in template:
            raise ConfigError(f"{ENV_REMOTE_URL_TEMPLATE} must contain a {{key}} placeholder")
        allow = (_getenv(ENV_ALLOW_REMOTE_UNSET, "") or "").strip().lower() in _TRUTHY
        return cls(
            data_dir=Path(_getenv(ENV_DATA_DIR, DEFAULT_DATA_DIR) or DEFAULT_DATA_DIR),
            slot_quota=_parse_quota(_getenv(ENV_SLOT_QUOTA)),
            remote_url_template=template,
            remote_timeout=_parse_timeout(_getenv(ENV_REMOTE_TIMEOUT)),
            allow_remote_unset=allow,
        )


__all__ = ["AppConfig", "ConfigError"]
