from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

import yaml

from .errors import ConfigError

DEFAULT_API_BASE = "https://api.raindrop.io/rest/v1"
TOKEN_HELP_URL = "https://app.raindrop.io/settings/integrations"


def _env_int(name: str, default: int) -> int:
    v = os.getenv(name)
    if v is None or v == "":
        return default
    try:
        return int(v)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    v = os.getenv(name)
    if v is None or v == "":
        return default
    try:
        return float(v)
    except ValueError:
        return default


def _env_bool(name: str, default: bool) -> bool:
    v = os.getenv(name)
    if v is None or v == "":
        return default
    return v.strip().lower() in ("1", "true", "yes", "y", "on")


def _env_str(name: str, default: str) -> str:
    v = os.getenv(name)
    return default if v is None else v


def _coerce(value: Any, current: Any) -> Any:
    """Convert a YAML value to the type of the setting it replaces; keep the old value if it does not fit."""
    if value is None:
        return current
    try:
        if isinstance(current, bool):
            if isinstance(value, str):
                return value.strip().lower() in ("1", "true", "yes", "y", "on")
            return bool(value)
        if isinstance(current, int):
            return int(value)
        if isinstance(current, float):
            return float(value)
        if isinstance(current, str):
            return str(value)
    except (TypeError, ValueError):
        return current
    return value


@dataclass
class Settings:
    # Raindrop API
    token: str = ""
    api_base: str = DEFAULT_API_BASE
    timeout_s: int = 30

    # Rate limiting / retries
    request_delay_s: float = 0.2
    max_retries: int = 3
    retry_delay_s: float = 1.0  # doubles each attempt
    rate_limit_cooldown_s: float = 5.0
    fetch_jobs: int = 1  # 1 => strictly sequential

    # Output
    out_dir: str = "."
    collections_file: str = "collections.csv"
    raindrops_file: str = "all_raindrops_with_paths.csv"

    # Logging / UX
    log_level: str = "INFO"
    no_color: bool = False

    @staticmethod
    def from_env() -> "Settings":
        s = Settings()
        s.token = _env_str("RAINDROP_TOKEN", s.token).strip()
        s.api_base = _env_str("RAINDROP_API_BASE", s.api_base) or DEFAULT_API_BASE
        s.timeout_s = _env_int("DROPMAP_TIMEOUT_S", s.timeout_s)

        s.request_delay_s = _env_float("DROPMAP_REQUEST_DELAY_S", s.request_delay_s)
        s.max_retries = _env_int("DROPMAP_MAX_RETRIES", s.max_retries)
        s.retry_delay_s = _env_float("DROPMAP_RETRY_DELAY_S", s.retry_delay_s)
        s.rate_limit_cooldown_s = _env_float("DROPMAP_RATE_LIMIT_COOLDOWN_S", s.rate_limit_cooldown_s)
        s.fetch_jobs = _env_int("DROPMAP_FETCH_JOBS", s.fetch_jobs)

        s.out_dir = _env_str("DROPMAP_OUT_DIR", s.out_dir)
        s.collections_file = _env_str("DROPMAP_COLLECTIONS_FILE", s.collections_file)
        s.raindrops_file = _env_str("DROPMAP_RAINDROPS_FILE", s.raindrops_file)

        s.log_level = _env_str("DROPMAP_LOG_LEVEL", s.log_level)
        s.no_color = _env_bool("DROPMAP_NO_COLOR", s.no_color)
        return s

    @staticmethod
    def from_file(path: Path) -> "Settings":
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        s = Settings.from_env()
        for k, v in data.items():
            if hasattr(s, k):
                setattr(s, k, _coerce(v, getattr(s, k)))
        return s

    def require_token(self) -> str:
        if not self.token:
            raise ConfigError(f"Missing RAINDROP_TOKEN (set it in .env). Get a token from: {TOKEN_HELP_URL}")
        return self.token

    @property
    def collections_path(self) -> Path:
        return Path(self.out_dir) / self.collections_file

    @property
    def raindrops_path(self) -> Path:
        return Path(self.out_dir) / self.raindrops_file


def load_settings(config_path: Optional[str]) -> Settings:
    if config_path:
        return Settings.from_file(Path(config_path))
    return Settings.from_env()
