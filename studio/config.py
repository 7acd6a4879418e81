"""Application configuration loaded from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from studio.utils.env import default_env_path, load_env_file

load_env_file(default_env_path(), override=False)

_DEFAULT_ORIGINS = "http://localhost:5173"
_DEFAULT_SCHEDULER_URL = "http://localhost:8000/api"


@dataclass(frozen=True)
class Settings:
  """Typed settings for the timetable studio service."""

  environment: str
  debug: bool
  allowed_origins: tuple[str, ...]
  scheduler_base_url: str
  scheduler_token: str | None
  http_timeout_seconds: float
  poll_interval_seconds: float
  poll_timeout_seconds: float | None
  screen_idle_ttl_seconds: float | None
  log_dir: str | None
  log_max_bytes: int
  log_backup_count: int
  log_http_4xx: bool


def _parse_origins(raw: str | None) -> tuple[str, ...]:
  origins = [origin.strip() for origin in (raw or _DEFAULT_ORIGINS).split(",") if origin.strip()]

  if not origins:
    raise ValueError("STUDIO_ALLOWED_ORIGINS must include at least one origin.")

  if "*" in origins:
    raise ValueError("STUDIO_ALLOWED_ORIGINS must not include wildcard origins.")

  return tuple(origins)


def _parse_bool(raw: str | None) -> bool:
  """Parse a boolean-ish string from environment variables."""

  if raw is None:
    return False

  normalized = raw.strip().lower()
  return normalized in {"1", "true", "yes", "on"}


def _optional_str(raw: str | None) -> str | None:
  if raw is None:
    return None
  value = raw.strip()
  if value == "":
    return None
  return value


def _parse_positive_float(name: str, default: str) -> float:
  value = float(os.getenv(name, default))
  if value <= 0:
    raise ValueError(f"{name} must be a positive number.")
  return value


def _parse_optional_limit(name: str, default: str) -> float | None:
  # Zero disables the limit; negative values are a configuration mistake.
  value = float(os.getenv(name, default))
  if value < 0:
    raise ValueError(f"{name} must be zero or a positive number.")
  return value or None


@lru_cache(maxsize=1)
def get_settings() -> Settings:
  """Load settings once per process."""

  environment = os.getenv("STUDIO_ENV", "development").lower()
  debug = _parse_bool(os.getenv("STUDIO_DEBUG"))

  scheduler_base_url = (os.getenv("STUDIO_SCHEDULER_BASE_URL") or _DEFAULT_SCHEDULER_URL).strip().rstrip("/")
  if not scheduler_base_url.startswith(("http://", "https://")):
    raise ValueError("STUDIO_SCHEDULER_BASE_URL must be an http(s) URL.")

  http_timeout_seconds = _parse_positive_float("STUDIO_HTTP_TIMEOUT_SECONDS", "10")
  poll_interval_seconds = _parse_positive_float("STUDIO_POLL_INTERVAL_SECONDS", "2")

  poll_timeout_seconds = _parse_optional_limit("STUDIO_POLL_TIMEOUT_SECONDS", "900")
  screen_idle_ttl_seconds = _parse_optional_limit("STUDIO_SCREEN_IDLE_TTL_SECONDS", "3600")

  log_max_bytes = int(os.getenv("STUDIO_LOG_MAX_BYTES", "5242880"))  # 5MB default
  if log_max_bytes <= 0:
    raise ValueError("STUDIO_LOG_MAX_BYTES must be a positive integer.")

  log_backup_count = int(os.getenv("STUDIO_LOG_BACKUP_COUNT", "10"))
  if log_backup_count < 0:
    raise ValueError("STUDIO_LOG_BACKUP_COUNT must be zero or a positive integer.")

  return Settings(
    environment=environment,
    debug=debug,
    allowed_origins=_parse_origins(os.getenv("STUDIO_ALLOWED_ORIGINS")),
    scheduler_base_url=scheduler_base_url,
    scheduler_token=_optional_str(os.getenv("STUDIO_SCHEDULER_TOKEN")),
    http_timeout_seconds=http_timeout_seconds,
    poll_interval_seconds=poll_interval_seconds,
    poll_timeout_seconds=poll_timeout_seconds,
    screen_idle_ttl_seconds=screen_idle_ttl_seconds,
    log_dir=_optional_str(os.getenv("STUDIO_LOG_DIR")),
    log_max_bytes=log_max_bytes,
    log_backup_count=log_backup_count,
    # Allow opt-in logging of 4xx HTTPExceptions for diagnostics.
    log_http_4xx=_parse_bool(os.getenv("STUDIO_LOG_HTTP_4XX")),
  )
