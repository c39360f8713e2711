"""
Centralized configuration for the Rich Menu Publisher.

- Pure Python (dataclasses + stdlib), no Pydantic settings.
- Loads from OS env; optionally parses a .env file via python-dotenv.
- Strong typing & validation in __post_init__.
- Immutable singleton via functools.lru_cache.
- Secrets never logged (masked).
"""

from __future__ import annotations

import functools
import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal, Optional, cast
from urllib.parse import urlparse

from dotenv import load_dotenv


# ------------------------------------------------------------------------------
# .env loader
# ------------------------------------------------------------------------------
def _maybe_load_dotenv(env_path: Path) -> None:
    if env_path.exists():
        load_dotenv(dotenv_path=str(env_path), override=False)


# ------------------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------------------
def _mask_secret(value: Optional[str]) -> str:
    if not value:
        return "<unset>"
    if len(value) <= 8:
        return "***"
    return value[:2] + "…" + value[-2:]


def _get_env_str(key: str, default: Optional[str] = None, required: bool = False) -> Optional[str]:
    v = os.getenv(key, default)
    if required and (v is None or str(v).strip() == ""):
        raise ValueError(f"Missing required env var: {key}")
    return v


def _get_env_bool(key: str, default: bool = False) -> bool:
    v = os.getenv(key)
    if v is None:
        return default
    return v.strip().lower() in {"1", "true", "t", "yes", "y", "on"}


def _get_env_int(key: str, default: int) -> int:
    v = os.getenv(key)
    if v is None or v.strip() == "":
        return default
    try:
        return int(v)
    except ValueError:
        raise ValueError(f"Env var {key} must be an integer")


def _get_env_float(key: str, default: float) -> float:
    v = os.getenv(key)
    if v is None or v.strip() == "":
        return default
    try:
        return float(v)
    except ValueError:
        raise ValueError(f"Env var {key} must be a number")


def _validate_choice(value: str, *, choices: tuple[str, ...], key: str) -> str:
    if value not in choices:
        raise ValueError(f"{key} must be one of {choices}, got {value!r}")
    return value


def _validate_url(value: Optional[str], *, key: str, allowed_schemes: tuple[str, ...]) -> Optional[str]:
    if value in (None, ""):
        return None
    parsed = urlparse(value)
    if parsed.scheme not in allowed_schemes or not parsed.netloc:
        raise ValueError(f"{key} must be a valid URL with scheme in {allowed_schemes}")
    return value


def _validate_postgres_dsn(value: str, *, key: str) -> str:
    if not value.startswith("postgresql://") and not value.startswith("postgresql+asyncpg://"):
        raise ValueError(f"{key} must start with postgresql:// or postgresql+asyncpg://")
    return value


# ------------------------------------------------------------------------------
# Settings dataclass (immutable)
# ------------------------------------------------------------------------------
EnvName = Literal["local", "dev", "staging", "prod"]
JwtAlg = Literal["HS256"]
LogFormat = Literal["json", "console"]


@dataclass(frozen=True)
class Settings:
    # Environment
    environment: EnvName = "local"
    debug: bool = False
    is_testing: bool = False

    # Database pooling
    database_pool_size: int = 5
    database_max_overflow: int = 10

    # Core services
    database_url: str = field(default="")
    redis_url: Optional[str] = None
    secret_key: str = field(default="")
    jwt_algorithm: JwtAlg = "HS256"
    # Key material for stored LINE channel tokens; falls back to secret_key
    encryption_secret: Optional[str] = None

    # LINE Messaging API
    line_api_base_url: str = "https://api.line.me/v2/bot"
    line_data_api_base_url: str = "https://api-data.line.me/v2/bot"
    line_http_timeout_seconds: float = 30.0
    image_fetch_timeout_seconds: float = 15.0

    # Per-user publish lock
    publish_lock_ttl_seconds: int = 600
    publish_lock_wait_seconds: float = 5.0

    # Observability
    log_level: str = "INFO"
    log_format: Optional[LogFormat] = None

    # Paths
    base_dir: Path = field(default_factory=lambda: Path(__file__).resolve().parent.parent)

    # Derived/computed flags (filled in __post_init__)
    is_prod: bool = field(init=False)
    is_staging: bool = field(init=False)
    is_dev: bool = field(init=False)
    is_local: bool = field(init=False)

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "environment",
            _validate_choice(self.environment, choices=("local", "dev", "staging", "prod"), key="ENVIRONMENT"),
        )
        object.__setattr__(
            self, "jwt_algorithm",
            _validate_choice(self.jwt_algorithm, choices=("HS256",), key="JWT_ALGORITHM"),
        )
        if self.log_format is not None:
            _validate_choice(self.log_format, choices=("json", "console"), key="LOG_FORMAT")

        # Validate DSNs/URLs
        object.__setattr__(self, "database_url", _validate_postgres_dsn(self.database_url, key="DATABASE_URL"))
        if self.redis_url:
            _validate_url(self.redis_url, key="REDIS_URL", allowed_schemes=("redis", "rediss"))
        _validate_url(self.line_api_base_url, key="LINE_API_BASE_URL", allowed_schemes=("http", "https"))
        _validate_url(self.line_data_api_base_url, key="LINE_DATA_API_BASE_URL", allowed_schemes=("http", "https"))

        if not self.secret_key or not self.secret_key.strip():
            raise ValueError("SECRET_KEY must be set and non-empty")
        if self.encryption_secret is not None and len(self.encryption_secret) < 8:
            raise ValueError("ENCRYPTION_SECRET looks too short")

        if self.line_http_timeout_seconds <= 0:
            raise ValueError("LINE_HTTP_TIMEOUT_SECONDS must be > 0")
        if self.image_fetch_timeout_seconds <= 0:
            raise ValueError("IMAGE_FETCH_TIMEOUT_SECONDS must be > 0")
        if self.publish_lock_ttl_seconds <= 0:
            raise ValueError("PUBLISH_LOCK_TTL_SECONDS must be > 0")
        if self.publish_lock_wait_seconds < 0:
            raise ValueError("PUBLISH_LOCK_WAIT_SECONDS must be >= 0")

        if not re.fullmatch(r"(?i)DEBUG|INFO|WARNING|ERROR|CRITICAL", self.log_level.strip()):
            raise ValueError("LOG_LEVEL must be one of DEBUG, INFO, WARNING, ERROR, CRITICAL")

        env = self.environment
        object.__setattr__(self, "is_prod", env == "prod")
        object.__setattr__(self, "is_staging", env == "staging")
        object.__setattr__(self, "is_dev", env == "dev")
        object.__setattr__(self, "is_local", env == "local")

    @property
    def token_encryption_secret(self) -> str:
        return self.encryption_secret or self.secret_key

    # Safe dict (for debug prints without secrets)
    def safe_dict(self) -> dict:
        return {
            "environment": self.environment,
            "debug": self.debug,
            "is_testing": self.is_testing,
            "database_url": "<masked>" if self.database_url else "<unset>",
            "redis_url": "<masked>" if self.redis_url else "<unset>",
            "secret_key": _mask_secret(self.secret_key),
            "encryption_secret": _mask_secret(self.encryption_secret),
            "jwt_algorithm": self.jwt_algorithm,
            "line_api_base_url": self.line_api_base_url,
            "line_data_api_base_url": self.line_data_api_base_url,
            "line_http_timeout_seconds": self.line_http_timeout_seconds,
            "image_fetch_timeout_seconds": self.image_fetch_timeout_seconds,
            "publish_lock_ttl_seconds": self.publish_lock_ttl_seconds,
            "publish_lock_wait_seconds": self.publish_lock_wait_seconds,
            "log_level": self.log_level,
            "log_format": self.log_format or "<auto>",
            "database_pool_size": self.database_pool_size,
            "database_max_overflow": self.database_max_overflow,
            "base_dir": str(self.base_dir),
        }


# ------------------------------------------------------------------------------
# Loader (singleton)
# ------------------------------------------------------------------------------
_logger = logging.getLogger(__name__)


@functools.lru_cache(maxsize=1)
def get_settings() -> Settings:
    # Attempt to load .env from repo root (../.env relative to src/)
    env_file = Path(__file__).resolve().parent.parent.parent / ".env"
    _maybe_load_dotenv(env_file)

    settings = Settings(
        environment=cast(EnvName, _get_env_str("ENVIRONMENT", "local") or "local"),
        debug=_get_env_bool("DEBUG", False),
        is_testing=_get_env_bool("IS_TESTING", False),
        database_url=_get_env_str("DATABASE_URL", required=True) or "",
        redis_url=_get_env_str("REDIS_URL", None) or None,
        secret_key=_get_env_str("SECRET_KEY", required=True) or "",
        jwt_algorithm=cast(JwtAlg, _get_env_str("JWT_ALGORITHM", "HS256") or "HS256"),
        encryption_secret=_get_env_str("ENCRYPTION_SECRET", None) or None,
        line_api_base_url=_get_env_str("LINE_API_BASE_URL", "https://api.line.me/v2/bot") or "https://api.line.me/v2/bot",
        line_data_api_base_url=(
            _get_env_str("LINE_DATA_API_BASE_URL", "https://api-data.line.me/v2/bot")
            or "https://api-data.line.me/v2/bot"
        ),
        line_http_timeout_seconds=_get_env_float("LINE_HTTP_TIMEOUT_SECONDS", 30.0),
        image_fetch_timeout_seconds=_get_env_float("IMAGE_FETCH_TIMEOUT_SECONDS", 15.0),
        publish_lock_ttl_seconds=_get_env_int("PUBLISH_LOCK_TTL_SECONDS", 600),
        publish_lock_wait_seconds=_get_env_float("PUBLISH_LOCK_WAIT_SECONDS", 5.0),
        log_level=_get_env_str("LOG_LEVEL", "INFO") or "INFO",
        log_format=cast(Optional[LogFormat], _get_env_str("LOG_FORMAT", None) or None),
        database_pool_size=_get_env_int("DATABASE_POOL_SIZE", 5),
        database_max_overflow=_get_env_int("DATABASE_MAX_OVERFLOW", 10),
    )

    _logger.info("Settings loaded", extra={"settings": settings.safe_dict()})
    return settings
