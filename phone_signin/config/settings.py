"""Typed application settings loaded from static environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Mapping

LogLevel = str

ENV_DB_PATH = "SIGNIN_DB_PATH"
ENV_BIND = "SIGNIN_BIND"
ENV_LOG_LEVEL = "SIGNIN_LOG_LEVEL"
ENV_SECRET_FILE = "SIGNIN_SECRET_FILE"  # noqa: S105
ENV_API_URL = "SIGNIN_API_URL"
ENV_PROVIDER_API_KEY = "SIGNIN_PROVIDER_API_KEY"
ENV_PROVIDER_BASE_URL = "SIGNIN_PROVIDER_BASE_URL"
ENV_COUNTRY_CODE = "SIGNIN_COUNTRY_CODE"
ENV_RECAPTCHA_CONTAINER = "SIGNIN_RECAPTCHA_CONTAINER"
ENV_ATTEMPT_TTL_SECONDS = "SIGNIN_ATTEMPT_TTL_SECONDS"
ENV_CORS_ALLOW_ORIGINS = "SIGNIN_CORS_ALLOW_ORIGINS"

DEFAULT_DB_PATH = Path("/data/signin.db")
DEFAULT_BIND = "127.0.0.1"
DEFAULT_LOG_LEVEL: LogLevel = "INFO"
DEFAULT_SECRET_FILE: Path | None = None
DEFAULT_API_URL = "http://localhost:5000"
DEFAULT_PROVIDER_BASE_URL = "https://identitytoolkit.googleapis.com"
DEFAULT_COUNTRY_CODE = "+91"
DEFAULT_RECAPTCHA_CONTAINER = "recaptcha-container"
DEFAULT_ATTEMPT_TTL_SECONDS = 900

VALID_LOG_LEVELS: frozenset[LogLevel] = frozenset(
    {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"},
)


class SettingsValidationError(ValueError):
    """Raised when static settings env vars contain invalid values."""

    @classmethod
    def for_empty_value(cls, env_var: str) -> SettingsValidationError:
        """Build error for empty non-optional env var values."""
        message = f"Invalid {env_var}: value cannot be empty."
        return cls(message)

    @classmethod
    def for_invalid_choice(
        cls,
        env_var: str,
        value: str,
        allowed_values: str,
    ) -> SettingsValidationError:
        """Build error for enum-like env vars with fixed allowlists."""
        message = f"Invalid {env_var}: {value!r}. Allowed values: {allowed_values}."
        return cls(message)

    @classmethod
    def for_invalid_format(
        cls,
        env_var: str,
        value: str,
        expected: str,
    ) -> SettingsValidationError:
        """Build error for values that do not match the expected shape."""
        message = f"Invalid {env_var}: {value!r}. Expected {expected}."
        return cls(message)


@dataclass(frozen=True, slots=True)
class AppSettings:
    """Resolved static configuration values for process startup."""

    db_path: Path
    bind: str
    log_level: LogLevel
    secret_file: Path | None
    api_url: str
    provider_api_key: str | None
    provider_base_url: str
    country_code: str
    recaptcha_container: str
    attempt_ttl_seconds: int
    cors_allow_origins: tuple[str, ...]


def load_settings(environ: Mapping[str, str] | None = None) -> AppSettings:
    """Load and validate static settings from process environment."""
    env = os.environ if environ is None else environ

    return AppSettings(
        db_path=_read_db_path(env),
        bind=_read_required_text(env, ENV_BIND, DEFAULT_BIND),
        log_level=_read_log_level(env),
        secret_file=_read_secret_file(env),
        api_url=_read_url(env, ENV_API_URL, DEFAULT_API_URL),
        provider_api_key=_read_optional_text(env, ENV_PROVIDER_API_KEY),
        provider_base_url=_read_url(
            env,
            ENV_PROVIDER_BASE_URL,
            DEFAULT_PROVIDER_BASE_URL,
        ),
        country_code=_read_country_code(env),
        recaptcha_container=_read_required_text(
            env,
            ENV_RECAPTCHA_CONTAINER,
            DEFAULT_RECAPTCHA_CONTAINER,
        ),
        attempt_ttl_seconds=_read_attempt_ttl_seconds(env),
        cors_allow_origins=_read_cors_allow_origins(env),
    )


def _read_db_path(environ: Mapping[str, str]) -> Path:
    raw = environ.get(ENV_DB_PATH)
    if raw is None:
        return DEFAULT_DB_PATH
    value = raw.strip()
    if not value:
        raise SettingsValidationError.for_empty_value(ENV_DB_PATH)
    return Path(value).expanduser()


def _read_required_text(
    environ: Mapping[str, str],
    env_var: str,
    default: str,
) -> str:
    raw = environ.get(env_var)
    if raw is None:
        return default
    value = raw.strip()
    if not value:
        raise SettingsValidationError.for_empty_value(env_var)
    return value


def _read_optional_text(environ: Mapping[str, str], env_var: str) -> str | None:
    raw = environ.get(env_var)
    if raw is None:
        return None
    value = raw.strip()
    return value or None


def _read_url(environ: Mapping[str, str], env_var: str, default: str) -> str:
    value = _read_required_text(environ, env_var, default)
    if not value.startswith(("http://", "https://")):
        raise SettingsValidationError.for_invalid_format(
            env_var,
            value,
            "an http:// or https:// URL",
        )
    return value.rstrip("/")


def _read_log_level(environ: Mapping[str, str]) -> LogLevel:
    raw = environ.get(ENV_LOG_LEVEL)
    if raw is None:
        return DEFAULT_LOG_LEVEL
    value = raw.strip().upper()
    if value in VALID_LOG_LEVELS:
        return value
    allowed = ", ".join(sorted(VALID_LOG_LEVELS))
    raise SettingsValidationError.for_invalid_choice(ENV_LOG_LEVEL, raw, allowed)


def _read_secret_file(environ: Mapping[str, str]) -> Path | None:
    raw = environ.get(ENV_SECRET_FILE)
    if raw is None:
        return DEFAULT_SECRET_FILE
    value = raw.strip()
    if not value:
        return DEFAULT_SECRET_FILE
    return Path(value).expanduser()


def _read_country_code(environ: Mapping[str, str]) -> str:
    value = _read_required_text(environ, ENV_COUNTRY_CODE, DEFAULT_COUNTRY_CODE)
    if not value.startswith("+") or not value[1:].isdigit():
        raise SettingsValidationError.for_invalid_format(
            ENV_COUNTRY_CODE,
            value,
            "a '+' followed by digits",
        )
    return value


def _read_attempt_ttl_seconds(environ: Mapping[str, str]) -> int:
    raw = environ.get(ENV_ATTEMPT_TTL_SECONDS)
    if raw is None:
        return DEFAULT_ATTEMPT_TTL_SECONDS
    value = raw.strip()
    if not value.isdigit() or int(value) <= 0:
        raise SettingsValidationError.for_invalid_format(
            ENV_ATTEMPT_TTL_SECONDS,
            raw,
            "a positive integer",
        )
    return int(value)


def _read_cors_allow_origins(environ: Mapping[str, str]) -> tuple[str, ...]:
    raw = environ.get(ENV_CORS_ALLOW_ORIGINS)
    if raw is None:
        return ()
    return tuple(origin.strip() for origin in raw.split(",") if origin.strip())
