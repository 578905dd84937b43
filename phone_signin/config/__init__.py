"""Configuration module for the sign-in service."""

from .logging import JSONFormatter, attempt_id, init_logging, mask_phone
from .settings import AppSettings, SettingsValidationError, load_settings

__all__ = [
    "AppSettings",
    "JSONFormatter",
    "SettingsValidationError",
    "attempt_id",
    "init_logging",
    "load_settings",
    "mask_phone",
]
