"""Configuration module for the directory API client."""
from .settings import (
    AuthSettings,
    ClientSettings,
    LoggingSettings,
    SecureStorage,
    TimeoutSettings,
    load_settings,
    settings_from_mapping,
)
from .logging_setup import configure_logging

__all__ = [
    "AuthSettings",
    "ClientSettings",
    "LoggingSettings",
    "SecureStorage",
    "TimeoutSettings",
    "load_settings",
    "settings_from_mapping",
    "configure_logging",
]
