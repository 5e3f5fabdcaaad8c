"""Settings loader for the directory API client.

Configuration is read once at startup from a YAML (or JSON) document and
validated into typed dataclasses. Anything missing or malformed raises
ConfigError immediately, before any secret lookup or network activity.
"""
from __future__ import annotations
import enum
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml

from ..exceptions import ConfigError

CONFIG_PATH_ENV = "DIRECTORY_CLIENT_CONFIG"

LOG_LEVELS = ("Debug", "Info", "Warn", "Error")

DEFAULT_ENDPOINTS: dict[str, str] = {
    "users": "/users",
    "user": "/users/{user_id}",
    "userLifecycle": "/users/{user_id}/lifecycle/{action}",
    "groupMembers": "/groups/{group_id}/users",
    "groupMember": "/groups/{group_id}/users/{user_id}",
    "events": "/logs",
}


class SecureStorage(str, enum.Enum):
    """Where the operator keeps the API token."""
    ENVIRONMENT = "environment"
    KEY_VAULT = "keyvault"
    CONFIG = "config"


@dataclass(frozen=True)
class AuthSettings:
    token_header: str = "Authorization"
    token_prefix: str = "SSWS"
    secure_storage: SecureStorage = SecureStorage.ENVIRONMENT
    key_vault_name: str = ""
    secret_name: str = "directory-api-token"
    retry_on_401: bool = False
    # Development-only fallback; never commit a real token here.
    api_token: str = ""


@dataclass(frozen=True)
class TimeoutSettings:
    read_timeout_seconds: int = 30


@dataclass(frozen=True)
class LoggingSettings:
    enabled: bool = True
    log_level: str = "Info"
    log_file: str = ""


@dataclass(frozen=True)
class ClientSettings:
    """Validated client configuration container."""
    base_url: str
    api_version: str = "v1"
    auth: AuthSettings = field(default_factory=AuthSettings)
    rate_limit_per_minute: int = 600
    max_retries: int = 5
    max_pages: Optional[int] = None
    timeouts: TimeoutSettings = field(default_factory=TimeoutSettings)
    logging: LoggingSettings = field(default_factory=LoggingSettings)
    endpoints: dict[str, str] = field(default_factory=lambda: dict(DEFAULT_ENDPOINTS))

    def endpoint(self, name: str, **params: Any) -> str:
        """Format the named path template with ``params``."""
        try:
            template = self.endpoints[name]
        except KeyError:
            raise ConfigError(f"Endpoint '{name}' is not configured") from None
        try:
            return template.format(**params)
        except KeyError as exc:
            raise ConfigError(f"Endpoint '{name}' requires parameter {exc}") from None


def _section(data: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    value = data.get(key) or {}
    if not isinstance(value, Mapping):
        raise ConfigError(f"'{key}' must be a mapping, got {type(value).__name__}")
    return value


def _as_bool(value: Any, key: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in ("true", "false", "yes", "no", "1", "0"):
        return value.strip().lower() in ("true", "yes", "1")
    raise ConfigError(f"'{key}' must be a boolean, got {value!r}")


def _as_int(value: Any, key: str, minimum: int) -> int:
    if isinstance(value, bool):
        raise ConfigError(f"'{key}' must be an integer, got {value!r}")
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ConfigError(f"'{key}' must be an integer, got {value!r}") from None
    if number < minimum:
        raise ConfigError(f"'{key}' must be >= {minimum}, got {number}")
    return number


def _parse_auth(data: Mapping[str, Any]) -> AuthSettings:
    defaults = AuthSettings()
    raw_storage = str(data.get("secureStorage", defaults.secure_storage.value)).strip().lower()
    try:
        storage = SecureStorage(raw_storage)
    except ValueError:
        allowed = ", ".join(s.value for s in SecureStorage)
        raise ConfigError(f"'auth.secureStorage' must be one of {allowed}, got {raw_storage!r}") from None

    header = str(data.get("tokenHeader", defaults.token_header)).strip()
    if not header:
        raise ConfigError("'auth.tokenHeader' must not be empty")

    return AuthSettings(
        token_header=header,
        token_prefix=str(data.get("tokenPrefix", defaults.token_prefix)).strip(),
        secure_storage=storage,
        key_vault_name=str(data.get("keyVaultName") or "").strip(),
        secret_name=str(data.get("secretName") or defaults.secret_name).strip(),
        retry_on_401=_as_bool(data.get("retryOn401", defaults.retry_on_401), "auth.retryOn401"),
        api_token=str(data.get("apiToken") or ""),
    )


def _parse_logging(data: Mapping[str, Any]) -> LoggingSettings:
    level = str(data.get("logLevel", "Info")).strip().capitalize()
    if level == "Warning":
        level = "Warn"
    if level not in LOG_LEVELS:
        raise ConfigError(f"'logging.logLevel' must be one of {', '.join(LOG_LEVELS)}, got {level!r}")
    return LoggingSettings(
        enabled=_as_bool(data.get("enabled", True), "logging.enabled"),
        log_level=level,
        log_file=str(data.get("logFile") or "").strip(),
    )


def settings_from_mapping(data: Mapping[str, Any]) -> ClientSettings:
    """Validate a raw configuration mapping into ClientSettings.

    Raises:
        ConfigError: If a required field is missing or a value is invalid
    """
    if not isinstance(data, Mapping):
        raise ConfigError("Configuration document must be a mapping at the top level")

    base_url = str(data.get("baseUrl") or "").strip().rstrip("/")
    if not base_url:
        raise ConfigError("'baseUrl' is required")
    if not base_url.startswith(("http://", "https://")):
        raise ConfigError(f"'baseUrl' must be an http(s) URL, got {base_url!r}")

    api_version = str(data.get("apiVersion") or "v1").strip().strip("/")

    max_pages = data.get("maxPages")
    timeouts = _section(data, "timeouts")

    endpoints = dict(DEFAULT_ENDPOINTS)
    for name, template in _section(data, "endpoints").items():
        endpoints[str(name)] = str(template)

    return ClientSettings(
        base_url=base_url,
        api_version=api_version,
        auth=_parse_auth(_section(data, "auth")),
        rate_limit_per_minute=_as_int(data.get("rateLimitPerMinute", 600), "rateLimitPerMinute", 1),
        max_retries=_as_int(data.get("maxRetries", 5), "maxRetries", 1),
        max_pages=None if max_pages is None else _as_int(max_pages, "maxPages", 1),
        timeouts=TimeoutSettings(
            read_timeout_seconds=_as_int(
                timeouts.get("readTimeoutSeconds", 30), "timeouts.readTimeoutSeconds", 1
            ),
        ),
        logging=_parse_logging(_section(data, "logging")),
        endpoints=endpoints,
    )


def load_settings(path: str | os.PathLike[str] | None = None) -> ClientSettings:
    """Load client settings from a YAML/JSON file.

    Args:
        path: Config file path (defaults to DIRECTORY_CLIENT_CONFIG env var)

    Returns:
        Validated ClientSettings

    Raises:
        ConfigError: If the file is missing, unreadable, or invalid
    """
    raw_path = path or os.environ.get(CONFIG_PATH_ENV)
    if not raw_path:
        raise ConfigError(f"No config path given and {CONFIG_PATH_ENV} is not set")

    config_file = Path(raw_path)
    if not config_file.is_file():
        raise ConfigError(f"Config file not found: {config_file}")

    try:
        text = config_file.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Config file unreadable: {config_file}: {exc}") from exc

    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Config file is not valid YAML/JSON: {config_file}: {exc}") from exc

    if data is None:
        raise ConfigError(f"Config file is empty: {config_file}")

    return settings_from_mapping(data)
