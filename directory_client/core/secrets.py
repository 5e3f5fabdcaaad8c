"""API token resolution with a fixed precedence chain.

Priority (first usable value wins):
1. DIRECTORY_API_TOKEN environment variable
2. Secret store, when auth.secureStorage is "keyvault":
   /run/secrets cache first, then live Azure Key Vault
3. auth.apiToken literal from the config file (development only)

Known placeholder values count as absent at every tier. If nothing usable
is found, AuthResolutionError is raised and no client can be built.
"""
from __future__ import annotations
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional, Protocol, Sequence

from azure.core.exceptions import AzureError
from azure.identity import DefaultAzureCredential
from azure.keyvault.secrets import SecretClient

from ..config.settings import AuthSettings, SecureStorage
from ..exceptions import AuthResolutionError

logger = logging.getLogger(__name__)

API_TOKEN_ENV = "DIRECTORY_API_TOKEN"
SECRET_NAME_ENV = "DIRECTORY_API_TOKEN_SECRET_NAME"
KEY_VAULT_ENV = "DIRECTORY_KEY_VAULT_NAME"

SECRETS_DIR = Path("/run/secrets")

PLACEHOLDER_VALUES = frozenset({
    "changeme",
    "change-me",
    "replace_me",
    "replace-me",
    "your-api-token",
    "your_api_token",
    "<your-api-token>",
    "<api-token>",
    "not-configured",
})


def is_placeholder(value: Optional[str]) -> bool:
    """Return True when the value is empty or an unconfigured marker."""
    if value is None:
        return True
    stripped = value.strip()
    return not stripped or stripped.lower() in PLACEHOLDER_VALUES


class SecretStore(Protocol):
    def get_secret(self, secret_name: str, vault_name: Optional[str] = None) -> Optional[str]:
        ...


class MountedSecretStore:
    """Secrets mounted as files (Docker secrets / pre-loaded Key Vault cache)."""

    def __init__(self, root: Path = SECRETS_DIR):
        self.root = Path(root)

    def get_secret(self, secret_name: str, vault_name: Optional[str] = None) -> Optional[str]:
        # Both naming conventions are used by the loader scripts
        for candidate in dict.fromkeys((secret_name, secret_name.replace("-", "_"), secret_name.replace("_", "-"))):
            secret_file = self.root / candidate
            if not secret_file.is_file():
                continue
            try:
                value = secret_file.read_text(encoding="utf-8").strip()
            except OSError as exc:
                logger.warning("Failed to read %s: %s", secret_file, exc)
                continue
            if value:
                return value
        return None


class KeyVaultSecretStore:
    """Live Azure Key Vault lookup via DefaultAzureCredential."""

    def __init__(self, credential=None):
        self._credential = credential
        self._clients: dict[str, SecretClient] = {}

    def _client(self, vault_name: str) -> SecretClient:
        if vault_name not in self._clients:
            if self._credential is None:
                self._credential = DefaultAzureCredential()
            vault_uri = f"https://{vault_name}.vault.azure.net"
            self._clients[vault_name] = SecretClient(vault_url=vault_uri, credential=self._credential)
        return self._clients[vault_name]

    def get_secret(self, secret_name: str, vault_name: Optional[str] = None) -> Optional[str]:
        if not vault_name:
            return None
        try:
            secret = self._client(vault_name).get_secret(secret_name)
        except AzureError as exc:
            logger.warning("Key Vault lookup of '%s' in '%s' failed: %s", secret_name, vault_name, exc)
            return None
        return secret.value


class ChainedSecretStore:
    """Try each store in order and return the first non-empty value."""

    def __init__(self, stores: Sequence[SecretStore]):
        self.stores = list(stores)

    def get_secret(self, secret_name: str, vault_name: Optional[str] = None) -> Optional[str]:
        for store in self.stores:
            value = store.get_secret(secret_name, vault_name)
            if value:
                return value
        return None


def default_secret_store() -> ChainedSecretStore:
    return ChainedSecretStore([MountedSecretStore(), KeyVaultSecretStore()])


@dataclass(frozen=True)
class ResolvedSecret:
    value: str
    source: str

    def __repr__(self) -> str:
        return f"ResolvedSecret(source={self.source!r}, value='***')"


class SecretResolver:
    """Resolve the API token through environment, secret store, then config."""

    def __init__(
        self,
        store: Optional[SecretStore] = None,
        environ: Optional[Mapping[str, str]] = None,
    ):
        self._store = store
        self._environ = environ if environ is not None else os.environ

    @property
    def store(self) -> SecretStore:
        if self._store is None:
            self._store = default_secret_store()
        return self._store

    def resolve(self, auth: AuthSettings) -> ResolvedSecret:
        """Return the first usable secret.

        Raises:
            AuthResolutionError: If no tier yields a non-placeholder value
        """
        consulted = []

        consulted.append(f"env:{API_TOKEN_ENV}")
        value = self._environ.get(API_TOKEN_ENV)
        if not is_placeholder(value):
            logger.info("API token loaded from environment (%s)", API_TOKEN_ENV)
            return ResolvedSecret(value.strip(), "environment")

        if auth.secure_storage is SecureStorage.KEY_VAULT:
            vault_name = self._environ.get(KEY_VAULT_ENV) or auth.key_vault_name or None
            secret_name = self._environ.get(SECRET_NAME_ENV) or auth.secret_name
            consulted.append(f"store:{vault_name or '-'}/{secret_name}")
            value = self.store.get_secret(secret_name, vault_name)
            if not is_placeholder(value):
                logger.info("API token loaded from secret store (%s)", secret_name)
                return ResolvedSecret(value.strip(), "secret-store")
            logger.warning("Secret '%s' not found in secret store", secret_name)

        consulted.append("config:auth.apiToken")
        value = auth.api_token
        if not is_placeholder(value):
            logger.warning("API token taken from config file; use only for development")
            return ResolvedSecret(value.strip(), "config")

        raise AuthResolutionError(
            "No usable API token found (checked: " + ", ".join(consulted) + "). "
            f"Set {API_TOKEN_ENV} or configure auth.secureStorage=keyvault."
        )
