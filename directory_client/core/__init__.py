"""Directory REST API client library.

Architecture:
- secrets.py: API token resolution (environment, secret store, config)
- rate_limit.py: fixed-window dispatch limiter
- context.py: ClientContext, RequestDescriptor, DecodedResponse
- executor.py: single-request retry state machine
- pagination.py: Link-header pagination
- client.py: DirectoryClient facade (get/post/put/delete)
- users.py, groups.py, events.py: business operations built on the client

Usage:
    from directory_client.config import load_settings
    from directory_client.core import DirectoryClient, UserService

    client = DirectoryClient.from_settings(load_settings("directory.yaml"))
    users = UserService(client).list_users(search='status eq "ACTIVE"')
"""
from .cancellation import CancellationToken
from .client import DirectoryClient
from .context import ClientContext, DecodedResponse, RequestDescriptor
from .events import EventService
from .executor import CallState, RequestExecutor, RetryState, backoff_seconds, classify
from .groups import GroupService
from .pagination import MalformedLinkHeader, Paginator, next_page_url, parse_link_header
from .rate_limit import RateLimiter, RateLimitWindow
from .secrets import (
    ChainedSecretStore,
    KeyVaultSecretStore,
    MountedSecretStore,
    ResolvedSecret,
    SecretResolver,
)
from .users import UserService

__all__ = [
    # Client
    "DirectoryClient",
    "ClientContext",
    "RequestDescriptor",
    "DecodedResponse",
    "CancellationToken",

    # Components
    "SecretResolver",
    "ResolvedSecret",
    "MountedSecretStore",
    "KeyVaultSecretStore",
    "ChainedSecretStore",
    "RateLimiter",
    "RateLimitWindow",
    "RequestExecutor",
    "RetryState",
    "CallState",
    "classify",
    "backoff_seconds",
    "Paginator",
    "MalformedLinkHeader",
    "parse_link_header",
    "next_page_url",

    # Services
    "UserService",
    "GroupService",
    "EventService",
]
