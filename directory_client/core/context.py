"""Per-session client state and request value objects."""
from __future__ import annotations
import json
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, Optional
from urllib.parse import urlencode

import requests

from ..config.settings import ClientSettings
from .rate_limit import RateLimiter
from .secrets import SecretResolver

ALLOWED_METHODS = ("GET", "POST", "PUT", "DELETE")


@dataclass(frozen=True)
class RequestDescriptor:
    """One logical API call.

    ``path`` is relative to the versioned API root. ``url`` overrides it
    with an absolute URI, as used when following continuation links.
    """
    method: str = "GET"
    path: str = ""
    query_params: Mapping[str, Any] = field(default_factory=dict)
    body: Any = None
    paginate: bool = False
    url: Optional[str] = None

    def __post_init__(self):
        method = self.method.upper()
        if method not in ALLOWED_METHODS:
            raise ValueError(f"Unsupported HTTP method '{self.method}'")
        object.__setattr__(self, "method", method)
        object.__setattr__(self, "query_params", dict(self.query_params or {}))
        if not self.url and not self.path.startswith("/"):
            raise ValueError(f"Request path must start with '/', got '{self.path}'")


@dataclass
class DecodedResponse:
    status_code: int
    data: Any
    headers: Mapping[str, str]
    url: str
    attempts: int

    def items(self) -> list:
        """Response body as a sequence; a single object becomes one item."""
        if self.data is None:
            return []
        if isinstance(self.data, list):
            return list(self.data)
        return [self.data]


@dataclass(frozen=True)
class ClientContext:
    """Configuration and state shared by the executor and paginator.

    Everything except the rate limiter's counters is read-only after
    construction. Build one per session with ``from_settings``.
    """
    base_url: str
    api_version: str
    auth_header_name: str
    auth_header_prefix: str
    resolved_secret: str = field(repr=False)
    retry_on_401: bool = False
    max_retries: int = 5
    rate_limiter: RateLimiter = field(default_factory=lambda: RateLimiter(600))
    read_timeout: float = 30.0
    logger: logging.Logger = field(default_factory=lambda: logging.getLogger("directory_client"))
    max_pages: Optional[int] = None
    session: requests.Session = field(default_factory=requests.Session, repr=False)
    sleep: Callable[[float], None] = field(default=time.sleep, repr=False)

    def __post_init__(self):
        object.__setattr__(self, "base_url", self.base_url.rstrip("/"))
        if self.max_retries < 1:
            raise ValueError(f"max_retries must be >= 1, got {self.max_retries}")

    @classmethod
    def from_settings(
        cls,
        settings: ClientSettings,
        resolver: Optional[SecretResolver] = None,
        session: Optional[requests.Session] = None,
        logger: Optional[logging.Logger] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> "ClientContext":
        """Resolve the API token and build the context.

        Raises:
            AuthResolutionError: If no usable token is available
        """
        logger = logger or logging.getLogger("directory_client")
        secret = (resolver or SecretResolver()).resolve(settings.auth)
        logger.info(
            "Directory client configured for %s (api=%s, token source=%s, limit=%d/min)",
            settings.base_url,
            settings.api_version,
            secret.source,
            settings.rate_limit_per_minute,
        )
        return cls(
            base_url=settings.base_url,
            api_version=settings.api_version,
            auth_header_name=settings.auth.token_header,
            auth_header_prefix=settings.auth.token_prefix,
            resolved_secret=secret.value,
            retry_on_401=settings.auth.retry_on_401,
            max_retries=settings.max_retries,
            rate_limiter=RateLimiter(settings.rate_limit_per_minute, clock=clock, sleep=sleep, logger=logger),
            read_timeout=float(settings.timeouts.read_timeout_seconds),
            logger=logger,
            max_pages=settings.max_pages,
            session=session or requests.Session(),
            sleep=sleep,
        )

    @property
    def rate_limit_per_minute(self) -> int:
        return self.rate_limiter.limit_per_minute

    @property
    def api_root(self) -> str:
        return f"{self.base_url}/api/{self.api_version}"

    def build_url(self, descriptor: RequestDescriptor) -> str:
        """Absolute URI for ``descriptor``.

        Continuation URLs are used verbatim; otherwise the path is joined to
        ``api_root`` and non-None query params are urlencoded.
        """
        if descriptor.url:
            return descriptor.url
        url = f"{self.api_root}{descriptor.path}"
        params = {k: v for k, v in descriptor.query_params.items() if v is not None}
        if params:
            url = f"{url}?{urlencode(params)}"
        return url

    def request_headers(self, has_body: bool) -> dict[str, str]:
        """Auth and content negotiation headers for one attempt."""
        token = f"{self.auth_header_prefix} {self.resolved_secret}" if self.auth_header_prefix else self.resolved_secret
        headers = {
            self.auth_header_name: token,
            "Accept": "application/json",
        }
        if has_body:
            headers["Content-Type"] = "application/json"
        return headers


def encode_body(body: Any) -> Optional[bytes]:
    """Serialize a request body to JSON bytes (bytes/str pass through)."""
    if body is None:
        return None
    if isinstance(body, bytes):
        return body
    if isinstance(body, str):
        return body.encode("utf-8")
    return json.dumps(body).encode("utf-8")
