"""HTTP client facade for the directory REST API.

Wires a ClientContext to the executor and paginator and exposes the
familiar get/post/put/delete helpers.
"""
from __future__ import annotations
import logging
import time
from typing import Any, Callable, Dict, Optional

import requests

from ..config.settings import ClientSettings
from .cancellation import CancellationToken
from .context import ClientContext, DecodedResponse, RequestDescriptor
from .executor import RequestExecutor
from .pagination import Paginator
from .secrets import SecretResolver


class DirectoryClient:
    """Rate-limited, retrying, paginating client for the directory API.

    Usage:
        settings = load_settings("directory.yaml")
        client = DirectoryClient.from_settings(settings)
        users = client.get("/users", params={"limit": "200"}, paginate=True)
    """

    def __init__(self, context: ClientContext, settings: Optional[ClientSettings] = None):
        self.context = context
        self.settings = settings
        self.executor = RequestExecutor(context)
        self.paginator = Paginator(self.executor, max_pages=context.max_pages)

    @classmethod
    def from_settings(
        cls,
        settings: ClientSettings,
        resolver: Optional[SecretResolver] = None,
        session: Optional[requests.Session] = None,
        logger: Optional[logging.Logger] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> "DirectoryClient":
        """Build a client; fails before any network call if the token is missing."""
        context = ClientContext.from_settings(
            settings,
            resolver=resolver,
            session=session,
            logger=logger,
            clock=clock,
            sleep=sleep,
        )
        return cls(context, settings=settings)

    def endpoint(self, name: str, **params: Any) -> str:
        """Format the named endpoint template from settings (e.g. ``user``)."""
        if self.settings is None:
            raise RuntimeError("Named endpoints need a client built from settings")
        return self.settings.endpoint(name, **params)

    def execute(self, descriptor: RequestDescriptor, cancel: Optional[CancellationToken] = None) -> DecodedResponse:
        """Run a single page of ``descriptor`` and keep the response metadata.

        Returns:
            DecodedResponse with status, headers, decoded body and attempt count
        """
        return self.executor.execute(descriptor, cancel=cancel)

    def request(
        self,
        descriptor: RequestDescriptor,
        max_pages: Optional[int] = None,
        cancel: Optional[CancellationToken] = None,
    ) -> Any:
        """Run a logical request.

        Returns:
            The list of all items for paginated descriptors, otherwise the
            decoded body (dict, list, or None)
        """
        if descriptor.paginate:
            return self.paginator.collect(descriptor, max_pages=max_pages, cancel=cancel)
        return self.executor.execute(descriptor, cancel=cancel).data

    def get(
        self,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        paginate: bool = False,
        max_pages: Optional[int] = None,
        cancel: Optional[CancellationToken] = None,
    ) -> Any:
        """Make a GET request.

        Args:
            path: API path below ``/api/{version}`` (e.g. "/users")
            params: Query parameters; None values are dropped
            paginate: Follow ``Link: rel="next"`` and merge every page
            max_pages: Page cap for this call (overrides the client default)
            cancel: Optional cancellation token

        Returns:
            Decoded JSON body, or the merged item list when paginating

        Raises:
            HttpError: Request failed (see AuthHttpError/TransientHttpError/FatalHttpError)
            RequestCancelledError: ``cancel`` fired
        """
        descriptor = RequestDescriptor("GET", path, params or {}, paginate=paginate)
        return self.request(descriptor, max_pages=max_pages, cancel=cancel)

    def post(
        self,
        path: str,
        json: Any = None,
        params: Optional[Dict[str, Any]] = None,
        cancel: Optional[CancellationToken] = None,
    ) -> Any:
        """Make a POST request.

        Args:
            path: API path below ``/api/{version}``
            json: Body, serialized as JSON
            params: Query parameters
            cancel: Optional cancellation token

        Returns:
            Decoded JSON body (None for an empty response)

        Raises:
            HttpError: Request failed
        """
        return self.request(RequestDescriptor("POST", path, params or {}, body=json), cancel=cancel)

    def put(
        self,
        path: str,
        json: Any = None,
        params: Optional[Dict[str, Any]] = None,
        cancel: Optional[CancellationToken] = None,
    ) -> Any:
        """Make a PUT request.

        Args:
            path: API path below ``/api/{version}``
            json: Body, serialized as JSON
            params: Query parameters
            cancel: Optional cancellation token

        Returns:
            Decoded JSON body (None for an empty response)

        Raises:
            HttpError: Request failed
        """
        return self.request(RequestDescriptor("PUT", path, params or {}, body=json), cancel=cancel)

    def delete(
        self,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        cancel: Optional[CancellationToken] = None,
    ) -> Any:
        """Make a DELETE request.

        Args:
            path: API path below ``/api/{version}``
            params: Query parameters
            cancel: Optional cancellation token

        Returns:
            Decoded JSON body (usually None)

        Raises:
            HttpError: Request failed
        """
        return self.request(RequestDescriptor("DELETE", path, params or {}), cancel=cancel)
