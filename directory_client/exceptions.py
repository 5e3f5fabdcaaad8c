"""Typed exceptions for the directory API client."""
from __future__ import annotations
from typing import Optional


class DirectoryClientError(Exception):
    """Base exception for all directory client operations."""
    pass


class ConfigError(DirectoryClientError):
    """Configuration missing, unreadable, or missing required fields."""
    pass


class AuthResolutionError(DirectoryClientError):
    """No usable API secret was found through any precedence tier."""
    pass


class RequestCancelledError(DirectoryClientError):
    """The caller cancelled the request or its deadline passed."""
    pass


class HttpError(DirectoryClientError):
    """Terminal failure of a logical request.

    Attributes:
        status_code: Last HTTP status code (None for transport failures)
        attempts: Number of physical attempts made
        last_error: Description of the last classified failure
        url: URI of the last attempt
        exhausted: True when the retry budget ran out
    """

    exhausted = False

    def __init__(self, status_code: Optional[int], attempts: int, last_error: str, url: str = ""):
        self.status_code = status_code
        self.attempts = attempts
        self.last_error = last_error
        self.url = url
        status = status_code if status_code is not None else "no status"
        super().__init__(f"[{status}] {url} after {attempts} attempt(s): {last_error}")


class AuthHttpError(HttpError):
    """401 after retries were exhausted or with 401 retry disabled."""
    pass


class TransientHttpError(HttpError):
    """429/5xx after the retry budget was exhausted."""

    exhausted = True


class FatalHttpError(HttpError):
    """Non-retryable 4xx or a transport failure (connection, timeout)."""
    pass


class PaginationWarning(UserWarning):
    """Malformed continuation data; pagination stops with partial results."""
    pass


class UserNotFoundError(DirectoryClientError):
    """User lookup failed - no such user id or login."""
    pass


class GroupNotFoundError(DirectoryClientError):
    """Group does not exist."""
    pass
