"""Audit event retrieval."""
from __future__ import annotations
from datetime import datetime, timezone
from typing import List, Optional, Union

from .client import DirectoryClient

Timestamp = Union[str, datetime, None]


def format_timestamp(value: Timestamp) -> Optional[str]:
    """Render a datetime as the ISO-8601 UTC form the API expects."""
    if value is None or isinstance(value, str):
        return value
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


class EventService:
    """Service for reading the system audit log."""

    def __init__(self, client: DirectoryClient):
        self.client = client

    def fetch_events(
        self,
        since: Timestamp = None,
        until: Timestamp = None,
        filter_expr: Optional[str] = None,
        limit: Optional[int] = None,
        max_pages: Optional[int] = None,
    ) -> List[dict]:
        """Fetch audit events in the given time range, following every page."""
        params = {
            "since": format_timestamp(since),
            "until": format_timestamp(until),
            "filter": filter_expr,
            "limit": limit,
        }
        return self.client.get(self.client.endpoint("events"), params=params, paginate=True, max_pages=max_pages)
