"""Link-header pagination.

List endpoints return a ``Link`` header such as::

    <https://org.example.com/api/v1/users?after=00u1&limit=200>; rel="next",
    <https://org.example.com/api/v1/users?limit=200>; rel="self"

The paginator follows ``rel="next"`` until it disappears or the page cap
is reached. A malformed header ends pagination with a PaginationWarning
and the items collected so far.
"""
from __future__ import annotations
import re
import warnings
from dataclasses import replace
from typing import Iterator, Mapping, Optional
from urllib.parse import urlparse

from ..exceptions import PaginationWarning
from .cancellation import CancellationToken
from .context import DecodedResponse, RequestDescriptor
from .executor import RequestExecutor

LINK_HEADER = "Link"

_LINK_ENTRY = re.compile(r"^\s*<([^<>]*)>\s*((?:;[^;]*)*)$")
_REL_PARAM = re.compile(r';\s*rel\s*=\s*(?:"([^"]*)"|([^\s;"]+))', re.IGNORECASE)


class MalformedLinkHeader(ValueError):
    pass


def _split_entries(header: str) -> list[str]:
    """Split on commas that are outside <...> and quoted strings."""
    entries, current = [], []
    in_uri = in_quotes = False
    for char in header:
        if char == "<" and not in_quotes:
            in_uri = True
        elif char == ">" and not in_quotes:
            in_uri = False
        elif char == '"' and not in_uri:
            in_quotes = not in_quotes
        elif char == "," and not in_uri and not in_quotes:
            entries.append("".join(current))
            current = []
            continue
        current.append(char)
    entries.append("".join(current))
    return [entry for entry in entries if entry.strip()]


def parse_link_header(header: str) -> dict[str, str]:
    """Parse a Link header into ``{relation: uri}``.

    Raises:
        MalformedLinkHeader: If an entry is not ``<uri>; rel="..."``
    """
    links: dict[str, str] = {}
    for entry in _split_entries(header):
        match = _LINK_ENTRY.match(entry)
        if not match:
            raise MalformedLinkHeader(f"Unparseable link entry: {entry.strip()!r}")
        uri, params = match.groups()
        rel = _REL_PARAM.search(params)
        if not rel or not uri.strip():
            raise MalformedLinkHeader(f"Link entry without uri or rel: {entry.strip()!r}")
        for relation in (rel.group(1) or rel.group(2)).split():
            links.setdefault(relation.lower(), uri.strip())
    return links


def next_page_url(headers: Mapping[str, str], current_url: str) -> Optional[str]:
    """Return the ``rel="next"`` URI, or None on the last page.

    Raises:
        MalformedLinkHeader: If the header or the next URI is unusable
    """
    header = headers.get(LINK_HEADER)
    if not header:
        return None
    next_url = parse_link_header(header).get("next")
    if next_url is None:
        return None
    parsed = urlparse(next_url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise MalformedLinkHeader(f"Next link is not an absolute http(s) URI: {next_url!r}")
    if next_url == current_url:
        raise MalformedLinkHeader(f"Next link points back at the current page: {next_url!r}")
    return next_url


class Paginator:
    """Collect every page of a list call into one ordered result list."""

    def __init__(self, executor: RequestExecutor, max_pages: Optional[int] = None):
        self.executor = executor
        self.max_pages = max_pages

    @property
    def logger(self):
        return self.executor.context.logger

    def iter_pages(
        self,
        descriptor: RequestDescriptor,
        max_pages: Optional[int] = None,
        cancel: Optional[CancellationToken] = None,
    ) -> Iterator[DecodedResponse]:
        """Yield decoded pages in order, following continuation links."""
        cap = max_pages if max_pages is not None else self.max_pages
        current = descriptor
        pages_fetched = 0
        while True:
            response = self.executor.execute(current, cancel=cancel)
            pages_fetched += 1
            yield response

            if not current.paginate:
                return
            if cap is not None and pages_fetched >= cap:
                self.logger.info("Stopping after %d page(s): page cap reached", pages_fetched)
                return
            try:
                link = next_page_url(response.headers, response.url)
            except MalformedLinkHeader as exc:
                message = f"Malformed pagination header after page {pages_fetched}; returning partial results: {exc}"
                self.logger.warning(message)
                warnings.warn(message, PaginationWarning, stacklevel=3)
                return
            if link is None:
                return
            current = replace(current, url=link, query_params={})

    def collect(
        self,
        descriptor: RequestDescriptor,
        max_pages: Optional[int] = None,
        cancel: Optional[CancellationToken] = None,
    ) -> list:
        """Return the concatenated items of every page.

        With a page cap, stops once ``max_pages`` pages were fetched; the
        truncated list is a normal result, not an error.
        """
        items: list = []
        for page in self.iter_pages(descriptor, max_pages=max_pages, cancel=cancel):
            items.extend(page.items())
        return items
