"""Pytest shared fixtures: stub HTTP sessions, fake time, client contexts."""
import json
import logging
from typing import Optional

import pytest
import requests
from requests.structures import CaseInsensitiveDict

from directory_client.core.context import ClientContext
from directory_client.core.rate_limit import RateLimiter

BASE_URL = "https://example.directory.test"


# ─────────────────────────────────────────────────────────────────────────────
# Network Guard Rails
# ─────────────────────────────────────────────────────────────────────────────
@pytest.fixture(autouse=True)
def _block_real_http(monkeypatch, request):
    """Prevent unit tests from opening real connections.

    Integration tests are marked with @pytest.mark.integration and skip this.
    """
    if request.node.get_closest_marker("integration"):
        return

    def _refuse(self, method, url, *args, **kwargs):
        raise RuntimeError(f"Unexpected HTTP {method} in unit test: {url}")

    monkeypatch.setattr(requests.Session, "request", _refuse)


@pytest.fixture(autouse=True)
def _restore_package_logger():
    """configure_logging() mutates the package logger; undo it per test."""
    pkg_logger = logging.getLogger("directory_client")
    saved = (list(pkg_logger.handlers), pkg_logger.propagate, pkg_logger.level)
    yield
    for handler in list(pkg_logger.handlers):
        if handler not in saved[0]:
            pkg_logger.removeHandler(handler)
            handler.close()
    pkg_logger.propagate = saved[1]
    pkg_logger.setLevel(saved[2])


@pytest.fixture(autouse=True)
def _clean_secret_env(monkeypatch):
    for var in (
        "DIRECTORY_API_TOKEN",
        "DIRECTORY_API_TOKEN_SECRET_NAME",
        "DIRECTORY_KEY_VAULT_NAME",
        "DIRECTORY_CLIENT_CONFIG",
    ):
        monkeypatch.delenv(var, raising=False)


# ─────────────────────────────────────────────────────────────────────────────
# Stub HTTP
# ─────────────────────────────────────────────────────────────────────────────
def build_response(status_code: int = 200, payload=None, headers: Optional[dict] = None,
                  text: Optional[str] = None, url: str = BASE_URL) -> requests.Response:
    """Build a real requests.Response with the given status/body/headers."""
    resp = requests.Response()
    resp.status_code = status_code
    if text is not None:
        resp._content = text.encode("utf-8")
    elif payload is not None:
        resp._content = json.dumps(payload).encode("utf-8")
    else:
        resp._content = b""
    resp.encoding = "utf-8"
    resp.headers = CaseInsensitiveDict(headers or {})
    resp.url = url
    return resp


class StubSession:
    """Replays queued responses (or raises queued exceptions) in order."""

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.calls = []

    def queue(self, *outcomes):
        self.outcomes.extend(outcomes)

    def request(self, method, url, data=None, headers=None, timeout=None):
        self.calls.append({
            "method": method,
            "url": url,
            "data": data,
            "headers": dict(headers or {}),
            "timeout": timeout,
        })
        if not self.outcomes:
            raise AssertionError(f"No stub response queued for {method} {url}")
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


class FakeClock:
    """Monotonic clock whose sleep() advances time instantly."""

    def __init__(self, start: float = 1000.0):
        self.now = start
        self.sleeps = []

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def session():
    return StubSession()


@pytest.fixture()
def make_context(session, clock):
    """Factory for a ClientContext wired to the stub session and fake clock."""

    def _make(**overrides):
        limit = overrides.pop("rate_limit_per_minute", 600)
        base = dict(
            base_url=BASE_URL,
            api_version="v1",
            auth_header_name="Authorization",
            auth_header_prefix="SSWS",
            resolved_secret="test-token",
            retry_on_401=False,
            max_retries=5,
            rate_limiter=RateLimiter(limit, clock=clock, sleep=clock.sleep),
            read_timeout=30.0,
            logger=logging.getLogger("directory_client.tests"),
            session=session,
            sleep=clock.sleep,
        )
        base.update(overrides)
        return ClientContext(**base)

    return _make


@pytest.fixture()
def make_response():
    return build_response
