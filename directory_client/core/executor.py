"""Single-request execution with classification and bounded retries.

Each logical call walks an explicit state machine:

    INIT -> DISPATCHING -> SUCCESS
                        -> AUTH_RETRY      -> DISPATCHING
                        -> THROTTLE_RETRY  -> DISPATCHING
                        -> FATAL

Retryable outcomes never leave this module; callers see a decoded
response or one of AuthHttpError / TransientHttpError / FatalHttpError
(or RequestCancelledError when a cancellation token fires).
"""
from __future__ import annotations
import enum
from dataclasses import dataclass
from typing import Callable, Optional

import requests

from ..exceptions import (
    AuthHttpError,
    FatalHttpError,
    HttpError,
    RequestCancelledError,
    TransientHttpError,
)
from .cancellation import CancellationToken
from .context import ClientContext, DecodedResponse, RequestDescriptor, encode_body

AUTH_BACKOFF_CAP = 30
THROTTLE_BACKOFF_CAP = 60


class CallState(enum.Enum):
    INIT = "init"
    DISPATCHING = "dispatching"
    SUCCESS = "success"
    AUTH_RETRY = "auth_retry"
    THROTTLE_RETRY = "throttle_retry"
    FATAL = "fatal"


@dataclass
class RetryState:
    """Attempt bookkeeping for one logical call; never shared."""
    max_attempts: int
    attempt_number: int = 1
    last_classified_error: str = ""

    @property
    def can_retry(self) -> bool:
        return self.attempt_number < self.max_attempts


def is_throttle_or_server_error(status_code: int) -> bool:
    return status_code == 429 or status_code >= 500


def classify(status_code: Optional[int], retry: RetryState, retry_on_401: bool) -> CallState:
    """Map one physical outcome to the next state.

    ``status_code`` is None for transport-level failures.
    """
    if status_code is None:
        return CallState.FATAL
    if 200 <= status_code < 300:
        return CallState.SUCCESS
    if status_code == 401:
        if retry_on_401 and retry.can_retry:
            return CallState.AUTH_RETRY
        return CallState.FATAL
    if is_throttle_or_server_error(status_code):
        return CallState.THROTTLE_RETRY if retry.can_retry else CallState.FATAL
    return CallState.FATAL


def backoff_seconds(state: CallState, attempt_number: int) -> int:
    """Exponential backoff for the attempt that just failed."""
    if state is CallState.AUTH_RETRY:
        return min(AUTH_BACKOFF_CAP, 2 ** attempt_number)
    if state is CallState.THROTTLE_RETRY:
        return min(THROTTLE_BACKOFF_CAP, 2 ** attempt_number)
    raise ValueError(f"No backoff for state {state}")


def fatal_error(status_code: Optional[int], retry: RetryState, url: str) -> HttpError:
    """Build the terminal exception for a FATAL transition."""
    args = (status_code, retry.attempt_number, retry.last_classified_error, url)
    if status_code == 401:
        return AuthHttpError(*args)
    if status_code is not None and is_throttle_or_server_error(status_code):
        return TransientHttpError(*args)
    return FatalHttpError(*args)


def _describe(response: requests.Response) -> str:
    text = (response.text or "").strip().replace("\n", " ")
    if len(text) > 200:
        text = text[:200] + "..."
    reason = response.reason or ""
    return f"HTTP {response.status_code} {reason}".rstrip() + (f": {text}" if text else "")


def _decode(response: requests.Response):
    if not response.content or not response.content.strip():
        return None
    return response.json()


class RequestExecutor:
    """Send one logical request, retrying within the context's budget."""

    def __init__(self, context: ClientContext):
        self.context = context

    def _sleep(self, seconds: float, cancel: Optional[CancellationToken]) -> None:
        if cancel is not None:
            cancel.sleep(seconds)
        else:
            self.context.sleep(seconds)

    def _abort_on_cancel(self, cancel: Optional[CancellationToken]) -> Callable[[], None]:
        """Close the session's connections if ``cancel`` fires mid-request.

        The blocked read then fails with a transport error, which the caller
        maps to RequestCancelledError. Returns the unregister function.
        """
        close = getattr(self.context.session, "close", None)
        if cancel is None or close is None:
            return lambda: None
        return cancel.on_cancel(close)

    def execute(
        self,
        descriptor: RequestDescriptor,
        cancel: Optional[CancellationToken] = None,
    ) -> DecodedResponse:
        """Execute ``descriptor`` and return the decoded 2xx response.

        Raises:
            AuthHttpError: 401 with retry disabled or exhausted
            TransientHttpError: 429/5xx after the retry budget ran out
            FatalHttpError: Other 4xx, undecodable body, or transport failure
            RequestCancelledError: ``cancel`` fired
        """
        ctx = self.context
        log = ctx.logger

        # INIT
        url = ctx.build_url(descriptor)
        body = encode_body(descriptor.body)
        headers = ctx.request_headers(has_body=body is not None)
        retry = RetryState(max_attempts=ctx.max_retries)
        state = CallState.DISPATCHING

        while state is CallState.DISPATCHING:
            if cancel is not None:
                cancel.raise_if_cancelled()
            ctx.rate_limiter.acquire(cancel)

            timeout = ctx.read_timeout
            if cancel is not None:
                # The limiter wait may have run into the deadline
                cancel.raise_if_cancelled()
                remaining = cancel.remaining()
                if remaining is not None:
                    if remaining <= 0:
                        raise RequestCancelledError(cancel.reason or "deadline exceeded")
                    timeout = min(timeout, remaining)

            log.debug(
                "%s %s (attempt %d/%d)",
                descriptor.method, url, retry.attempt_number, retry.max_attempts,
            )
            unregister = self._abort_on_cancel(cancel)
            try:
                response = ctx.session.request(
                    descriptor.method,
                    url,
                    data=body,
                    headers=headers,
                    timeout=timeout,
                )
            except requests.RequestException as exc:
                if cancel is not None and cancel.cancelled:
                    raise RequestCancelledError(cancel.reason or "cancelled") from exc
                retry.last_classified_error = f"{type(exc).__name__}: {exc}"
                log.error("%s %s failed: %s", descriptor.method, url, retry.last_classified_error)
                raise fatal_error(None, retry, url) from exc
            finally:
                unregister()

            if cancel is not None and cancel.cancelled:
                log.info("%s %s: response discarded, call was cancelled", descriptor.method, url)
                raise RequestCancelledError(cancel.reason or "cancelled")

            state = classify(response.status_code, retry, ctx.retry_on_401)

            if state is CallState.SUCCESS:
                try:
                    data = _decode(response)
                except ValueError as exc:
                    retry.last_classified_error = f"invalid JSON body: {exc}"
                    log.error("%s %s returned undecodable body", descriptor.method, url)
                    raise FatalHttpError(response.status_code, retry.attempt_number,
                                         retry.last_classified_error, url) from exc
                return DecodedResponse(
                    status_code=response.status_code,
                    data=data,
                    headers=response.headers,
                    url=url,
                    attempts=retry.attempt_number,
                )

            retry.last_classified_error = _describe(response)

            if state is CallState.FATAL:
                error = fatal_error(response.status_code, retry, url)
                if error.exhausted or (response.status_code == 401 and ctx.retry_on_401):
                    log.error(
                        "%s %s: retry budget exhausted after %d attempt(s): %s",
                        descriptor.method, url, retry.attempt_number, retry.last_classified_error,
                    )
                else:
                    log.error("%s %s: %s", descriptor.method, url, retry.last_classified_error)
                raise error

            delay = backoff_seconds(state, retry.attempt_number)
            log.warning(
                "%s %s: %s; retrying in %ds (attempt %d/%d)",
                descriptor.method, url, retry.last_classified_error,
                delay, retry.attempt_number, retry.max_attempts,
            )
            self._sleep(delay, cancel)
            retry.attempt_number += 1
            state = CallState.DISPATCHING

        raise AssertionError(f"unreachable state {state}")
