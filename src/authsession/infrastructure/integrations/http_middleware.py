"""Bearer-token middleware for httpx clients.

Hey future me - this attaches TWO behaviors to an httpx client and hands back
a MiddlewareHandle for each so they can be ripped out again on sign-out:

1. Request hook (client.event_hooks["request"]):
   every outgoing request gets "Authorization: Bearer <access token>" if the
   session currently has an access token.

2. Retry auth (client.auth):
   when a response comes back with a retry status (401 by default) AND the
   session has an access token, the failed request's Authorization header is
   replaced with the current token and the request is sent ONE more time.
   No token -> the failed response is returned as-is (the "reject" path).
   Transport failures (no response at all) never reach the auth flow, httpx
   raises them straight to the caller. Any auth the client already carried is
   wrapped and keeps running; detach puts it back as client.auth.

The token is read through a getter on every request, never captured, so a
refresh that swaps the payload is picked up by the very next request.

Usage:
    handles = attach(client, lambda: manager.access_token)
    ...
    for handle in reversed(handles):
        detach(handle)
"""

import logging
from collections.abc import Callable, Generator, Iterable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import httpx

logger = logging.getLogger(__name__)

TokenGetter = Callable[[], str | None]
HttpClient = httpx.AsyncClient | httpx.Client

DEFAULT_RETRY_STATUS_CODES: tuple[int, ...] = (401,)


def bearer(token: str) -> str:
    """Format an Authorization header value."""
    return f"Bearer {token}"


class MiddlewareKind(str, Enum):
    """Which behavior a handle controls."""

    REQUEST = "request"
    RESPONSE_FAILURE = "response_failure"


class BearerRetryAuth(httpx.Auth):
    """Retry a rejected request once with the current bearer token.

    Hey future me - the auth the client already had (BasicAuth, DigestAuth, ...)
    is wrapped, not replaced: its flow runs first and only the final response of
    that flow is considered for the bearer retry.
    """

    def __init__(
        self,
        token_getter: TokenGetter,
        retry_status_codes: Iterable[int] = DEFAULT_RETRY_STATUS_CODES,
        inner: httpx.Auth | None = None,
    ) -> None:
        self._token_getter = token_getter
        self.retry_status_codes = frozenset(retry_status_codes)
        self.inner = inner
        self.enabled = True
        if inner is not None:
            self.requires_request_body = inner.requires_request_body
            self.requires_response_body = inner.requires_response_body

    def _inner_flow(
        self, request: httpx.Request
    ) -> Generator[httpx.Request, httpx.Response, httpx.Response]:
        if self.inner is None:
            return (yield request)

        flow = self.inner.auth_flow(request)
        next_request = next(flow)
        while True:
            response = yield next_request
            try:
                next_request = flow.send(response)
            except StopIteration:
                return response

    def auth_flow(
        self, request: httpx.Request
    ) -> Generator[httpx.Request, httpx.Response, None]:
        response = yield from self._inner_flow(request)

        if not self.enabled or response.status_code not in self.retry_status_codes:
            return

        token = self._token_getter()
        if not token:
            logger.debug(
                "Request to %s failed with %d and no access token is available",
                request.url,
                response.status_code,
            )
            return

        request.headers["Authorization"] = bearer(token)
        logger.debug(
            "Retrying request to %s with current access token (status %d)",
            request.url,
            response.status_code,
        )
        yield request


@dataclass(eq=False)
class MiddlewareHandle:
    """Opaque handle for one attached behavior.

    Hey future me - eq=False on purpose: handles compare by identity, two
    attachments to the same client must never be confused with each other.
    """

    client: HttpClient
    kind: MiddlewareKind
    hook: Callable[[httpx.Request], Any] | None = None
    auth: BearerRetryAuth | None = None
    previous_auth: httpx.Auth | None = None
    active: bool = field(default=True)


def _make_request_hook(client: HttpClient, token_getter: TokenGetter) -> Callable[..., Any]:
    # httpx awaits hooks on AsyncClient and calls them plainly on Client
    if isinstance(client, httpx.AsyncClient):

        async def inject_bearer_async(request: httpx.Request) -> None:
            token = token_getter()
            if token:
                request.headers["Authorization"] = bearer(token)

        return inject_bearer_async

    def inject_bearer(request: httpx.Request) -> None:
        token = token_getter()
        if token:
            request.headers["Authorization"] = bearer(token)

    return inject_bearer


def attach(
    client: HttpClient,
    token_getter: TokenGetter,
    retry_status_codes: Iterable[int] = DEFAULT_RETRY_STATUS_CODES,
) -> list[MiddlewareHandle]:
    """Attach the retry auth and the request hook to a client.

    Args:
        client: httpx client (async or sync)
        token_getter: Returns the current access token or None
        retry_status_codes: Response statuses that trigger a retry

    Returns:
        [response-failure handle, request handle]
    """
    previous_auth = client.auth
    retry_auth = BearerRetryAuth(token_getter, retry_status_codes, inner=previous_auth)
    client.auth = retry_auth
    response_handle = MiddlewareHandle(
        client=client,
        kind=MiddlewareKind.RESPONSE_FAILURE,
        auth=retry_auth,
        previous_auth=previous_auth,
    )

    hook = _make_request_hook(client, token_getter)
    client.event_hooks["request"].append(hook)
    request_handle = MiddlewareHandle(
        client=client,
        kind=MiddlewareKind.REQUEST,
        hook=hook,
    )

    logger.debug(
        "Attached bearer middleware to %s (retry on %s)",
        type(client).__name__,
        sorted(retry_auth.retry_status_codes),
    )
    return [response_handle, request_handle]


def detach(handle: MiddlewareHandle) -> None:
    """Remove one attached behavior from its client. Idempotent."""
    if not handle.active:
        return
    handle.active = False

    if handle.kind is MiddlewareKind.REQUEST:
        hooks = handle.client.event_hooks["request"]
        if handle.hook in hooks:
            hooks.remove(handle.hook)
        return

    if handle.auth is not None:
        # Disabled even if someone stacked another auth on top of it
        handle.auth.enabled = False
        if handle.client.auth is handle.auth:
            handle.client.auth = handle.previous_auth
