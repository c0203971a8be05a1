"""Client-side auth session manager.

Hey future me - this is THE core of the package! SessionManager owns:
- the current user (memory only, never persisted)
- the current TokenPayload (memory + JSON copy in storage)
- the httpx middleware it attached, per client
- the event bus (SIGNIN / SETUSER / SIGNOUT)

Lifecycle:
    manager = SessionManager(authorize=backend.login)
    manager.apply_http_middleware(client)
    await manager.sign_in({"sub": "alice"})         # authorize -> persist -> SIGNIN
    await manager.check_access_token_is_expired(backend.refresh)
    await manager.sign_out()                         # remove -> detach -> SIGNOUT -> callback

Source of truth for "is there a session" is STORAGE, not memory: get_user()
returns the in-memory user only while a token is stored under the key.

Failure policy (who sees what):
- authorize fails           -> sign_in logs it, clears state, never raises
- storage write fails       -> set_user raises PersistenceError
- storage read fails        -> get_user logs it and returns None
- refresh fails             -> forced-expiry teardown, logged, never raises
- malformed access token    -> expiry check is a silent no-op
- sign-out callback raises  -> propagates out of sign_out()

Concurrency: none of these operations lock. One sign_in / expiry check /
sign_out at a time is the CALLER's job; overlapping calls interleave at every
await. Nothing here imposes timeouts or can cancel a callback once started.
"""

import inspect
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any, Generic

from pydantic import ValidationError

from authsession.application.services.event_bus import EventBus
from authsession.domain.entities import (
    SessionEvent,
    SignInEvent,
    TokenPayload,
    UserT,
    user_subject,
)
from authsession.domain.exceptions import (
    AuthorizationFailedError,
    PersistenceError,
    TokenDecodeError,
    TokenRefreshException,
)
from authsession.domain.ports import (
    AuthorizeCallback,
    EventHandler,
    IKeyValueStore,
    RefreshCallback,
    SignOutCallback,
    Unsubscribe,
)
from authsession.infrastructure.integrations.http_middleware import (
    DEFAULT_RETRY_STATUS_CODES,
    HttpClient,
    MiddlewareHandle,
    attach,
    detach,
)
from authsession.infrastructure.integrations.token_decoder import (
    decode_claims,
    extract_expiry,
)
from authsession.infrastructure.observability.log_messages import LogMessages
from authsession.infrastructure.persistence.storage import (
    MemoryStorage,
    resolve_storage_key,
)


@dataclass
class StorageOptions:
    """Where the token payload is persisted.

    key: base key name (default "token"; a scope prefixes it as "<scope>:<key>")
    storage: backend (default: a fresh MemoryStorage)
    """

    key: str | None = None
    storage: IKeyValueStore | None = None


class ExpiryCheck(str, Enum):
    """Outcome of check_access_token_is_expired()."""

    NO_SESSION = "no_session"
    UNKNOWN_EXPIRY = "unknown_expiry"
    VALID = "valid"
    REFRESHED = "refreshed"
    SESSION_CLEARED = "session_cleared"


def _coerce_payload(value: Any) -> TokenPayload:
    if isinstance(value, TokenPayload):
        return value
    return TokenPayload.model_validate(value)


class SessionManager(Generic[UserT]):
    """Holds the signed-in user and token pair for one application session."""

    def __init__(
        self,
        authorize: AuthorizeCallback,
        sign_out_callback: SignOutCallback | None = None,
        storage_options: StorageOptions | None = None,
        scope: str | None = None,
        *,
        logger: logging.Logger | None = None,
        clock: Callable[[], float] = time.time,
        retry_status_codes: tuple[int, ...] = DEFAULT_RETRY_STATUS_CODES,
    ) -> None:
        """Initialize the session manager.

        Args:
            authorize: Exchanges a user for a TokenPayload (e.g. calls the backend)
            sign_out_callback: Awaited at the very end of sign_out()
            storage_options: Storage key and backend
            scope: Optional namespace for the storage key
            logger: Logger to report through (default: this module's logger)
            clock: Returns "now" in Unix seconds; compared against expires_in
            retry_status_codes: Response statuses the HTTP middleware retries on
        """
        options = storage_options or StorageOptions()

        self._authorize = authorize
        self._sign_out_callback = sign_out_callback
        self._storage: IKeyValueStore = (
            options.storage if options.storage is not None else MemoryStorage()
        )
        self._storage_key = resolve_storage_key(options.key, scope)
        self._logger = logger or logging.getLogger(__name__)
        self._clock = clock
        self._retry_status_codes = tuple(retry_status_codes)

        self._user: UserT | None = None
        self._payload: TokenPayload | None = None
        self._middleware: dict[HttpClient, list[MiddlewareHandle]] = {}
        self._events = EventBus()

    # =========================================================================
    # STATE
    # =========================================================================

    @property
    def storage_key(self) -> str:
        """Effective storage key ("<scope>:<key>" or "<key>")."""
        return self._storage_key

    @property
    def storage(self) -> IKeyValueStore:
        return self._storage

    @property
    def user(self) -> UserT | None:
        """In-memory user. Prefer get_user(), which also checks storage."""
        return self._user

    @property
    def payload(self) -> TokenPayload | None:
        return self._payload

    @property
    def access_token(self) -> str | None:
        """Current access token, read by the HTTP middleware on every request."""
        if self._payload is None or not self._payload.access_token:
            return None
        return self._payload.access_token

    @property
    def attached_clients(self) -> int:
        """Number of HTTP clients that currently carry session middleware."""
        return len(self._middleware)

    # =========================================================================
    # EVENTS
    # =========================================================================

    def subscribe(self, kind: SessionEvent | str, handler: EventHandler) -> Unsubscribe:
        """Subscribe to SIGNIN / SIGNOUT / SETUSER. Returns an unsubscribe function."""
        return self._events.subscribe(kind, handler)

    def unsubscribe(self, kind: SessionEvent | str) -> None:
        """Drop the most recently registered subscriber of kind."""
        self._events.unsubscribe(kind)

    # =========================================================================
    # SIGN IN / OUT
    # =========================================================================

    # Hey future me - the ORDER here is deliberate and must stay:
    # 1. authorize(user)
    # 2. self._user = user           <- adopted optimistically, BEFORE persistence
    # 3. set_user(payload)           <- payload adopted only once it's stored
    # 4. emit SIGNIN, then on_success
    # If step 3 fails we land in the except branch which clears everything again.
    async def sign_in(
        self,
        user: UserT,
        on_success: Callable[[TokenPayload], Awaitable[None] | None] | None = None,
    ) -> None:
        """Sign a user in. Never raises - failures are logged and leave no session.

        Args:
            user: User mapping, must contain a non-empty "sub"
            on_success: Called with the payload after SIGNIN was emitted
        """
        subject = user_subject(user)
        try:
            if subject is None:
                raise AuthorizationFailedError("user is missing the 'sub' field")

            result = await self._authorize(user)
            if not result:
                raise AuthorizationFailedError("authorize callback returned no payload")
            payload = _coerce_payload(result)

            self._user = user

            await self.set_user(payload)

            await self._events.emit(
                SessionEvent.SIGNIN, SignInEvent(user=user, payload=payload)
            )
            self._logger.info(LogMessages.signed_in(subject, self._storage_key))

            if on_success is not None:
                outcome = on_success(payload)
                if inspect.isawaitable(outcome):
                    await outcome
        except Exception as e:
            self._logger.error(
                LogMessages.sign_in_failed(subject, str(e) or type(e).__name__),
                exc_info=not isinstance(e, AuthorizationFailedError),
            )
            self._user = None
            self._payload = None
            await self._remove_stored_token()

    async def sign_out(self) -> None:
        """Sign out: remove token, clear user, detach middleware, emit SIGNOUT, run callback.

        Raises:
            Exception: Whatever the sign-out callback raises
        """
        await self._remove_stored_token()
        self._user = None
        self._payload = None

        detached = self._detach_all_middleware()

        await self._events.emit(SessionEvent.SIGNOUT)
        self._logger.info(LogMessages.signed_out(self._storage_key, detached))

        if self._sign_out_callback is not None:
            await self._sign_out_callback()

    # =========================================================================
    # PAYLOAD
    # =========================================================================

    async def set_user(self, payload: TokenPayload) -> None:
        """Persist payload, adopt it in memory and emit SETUSER.

        Raises:
            PersistenceError: If serialization or the storage write fails
        """
        try:
            serialized = payload.to_json()
            await self._storage.set(self._storage_key, serialized)
        except Exception as e:
            self._logger.error(
                LogMessages.storage_failed("write", self._storage_key, str(e))
            )
            if isinstance(e, PersistenceError):
                raise
            raise PersistenceError(
                f"Cannot persist token payload: {e}", key=self._storage_key
            ) from e

        self._payload = payload

        await self._events.emit(SessionEvent.SETUSER, payload)
        self._logger.info(
            LogMessages.payload_updated(self._storage_key, payload.expires_in)
        )

    async def get_user(self) -> UserT | None:
        """Return the user while a token is stored, else None. Never raises."""
        try:
            stored = await self._storage.get(self._storage_key)
        except Exception as e:
            self._logger.error(
                LogMessages.storage_failed("read", self._storage_key, str(e))
            )
            return None

        if stored is None:
            return None
        return self._user

    async def restore(self) -> TokenPayload | None:
        """Load a previously persisted payload into memory (e.g. at startup).

        The user is not persisted, so get_user() keeps returning None until
        the next sign_in(); the payload alone is enough for the middleware and
        the expiry check. A stored value that isn't a token payload is removed.

        Returns:
            The restored payload, or None if nothing usable was stored
        """
        try:
            stored = await self._storage.get(self._storage_key)
        except Exception as e:
            self._logger.error(
                LogMessages.storage_failed("read", self._storage_key, str(e))
            )
            return None

        if stored is None:
            return None

        try:
            payload = TokenPayload.from_json(stored)
        except ValidationError as e:
            self._logger.warning(
                LogMessages.stored_payload_invalid(self._storage_key, str(e))
            )
            await self._remove_stored_token()
            return None

        self._payload = payload
        self._logger.debug("Restored token payload from %s", self._storage_key)
        return payload

    # =========================================================================
    # EXPIRY
    # =========================================================================

    # Listen up - expires_in is filled ONCE per payload instance from the exp claim
    # (TokenPayload.fill_expiry is a no-op when already set). A refresh produces a NEW
    # payload instance, which gets its own one-shot fill on the next check.
    async def check_access_token_is_expired(self, refresh: RefreshCallback) -> ExpiryCheck:
        """Refresh the token pair if the access token has expired.

        Args:
            refresh: Called with the refresh token, returns the new payload.
                Passed per call, never stored.

        Returns:
            What the check did (no-op outcomes included)
        """
        payload = self._payload
        if payload is None or not payload.access_token:
            return ExpiryCheck.NO_SESSION

        try:
            claims = decode_claims(payload.access_token)
        except TokenDecodeError as e:
            self._logger.debug("Cannot determine token expiry: %s", e)
            return ExpiryCheck.UNKNOWN_EXPIRY

        payload.fill_expiry(extract_expiry(claims))

        if payload.expires_in is None:
            return ExpiryCheck.UNKNOWN_EXPIRY

        now = self._clock()
        if not payload.is_expired(now):
            return ExpiryCheck.VALID

        self._logger.info(LogMessages.token_expired(payload.expires_in, now))

        try:
            result = await refresh(payload.refresh_token)
            if not result:
                raise TokenRefreshException("refresh callback returned no payload")
            await self.set_user(_coerce_payload(result))
        except Exception as e:
            await self._force_expiry_teardown(TokenRefreshException.from_error(e))
            return ExpiryCheck.SESSION_CLEARED

        return ExpiryCheck.REFRESHED

    # Hey future me - this is NOT sign_out()! No SIGNOUT event, no sign-out callback.
    # Only the explicit sign_out() path fires those.
    async def _force_expiry_teardown(self, error: TokenRefreshException) -> None:
        detached = self._detach_all_middleware()
        await self._remove_stored_token()
        self._user = None
        self._payload = None

        self._logger.error(
            LogMessages.token_refresh_failed(
                error.message,
                detached,
                http_status=error.http_status,
                requires_reauth=error.requires_reauth,
            ),
            exc_info=error,
        )

    # =========================================================================
    # HTTP MIDDLEWARE
    # =========================================================================

    def apply_http_middleware(self, client: HttpClient) -> list[MiddlewareHandle]:
        """Attach bearer injection and 401 retry to an httpx client.

        Calling it for several clients accumulates handles per client; sign-out
        and forced-expiry teardown detach all of them.

        Returns:
            The handles attached by this call
        """
        handles = attach(
            client,
            lambda: self.access_token,
            retry_status_codes=self._retry_status_codes,
        )
        self._middleware.setdefault(client, []).extend(handles)
        return handles

    def _detach_all_middleware(self) -> int:
        detached = 0
        for handles in self._middleware.values():
            # Newest first, so a client's previous auth is restored correctly
            for handle in reversed(handles):
                detach(handle)
                detached += 1
        self._middleware.clear()
        return detached

    # =========================================================================
    # STORAGE
    # =========================================================================

    async def _remove_stored_token(self) -> bool:
        try:
            await self._storage.remove(self._storage_key)
        except Exception as e:
            self._logger.error(
                LogMessages.storage_failed("remove", self._storage_key, str(e))
            )
            return False
        return True
