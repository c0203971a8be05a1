"""Domain exceptions."""

from typing import Any


class DomainException(Exception):
    """Base exception for all domain exceptions."""

    # Hey future me, message is kept as an attribute so callers can inspect it without
    # parsing str(exception). DON'T raise this directly, use a specific subclass.
    def __init__(self, message: str, *args: Any) -> None:
        super().__init__(message, *args)
        self.message = message


class AuthorizationFailedError(DomainException):
    """The authorize callback rejected or returned invalid data.

    sign_in() catches this itself (it logs and leaves no session behind),
    so callers of sign_in() never see it.

    Example:
        raise AuthorizationFailedError("authorize callback returned no payload")
        raise AuthorizationFailedError("user is missing the 'sub' claim")
    """

    pass


class PersistenceError(DomainException):
    """Reading or writing the persisted token failed.

    Raised by storage adapters for I/O and serialization problems and
    re-raised by set_user(). get_user() logs it and resolves to None.
    """

    def __init__(self, message: str, key: str | None = None) -> None:
        super().__init__(message)
        self.key = key


class TokenDecodeError(DomainException):
    """The access token is not a decodable JWT.

    Only signals "expiry cannot be determined" - the expiry check treats it
    as a no-op and it is never surfaced to callers.
    """

    pass


class TokenRefreshException(DomainException):
    """Raised when token refresh fails and the session has to be torn down.

    Hey future me - refresh callbacks can raise anything. The expiry check
    converts every failure with from_error() so the teardown log can tell
    "sign in again" (server rejected the refresh token) apart from "backend
    trouble" (timeouts, 5xx). Common causes:
    - Refresh token revoked or expired on the server (400/401/403, invalid_grant)
    - Backend unreachable
    - Refresh callback returned garbage
    """

    def __init__(
        self,
        message: str = "Token refresh failed. Please sign in again.",
        error_code: str | None = None,
        http_status: int | None = None,
    ) -> None:
        super().__init__(message)
        self.error_code = error_code  # e.g., "invalid_grant"
        self.http_status = http_status  # e.g., 400, 401

    @property
    def requires_reauth(self) -> bool:
        """Check if error requires the user to sign in again."""
        return self.error_code == "invalid_grant" or self.http_status in (400, 401, 403)

    @classmethod
    def from_error(cls, error: Exception) -> "TokenRefreshException":
        """Wrap whatever a refresh callback raised.

        The HTTP status is taken from error.response (httpx.HTTPStatusError and
        friends) and the error code from an OAuth-style {"error": ...} body.
        The original exception is kept as __cause__.
        """
        if isinstance(error, cls):
            return error

        response = getattr(error, "response", None)
        http_status = getattr(response, "status_code", None)
        if not isinstance(http_status, int):
            http_status = None

        error_code = None
        if response is not None and http_status is not None:
            try:
                body = response.json()
            except Exception:
                body = None
            if isinstance(body, dict) and isinstance(body.get("error"), str):
                error_code = body["error"]

        wrapped = cls(
            str(error) or type(error).__name__,
            error_code=error_code,
            http_status=http_status,
        )
        wrapped.__cause__ = error
        return wrapped


class ConfigurationError(DomainException):
    """Invalid session configuration.

    Example:
        raise ConfigurationError("storage_path is required for the file backend")
    """

    pass


__all__ = [
    "DomainException",
    "AuthorizationFailedError",
    "PersistenceError",
    "TokenDecodeError",
    "TokenRefreshException",
    "ConfigurationError",
]
