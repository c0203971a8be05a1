"""Domain entities for the auth session.

Hey future me - the persisted unit of a session is the TokenPayload, NOT the user!
The user only ever lives in memory on the SessionManager. Storage holds the JSON
form of TokenPayload under a single key:

    {"accessToken": "...", "refreshToken": "...", "expiresIn": 1735689600}

The camelCase aliases ARE the wire format. Don't rename them, existing stored
sessions would stop loading.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Generic, TypedDict, TypeVar

from pydantic import BaseModel, ConfigDict, Field


class BaseUser(TypedDict):
    """Minimal user shape - applications subclass this with their own fields.

    Example:
        class AppUser(BaseUser, total=False):
            email: str
            roles: list[str]
    """

    sub: str


UserT = TypeVar("UserT", bound=BaseUser)


class TokenPayload(BaseModel):
    """Access/refresh token pair plus optional expiry timestamp.

    access_token and refresh_token are frozen - the session advances by
    replacing the payload, never by mutating it. expires_in is a Unix
    timestamp in seconds; when missing it is filled ONCE from the access
    token's exp claim via fill_expiry().
    """

    model_config = ConfigDict(populate_by_name=True)

    access_token: str = Field(alias="accessToken", frozen=True)
    refresh_token: str = Field(alias="refreshToken", frozen=True)
    expires_in: int | float | None = Field(default=None, alias="expiresIn")

    def fill_expiry(self, exp: int | float | None) -> bool:
        """Set expires_in from a decoded exp claim if it is still unset.

        Args:
            exp: Expiry claim (seconds since epoch) or None

        Returns:
            True if expires_in was filled by this call
        """
        if self.expires_in is not None or exp is None:
            return False
        self.expires_in = exp
        return True

    def is_expired(self, now: float) -> bool:
        """Check whether the known expiry lies in the past.

        An unknown expiry never counts as expired.
        """
        return self.expires_in is not None and now > self.expires_in

    def to_json(self) -> str:
        """Serialize to the persisted JSON layout (camelCase, no null expiry)."""
        return self.model_dump_json(by_alias=True, exclude_none=True)

    @classmethod
    def from_json(cls, raw: str | bytes) -> "TokenPayload":
        """Parse the persisted JSON layout.

        Raises:
            pydantic.ValidationError: If the stored value is not a token payload
        """
        return cls.model_validate_json(raw)


class SessionEvent(str, Enum):
    """Session lifecycle event kinds carried on the event bus."""

    SIGNIN = "SIGNIN"
    SIGNOUT = "SIGNOUT"
    SETUSER = "SETUSER"


@dataclass(frozen=True)
class SignInEvent(Generic[UserT]):
    """Payload of a SIGNIN event."""

    user: UserT
    payload: TokenPayload


def user_subject(user: Any) -> str | None:
    """Return the subject identifier of a user mapping, or None if missing/empty."""
    if not isinstance(user, dict):
        return None
    sub = user.get("sub")
    if not isinstance(sub, str) or not sub:
        return None
    return sub


__all__ = [
    "BaseUser",
    "SessionEvent",
    "SignInEvent",
    "TokenPayload",
    "UserT",
    "user_subject",
]
