"""Decode-only JWT claim extraction.

Hey future me - this NEVER verifies signatures! The client does not hold the
issuer's key and doesn't need it: the only thing we read is the exp claim, to
know when to refresh. The backend verifies the token on every request anyway.
"""

from typing import Any

from jose import jwt
from jose.exceptions import JWTError

from authsession.domain.exceptions import TokenDecodeError


def decode_claims(token: str) -> dict[str, Any]:
    """Parse the claim set of a JWT without verifying it.

    Args:
        token: Compact-serialized JWT (header.payload.signature)

    Returns:
        Claims dictionary

    Raises:
        TokenDecodeError: If the token is not a decodable JWT
    """
    try:
        claims = jwt.get_unverified_claims(token)
    except (JWTError, AttributeError, TypeError, ValueError) as e:
        raise TokenDecodeError(f"Cannot decode access token: {e}") from e

    if not isinstance(claims, dict):
        raise TokenDecodeError("Access token claims are not a JSON object")
    return claims


def extract_expiry(claims: dict[str, Any]) -> int | float | None:
    """Return the numeric exp claim, or None when absent or not a number."""
    exp = claims.get("exp")
    # bool is an int subclass - "exp": true is not an expiry
    if isinstance(exp, bool) or not isinstance(exp, int | float):
        return None
    return exp
