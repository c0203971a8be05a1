"""External integrations: httpx middleware and JWT claim decoding."""

from authsession.infrastructure.integrations.http_middleware import (
    DEFAULT_RETRY_STATUS_CODES,
    BearerRetryAuth,
    MiddlewareHandle,
    MiddlewareKind,
    attach,
    detach,
)
from authsession.infrastructure.integrations.token_decoder import (
    decode_claims,
    extract_expiry,
)

__all__ = [
    "DEFAULT_RETRY_STATUS_CODES",
    "BearerRetryAuth",
    "MiddlewareHandle",
    "MiddlewareKind",
    "attach",
    "decode_claims",
    "detach",
    "extract_expiry",
]
