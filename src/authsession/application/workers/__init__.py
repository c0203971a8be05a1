"""Background workers."""

from authsession.application.workers.token_expiry_worker import (
    TokenExpiryWorker,
    create_token_expiry_worker,
)

__all__ = ["TokenExpiryWorker", "create_token_expiry_worker"]
