"""authsession - client-side auth session manager.

Holds the signed-in user and token pair, persists the tokens, refreshes expired
access tokens, publishes session events and puts bearer tokens on httpx requests.
"""

from authsession.application.services import (
    EventBus,
    ExpiryCheck,
    SessionManager,
    StorageOptions,
)
from authsession.domain.entities import (
    BaseUser,
    SessionEvent,
    SignInEvent,
    TokenPayload,
)
from authsession.domain.ports import IKeyValueStore
from authsession.infrastructure.lifecycle import create_session_manager, session_lifespan
from authsession.infrastructure.persistence import FileStorage, MemoryStorage

__version__ = "0.1.0"

__all__ = [
    "BaseUser",
    "EventBus",
    "ExpiryCheck",
    "FileStorage",
    "IKeyValueStore",
    "MemoryStorage",
    "SessionEvent",
    "SessionManager",
    "SignInEvent",
    "StorageOptions",
    "TokenPayload",
    "create_session_manager",
    "session_lifespan",
    "__version__",
]
