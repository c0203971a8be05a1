"""Application services: the session manager and its event bus."""

from authsession.application.services.event_bus import EventBus
from authsession.application.services.session_manager import (
    ExpiryCheck,
    SessionManager,
    StorageOptions,
)

__all__ = ["EventBus", "ExpiryCheck", "SessionManager", "StorageOptions"]
