"""Ports (interfaces) the session manager depends on.

Hey future me - this is the PORT layer! SessionManager only ever talks to these:
- IKeyValueStore: where the serialized TokenPayload lives (memory, file, ...)
- AuthorizeCallback / RefreshCallback / SignOutCallback: the app-provided
  coroutines that actually talk to a backend

Architecture:
- SessionManager (Application Layer) → IKeyValueStore (Port)
- MemoryStorage, FileStorage (Infrastructure) → implement IKeyValueStore

Storage methods are ALWAYS async, even for the in-memory store, so the manager
has one contract no matter what backend is plugged in.
"""

from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from typing import Any

from authsession.domain.entities import TokenPayload


class IKeyValueStore(ABC):
    """String key-value storage for the persisted session."""

    @abstractmethod
    async def get(self, key: str) -> str | None:
        """Return the value stored at key, or None if there is none.

        Raises:
            PersistenceError: If the backend cannot be read
        """

    @abstractmethod
    async def set(self, key: str, value: str) -> None:
        """Store value at key, replacing any previous value.

        Raises:
            PersistenceError: If the backend cannot be written
        """

    @abstractmethod
    async def remove(self, key: str) -> None:
        """Remove key. Removing a missing key is not an error.

        Raises:
            PersistenceError: If the backend cannot be written
        """


# The user argument is the application's BaseUser subtype.
AuthorizeCallback = Callable[[Any], Awaitable[TokenPayload | None]]
RefreshCallback = Callable[[str], Awaitable[TokenPayload]]
SignOutCallback = Callable[[], Awaitable[None]]

# Event handlers may be plain functions or coroutine functions.
EventHandler = Callable[..., Awaitable[None] | None]
Unsubscribe = Callable[[], None]


__all__ = [
    "AuthorizeCallback",
    "EventHandler",
    "IKeyValueStore",
    "RefreshCallback",
    "SignOutCallback",
    "Unsubscribe",
]
