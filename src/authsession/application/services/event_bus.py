"""In-process publish/subscribe for session lifecycle events.

Hey future me - three event kinds travel here (see SessionEvent):
- SIGNIN  -> handler(SignInEvent(user, payload))
- SETUSER -> handler(TokenPayload)
- SIGNOUT -> handler()   (no payload)

Every subscriber of a kind gets every event (fan-out). subscribe() returns an
unsubscribe function. unsubscribe(kind) is the shortcut for "drop the LAST
subscriber I registered for this kind" - the tracked handles form a stack per
kind, so calling it repeatedly peels subscribers off newest-first and an older
subscriber is never orphaned by a newer one.

Handlers may be sync or async. A handler that raises is logged and skipped;
the other handlers still run and the session operation that emitted the event
still completes.
"""

import inspect
import logging
from collections import defaultdict
from typing import Any

from authsession.domain.entities import SessionEvent
from authsession.domain.ports import EventHandler, Unsubscribe

logger = logging.getLogger(__name__)


class EventBus:
    """Session event channel."""

    def __init__(self) -> None:
        self._handlers: dict[SessionEvent, list[EventHandler]] = defaultdict(list)
        self._unsubscribers: dict[SessionEvent, list[Unsubscribe]] = defaultdict(list)

    def subscribe(self, kind: SessionEvent | str, handler: EventHandler) -> Unsubscribe:
        """Register handler for an event kind.

        Args:
            kind: Event kind (SessionEvent or its string value)
            handler: Callable receiving the event payload

        Returns:
            Function that removes exactly this subscription (safe to call twice)
        """
        event = SessionEvent(kind)
        self._handlers[event].append(handler)

        def unsubscribe() -> None:
            if handler in self._handlers[event]:
                self._handlers[event].remove(handler)
            if unsubscribe in self._unsubscribers[event]:
                self._unsubscribers[event].remove(unsubscribe)

        self._unsubscribers[event].append(unsubscribe)
        return unsubscribe

    def unsubscribe(self, kind: SessionEvent | str) -> None:
        """Invoke the most recently registered unsubscribe handle for kind."""
        handles = self._unsubscribers[SessionEvent(kind)]
        if handles:
            handles[-1]()

    def subscriber_count(self, kind: SessionEvent | str) -> int:
        """Number of live subscribers for kind."""
        return len(self._handlers[SessionEvent(kind)])

    async def emit(self, kind: SessionEvent, *payload: Any) -> None:
        """Deliver an event to every subscriber of kind, in registration order."""
        # Copy - handlers may unsubscribe themselves while being called
        for handler in list(self._handlers[kind]):
            try:
                result = handler(*payload)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception(
                    "Session event handler %r failed for %s", handler, kind.value
                )
