"""Tests for the session EventBus."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from authsession.application.services.event_bus import EventBus
from authsession.domain.entities import SessionEvent


@pytest.fixture
def bus() -> EventBus:
    return EventBus()


async def test_emit_fans_out_to_all_subscribers(bus: EventBus) -> None:
    first, second = MagicMock(), MagicMock()
    bus.subscribe(SessionEvent.SETUSER, first)
    bus.subscribe(SessionEvent.SETUSER, second)

    await bus.emit(SessionEvent.SETUSER, "payload")

    first.assert_called_once_with("payload")
    second.assert_called_once_with("payload")


async def test_emit_only_reaches_matching_kind(bus: EventBus) -> None:
    handler = MagicMock()
    bus.subscribe(SessionEvent.SIGNIN, handler)

    await bus.emit(SessionEvent.SIGNOUT)

    handler.assert_not_called()


async def test_async_handlers_are_awaited(bus: EventBus) -> None:
    handler = AsyncMock()
    bus.subscribe("SIGNOUT", handler)

    await bus.emit(SessionEvent.SIGNOUT)

    handler.assert_awaited_once_with()


async def test_returned_unsubscribe_removes_only_that_handler(bus: EventBus) -> None:
    first, second = MagicMock(), MagicMock()
    unsubscribe_first = bus.subscribe(SessionEvent.SIGNIN, first)
    bus.subscribe(SessionEvent.SIGNIN, second)

    unsubscribe_first()
    unsubscribe_first()

    await bus.emit(SessionEvent.SIGNIN, "event")
    first.assert_not_called()
    second.assert_called_once_with("event")


async def test_unsubscribe_by_kind_drops_most_recent(bus: EventBus) -> None:
    older, newer = MagicMock(), MagicMock()
    bus.subscribe(SessionEvent.SETUSER, older)
    bus.subscribe(SessionEvent.SETUSER, newer)

    bus.unsubscribe(SessionEvent.SETUSER)
    await bus.emit(SessionEvent.SETUSER, "p")

    older.assert_called_once_with("p")
    newer.assert_not_called()

    bus.unsubscribe(SessionEvent.SETUSER)
    assert bus.subscriber_count(SessionEvent.SETUSER) == 0


def test_unsubscribe_unknown_kind_is_noop(bus: EventBus) -> None:
    bus.unsubscribe(SessionEvent.SIGNOUT)
    assert bus.subscriber_count("SIGNOUT") == 0


def test_invalid_kind_is_rejected(bus: EventBus) -> None:
    with pytest.raises(ValueError):
        bus.subscribe("LOGIN", MagicMock())


async def test_failing_handler_does_not_block_others(bus: EventBus) -> None:
    broken = MagicMock(side_effect=RuntimeError("boom"))
    healthy = MagicMock()
    bus.subscribe(SessionEvent.SIGNIN, broken)
    bus.subscribe(SessionEvent.SIGNIN, healthy)

    await bus.emit(SessionEvent.SIGNIN, "event")

    healthy.assert_called_once_with("event")


async def test_handler_may_unsubscribe_itself(bus: EventBus) -> None:
    calls: list[str] = []

    def once(payload: str) -> None:
        calls.append(payload)
        unsubscribe()

    unsubscribe = bus.subscribe(SessionEvent.SETUSER, once)

    await bus.emit(SessionEvent.SETUSER, "first")
    await bus.emit(SessionEvent.SETUSER, "second")

    assert calls == ["first"]
