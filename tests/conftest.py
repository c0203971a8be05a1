"""Shared fixtures for authsession tests."""

from collections.abc import Callable
from typing import Any

import pytest
from jose import jwt

from authsession.application.services.session_manager import SessionManager, StorageOptions
from authsession.domain.entities import TokenPayload
from authsession.infrastructure.persistence.storage import MemoryStorage

SIGNING_KEY = "test-signing-key"


class FakeClock:
    """Settable clock returning Unix seconds."""

    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def make_jwt() -> Callable[..., str]:
    """Mint an HS256 JWT with the given claims."""

    def _make(**claims: Any) -> str:
        claims.setdefault("sub", "u1")
        return jwt.encode(claims, SIGNING_KEY, algorithm="HS256")

    return _make


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def payload() -> TokenPayload:
    return TokenPayload(access_token="a", refresh_token="b")


@pytest.fixture
def authorize(payload: TokenPayload) -> Callable[..., Any]:
    """Authorize callback that records its calls and returns the payload fixture."""
    calls: list[Any] = []

    async def _authorize(user: Any) -> TokenPayload:
        calls.append(user)
        return payload

    _authorize.calls = calls  # type: ignore[attr-defined]
    return _authorize


@pytest.fixture
def manager(
    authorize: Callable[..., Any], storage: MemoryStorage, clock: FakeClock
) -> SessionManager[Any]:
    return SessionManager(
        authorize=authorize,
        storage_options=StorageOptions(storage=storage),
        clock=clock,
    )
