"""Tests for session bootstrap and lifespan."""

import asyncio
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock

import pytest

from authsession.application.services.session_manager import ExpiryCheck, SessionManager
from authsession.application.workers.token_expiry_worker import TokenExpiryWorker
from authsession.config import Settings
from authsession.domain.entities import TokenPayload
from authsession.domain.exceptions import ConfigurationError
from authsession.infrastructure import lifecycle
from authsession.infrastructure.lifecycle import (
    build_storage,
    create_session_manager,
    session_lifespan,
)
from authsession.infrastructure.persistence import FileStorage, MemoryStorage


def make_settings(**overrides: Any) -> Settings:
    return Settings(_env_file=None, **overrides)


def test_build_storage_memory_by_default() -> None:
    assert isinstance(build_storage(make_settings()), MemoryStorage)


def test_build_storage_file(tmp_path: Path) -> None:
    path = tmp_path / "session.json"
    storage = build_storage(make_settings(storage_backend="file", storage_path=path))

    assert isinstance(storage, FileStorage)
    assert storage.path == path


def test_create_session_manager_applies_settings() -> None:
    manager = create_session_manager(
        authorize=AsyncMock(),
        settings=make_settings(scope="app", storage_key="session"),
    )

    assert isinstance(manager, SessionManager)
    assert manager.storage_key == "app:session"
    assert isinstance(manager.storage, MemoryStorage)


def test_explicit_empty_storage_wins_over_file_backend(tmp_path: Path) -> None:
    storage = MemoryStorage()
    manager = create_session_manager(
        authorize=AsyncMock(),
        settings=make_settings(
            storage_backend="file", storage_path=tmp_path / "session.json"
        ),
        storage=storage,
    )

    assert manager.storage is storage


def test_invalid_environment_raises_configuration_error(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    def broken_settings() -> Settings:
        return Settings(_env_file=None, expiry_check_interval=0)

    monkeypatch.setattr(lifecycle, "get_settings", broken_settings)

    with pytest.raises(ConfigurationError):
        create_session_manager(authorize=AsyncMock())


async def test_session_lifespan_restores_and_runs_worker() -> None:
    storage = MemoryStorage(
        {"token": TokenPayload(access_token="a", refresh_token="b").to_json()}
    )
    manager = create_session_manager(
        authorize=AsyncMock(), settings=make_settings(), storage=storage
    )
    manager.check_access_token_is_expired = AsyncMock(  # type: ignore[method-assign]
        return_value=ExpiryCheck.VALID
    )
    refresh = AsyncMock()

    async with session_lifespan(manager, refresh, settings=make_settings()) as worker:
        assert isinstance(worker, TokenExpiryWorker)
        assert manager.access_token == "a"
        # Let the worker task run its first cycle
        for _ in range(5):
            if worker.get_stats()["cycles"]:
                break
            await asyncio.sleep(0)

    assert worker.running is False
    manager.check_access_token_is_expired.assert_awaited_with(refresh)


async def test_session_lifespan_without_restore() -> None:
    storage = MemoryStorage(
        {"token": TokenPayload(access_token="a", refresh_token="b").to_json()}
    )
    manager = create_session_manager(
        authorize=AsyncMock(), settings=make_settings(), storage=storage
    )

    async with session_lifespan(
        manager, AsyncMock(), settings=make_settings(), restore=False
    ):
        assert manager.access_token is None
