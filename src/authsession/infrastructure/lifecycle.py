"""Session construction and lifespan management.

This module is the bootstrap seam: it turns Settings into a wired
SessionManager and runs the expiry worker for the lifetime of the host app.

Usage:
    manager = create_session_manager(authorize=backend.login)

    async with session_lifespan(manager, refresh=backend.refresh):
        async with httpx.AsyncClient(base_url=API) as client:
            manager.apply_http_middleware(client)
            await manager.sign_in({"sub": "alice"})
            ...
"""

import asyncio
import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager, suppress
from typing import Any

from pydantic import ValidationError

from authsession.application.services.session_manager import SessionManager, StorageOptions
from authsession.application.workers.token_expiry_worker import (
    TokenExpiryWorker,
    create_token_expiry_worker,
)
from authsession.config import Settings, get_settings
from authsession.domain.exceptions import ConfigurationError
from authsession.domain.ports import (
    AuthorizeCallback,
    IKeyValueStore,
    RefreshCallback,
    SignOutCallback,
)
from authsession.infrastructure.observability import configure_logging
from authsession.infrastructure.observability.log_messages import LogMessages
from authsession.infrastructure.persistence import FileStorage, MemoryStorage

logger = logging.getLogger(__name__)


def _load_settings() -> Settings:
    try:
        return get_settings()
    except ValidationError as e:
        for error in e.errors():
            setting = ".".join(str(part) for part in error["loc"])
            logger.error(LogMessages.config_invalid(setting, error.get("input"), error["msg"]))
        raise ConfigurationError(f"Invalid AUTHSESSION_* configuration: {e}") from e


def build_storage(settings: Settings) -> IKeyValueStore:
    """Create the storage backend named by settings.storage_backend."""
    if settings.storage_backend == "file":
        logger.debug("Using file session storage at %s", settings.storage_path)
        return FileStorage(settings.storage_path)
    return MemoryStorage()


def create_session_manager(
    authorize: AuthorizeCallback,
    settings: Settings | None = None,
    sign_out_callback: SignOutCallback | None = None,
    storage: IKeyValueStore | None = None,
    setup_logging: bool = False,
) -> SessionManager[Any]:
    """Build a SessionManager from settings.

    Args:
        authorize: Credential exchange callback
        settings: Settings to use (default: loaded from the environment)
        sign_out_callback: Optional callback awaited at the end of sign_out()
        storage: Explicit backend, overrides settings.storage_backend
        setup_logging: Also configure root logging from settings

    Returns:
        Configured SessionManager

    Raises:
        ConfigurationError: If the environment holds invalid settings
    """
    settings = settings or _load_settings()

    if setup_logging:
        configure_logging(
            log_level=settings.log_level,
            json_format=settings.log_json,
            app_name=settings.app_name,
        )

    manager: SessionManager[Any] = SessionManager(
        authorize=authorize,
        sign_out_callback=sign_out_callback,
        storage_options=StorageOptions(
            key=settings.storage_key,
            storage=storage if storage is not None else build_storage(settings),
        ),
        scope=settings.scope,
        retry_status_codes=tuple(settings.retry_status_codes),
    )
    logger.info(
        "Session manager created (key=%s, backend=%s)",
        manager.storage_key,
        type(manager.storage).__name__,
    )
    return manager


# Listen future me, everything before `yield` runs at startup and everything after at shutdown.
# The try/finally makes sure the worker task is stopped even if the body raises.
@asynccontextmanager
async def session_lifespan(
    manager: SessionManager[Any],
    refresh: RefreshCallback,
    settings: Settings | None = None,
    restore: bool = True,
) -> AsyncGenerator[TokenExpiryWorker, None]:
    """Restore the stored session and keep its access token fresh while open.

    Args:
        manager: Session to manage
        refresh: Refresh callback for the expiry worker
        settings: Settings for the check interval (default: from environment)
        restore: Load the persisted payload before starting the worker

    Yields:
        The running TokenExpiryWorker (for stats)
    """
    settings = settings or _load_settings()

    if restore:
        restored = await manager.restore()
        logger.info(
            "Stored session %s", "restored" if restored is not None else "not found"
        )

    worker = create_token_expiry_worker(
        manager,
        refresh,
        check_interval=settings.expiry_check_interval,
    )
    task = asyncio.create_task(worker.start())
    try:
        yield worker
    finally:
        worker.stop()
        task.cancel()
        with suppress(asyncio.CancelledError):
            await task
        logger.info("Session lifespan closed")
