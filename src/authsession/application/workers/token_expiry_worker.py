"""Token Expiry Worker - periodically refreshes the access token when it expires.

Hey future me - SessionManager only checks expiry when someone ASKS it to. This
worker is the "someone" for long-running apps: every check_interval seconds it
calls manager.check_access_token_is_expired(refresh).

What a cycle can end with (ExpiryCheck):
- NO_SESSION / UNKNOWN_EXPIRY / VALID -> nothing to do
- REFRESHED       -> new payload persisted, SETUSER emitted
- SESSION_CLEARED -> refresh failed, manager tore the session down

The worker keeps running after SESSION_CLEARED - the next sign_in() gives it a
payload to watch again.
"""

import asyncio
import logging
from collections import Counter
from datetime import UTC, datetime
from typing import Any

from authsession.application.services.session_manager import ExpiryCheck, SessionManager
from authsession.domain.ports import RefreshCallback
from authsession.infrastructure.observability.log_messages import LogMessages
from authsession.infrastructure.observability.logging import correlation_scope

logger = logging.getLogger(__name__)


class TokenExpiryWorker:
    """Worker that runs the access-token expiry check on an interval.

    Lifecycle:
    - Created via create_token_expiry_worker() or session_lifespan()
    - Runs as asyncio task via start()
    - Stopped via stop()
    """

    def __init__(
        self,
        manager: SessionManager[Any],
        refresh: RefreshCallback,
        check_interval: int = 60,
    ) -> None:
        """Initialize the expiry worker.

        Args:
            manager: Session to watch
            refresh: Refresh callback handed to every expiry check
            check_interval: Seconds between checks (default: 60)
        """
        self._manager = manager
        self._refresh = refresh
        self._check_interval = check_interval
        self._running = False
        self._outcomes: Counter[str] = Counter()
        self._stats: dict[str, Any] = {
            "cycles": 0,
            "errors": 0,
            "last_check_at": None,
            "last_outcome": None,
        }

    @property
    def running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Run expiry checks until stop() is called."""
        self._running = True
        logger.info(LogMessages.worker_started("TokenExpiryWorker", self._check_interval))

        while self._running:
            await self.run_once()
            if not self._running:
                break
            await asyncio.sleep(self._check_interval)

    async def run_once(self) -> ExpiryCheck | None:
        """Run a single expiry check.

        Returns:
            Outcome of the check, or None if the check crashed
        """
        with correlation_scope("expiry-check"):
            try:
                outcome = await self._manager.check_access_token_is_expired(self._refresh)
            except Exception as e:
                # Log but don't crash - we'll try again next cycle
                self._stats["errors"] += 1
                logger.exception(LogMessages.worker_failed("TokenExpiryWorker", str(e)))
                return None
            finally:
                self._stats["cycles"] += 1
                self._stats["last_check_at"] = datetime.now(UTC)

            self._outcomes[outcome.value] += 1
            self._stats["last_outcome"] = outcome.value
            if outcome is ExpiryCheck.SESSION_CLEARED:
                logger.warning("TokenExpiryWorker: session cleared after failed refresh")
            elif outcome is ExpiryCheck.REFRESHED:
                logger.debug("TokenExpiryWorker: access token refreshed")
            return outcome

    def stop(self) -> None:
        """Signal the worker to stop."""
        self._running = False
        logger.info("TokenExpiryWorker stopping...")

    def get_stats(self) -> dict[str, Any]:
        """Get worker statistics."""
        return {
            **self._stats,
            "outcomes": dict(self._outcomes),
            "running": self._running,
            "check_interval": self._check_interval,
        }


def create_token_expiry_worker(
    manager: SessionManager[Any],
    refresh: RefreshCallback,
    check_interval: int = 60,
) -> TokenExpiryWorker:
    """Create a TokenExpiryWorker with the given configuration.

    Args:
        manager: Session to watch
        refresh: Refresh callback
        check_interval: Seconds between checks

    Returns:
        Configured TokenExpiryWorker instance
    """
    return TokenExpiryWorker(
        manager=manager,
        refresh=refresh,
        check_interval=check_interval,
    )
