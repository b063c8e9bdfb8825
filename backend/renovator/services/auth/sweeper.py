"""Periodic removal of expired sessions, off the request path."""
import asyncio
import logging
from typing import AsyncContextManager, Callable

from renovator.core.config import settings
from renovator.services.auth.sessions import SessionStore

logger = logging.getLogger(__name__)

StoreFactory = Callable[[], AsyncContextManager[SessionStore]]


class SessionSweeper:
    """Deletes expired sessions every ``session_sweep_interval_minutes``."""

    def __init__(self, store_factory: StoreFactory, interval_minutes: int | None = None):
        self.store_factory = store_factory
        self.running = False
        self.interval_minutes = interval_minutes or settings.session_sweep_interval_minutes

    async def start(self) -> None:
        """Start the sweep loop."""
        self.running = True
        logger.info(f"Session sweeper started (interval: {self.interval_minutes} minutes)")

        while self.running:
            try:
                await self.sweep_once()
            except Exception as e:
                logger.exception(f"Error in session sweep: {e}")

            # Sleep in 1-second intervals for responsive shutdown
            sleep_seconds = self.interval_minutes * 60
            for _ in range(sleep_seconds):
                if not self.running:
                    break
                await asyncio.sleep(1)

    async def sweep_once(self) -> int:
        """Run a single sweep and return the number of sessions removed."""
        async with self.store_factory() as store:
            removed = await store.delete_expired()
        if removed:
            logger.info(f"Removed {removed} expired sessions")
        return removed

    def stop(self) -> None:
        """Stop the sweep loop."""
        self.running = False
        logger.info("Session sweeper stopped")
