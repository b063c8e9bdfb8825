#!/usr/bin/env python3
"""Standalone expired-session sweeper for deployments that run it as a service."""
import asyncio
import logging
import signal

from renovator.core.config import settings
from renovator.core.deps import session_store_scope
from renovator.services.auth.sweeper import SessionSweeper


async def main():
    sweeper = SessionSweeper(session_store_scope)

    # Handle graceful shutdown
    def shutdown_handler(sig, frame):
        sweeper.stop()

    signal.signal(signal.SIGTERM, shutdown_handler)
    signal.signal(signal.SIGINT, shutdown_handler)

    await sweeper.start()


if __name__ == "__main__":
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    asyncio.run(main())
