import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from renovator.core.config import settings
from renovator.core.deps import session_store_scope
from renovator.api.auth import router as auth_router
from renovator.services.auth.sweeper import SessionSweeper

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

sweeper = SessionSweeper(session_store_scope)
_sweeper_task = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    global _sweeper_task
    # Startup
    _sweeper_task = asyncio.create_task(sweeper.start())
    yield
    # Shutdown - stop and wait
    sweeper.stop()
    if _sweeper_task:
        try:
            await asyncio.wait_for(_sweeper_task, timeout=10)
        except asyncio.TimeoutError:
            logger.warning("Session sweeper did not complete in time")


app = FastAPI(
    title=settings.app_name,
    description="Renovation project management API",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth_router, prefix="/api")


@app.get("/health")
async def health_check() -> dict[str, Any]:
    return {
        "status": "healthy",
        "version": "0.1.0",
        "environment": settings.environment,
    }
