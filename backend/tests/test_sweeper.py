"""Tests for SessionSweeper."""
from contextlib import asynccontextmanager
from uuid import uuid4

import pytest

from conftest import make_token_set
from renovator.core.config import settings
from renovator.services.auth.sweeper import SessionSweeper


def store_factory_for(store):
    @asynccontextmanager
    async def factory():
        yield store
    return factory


def test_sweeper_interval_from_settings(session_store):
    """Test sweeper uses interval from settings."""
    sweeper = SessionSweeper(store_factory_for(session_store))
    assert sweeper.interval_minutes == settings.session_sweep_interval_minutes


def test_sweeper_interval_override(session_store):
    sweeper = SessionSweeper(store_factory_for(session_store), interval_minutes=5)
    assert sweeper.interval_minutes == 5


@pytest.mark.asyncio
async def test_sweep_once_removes_expired_sessions(session_store, clock):
    """Test a single sweep deletes only expired sessions."""
    expired = await session_store.create(uuid4(), make_token_set("a", expires_in=60))
    live = await session_store.create(uuid4(), make_token_set("b", expires_in=3600))
    clock.advance(61)
    sweeper = SessionSweeper(store_factory_for(session_store))

    removed = await sweeper.sweep_once()

    assert removed == 1
    assert await session_store.get_by_id(expired.id) is None
    assert await session_store.get_by_id(live.id) is not None


@pytest.mark.asyncio
async def test_start_runs_until_stopped(session_store):
    """Test the loop sweeps and exits once stop() is called."""
    sweeps = []

    @asynccontextmanager
    async def factory():
        sweeps.append(1)
        sweeper.stop()
        yield session_store

    sweeper = SessionSweeper(factory)
    await sweeper.start()

    assert sweeps == [1]
    assert sweeper.running is False


@pytest.mark.asyncio
async def test_start_survives_sweep_errors(session_store):
    """Test a failing sweep is logged, not raised."""
    @asynccontextmanager
    async def factory():
        sweeper.stop()
        raise RuntimeError("database unavailable")
        yield session_store

    sweeper = SessionSweeper(factory)
    await sweeper.start()

    assert sweeper.running is False
