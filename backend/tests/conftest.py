"""Shared fixtures for the auth test suite."""
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from renovator.schemas.auth import ProviderUserInfo, TokenSet
from renovator.services.auth.oauth import TokenService
from renovator.services.auth.sessions import InMemorySessionStore
from renovator.services.auth.users import InMemoryUserDirectory


class FakeClock:
    """Controllable clock for expiry tests."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


def make_token_set(suffix: str = "1", expires_in: int = 3600) -> TokenSet:
    return TokenSet(
        access_token=f"access-{suffix}",
        refresh_token=f"refresh-{suffix}",
        expires_in=expires_in,
        token_type="Bearer",
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def session_store(clock: FakeClock) -> InMemorySessionStore:
    return InMemorySessionStore(clock=clock)


@pytest.fixture
def user_directory() -> InMemoryUserDirectory:
    return InMemoryUserDirectory()


@pytest.fixture
def token_service() -> MagicMock:
    """Token service double; network methods are AsyncMocks."""
    service = MagicMock(spec=TokenService)
    service.build_authorization_url.return_value = (
        "http://idp.test/realms/renovator/protocol/openid-connect/auth?client_id=renovator-app"
    )
    service.exchange_code = AsyncMock(return_value=make_token_set("1"))
    service.refresh = AsyncMock(return_value=make_token_set("2"))
    service.fetch_user_info = AsyncMock(return_value=ProviderUserInfo(
        sub="kc-123",
        email="anna@example.com",
        given_name="Anna",
        family_name="Kowalska",
    ))
    service.introspect = AsyncMock()
    service.revoke = AsyncMock(return_value=None)
    return service
