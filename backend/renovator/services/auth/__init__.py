from renovator.services.auth.controller import AuthController
from renovator.services.auth.oauth import TokenService
from renovator.services.auth.sessions import (
    SessionStore,
    SqlAlchemySessionStore,
    InMemorySessionStore,
    is_expired,
)
from renovator.services.auth.users import (
    UserDirectory,
    SqlAlchemyUserDirectory,
    InMemoryUserDirectory,
)
from renovator.services.auth.sweeper import SessionSweeper

__all__ = [
    "AuthController",
    "TokenService",
    "SessionStore", "SqlAlchemySessionStore", "InMemorySessionStore", "is_expired",
    "UserDirectory", "SqlAlchemyUserDirectory", "InMemoryUserDirectory",
    "SessionSweeper",
]
