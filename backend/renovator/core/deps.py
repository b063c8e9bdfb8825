# backend/renovator/core/deps.py
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from renovator.core.database import async_session_factory, get_session
from renovator.core.security import parse_bearer_token
from renovator.schemas.auth import Identity
from renovator.services.auth.controller import AuthController
from renovator.services.auth.errors import AuthError, ProviderUnavailable, Unauthorized
from renovator.services.auth.oauth import TokenService
from renovator.services.auth.sessions import SessionStore, SqlAlchemySessionStore
from renovator.services.auth.users import SqlAlchemyUserDirectory, UserDirectory

logger = logging.getLogger(__name__)

# Lazy instantiation to avoid config validation errors at import time
_token_service: TokenService | None = None


def get_token_service() -> TokenService:
    """Get or create the Token service singleton."""
    global _token_service
    if _token_service is None:
        _token_service = TokenService()
    return _token_service


async def get_session_store(db: AsyncSession = Depends(get_session)) -> SessionStore:
    return SqlAlchemySessionStore(db)


async def get_user_directory(db: AsyncSession = Depends(get_session)) -> UserDirectory:
    return SqlAlchemyUserDirectory(db)


async def get_auth_controller(
    tokens: TokenService = Depends(get_token_service),
    sessions: SessionStore = Depends(get_session_store),
    users: UserDirectory = Depends(get_user_directory),
) -> AuthController:
    return AuthController(tokens=tokens, sessions=sessions, users=users)


@asynccontextmanager
async def session_store_scope() -> AsyncIterator[SessionStore]:
    """Session store on its own database session, for out-of-band jobs."""
    async with async_session_factory() as db:
        yield SqlAlchemySessionStore(db)


def to_http_exception(error: AuthError) -> HTTPException:
    """Map an authentication error kind to the HTTP response it produces."""
    headers = None
    if error.status_code == status.HTTP_401_UNAUTHORIZED:
        headers = {"WWW-Authenticate": "Bearer"}
    return HTTPException(status_code=error.status_code, detail=error.message, headers=headers)


async def get_bearer_token(
    authorization: str | None = Header(default=None),
) -> str | None:
    return parse_bearer_token(authorization)


async def require_identity(
    access_token: str | None = Depends(get_bearer_token),
    controller: AuthController = Depends(get_auth_controller),
) -> Identity:
    """Dependency for routes that need an authenticated caller."""
    try:
        return await controller.get_identity_from_token(access_token)
    except AuthError as e:
        raise to_http_exception(e) from e


async def optional_identity(
    access_token: str | None = Depends(get_bearer_token),
    controller: AuthController = Depends(get_auth_controller),
) -> Identity | None:
    """Dependency for routes that serve anonymous callers too.

    Resolves to None when the token is missing, invalid or cannot be checked.
    """
    if not access_token:
        return None
    try:
        return await controller.get_identity_from_token(access_token)
    except (Unauthorized, ProviderUnavailable) as e:
        logger.info(f"Continuing without identity: {e}")
        return None
