"""Authentication use cases: login, callback, refresh, logout, me.

Each operation is independent of HTTP; ``renovator.api.auth`` maps the
``AuthError`` kinds raised here to status codes.
"""
import logging
from uuid import UUID

from renovator.schemas.auth import CallbackResult, Identity, TokenSet
from renovator.services.auth.errors import (
    AuthenticationFailed,
    AuthExchangeError,
    AuthIntrospectError,
    AuthRefreshError,
    AuthRevokeError,
    AuthUserInfoError,
    InvalidRequest,
    ProviderUnavailable,
    RefreshFailed,
    RevokeError,
    TokenServiceError,
    Unauthorized,
)
from renovator.services.auth.oauth import TokenService
from renovator.services.auth.sessions import SessionStore
from renovator.services.auth.users import UserDirectory

logger = logging.getLogger(__name__)


def _translate(error: TokenServiceError, kind: type) -> Exception:
    if error.provider_unavailable:
        return ProviderUnavailable(f"{kind.default_message}: {error.description}")
    return kind(f"{kind.default_message}: {error.description}")


class AuthController:
    """Orchestrates the Token Service, Session Store and User Directory."""

    def __init__(
        self,
        tokens: TokenService,
        sessions: SessionStore,
        users: UserDirectory,
    ):
        self.tokens = tokens
        self.sessions = sessions
        self.users = users

    def login(self, redirect_uri: str, state: str | None = None) -> str:
        """Return the provider authorization URL to send the browser to."""
        try:
            return self.tokens.build_authorization_url(redirect_uri, state)
        except ValueError as e:
            raise InvalidRequest(str(e)) from e

    async def callback(self, code: str | None, redirect_uri: str) -> CallbackResult:
        """Complete an authorization-code login.

        Exchange the code, fetch the profile, upsert the user by email and
        open a session. A failure after the session was created leaves it in
        place; retrying with a fresh code opens a new one.
        """
        if not code:
            raise InvalidRequest("Authorization code is required")
        if not redirect_uri:
            raise InvalidRequest("Redirect URI is required")

        try:
            tokens = await self.tokens.exchange_code(code, redirect_uri)
            user_info = await self.tokens.fetch_user_info(tokens.access_token)
        except (AuthExchangeError, AuthUserInfoError) as e:
            logger.warning(f"OAuth callback failed: {e}")
            # A code is single-use, so an unreachable provider is still a failed login
            raise AuthenticationFailed(f"Authentication failed: {e.description}") from e

        identity = await self.users.find_or_create_user(
            email=user_info.email,
            given_name=user_info.given_name,
            family_name=user_info.family_name,
            external_id=user_info.sub,
            phone=user_info.phone,
            company=user_info.company,
        )
        session = await self.sessions.create(identity.id, tokens)
        logger.info(f"Opened session {session.id} for user {identity.id}")

        return CallbackResult(tokens=tokens, session_id=session.id, identity=identity)

    async def refresh(self, refresh_token: str | None) -> TokenSet:
        """Trade a refresh token for a new pair and update the matching session.

        A refresh token with no stored session still yields fresh tokens.
        Concurrent refreshes of one session are not serialized; the last
        update wins.
        """
        if not refresh_token:
            raise InvalidRequest("Refresh token is required")

        try:
            tokens = await self.tokens.refresh(refresh_token)
        except AuthRefreshError as e:
            logger.warning(f"Token refresh failed: {e}")
            raise RefreshFailed(f"Failed to refresh token: {e.description}") from e

        session = await self.sessions.get_by_refresh_token(refresh_token)
        if session is not None:
            updated = await self.sessions.update(session.id, tokens)
            if updated is None:
                logger.info(f"Session {session.id} disappeared before it could be refreshed")
        else:
            logger.info("Refreshed tokens have no stored session")

        return tokens

    async def logout(
        self,
        access_token: str | None = None,
        session_id: UUID | None = None,
    ) -> RevokeError | None:
        """Revoke the access token (best effort) and delete the session.

        A failed revocation does not stop the logout; it is returned so the
        caller can report it.
        """
        if not access_token and session_id is None:
            raise InvalidRequest("Access token or session id is required")

        revoke_error = None
        if access_token:
            try:
                await self.tokens.revoke(access_token)
            except AuthRevokeError as e:
                logger.warning(f"Token revocation failed during logout: {e}")
                revoke_error = RevokeError(f"{RevokeError.default_message}: {e.description}")

        if session_id is not None:
            await self.sessions.delete(session_id)
            logger.info(f"Closed session {session_id}")

        return revoke_error

    async def me(self, access_token: str | None) -> Identity:
        """Identity behind a bearer token, without any secrets."""
        if not access_token:
            raise Unauthorized("No token provided")

        try:
            user_info = await self.tokens.fetch_user_info(access_token)
        except AuthUserInfoError as e:
            raise _translate(e, Unauthorized) from e

        identity = await self.users.get_by_external_id(user_info.sub)
        if identity is None:
            identity = await self.users.get_by_email(user_info.email)
        if identity is None:
            raise Unauthorized("User not found")
        return identity

    async def get_identity_from_token(self, access_token: str | None) -> Identity:
        """Authorize a request for downstream services.

        Validates the token by introspection, then resolves the local user.
        This is the only coupling point between the auth core and the CRUD
        domain.
        """
        if not access_token:
            raise Unauthorized("No token provided")

        try:
            result = await self.tokens.introspect(access_token)
        except AuthIntrospectError as e:
            raise _translate(e, Unauthorized) from e

        if not result.valid:
            raise Unauthorized("Invalid or expired access token")

        identity = None
        if result.user_id:
            identity = await self.users.get_by_external_id(result.user_id)
        if identity is None:
            session = await self.sessions.get_by_access_token(access_token)
            if session is not None and not self.sessions.is_expired(session):
                identity = await self.users.get_by_id(session.user_id)
        if identity is None:
            raise Unauthorized("User not found")
        return identity
