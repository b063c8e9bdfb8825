"""Client-side authentication state: restore, login, refresh, logout."""
import logging
from dataclasses import dataclass

from renovator.core.security import generate_state, states_match
from renovator.client.exceptions import AuthenticationRequired, LoginError
from renovator.client.gateway import AuthGateway
from renovator.client.storage import StoredTokens, TokenStorage

logger = logging.getLogger(__name__)

LOGIN_PATH = "/api/auth/login"
CALLBACK_PATH = "/api/auth/callback"
LOGOUT_PATH = "/api/auth/logout"
ME_PATH = "/api/auth/me"


@dataclass
class ClientUser:
    id: str
    email: str
    first_name: str
    last_name: str
    phone: str | None = None
    company: str | None = None

    @classmethod
    def from_payload(cls, data: dict) -> "ClientUser":
        return cls(
            id=str(data["id"]),
            email=data["email"],
            first_name=data.get("firstName") or "",
            last_name=data.get("lastName") or "",
            phone=data.get("phone"),
            company=data.get("company"),
        )


class ClientAuth:
    """Who is signed in on this client, and how to change that."""

    def __init__(self, gateway: AuthGateway, storage: TokenStorage):
        self.gateway = gateway
        self.storage = storage
        self.user: ClientUser | None = None
        self.is_loading = True
        self._pending_state: str | None = None

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None

    async def restore(self) -> None:
        """Resume a stored session on start-up.

        The stored access token is checked against ``/me``; the gateway
        refreshes it once if it has expired. Stored tokens that cannot be
        revived are cleared.
        """
        try:
            if self.storage.get() is None:
                return
            if not await self._load_user():
                self.clear()
        finally:
            self.is_loading = False

    async def begin_login(self, redirect_uri: str) -> str:
        """Start the code flow and return the URL to send the user to."""
        state = generate_state()
        self._pending_state = state
        data = (
            await self.gateway.request(
                "GET",
                LOGIN_PATH,
                params={"redirect_uri": redirect_uri, "state": state},
                skip_auth=True,
            )
        ).unwrap()
        return data["authorizationUrl"]

    async def complete_login(
        self,
        code: str | None,
        state: str | None,
        redirect_uri: str,
        error: str | None = None,
    ) -> ClientUser:
        """Finish the code flow with the parameters the provider returned."""
        if error:
            raise LoginError(f"Authentication failed: {error}")
        if not code:
            raise LoginError("No authorization code received")
        if not states_match(state, self._pending_state):
            raise LoginError("Invalid state parameter - possible CSRF attack")

        result = await self.gateway.request(
            "GET",
            CALLBACK_PATH,
            params={"code": code, "redirect_uri": redirect_uri},
            skip_auth=True,
        )
        self._pending_state = None
        if not result.ok:
            raise LoginError("Failed to exchange authorization code")

        data = result.data
        try:
            self.storage.set(StoredTokens(
                access_token=data["accessToken"],
                refresh_token=data["refreshToken"],
                expires_in=int(data["expiresIn"]),
                session_id=str(data["sessionId"]),
            ))
            self.user = ClientUser.from_payload(data["user"])
        except (KeyError, TypeError, ValueError) as e:
            raise LoginError("Unexpected callback response") from e
        return self.user

    async def refresh(self) -> None:
        """Refresh the stored tokens and reload the user.

        Raises AuthenticationRequired when the refresh is rejected.
        """
        if await self.gateway.refresh_tokens() is None:
            raise AuthenticationRequired("Failed to refresh token")
        if not await self._load_user(allow_refresh=False):
            self.user = None

    async def logout(self) -> None:
        """End the session at the server (best effort) and forget it locally."""
        tokens = self.storage.get()
        try:
            if tokens:
                result = await self.gateway.request(
                    "POST",
                    LOGOUT_PATH,
                    json={"accessToken": tokens.access_token, "sessionId": tokens.session_id},
                    skip_auth=True,
                )
                if not result.ok:
                    logger.warning(f"Error during logout: {result.error}")
        finally:
            self.clear()

    def clear(self) -> None:
        self.storage.clear()
        self.user = None
        self._pending_state = None

    async def _load_user(self, allow_refresh: bool = True) -> bool:
        # The retry budget is already spent when called right after a refresh
        attempt = 0 if allow_refresh else self.gateway.MAX_AUTH_RETRIES
        result = await self.gateway.request("GET", ME_PATH, attempt=attempt)
        if not result.ok:
            return False
        try:
            self.user = ClientUser.from_payload(result.data)
        except (KeyError, TypeError, ValueError):
            logger.warning("Unexpected user response")
            return False
        return True
