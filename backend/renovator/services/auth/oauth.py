# backend/renovator/services/auth/oauth.py
import logging
from datetime import datetime, timezone
from urllib.parse import urlencode

import httpx
from pydantic import ValidationError

from renovator.core.config import settings
from renovator.core.security import validate_redirect_uri
from renovator.schemas.auth import ProviderUserInfo, TokenIntrospection, TokenSet
from renovator.services.auth.errors import (
    AuthExchangeError,
    AuthIntrospectError,
    AuthRefreshError,
    AuthRevokeError,
    AuthUserInfoError,
    TokenServiceError,
)

logger = logging.getLogger(__name__)


def describe_provider_error(response: httpx.Response) -> str:
    """Short description of a provider error response.

    Only the OAuth ``error_description`` (or ``error``) field is kept; the raw
    body never leaves this module.
    """
    try:
        data = response.json()
    except ValueError:
        data = None
    if isinstance(data, dict):
        description = data.get("error_description") or data.get("error")
        if isinstance(description, str) and description:
            return description[:200]
    return f"HTTP {response.status_code}"


class TokenService:
    """Client for the OpenID Connect provider's authorization server.

    The only component that knows the provider wire protocol. Every call
    applies ``settings.oauth_http_timeout_seconds``; a timeout is reported the
    same way as a provider failure of that operation.
    """

    SCOPES = ["openid", "profile", "email"]

    def __init__(self):
        """Initialize Token service and validate configuration."""
        if not settings.keycloak_client_id:
            raise ValueError("KEYCLOAK_CLIENT_ID not configured")
        if not settings.keycloak_client_secret:
            raise ValueError("KEYCLOAK_CLIENT_SECRET not configured")

        self.client_id = settings.keycloak_client_id
        self.client_secret = settings.keycloak_client_secret
        self.timeout = settings.oauth_http_timeout_seconds

        base = f"{settings.realm_url}/protocol/openid-connect"
        self.authorization_endpoint = f"{base}/auth"
        self.token_endpoint = f"{base}/token"
        self.introspection_endpoint = f"{base}/token/introspect"
        self.userinfo_endpoint = f"{base}/userinfo"
        self.revocation_endpoint = f"{base}/revoke"

    def build_authorization_url(self, redirect_uri: str, state: str | None = None) -> str:
        """Generate the provider authorization URL for the code flow."""
        validate_redirect_uri(redirect_uri)
        params = {
            "client_id": self.client_id,
            "redirect_uri": redirect_uri,
            "response_type": "code",
            "scope": " ".join(self.SCOPES),
        }
        if state:
            params["state"] = state
        return f"{self.authorization_endpoint}?{urlencode(params)}"

    async def exchange_code(self, code: str, redirect_uri: str) -> TokenSet:
        """Exchange authorization code for tokens."""
        data = await self._post_form(
            self.token_endpoint,
            {
                "grant_type": "authorization_code",
                "code": code,
                "redirect_uri": redirect_uri,
                "client_id": self.client_id,
                "client_secret": self.client_secret,
            },
            AuthExchangeError,
        )
        return self._parse_token_set(data, AuthExchangeError)

    async def refresh(self, refresh_token: str) -> TokenSet:
        """Obtain a new token pair with a refresh token."""
        data = await self._post_form(
            self.token_endpoint,
            {
                "grant_type": "refresh_token",
                "refresh_token": refresh_token,
                "client_id": self.client_id,
                "client_secret": self.client_secret,
            },
            AuthRefreshError,
        )
        # Providers without refresh token rotation omit it; the old one stays valid
        return self._parse_token_set(data, AuthRefreshError, fallback_refresh_token=refresh_token)

    async def introspect(self, access_token: str) -> TokenIntrospection:
        """Ask the provider whether a token is active.

        An inactive token is a normal answer (``valid=False``); only transport
        or provider failures raise.
        """
        data = await self._post_form(
            self.introspection_endpoint,
            {
                "token": access_token,
                "client_id": self.client_id,
                "client_secret": self.client_secret,
            },
            AuthIntrospectError,
        )

        if not data.get("active"):
            return TokenIntrospection(valid=False)

        exp = data.get("exp")
        scope = data.get("scope")
        try:
            return TokenIntrospection(
                valid=True,
                user_id=data.get("sub"),
                expires_at=datetime.fromtimestamp(exp, tz=timezone.utc) if exp else None,
                scopes=scope.split() if isinstance(scope, str) and scope else None,
            )
        except (TypeError, ValueError, OverflowError) as e:
            raise AuthIntrospectError("Invalid response format") from e

    async def fetch_user_info(self, access_token: str) -> ProviderUserInfo:
        """Fetch user info for an access token."""
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(
                    self.userinfo_endpoint,
                    headers={"Authorization": f"Bearer {access_token}"},
                )
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPStatusError as e:
            raise self._status_error(AuthUserInfoError, e) from e
        except httpx.TimeoutException as e:
            raise AuthUserInfoError("Timeout fetching user info", provider_unavailable=True) from e
        except httpx.RequestError as e:
            raise AuthUserInfoError(
                f"Request error fetching user info: {e.__class__.__name__}", provider_unavailable=True
            ) from e
        except ValueError as e:
            raise AuthUserInfoError("Invalid response format") from e

        if not isinstance(data, dict):
            raise AuthUserInfoError("Invalid response format")
        # Validate required fields in response
        if not data.get("sub"):
            raise AuthUserInfoError("Missing 'sub' (user ID) in response")
        if not data.get("email"):
            raise AuthUserInfoError("Missing 'email' in response")

        try:
            return ProviderUserInfo.model_validate(data)
        except ValidationError as e:
            raise AuthUserInfoError("Invalid response format") from e

    async def revoke(self, token: str) -> None:
        """Revoke a token at the provider. Callers treat failure as non-fatal."""
        await self._post_form(
            self.revocation_endpoint,
            {
                "token": token,
                "client_id": self.client_id,
                "client_secret": self.client_secret,
            },
            AuthRevokeError,
        )

    async def _post_form(
        self,
        url: str,
        form: dict[str, str],
        error_cls: type[TokenServiceError],
    ) -> dict:
        """POST a form to the provider and return the decoded JSON body."""
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(url, data=form)
                response.raise_for_status()
                if not response.content:
                    return {}
                data = response.json()
        except httpx.HTTPStatusError as e:
            raise self._status_error(error_cls, e) from e
        except httpx.TimeoutException as e:
            raise error_cls("Timeout talking to authorization server", provider_unavailable=True) from e
        except httpx.RequestError as e:
            raise error_cls(
                f"Request error: {e.__class__.__name__}", provider_unavailable=True
            ) from e
        except ValueError as e:
            raise error_cls("Invalid response format") from e

        if not isinstance(data, dict):
            raise error_cls("Invalid response format")
        return data

    @staticmethod
    def _status_error(error_cls: type[TokenServiceError], e: httpx.HTTPStatusError) -> TokenServiceError:
        status = e.response.status_code
        description = describe_provider_error(e.response)
        logger.warning(f"{error_cls.operation} rejected by provider (HTTP {status}): {description}")
        return error_cls(description, provider_unavailable=status >= 500)

    @staticmethod
    def _parse_token_set(
        data: dict,
        error_cls: type[TokenServiceError],
        fallback_refresh_token: str | None = None,
    ) -> TokenSet:
        # Validate required fields in response
        if not data.get("access_token"):
            raise error_cls("Missing access_token in response")

        refresh_token = data.get("refresh_token") or fallback_refresh_token
        if not refresh_token:
            raise error_cls("Missing refresh_token in response")

        try:
            return TokenSet(
                access_token=data["access_token"],
                refresh_token=refresh_token,
                expires_in=int(data["expires_in"]),
                token_type=data.get("token_type") or "Bearer",
                id_token=data.get("id_token"),
            )
        except KeyError as e:
            raise error_cls(f"Invalid response format: missing {e}") from e
        except (TypeError, ValueError) as e:
            raise error_cls("Invalid response format") from e
