"""Outbound API calls that carry the stored bearer token.

A 401 triggers at most one refresh-and-retry per original call. The retry
budget travels with the call as an explicit ``attempt`` counter, and the
outcome comes back as an ``ApiResult`` value rather than an exception, so
the refresh decision never depends on where an error was caught.
"""
import enum
import logging
from dataclasses import dataclass
from typing import Any

import httpx

from renovator.core.config import settings
from renovator.client.exceptions import ApiError, AuthenticationRequired
from renovator.client.storage import StoredTokens, TokenStorage

logger = logging.getLogger(__name__)


class CallOutcome(str, enum.Enum):
    OK = "ok"
    AUTH_FAILED = "auth_failed"
    ERROR = "error"


@dataclass
class ApiResult:
    outcome: CallOutcome
    status_code: int | None
    data: Any = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.outcome is CallOutcome.OK

    def unwrap(self) -> Any:
        """Return the payload, or raise the matching client error."""
        if self.outcome is CallOutcome.OK:
            return self.data
        if self.outcome is CallOutcome.AUTH_FAILED:
            raise AuthenticationRequired(self.error or "Authentication failed")
        raise ApiError(self.error or "Request failed", status_code=self.status_code)


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        message = body.get("error") or body.get("detail")
        if isinstance(message, str) and message:
            return message
    return f"Request failed with status {response.status_code}"


class AuthGateway:
    """API client that attaches tokens and recovers from one expired token."""

    MAX_AUTH_RETRIES = 1
    REFRESH_PATH = "/api/auth/refresh"

    def __init__(
        self,
        storage: TokenStorage,
        base_url: str | None = None,
        http_client: httpx.AsyncClient | None = None,
        timeout: float | None = None,
    ):
        self.storage = storage
        self.base_url = (base_url or settings.api_base_url).rstrip("/")
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            timeout=timeout or settings.oauth_http_timeout_seconds,
        )

    async def __aenter__(self) -> "AuthGateway":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def refresh_tokens(self) -> StoredTokens | None:
        """Trade the stored refresh token for a new pair and store it.

        Returns None when there is no refresh token or the refresh was
        rejected; the stored pair is left untouched in that case.
        """
        current = self.storage.get()
        if current is None or not current.refresh_token:
            return None

        try:
            response = await self._client.post(
                f"{self.base_url}{self.REFRESH_PATH}",
                json={"refreshToken": current.refresh_token},
            )
        except httpx.HTTPError as e:
            logger.warning(f"Error refreshing token: {e.__class__.__name__}")
            return None

        if not response.is_success:
            return None

        try:
            data = response.json()
            tokens = StoredTokens(
                access_token=data["accessToken"],
                refresh_token=data["refreshToken"],
                expires_in=int(data["expiresIn"]),
                session_id=current.session_id,
            )
        except (ValueError, KeyError, TypeError):
            logger.warning("Refresh response was not understood")
            return None

        self.storage.set(tokens)
        return tokens

    async def request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        skip_auth: bool = False,
        attempt: int = 0,
    ) -> ApiResult:
        """Issue a call; on 401 refresh once and re-issue it once."""
        request_headers = dict(headers or {})
        if not skip_auth:
            tokens = self.storage.get()
            if tokens:
                request_headers["Authorization"] = f"Bearer {tokens.access_token}"

        try:
            response = await self._client.request(
                method,
                f"{self.base_url}{path}",
                json=json,
                params=params,
                headers=request_headers,
            )
        except httpx.HTTPError as e:
            return ApiResult(CallOutcome.ERROR, None, error=f"Request failed: {e.__class__.__name__}")

        if response.status_code == 401 and not skip_auth:
            if attempt >= self.MAX_AUTH_RETRIES:
                return ApiResult(CallOutcome.AUTH_FAILED, 401, error="Authentication failed")

            refreshed = await self.refresh_tokens()
            if refreshed is None:
                return ApiResult(CallOutcome.AUTH_FAILED, 401, error="Authentication failed")

            return await self.request(
                method,
                path,
                json=json,
                params=params,
                headers=headers,
                skip_auth=skip_auth,
                attempt=attempt + 1,
            )

        return self._to_result(response)

    @staticmethod
    def _to_result(response: httpx.Response) -> ApiResult:
        if not response.is_success:
            return ApiResult(CallOutcome.ERROR, response.status_code, error=_error_message(response))

        # 204 No Content, e.g. from DELETE
        if response.status_code == 204 or not response.content:
            return ApiResult(CallOutcome.OK, response.status_code)

        try:
            data = response.json()
        except ValueError:
            return ApiResult(CallOutcome.ERROR, response.status_code, error="Invalid JSON in response")
        return ApiResult(CallOutcome.OK, response.status_code, data=data)

    async def get(self, path: str, **kwargs) -> Any:
        return (await self.request("GET", path, **kwargs)).unwrap()

    async def post(self, path: str, data: Any = None, **kwargs) -> Any:
        return (await self.request("POST", path, json=data, **kwargs)).unwrap()

    async def put(self, path: str, data: Any = None, **kwargs) -> Any:
        return (await self.request("PUT", path, json=data, **kwargs)).unwrap()

    async def delete(self, path: str, **kwargs) -> Any:
        return (await self.request("DELETE", path, **kwargs)).unwrap()
