from renovator.client.exceptions import (
    ClientError,
    ApiError,
    AuthenticationRequired,
    LoginError,
)
from renovator.client.storage import (
    StoredTokens,
    TokenStorage,
    MemoryTokenStorage,
    JsonFileTokenStorage,
)
from renovator.client.gateway import AuthGateway, ApiResult, CallOutcome
from renovator.client.auth_state import ClientAuth, ClientUser
from renovator.client.guard import RouteGuard, GuardState, GuardDecision

__all__ = [
    "ClientError", "ApiError", "AuthenticationRequired", "LoginError",
    "StoredTokens", "TokenStorage", "MemoryTokenStorage", "JsonFileTokenStorage",
    "AuthGateway", "ApiResult", "CallOutcome",
    "ClientAuth", "ClientUser",
    "RouteGuard", "GuardState", "GuardDecision",
]
