from renovator.schemas.auth import (
    TokenSet,
    ProviderUserInfo,
    TokenIntrospection,
    Identity,
    CallbackResult,
    AuthorizationUrlResponse,
    UserResponse,
    MeResponse,
    TokenResponse,
    CallbackResponse,
    RefreshRequest,
    LogoutRequest,
    MessageResponse,
)

__all__ = [
    "TokenSet",
    "ProviderUserInfo",
    "TokenIntrospection",
    "Identity",
    "CallbackResult",
    "AuthorizationUrlResponse",
    "UserResponse",
    "MeResponse",
    "TokenResponse",
    "CallbackResponse",
    "RefreshRequest",
    "LogoutRequest",
    "MessageResponse",
]
