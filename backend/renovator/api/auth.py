# backend/renovator/api/auth.py
from fastapi import APIRouter, Depends

from renovator.core.config import settings
from renovator.core.deps import get_auth_controller, get_bearer_token, to_http_exception
from renovator.schemas.auth import (
    AuthorizationUrlResponse,
    CallbackResponse,
    LogoutRequest,
    MeResponse,
    MessageResponse,
    RefreshRequest,
    TokenResponse,
    UserResponse,
)
from renovator.services.auth.controller import AuthController
from renovator.services.auth.errors import AuthError

router = APIRouter(prefix="/auth", tags=["auth"])


@router.get("/login", response_model=AuthorizationUrlResponse)
async def login(
    redirect_uri: str | None = None,
    state: str | None = None,
    controller: AuthController = Depends(get_auth_controller),
):
    """Return the provider authorization URL for the code flow."""
    try:
        url = controller.login(redirect_uri or settings.default_redirect_uri, state)
    except AuthError as e:
        raise to_http_exception(e) from e
    return AuthorizationUrlResponse(authorization_url=url)


@router.get("/callback", response_model=CallbackResponse)
async def callback(
    code: str | None = None,
    redirect_uri: str | None = None,
    controller: AuthController = Depends(get_auth_controller),
):
    """Exchange an authorization code for tokens and open a session."""
    try:
        result = await controller.callback(code, redirect_uri or settings.default_redirect_uri)
    except AuthError as e:
        raise to_http_exception(e) from e

    return CallbackResponse(
        access_token=result.tokens.access_token,
        refresh_token=result.tokens.refresh_token,
        expires_in=result.tokens.expires_in,
        session_id=result.session_id,
        user=UserResponse(
            id=result.identity.id,
            email=result.identity.email,
            first_name=result.identity.first_name,
            last_name=result.identity.last_name,
        ),
    )


@router.post("/refresh", response_model=TokenResponse)
async def refresh(
    body: RefreshRequest,
    controller: AuthController = Depends(get_auth_controller),
):
    """Refresh the access token."""
    try:
        tokens = await controller.refresh(body.refresh_token)
    except AuthError as e:
        raise to_http_exception(e) from e

    return TokenResponse(
        access_token=tokens.access_token,
        refresh_token=tokens.refresh_token,
        expires_in=tokens.expires_in,
    )


@router.post("/logout", response_model=MessageResponse)
async def logout(
    body: LogoutRequest,
    controller: AuthController = Depends(get_auth_controller),
):
    """Revoke tokens and delete the session."""
    try:
        await controller.logout(access_token=body.access_token, session_id=body.session_id)
    except AuthError as e:
        raise to_http_exception(e) from e
    return MessageResponse(message="Logged out successfully")


@router.get("/me", response_model=MeResponse)
async def get_current_user_info(
    access_token: str | None = Depends(get_bearer_token),
    controller: AuthController = Depends(get_auth_controller),
):
    """Get current authenticated user info."""
    try:
        identity = await controller.me(access_token)
    except AuthError as e:
        raise to_http_exception(e) from e

    return MeResponse(
        id=identity.id,
        email=identity.email,
        first_name=identity.first_name,
        last_name=identity.last_name,
        phone=identity.phone,
        company=identity.company,
    )
