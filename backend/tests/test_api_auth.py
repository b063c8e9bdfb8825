# backend/tests/test_api_auth.py
import pytest
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

from fastapi import Depends, FastAPI
from fastapi.testclient import TestClient

from renovator.api.auth import router
from renovator.core.deps import get_auth_controller, optional_identity, require_identity
from renovator.main import app
from renovator.schemas.auth import CallbackResult, Identity, TokenSet
from renovator.services.auth.controller import AuthController
from renovator.services.auth.errors import (
    AuthenticationFailed,
    InvalidRequest,
    ProviderUnavailable,
    RefreshFailed,
    Unauthorized,
)

USER_ID = uuid4()
SESSION_ID = uuid4()


def make_identity() -> Identity:
    return Identity(
        id=USER_ID,
        email="anna@example.com",
        first_name="Anna",
        last_name="Kowalska",
        phone="+48 600 000 000",
        company="Remonty",
    )


@pytest.fixture
def controller():
    mock_controller = MagicMock(spec=AuthController)
    mock_controller.login.return_value = "http://idp.test/auth?client_id=renovator-app"
    mock_controller.callback = AsyncMock(return_value=CallbackResult(
        tokens=TokenSet(access_token="access-1", refresh_token="refresh-1", expires_in=300),
        session_id=SESSION_ID,
        identity=make_identity(),
    ))
    mock_controller.refresh = AsyncMock(return_value=TokenSet(
        access_token="access-2", refresh_token="refresh-2", expires_in=300,
    ))
    mock_controller.logout = AsyncMock(return_value=None)
    mock_controller.me = AsyncMock(return_value=make_identity())
    mock_controller.get_identity_from_token = AsyncMock(return_value=make_identity())
    return mock_controller


@pytest.fixture
def client(controller):
    app.dependency_overrides[get_auth_controller] = lambda: controller
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_router_exists():
    """Test that the auth router exists and has correct config."""
    assert router.prefix == "/auth"
    assert "auth" in router.tags


def test_login_returns_authorization_url(client, controller):
    response = client.get(
        "/api/auth/login",
        params={"redirect_uri": "http://localhost:3000/auth/callback", "state": "xyz"},
    )

    assert response.status_code == 200
    assert response.json() == {"authorizationUrl": "http://idp.test/auth?client_id=renovator-app"}
    controller.login.assert_called_once_with("http://localhost:3000/auth/callback", "xyz")


def test_login_uses_default_redirect(client, controller):
    from renovator.core.config import settings

    client.get("/api/auth/login")

    controller.login.assert_called_once_with(settings.default_redirect_uri, None)


def test_login_with_malformed_redirect(client, controller):
    controller.login.side_effect = InvalidRequest("Invalid redirect URI")

    response = client.get("/api/auth/login", params={"redirect_uri": "nope"})

    assert response.status_code == 400
    assert response.json()["detail"] == "Invalid redirect URI"


def test_callback_returns_tokens_session_and_user(client, controller):
    response = client.get(
        "/api/auth/callback",
        params={"code": "abc", "redirect_uri": "http://localhost:3000/auth/callback"},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["accessToken"] == "access-1"
    assert data["refreshToken"] == "refresh-1"
    assert data["expiresIn"] == 300
    assert data["sessionId"] == str(SESSION_ID)
    assert data["user"] == {
        "id": str(USER_ID),
        "email": "anna@example.com",
        "firstName": "Anna",
        "lastName": "Kowalska",
    }
    controller.callback.assert_awaited_once_with("abc", "http://localhost:3000/auth/callback")


def test_callback_without_code(client, controller):
    controller.callback.side_effect = InvalidRequest("Authorization code is required")

    response = client.get("/api/auth/callback")

    assert response.status_code == 400
    assert response.json()["detail"] == "Authorization code is required"


def test_callback_rejected_code(client, controller):
    controller.callback.side_effect = AuthenticationFailed("Authentication failed: Code not valid")

    response = client.get("/api/auth/callback", params={"code": "reused"})

    assert response.status_code == 401
    assert response.json()["detail"] == "Authentication failed: Code not valid"
    assert response.headers["www-authenticate"] == "Bearer"


def test_refresh_returns_new_pair(client, controller):
    response = client.post("/api/auth/refresh", json={"refreshToken": "refresh-1"})

    assert response.status_code == 200
    assert response.json() == {
        "accessToken": "access-2",
        "refreshToken": "refresh-2",
        "expiresIn": 300,
    }
    controller.refresh.assert_awaited_once_with("refresh-1")


def test_refresh_accepts_snake_case_body(client, controller):
    client.post("/api/auth/refresh", json={"refresh_token": "refresh-1"})

    controller.refresh.assert_awaited_once_with("refresh-1")


def test_refresh_rejected(client, controller):
    controller.refresh.side_effect = RefreshFailed("Failed to refresh token: Token is not active")

    response = client.post("/api/auth/refresh", json={"refreshToken": "stale"})

    assert response.status_code == 401
    assert "Token is not active" in response.json()["detail"]


def test_logout(client, controller):
    response = client.post(
        "/api/auth/logout",
        json={"accessToken": "access-1", "sessionId": str(SESSION_ID)},
    )

    assert response.status_code == 200
    assert response.json() == {"message": "Logged out successfully"}
    controller.logout.assert_awaited_once_with(access_token="access-1", session_id=SESSION_ID)


def test_logout_with_empty_body(client, controller):
    controller.logout.side_effect = InvalidRequest("Access token or session id is required")

    response = client.post("/api/auth/logout", json={})

    assert response.status_code == 400


def test_me_returns_profile(client, controller):
    response = client.get("/api/auth/me", headers={"Authorization": "Bearer access-1"})

    assert response.status_code == 200
    assert response.json() == {
        "id": str(USER_ID),
        "email": "anna@example.com",
        "firstName": "Anna",
        "lastName": "Kowalska",
        "phone": "+48 600 000 000",
        "company": "Remonty",
    }
    controller.me.assert_awaited_once_with("access-1")


def test_me_without_authorization_header(client, controller):
    controller.me.side_effect = Unauthorized("No token provided")

    response = client.get("/api/auth/me")

    assert response.status_code == 401
    assert response.json()["detail"] == "No token provided"
    controller.me.assert_awaited_once_with(None)


def test_me_when_provider_unreachable(client, controller):
    controller.me.side_effect = ProviderUnavailable()

    response = client.get("/api/auth/me", headers={"Authorization": "Bearer access-1"})

    assert response.status_code == 503
    assert "www-authenticate" not in response.headers


# require_identity on a downstream route


@pytest.fixture
def protected_client(controller):
    protected = FastAPI()

    @protected.get("/projects")
    async def list_projects(identity: Identity = Depends(require_identity)):
        return {"owner": identity.email}

    @protected.get("/catalog")
    async def browse_catalog(identity: Identity | None = Depends(optional_identity)):
        return {"viewer": identity.email if identity else None}

    protected.dependency_overrides[get_auth_controller] = lambda: controller
    return TestClient(protected)


def test_require_identity_passes_identity(protected_client, controller):
    response = protected_client.get("/projects", headers={"Authorization": "Bearer access-1"})

    assert response.status_code == 200
    assert response.json() == {"owner": "anna@example.com"}
    controller.get_identity_from_token.assert_awaited_once_with("access-1")


def test_require_identity_rejects_invalid_token(protected_client, controller):
    controller.get_identity_from_token.side_effect = Unauthorized("Invalid or expired access token")

    response = protected_client.get("/projects", headers={"Authorization": "Bearer stale"})

    assert response.status_code == 401
    assert response.headers["www-authenticate"] == "Bearer"


def test_optional_identity_attaches_user(protected_client, controller):
    response = protected_client.get("/catalog", headers={"Authorization": "Bearer access-1"})

    assert response.status_code == 200
    assert response.json() == {"viewer": "anna@example.com"}


@pytest.mark.parametrize("headers", [{}, {"Authorization": "Basic abc"}, {"Authorization": "Bearer"}])
def test_optional_identity_without_usable_token(protected_client, controller, headers):
    response = protected_client.get("/catalog", headers=headers)

    assert response.status_code == 200
    assert response.json() == {"viewer": None}
    controller.get_identity_from_token.assert_not_awaited()


@pytest.mark.parametrize("error", [
    Unauthorized("Invalid or expired access token"),
    ProviderUnavailable(),
])
def test_optional_identity_continues_anonymously(protected_client, controller, error):
    controller.get_identity_from_token.side_effect = error

    response = protected_client.get("/catalog", headers={"Authorization": "Bearer stale"})

    assert response.status_code == 200
    assert response.json() == {"viewer": None}
