"""Typed records for provider payloads and the auth API surface."""
from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class TokenSet(BaseModel):
    """Token pair issued by the authorization server.

    Transient: consumed to create or update a Session, never stored as is.
    """
    access_token: str = Field(min_length=1)
    refresh_token: str = Field(min_length=1)
    expires_in: int = Field(ge=0)
    token_type: str = "Bearer"
    id_token: str | None = None


class ProviderUserInfo(BaseModel):
    """Claims returned by the provider's user-info endpoint."""
    model_config = ConfigDict(extra="ignore")

    sub: str = Field(min_length=1)
    email: str = Field(min_length=1)
    given_name: str | None = None
    family_name: str | None = None
    phone: str | None = None
    company: str | None = None


class TokenIntrospection(BaseModel):
    """Result of token introspection. Inactive tokens are ``valid=False``."""
    valid: bool
    user_id: str | None = None
    expires_at: datetime | None = None
    scopes: list[str] | None = None


class Identity(BaseModel):
    """Secret-free projection of a local user record."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    email: str
    first_name: str = ""
    last_name: str = ""
    phone: str | None = None
    company: str | None = None


class CallbackResult(BaseModel):
    """Outcome of a completed authorization-code login."""
    tokens: TokenSet
    session_id: UUID
    identity: Identity


# HTTP payloads use camelCase on the wire


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class AuthorizationUrlResponse(CamelModel):
    authorization_url: str


class UserResponse(CamelModel):
    id: UUID
    email: str
    first_name: str
    last_name: str


class MeResponse(UserResponse):
    phone: str | None = None
    company: str | None = None


class TokenResponse(CamelModel):
    access_token: str
    refresh_token: str
    expires_in: int


class CallbackResponse(TokenResponse):
    session_id: UUID
    user: UserResponse


class RefreshRequest(CamelModel):
    refresh_token: str | None = None


class LogoutRequest(CamelModel):
    access_token: str | None = None
    session_id: UUID | None = None


class MessageResponse(BaseModel):
    message: str
