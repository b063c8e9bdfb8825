"""Error taxonomy for the authentication core.

Two layers:

* ``TokenServiceError`` subclasses are raised by the Token Service and
  describe which provider call failed.
* ``AuthError`` subclasses are raised by the Authentication Controller and
  describe what the caller should do about it. Each carries the HTTP status
  the API layer responds with.
"""


class TokenServiceError(Exception):
    """Base error for calls to the authorization server.

    ``description`` is the short, user-safe reason (the provider's
    ``error_description`` when it sent one). ``provider_unavailable`` is set
    when the call failed on transport or timeout rather than being rejected.
    """

    operation = "call authorization server"

    def __init__(self, description: str, provider_unavailable: bool = False):
        self.description = description
        self.provider_unavailable = provider_unavailable
        super().__init__(f"Failed to {self.operation}: {description}")


class AuthExchangeError(TokenServiceError):
    operation = "exchange code for tokens"


class AuthRefreshError(TokenServiceError):
    operation = "refresh access token"


class AuthIntrospectError(TokenServiceError):
    operation = "validate access token"


class AuthUserInfoError(TokenServiceError):
    operation = "get user info"


class AuthRevokeError(TokenServiceError):
    operation = "revoke token"


class AuthError(Exception):
    """Base error for authentication use cases."""

    status_code = 500
    default_message = "Authentication error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidRequest(AuthError):
    """Required input is missing or malformed. Never retried."""
    status_code = 400
    default_message = "Invalid request"


class AuthenticationFailed(AuthError):
    """Code exchange or user-info fetch was rejected; login must restart."""
    status_code = 401
    default_message = "Authentication failed"


class RefreshFailed(AuthError):
    """Refresh was rejected or timed out."""
    status_code = 401
    default_message = "Failed to refresh token"


class Unauthorized(AuthError):
    """No token, or an invalid or expired one, was presented."""
    status_code = 401
    default_message = "Invalid or expired token"


class RevokeError(AuthError):
    """Best-effort revocation failed. Logout proceeds regardless."""
    status_code = 502
    default_message = "Failed to revoke token"


class ProviderUnavailable(AuthError):
    """The authorization server could not be reached in time.

    Idempotent reads such as introspection may be retried by the caller; a
    code exchange must not be retried with the same code.
    """
    status_code = 503
    default_message = "Authorization server unavailable"
