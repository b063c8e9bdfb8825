# backend/renovator/core/security.py
import secrets
from urllib.parse import urlparse


def generate_state() -> str:
    """Generate an unguessable OAuth ``state`` value for CSRF binding."""
    return secrets.token_urlsafe(32)


def states_match(received: str | None, expected: str | None) -> bool:
    """Constant-time comparison of a returned ``state`` with the stored one."""
    if not received or not expected:
        return False
    return secrets.compare_digest(received, expected)


def validate_redirect_uri(redirect_uri: str) -> None:
    """
    Validate a redirect URI before it is sent to the provider. Raises ValueError if not.

    Requires:
    - http or https scheme
    - a hostname
    - no fragment (OAuth2 forbids fragments in redirection endpoints)
    """
    if not redirect_uri or not redirect_uri.strip():
        raise ValueError("Redirect URI is required")

    parsed = urlparse(redirect_uri)

    if parsed.scheme not in ("http", "https"):
        raise ValueError(f"Invalid redirect URI scheme: {parsed.scheme or '(none)'}. Only http/https allowed.")

    if not parsed.hostname:
        raise ValueError("Redirect URI must have a hostname")

    if parsed.fragment:
        raise ValueError("Redirect URI must not contain a fragment")


def parse_bearer_token(authorization: str | None) -> str | None:
    """Extract the token from an ``Authorization: Bearer <token>`` header."""
    if not authorization:
        return None
    parts = authorization.split(" ")
    if len(parts) != 2 or parts[0] != "Bearer" or not parts[1]:
        return None
    return parts[1]
