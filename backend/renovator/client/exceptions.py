class ClientError(Exception):
    """Base error for the API client."""
    pass


class ApiError(ClientError):
    """A call failed for a reason other than authentication."""

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)


class AuthenticationRequired(ClientError):
    """Authentication could not be recovered; the user has to log in again."""
    pass


class LoginError(ClientError):
    """The authorization-code callback could not be completed."""
    pass
