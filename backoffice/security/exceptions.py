"""Security-layer exceptions. Typed, no HTTP."""


class SecurityError(Exception):
    """Base for all security-layer errors."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class AuthenticationError(SecurityError):
    """Raised when the request carries no valid session."""


class AuthorizationError(SecurityError):
    """Raised when the caller's role does not grant the required permission."""


class InvalidTokenError(AuthenticationError):
    """Raised when a session token cannot be decoded, is expired, or lacks claims."""
