"""Domain-specific exceptions. Pure domain layer, no infrastructure."""


class DomainError(Exception):
    """Base for all domain-layer errors."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class DomainValidationError(DomainError):
    """Raised when domain validation rules are violated."""


class MissingFieldError(DomainError):
    """Raised when a required request field is absent or blank."""


class InvalidCredentialsFormatError(DomainError):
    """Raised when registration data (username, email, password) is malformed."""


class UnsupportedValueError(DomainError):
    """Raised when a field holds a value outside its allowed set."""
