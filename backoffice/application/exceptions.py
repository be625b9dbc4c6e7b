"""Application-layer exceptions. Do not reuse domain exceptions."""

from typing import Optional


class ApplicationError(Exception):
    """Base for all application-layer errors."""

    def __init__(self, message: str, code: Optional[str] = None) -> None:
        self.message = message
        self.code = code
        super().__init__(message)


class NotFoundError(ApplicationError):
    """Raised when the addressed record does not exist (or is not visible to the caller)."""


class ConflictError(ApplicationError):
    """Raised when a write collides with existing data (a duplicate unique field, or a delete blocked by dependants)."""
