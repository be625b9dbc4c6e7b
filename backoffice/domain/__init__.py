"""Domain layer: record models, request/response schemas, exceptions."""

from backoffice.domain.exceptions import (
    DomainError,
    DomainValidationError,
    MissingFieldError,
)

__all__ = [
    "DomainError",
    "DomainValidationError",
    "MissingFieldError",
]
