# Application layer: services that orchestrate domain and infrastructure.

from backoffice.application.exceptions import (
    ApplicationError,
    ConflictError,
    NotFoundError,
)

__all__ = [
    "ApplicationError",
    "ConflictError",
    "NotFoundError",
]
