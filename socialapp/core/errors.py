"""Domain errors raised by the service layer.

Each error kind carries the HTTP status the API boundary answers with, so
routers never have to catch and re-raise them; ``socialapp.main`` installs
one exception handler for the whole hierarchy.
"""

from __future__ import annotations

from fastapi import status


class DomainError(Exception):
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Internal server error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class NotFoundError(DomainError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class ValidationError(DomainError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid input"


class ConflictError(DomainError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Already exists"


class UnauthorizedError(DomainError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Not authenticated"


class ForbiddenError(DomainError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Could not validate credentials"


class TransientStoreError(DomainError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_message = "Database connection failed"


# === Follow graph ===

class SelfFollowError(ValidationError):
    default_message = "Cannot follow yourself"


class AlreadyFollowingError(ConflictError):
    default_message = "Already following this user"


class NotFollowingError(NotFoundError):
    default_message = "Not following this user"
