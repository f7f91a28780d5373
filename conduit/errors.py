"""
Typed outcomes surfaced by the service layer.

Services raise these instead of returning sentinel values whenever the
caller needs to tell failure modes apart; ``conduit.main`` registers a
single handler that renders any ``ConduitError`` as ``{"detail": ...}``
with the matching status code.
"""
from fastapi import status


class ConduitError(Exception):
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "Internal error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class NotFoundError(ConduitError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class ForbiddenError(ConduitError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Forbidden"


class ConflictError(ConduitError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "Conflict"


class UnauthorizedError(ConduitError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Unauthorized"


class InvalidRequestError(ConduitError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid client request"


class InvalidTokenError(ConduitError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Invalid token"
