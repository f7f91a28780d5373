from fastapi import Depends, Query
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from conduit.config import settings
from conduit.errors import UnauthorizedError
from conduit.security import decode_access_token

_bearer = HTTPBearer(auto_error=False)


class PaginationParams:
    """
    Reusable FastAPI dependency that parses feed pagination query
    parameters.

    Attributes
    ----------
    page_index:
        1-based page number.  Zero and negative values are accepted and
        treated as page 1 rather than rejected.
    page_size:
        Number of items per page, clamped to ``settings.MAX_PAGE_SIZE``.
        Oversized values are clamped, never rejected.
    """

    def __init__(
        self,
        page_index: int = Query(
            1,
            description="Page number (1-based; values below 1 are treated as 1).",
        ),
        page_size: int = Query(
            settings.DEFAULT_PAGE_SIZE,
            ge=1,
            description=f"Items per page (clamped to {settings.MAX_PAGE_SIZE}).",
        ),
    ) -> None:
        self.page_index = max(page_index, 1)
        self.page_size = min(page_size, settings.MAX_PAGE_SIZE)


async def get_current_user_id(
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer),
) -> int:
    """
    Resolve the authenticated subject id from the ``Authorization: Bearer``
    header.  Any missing, expired or mis-signed token yields 401.
    """
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise UnauthorizedError("Missing bearer token")
    return decode_access_token(credentials.credentials)
