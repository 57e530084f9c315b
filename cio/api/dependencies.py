"""
Shared API dependencies.
"""
import hmac
import logging
from typing import Annotated, Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from cio.core.config import settings
from cio.core.database import get_session
from cio.core.exceptions import UnauthorizedError
from cio.middleware.request_logging import request_id_ctx

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)

# Alias for database session dependency
get_db = get_session


def get_request_id() -> str:
    """
    Dependency to get the current request ID from context.

    Returns:
        The current request ID, or 'unknown' if not in a request context.
    """
    return request_id_ctx.get()


async def require_bearer_token(
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(bearer_scheme)],
) -> None:
    """
    Require ``Authorization: Bearer <WEBHOOKY_BEARER_TOKEN>``.

    Raises:
        UnauthorizedError: If no token is configured or the token does not match
    """
    expected = settings.webhooky_bearer_token
    if not expected:
        logger.warning("WEBHOOKY_BEARER_TOKEN is not set; rejecting job request")
        raise UnauthorizedError("Job endpoints are disabled")

    if credentials is None or not hmac.compare_digest(credentials.credentials.encode(), expected.encode()):
        raise UnauthorizedError("Invalid bearer token")
