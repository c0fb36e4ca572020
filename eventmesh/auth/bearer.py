"""Bearer token extraction.

The service reads the cluster on behalf of its caller: the token presented in
the ``Authorization`` header is handed to the cluster adapter, so the mesh
only contains what the caller is allowed to list.
"""
from fastapi import HTTPException, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
import structlog
from ..config import get_settings

log = structlog.get_logger()

# Bearer header scheme
bearer_scheme = HTTPBearer(auto_error=False)


async def get_bearer_token(
    credentials: HTTPAuthorizationCredentials | None = Security(bearer_scheme),
) -> str | None:
    """
    Dependency extracting the caller's bearer token.

    Args:
        credentials: Parsed ``Authorization: Bearer <token>`` header

    Returns:
        The token, or None when auth is not required and no token was sent
        (the service's own credentials are used then)

    Raises:
        HTTPException: 401 if the token is missing and auth is required
    """
    token = credentials.credentials.strip() if credentials else ""
    if token:
        log.debug("auth.token_present")
        return token

    if not get_settings().REQUIRE_AUTH:
        log.debug("auth.skipped", reason="auth_not_required")
        return None

    log.warning("auth.failed", reason="missing_token")
    raise HTTPException(
        status_code=401,
        detail="missing auth token. set the 'Authorization: Bearer YOUR_KEY' header",
        headers={"WWW-Authenticate": "Bearer"},
    )
