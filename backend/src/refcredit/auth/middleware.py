"""Authentication dependencies for FastAPI."""

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from refcredit.auth.local import auth_service
from refcredit.auth.models import UserAccount
from refcredit.logging_config import get_logger

logger = get_logger(__name__)

# Security scheme
security = HTTPBearer(auto_error=False)


async def get_current_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> UserAccount | None:
    """Get current authenticated user.

    Args:
        request: FastAPI request
        credentials: Bearer token

    Returns:
        User account or None if not authenticated
    """
    if not credentials:
        return None

    user = auth_service.get_user_from_token(credentials.credentials)

    if user:
        # Store user in request state for later use
        request.state.user = user
    else:
        logger.debug("bearer_token_rejected", path=request.url.path)

    return user


def require_auth(user: UserAccount | None = Depends(get_current_user)) -> UserAccount:
    """Require authentication - raises 401 if not authenticated.

    Args:
        user: Current user from get_current_user

    Returns:
        Authenticated user

    Raises:
        HTTPException: 401 if not authenticated
    """
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user
