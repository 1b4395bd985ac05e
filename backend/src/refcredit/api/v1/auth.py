"""Authentication API v1 endpoints."""

from fastapi import APIRouter, Request, status

from refcredit.api.rate_limit import LOGIN_LIMIT, REGISTER_LIMIT, limiter
from refcredit.auth.local import auth_service
from refcredit.auth.models import AccountSummary, CamelModel, TokenResponse
from refcredit.errors import AuthenticationError
from refcredit.logging_config import get_logger
from refcredit.referral.service import referral_service

logger = get_logger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


# ==================== MODELS ====================


class RegisterRequest(CamelModel):
    """User registration request.

    Fields are checked by the registration flow so that every rejection
    comes back in the same error shape.
    """
    email: str | None = None
    password: str | None = None
    name: str | None = None
    referral_code: str | None = None


class LoginRequest(CamelModel):
    """User login request. Missing fields are rejected by the auth service."""
    email: str | None = None
    password: str | None = None


# ==================== ENDPOINTS ====================


@router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(REGISTER_LIMIT)
async def register(request: Request, body: RegisterRequest):
    """Register a new user account.

    If referralCode matches an existing account, the new user is linked to
    it and a pending referral is recorded. An unknown code is ignored.
    """
    result = referral_service.register_account(
        email=body.email,
        password=body.password,
        name=body.name,
        referrer_code=body.referral_code,
    )

    return TokenResponse(
        access_token=result.access_token,
        expires_in=auth_service.expires_in_seconds(),
        user=result.summary,
    )


@router.post("/login", response_model=TokenResponse)
@limiter.limit(LOGIN_LIMIT)
async def login(request: Request, body: LoginRequest):
    """Login with email and password.

    Returns JWT access token for authentication.
    """
    try:
        user = auth_service.authenticate(body.email, body.password)
    except AuthenticationError:
        logger.warning(
            "login_failed",
            email=body.email,
            ip=request.client.host if request.client else "unknown",
        )
        raise

    logger.info("user_logged_in", user_id=user.id)

    return TokenResponse(
        access_token=auth_service.create_access_token(user),
        expires_in=auth_service.expires_in_seconds(),
        user=AccountSummary.model_validate(user),
    )
