"""Request rate limits.

Anonymous routes (register, login) are limited per client address. The
purchase route is limited per account, taken from the bearer token, so users
sharing an address do not share a budget.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address
from starlette.requests import Request

from refcredit.auth.local import auth_service
from refcredit.settings import settings

REGISTER_LIMIT = "5/minute"
LOGIN_LIMIT = "10/minute"
PURCHASE_LIMIT = "5/minute"


def account_key(request: Request) -> str:
    """Rate limit key: ``account:<id>`` for a valid bearer token, else the client address."""
    scheme, _, token = request.headers.get("Authorization", "").partition(" ")
    if scheme.lower() == "bearer" and token:
        payload = auth_service.verify_token(token)
        if payload and payload.get("sub"):
            return f"account:{payload['sub']}"
    return get_remote_address(request)


def limits_enabled() -> bool:
    """Explicit RATE_LIMIT_ENABLED wins; otherwise limits apply in production only."""
    if settings.rate_limit_enabled is not None:
        return settings.rate_limit_enabled
    return settings.env == "production"


limiter = Limiter(
    key_func=get_remote_address,
    storage_uri="memory://",
    enabled=limits_enabled(),
)
