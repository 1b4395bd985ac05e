"""User API v1 endpoints: profile, dashboard and purchase."""

from fastapi import APIRouter, Depends, Request

from refcredit.api.rate_limit import PURCHASE_LIMIT, account_key, limiter
from refcredit.auth.middleware import require_auth
from refcredit.auth.models import AccountProfile, UserAccount
from refcredit.referral.dashboard import dashboard_service
from refcredit.referral.models import Dashboard, SettlementResult
from refcredit.referral.settlement import settlement_service

router = APIRouter(prefix="/user", tags=["user"])


@router.get("/me", response_model=AccountProfile)
async def get_me(user: UserAccount = Depends(require_auth)):
    """Get current user's profile."""
    return AccountProfile.model_validate(user)


@router.get("/dashboard", response_model=Dashboard)
async def get_dashboard(user: UserAccount = Depends(require_auth)):
    """Get referral dashboard for current user.

    Includes the shareable referral link, credit and conversion stats, and
    the list of referred users, newest first.
    """
    return dashboard_service.get_dashboard(user.id)


@router.post("/purchase", response_model=SettlementResult)
@limiter.limit(PURCHASE_LIMIT, key_func=account_key)
async def purchase(request: Request, user: UserAccount = Depends(require_auth)):
    """Complete the current user's one-time purchase.

    Awards credits to the user and, if they were referred, to their referrer.
    A second call is rejected with error ``already_purchased``.
    """
    return settlement_service.settle_purchase(user.id)
