"""Dashboard read model for a referrer."""

from refcredit.auth.models import AccountSummary
from refcredit.errors import NotFoundError
from refcredit.referral.models import (
    Dashboard,
    DashboardStats,
    ReferralEntry,
    ReferralStatus,
    ReferredUser,
)
from refcredit.settings import settings
from refcredit.storage.db import Database, db
from refcredit.storage.repo import AccountRepository, ReferralRepository


def build_referral_link(referral_code: str, base_url: str | None = None) -> str:
    """Build the shareable registration link for a code."""
    base_url = (base_url or settings.app_base_url).rstrip("/")
    return f"{base_url}/register?ref={referral_code}"


class DashboardService:
    """Joins an account with its referral entries. Never writes."""

    def __init__(self, database: Database | None = None):
        self.db = database or db

    def get_dashboard(self, account_id: int) -> Dashboard:
        """Get dashboard data for an account.

        Entries whose referred account no longer resolves get a null
        ``referred_user`` instead of failing the whole read.

        Raises:
            NotFoundError: If the account does not exist
        """
        with self.db.session() as session:
            accounts = AccountRepository(session)
            referrals = ReferralRepository(session)

            user = accounts.get_by_id(account_id)
            if user is None:
                raise NotFoundError(f"User {account_id} not found")

            entries = referrals.list_for_referrer(user.referral_code)
            referred = accounts.get_by_referral_codes([e.referred_code for e in entries])

            items = []
            for entry in entries:
                account = referred.get(entry.referred_code)
                items.append(
                    ReferralEntry(
                        id=entry.id,
                        referred_user=ReferredUser(
                            name=account.name,
                            email=account.email,
                            joined_at=account.created_at,
                        ) if account else None,
                        status=entry.status,
                        credits_awarded=entry.credits_awarded,
                        created_at=entry.created_at,
                        purchase_date=entry.purchase_date,
                    )
                )

            total = len(entries)
            converted = sum(1 for e in entries if e.status == ReferralStatus.CONVERTED)

            return Dashboard(
                user=AccountSummary.model_validate(user),
                referral_link=build_referral_link(user.referral_code),
                stats=DashboardStats(
                    total_credits=user.credits,
                    total_referred_users=total,
                    converted_users=converted,
                    pending_users=total - converted,
                ),
                referrals=items,
            )


# Singleton instance
dashboard_service = DashboardService()
