"""Purchase settlement.

A purchase is a one-time event per account. Settling it, in one transaction:

1. flips the purchaser's ``has_made_purchase`` flag and adds the award,
2. if the purchaser was referred and the ledger entry has not been paid yet,
   converts the entry and adds the same award to the referrer.

Either all of it commits or none of it does.
"""

from datetime import datetime

import structlog

from refcredit.auth.models import UserAccount
from refcredit.errors import AlreadyPurchasedError, NotFoundError
from refcredit.logging_config import get_logger
from refcredit.referral.models import SettlementResult, SettlementUser
from refcredit.settings import settings
from refcredit.storage.db import Database, db
from refcredit.storage.repo import AccountRepository, ReferralRepository


class PurchaseSettlementService:
    """Settles purchases and pays referrers exactly once."""

    def __init__(self, database: Database | None = None, award: int | None = None):
        """Initialize settlement service.

        Args:
            database: Database (defaults to the global instance)
            award: Credits per party (defaults to settings)
        """
        self.db = database or db
        self.award = settings.purchase_award_credits if award is None else award
        self.logger = get_logger(__name__)

    def settle_purchase(self, account_id: int) -> SettlementResult:
        """Settle the one purchase of an account.

        Args:
            account_id: Purchasing account

        Returns:
            SettlementResult with the purchaser's new balance and whether the
            referrer was paid

        Raises:
            NotFoundError: If the account does not exist
            AlreadyPurchasedError: If the account already purchased
            StoreError: If the transaction failed; nothing was written
        """
        with structlog.contextvars.bound_contextvars(user_id=account_id):
            with self.db.session() as session:
                accounts = AccountRepository(session)

                # Conditional UPDATE first: concurrent calls serialize on this row
                if not accounts.mark_purchased(account_id, self.award):
                    if accounts.get_by_id(account_id) is None:
                        raise NotFoundError(f"User {account_id} not found")
                    self.logger.warning("settlement_rejected", reason="already_purchased")
                    raise AlreadyPurchasedError(account_id)

                user = accounts.get_by_id(account_id, refresh=True)
                referrer_awarded = self._award_referrer(session, user)

                result = SettlementResult(
                    message=self._message(referrer_awarded),
                    referrer_awarded=referrer_awarded,
                    user=SettlementUser(
                        id=user.id,
                        credits=user.credits,
                        has_made_purchase=user.has_made_purchase,
                    ),
                )

            self.logger.info(
                "purchase_settled",
                credits=result.user.credits,
                referrer_awarded=referrer_awarded,
            )
        return result

    def _award_referrer(self, session, user: UserAccount) -> bool:
        """Pay the referrer of ``user`` if their ledger entry is still unpaid.

        A missing referrer or entry, or an entry already paid, is skipped
        without error.
        """
        if not user.referred_by:
            return False

        accounts = AccountRepository(session)
        referrals = ReferralRepository(session)

        referrer = accounts.get_by_referral_code(user.referred_by, for_update=True)
        if referrer is None:
            self.logger.warning("referrer_missing", referred_by=user.referred_by)
            return False

        referral = referrals.get_pair(referrer.referral_code, user.referral_code)
        if referral is None or referral.credits_awarded:
            return False

        if not referrals.mark_converted(referral.id, datetime.utcnow()):
            return False

        accounts.add_credits(referrer.id, self.award)

        self.logger.info(
            "referrer_awarded",
            referrer_id=referrer.id,
            referral_id=referral.id,
            amount=self.award,
        )
        return True

    def _message(self, referrer_awarded: bool) -> str:
        if referrer_awarded:
            return f"Purchase successful! You and your referrer earned {self.award} credits each."
        return f"Purchase successful! You earned {self.award} credits."


# Singleton instance
settlement_service = PurchaseSettlementService()
