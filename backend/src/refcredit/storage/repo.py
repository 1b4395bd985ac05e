"""Repository layer for data access."""

from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from refcredit.auth.models import UserAccount
from refcredit.logging_config import get_logger
from refcredit.referral.models import Referral, ReferralStatus

logger = get_logger(__name__)


class AccountRepository:
    """Repository for UserAccount entities."""

    def __init__(self, session: Session):
        self.session = session

    def create(
        self,
        email: str,
        name: str,
        password_hash: str,
        referral_code: str,
        referred_by: str | None = None,
    ) -> UserAccount:
        """Create a new account with a zero balance.

        Args:
            email: Lowercased email
            name: Display name
            password_hash: Hashed password
            referral_code: Unique uppercase code
            referred_by: Referrer's referral code, if any

        Returns:
            Created account (flushed, id assigned)
        """
        account = UserAccount(
            email=email,
            name=name,
            password_hash=password_hash,
            referral_code=referral_code,
            referred_by=referred_by,
            credits=0,
            has_made_purchase=False,
        )
        self.session.add(account)
        self.session.flush()
        return account

    def get_by_id(self, account_id: int, refresh: bool = False) -> UserAccount | None:
        """Get account by ID.

        ``refresh`` reloads the row even if the session already holds it, for
        reads that follow a bulk UPDATE.
        """
        stmt = select(UserAccount).where(UserAccount.id == account_id)
        if refresh:
            stmt = stmt.execution_options(populate_existing=True)
        return self.session.scalar(stmt)

    def get_by_email(self, email: str) -> UserAccount | None:
        """Get account by email (case-insensitive)."""
        return self.session.scalar(
            select(UserAccount).where(UserAccount.email == email.strip().lower())
        )

    def get_by_referral_code(self, code: str, for_update: bool = False) -> UserAccount | None:
        """Get account by referral code.

        Args:
            code: Referral code, any case
            for_update: Lock the row until the transaction ends (SELECT FOR UPDATE)
        """
        stmt = select(UserAccount).where(UserAccount.referral_code == code.strip().upper())
        if for_update:
            stmt = stmt.with_for_update()
        return self.session.scalar(stmt)

    def get_by_referral_codes(self, codes: list[str]) -> dict[str, UserAccount]:
        """Get accounts keyed by referral code. Unknown codes are absent."""
        if not codes:
            return {}
        accounts = self.session.scalars(
            select(UserAccount).where(UserAccount.referral_code.in_(codes))
        )
        return {account.referral_code: account for account in accounts}

    def referral_code_exists(self, code: str) -> bool:
        """Check whether a referral code is taken."""
        return self.session.scalar(
            select(UserAccount.id).where(UserAccount.referral_code == code)
        ) is not None

    def mark_purchased(self, account_id: int, award: int) -> bool:
        """Flip the purchase flag and add the award in one conditional UPDATE.

        Only matches while ``has_made_purchase`` is still false, so of several
        concurrent callers exactly one gets a row back.

        Returns:
            True if this call performed the transition
        """
        result = self.session.execute(
            update(UserAccount)
            .where(
                UserAccount.id == account_id,
                UserAccount.has_made_purchase.is_(False),
            )
            .values(
                has_made_purchase=True,
                credits=UserAccount.credits + award,
                updated_at=datetime.utcnow(),
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def add_credits(self, account_id: int, amount: int) -> None:
        """Increment an account balance in place."""
        if amount <= 0:
            raise ValueError("Amount must be positive")

        self.session.execute(
            update(UserAccount)
            .where(UserAccount.id == account_id)
            .values(
                credits=UserAccount.credits + amount,
                updated_at=datetime.utcnow(),
            )
            .execution_options(synchronize_session=False)
        )


class ReferralRepository:
    """Repository for Referral ledger entries."""

    def __init__(self, session: Session):
        self.session = session

    def create(self, referrer_code: str, referred_code: str) -> Referral:
        """Create a pending ledger entry."""
        referral = Referral(
            referrer_code=referrer_code,
            referred_code=referred_code,
            status=ReferralStatus.PENDING,
            credits_awarded=False,
        )
        self.session.add(referral)
        self.session.flush()
        logger.debug(
            "referral_created",
            referral_id=referral.id,
            referrer_code=referrer_code,
            referred_code=referred_code,
        )
        return referral

    def get_pair(self, referrer_code: str, referred_code: str) -> Referral | None:
        """Get the unique entry for a referrer/referred pair."""
        return self.session.scalar(
            select(Referral).where(
                Referral.referrer_code == referrer_code,
                Referral.referred_code == referred_code,
            )
        )

    def list_for_referrer(self, referrer_code: str) -> list[Referral]:
        """List a referrer's entries, newest first."""
        return list(
            self.session.scalars(
                select(Referral)
                .where(Referral.referrer_code == referrer_code)
                .order_by(Referral.created_at.desc(), Referral.id.desc())
            )
        )

    def mark_converted(self, referral_id: int, purchase_date: datetime) -> bool:
        """Convert an entry and flag its credits as awarded.

        Guarded on ``credits_awarded`` being false, so an entry converts once.

        Returns:
            True if this call performed the conversion
        """
        result = self.session.execute(
            update(Referral)
            .where(
                Referral.id == referral_id,
                Referral.credits_awarded.is_(False),
            )
            .values(
                status=ReferralStatus.CONVERTED,
                credits_awarded=True,
                purchase_date=purchase_date,
                updated_at=datetime.utcnow(),
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1
