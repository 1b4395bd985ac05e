"""Referral ledger model and dashboard read models."""

from datetime import datetime
from enum import Enum

from sqlalchemy import Boolean, Column, DateTime, Enum as SQLEnum, Integer, String, UniqueConstraint

from refcredit.auth.models import AccountSummary, CamelModel
from refcredit.storage.db import Base


class ReferralStatus(str, Enum):
    """Referral lifecycle."""
    PENDING = "pending"      # Referred user registered, no purchase yet
    CONVERTED = "converted"  # Referred user purchased, referrer paid


class Referral(Base):
    """One referrer -> referred relationship.

    Both sides are stored as referral codes, not account ids. ``status``,
    ``credits_awarded`` and ``purchase_date`` change together, once, during the
    referred user's purchase settlement.
    """
    __tablename__ = "referrals"
    __table_args__ = (
        UniqueConstraint("referrer_code", "referred_code", name="uq_referrals_referrer_referred"),
    )

    id = Column(Integer, primary_key=True)
    referrer_code = Column(String(20), nullable=False, index=True)
    referred_code = Column(String(20), nullable=False)

    # Status
    status = Column(
        SQLEnum(
            ReferralStatus,
            name="referral_status",
            values_callable=lambda statuses: [s.value for s in statuses],
        ),
        nullable=False,
        default=ReferralStatus.PENDING,
    )
    credits_awarded = Column(Boolean, nullable=False, default=False)
    purchase_date = Column(DateTime, nullable=True)

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<Referral(referrer={self.referrer_code}, referred={self.referred_code}, status={self.status})>"


# Pydantic models for API


class ReferredUser(CamelModel):
    """Public snapshot of a referred account."""
    name: str
    email: str
    joined_at: datetime | None


class ReferralEntry(CamelModel):
    """One row of the dashboard referral list."""
    id: int
    referred_user: ReferredUser | None
    status: ReferralStatus
    credits_awarded: bool
    created_at: datetime | None
    purchase_date: datetime | None = None


class DashboardStats(CamelModel):
    total_credits: int
    total_referred_users: int
    converted_users: int
    pending_users: int


class Dashboard(CamelModel):
    """Composite read model for a referrer's dashboard."""
    user: AccountSummary
    referral_link: str
    stats: DashboardStats
    referrals: list[ReferralEntry]


class SettlementUser(CamelModel):
    id: int
    credits: int
    has_made_purchase: bool


class SettlementResult(CamelModel):
    """Outcome of a purchase settlement."""
    message: str
    referrer_awarded: bool
    user: SettlementUser
