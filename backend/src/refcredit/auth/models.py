"""Account models: the user table and its API representations."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, Integer, String

from refcredit.storage.db import Base


class UserAccount(Base):
    """Registered user.

    ``credits`` and ``has_made_purchase`` are only written by purchase
    settlement. ``referred_by`` holds the referrer's referral code and is set
    once, at registration.
    """
    __tablename__ = "user_accounts"
    __table_args__ = (
        CheckConstraint("credits >= 0", name="ck_user_accounts_credits_non_negative"),
    )

    id = Column(Integer, primary_key=True)

    # Identity
    email = Column(String(255), unique=True, nullable=False, index=True)
    name = Column(String(255), nullable=False)
    password_hash = Column(String(255), nullable=False)

    # Referral
    referral_code = Column(String(20), unique=True, nullable=False, index=True)
    referred_by = Column(String(20), nullable=True)

    # Credits
    credits = Column(Integer, nullable=False, default=0)
    has_made_purchase = Column(Boolean, nullable=False, default=False)

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<UserAccount(id={self.id}, email={self.email}, code={self.referral_code})>"


# Pydantic models for API


class CamelModel(BaseModel):
    """Serializes with camelCase keys, accepts either form on input."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class AccountSummary(CamelModel):
    """Account data returned after register/login."""
    id: int
    email: str
    name: str
    referral_code: str
    credits: int
    has_made_purchase: bool


class AccountProfile(AccountSummary):
    """Account data for the current user endpoint."""
    referred_by: str | None = None
    created_at: datetime


class TokenResponse(CamelModel):
    """Bearer credential plus the account it belongs to."""
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user: AccountSummary
