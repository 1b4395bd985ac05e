"""Initial schema: accounts and referral ledger

Revision ID: 001_initial
Revises:
Create Date: 2026-10-19

Creates:
- user_accounts: credentials, referral code, credit balance, purchase flag
- referrals: referrer/referred code pairs with conversion state
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create account and referral tables."""

    op.create_table(
        "user_accounts",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("referral_code", sa.String(20), nullable=False),
        sa.Column("referred_by", sa.String(20), nullable=True),
        sa.Column("credits", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("has_made_purchase", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("credits >= 0", name="ck_user_accounts_credits_non_negative"),
    )
    op.create_index("ix_user_accounts_email", "user_accounts", ["email"], unique=True)
    op.create_index("ix_user_accounts_referral_code", "user_accounts", ["referral_code"], unique=True)

    op.create_table(
        "referrals",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("referrer_code", sa.String(20), nullable=False),
        sa.Column("referred_code", sa.String(20), nullable=False),
        sa.Column(
            "status",
            sa.Enum("pending", "converted", name="referral_status"),
            nullable=False,
            server_default="pending",
        ),
        sa.Column("credits_awarded", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("purchase_date", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("referrer_code", "referred_code", name="uq_referrals_referrer_referred"),
    )
    op.create_index("ix_referrals_referrer_code", "referrals", ["referrer_code"], unique=False)


def downgrade() -> None:
    """Drop account and referral tables."""
    op.drop_index("ix_referrals_referrer_code", table_name="referrals")
    op.drop_table("referrals")
    if op.get_bind().dialect.name == "postgresql":
        sa.Enum(name="referral_status").drop(op.get_bind(), checkfirst=True)

    op.drop_index("ix_user_accounts_referral_code", table_name="user_accounts")
    op.drop_index("ix_user_accounts_email", table_name="user_accounts")
    op.drop_table("user_accounts")
