"""Accounts and local (email/password) authentication."""

from refcredit.auth.models import AccountProfile, AccountSummary, TokenResponse, UserAccount

__all__ = [
    "AccountProfile",
    "AccountSummary",
    "TokenResponse",
    "UserAccount",
]
