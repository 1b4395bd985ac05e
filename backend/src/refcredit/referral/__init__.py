"""Referral program.

- Every account gets a referral code at registration
- Registering with someone's code creates a pending ledger entry
- The referred user's one purchase pays both sides and converts the entry
"""

from refcredit.referral.models import Dashboard, Referral, ReferralStatus, SettlementResult

__all__ = ["Dashboard", "Referral", "ReferralStatus", "SettlementResult"]
