"""Referral and credit program backend.

Users register with an optional referral code, and a one-time purchase
settles credits for the purchaser and, exactly once, for their referrer.
"""

__version__ = "0.1.0"
