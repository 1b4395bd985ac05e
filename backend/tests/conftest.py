"""Shared fixtures.

The database URL and hash cost are set before the package is imported,
because settings and the global Database are created at import time.
"""

import os
import tempfile
from pathlib import Path

_TEST_DIR = Path(tempfile.mkdtemp(prefix="refcredit-tests-"))

os.environ["DATABASE_URL"] = f"sqlite:///{_TEST_DIR / 'test.db'}"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["ENV"] = "test"
os.environ["APP_BASE_URL"] = "http://localhost:3000"

import pytest  # noqa: E402

from refcredit.storage.db import db  # noqa: E402


@pytest.fixture(autouse=True)
def database():
    """Fresh schema for every test."""
    db.drop_tables()
    db.create_tables()
    yield db


@pytest.fixture
def register():
    """Register an account through the registration flow."""
    from refcredit.referral.service import referral_service

    def _register(name: str, email: str | None = None, referrer_code: str | None = None):
        return referral_service.register_account(
            email=email or f"{name.lower().replace(' ', '.')}@example.com",
            password="secret123",
            name=name,
            referrer_code=referrer_code,
        )

    return _register


@pytest.fixture
def reload_account():
    """Read an account straight from the database."""
    from refcredit.storage.repo import AccountRepository

    def _reload(account_id: int):
        with db.session() as session:
            return AccountRepository(session).get_by_id(account_id)

    return _reload


@pytest.fixture
def referrals_for():
    """Read a referrer's ledger entries straight from the database."""
    from refcredit.storage.repo import ReferralRepository

    def _list(referrer_code: str):
        with db.session() as session:
            return ReferralRepository(session).list_for_referrer(referrer_code)

    return _list
