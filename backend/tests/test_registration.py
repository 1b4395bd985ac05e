"""Tests for the registration flow."""

import pytest
from sqlalchemy.exc import OperationalError

from refcredit.auth.local import auth_service
from refcredit.auth.models import UserAccount
from refcredit.errors import ConflictError, StoreError, ValidationError
from refcredit.referral import codes
from refcredit.referral.models import Referral, ReferralStatus
from refcredit.referral.service import referral_service
from refcredit.storage.db import db
from refcredit.storage.repo import AccountRepository, ReferralRepository


def count_referrals() -> int:
    with db.session() as session:
        return session.query(Referral).count()


class TestRegisterWithoutReferrer:
    """Plain registrations."""

    def test_new_account_starts_empty(self, register):
        """Zero credits, no purchase, no referrer."""
        account = register("Alice").account

        assert account.credits == 0
        assert account.has_made_purchase is False
        assert account.referred_by is None

    def test_referral_code_assigned(self, register):
        """Code derives from the name and is uppercase."""
        account = register("Alice").account
        assert account.referral_code.startswith("ALIC")
        assert account.referral_code == account.referral_code.upper()

    def test_email_normalized(self, register):
        """Email is stored lowercased and trimmed."""
        account = register("Alice", email="  Alice@Example.COM ").account
        assert account.email == "alice@example.com"

    def test_password_hashed(self, register):
        """The stored credential is a hash that verifies."""
        account = register("Alice").account
        assert account.password_hash != "secret123"
        assert auth_service.verify_password("secret123", account.password_hash)

    def test_token_identifies_account(self, register):
        """The returned bearer credential resolves to the new account."""
        result = register("Alice")
        user = auth_service.get_user_from_token(result.access_token)
        assert user.id == result.account.id

    def test_unique_code_retries_against_store(self, register, monkeypatch):
        """A code already held by another account is not reused."""
        alice = register("Alice").account
        candidates = iter([alice.referral_code, "ALIB7777"])
        monkeypatch.setattr(codes, "generate_referral_code", lambda name: next(candidates))

        other = register("Alibaba").account
        assert other.referral_code == "ALIB7777"


class TestRegistrationValidation:
    """Input checks and conflicts."""

    @pytest.mark.parametrize(
        "email,password,name",
        [
            (None, "secret123", "Alice"),
            ("alice@example.com", None, "Alice"),
            ("alice@example.com", "secret123", None),
            ("", "secret123", "Alice"),
            ("alice@example.com", "secret123", "   "),
        ],
    )
    def test_missing_fields_rejected(self, email, password, name):
        """All of email, password and name are required."""
        with pytest.raises(ValidationError, match="All fields are required"):
            referral_service.register_account(email, password, name)

    def test_short_password_rejected(self):
        """Passwords under six characters are rejected."""
        with pytest.raises(ValidationError, match="Password"):
            referral_service.register_account("alice@example.com", "12345", "Alice")

    def test_short_name_rejected(self):
        """Names under two characters are rejected."""
        with pytest.raises(ValidationError, match="Name"):
            referral_service.register_account("alice@example.com", "secret123", "A")

    def test_long_password_rejected(self):
        """Passwords over the maximum length are rejected."""
        with pytest.raises(ValidationError, match="at most 128"):
            referral_service.register_account("alice@example.com", "x" * 200, "Alice")

    def test_long_name_rejected(self):
        """Names over the maximum length are rejected."""
        with pytest.raises(ValidationError, match="at most 100"):
            referral_service.register_account("alice@example.com", "secret123", "A" * 101)

    def test_invalid_email_rejected(self):
        """Email must be syntactically valid."""
        with pytest.raises(ValidationError, match="valid email"):
            referral_service.register_account("not-an-email", "secret123", "Alice")

    def test_duplicate_email_conflicts(self, register):
        """Email uniqueness ignores case."""
        register("Alice", email="alice@example.com")
        with pytest.raises(ConflictError):
            register("Alice Again", email="ALICE@example.com")

    def test_concurrent_email_insert_conflicts(self, register, monkeypatch):
        """An email taken between the pre-check and the insert is a conflict."""
        register("Alice", email="alice@example.com")
        original = AccountRepository.get_by_email
        calls = []

        def stale_first_lookup(self, email):
            calls.append(email)
            return None if len(calls) == 1 else original(self, email)

        monkeypatch.setattr(AccountRepository, "get_by_email", stale_first_lookup)

        with pytest.raises(ConflictError, match="email already exists"):
            register("Alice Again", email="alice@example.com")

    def test_concurrent_code_insert_is_retryable(self, register, monkeypatch):
        """A referral code taken by a concurrent signup is a retryable store error."""
        alice = register("Alice").account
        monkeypatch.setattr(
            "refcredit.referral.service.generate_unique_code",
            lambda name, exists: alice.referral_code,
        )

        with pytest.raises(StoreError) as exc_info:
            register("Bob")

        assert exc_info.value.retryable is True
        with db.session() as session:
            assert session.query(UserAccount).count() == 1


class TestRegisterWithReferrer:
    """Registrations carrying a referral code."""

    def test_creates_pending_entry(self, register, referrals_for):
        """A known code links the account and creates one pending entry."""
        alice = register("Alice").account
        result = register("Bob", referrer_code=alice.referral_code)
        bob = result.account

        assert result.referral_linked is True
        assert bob.referred_by == alice.referral_code

        entries = referrals_for(alice.referral_code)
        assert len(entries) == 1
        entry = entries[0]
        assert entry.referred_code == bob.referral_code
        assert entry.status == ReferralStatus.PENDING
        assert entry.credits_awarded is False
        assert entry.purchase_date is None

    def test_code_lookup_case_insensitive(self, register):
        """Lowercase codes resolve to the same referrer."""
        alice = register("Alice").account
        bob = register("Bob", referrer_code=f" {alice.referral_code.lower()} ").account
        assert bob.referred_by == alice.referral_code

    def test_unknown_code_ignored(self, register):
        """An unresolvable code still registers, unlinked."""
        result = register("Bob", referrer_code="NOPE0000")

        assert result.referral_linked is False
        assert result.account.referred_by is None
        assert count_referrals() == 0

    def test_referrer_balance_untouched(self, register, reload_account):
        """Registration never moves credits."""
        alice = register("Alice").account
        register("Bob", referrer_code=alice.referral_code)

        assert reload_account(alice.id).credits == 0

    def test_existing_relationship_swallowed(self, register, monkeypatch, referrals_for):
        """A pre-existing entry for the pair does not fail registration."""
        alice = register("Alice").account
        with db.session() as session:
            ReferralRepository(session).create(alice.referral_code, "BOBB1234")

        monkeypatch.setattr(codes, "generate_referral_code", lambda name: "BOBB1234")
        result = register("Bob", referrer_code=alice.referral_code)

        assert result.account.referral_code == "BOBB1234"
        assert result.account.referred_by == alice.referral_code
        assert result.referral_linked is False
        assert len(referrals_for(alice.referral_code)) == 1

    def test_ledger_failure_rolls_back_account(self, register, monkeypatch):
        """A failed ledger insert leaves no half-registered account behind."""
        alice = register("Alice").account

        def fail(self, referrer_code, referred_code):
            raise OperationalError("INSERT INTO referrals", {}, Exception("disk I/O error"))

        monkeypatch.setattr(ReferralRepository, "create", fail)

        with pytest.raises(StoreError):
            register("Bob", referrer_code=alice.referral_code)

        with db.session() as session:
            assert session.query(UserAccount).count() == 1
        assert count_referrals() == 0
