"""Registration flow: account creation and referral linking."""

from dataclasses import dataclass

from email_validator import EmailNotValidError, validate_email
from sqlalchemy.exc import IntegrityError

from refcredit.auth.local import LocalAuthService, auth_service
from refcredit.auth.models import AccountSummary, UserAccount
from refcredit.errors import ConflictError, StoreError, ValidationError
from refcredit.logging_config import get_logger
from refcredit.referral.codes import generate_unique_code
from refcredit.settings import settings
from refcredit.storage.db import Database, db
from refcredit.storage.repo import AccountRepository, ReferralRepository

logger = get_logger(__name__)


@dataclass
class RegistrationResult:
    """New account plus its bearer credential."""
    account: UserAccount
    access_token: str
    referral_linked: bool

    @property
    def summary(self) -> AccountSummary:
        return AccountSummary.model_validate(self.account)


class ReferralService:
    """Creates accounts and links them to their referrer."""

    def __init__(
        self,
        database: Database | None = None,
        auth: LocalAuthService | None = None,
    ):
        """Initialize referral service."""
        self.db = database or db
        self.auth = auth or auth_service
        self.logger = get_logger(__name__)

    def _validate(self, email: str | None, password: str | None, name: str | None) -> tuple[str, str]:
        """Check required fields and return normalized (email, name)."""
        email = (email or "").strip()
        name = (name or "").strip()

        if not email or not password or not name:
            raise ValidationError("All fields are required")

        if len(password) < settings.min_password_length:
            raise ValidationError(
                f"Password must be at least {settings.min_password_length} characters"
            )

        if len(password) > settings.max_password_length:
            raise ValidationError(
                f"Password must be at most {settings.max_password_length} characters"
            )

        if len(name) < settings.min_name_length:
            raise ValidationError(
                f"Name must be at least {settings.min_name_length} characters"
            )

        if len(name) > settings.max_name_length:
            raise ValidationError(
                f"Name must be at most {settings.max_name_length} characters"
            )

        try:
            validate_email(email, check_deliverability=False)
        except EmailNotValidError as e:
            raise ValidationError("Please enter a valid email") from e

        return email.lower(), name

    def register_account(
        self,
        email: str | None,
        password: str | None,
        name: str | None,
        referrer_code: str | None = None,
    ) -> RegistrationResult:
        """Register a new account.

        An unknown ``referrer_code`` is ignored and the account is created
        unlinked. A known one sets ``referred_by`` and creates one pending
        ledger entry; an already existing entry for the pair is left alone.

        Args:
            email: Email, any case
            password: Plain password
            name: Display name
            referrer_code: Optional referral code of the inviting account

        Returns:
            RegistrationResult with the account and an access token

        Raises:
            ValidationError: If a field is missing or malformed
            ConflictError: If the email is already registered
            StoreError: If the transaction failed or a concurrent signup took the
                generated referral code; safe to retry
        """
        email, name = self._validate(email, password, name)
        password_hash = self.auth.hash_password(password)

        with self.db.session() as session:
            accounts = AccountRepository(session)
            referrals = ReferralRepository(session)

            if accounts.get_by_email(email):
                raise ConflictError("User with this email already exists")

            code = generate_unique_code(name, accounts.referral_code_exists)

            referrer = None
            if referrer_code and referrer_code.strip():
                referrer = accounts.get_by_referral_code(referrer_code)
                if referrer is None:
                    self.logger.info("referral_code_ignored", referral_code=referrer_code)

            try:
                with session.begin_nested():
                    account = accounts.create(
                        email=email,
                        name=name,
                        password_hash=password_hash,
                        referral_code=code,
                        referred_by=referrer.referral_code if referrer else None,
                    )
            except IntegrityError as e:
                # A concurrent signup took the email or the referral code
                if accounts.get_by_email(email) is not None:
                    raise ConflictError("User with this email already exists") from e
                self.logger.warning("referral_code_taken", referral_code=code, email=email)
                raise StoreError("Could not create the account, please try again") from e

            referral_linked = False
            if referrer is not None:
                referral_linked = self._create_referral(
                    referrals, referrer.referral_code, account.referral_code
                )

        token = self.auth.create_access_token(account)

        self.logger.info(
            "account_registered",
            user_id=account.id,
            referral_code=account.referral_code,
            referred_by=account.referred_by,
        )

        return RegistrationResult(
            account=account,
            access_token=token,
            referral_linked=referral_linked,
        )

    def _create_referral(
        self,
        referrals: ReferralRepository,
        referrer_code: str,
        referred_code: str,
    ) -> bool:
        """Create the pending ledger entry, tolerating an existing one."""
        if referrals.get_pair(referrer_code, referred_code) is not None:
            self.logger.warning(
                "referral_already_exists",
                referrer_code=referrer_code,
                referred_code=referred_code,
            )
            return False

        try:
            with referrals.session.begin_nested():
                referrals.create(referrer_code, referred_code)
        except IntegrityError:
            self.logger.warning(
                "referral_already_exists",
                referrer_code=referrer_code,
                referred_code=referred_code,
            )
            return False

        self.logger.info(
            "referral_linked",
            referrer_code=referrer_code,
            referred_code=referred_code,
        )
        return True


# Singleton instance
referral_service = ReferralService()
