"""Local authentication service (email/password)."""

from datetime import datetime, timedelta
from typing import Any

from jose import JWTError, jwt
from passlib.context import CryptContext

from refcredit.auth.models import UserAccount
from refcredit.errors import AuthenticationError, ValidationError
from refcredit.logging_config import get_logger
from refcredit.settings import settings
from refcredit.storage.db import Database, db
from refcredit.storage.repo import AccountRepository

logger = get_logger(__name__)

# Password hashing
pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.bcrypt_rounds,
)

# JWT settings
JWT_SECRET_KEY = settings.jwt_secret_key
JWT_ALGORITHM = "HS256"
JWT_EXPIRE_DAYS = settings.jwt_expire_days


class LocalAuthService:
    """Authentication service for local (email/password) users."""

    def __init__(self, database: Database | None = None):
        """Initialize auth service."""
        self.db = database or db
        self.logger = get_logger(__name__)

    # ==================== PASSWORD ====================

    def _truncate_password(self, password: str) -> str:
        """Truncate password to 72 bytes (bcrypt limit).

        Args:
            password: Plain password

        Returns:
            Truncated password
        """
        return password.encode('utf-8')[:72].decode('utf-8', errors='ignore')

    def hash_password(self, password: str) -> str:
        """Hash a password.

        Args:
            password: Plain password

        Returns:
            Hashed password
        """
        return pwd_context.hash(self._truncate_password(password))

    def verify_password(self, password: str, hashed: str) -> bool:
        """Verify a password against hash.

        Args:
            password: Plain password
            hashed: Hashed password

        Returns:
            True if matches
        """
        return pwd_context.verify(self._truncate_password(password), hashed)

    # ==================== USERS ====================

    def authenticate(self, email: str | None, password: str | None) -> UserAccount:
        """Authenticate a user.

        Args:
            email: User email
            password: Plain password

        Returns:
            User account

        Raises:
            ValidationError: If email or password is missing
            AuthenticationError: If email or password is wrong
        """
        if not email or not email.strip() or not password:
            raise ValidationError("Email and password are required")

        with self.db.session() as session:
            user = AccountRepository(session).get_by_email(email)

        if not user or not self.verify_password(password, user.password_hash):
            raise AuthenticationError("Invalid email or password")

        self.logger.info("user_authenticated", user_id=user.id)
        return user

    def get_user_by_id(self, user_id: int) -> UserAccount | None:
        """Get user by ID.

        Args:
            user_id: User ID

        Returns:
            User account or None
        """
        with self.db.session() as session:
            return AccountRepository(session).get_by_id(user_id)

    # ==================== JWT TOKENS ====================

    def create_access_token(
        self,
        user: UserAccount,
        expires_delta: timedelta | None = None,
    ) -> str:
        """Create JWT access token.

        Args:
            user: User account
            expires_delta: Optional expiration time

        Returns:
            JWT token string
        """
        if expires_delta is None:
            expires_delta = timedelta(days=JWT_EXPIRE_DAYS)

        now = datetime.utcnow()
        payload = {
            "sub": str(user.id),
            "email": user.email,
            "exp": now + expires_delta,
            "iat": now,
        }

        return jwt.encode(payload, JWT_SECRET_KEY, algorithm=JWT_ALGORITHM)

    def verify_token(self, token: str) -> dict[str, Any] | None:
        """Verify and decode JWT token.

        Args:
            token: JWT token string

        Returns:
            Token payload or None if invalid
        """
        try:
            return jwt.decode(token, JWT_SECRET_KEY, algorithms=[JWT_ALGORITHM])
        except JWTError as e:
            self.logger.debug("token_verification_failed", error=str(e))
            return None

    def get_user_from_token(self, token: str) -> UserAccount | None:
        """Get user from JWT token.

        Args:
            token: JWT token string

        Returns:
            User account or None
        """
        payload = self.verify_token(token)
        if not payload:
            return None

        user_id = payload.get("sub")
        if not user_id or not str(user_id).isdigit():
            return None

        return self.get_user_by_id(int(user_id))

    @staticmethod
    def expires_in_seconds() -> int:
        """Lifetime of a fresh access token."""
        return JWT_EXPIRE_DAYS * 24 * 3600


# Singleton instance
auth_service = LocalAuthService()
