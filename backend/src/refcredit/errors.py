"""Error taxonomy shared by the services, the API and the CLI."""


class ReferralError(Exception):
    """Base class for errors surfaced to callers.

    Carries a stable ``code`` and an HTTP ``status_code`` so the API can render
    it directly, and ``retryable`` so a client can tell a transient failure
    from a permanent rejection.
    """

    code = "error"
    status_code = 400
    retryable = False

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)

    def to_dict(self) -> dict:
        return {"detail": self.message, "error": self.code, "retryable": self.retryable}


class ValidationError(ReferralError):
    """Raised when input is missing or malformed."""

    code = "validation_error"
    status_code = 400


class AuthenticationError(ReferralError):
    """Raised when login credentials do not match."""

    code = "invalid_credentials"
    status_code = 401


class NotFoundError(ReferralError):
    """Raised when an account does not exist."""

    code = "not_found"
    status_code = 404


class ConflictError(ReferralError):
    """Raised on a duplicate email or referral relationship."""

    code = "conflict"
    status_code = 409


class AlreadyPurchasedError(ReferralError):
    """Raised when settling a purchase for an account that already purchased."""

    code = "already_purchased"
    status_code = 409

    def __init__(self, account_id: int):
        self.account_id = account_id
        super().__init__(
            "You have already made a purchase. Credits can only be earned once."
        )


class StoreError(ReferralError):
    """Raised when a database transaction fails. Safe to retry."""

    code = "store_unavailable"
    status_code = 503
    retryable = True


class CodeGenerationError(RuntimeError):
    """Raised when no free referral code was found within the retry cap."""

    def __init__(self, attempts: int):
        self.attempts = attempts
        super().__init__(f"No unused referral code found after {attempts} attempts")
