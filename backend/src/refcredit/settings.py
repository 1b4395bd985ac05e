"""Application settings and configuration."""

import sys

from pydantic_settings import BaseSettings, SettingsConfigDict

_INSECURE_JWT_DEFAULTS = {"change-me-in-production", "secret", "your_jwt_secret_key_here_at_least_32_characters"}


class Settings(BaseSettings):
    """Application configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "refcredit"
    env: str = "development"
    log_level: str = "INFO"
    log_format: str = "console"  # console or json
    allowed_origins: str = "http://localhost:3000"
    app_base_url: str = "http://localhost:3000"  # Referral links point here
    rate_limit_enabled: bool | None = None  # None: on in production only

    # JWT
    jwt_secret_key: str = "change-me-in-production"
    jwt_expire_days: int = 7

    # Password hashing
    bcrypt_rounds: int = 12

    # Database
    database_url: str = "sqlite:///./refcredit.db"

    # Credits
    purchase_award_credits: int = 2  # Same award for purchaser and referrer

    # Registration
    min_password_length: int = 6
    max_password_length: int = 128
    min_name_length: int = 2
    max_name_length: int = 100

    # Referral codes: NAME + 4 digits, e.g. JOHN4821
    referral_code_prefix_length: int = 4
    referral_code_digits: int = 4
    referral_code_max_attempts: int = 20


# Global settings instance
settings = Settings()

# ── Security validation ──────────────────────────────────────────────
if settings.env == "production":
    if settings.jwt_secret_key in _INSECURE_JWT_DEFAULTS or len(settings.jwt_secret_key) < 32:
        print(
            "\n❌  FATAL: JWT_SECRET_KEY is insecure or too short (min 32 chars).\n"
            "   Set a strong random value:  openssl rand -hex 32\n",
            file=sys.stderr,
        )
        sys.exit(1)
