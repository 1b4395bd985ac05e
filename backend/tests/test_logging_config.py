"""Tests for logging configuration."""

import logging

from refcredit.logging_config import REDACTED, redact_secrets, resolve_level, setup_logging


class TestRedactSecrets:
    """Tests for the credential-masking processor."""

    def test_credentials_masked(self):
        """Passwords and tokens never reach the renderer."""
        event = redact_secrets(
            None,
            "info",
            {"event": "login_failed", "password": "secret123", "access_token": "eyJ", "user_id": 7},
        )

        assert event == {
            "event": "login_failed",
            "password": REDACTED,
            "access_token": REDACTED,
            "user_id": 7,
        }

    def test_none_left_alone(self):
        """An absent credential stays None."""
        assert redact_secrets(None, "info", {"event": "x", "token": None}) == {"event": "x", "token": None}


class TestLevels:
    """Tests for level resolution and stdlib logger quieting."""

    def test_names_resolved(self):
        """Level names are case-insensitive."""
        assert resolve_level("debug") == logging.DEBUG
        assert resolve_level("WARNING") == logging.WARNING

    def test_unknown_name_falls_back_to_info(self):
        """A typo in LOG_LEVEL does not break startup."""
        assert resolve_level("verbose") == logging.INFO

    def test_sql_logging_quiet_at_info(self):
        """SQLAlchemy only reports warnings unless running at DEBUG."""
        setup_logging("INFO")
        assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING

    def test_sql_logging_follows_debug(self):
        """At DEBUG the SQL loggers are opened up."""
        try:
            setup_logging("DEBUG")
            assert logging.getLogger("sqlalchemy.engine").level == logging.DEBUG
        finally:
            setup_logging()
