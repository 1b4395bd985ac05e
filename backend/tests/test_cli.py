"""Tests for the command-line interface."""

import re

from typer.testing import CliRunner

from refcredit.cli import app

runner = CliRunner()


def register(email: str, name: str, *extra: str):
    return runner.invoke(
        app,
        ["register", "--email", email, "--password", "secret123", "--name", name, *extra],
    )


def account_id(output: str) -> str:
    return re.search(r"Account created with ID: (\d+)", output).group(1)


def referral_code(output: str) -> str:
    return re.search(r"Referral code: (\w+)", output).group(1)


class TestCli:
    """End-to-end CLI flows."""

    def test_init(self):
        """init creates tables."""
        result = runner.invoke(app, ["init"])

        assert result.exit_code == 0
        assert "Database initialized" in result.output

    def test_register_and_purchase(self):
        """register then purchase prints the new balance."""
        registered = register("alice@example.com", "Alice")
        assert registered.exit_code == 0

        result = runner.invoke(app, ["purchase", account_id(registered.output)])

        assert result.exit_code == 0
        assert "Credits: 2" in result.output

    def test_purchase_twice_fails(self):
        """Second purchase exits non-zero."""
        registered = register("alice@example.com", "Alice")
        runner.invoke(app, ["purchase", account_id(registered.output)])

        result = runner.invoke(app, ["purchase", account_id(registered.output)])

        assert result.exit_code == 1
        assert "already made a purchase" in result.output

    def test_register_validation_error(self):
        """Invalid input exits non-zero with the reason."""
        result = register("alice@example.com", "A")

        assert result.exit_code == 1
        assert "Registration failed" in result.output

    def test_unknown_referral_code_reported(self):
        """An unknown --ref is reported but registration succeeds."""
        result = register("bob@example.com", "Bob", "--ref", "NOPE0000")

        assert result.exit_code == 0
        assert "not found" in result.output

    def test_dashboard(self):
        """Dashboard lists referred users."""
        alice = register("alice@example.com", "Alice")
        code = referral_code(alice.output)
        bob = register("bob@example.com", "Bob", "--ref", code)
        runner.invoke(app, ["purchase", account_id(bob.output)])

        result = runner.invoke(app, ["dashboard", account_id(alice.output)])

        assert result.exit_code == 0
        assert f"/register?ref={code}" in result.output
        assert "converted 1, pending 0" in result.output
        assert "bob@example.com" in result.output

    def test_dashboard_unknown_account(self):
        """Unknown account exits non-zero."""
        result = runner.invoke(app, ["dashboard", "999"])

        assert result.exit_code == 1
