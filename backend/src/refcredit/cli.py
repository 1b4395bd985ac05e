"""Command-line interface for the referral program."""

from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table

from refcredit.errors import ReferralError
from refcredit.logging_config import get_logger, setup_logging
from refcredit.referral.dashboard import dashboard_service
from refcredit.referral.service import referral_service
from refcredit.referral.settlement import settlement_service
from refcredit.storage.db import db

# Configure logging
setup_logging()
logger = get_logger(__name__)

# Create Typer app
app = typer.Typer(
    name="refcredit",
    help="Referral credits - accounts, purchases and referral dashboards",
    no_args_is_help=True,
)

# Rich console for pretty output
console = Console()


@app.command("init")
def init_database() -> None:
    """Initialize the database and create tables."""
    console.print("[bold blue]Initializing database...[/bold blue]")
    db.create_tables()
    console.print("[bold green]✓[/bold green] Database initialized successfully")


@app.command("register")
def register_account(
    email: Annotated[str, typer.Option("--email", "-e", help="Account email")],
    password: Annotated[str, typer.Option("--password", "-p", help="Account password")],
    name: Annotated[str, typer.Option("--name", "-n", help="Display name")],
    ref: Annotated[str | None, typer.Option("--ref", "-r", help="Referral code of the inviting user")] = None,
) -> None:
    """Register a new account."""
    try:
        result = referral_service.register_account(
            email=email,
            password=password,
            name=name,
            referrer_code=ref,
        )
    except ReferralError as e:
        console.print(f"[bold red]✗[/bold red] Registration failed: {e.message}")
        raise typer.Exit(1)

    account = result.account
    console.print(f"[bold green]✓[/bold green] Account created with ID: [bold]{account.id}[/bold]")
    console.print(f"  Email: {account.email}")
    console.print(f"  Referral code: {account.referral_code}")
    if account.referred_by:
        console.print(f"  Referred by: {account.referred_by}")
    elif ref:
        console.print(f"  [yellow]Referral code {ref} not found, account not linked[/yellow]")


@app.command("purchase")
def settle_purchase(
    account_id: Annotated[int, typer.Argument(help="Account ID")],
) -> None:
    """Settle the one-time purchase for an account."""
    try:
        result = settlement_service.settle_purchase(account_id)
    except ReferralError as e:
        console.print(f"[bold red]✗[/bold red] Purchase failed: {e.message}")
        raise typer.Exit(1)

    console.print(f"[bold green]✓[/bold green] {result.message}")
    console.print(f"  Credits: {result.user.credits}")


@app.command("dashboard")
def show_dashboard(
    account_id: Annotated[int, typer.Argument(help="Account ID")],
) -> None:
    """Show referral dashboard for an account."""
    try:
        dashboard = dashboard_service.get_dashboard(account_id)
    except ReferralError as e:
        console.print(f"[red]{e.message}[/red]")
        raise typer.Exit(1)

    stats = dashboard.stats
    console.print(f"[bold]{dashboard.user.name}[/bold] ({dashboard.user.email})")
    console.print(f"[bold]Referral link:[/bold] {dashboard.referral_link}")
    console.print(f"[bold]Credits:[/bold] {stats.total_credits}")
    console.print(
        f"[bold]Referred:[/bold] {stats.total_referred_users} "
        f"(converted {stats.converted_users}, pending {stats.pending_users})"
    )

    if not dashboard.referrals:
        console.print("[yellow]No referrals yet[/yellow]")
        return

    table = Table(title="Referrals")
    table.add_column("ID", style="cyan")
    table.add_column("Name", style="green")
    table.add_column("Email")
    table.add_column("Status")
    table.add_column("Purchased At")

    for entry in dashboard.referrals:
        referred = entry.referred_user
        table.add_row(
            str(entry.id),
            referred.name if referred else "-",
            referred.email if referred else "-",
            entry.status.value,
            entry.purchase_date.strftime("%Y-%m-%d %H:%M") if entry.purchase_date else "-",
        )

    console.print(table)


@app.command("serve")
def serve(
    host: Annotated[str, typer.Option("--host", help="Bind address")] = "127.0.0.1",
    port: Annotated[int, typer.Option("--port", help="Bind port")] = 8000,
) -> None:
    """Run the HTTP API."""
    import uvicorn

    uvicorn.run("refcredit.api.main:app", host=host, port=port)


if __name__ == "__main__":
    app()
