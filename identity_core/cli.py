"""Operator commands for the identity database."""

from datetime import timedelta

import typer
from rich.console import Console
from rich.table import Table

from identity_core.core.database.db_session import DbSessionService
from identity_core.core.exceptions import IdentityError
from identity_core.entities.user import Role
from identity_core.runtime.bootstrap import build_identity_service
from identity_core.runtime.context import get_config
from identity_core.runtime.logging_setup import configure_logging

console = Console()

app = typer.Typer(help="Manage identity accounts and sessions")


@app.callback()
def main() -> None:
    """Configure logging before any command runs."""
    configure_logging()


@app.command("init-db")
def init_db() -> None:
    """Create the identity tables."""
    db = DbSessionService(get_config().database)
    db.create_tables()
    console.print("[green]✅ Identity tables ready[/green]")


@app.command("check-db")
def check_db() -> None:
    """Verify the configured database answers queries."""
    db = DbSessionService(get_config().database)
    try:
        healthy = db.health_check()
    finally:
        db.dispose()
    if not healthy:
        console.print("[red]❌ Database is not reachable[/red]")
        raise typer.Exit(code=1)
    console.print("[green]✅ Database is reachable[/green]")


@app.command("create-admin")
def create_admin(
    email: str = typer.Option(..., "--email", "-e", help="Email address"),
    password: str = typer.Option(
        ..., "--password", "-p", prompt=True, hide_input=True, help="Password"
    ),
    first_name: str = typer.Option(None, "--first-name", "-f", help="First name"),
    last_name: str = typer.Option(None, "--last-name", "-l", help="Last name"),
) -> None:
    """Create an administrator account."""
    service = build_identity_service()
    try:
        user = service.create_user(
            {
                "email_address": email,
                "password": password,
                "first_name": first_name,
                "last_name": last_name,
            },
            Role.administrator,
        )
    except IdentityError as e:
        console.print(f"[red]❌ Failed to create administrator: {e}[/red]")
        raise typer.Exit(code=1) from e

    table = Table(title="Administrator created")
    table.add_column("ID", style="cyan")
    table.add_column("Email", style="blue")
    table.add_column("Role", style="yellow")
    table.add_row(user.id, user.email_address or "", user.role.value)
    console.print(table)


@app.command("sweep-sessions")
def sweep_sessions(
    minutes: int = typer.Option(
        None,
        "--minutes",
        "-m",
        min=1,
        help="Idle minutes before a session expires (defaults to configuration)",
    ),
) -> None:
    """Remove expired sessions."""
    staleness = (
        minutes if minutes is not None else get_config().security.session_staleness_minutes
    )
    service = build_identity_service()
    try:
        affected = service.sweep_expired_sessions(timedelta(minutes=staleness))
    except IdentityError as e:
        console.print(f"[red]❌ Session sweep failed: {e}[/red]")
        raise typer.Exit(code=1) from e
    console.print(
        f"[green]Removed sessions idle for more than {staleness} minutes "
        f"from {affected} users[/green]"
    )


if __name__ == "__main__":
    app()
