"""CLI commands for the persisted session.

Usage:
    vitrine session show
    vitrine session show --format json
    vitrine session clear
"""

from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path

import orjson
import typer
from rich.console import Console
from rich.table import Table

from vitrine.cli.common import StorageOption, build_components
from vitrine.errors import StorageError
from vitrine.session.persistence import RecoverStatus

app = typer.Typer(help="Inspect and clear the persisted session")


def _mask(token: str) -> str:
    return f"{token[:6]}..." if len(token) > 6 else "***"


@app.command("show")
def show(
    storage: Path | None = StorageOption,
    output_format: str = typer.Option(
        "text",
        "--format",
        "-f",
        help="Output format: text, json",
    ),
) -> None:
    """Show the persisted session (tokens masked).

    An expired or corrupt session is removed, exactly as a boot would.
    """
    console = Console()
    components = build_components(storage)
    persistence = components.persistence

    try:
        expiry = components.storage.get_item(persistence.expiry_key)
    except StorageError as e:
        console.print(f"[red]Storage error:[/red] {e}")
        raise typer.Exit(1) from e

    result = persistence.recover_with_status()
    session = result.session

    if output_format == "json":
        payload = {
            "status": result.status.value,
            "user_id": session.user_id if session else None,
            "expires_at_ms": int(expiry) if session and expiry else None,
        }
        typer.echo(orjson.dumps(payload).decode())
    elif session is None:
        console.print(f"No session ([yellow]{result.status.value}[/yellow])")
    else:
        table = Table(title="Persisted session")
        table.add_column("Field")
        table.add_column("Value")
        table.add_row("User", session.user_id)
        table.add_row("Email", session.user.email or "")
        table.add_row("Access token", _mask(session.access_token))
        if expiry:
            expires = datetime.fromtimestamp(int(expiry) / 1000, tz=UTC)
            table.add_row("Persisted until", expires.isoformat())
        console.print(table)

    if result.status != RecoverStatus.RECOVERED:
        raise typer.Exit(1)


@app.command("clear")
def clear(storage: Path | None = StorageOption) -> None:
    """Remove the persisted session."""
    build_components(storage).persistence.teardown()
    Console().print("Session cleared")
