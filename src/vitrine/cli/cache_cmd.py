"""CLI commands for cache maintenance.

Usage:
    vitrine cache clear
    vitrine cache clear --storage ./storage.json
"""

from __future__ import annotations

import asyncio
from pathlib import Path

import typer
from rich.console import Console

from vitrine.cli.common import StorageOption, build_components

app = typer.Typer(help="Inspect and clear caches")


@app.command("clear")
def clear(storage: Path | None = StorageOption) -> None:
    """Purge cached entries from storage and platform response caches."""
    console = Console()
    components = build_components(storage)

    report = asyncio.run(components.invalidation.clear_all())

    console.print(f"Removed [bold]{report.durable_keys_removed}[/bold] cached storage keys")
    if report.platform_caches_deleted:
        console.print(
            f"Deleted response caches: {', '.join(report.platform_caches_deleted)}"
        )
    for error in report.errors:
        console.print(f"[yellow]Warning:[/yellow] {error}")

    if not report.ok:
        raise typer.Exit(1)
