"""CLI commands for the persisted fault flag.

Usage:
    vitrine fault status
    vitrine fault mark
    vitrine fault recover
"""

from __future__ import annotations

import asyncio
from pathlib import Path

import typer
from rich.console import Console

from vitrine.cli.common import StorageOption, build_components
from vitrine.fault import FaultState

app = typer.Typer(help="Inspect and recover the faulted state")


@app.command("status")
def status(storage: Path | None = StorageOption) -> None:
    """Show whether the last run ended faulted."""
    console = Console()
    state = build_components(storage).fault.state

    color = "red" if state == FaultState.FAULTED else "green"
    console.print(f"State: [{color}]{state.value}[/{color}]")


@app.command("mark")
def mark(storage: Path | None = StorageOption) -> None:
    """Mark the application as faulted (forces recovery on next boot)."""
    build_components(storage).fault.mark_faulted()
    Console().print("Marked as [red]faulted[/red]")


@app.command("recover")
def recover(storage: Path | None = StorageOption) -> None:
    """Clear all caches and the fault flag if the application is faulted."""
    console = Console()
    fault = build_components(storage).fault
    recovered = asyncio.run(fault.recover_if_faulted())

    if recovered:
        console.print("[green]Recovered:[/green] caches cleared, reload required")
    elif fault.is_faulted():
        console.print("[red]Error:[/red] caches cleared but the fault flag could not be removed")
        raise typer.Exit(1)
    else:
        console.print("Not faulted, nothing to do")
