"""CLI commands for Vitrine.

Provides command-line interface using Typer:
- vitrine cache clear: Purge cached entries from every tier
- vitrine fault status|mark|recover: Inspect and recover the faulted state
- vitrine session show|clear: Inspect and clear the persisted session

Usage:
    vitrine --help
    vitrine fault status
    vitrine session show --format json
"""

import typer

from vitrine.cli.cache_cmd import app as cache_app
from vitrine.cli.fault_cmd import app as fault_app
from vitrine.cli.session_cmd import app as session_app
from vitrine.config import settings
from vitrine.observability import configure_logging

# Main CLI application
app = typer.Typer(
    name="vitrine",
    help="Vitrine: cache, fault and session maintenance",
    no_args_is_help=True,
)

app.add_typer(cache_app, name="cache")
app.add_typer(fault_app, name="fault")
app.add_typer(session_app, name="session")


@app.callback()
def callback() -> None:
    """Vitrine: cache, fault and session maintenance."""
    pass


def main() -> None:
    """Entry point for the CLI."""
    configure_logging(json_format=settings.log_json, level=settings.log_level)
    app()


if __name__ == "__main__":
    main()
