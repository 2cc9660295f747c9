"""Maintenance desk CLI - triage maintenance tickets from the terminal."""

import logging

import typer
from rich.console import Console
from rich.logging import RichHandler

from maintenance_desk.cli.dashboard import dashboard
from maintenance_desk.cli.reference import reference_app
from maintenance_desk.cli.tickets import tickets_app
from maintenance_desk.config import settings

app = typer.Typer(
    name="maintdesk",
    help="Triage and resolve maintenance tickets",
    no_args_is_help=True,
)

# Add command groups
app.add_typer(tickets_app, name="tickets")
app.add_typer(reference_app, name="reference")
app.command("dashboard")(dashboard)


@app.callback()
def configure(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log at DEBUG level"),
) -> None:
    """Configure logging before any command runs."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else settings.log_level.upper(),
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True, show_path=False)],
        force=True,
    )


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
