"""Shared helpers for CLI commands: session creation, error reporting, rendering."""

import asyncio
import json
from collections.abc import Coroutine
from typing import Any

import httpx
import pydantic
import typer
from rich.console import Console
from rich.table import Table

from maintenance_desk.api.errors import ApiError, ApplicationError, PreconditionError
from maintenance_desk.session import MaintenanceSession, create_session
from maintenance_desk.types import Ticket

console = Console()


def open_session() -> MaintenanceSession:
    """Session from environment settings (MAINTDESK_*)."""
    return create_session()


def run(coro: Coroutine[Any, Any, None]) -> None:
    """
    Run an async command body, reporting failures and exiting non-zero.

    Guard rejections and backend errors are printed in red; anything else
    propagates with its traceback.
    """
    try:
        asyncio.run(coro)
    except PreconditionError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)
    except ApiError as e:
        console.print(f"[red]Request failed: {e.message}[/red]")
        raise typer.Exit(1)
    except (ApplicationError, httpx.HTTPError, pydantic.ValidationError) as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)


def print_json(data: Any) -> None:
    print(json.dumps(data, indent=2, default=str))


def format_timestamp(value) -> str:
    if value is None:
        return "-"
    return value.strftime("%Y-%m-%d %H:%M:%S")


def ticket_table(tickets: list[Ticket], title: str = "Tickets") -> Table:
    """Rich table with one row per ticket."""
    table = Table(title=title)
    table.add_column("ID", style="cyan")
    table.add_column("Status", style="green")
    table.add_column("Priority")
    table.add_column("Category")
    table.add_column("Subcategory")
    table.add_column("Assignees", justify="right")
    table.add_column("Created")

    for t in tickets:
        table.add_row(
            t.id,
            t.status.value,
            t.priority.value if t.priority else "-",
            t.category or "-",
            t.subcategory.display_name if t.subcategory else "-",
            str(len(t.assignee_ids)),
            format_timestamp(t.created_at),
        )
    return table


def ticket_detail(ticket: Ticket) -> Table:
    """Two-column field/value table for a single ticket."""
    table = Table(title=f"Ticket {ticket.id}", show_header=False)
    table.add_column("Field", style="bold")
    table.add_column("Value")

    rows = [
        ("Status", ticket.status.value),
        ("Priority", ticket.priority.value if ticket.priority else "-"),
        ("Category", ticket.category or "-"),
        ("Subcategory", ticket.subcategory.display_name if ticket.subcategory else "-"),
        ("Assignees", ", ".join(ticket.assignee_ids) or "-"),
        ("Locations", ", ".join(l.location_id or l.name or "?" for l in ticket.locations) or "-"),
        ("Phone", ticket.phone_number or "-"),
        ("Source", ticket.source or "-"),
        ("Created", format_timestamp(ticket.created_at)),
        ("Updated", format_timestamp(ticket.updated_at)),
        ("Description", ticket.description or "-"),
    ]
    for field, value in rows:
        table.add_row(field, value)
    return table
