"""Ticket CLI commands.

This module provides CLI commands that drive the ticket orchestrator:
- list: Display tickets in table or JSON format
- show: Display one ticket
- assign: Assign (or reassign) people by full name, after confirmation
- priority / category / locations: Field edits
- done / reopen / cancel: Status changes

Each command builds a session from MAINTDESK_* settings, runs the async
operation with asyncio.run(), and disposes the session.
"""

import typer
from rich.panel import Panel

from maintenance_desk.api.errors import PreconditionError
from maintenance_desk.api.tickets import TicketQuery
from maintenance_desk.cli import common
from maintenance_desk.cli.common import console, print_json, run, ticket_detail, ticket_table
from maintenance_desk.types import TicketPriority, TicketStatus

tickets_app = typer.Typer(help="Triage and resolve maintenance tickets")


@tickets_app.command("list")
def list_tickets(
    status: TicketStatus = typer.Option(None, "--status", "-s", help="Filter by status"),
    priority: TicketPriority = typer.Option(None, "--priority", "-p", help="Filter by priority"),
    assignee: str = typer.Option(None, "--assignee", help="Filter by assignee id"),
    subcategory: str = typer.Option(None, "--subcategory", help="Filter by subcategory display name"),
    limit: int = typer.Option(20, "--limit", "-n", help="Number of tickets to fetch"),
    json_output: bool = typer.Option(False, "--json", "-j", help="Output as JSON"),
) -> None:
    """List tickets, newest first."""

    async def _list() -> None:
        query = TicketQuery(
            status=status,
            priority=priority,
            assignee_id=assignee,
            subcategory_display_name=subcategory,
            limit=limit,
        )
        async with common.open_session() as session:
            tickets = await session.board(query).reload()

        if json_output:
            print_json([t.model_dump(mode="json", by_alias=True) for t in tickets])
            return
        if not tickets:
            console.print("[yellow]No tickets found[/yellow]")
            return
        console.print(ticket_table(tickets))

    run(_list())


@tickets_app.command("show")
def show_ticket(
    ticket_id: str = typer.Argument(..., help="Ticket ID"),
    json_output: bool = typer.Option(False, "--json", "-j", help="Output as JSON"),
) -> None:
    """Show a single ticket."""

    async def _show() -> None:
        async with common.open_session() as session:
            ticket = await session.api.get_ticket(ticket_id)

        if json_output:
            print_json(ticket.model_dump(mode="json", by_alias=True))
            return
        console.print(ticket_detail(ticket))

    run(_show())


@tickets_app.command("assign")
def assign_ticket(
    ticket_id: str = typer.Argument(..., help="Ticket ID"),
    names: list[str] = typer.Argument(..., help='Full names, e.g. "Jane Doe"'),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt"),
) -> None:
    """Assign a ticket to one or more people and open it."""

    async def _assign() -> None:
        async with common.open_session() as session:
            await session.load_reference()
            if session.reference.error:
                console.print(f"[yellow]{session.reference.error}; using fallback directory[/yellow]")

            orchestrator = await session.open_ticket(ticket_id)
            pending = orchestrator.request_assignment(names)
            console.print(Panel(pending.message, title=pending.title))

            if not yes and not typer.confirm(f"{pending.variant.value.capitalize()}?"):
                orchestrator.decline_assignment()
                console.print("Assignment cancelled")
                return

            ticket = await orchestrator.confirm_assignment(pending.variant)
            console.print(ticket_detail(ticket))

    run(_assign())


@tickets_app.command("priority")
def set_priority(
    ticket_id: str = typer.Argument(..., help="Ticket ID"),
    priority: TicketPriority = typer.Argument(..., help="New priority"),
) -> None:
    """Change a ticket's priority."""

    async def _priority() -> None:
        async with common.open_session() as session:
            orchestrator = await session.open_ticket(ticket_id)
            ticket = await orchestrator.set_priority(priority)
        console.print(f"Ticket {ticket.id} priority set to {ticket.priority.value}")

    run(_priority())


@tickets_app.command("category")
def set_category(
    ticket_id: str = typer.Argument(..., help="Ticket ID"),
    subcategory: str = typer.Argument(None, help="Subcategory display name"),
    category: str = typer.Option(
        None, "--category", "-c", help="Set a bare category (clears the subcategory)"
    ),
) -> None:
    """Set a ticket's subcategory (and its category), or a bare category."""
    if bool(subcategory) == bool(category):
        console.print("[red]Give either a subcategory or --category[/red]")
        raise typer.Exit(1)

    async def _category() -> None:
        async with common.open_session() as session:
            await session.load_reference()
            orchestrator = await session.open_ticket(ticket_id)
            if subcategory:
                ticket = await orchestrator.select_subcategory(subcategory)
            else:
                ticket = await orchestrator.select_category(category)
        console.print(ticket_detail(ticket))

    run(_category())


@tickets_app.command("locations")
def set_locations(
    ticket_id: str = typer.Argument(..., help="Ticket ID"),
    location_ids: list[str] = typer.Argument(..., help="Location IDs"),
) -> None:
    """Replace a ticket's locations."""

    async def _locations() -> None:
        async with common.open_session() as session:
            await session.load_reference()
            orchestrator = await session.open_ticket(ticket_id)
            ticket = await orchestrator.set_locations(location_ids)
        console.print(ticket_detail(ticket))

    run(_locations())


@tickets_app.command("done")
def mark_done(ticket_id: str = typer.Argument(..., help="Ticket ID")) -> None:
    """Mark a ticket as done."""

    async def _done() -> None:
        async with common.open_session() as session:
            orchestrator = await session.open_ticket(ticket_id)
            ticket = await orchestrator.mark_done()
        console.print(f"Ticket {ticket.id} is {ticket.status.value}")

    run(_done())


@tickets_app.command("reopen")
def reopen(ticket_id: str = typer.Argument(..., help="Ticket ID")) -> None:
    """Reopen a done ticket."""

    async def _reopen() -> None:
        async with common.open_session() as session:
            orchestrator = await session.open_ticket(ticket_id)
            ticket = await orchestrator.reopen()
        console.print(f"Ticket {ticket.id} is {ticket.status.value}")

    run(_reopen())


@tickets_app.command("cancel")
def cancel(
    ticket_id: str = typer.Argument(..., help="Ticket ID"),
    reason: str = typer.Option("", "--reason", "-r", help="Why the ticket is cancelled"),
    cancelled_by: str = typer.Option(None, "--by", help="Person id cancelling the ticket"),
    cancelled_by_name: str = typer.Option(None, "--by-name", help="Display name of that person"),
) -> None:
    """Cancel a ticket. A non-blank reason is required."""

    async def _cancel() -> None:
        async with common.open_session() as session:
            orchestrator = await session.open_ticket(ticket_id)
            if not orchestrator.can_cancel(reason):
                raise PreconditionError(
                    "cancel",
                    "a cancellation reason is required"
                    if not reason.strip()
                    else f"not allowed while ticket is {orchestrator.ticket.status.value}",
                )
            ticket = await orchestrator.cancel(
                reason, cancelled_by=cancelled_by, cancelled_by_name=cancelled_by_name
            )
        console.print(f"Ticket {ticket.id} is {ticket.status.value}")

    run(_cancel())
