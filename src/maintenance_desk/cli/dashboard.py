"""Dashboard CLI command: ticket counts by status, priority, and category."""

from datetime import datetime

import typer
from rich.table import Table

from maintenance_desk.cli import common
from maintenance_desk.cli.common import console, print_json, run


def dashboard(
    created_from: datetime = typer.Option(
        None, "--from", formats=["%Y-%m-%d"], help="Created on or after (YYYY-MM-DD)"
    ),
    created_to: datetime = typer.Option(
        None, "--to", formats=["%Y-%m-%d"], help="Created on or before (YYYY-MM-DD)"
    ),
    json_output: bool = typer.Option(False, "--json", "-j", help="Output as JSON"),
) -> None:
    """Summarize tickets created in a date range."""

    async def _dashboard() -> None:
        async with common.open_session() as session:
            board = session.dashboard(
                created_from=created_from.date() if created_from else None,
                created_to=created_to.date() if created_to else None,
            )
            await board.reload()
            summary = board.summary()

        if json_output:
            print_json(
                {
                    "total": summary.total,
                    "counts": {s.value: n for s, n in summary.counts.items()},
                    "priorities": {p.value: n for p, n in summary.priorities.items()},
                    "byCategory": summary.by_category,
                    "byAssignee": summary.by_assignee,
                }
            )
            return

        status_table = Table(title=f"Tickets ({summary.total})")
        status_table.add_column("Status", style="cyan")
        status_table.add_column("Count", justify="right")
        for status, count in summary.counts.items():
            status_table.add_row(status.value, str(count))
        console.print(status_table)

        priority_table = Table(title="By priority")
        priority_table.add_column("Priority", style="cyan")
        priority_table.add_column("Count", justify="right")
        for priority, count in summary.priorities.items():
            priority_table.add_row(priority.value, str(count))
        console.print(priority_table)

        if summary.by_category:
            category_table = Table(title="By category")
            category_table.add_column("Category", style="cyan")
            category_table.add_column("Count", justify="right")
            for category, count in sorted(summary.by_category.items(), key=lambda kv: -kv[1]):
                category_table.add_row(category or "(none)", str(count))
            console.print(category_table)

    run(_dashboard())
