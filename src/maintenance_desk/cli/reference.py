"""Reference data CLI commands: directory people, categories, locations."""

import typer
from rich.table import Table

from maintenance_desk.cli import common
from maintenance_desk.cli.common import console, print_json, run

reference_app = typer.Typer(help="Browse directory people, categories, and locations")


@reference_app.command("people")
def people(
    search: str = typer.Option(None, "--search", "-q", help="Free-text directory search"),
    json_output: bool = typer.Option(False, "--json", "-j", help="Output as JSON"),
) -> None:
    """List people offered for assignment (or search the directory)."""

    async def _people() -> None:
        async with common.open_session() as session:
            if search:
                persons = await session.api.search_persons(search)
                if json_output:
                    print_json([p.model_dump(mode="json", by_alias=True) for p in persons])
                    return
                table = Table(title=f"Directory matches for {search!r}")
                table.add_column("ID", style="cyan")
                table.add_column("Name")
                table.add_column("Role")
                table.add_column("Email")
                for p in persons:
                    table.add_row(p.id, p.full_name, p.role or "-", p.email or "-")
                console.print(table)
                return

            await session.load_reference()
            names = session.reference.people_list
            error = session.reference.error

        if json_output:
            print_json(names)
            return
        if error:
            console.print(f"[yellow]{error}; showing fallback list[/yellow]")
        for name in names:
            console.print(name)

    run(_people())


@reference_app.command("categories")
def categories(
    json_output: bool = typer.Option(False, "--json", "-j", help="Output as JSON"),
) -> None:
    """List active categories and their subcategories."""

    async def _categories() -> None:
        async with common.open_session() as session:
            items = await session.api.list_categories(session.settings.categories_limit)

        if json_output:
            print_json([c.model_dump(mode="json", by_alias=True) for c in items])
            return
        table = Table(title="Categories")
        table.add_column("Category", style="cyan")
        table.add_column("Subcategories")
        for c in items:
            subs = ", ".join(s.display_name for s in c.subcategories) or "-"
            table.add_row(c.display_name, subs)
        console.print(table)

    run(_categories())


@reference_app.command("locations")
def locations(
    search: str = typer.Option("", "--search", "-q", help="Filter by text"),
    page: int = typer.Option(1, "--page", help="Page number"),
    limit: int = typer.Option(50, "--limit", "-n", help="Page size"),
    json_output: bool = typer.Option(False, "--json", "-j", help="Output as JSON"),
) -> None:
    """List locations."""

    async def _locations() -> None:
        async with common.open_session() as session:
            items = await session.api.list_locations(page=page, limit=limit, q=search)

        if json_output:
            print_json([loc.model_dump(mode="json", by_alias=True) for loc in items])
            return
        table = Table(title="Locations")
        table.add_column("ID", style="cyan")
        table.add_column("Name")
        table.add_column("Code")
        for loc in items:
            table.add_row(loc.id, loc.name or "-", loc.code or "-")
        console.print(table)

    run(_locations())
