"""Developer CLI for the storefront backend.

Runs the API server and inspects the revision log from a terminal.
"""

from pathlib import Path

import typer
import uvicorn
from loguru import logger
from rich.console import Console
from rich.table import Table

from storefront.config.settings import settings
from storefront.db.models import Base
from storefront.db.session import get_engine, get_session
from storefront.revisions import repository
from storefront.revisions.constants import DATE_TIME_FORMAT
from storefront.revisions.errors import RevisionNotFoundError
from storefront.revisions.export import ExportFormat, export_revisions, generate_export_filename
from storefront.revisions.formatting import render_changes, render_summary
from storefront.revisions.timestamps import resolve_timezone

app = typer.Typer(help="Storefront backend CLI")
console = Console()

DEFAULT_HOST = "127.0.0.1"


@app.command()
def server(
    host: str = typer.Option(DEFAULT_HOST, "--host", "-h", help="Host to bind to"),
    port: int = typer.Option(8000, "--port", "-p", help="Port to bind to"),
    reload: bool = typer.Option(False, "--reload", help="Enable auto-reload"),
) -> None:
    """Run the FastAPI server."""
    logger.info(f"Starting FastAPI server on {host}:{port} (reload={reload})")
    uvicorn.run("storefront.main:app", host=host, port=port, reload=reload)


@app.command("init-db")
def init_db() -> None:
    """Create all tables in DATABASE_URL."""
    Base.metadata.create_all(bind=get_engine())
    console.print("[green]Database tables created[/green]")


@app.command()
def history(
    entity_name: str = typer.Argument(..., help="Entity type name, e.g. Product"),
    entity_id: int = typer.Argument(..., help="Entity ID"),
    tenant_id: int | None = typer.Option(None, "--tenant", "-t", help="Tenant ID"),
) -> None:
    """List the revision history of one entity, newest first."""
    tz = resolve_timezone(settings.revision_timezone)
    with get_session() as session:
        revisions = repository.list_revisions_for_entity(session, entity_name, entity_id, tenant_id=tenant_id)
        if not revisions:
            console.print(f"[yellow]No revisions for {entity_name} {entity_id}[/yellow]")
            return

        table = Table(title=f"{entity_name} {entity_id}")
        table.add_column("ID", justify="right")
        table.add_column("Type")
        table.add_column("User")
        table.add_column("When")
        table.add_column("Changes")
        for revision in revisions:
            table.add_row(
                str(revision.id),
                revision.revision_type,
                revision.username,
                revision.revision_date(tz).strftime(DATE_TIME_FORMAT),
                render_changes(revision.changes_as_map).rstrip("\n"),
            )
        console.print(table)


@app.command()
def show(
    revision_id: int = typer.Argument(..., help="Revision ID"),
    tenant_id: int | None = typer.Option(None, "--tenant", "-t", help="Tenant ID"),
) -> None:
    """Print one revision's summary and changes."""
    tz = resolve_timezone(settings.revision_timezone)
    with get_session() as session:
        try:
            revision = repository.get_revision(session, revision_id, tenant_id=tenant_id)
        except RevisionNotFoundError as e:
            console.print(f"[red]{e}[/red]")
            raise typer.Exit(code=1) from e
        console.print(f"[bold]{render_summary(revision, tz)}[/bold]")
        console.print(render_changes(revision.changes_as_map), end="")


@app.command()
def export(
    export_format: ExportFormat = typer.Option(ExportFormat.JSON, "--format", "-f", help="json or csv"),
    entity_name: str | None = typer.Option(None, "--entity", "-e", help="Only this entity type"),
    tenant_id: int | None = typer.Option(None, "--tenant", "-t", help="Tenant ID"),
    limit: int = typer.Option(1000, "--limit", help="Maximum revisions to export"),
    output_dir: Path = typer.Option(Path("."), "--output-dir", "-o", help="Directory for the export file"),
) -> None:
    """Write revisions to a JSON or CSV file."""
    with get_session() as session:
        revisions, total = repository.search_revisions(
            session,
            tenant_id=tenant_id,
            entity_name=entity_name,
            limit=limit,
        )
        content = export_revisions(revisions, export_format, resolve_timezone(settings.revision_timezone))

    output_dir.mkdir(parents=True, exist_ok=True)
    path = output_dir / generate_export_filename(export_format, entity_name)
    path.write_bytes(content)
    console.print(f"[green]Exported {len(revisions)} of {total} revisions to {path}[/green]")


if __name__ == "__main__":
    app()
