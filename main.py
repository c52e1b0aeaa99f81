#!/usr/bin/env python3
"""
CampusNews - News Feed Ingestion
================================

Command line entry point used by operators and by the job scheduler.

Usage:
    python main.py --help                       # Show all commands
    python main.py check-config                 # Validate configuration
    python main.py init-db                      # Initialize database
    python main.py add-source "TUM" URL         # Register a news source
    python main.py list-sources                 # Show configured sources
    python main.py pending-files                # Show images awaiting download
    python main.py ingest                       # Ingest every source
    python main.py ingest --source 3            # Ingest selected sources
"""

import sys
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

# Add project root to Python path
sys.path.insert(0, str(Path(__file__).parent))

from campusnews.config.settings import get_settings
from campusnews.database.schema import DatabaseSchema
from campusnews.database.connection import get_db_manager
from campusnews.database.models import NewsSource
from campusnews.processing.news_pipeline import NewsIngestionEngine
from campusnews.storage.file_repository import FileRepository
from campusnews.storage.source_repository import SourceRepository
from campusnews.utils.logging import configure_application_logging
from campusnews.utils.exceptions import CampusNewsError, get_user_friendly_message

console = Console()


def _setup(debug: bool):
    settings = get_settings()
    configure_application_logging(
        log_level="DEBUG" if debug else settings.get_effective_log_level(),
        log_file=settings.logging.file_path,
        enable_console=settings.logging.console_logging,
        structured_logging=settings.logging.structured_logging,
        max_file_size_mb=settings.logging.max_file_size_mb,
        backup_count=settings.logging.backup_count,
    )
    return settings


@click.group(invoke_without_command=True)
@click.option('--debug', is_flag=True, help='Enable debug mode')
@click.pass_context
def cli(ctx, debug):
    """CampusNews - news feed ingestion service."""
    ctx.ensure_object(dict)
    ctx.obj['debug'] = debug

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


@cli.command()
def check_config():
    """Validate configuration and environment variables."""
    console.print("[bold blue]Checking CampusNews configuration[/bold blue]")

    try:
        settings = get_settings()
    except CampusNewsError as e:
        console.print(f"[bold red]{get_user_friendly_message(e)}[/bold red]")
        sys.exit(1)

    table = Table(title="Configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("Mode", "production" if settings.is_production_mode() else "development")
    table.add_row("Database", settings.database.path)
    table.add_row("Log level", settings.get_effective_log_level())
    table.add_row("Log file", settings.logging.file_path or "-")
    table.add_row("Retention", f"{settings.ingestion.retention_days} days")
    table.add_row("Image directory", settings.ingestion.image_directory)
    table.add_row("Request timeout", f"{settings.limits.request_timeout}s")
    table.add_row("Retries", str(settings.limits.max_retries))

    console.print(table)
    console.print("[bold green]Configuration is valid[/bold green]")


@cli.command()
def init_db():
    """Initialize database with schema."""
    settings = get_settings()
    schema = DatabaseSchema(settings.database.path)
    schema.create_tables()

    if not schema.verify_schema():
        console.print("[bold red]Database schema verification failed[/bold red]")
        sys.exit(1)

    console.print(f"[bold green]Database initialized at {settings.database.path}[/bold green]")

    db = get_db_manager(settings.database.path, settings.database.pool_size)
    info = db.get_database_info()
    for table_name, count in info['table_counts'].items():
        console.print(f"  {table_name}: {count} rows")


@cli.command()
@click.argument('title')
@click.argument('url', required=False)
@click.option('--hook', help='Source transform to apply (e.g. newspread, impulsiv)')
@click.option('--icon', type=int, help='File ID of the source icon')
def add_source(title, url, hook, icon):
    """Register a news source."""
    settings = get_settings()
    db = get_db_manager(settings.database.path, settings.database.pool_size)

    try:
        source_id = SourceRepository(db).create_source(
            NewsSource(title=title, url=url, hook=hook, icon=icon)
        )
    except CampusNewsError as e:
        console.print(f"[bold red]Could not add source: {get_user_friendly_message(e)}[/bold red]")
        sys.exit(1)

    console.print(f"[green]Added news source {source_id}: {title}[/green]")


@cli.command()
def list_sources():
    """Show configured news sources."""
    settings = get_settings()
    db = get_db_manager(settings.database.path, settings.database.pool_size)
    sources = SourceRepository(db).list_sources()

    table = Table(title="News Sources")
    table.add_column("ID", style="cyan")
    table.add_column("Title")
    table.add_column("URL")
    table.add_column("Hook", style="magenta")

    for source in sources:
        table.add_row(str(source.id), source.title, source.url or "-", source.hook or "-")

    console.print(table)


@cli.command()
@click.option('--limit', type=int, default=100, show_default=True, help='Maximum files to show')
def pending_files(limit):
    """Show registered images still waiting for the download worker."""
    settings = get_settings()
    db = get_db_manager(settings.database.path, settings.database.pool_size)
    files = FileRepository(db).get_pending_downloads(limit=limit)

    table = Table(title="Pending Downloads")
    table.add_column("ID", style="cyan")
    table.add_column("Name")
    table.add_column("Path")
    table.add_column("URL")

    for stored_file in files:
        table.add_row(str(stored_file.id), stored_file.name, stored_file.path, stored_file.url or "-")

    console.print(table)
    console.print(f"{len(files)} file(s) pending")


@cli.command()
@click.option('--source', 'source_ids', type=int, multiple=True, help='Only ingest these source IDs')
@click.pass_context
def ingest(ctx, source_ids):
    """Fetch feeds and store new news."""
    settings = _setup(ctx.obj.get('debug', False))
    db = get_db_manager(settings.database.path, settings.database.pool_size)
    engine = NewsIngestionEngine(db, settings=settings)

    if source_ids:
        results = engine.ingest_source_ids(source_ids)
    else:
        results = engine.ingest_all()

    table = Table(title="Ingestion Results")
    table.add_column("Source", style="cyan")
    table.add_column("Status")
    table.add_column("Fetched", justify="right")
    table.add_column("New", justify="right", style="green")
    table.add_column("Images", justify="right")
    table.add_column("Purged", justify="right")
    table.add_column("Error", style="red")

    for result in results:
        if result.skipped:
            status = "[yellow]skipped[/yellow]"
        elif result.success:
            status = "[green]ok[/green]"
        else:
            status = "[red]failed[/red]"
        table.add_row(
            str(result.source_id),
            status,
            str(result.fetched_items),
            str(result.new_entries),
            str(result.images_registered),
            str(result.purged_entries),
            result.error or "",
        )

    console.print(table)
    sys.exit(0 if all(r.success for r in results) else 1)


if __name__ == "__main__":
    try:
        cli()
    except KeyboardInterrupt:
        console.print("\n[yellow]CampusNews interrupted by user[/yellow]")
        sys.exit(130)
