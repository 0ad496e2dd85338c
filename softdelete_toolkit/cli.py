#!/usr/bin/env python3
"""
Command-line interface for the SoftDelete Toolkit.

Provides configuration, schema inspection and purge tools for soft-deletable
tables.
"""

import logging
import sys
from datetime import datetime, timedelta
from typing import Any, Optional, Type

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table as RichTable
from sqlalchemy import MetaData, Table, create_engine, func, select, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import NoSuchTableError, SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base

from . import __version__
from .config import get_config
from .soft_delete import (
    MissingColumnError,
    SchemaInspector,
    SoftDeletable,
    SoftDeleteFieldResolver,
    SoftDeleteService,
    TableDescriptor,
)
from .soft_delete.models import utcnow

console = Console()

DATABASE_URL_ENV = "SOFTDELETE_DATABASE_URL"


def _engine(database_url: Optional[str]) -> Engine:
    if not database_url:
        console.print("[red]Error: Database URL required[/red]")
        console.print(
            f"Set {DATABASE_URL_ENV} environment variable or use --database-url"
        )
        sys.exit(1)
    return create_engine(database_url)


def reflect_model(engine: Engine, table_name: str, field: Optional[str]) -> Type[Any]:
    """
    Map a reflected table onto a throwaway soft-deletable class.

    Args:
        engine: Engine to reflect from
        table_name: Table to map
        field: Marker column; the configured default when None

    Returns:
        Mapped class for the table
    """
    metadata = MetaData()
    table = Table(table_name, metadata, autoload_with=engine)

    if not table.primary_key.columns:
        raise click.ClickException(f"Table '{table_name}' has no primary key")

    Base = declarative_base(metadata=metadata)
    attributes = {"__table__": table, "__soft_delete_field__": field}
    return type(f"Reflected_{table_name}", (Base, SoftDeletable), attributes)


@click.group(invoke_without_command=True)
@click.version_option(version=__version__)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """SoftDelete Toolkit - Recoverable deletions for SQLAlchemy models."""
    level = "DEBUG" if verbose else get_config().log_level
    logging.basicConfig(
        level=getattr(logging, level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if ctx.invoked_subcommand is None:
        console.print(
            Panel.fit(
                f"[bold blue]SoftDelete Toolkit[/bold blue] v{__version__}\n"
                "[dim]Recoverable deletions for SQLAlchemy models[/dim]\n\n"
                "Use [bold]softdelete --help[/bold] to see available commands.",
                border_style="blue",
            )
        )


@cli.group()
def config() -> None:
    """Manage toolkit configuration."""
    pass


@config.command("show")
@click.option("--format", type=click.Choice(["table", "json", "yaml"]), default="table")
def config_show(format: str) -> None:
    """Display current configuration."""
    try:
        config_dict = get_config().to_dict()
    except ValueError as e:
        console.print(f"[red]Error loading configuration: {e}[/red]")
        sys.exit(1)

    if format == "json":
        console.print_json(data=config_dict)
    elif format == "yaml":
        import yaml  # type: ignore[import-untyped]

        console.print(yaml.dump(config_dict, default_flow_style=False))
    else:
        table = RichTable(title="SoftDelete Configuration", show_header=True)
        table.add_column("Setting", style="cyan")
        table.add_column("Value", style="green")

        for setting, value in config_dict.items():
            if value is None:
                value = "[dim]Not configured[/dim]"
            table.add_row(setting, str(value))

        console.print(table)


@config.command("validate")
def config_validate() -> None:
    """Validate current configuration."""
    try:
        config = get_config()
    except ValueError as e:
        console.print(f"[red]Error loading configuration: {e}[/red]")
        sys.exit(1)

    issues = []
    warnings = []

    if config.default_field_name == config.default_actor_field:
        issues.append("Marker and actor columns must be different columns")

    if config.status_flag_column in (
        config.default_field_name,
        config.default_actor_field,
    ):
        issues.append("Status flag column must differ from marker and actor columns")

    if config.purge_retention_days < 30:
        warnings.append(
            "Purge retention under 30 days leaves little time to restore records"
        )

    if issues:
        console.print("[red]✗ Configuration validation failed:[/red]")
        for issue in issues:
            console.print(f"  [red]• {issue}[/red]")
        sys.exit(1)

    console.print("[green]✓ Configuration is valid[/green]")

    if warnings:
        console.print("\n[yellow]⚠ Warnings:[/yellow]")
        for warning in warnings:
            console.print(f"  [yellow]• {warning}[/yellow]")


@cli.command("inspect")
@click.argument("table_name")
@click.option("--database-url", envvar=DATABASE_URL_ENV, help="Database URL")
@click.option("--field", help="Marker column (defaults to configuration)")
def inspect_table(
    table_name: str, database_url: Optional[str], field: Optional[str]
) -> None:
    """Report soft delete support of a table."""
    engine = _engine(database_url)
    config = get_config()
    inspector = SchemaInspector(engine)

    try:
        columns = inspector.describe(table_name)
    except NoSuchTableError:
        console.print(f"[red]Error: Table '{table_name}' does not exist[/red]")
        sys.exit(1)

    model = reflect_model(engine, table_name, field)
    descriptor = TableDescriptor.for_model(
        model, actor_field=config.default_actor_field
    )
    resolver = SoftDeleteFieldResolver(inspector, config)

    table = RichTable(title=f"Soft delete support: {table_name}", show_header=True)
    table.add_column("Check", style="cyan")
    table.add_column("Column")
    table.add_column("Status")

    failed = False
    try:
        marker = resolver.resolve_field(descriptor)
        table.add_row("Deletion marker", marker, "[green]✓[/green]")
    except MissingColumnError as e:
        table.add_row("Deletion marker", e.column, "[red]✗ missing[/red]")
        failed = True

    actor_present = descriptor.actor_field in columns
    table.add_row(
        "Actor",
        descriptor.actor_field,
        "[green]✓[/green]" if actor_present else "[yellow]⚠ not recorded[/yellow]",
    )

    capabilities = inspector.capabilities(descriptor, config.status_flag_column)
    table.add_row(
        "Status flag",
        config.status_flag_column or "[dim]Not configured[/dim]",
        "[green]✓[/green]" if capabilities.has_status_flag else "[dim]absent[/dim]",
    )
    table.add_row(
        "Primary key", ", ".join(descriptor.primary_key), "[green]✓[/green]"
    )

    console.print(table)

    if failed:
        sys.exit(1)


@cli.command()
@click.argument("table_name")
@click.option("--database-url", envvar=DATABASE_URL_ENV, help="Database URL")
@click.option("--field", help="Marker column (defaults to configuration)")
@click.option(
    "--before", type=click.DateTime(), help="Purge rows deleted up to this date"
)
@click.option(
    "--days", type=int, help="Purge rows deleted at least this many days ago"
)
@click.option(
    "--dry-run", is_flag=True, help="Only count the rows that would be purged"
)
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
def purge(
    table_name: str,
    database_url: Optional[str],
    field: Optional[str],
    before: Optional[datetime],
    days: Optional[int],
    dry_run: bool,
    yes: bool,
) -> None:
    """Permanently remove rows soft deleted before a cutoff."""
    if before and days is not None:
        raise click.UsageError("Use either --before or --days, not both")

    if before is None:
        retention = days if days is not None else get_config().purge_retention_days
        before = utcnow() - timedelta(days=retention)

    engine = _engine(database_url)

    try:
        model = reflect_model(engine, table_name, field)
    except NoSuchTableError:
        console.print(f"[red]Error: Table '{table_name}' does not exist[/red]")
        sys.exit(1)

    with Session(engine) as session:
        service = SoftDeleteService(model, session)

        try:
            marker = getattr(model, service.get_soft_delete_field())
        except MissingColumnError as e:
            console.print(f"[red]Error: {e}[/red]")
            sys.exit(1)

        candidates = session.scalar(
            select(func.count())
            .select_from(model)
            .where(marker.is_not(None), marker <= before)
        )

        if dry_run:
            console.print(
                f"{candidates} rows in '{table_name}' soft deleted before "
                f"{before.isoformat(sep=' ')} would be purged"
            )
            return

        if not candidates:
            console.print("[yellow]No rows to purge[/yellow]")
            return

        if not yes:
            click.confirm(
                f"Permanently delete {candidates} rows from '{table_name}'?",
                abort=True,
            )

        try:
            count = service.hard_delete_all(before)
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            console.print(f"[red]Error purging rows: {e}[/red]")
            sys.exit(1)

    console.print(f"[green]✓[/green] Purged {count} rows from '{table_name}'")


@cli.command()
@click.option("--database-url", envvar=DATABASE_URL_ENV, help="Database URL")
def doctor(database_url: Optional[str]) -> None:
    """Run diagnostic checks on the toolkit installation."""
    console.print("[bold]Running SoftDelete Toolkit diagnostics...[/bold]\n")

    checks_passed = 0
    checks_failed = 0

    # Check 1: Configuration
    try:
        config = get_config()
        console.print("[green]✓[/green] Configuration loaded successfully")
        console.print(
            f"  [dim]marker={config.default_field_name} "
            f"actor={config.default_actor_field} "
            f"redelete={config.redelete_policy.value}[/dim]"
        )
        checks_passed += 1
    except ValueError as e:
        console.print(f"[red]✗[/red] Configuration error: {e}")
        checks_failed += 1

    # Check 2: Database connectivity (if configured)
    if database_url:
        try:
            engine = create_engine(database_url)
            with engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            console.print("[green]✓[/green] Database connection successful")
            checks_passed += 1
        except SQLAlchemyError as e:
            console.print(f"[red]✗[/red] Database connection failed: {e}")
            checks_failed += 1
    else:
        console.print(
            f"[yellow]⚠[/yellow] No database configured ({DATABASE_URL_ENV} not set)"
        )

    console.print("\n[bold]Summary:[/bold]")
    console.print(f"  Checks passed: [green]{checks_passed}[/green]")
    console.print(f"  Checks failed: [red]{checks_failed}[/red]")

    if checks_failed == 0:
        console.print("\n[green]✓ All systems operational[/green]")
    else:
        console.print(
            "\n[yellow]⚠ Some issues detected - review output above[/yellow]"
        )
        sys.exit(1)


if __name__ == "__main__":
    cli()
