"""CLI interface for Version-Keeper."""

import json
import logging
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from . import __version__
from .config import load_config
from .errors import VersioningError
from .history import VERSION_HISTORY
from .migrations.runner import ExecutionReport
from .resolver import MigrationPathResolver
from .store import open_store
from .tracker import MigrationStatus, VersionStatus, tracker_from_config

console = Console()


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


@click.group()
@click.version_option(version=__version__)
@click.option(
    "--config",
    type=click.Path(exists=True, path_type=Path),
    help="Custom config file path",
)
@click.option("-v", "--verbose", is_flag=True, help="Show migration log output")
@click.pass_context
def cli(ctx: click.Context, config: Path | None, verbose: bool) -> None:
    """Version-Keeper: versioned migrations for a local key-value store."""
    ctx.ensure_object(dict)

    try:
        ctx.obj["config"] = load_config(config)
    except (FileNotFoundError, ValueError, OSError, PermissionError) as e:
        console.print(f"[red]Error:[/red] Configuration: {e}")
        sys.exit(1)

    _setup_logging("DEBUG" if verbose else ctx.obj["config"].log_level)


@cli.command()
@click.option(
    "--format",
    type=click.Choice(["table", "json"], case_sensitive=False),
    default="table",
    help="Output format: table (default) or json",
)
@click.pass_context
def status(ctx: click.Context, format: str) -> None:
    """
    Show the stored version and whether an update is pending.

    Read-only: never runs migrations or writes the version marker.
    """
    config = ctx.obj["config"]
    try:
        store = open_store(config.store_file, table_name=config.table_name)
        try:
            version_status = tracker_from_config(config, store).check_status()
        finally:
            store.close()
    except (VersioningError, OSError, ValueError) as e:
        console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)

    if format == "json":
        print(json.dumps(version_status.model_dump(mode="json"), indent=2, default=str))
    else:
        _display_status(version_status)


@cli.command()
@click.pass_context
def migrate(ctx: click.Context) -> None:
    """
    Record the running version and apply any pending migrations.

    On first run the version is recorded without migrating. When the stored
    version is older, every migration between it and the running version is
    applied in order, and the new version is recorded only if all succeed.

    Examples:

        \b
        # Apply pending migrations to the configured store
        version-keeper migrate

        \b
        # Same, with the per-step migration log
        version-keeper -v migrate
    """
    config = ctx.obj["config"]
    try:
        store = open_store(config.store_file, table_name=config.table_name)
        try:
            migration_status = tracker_from_config(config, store).initialize()
        finally:
            store.close()
    except (VersioningError, OSError, ValueError) as e:
        console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)

    _display_migration_status(migration_status)

    result = migration_status.migration_result
    if result is not None and not result.success:
        sys.exit(1)


@cli.command()
def history() -> None:
    """List every released version and its migration requirements."""
    table = Table(title="Version History")
    table.add_column("Version", style="cyan", no_wrap=True)
    table.add_column("Migration", style="green")
    table.add_column("From", style="magenta")
    table.add_column("Breaking", style="yellow")
    table.add_column("Changes")

    for record in VERSION_HISTORY:
        table.add_row(
            str(record.version),
            "yes" if record.requires_migration else "no",
            ", ".join(str(v) for v in record.migrate_from) or "-",
            "[red]yes[/red]" if record.breaking else "no",
            "\n".join(record.changes) or record.notes,
        )

    console.print(table)


@cli.command()
@click.argument("from-version")
@click.argument("to-version")
def path(from_version: str, to_version: str) -> None:
    """
    Show the migrations that run between two versions.

    Examples:

        \b
        version-keeper path 1.0.0-alpha 1.1.0-alpha
    """
    resolver = MigrationPathResolver(VERSION_HISTORY)
    try:
        records = resolver.resolve_path(from_version, to_version)
        keys = resolver.affected_storage_keys(from_version, to_version)
    except VersioningError as e:
        console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)

    if not records:
        console.print(f"No migrations required from {from_version} to {to_version}.")
        return

    table = Table(title=f"Migration Path {from_version} -> {to_version}")
    table.add_column("Step", style="cyan")
    table.add_column("Version", style="green", no_wrap=True)
    table.add_column("Notes")

    for step, record in enumerate(records, start=1):
        table.add_row(str(step), str(record.version), record.notes)

    console.print(table)
    console.print(f"Affected keys: {', '.join(keys) or 'none'}")


@cli.command()
@click.pass_context
def keys(ctx: click.Context) -> None:
    """List the keys currently held in the store."""
    config = ctx.obj["config"]
    try:
        store = open_store(config.store_file, table_name=config.table_name)
        try:
            all_keys = store.keys()
        finally:
            store.close()
    except (VersioningError, OSError, ValueError) as e:
        console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)

    if not all_keys:
        console.print("Store is empty.")
        return

    for key in all_keys:
        console.print(key)


def _display_status(version_status: VersionStatus) -> None:
    """Display version status."""
    table = Table(title="Version Status")
    table.add_column("Field", style="cyan")
    table.add_column("Value")

    stored = str(version_status.from_version) if version_status.from_version else "none"
    if version_status.first_run:
        state = "[yellow]first run[/yellow]"
    elif version_status.is_newer:
        state = "[yellow]update pending[/yellow]"
    elif version_status.is_older:
        state = "[red]stored version is newer (downgrade)[/red]"
    else:
        state = "[green]up-to-date[/green]"

    table.add_row("Stored version", stored)
    table.add_row("Running version", str(version_status.to_version))
    table.add_row("State", state)

    console.print(table)


def _display_migration_status(migration_status: MigrationStatus) -> None:
    """Display the outcome of initialize()."""
    if migration_status.first_run:
        console.print(
            f"[green]✓[/green] First run, recorded version {migration_status.to_version}"
        )
        return

    if migration_status.downgrade:
        console.print(
            Panel(
                f"Stored version {migration_status.from_version} is newer than "
                f"{migration_status.to_version}.\nNo downgrade migration is defined; "
                "the stored version was left unchanged.",
                title="Downgrade Detected",
                border_style="yellow",
            )
        )
        return

    result = migration_status.migration_result
    if result is None:
        console.print(f"[blue]✓[/blue] Up-to-date at {migration_status.to_version}")
        return

    if result.results:
        _display_step_results(result)

    if result.success:
        console.print(f"[green]✓[/green] {result.message}")
    else:
        console.print(f"[red]Error:[/red] {result.message}")
        console.print(
            "[yellow]Hint:[/yellow] The stored version was not changed; "
            "the same migrations will be retried on the next run."
        )


def _display_step_results(report: ExecutionReport) -> None:
    """Display per-step migration results."""
    table = Table(title="Migration Results")
    table.add_column("Version", style="cyan", no_wrap=True)
    table.add_column("Status", style="green")
    table.add_column("Keys")
    table.add_column("Metrics")

    for step in report.results:
        if step.skipped:
            status_text = "[blue]- No migration defined[/blue]"
        elif step.success:
            status_text = "[green]✓ Migrated[/green]"
        else:
            status_text = "[red]✗ Failed[/red]"

        metrics = step.details.metrics if step.details else {}
        table.add_row(
            step.version,
            status_text,
            ", ".join(step.affected_keys) or "-",
            ", ".join(f"{name}={value}" for name, value in metrics.items()) or "-",
        )

    console.print(table)


if __name__ == "__main__":
    cli()
