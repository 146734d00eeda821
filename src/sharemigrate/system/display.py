# Author: PB & Claude
# Maintainer: PB
# Original date: 2026.10.19
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# src/sharemigrate/system/display.py

from rich.console import Console
from rich.table import Table

from sharemigrate.config.manager import MigrationConfig
from sharemigrate.core.classifier import PathClassification, version_folder_path
from sharemigrate.models import FileMetadata, MigrationSummary


def display_config_summary(console: Console, config: MigrationConfig) -> None:
    """Display the settings a run will use."""
    table = Table(title="Migration Settings")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("Database", config.database.describe())
    table.add_row("Share table", config.database.table)
    table.add_row("EOS MGM URL", config.backend.mgm_url)
    table.add_row("Home prefix", config.reconcile.home_prefix)
    table.add_row("Owner filter", config.reconcile.user or "(all users)")
    table.add_row("Concurrency", str(config.reconcile.concurrency))
    table.add_row("Dry run", str(config.reconcile.dry_run))

    console.print(table)


def display_migration_summary(console: Console, summary: MigrationSummary) -> None:
    table = Table(title="Migration Summary")
    table.add_column("Outcome", style="cyan")
    table.add_column("Records", justify="right")

    table.add_row("[green]Updated[/green]" if not summary.dry_run else "[yellow]Would update[/yellow]",
                  str(summary.updated))
    table.add_row("Skipped", str(summary.skipped))
    table.add_row("[red]Failed[/red]", str(summary.failed))
    table.add_row("[bold]Total[/bold]", str(summary.total))
    console.print(table)

    if summary.failed_ids:
        ids = ", ".join(str(i) for i in sorted(summary.failed_ids))
        console.print(f"[red]✗[/red] Failed share ids: {ids}")


def display_file_metadata(console: Console, meta: FileMetadata,
                          classification: PathClassification) -> None:
    """Show one resolved backend entry and what the migration would do with it."""
    table = Table(title="EOS File Info")
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("Path", repr(meta.path))
    table.add_row("Inode", str(meta.inode))
    table.add_row("Owner", f"{meta.owner_uid}:{meta.owner_gid}")
    table.add_row("Size", str(meta.size) if meta.size is not None else "-")
    table.add_row("Classification", classification.name)
    if classification is PathClassification.NEEDS_VERSION_FOLDER:
        table.add_row("Version folder", version_folder_path(meta.path))

    console.print(table)
