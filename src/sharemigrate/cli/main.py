# Author: PB & Claude
# Maintainer: PB
# Original date: 2026.10.19
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# src/sharemigrate/cli/main.py

"""
sharemigrate command line.

- migrate: point every public link file share at its version folder
- inspect: resolve one inode or path on EOS and show how it would be classified
"""

# Standard library imports
from importlib.metadata import version
from pathlib import Path
from typing import Optional

# Third-party imports
import typer
from loguru import logger
from rich.console import Console

# Local imports
from sharemigrate.cli.utils import handle_operation_error, load_config_with_console
from sharemigrate.core.classifier import classify
from sharemigrate.core.reconcile import ReconciliationEngine
from sharemigrate.storage.eos import EOSClient
from sharemigrate.store.shares import ShareStore
from sharemigrate.system.display import (
    display_config_summary, display_file_metadata, display_migration_summary
)
from sharemigrate.system.exceptions import ConfigError, DatabaseConnectionError, ShareMigrateError
from sharemigrate.system.logging_setup import setup_logging

app = typer.Typer(
    help="""sharemigrate - point public link shares at EOS version folders

[bold green]Migration:[/bold green] migrate
[bold blue]Diagnostics:[/bold blue] inspect
""",
    rich_markup_mode="rich"
)

console = Console()


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        try:
            pkg_version = version("sharemigrate")
        except Exception as e:
            handle_operation_error(console, "retrieving version", e)
        console.print(f"sharemigrate version {pkg_version}")
        raise typer.Exit()


@app.callback()
def main(
    version: Optional[bool] = typer.Option(
        None, "--version", callback=version_callback, is_eager=True,
        help="Show version and exit"
    ),
) -> None:
    """sharemigrate - one-time migration of public link shares to version folders."""
    pass


@app.command()
def migrate(
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="YAML config file"),
    username: Optional[str] = typer.Option(None, "--username", help="The username to connect to the db"),
    password: Optional[str] = typer.Option(
        None, "--password", envvar="SHAREMIGRATE_DB_PASSWORD", help="The password to connect to the db"
    ),
    host: Optional[str] = typer.Option(None, "--host", help="The host of the db"),
    port: Optional[int] = typer.Option(None, "--port", help="The port of the db"),
    dbname: Optional[str] = typer.Option(None, "--dbname", help="The name of the database"),
    table: Optional[str] = typer.Option(None, "--table", help="The share table (default oc_share)"),
    db_url: Optional[str] = typer.Option(None, "--db-url", help="Full SQLAlchemy database URL"),
    dry_run: bool = typer.Option(
        False, "--dry-run", "--notouchdb", help="Log the updates without writing them to the db"
    ),
    eos_mgm_url: Optional[str] = typer.Option(None, "--eosmgmurl", help="The EOS MGM URL"),
    eos_binary: Optional[str] = typer.Option(None, "--eos-binary", help="Path to the eos command"),
    user_prefix: Optional[str] = typer.Option(None, "--userprefix", help="The path under which users reside"),
    user: Optional[str] = typer.Option(None, "--user", help="Run the migration just for this user"),
    concurrency: Optional[int] = typer.Option(None, "--concurrency", help="Records processed at once"),
    retries: Optional[int] = typer.Option(
        None, "--retries", help="Lookups of a newly created version folder before giving up"
    ),
    retry_delay: Optional[float] = typer.Option(None, "--retry-delay", help="Seconds before the first re-lookup"),
    timeout: Optional[float] = typer.Option(None, "--timeout", help="Seconds allowed per eos invocation"),
    failure_log: Optional[Path] = typer.Option(None, "--failure-log", help="Write failed records to this file"),
    debug: bool = typer.Option(False, "--debug", help="Print debug information"),
) -> None:
    """[bold green]Migration[/bold green]: Point public link file shares at their version folders."""
    overrides = {
        "database": {
            "username": username, "password": password, "host": host, "port": port,
            "name": dbname, "table": table, "url": db_url,
        },
        "backend": {"binary": eos_binary, "mgm_url": eos_mgm_url, "timeout": timeout},
        "reconcile": {
            "home_prefix": user_prefix, "user": user, "dry_run": True if dry_run else None,
            "concurrency": concurrency, "version_retries": retries, "retry_delay": retry_delay,
        },
        "debug": True if debug else None,
        "failure_log": failure_log,
    }
    config = load_config_with_console(console, config_path, overrides)
    setup_logging(config.debug, config.failure_log)

    try:
        store = ShareStore.connect(
            config.database, dry_run=config.reconcile.dry_run, pool_size=config.reconcile.concurrency
        )
    except (ConfigError, DatabaseConnectionError) as e:
        handle_operation_error(console, "connecting to the share database", e)
    if config.debug:
        display_config_summary(console, config)

    try:
        try:
            shares = store.fetch_shares(config.reconcile.user)
        except ShareMigrateError as e:
            handle_operation_error(console, "reading shares", e)

        if not shares:
            console.print(f"[red]✗[/red] {config.database.table} does not contain public share files")
            raise typer.Exit(1)
        logger.info(f"Reconciling {len(shares)} public file shares")

        engine = ReconciliationEngine(EOSClient(config.backend), store, config.reconcile)
        summary = engine.run(shares)
    finally:
        store.close()

    display_migration_summary(console, summary)
    if summary.succeeded:
        logger.info(f"Success. Dry run: {summary.dry_run}")
    else:
        logger.warning(f"Finished with {summary.failed} failed records. Dry run: {summary.dry_run}")


@app.command()
def inspect(
    inode: Optional[int] = typer.Option(None, "--inode", help="Inode to resolve"),
    path: Optional[str] = typer.Option(None, "--path", help="EOS path to resolve"),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="YAML config file"),
    eos_mgm_url: Optional[str] = typer.Option(None, "--eosmgmurl", help="The EOS MGM URL"),
    eos_binary: Optional[str] = typer.Option(None, "--eos-binary", help="Path to the eos command"),
    user_prefix: Optional[str] = typer.Option(None, "--userprefix", help="The path under which users reside"),
    debug: bool = typer.Option(False, "--debug", help="Print debug information"),
) -> None:
    """[bold blue]Diagnostics[/bold blue]: Resolve an inode or path and show its classification."""
    if (inode is None) == (path is None):
        console.print("[red]✗[/red] Give exactly one of --inode or --path")
        raise typer.Exit(1)

    overrides = {
        "backend": {"binary": eos_binary, "mgm_url": eos_mgm_url},
        "reconcile": {"home_prefix": user_prefix},
        "debug": True if debug else None,
    }
    config = load_config_with_console(console, config_path, overrides)
    setup_logging(config.debug)

    client = EOSClient(config.backend)
    ref = f"inode:{inode}" if inode is not None else path
    try:
        lookup = client.lookup_by_inode(inode) if inode is not None else client.lookup_by_path(path)
    except ShareMigrateError as e:
        handle_operation_error(console, f"resolving {ref}", e)

    if not lookup.is_found:
        console.print(f"[red]✗[/red] {ref} not found on {config.backend.mgm_url}")
        raise typer.Exit(1)

    meta = lookup.metadata
    display_file_metadata(console, meta, classify(meta.path, config.reconcile.home_prefix))


# done.
