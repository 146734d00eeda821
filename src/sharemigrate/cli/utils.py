# Author: PB & Claude
# Maintainer: PB
# Original date: 2026.10.19
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# src/sharemigrate/cli/utils.py

"""
CLI helpers shared by the commands.

All functions handle console output and typer exits consistently.
"""

from pathlib import Path
from typing import Any, Optional

import typer
from rich.console import Console

from sharemigrate.config.manager import MigrationConfig
from sharemigrate.system.exceptions import ConfigError


def load_config_with_console(console: Console, config_path: Optional[Path],
                             overrides: dict[str, Any]) -> MigrationConfig:
    """
    Load the migration configuration, exiting with status 1 if it is invalid.

    Raises:
        typer.Exit: If configuration loading fails
    """
    try:
        return MigrationConfig.load(config_path, overrides)
    except ConfigError as e:
        handle_config_error(console, str(e))


def handle_config_error(console: Console, error_message: str) -> None:
    """Handle configuration errors with consistent formatting."""
    console.print(f"[red]✗[/red] Configuration error: {error_message}")
    raise typer.Exit(1)


def handle_operation_error(console: Console, operation: str, error: Exception) -> None:
    """Handle operation errors with consistent formatting."""
    console.print(f"[red]✗[/red] Error {operation}: {error}")
    raise typer.Exit(1)
