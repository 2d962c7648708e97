#!/usr/bin/env python3
"""
Git LoC Tracker CLI

Watches one or more Git working trees and records, per repository, the
lines added and deleted by one author: pending changes in the working tree
plus changes committed today.

Usage:
    python track_loc.py [OPTIONS] PATHS...

Examples:
    python track_loc.py -a "Jane Doe" ~/src/api ~/src/web   # Watch two repositories
    python track_loc.py -a "Jane Doe" --once .              # Reconcile once and exit
    python track_loc.py -a "Jane Doe" --debounce 60 .       # Shorter quiet period
"""

import asyncio
import logging
import sys
from typing import Optional, Tuple

import click
from rich.console import Console
from rich.panel import Panel
from rich.text import Text

from config.settings import PENDING_MODES, settings
from shared.errors import FatalSetupError
from services.loc_tracker.main import track

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.monitoring.log_level),
    format=settings.monitoring.log_format,
)
logger = logging.getLogger(__name__)

# Initialize Rich console
console = Console()


def display_error_message(error: str, suggestion: str = ""):
    """Display error message with helpful suggestions."""
    error_text = Text()
    error_text.append("Error occurred\n\n", style="bold white")
    error_text.append("Error: ", style="red")
    error_text.append(f"{error}\n", style="white")

    if suggestion:
        error_text.append("Suggestion: ", style="yellow")
        error_text.append(suggestion, style="white")

    console.print(Panel(error_text, title="Error", border_style="red"))


@click.command()
@click.argument(
    'paths',
    nargs=-1,
    required=True,
    type=click.Path(file_okay=False, dir_okay=True),
)
@click.option(
    '--author', '-a',
    required=True,
    help='Author name whose changes are tracked (exact match)'
)
@click.option(
    '--database-url',
    default=None,
    help=f'SQLite database URL (default: {settings.database.url})'
)
@click.option(
    '--debounce',
    type=click.FloatRange(min=0, min_open=True),
    default=None,
    help=f'Quiet period in seconds before reconciling (default: {settings.watch.debounce_seconds:g})'
)
@click.option(
    '--pending-mode',
    type=click.Choice(PENDING_MODES),
    default=None,
    help='How the working-tree diff is totalled across changed paths'
)
@click.option(
    '--once',
    is_flag=True,
    help='Reconcile once immediately and exit instead of watching'
)
@click.option(
    '--verbose', '-v',
    is_flag=True,
    help='Enable verbose output'
)
def track_loc(
    paths: Tuple[str, ...],
    author: str,
    database_url: Optional[str],
    debounce: Optional[float],
    pending_mode: Optional[str],
    once: bool,
    verbose: bool,
):
    """Track lines of code changed by AUTHOR across the repositories at PATHS."""
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    try:
        asyncio.run(
            track(
                list(paths),
                author,
                once=once,
                database_url=database_url,
                debounce_seconds=debounce,
                pending_mode=pending_mode,
                console=console,
            )
        )
    except FatalSetupError as e:
        logger.error(f"Setup failed: {e}")
        display_error_message(
            str(e),
            "Check that every path exists and the database location is writable"
        )
        sys.exit(1)
    except KeyboardInterrupt:
        console.print("\n[yellow]Stopped watching.[/yellow]")


if __name__ == "__main__":
    track_loc()
