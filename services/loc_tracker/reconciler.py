"""
Reconciliation loop for the Git LoC tracker.

The loop waits for a debounced notification, rescans every tracked
repository, replaces its RepoStats entry, appends one change record per
repository to the sink and prints an aggregate summary. Failures in one
repository never stop the others.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence

from git import Repo
from git.exc import GitCommandError, InvalidGitRepositoryError, NoSuchPathError
from rich.console import Console
from rich.markup import escape

from shared.errors import LocTrackerError, RepoAccessError, SinkWriteError
from shared.events import LoopState, ReconcileNotification
from shared.models import LocChangeCreate, RepoStats

from .diff_stats import DiffStatReader
from .stats_table import RepoStatsTable

logger = logging.getLogger(__name__)


def repo_name_for(path: str) -> str:
    """Name a repository after the final segment of its tracked path."""
    p = Path(path)
    return p.name or p.resolve().name


@dataclass
class CycleReport:
    """Outcome of one reconciliation cycle."""

    records: List[LocChangeCreate] = field(default_factory=list)
    skipped: Dict[str, str] = field(default_factory=dict)
    sink_failures: Dict[str, str] = field(default_factory=dict)


class ReconcileLoop:
    """Drives reconciliation cycles from a notification queue."""

    def __init__(
        self,
        paths: Sequence[str],
        author: str,
        sink,
        notifications: Optional[asyncio.Queue] = None,
        reader: Optional[DiffStatReader] = None,
        table: Optional[RepoStatsTable] = None,
        console: Optional[Console] = None,
        clock: Optional[Callable[[], datetime]] = None,
        repo_opener: Callable[[str], Repo] = Repo,
    ):
        self.paths = [str(path) for path in paths]
        self.author = author
        self.sink = sink
        self.notifications = notifications if notifications is not None else asyncio.Queue()
        self.reader = reader or DiffStatReader()
        self.table = table if table is not None else RepoStatsTable()
        self.console = console or Console()
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self.repo_opener = repo_opener
        self.state = LoopState.IDLE

    async def run(self, max_cycles: Optional[int] = None):
        """Wait for notifications and reconcile once per notification."""
        cycles = 0
        while max_cycles is None or cycles < max_cycles:
            notification: ReconcileNotification = await self.notifications.get()
            logger.info(f"Change detected: {notification.describe()}")
            await self.run_cycle()
            cycles += 1

    async def run_cycle(self) -> CycleReport:
        """Reconcile every tracked path, then print the aggregate."""
        self.state = LoopState.RECONCILING
        report = CycleReport()
        try:
            for path in self.paths:
                await self.reconcile_path(path, report)
            self.print_summary()
        finally:
            self.state = LoopState.IDLE

        logger.info(
            f"Cycle complete: {len(report.records)} record(s), "
            f"{len(report.skipped)} skipped, {len(report.sink_failures)} sink failure(s)"
        )
        return report

    def open_repository(self, path: str) -> Repo:
        try:
            return self.repo_opener(path)
        except (InvalidGitRepositoryError, NoSuchPathError, GitCommandError, OSError) as e:
            raise RepoAccessError(path, f"cannot open repository ({type(e).__name__}: {e})", e) from e

    def compute_stats(self, path: str) -> RepoStats:
        repo = self.open_repository(path)
        try:
            return self.reader.compute(repo, self.author, self.clock())
        finally:
            repo.close()

    async def reconcile_path(self, path: str, report: CycleReport):
        repo_name = repo_name_for(path)

        try:
            stats = self.compute_stats(path)
            self.table.update(repo_name, stats)
            change = LocChangeCreate.from_stats(
                repo_name, stats, self.author, timestamp=self.clock()
            )
        except LocTrackerError as e:
            logger.error(f"Skipping {path}: {e}")
            report.skipped[path] = str(e)
            return
        except Exception as e:
            logger.exception(f"Unexpected error scanning {path}")
            report.skipped[path] = str(e)
            return

        report.records.append(change)

        try:
            await self.sink.store_change(change)
        except SinkWriteError as e:
            logger.error(f"Error storing change: {e}")
            report.sink_failures[repo_name] = str(e)

    def print_summary(self):
        """Print committed and in-progress LoC per repository and in total."""
        snapshot = self.table.snapshot()
        for repo_name in sorted(snapshot):
            stats = snapshot[repo_name]
            self.console.print(
                f"{escape(repo_name)}: {stats.committed_loc} LoC committed, "
                f"{stats.pending_loc} LoC In Progress",
                highlight=False,
                soft_wrap=True,
            )

        total_committed, total_pending = self.table.totals()
        self.console.print(
            f"\n[bold]Total:[/bold] {total_committed} LoC committed, "
            f"{total_pending} LoC In Progress\n",
            highlight=False,
            soft_wrap=True,
        )


__all__ = ["ReconcileLoop", "CycleReport", "repo_name_for"]
