"""
LoC Tracker Service.

Wires the persistence sink, the filesystem watcher and the reconciliation
loop together. Setup failures are fatal; everything after setup is
isolated per repository.
"""

import asyncio
import logging
from typing import Optional, Sequence

from rich.console import Console

from config.settings import settings
from shared.database import DatabaseManager, DatabaseService, init_database
from shared.events import ReconcileNotification

from .diff_stats import DiffStatReader
from .reconciler import CycleReport, ReconcileLoop
from .stats_table import RepoStatsTable
from .watcher import ChangeDebouncer, RepositoryWatcher, queue_callback

logger = logging.getLogger(__name__)


class LocTrackerService:
    """Owns the components of one tracking run."""

    def __init__(
        self,
        paths: Sequence[str],
        author: str,
        database_url: Optional[str] = None,
        debounce_seconds: Optional[float] = None,
        pending_mode: Optional[str] = None,
        recursive: Optional[bool] = None,
        console: Optional[Console] = None,
    ):
        self.paths = [str(path) for path in paths]
        self.author = author
        self.debounce_seconds = debounce_seconds or settings.watch.debounce_seconds
        self.recursive = settings.watch.recursive if recursive is None else recursive
        self.reader = DiffStatReader(pending_mode or settings.tracker.pending_mode)
        self.db_manager = DatabaseManager(url=database_url or settings.database.url)
        self.table = RepoStatsTable()
        self.console = console or Console()
        self.sink: Optional[DatabaseService] = None
        self.watcher: Optional[RepositoryWatcher] = None
        self.reconciler: Optional[ReconcileLoop] = None

    async def initialize(self, watch: bool = True):
        """Connect the sink and, when ``watch`` is set, start the watcher.

        Raises:
            FatalSetupError: the sink or the watcher cannot be initialized
        """
        self.sink = await init_database(self.db_manager)

        notifications: asyncio.Queue = asyncio.Queue()
        self.reconciler = ReconcileLoop(
            self.paths,
            self.author,
            self.sink,
            notifications=notifications,
            reader=self.reader,
            table=self.table,
            console=self.console,
        )

        if watch:
            debouncer = ChangeDebouncer(
                self.debounce_seconds,
                queue_callback(notifications, asyncio.get_running_loop()),
            )
            self.watcher = RepositoryWatcher(self.paths, debouncer, recursive=self.recursive)
            self.watcher.start()

        logger.info(
            f"LoC tracker initialized for {len(self.paths)} path(s), author {self.author!r}"
        )

    async def run(self, max_cycles: Optional[int] = None):
        """Run reconciliation cycles as debounced notifications arrive."""
        logger.info(f"Waiting for changes (quiet period {self.debounce_seconds:g}s)")
        await self.reconciler.run(max_cycles=max_cycles)

    async def run_once(self) -> CycleReport:
        """Run a single reconciliation cycle immediately."""
        logger.info(f"Manual reconciliation: {ReconcileNotification.manual().describe()}")
        return await self.reconciler.run_cycle()

    async def close(self):
        """Stop watching and close the sink."""
        if self.watcher is not None:
            self.watcher.stop()
        await self.db_manager.close()
        logger.info("LoC tracker service stopped")


async def track(
    paths: Sequence[str],
    author: str,
    once: bool = False,
    **options,
) -> Optional[CycleReport]:
    """Set up the service, then run one cycle or watch until interrupted."""
    service = LocTrackerService(paths, author, **options)
    try:
        await service.initialize(watch=not once)
        if once:
            return await service.run_once()
        await service.run()
        return None
    finally:
        await service.close()


__all__ = ["LocTrackerService", "track"]
