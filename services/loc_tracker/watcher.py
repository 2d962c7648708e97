"""
Filesystem watching and debouncing for tracked repositories.

Watchdog delivers events on its observer thread. Each event re-arms a
quiet-period timer; when the timer expires without further events a single
ReconcileNotification is handed to the reconciliation loop.
"""

import asyncio
import logging
import threading
from pathlib import Path
from typing import Callable, Dict, Optional, Sequence

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from shared.errors import FatalSetupError
from shared.events import ReconcileNotification

logger = logging.getLogger(__name__)

# Read-only access, including our own git invocations, must not retrigger a cycle
IGNORED_EVENT_TYPES = frozenset({"opened", "closed_no_write"})


class ChangeDebouncer:
    """Coalesces bursts of events into one notification after a quiet period."""

    def __init__(
        self,
        quiet_period: float,
        callback: Callable[[ReconcileNotification], None],
        timer_factory=threading.Timer,
    ):
        self.quiet_period = quiet_period
        self.callback = callback
        self.timer_factory = timer_factory
        self._lock = threading.Lock()
        self._timer = None
        self._generation = 0
        self._roots = set()
        self._count = 0

    @property
    def pending(self) -> bool:
        with self._lock:
            return self._timer is not None

    def touch(self, root: str):
        """Record an event under ``root`` and restart the quiet period."""
        with self._lock:
            self._roots.add(root)
            self._count += 1
            if self._timer is not None:
                self._timer.cancel()
            self._generation += 1
            self._timer = self.timer_factory(self.quiet_period, self._fire, args=(self._generation,))
            self._timer.daemon = True
            self._timer.start()

    def _fire(self, generation: int):
        with self._lock:
            # A newer event re-armed the timer after this one expired
            if generation != self._generation or self._timer is None:
                return
            notification = ReconcileNotification(
                roots=frozenset(self._roots), event_count=self._count
            )
            self._roots = set()
            self._count = 0
            self._timer = None

        logger.debug(f"Debounced {notification.describe()}")
        self.callback(notification)

    def cancel(self):
        """Drop any pending notification."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._timer = None
            self._generation += 1
            self._roots = set()
            self._count = 0


def queue_callback(
    queue: asyncio.Queue, loop: asyncio.AbstractEventLoop
) -> Callable[[ReconcileNotification], None]:
    """Build a debouncer callback that hands notifications to ``queue`` on ``loop``."""

    def deliver(notification: ReconcileNotification):
        loop.call_soon_threadsafe(queue.put_nowait, notification)

    return deliver


class RepositoryEventHandler(FileSystemEventHandler):
    """Forwards every relevant event under one tracked root to the debouncer."""

    def __init__(self, root: str, debouncer: ChangeDebouncer):
        super().__init__()
        self.root = root
        self.debouncer = debouncer

    def on_any_event(self, event: FileSystemEvent):
        if event.event_type in IGNORED_EVENT_TYPES:
            return
        self.debouncer.touch(self.root)


class RepositoryWatcher:
    """Watches every tracked path for filesystem changes."""

    def __init__(
        self,
        paths: Sequence[str],
        debouncer: ChangeDebouncer,
        recursive: bool = True,
        observer_factory=Observer,
    ):
        self.paths = [str(path) for path in paths]
        self.debouncer = debouncer
        self.recursive = recursive
        self.observer_factory = observer_factory
        self.observer = None
        self.handlers: Dict[str, RepositoryEventHandler] = {}
        self.is_watching = False

    def start(self):
        """Schedule a watch per path and start the observer.

        Raises:
            FatalSetupError: a path cannot be watched or the observer fails to start
        """
        if self.is_watching:
            return

        self.observer = self.observer_factory()
        try:
            for path in self.paths:
                if not Path(path).is_dir():
                    raise FatalSetupError(f"Cannot watch {path}: not a directory")
                handler = RepositoryEventHandler(path, self.debouncer)
                self.observer.schedule(handler, path, recursive=self.recursive)
                self.handlers[path] = handler
            self.observer.start()
        except OSError as e:
            raise FatalSetupError(f"Cannot start filesystem watcher: {e}") from e

        self.is_watching = True
        logger.info(f"Watching {len(self.handlers)} path(s)")

    def stop(self):
        """Stop the observer and drop any pending notification."""
        self.debouncer.cancel()
        if self.is_watching and self.observer is not None:
            self.observer.stop()
            self.observer.join()
        self.is_watching = False

    def get_watch_count(self) -> int:
        return len(self.handlers)


__all__ = [
    "ChangeDebouncer",
    "RepositoryEventHandler",
    "RepositoryWatcher",
    "queue_callback",
    "IGNORED_EVENT_TYPES",
]
