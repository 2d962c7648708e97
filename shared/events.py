"""
Notifications passed from the filesystem watcher to the reconciliation loop.

The loop treats a notification as an opaque trigger; the fields exist for
logging only.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import FrozenSet


class LoopState(Enum):
    """States of the reconciliation loop."""
    IDLE = "idle"
    RECONCILING = "reconciling"


@dataclass(frozen=True)
class ReconcileNotification:
    """A debounced burst of filesystem events."""

    roots: FrozenSet[str] = field(default_factory=frozenset)
    event_count: int = 0
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def describe(self) -> str:
        roots = ", ".join(sorted(self.roots)) or "<manual>"
        return f"{self.event_count} event(s) under {roots}"

    @classmethod
    def manual(cls) -> "ReconcileNotification":
        """Notification used to trigger a cycle without a filesystem event."""
        return cls()


__all__ = ["LoopState", "ReconcileNotification"]
