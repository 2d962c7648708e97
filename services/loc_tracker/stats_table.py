"""
In-memory table of the latest RepoStats per repository.
"""

import threading
from typing import Dict, Optional, Tuple

from shared.models import RepoStats


class RepoStatsTable:
    """Maps repository name to its latest RepoStats snapshot.

    Entries are replaced, never merged, and never evicted: a repository that
    fails in a later cycle keeps its last successful snapshot.
    """

    def __init__(self):
        self._entries: Dict[str, RepoStats] = {}
        self._lock = threading.Lock()

    def update(self, repo_name: str, stats: RepoStats) -> None:
        """Replace the entry for ``repo_name`` unconditionally."""
        with self._lock:
            self._entries[repo_name] = stats

    def snapshot(self) -> Dict[str, RepoStats]:
        """Return a consistent copy of the current entries."""
        with self._lock:
            return dict(self._entries)

    def get(self, repo_name: str) -> Optional[RepoStats]:
        with self._lock:
            return self._entries.get(repo_name)

    def totals(self) -> Tuple[int, int]:
        """Grand totals as (committed LoC, pending LoC) across all entries."""
        snapshot = self.snapshot()
        committed = sum(stats.committed_loc for stats in snapshot.values())
        pending = sum(stats.pending_loc for stats in snapshot.values())
        return committed, pending

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, repo_name: str) -> bool:
        with self._lock:
            return repo_name in self._entries
