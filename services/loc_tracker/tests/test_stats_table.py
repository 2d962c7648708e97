"""
Unit tests for the in-memory RepoStats table.
"""

import threading

from services.loc_tracker.stats_table import RepoStatsTable
from shared.models import RepoStats


def stats(ca=0, cd=0, pa=0, pd=0) -> RepoStats:
    return RepoStats(
        committed_additions=ca,
        committed_deletions=cd,
        pending_additions=pa,
        pending_deletions=pd,
    )


class TestRepoStatsTable:
    """Test cases for RepoStatsTable."""

    def test_update_replaces_entry(self):
        table = RepoStatsTable()
        table.update("api", stats(ca=10, pa=4))
        table.update("api", stats(ca=1))

        assert table.get("api") == stats(ca=1)
        assert len(table) == 1

    def test_snapshot_is_a_copy(self):
        table = RepoStatsTable()
        table.update("api", stats(ca=1))

        snapshot = table.snapshot()
        table.update("web", stats(pa=2))

        assert set(snapshot) == {"api"}
        assert "web" in table

    def test_totals(self):
        table = RepoStatsTable()
        table.update("api", stats(ca=5, cd=1, pa=20, pd=4))
        table.update("web", stats(ca=2, pd=3))

        assert table.totals() == (8, 27)

    def test_empty_table(self):
        table = RepoStatsTable()
        assert table.totals() == (0, 0)
        assert table.get("missing") is None
        assert "missing" not in table

    def test_concurrent_writers_with_distinct_keys(self):
        table = RepoStatsTable()

        def writer(index: int):
            for value in range(200):
                table.update(f"repo-{index}", stats(ca=value))

        threads = [threading.Thread(target=writer, args=(i,)) for i in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        snapshot = table.snapshot()
        assert len(snapshot) == 8
        assert all(entry.committed_additions == 199 for entry in snapshot.values())
