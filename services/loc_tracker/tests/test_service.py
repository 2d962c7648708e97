"""
Tests for LoC Tracker Service wiring and the command line entry point.
"""

import asyncio

import pytest
from click.testing import CliRunner

from conftest import console_output
from services.loc_tracker.main import LocTrackerService, track
from shared.errors import FatalSetupError
from shared.events import ReconcileNotification


def database_url(tmp_path) -> str:
    return f"sqlite:///{tmp_path / 'loc_stats.db'}"


class TestLocTrackerService:
    """Test cases for LocTrackerService."""

    @pytest.mark.asyncio
    async def test_run_once_persists_records(self, scenario_repo, quiet_repo, tmp_path, console):
        service = LocTrackerService(
            [scenario_repo.path, quiet_repo.path],
            "Jane Doe",
            database_url=database_url(tmp_path),
            console=console,
        )
        try:
            await service.initialize(watch=False)
            report = await service.run_once()

            assert len(report.records) == 2
            assert await service.sink.changes.count() == 2
            stored = await service.sink.changes.get_by_repository("beta")
            assert (stored[0].additions, stored[0].deletions) == (0, 0)
            assert stored[0].is_committed is False
        finally:
            await service.close()

        assert "Total:" in console_output(console)

    @pytest.mark.asyncio
    async def test_once_pending_mode(self, scenario_repo, tmp_path, console):
        report = await track(
            [scenario_repo.path],
            "Jane Doe",
            once=True,
            database_url=database_url(tmp_path),
            pending_mode="once",
            console=console,
        )

        change = report.records[0]
        # committed +5/-1, working tree +10/-2 counted a single time
        assert (change.additions, change.deletions) == (15, 3)

    @pytest.mark.asyncio
    async def test_notification_drives_cycle(self, quiet_repo, tmp_path, console):
        service = LocTrackerService(
            [quiet_repo.path], "Jane Doe", database_url=database_url(tmp_path), console=console
        )
        try:
            await service.initialize(watch=False)
            service.reconciler.notifications.put_nowait(ReconcileNotification.manual())
            await asyncio.wait_for(service.run(max_cycles=1), timeout=30)

            assert await service.sink.changes.count() == 1
        finally:
            await service.close()

    @pytest.mark.asyncio
    async def test_watch_starts_observer(self, quiet_repo, tmp_path, console):
        service = LocTrackerService(
            [quiet_repo.path], "Jane Doe", database_url=database_url(tmp_path), console=console
        )
        try:
            await service.initialize(watch=True)
            assert service.watcher.is_watching
            assert service.watcher.get_watch_count() == 1
        finally:
            await service.close()

        assert not service.watcher.is_watching

    @pytest.mark.asyncio
    async def test_unwatchable_path_is_fatal(self, tmp_path, console):
        service = LocTrackerService(
            [tmp_path / "missing"], "Jane Doe", database_url=database_url(tmp_path), console=console
        )
        try:
            with pytest.raises(FatalSetupError):
                await service.initialize(watch=True)
        finally:
            await service.close()

    @pytest.mark.asyncio
    async def test_unreachable_database_is_fatal(self, quiet_repo, tmp_path, console):
        with pytest.raises(FatalSetupError):
            await track(
                [quiet_repo.path],
                "Jane Doe",
                once=True,
                database_url=f"sqlite:///{tmp_path / 'no-such-dir' / 'loc.db'}",
                console=console,
            )


class TestCommandLine:
    """Test cases for the track_loc command."""

    def test_once(self, scenario_repo, tmp_path):
        from track_loc import track_loc

        result = CliRunner().invoke(
            track_loc,
            [str(scenario_repo.path), "--author", "Jane Doe", "--once",
             "--database-url", database_url(tmp_path)],
        )

        assert result.exit_code == 0, result.output
        assert "LoC In Progress" in result.output
        assert "Total:" in result.output

    def test_author_is_required(self, quiet_repo):
        from track_loc import track_loc

        result = CliRunner().invoke(track_loc, [str(quiet_repo.path)])

        assert result.exit_code == 2
        assert "--author" in result.output

    def test_paths_are_required(self):
        from track_loc import track_loc

        result = CliRunner().invoke(track_loc, ["-a", "Jane Doe"])

        assert result.exit_code == 2

    def test_setup_failure_exits_non_zero(self, tmp_path):
        from track_loc import track_loc

        result = CliRunner().invoke(
            track_loc,
            [str(tmp_path / "missing"), "-a", "Jane Doe",
             "--database-url", database_url(tmp_path)],
        )

        assert result.exit_code == 1
        assert "Error" in result.output
