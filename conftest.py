"""
Shared pytest fixtures for the Git LoC tracker.

Builds throwaway Git repositories with GitPython so diff statistics are
computed against real history and real working trees.
"""

import io
from datetime import datetime, timedelta
from pathlib import Path
from typing import Iterable, List, Optional

import pytest
from git import Actor, Repo
from rich.console import Console

JANE = Actor("Jane Doe", "jane@example.com")
JOHN = Actor("John Roe", "john@example.com")


def git_date(when: datetime) -> str:
    """Format a datetime in Git's raw ``<epoch> <offset>`` form."""
    return f"{int(when.timestamp())} +0000"


class RepoBuilder:
    """Small helper for building repositories in tests."""

    def __init__(self, path: Path):
        self.path = Path(path)
        self.path.mkdir(parents=True, exist_ok=True)
        self.repo = Repo.init(self.path)

    def write(self, name: str, lines: Iterable[str]) -> str:
        target = self.path / name
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text("".join(f"{line}\n" for line in lines))
        return name

    def commit(
        self,
        message: str,
        when: datetime,
        files: List[str],
        author: Actor = JANE,
    ):
        self.repo.index.add(files)
        return self.repo.index.commit(
            message,
            author=author,
            committer=author,
            author_date=git_date(when),
            commit_date=git_date(when),
        )


@pytest.fixture
def now() -> datetime:
    """Noon today in local time, away from day boundaries."""
    return datetime.now().astimezone().replace(hour=12, minute=0, second=0, microsecond=0)


@pytest.fixture
def yesterday(now) -> datetime:
    return now - timedelta(days=1)


@pytest.fixture
def make_repo(tmp_path):
    """Factory creating an empty repository under ``tmp_path``."""

    def factory(name: str) -> RepoBuilder:
        return RepoBuilder(tmp_path / name)

    return factory


@pytest.fixture
def scenario_repo(make_repo, now) -> RepoBuilder:
    """Repository matching the documented end-to-end scenario.

    Root commit today by Jane, then one commit today by Jane adding 5 and
    deleting 1 line. The working tree holds two modified files whose combined
    diff is +10/-2.
    """
    builder = make_repo("alpha")
    files = [
        builder.write("a.txt", ["a1", "a2", "a3"]),
        builder.write("b.txt", ["b1", "b2", "b3"]),
        builder.write("c.txt", ["c1", "c2"]),
    ]
    builder.commit("initial", now - timedelta(minutes=30), files)

    builder.write("c.txt", ["c1", "C2", "z1", "z2", "z3", "z4"])
    builder.commit("extend c", now - timedelta(minutes=10), ["c.txt"])

    # +6/-1 and +4/-1 against the index
    builder.write("a.txt", ["A1", "a2", "a3", "x1", "x2", "x3", "x4", "x5"])
    builder.write("b.txt", ["B1", "b2", "b3", "y1", "y2", "y3"])
    return builder


@pytest.fixture
def quiet_repo(make_repo, yesterday) -> RepoBuilder:
    """Clean repository whose only commit is from yesterday."""
    builder = make_repo("beta")
    builder.commit("initial", yesterday, [builder.write("readme.md", ["hello"])])
    return builder


@pytest.fixture
def console() -> Console:
    """Console writing plain text into a buffer."""
    return Console(file=io.StringIO(), width=200, color_system=None)


def console_output(console: Console) -> str:
    return console.file.getvalue()


class RecordingSink:
    """In-memory sink recording every stored change."""

    def __init__(self, fail_for: Optional[set] = None):
        self.changes = []
        self.fail_for = fail_for or set()

    async def store_change(self, change):
        from shared.errors import SinkWriteError

        if change.repo_name in self.fail_for:
            raise SinkWriteError(change.repo_name, "disk I/O error")
        self.changes.append(change)
        return change


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()
