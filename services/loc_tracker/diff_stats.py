"""
Pending and same-day committed line counts for a single repository.
"""

import logging
from datetime import datetime
from typing import Optional, Tuple, List

from git import Repo
from git.exc import GitCommandError

from shared.errors import DiffComputeError, RepoAccessError
from shared.models import RepoStats

logger = logging.getLogger(__name__)


def parse_numstat(output: str) -> Tuple[int, int]:
    """Sum the insertion and deletion columns of ``git diff --numstat`` output.

    Binary files are reported as ``-`` and count as zero.
    """
    additions = 0
    deletions = 0
    for line in output.splitlines():
        parts = line.split("\t", 2)
        if len(parts) < 3:
            continue
        added, deleted = parts[0], parts[1]
        if added != "-":
            additions += int(added)
        if deleted != "-":
            deletions += int(deleted)
    return additions, deletions


def is_same_local_day(timestamp: int, today) -> bool:
    """Check whether an epoch timestamp falls on ``today`` in local time."""
    return datetime.fromtimestamp(timestamp).date() == today


class DiffStatReader:
    """Computes RepoStats for one repository and one author.

    ``pending_mode`` controls how the working-tree diff is totalled:
    ``per_path`` adds the whole-repository diff once for every non-current
    status entry, ``once`` adds it a single time when any entry is
    non-current.
    """

    def __init__(self, pending_mode: str = "per_path"):
        if pending_mode not in ("per_path", "once"):
            raise ValueError(f"Unknown pending mode: {pending_mode}")
        self.pending_mode = pending_mode

    def compute(self, repo: Repo, author: str, now: Optional[datetime] = None) -> RepoStats:
        """Compute pending and committed counts, raising RepoAccessError."""
        now = now or datetime.now()
        today = now.astimezone().date()

        pending_additions, pending_deletions = self.pending_changes(repo)
        committed_additions, committed_deletions = self.committed_changes(repo, author, today)

        return RepoStats(
            committed_additions=committed_additions,
            committed_deletions=committed_deletions,
            pending_additions=pending_additions,
            pending_deletions=pending_deletions,
        )

    def status_entries(self, repo: Repo) -> List[str]:
        """List the non-current status entries, untracked files included.

        Renames are reported as a deletion plus an addition.
        """
        try:
            output = repo.git(no_optional_locks=True).status(
                porcelain=True, untracked_files="normal", no_renames=True
            )
        except GitCommandError as e:
            raise RepoAccessError(str(repo.working_dir), f"cannot read status: {e}", e) from e
        return [line for line in output.splitlines() if line.strip()]

    def working_tree_diff(self, repo: Repo) -> Tuple[int, int]:
        """Whole-repository working tree vs. index insertions and deletions."""
        try:
            return parse_numstat(repo.git.diff(numstat=True))
        except (GitCommandError, ValueError) as e:
            raise DiffComputeError("working tree diff", str(e), e) from e

    def pending_changes(self, repo: Repo) -> Tuple[int, int]:
        entries = self.status_entries(repo)
        if not entries:
            return 0, 0

        repeats = len(entries) if self.pending_mode == "per_path" else 1
        additions = 0
        deletions = 0
        for _ in range(repeats):
            try:
                adds, dels = self.working_tree_diff(repo)
            except DiffComputeError as e:
                logger.warning(f"Skipping pending diff for {repo.working_dir}: {e}")
                continue
            additions += adds
            deletions += dels
        return additions, deletions

    def commit_diff(self, commit) -> Tuple[int, int]:
        """First parent tree to commit tree insertions and deletions."""
        try:
            totals = commit.stats.total
        except (GitCommandError, ValueError) as e:
            raise DiffComputeError(f"commit {commit.hexsha[:8]}", str(e), e) from e
        return totals.get("insertions", 0), totals.get("deletions", 0)

    def committed_changes(self, repo: Repo, author: str, today) -> Tuple[int, int]:
        """Sum first-parent diffs of today's commits by ``author``.

        The walk starts at HEAD and stops at the first commit whose author
        date is not today.
        """
        path = str(repo.working_dir)
        if not repo.head.is_valid():
            raise RepoAccessError(path, "HEAD does not point to a commit")

        additions = 0
        deletions = 0
        try:
            for commit in repo.iter_commits("HEAD", topo_order=True):
                if not is_same_local_day(commit.authored_date, today):
                    break

                if commit.author.name != author:
                    continue

                # Root commits have no first parent to diff against
                if not commit.parents:
                    continue

                try:
                    adds, dels = self.commit_diff(commit)
                except DiffComputeError as e:
                    logger.warning(f"Skipping commit diff in {path}: {e}")
                    continue

                additions += adds
                deletions += dels
        except (GitCommandError, ValueError) as e:
            raise RepoAccessError(path, f"cannot walk history: {e}", e) from e

        return additions, deletions


__all__ = ["DiffStatReader", "parse_numstat", "is_same_local_day"]
