"""Working-tree reconciliation: checkout and reset."""

import logging
from typing import Mapping

from .branches import BranchRegistry
from .errors import (
    AlreadyOnBranch,
    FileNotInCommit,
    NoSuchBranch,
    UntrackedFileInTheWay,
)
from .graph import Commit, CommitGraph
from .kv.base import KVStore
from .objects import ObjectStore
from .staging import StagingArea

logger = logging.getLogger(__name__)


class WorkingTreeSync:
    """Moves the working tree between commits without losing untracked work.

    Every operation checks all of its preconditions before the first
    write, so a refused checkout or reset leaves the working tree, the
    branches and the staging area exactly as they were.
    """

    def __init__(
        self,
        worktree: KVStore,
        objects: ObjectStore,
        graph: CommitGraph,
        branches: BranchRegistry,
        staging: StagingArea,
    ) -> None:
        self.worktree = worktree
        self.objects = objects
        self.graph = graph
        self.branches = branches
        self.staging = staging

    def untracked_in_the_way(self, current: Commit, target: Mapping[str, str]) -> set[str]:
        """Working files untracked by ``current`` that ``target`` would overwrite."""
        return {
            name
            for name in self.worktree.keys()
            if name in target and name not in current.snapshot
        }

    def check_untracked(self, current: Commit, target: Mapping[str, str]) -> None:
        """Raise UntrackedFileInTheWay if writing ``target`` would clobber work."""
        in_the_way = self.untracked_in_the_way(current, target)
        if in_the_way:
            raise UntrackedFileInTheWay(in_the_way)

    def _materialize(self, current: Commit, target: Commit) -> None:
        """Make the working tree match ``target``'s snapshot.

        Files tracked by ``current`` but not by ``target`` are deleted
        (already-deleted ones are skipped).
        """
        doomed = [name for name in current.snapshot if name not in target.snapshot]
        contents = {name: self.objects.get(digest) for name, digest in target.snapshot.items()}
        if contents:
            self.worktree.set_many(**contents)
        if doomed:
            self.worktree.remove_many(*doomed)
        logger.debug(
            "Working tree at %s: wrote %d files, deleted %d",
            target.digest,
            len(contents),
            len(doomed),
        )

    def checkout_branch(self, name: str) -> Commit:
        """Switch to branch ``name`` and load its tip into the working tree.

        Raises:
            NoSuchBranch: If the branch does not exist.
            AlreadyOnBranch: If ``name`` is already active.
            UntrackedFileInTheWay: If an untracked file would be overwritten.
        """
        if not self.branches.exists(name):
            raise NoSuchBranch("No such branch exists.")
        active = self.branches.active_branch()
        if active.name == name:
            raise AlreadyOnBranch()
        current = self.graph.get(active.commit)
        target = self.graph.get(self.branches.get(name).commit)
        self.check_untracked(current, target.snapshot)

        self._materialize(current, target)
        self.branches.set_active(name)
        self.staging.clear()
        logger.debug("Checked out branch %s", name)
        return target

    def checkout_file(self, filename: str, commit_id: str | None = None) -> Commit:
        """Restore one file from a commit (default HEAD); staging is untouched.

        Raises:
            NoSuchCommit: If ``commit_id`` matches no commit.
            AmbiguousCommitId: If ``commit_id`` is an ambiguous prefix.
            FileNotInCommit: If the commit does not track ``filename``.
        """
        digest = self.branches.head() if commit_id is None else self.graph.resolve(commit_id)
        commit = self.graph.get(digest)
        blob = commit.snapshot.get(filename)
        if blob is None:
            raise FileNotInCommit()
        self.worktree.set(filename, self.objects.get(blob))
        logger.debug("Checked out %s from %s", filename, digest)
        return commit

    def reset(self, commit_id: str) -> Commit:
        """Point the active branch at ``commit_id`` and load it.

        Unlike ``checkout_branch`` the active branch keeps its identity;
        only its pointer moves.

        Raises:
            NoSuchCommit: If ``commit_id`` matches no commit.
            AmbiguousCommitId: If ``commit_id`` is an ambiguous prefix.
            UntrackedFileInTheWay: If an untracked file would be overwritten.
        """
        target = self.graph.get(self.graph.resolve(commit_id))
        active = self.branches.active_branch()
        current = self.graph.get(active.commit)
        self.check_untracked(current, target.snapshot)

        self._materialize(current, target)
        self.branches.advance(active.name, target.digest, expected=active.commit)
        self.staging.clear()
        logger.debug("Reset %s to %s", active.name, target.digest)
        return target
