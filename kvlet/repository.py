"""Repository: the context object tying every component together."""

import logging
import time
from dataclasses import dataclass
from functools import wraps
from typing import Callable

from .branches import Branch, BranchRegistry
from .constants import DEFAULT_BRANCH, OBJECTS_AREA, REFS_AREA, STAGE_AREA
from .errors import (
    AlreadyInitialized,
    EmptyMessage,
    FileMissing,
    NoMatchingCommit,
    NothingToCommit,
    NotInitialized,
)
from .graph import Commit, CommitGraph
from .kv.base import KVStore
from .kv.prefixed import Prefixed
from .merge import MergeEngine, MergeResult
from .objects import ObjectStore
from .staging import StagingArea
from .sync import WorkingTreeSync

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Status:
    """Everything ``status`` reports, each list sorted."""

    branches: tuple[str, ...]
    active: str
    staged: tuple[str, ...]
    removed: tuple[str, ...]
    modified: tuple[str, ...]
    deleted: tuple[str, ...]
    untracked: tuple[str, ...]


def requires_repo(func: Callable) -> Callable:
    """Decorate a Repository method to fail unless the repository is initialized."""

    @wraps(func)
    def _verify_repo(self: "Repository", *args, **kwargs):
        if not self.initialized:
            raise NotInitialized()
        return func(self, *args, **kwargs)

    return _verify_repo


class Repository:
    """A single local repository.

    The repository owns one metadata store, split into an object area,
    a refs area and a staging area, plus a working-tree store of plain
    files. Every component receives the stores it needs from here;
    nothing is global.

    Args:
        meta: Backend holding objects, refs and the staging area.
        worktree: Backend holding the user's working files.
        default_branch: Name of the branch ``init()`` creates.
        clock: Source of commit timestamps.
    """

    def __init__(
        self,
        meta: KVStore,
        worktree: KVStore,
        *,
        default_branch: str = DEFAULT_BRANCH,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.meta = meta
        self.worktree = worktree
        self.default_branch = default_branch

        self.objects = ObjectStore(Prefixed(meta, OBJECTS_AREA))
        self.graph = CommitGraph(self.objects, clock=clock)
        self.branches = BranchRegistry(Prefixed(meta, REFS_AREA))
        self.staging = StagingArea(Prefixed(meta, STAGE_AREA))
        self.sync = WorkingTreeSync(
            worktree, self.objects, self.graph, self.branches, self.staging
        )
        self.merger = MergeEngine(
            worktree, self.objects, self.graph, self.branches, self.staging, self.sync
        )

    @property
    def initialized(self) -> bool:
        return self.branches.initialized

    def close(self) -> None:
        self.meta.close()
        self.worktree.close()

    def init(self) -> Commit:
        """Create the root commit and the default branch.

        Raises:
            AlreadyInitialized: If the repository already exists.
        """
        if self.initialized:
            raise AlreadyInitialized()
        root = self.graph.create_root()
        self.branches.initialize(self.default_branch, root.digest)
        logger.info("Initialized repository on %s", self.default_branch)
        return root

    # -- Accessors --

    @requires_repo
    def head(self) -> Commit:
        return self.graph.get(self.branches.head())

    @requires_repo
    def active_branch(self) -> Branch:
        return self.branches.active_branch()

    # -- Staging --

    @requires_repo
    def add(self, filename: str) -> bool:
        """Stage the working version of ``filename``.

        Returns:
            True if the staging area changed.

        Raises:
            FileMissing: If the file is not in the working tree.
        """
        if filename not in self.worktree:
            raise FileMissing()
        content = self.worktree.get(filename)
        return self.staging.add(filename, content, self.head(), self.objects)

    @requires_repo
    def rm(self, filename: str) -> None:
        """Unstage ``filename`` and, if HEAD tracks it, stage its removal.

        A tracked file is also deleted from the working tree.

        Raises:
            NothingToRemove: If the file is neither staged nor tracked.
        """
        if self.staging.remove(filename, self.head()):
            self.worktree.remove(filename)

    # -- Commits --

    @requires_repo
    def commit(self, message: str) -> Commit:
        """Commit the staged changes on top of HEAD.

        Raises:
            EmptyMessage: If ``message`` is blank.
            NothingToCommit: If nothing is staged.
        """
        if not message or not message.strip():
            raise EmptyMessage()
        if self.staging.is_clear():
            raise NothingToCommit()
        active = self.branches.active_branch()
        parent = self.graph.get(active.commit)
        snapshot = self.staging.compose(parent.snapshot, self.objects)
        commit = self.graph.create_commit(message, parent.digest, snapshot)
        self.branches.advance(active.name, commit.digest, expected=parent.digest)
        self.staging.clear()
        logger.info("Committed %s on %s", commit.digest, active.name)
        return commit

    @requires_repo
    def log(self) -> list[Commit]:
        """First-parent history from HEAD, newest first."""
        return list(self.graph.history(self.branches.head()))

    @requires_repo
    def global_log(self) -> list[Commit]:
        """Every commit ever made, in no particular order."""
        return [self.graph.get(digest) for digest in self.graph.commits()]

    @requires_repo
    def find(self, message: str) -> list[str]:
        """Digests of commits with exactly this message.

        Raises:
            NoMatchingCommit: If there are none.
        """
        found = self.graph.find(message)
        if not found:
            raise NoMatchingCommit()
        return found

    # -- Branches --

    @requires_repo
    def branch(self, name: str) -> Branch:
        return self.branches.create(name)

    @requires_repo
    def rm_branch(self, name: str) -> None:
        self.branches.remove(name)

    # -- Working tree --

    @requires_repo
    def checkout_branch(self, name: str) -> Commit:
        return self.sync.checkout_branch(name)

    @requires_repo
    def checkout_file(self, filename: str, commit_id: str | None = None) -> Commit:
        return self.sync.checkout_file(filename, commit_id)

    @requires_repo
    def reset(self, commit_id: str) -> Commit:
        return self.sync.reset(commit_id)

    @requires_repo
    def merge(self, name: str) -> MergeResult:
        return self.merger.merge(name)

    # -- Status --

    @requires_repo
    def status(self) -> Status:
        head = self.head()
        additions = self.staging.additions()
        removals = self.staging.removals()
        working = set(self.worktree.keys())

        modified: list[str] = []
        deleted: list[str] = []
        for name in sorted(set(head.snapshot) | set(additions)):
            on_disk = self.worktree.get(name) if name in working else None
            if name in additions:
                expected = additions[name]
            elif name in removals:
                continue
            else:
                expected = self.objects.get(head.snapshot[name])
            if on_disk is None:
                deleted.append(name)
            elif on_disk != expected:
                modified.append(name)

        untracked = sorted(
            name for name in working if name not in head.snapshot and name not in additions
        )
        return Status(
            branches=tuple(self.branches.names()),
            active=self.branches.active_name(),
            staged=tuple(sorted(additions)),
            removed=tuple(sorted(removals)),
            modified=tuple(modified),
            deleted=tuple(deleted),
            untracked=tuple(untracked),
        )
