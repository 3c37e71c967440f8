"""Three-way merge of one branch into the active branch."""

import logging
from dataclasses import dataclass, field
from typing import Mapping

from .branches import BranchRegistry
from .errors import (
    MergeWithSelf,
    NoCommonAncestor,
    NoSuchBranch,
    RepositoryError,
    UncommittedChanges,
)
from .graph import Commit, CommitGraph
from .kv.base import KVStore
from .objects import ObjectStore
from .staging import StagingArea
from .sync import WorkingTreeSync

logger = logging.getLogger(__name__)

CONFLICT_START = b"<<<<<<< HEAD\n"
CONFLICT_SEPARATOR = b"=======\n"
CONFLICT_END = b">>>>>>>"

ANCESTOR_MESSAGE = "Given branch is an ancestor of the current branch."
FAST_FORWARD_MESSAGE = "Current branch fast-forwarded."
CONFLICT_MESSAGE = "Encountered a merge conflict."


@dataclass(frozen=True)
class MergePlan:
    """Per-file outcome of classifying base, current and other snapshots.

    Files in none of the three lists need no action.
    """

    checkout: tuple[str, ...] = ()
    remove: tuple[str, ...] = ()
    conflict: tuple[str, ...] = ()


@dataclass(frozen=True)
class MergeResult:
    """Result of a merge operation."""

    strategy: str  # "ancestor", "fast_forward", "three_way"
    commit: str
    conflicts: tuple[str, ...] = ()
    message: str | None = None
    plan: MergePlan = field(default_factory=MergePlan)

    def __bool__(self) -> bool:
        return self.strategy != "ancestor"


def classify(
    base: Mapping[str, str],
    current: Mapping[str, str],
    other: Mapping[str, str],
) -> MergePlan:
    """Decide what happens to every file named by any of the snapshots.

    Snapshots map names to blob digests, so equal digests mean equal
    content.
    """
    checkout: list[str] = []
    remove: list[str] = []
    conflict: list[str] = []

    for name in sorted(set(base) | set(current) | set(other)):
        s = base.get(name)
        c = current.get(name)
        o = other.get(name)

        if c == o:
            # Same on both sides, including both removed.
            continue
        if s is not None and c is not None and o is not None:
            if c == s:
                checkout.append(name)
            elif o != s:
                conflict.append(name)
        elif s is not None and c is None:
            # o is not None here: changed vs. removed, or untouched vs. removed.
            if o != s:
                conflict.append(name)
        elif s is None and c is None:
            checkout.append(name)
        elif s is None and o is not None:
            conflict.append(name)
        elif s is not None and o is None:
            if c == s:
                remove.append(name)
            else:
                conflict.append(name)

    return MergePlan(tuple(checkout), tuple(remove), tuple(conflict))


def _side(content: bytes | None) -> bytes:
    if not content:
        return b""
    if content.endswith(b"\n"):
        return content
    return content + b"\n"


def conflict_content(current: bytes | None, other: bytes | None) -> bytes:
    """Render both versions of a conflicted file between conflict markers.

    An absent side renders as nothing. A present side gets a newline
    appended only when it does not already end in one, so the markers
    always start a line and a trailing newline is never doubled.
    """
    return (
        CONFLICT_START
        + _side(current)
        + CONFLICT_SEPARATOR
        + _side(other)
        + CONFLICT_END
    )


class MergeEngine:
    """Merges another branch into the active branch.

    All refusals (uncommitted changes, unknown branch, self-merge,
    untracked files in the way) are raised before anything is written.
    A merge with conflicts still produces a merge commit; the conflicted
    files carry both versions between markers.
    """

    def __init__(
        self,
        worktree: KVStore,
        objects: ObjectStore,
        graph: CommitGraph,
        branches: BranchRegistry,
        staging: StagingArea,
        sync: WorkingTreeSync,
    ) -> None:
        self.worktree = worktree
        self.objects = objects
        self.graph = graph
        self.branches = branches
        self.staging = staging
        self.sync = sync

    def _content(self, commit: Commit, name: str) -> bytes | None:
        digest = commit.snapshot.get(name)
        return None if digest is None else self.objects.get(digest)

    def merge(self, name: str) -> MergeResult:
        """Merge branch ``name`` into the active branch.

        Raises:
            UncommittedChanges: If the staging area is not clear.
            NoSuchBranch: If ``name`` does not exist.
            MergeWithSelf: If ``name`` is the active branch.
            UntrackedFileInTheWay: If the other tip would overwrite
                untracked working files.
            NoCommonAncestor: If the two histories are disjoint.
        """
        if not self.staging.is_clear():
            raise UncommittedChanges()
        if not self.branches.exists(name):
            raise NoSuchBranch()
        active = self.branches.active_branch()
        if active.name == name:
            raise MergeWithSelf()

        current = self.graph.get(active.commit)
        other = self.graph.get(self.branches.get(name).commit)
        self.sync.check_untracked(current, other.snapshot)

        base_digest = self.graph.merge_base(current.digest, other.digest)
        if base_digest is None:
            raise NoCommonAncestor()
        if base_digest == other.digest:
            logger.debug("Merge of %s: already an ancestor", name)
            return MergeResult("ancestor", current.digest, message=ANCESTOR_MESSAGE)
        if base_digest == current.digest:
            self.sync.checkout_branch(name)
            logger.debug("Merge of %s: fast-forwarded to %s", name, other.digest)
            return MergeResult(
                "fast_forward", other.digest, message=FAST_FORWARD_MESSAGE
            )

        base = self.graph.get(base_digest)
        plan = classify(base.snapshot, current.snapshot, other.snapshot)
        logger.debug(
            "Merge of %s at base %s: %d checkout, %d remove, %d conflict",
            name,
            base_digest,
            len(plan.checkout),
            len(plan.remove),
            len(plan.conflict),
        )
        missing = [f for f in plan.remove if f not in self.worktree]
        if missing:
            raise RepositoryError(
                f"Files to remove are missing from the working tree: {', '.join(missing)}"
            )

        self._apply(plan, current, other)
        commit = self._finalize(active.name, name, current, other)
        return MergeResult(
            "three_way",
            commit.digest,
            conflicts=plan.conflict,
            message=CONFLICT_MESSAGE if plan.conflict else None,
            plan=plan,
        )

    def _apply(self, plan: MergePlan, current: Commit, other: Commit) -> None:
        for name in plan.checkout:
            content = self.objects.get(other.snapshot[name])
            self.worktree.set(name, content)
            self.staging.stage_addition(name, content)
        for name in plan.remove:
            self.worktree.remove(name)
            self.staging.stage_removal(name)
        for name in plan.conflict:
            content = conflict_content(
                self._content(current, name), self._content(other, name)
            )
            self.worktree.set(name, content)
            self.staging.stage_addition(name, content)

    def _finalize(
        self, current_name: str, other_name: str, current: Commit, other: Commit
    ) -> Commit:
        snapshot = self.staging.compose(current.snapshot, self.objects)
        commit = self.graph.create_commit(
            f"Merged {other_name} into {current_name}.",
            current.digest,
            snapshot,
            second_parent=other.digest,
        )
        self.branches.advance(current_name, commit.digest, expected=current.digest)
        self.staging.clear()
        logger.debug("Merge commit %s", commit.digest)
        return commit
