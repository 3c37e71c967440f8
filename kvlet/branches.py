"""Branch registry: named commit pointers and the active branch."""

import logging
import pickle
from dataclasses import dataclass

from .errors import (
    BlankBranchName,
    BranchExists,
    ConcurrencyError,
    NoSuchBranch,
    NotInitialized,
    RemoveActiveBranch,
    RepositoryError,
)
from .kv.base import KVStore

logger = logging.getLogger(__name__)

BRANCH_HEAD = "heads/%s"
ACTIVE_BRANCH = "ACTIVE"
HEAD = "HEAD"


@dataclass(frozen=True)
class Branch:
    """A named pointer to a commit."""

    name: str
    commit: str
    active: bool = False


class BranchRegistry:
    """Branch pointers, the active branch, and HEAD.

    Pointers are stored pickled under ``heads/<name>``; the active
    branch name under ``ACTIVE`` and the HEAD digest under ``HEAD``.
    HEAD always mirrors the active branch's pointer.
    """

    def __init__(self, store: KVStore) -> None:
        self.store = store

    # -- Reads --

    def _pointer(self, name: str) -> bytes | None:
        return self.store.get(BRANCH_HEAD % name)

    def exists(self, name: str) -> bool:
        return BRANCH_HEAD % name in self.store

    def names(self) -> list[str]:
        """All branch names, sorted."""
        prefix = BRANCH_HEAD % ""
        return sorted(key[len(prefix):] for key in self.store.keys(prefix))

    def active_name(self) -> str:
        raw = self.store.get(ACTIVE_BRANCH)
        if raw is None:
            raise NotInitialized()
        return pickle.loads(raw)

    def get(self, name: str) -> Branch:
        """Look up a branch by name.

        Raises:
            NoSuchBranch: If the branch does not exist.
        """
        raw = self._pointer(name)
        if raw is None:
            raise NoSuchBranch()
        return Branch(name, pickle.loads(raw), name == self.active_name())

    def active_branch(self) -> Branch:
        name = self.active_name()
        raw = self._pointer(name)
        if raw is None:
            raise RepositoryError(f"Active branch {name!r} has no pointer")
        return Branch(name, pickle.loads(raw), True)

    def head(self) -> str:
        """The commit digest HEAD resolves to."""
        raw = self.store.get(HEAD)
        if raw is None:
            raise NotInitialized()
        return pickle.loads(raw)

    @property
    def initialized(self) -> bool:
        return ACTIVE_BRANCH in self.store

    # -- Writes --

    def initialize(self, name: str, root: str) -> Branch:
        """Create the single initial branch, active and pointing at ``root``."""
        if not name or not name.strip():
            raise BlankBranchName()
        self.store.set_many(
            **{
                BRANCH_HEAD % name: pickle.dumps(root),
                ACTIVE_BRANCH: pickle.dumps(name),
                HEAD: pickle.dumps(root),
            }
        )
        logger.debug("Initialized branch %s at %s", name, root)
        return Branch(name, root, True)

    def create(self, name: str) -> Branch:
        """Create an inactive branch pointing at HEAD.

        Raises:
            BlankBranchName: If ``name`` is blank.
            BranchExists: If a branch with that name already exists.
        """
        if not name or not name.strip():
            raise BlankBranchName()
        head = self.head()
        if not self.store.cas(BRANCH_HEAD % name, pickle.dumps(head), expected=None):
            raise BranchExists()
        logger.debug("Created branch %s at %s", name, head)
        return Branch(name, head, False)

    def remove(self, name: str) -> None:
        """Delete a branch pointer (its commits are kept).

        Raises:
            NoSuchBranch: If the branch does not exist.
            RemoveActiveBranch: If it is the active branch.
        """
        if not self.exists(name):
            raise NoSuchBranch()
        if name == self.active_name():
            raise RemoveActiveBranch()
        self.store.remove(BRANCH_HEAD % name)
        logger.debug("Removed branch %s", name)

    def set_active(self, name: str) -> Branch:
        """Make ``name`` the active branch; HEAD follows its pointer."""
        branch = self.get(name)
        self.store.set_many(
            **{ACTIVE_BRANCH: pickle.dumps(name), HEAD: pickle.dumps(branch.commit)}
        )
        logger.debug("Active branch is now %s at %s", name, branch.commit)
        return Branch(name, branch.commit, True)

    def advance(
        self, name: str, commit: str, *, expected: str | None = None
    ) -> Branch:
        """Move the active branch (and HEAD) to ``commit``.

        Args:
            expected: The pointer value the caller's work was based on
                (default: the value read now).

        Raises:
            RepositoryError: If ``name`` is not the active branch.
            ConcurrencyError: If the pointer no longer equals ``expected``.
        """
        active = self.active_branch()
        if active.name != name:
            raise RepositoryError(f"Cannot advance inactive branch {name!r}")
        previous = active.commit if expected is None else expected
        if not self.store.cas(
            BRANCH_HEAD % name, pickle.dumps(commit), expected=pickle.dumps(previous)
        ):
            raise ConcurrencyError(
                f"Branch {name!r} moved from {previous}. Rerun the command."
            )
        self.store.set(HEAD, pickle.dumps(commit))
        logger.debug("Advanced %s: %s -> %s", name, previous, commit)
        return Branch(name, commit, True)
