"""Staging area: the pending delta the next commit will apply."""

import logging
from typing import Mapping

from .errors import NothingToRemove
from .graph import Commit
from .kv.base import KVStore
from .objects import ObjectStore

logger = logging.getLogger(__name__)

STAGED_ADD = "add/%s"
STAGED_REMOVE = "rm/%s"


class StagingArea:
    """Pending additions (name -> content) and removals (names).

    Staged content stays raw bytes until ``compose()`` turns it into
    blobs at commit time; unstaging a file therefore never leaves an
    object behind. A name is never in both sets at once.
    """

    def __init__(self, store: KVStore) -> None:
        self.store = store

    # -- Reads --

    def additions(self) -> dict[str, bytes]:
        prefix = STAGED_ADD % ""
        result: dict[str, bytes] = {}
        for key in self.store.keys(prefix):
            value = self.store.get(key)
            if value is not None:
                result[key[len(prefix):]] = value
        return result

    def removals(self) -> set[str]:
        prefix = STAGED_REMOVE % ""
        return {key[len(prefix):] for key in self.store.keys(prefix)}

    def staged_content(self, filename: str) -> bytes | None:
        return self.store.get(STAGED_ADD % filename)

    def is_staged_for_addition(self, filename: str) -> bool:
        return STAGED_ADD % filename in self.store

    def is_staged_for_removal(self, filename: str) -> bool:
        return STAGED_REMOVE % filename in self.store

    def is_clear(self) -> bool:
        return not any(True for _ in self.store.keys())

    # -- Low-level writes --

    def stage_addition(self, filename: str, content: bytes) -> None:
        self.store.remove(STAGED_REMOVE % filename)
        self.store.set(STAGED_ADD % filename, content)

    def stage_removal(self, filename: str) -> None:
        self.store.remove(STAGED_ADD % filename)
        self.store.set(STAGED_REMOVE % filename, b"")

    def unstage(self, filename: str) -> None:
        self.store.remove_many(STAGED_ADD % filename, STAGED_REMOVE % filename)

    def clear(self) -> None:
        self.store.clear()

    # -- Commands --

    def add(self, filename: str, content: bytes, head: Commit, objects: ObjectStore) -> bool:
        """Stage ``content`` as the next version of ``filename``.

        Args:
            content: The file's current working-tree bytes.
            head: The HEAD commit, whose snapshot decides what is a change.
            objects: Where HEAD's blobs are read from.

        Returns:
            True if the staging area changed.
        """
        tracked = head.snapshot.get(filename)
        matches_head = tracked is not None and objects.get(tracked) == content

        if self.is_staged_for_removal(filename) and matches_head:
            self.store.remove(STAGED_REMOVE % filename)
            logger.debug("Cancelled pending removal of %s", filename)
            return True
        if matches_head:
            if self.is_staged_for_addition(filename):
                self.store.remove(STAGED_ADD % filename)
                logger.debug("Dropped stale staged addition of %s", filename)
                return True
            return False
        if self.staged_content(filename) == content:
            return False
        self.stage_addition(filename, content)
        logger.debug("Staged %s (%d bytes)", filename, len(content))
        return True

    def remove(self, filename: str, head: Commit) -> bool:
        """Unstage and/or stage ``filename`` for removal.

        Returns:
            True if HEAD tracks the file, meaning the caller must delete
            it from the working tree.

        Raises:
            NothingToRemove: If the file is neither staged nor tracked.
        """
        was_staged = self.is_staged_for_addition(filename)
        if was_staged:
            self.store.remove(STAGED_ADD % filename)
        if filename in head.snapshot:
            self.stage_removal(filename)
            logger.debug("Staged removal of %s", filename)
            return True
        if not was_staged:
            raise NothingToRemove()
        logger.debug("Unstaged %s", filename)
        return False

    def compose(self, parent: Mapping[str, str], objects: ObjectStore) -> dict[str, str]:
        """Build the next snapshot: ``parent`` minus removals plus additions.

        Staged additions are written to ``objects`` here, before any
        commit or pointer refers to them.
        """
        additions = self.additions()
        removals = self.removals()
        snapshot = {
            name: digest for name, digest in parent.items() if name not in removals
        }
        names = sorted(additions)
        digests = objects.put_many(additions[name] for name in names)
        snapshot.update(zip(names, digests))
        return snapshot
