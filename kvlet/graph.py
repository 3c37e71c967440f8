"""Commit graph: immutable commit nodes and traversal over them."""

import json
import logging
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Callable, Iterable, Mapping

from .constants import COMMIT, INITIAL_MESSAGE, INITIAL_TIMESTAMP
from .errors import AmbiguousCommitId, EmptyMessage, NoSuchCommit
from .objects import ObjectStore, object_digest

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Commit:
    """An immutable snapshot of every tracked file plus its lineage.

    ``snapshot`` maps file names to blob digests. ``digest`` is derived
    from the other fields by ``encode()`` and is filled in by
    ``CommitGraph``; two commits with equal fields have equal digests.
    """

    message: str
    timestamp: float
    parents: tuple[str, ...]
    snapshot: Mapping[str, str] = field(default_factory=dict)
    digest: str = ""

    @property
    def parent(self) -> str | None:
        return self.parents[0] if self.parents else None

    @property
    def second_parent(self) -> str | None:
        return self.parents[1] if len(self.parents) > 1 else None

    @property
    def is_merge(self) -> bool:
        return len(self.parents) > 1

    def encode(self) -> bytes:
        """Canonical encoding of the logical fields (digest excluded)."""
        record = {
            "message": self.message,
            "timestamp": self.timestamp,
            "parents": list(self.parents),
            "snapshot": dict(self.snapshot),
        }
        return json.dumps(record, sort_keys=True).encode("utf-8")

    @classmethod
    def decode(cls, raw: bytes, digest: str) -> "Commit":
        record = json.loads(raw.decode("utf-8"))
        return cls(
            message=record["message"],
            timestamp=record["timestamp"],
            parents=tuple(record["parents"]),
            snapshot=dict(record["snapshot"]),
            digest=digest,
        )


class CommitGraph:
    """Creates commits and answers ancestry questions about them.

    Commits are persisted in the object store as their canonical
    encoding, so a commit's digest is its object digest. Decoded commits
    are cached; they never change once written.
    """

    def __init__(
        self,
        objects: ObjectStore,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.objects = objects
        self._clock = clock
        self._cache: dict[str, Commit] = {}

    # -- Creation --

    def _persist(self, commit: Commit) -> Commit:
        raw = commit.encode()
        digest = self.objects.put(raw, COMMIT)
        stored = Commit(
            message=commit.message,
            timestamp=commit.timestamp,
            parents=commit.parents,
            snapshot=dict(commit.snapshot),
            digest=digest,
        )
        self._cache[digest] = stored
        logger.debug("Created commit %s (%d parents)", digest, len(commit.parents))
        return stored

    def create_root(self) -> Commit:
        """Build the root commit: no parent, empty snapshot."""
        return self._persist(
            Commit(message=INITIAL_MESSAGE, timestamp=INITIAL_TIMESTAMP, parents=())
        )

    def create_commit(
        self,
        message: str,
        parent: str,
        snapshot: Mapping[str, str],
        second_parent: str | None = None,
    ) -> Commit:
        """Persist a new commit on top of ``parent``.

        Every digest in ``snapshot`` must already name a stored blob.

        Raises:
            EmptyMessage: If ``message`` is blank.
            ObjectNotFound: If a parent is not a stored commit.
        """
        if not message or not message.strip():
            raise EmptyMessage()
        parents = (parent,) if second_parent is None else (parent, second_parent)
        for digest in parents:
            self.get(digest)
        return self._persist(
            Commit(
                message=message,
                timestamp=self._clock(),
                parents=parents,
                snapshot=dict(snapshot),
            )
        )

    # -- Lookup --

    def get(self, digest: str) -> Commit:
        """Load a commit by full digest.

        Raises:
            ObjectNotFound: If no commit has that digest.
        """
        commit = self._cache.get(digest)
        if commit is None:
            commit = Commit.decode(self.objects.get(digest, COMMIT), digest)
            self._cache[digest] = commit
        return commit

    def commits(self) -> list[str]:
        """Digests of every commit in the object store."""
        return self.objects.digests(COMMIT)

    def resolve(self, commit_id: str) -> str:
        """Resolve a full or abbreviated commit id to a digest.

        Raises:
            NoSuchCommit: If no commit matches.
            AmbiguousCommitId: If the prefix matches several commits.
        """
        if not commit_id:
            raise NoSuchCommit()
        if self.objects.contains(commit_id, COMMIT):
            return commit_id
        matches = [d for d in self.commits() if d.startswith(commit_id)]
        if not matches:
            raise NoSuchCommit()
        if len(matches) > 1:
            raise AmbiguousCommitId(commit_id, matches)
        return matches[0]

    def find(self, message: str) -> list[str]:
        """Digests of all commits whose message is exactly ``message``."""
        return [d for d in self.commits() if self.get(d).message == message]

    # -- Traversal --

    def history(self, digest: str) -> Iterable[Commit]:
        """Yield the first-parent chain from ``digest``, newest first."""
        current: str | None = digest
        while current is not None:
            commit = self.get(current)
            yield commit
            current = commit.parent

    def _distances(self, digest: str) -> dict[str, int]:
        """Shortest-path distance from ``digest`` to each ancestor (BFS)."""
        distances = {digest: 0}
        queue: deque[str] = deque([digest])
        while queue:
            current = queue.popleft()
            for parent in self.get(current).parents:
                if parent not in distances:
                    distances[parent] = distances[current] + 1
                    queue.append(parent)
        return distances

    def ancestors_of(self, digest: str) -> list[str]:
        """Every commit reachable from ``digest`` through any parent link.

        Ordered breadth-first (nearest first); ``digest`` itself is not
        included.
        """
        return [d for d in self._distances(digest) if d != digest]

    def is_ancestor(self, ancestor: str, descendant: str) -> bool:
        """True if ``ancestor`` is reachable from (or equal to) ``descendant``."""
        return ancestor in self._distances(descendant)

    def merge_base(self, a: str, b: str) -> str | None:
        """Find the split point of two commits.

        If one commit is reachable from the other it is the base.
        Otherwise, among the commits reachable from both, picks the one
        with the smallest combined distance; ties go to the earlier
        commit. Returns None when the histories are disjoint.

        Containment wins over the distance rule, so a tip that is an
        ancestor of the other is returned even when an older commit ties
        with it on combined distance.
        """
        from_a = self._distances(a)
        if b in from_a:
            return b
        from_b = self._distances(b)
        if a in from_b:
            return a
        common = from_a.keys() & from_b.keys()
        if not common:
            return None
        return min(
            common,
            key=lambda d: (from_a[d] + from_b[d], self.get(d).timestamp, d),
        )
