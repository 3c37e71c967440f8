"""Content-addressed object store for blobs and commits."""

import hashlib
import logging
from typing import Iterable

from .constants import BLOB, OBJECT_KINDS
from .errors import ObjectNotFound
from .kv.base import KVStore

logger = logging.getLogger(__name__)


def object_digest(content: bytes, kind: str = BLOB) -> str:
    """Compute the digest of an object.

    The kind and length are hashed ahead of the content, so a blob and a
    commit with the same bytes never share a digest.
    """
    h = hashlib.sha1()
    h.update(f"{kind} {len(content)}\0".encode())
    h.update(content)
    return h.hexdigest()


class ObjectStore:
    """Write-once storage of immutable objects keyed by digest.

    Objects live under ``<kind>/<digest>`` in the given store. There is
    no update or delete: ``put`` of existing content is a no-op.
    """

    def __init__(self, store: KVStore) -> None:
        self.store = store

    @staticmethod
    def _key(digest: str, kind: str) -> str:
        if kind not in OBJECT_KINDS:
            raise ValueError(f"Unknown object kind: {kind!r}")
        return f"{kind}/{digest}"

    def put(self, content: bytes, kind: str = BLOB) -> str:
        """Store ``content`` and return its digest."""
        digest = object_digest(content, kind)
        key = self._key(digest, kind)
        if key not in self.store:
            self.store.set(key, content)
            logger.debug("Stored %s %s (%d bytes)", kind, digest, len(content))
        return digest

    def put_many(self, contents: Iterable[bytes], kind: str = BLOB) -> list[str]:
        """Store several objects in one backend write; return their digests."""
        digests: list[str] = []
        pending: dict[str, bytes] = {}
        for content in contents:
            digest = object_digest(content, kind)
            digests.append(digest)
            key = self._key(digest, kind)
            if key not in self.store and key not in pending:
                pending[key] = content
        if pending:
            self.store.set_many(**pending)
            logger.debug("Stored %d new %s objects", len(pending), kind)
        return digests

    def get(self, digest: str, kind: str = BLOB) -> bytes:
        """Return the content stored under ``digest``.

        Raises:
            ObjectNotFound: If no such object exists.
        """
        content = self.store.get(self._key(digest, kind))
        if content is None:
            raise ObjectNotFound(digest, kind)
        return content

    def contains(self, digest: str, kind: str = BLOB) -> bool:
        return self._key(digest, kind) in self.store

    def __contains__(self, digest: str) -> bool:
        return self.contains(digest, BLOB)

    def digests(self, kind: str = BLOB) -> list[str]:
        """All stored digests of one kind, sorted."""
        prefix = self._key("", kind)
        return sorted(key[len(prefix):] for key in self.store.keys(prefix))
