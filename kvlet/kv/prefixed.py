"""Prefixed: key-prefixed view over a KV store."""

from typing import Iterable

from .base import KVStore


class Prefixed(KVStore):
    """A namespaced view over a KVStore.

    Keys are prefixed with ``namespace/``. Nested namespaces are
    supported by wrapping another Prefixed instance, so one backend can
    hold the object area, the refs area and the staging area side by
    side.

    Args:
        store: Any KVStore (including another Prefixed).
        namespace: The namespace name (must not contain ``/``).
    """

    def __init__(self, store: KVStore, namespace: str) -> None:
        if not namespace:
            raise ValueError("Namespace name is required")
        if "/" in namespace:
            raise ValueError("Namespace names cannot contain '/'")

        if isinstance(store, Prefixed):
            self._store: KVStore = store._store
            self.namespace = f"{store.namespace}/{namespace}"
        else:
            self._store = store
            self.namespace = namespace

    def _prefixed(self, key: str) -> str:
        return f"{self.namespace}/{key}"

    def get(self, key: str) -> bytes | None:
        return self._store.get(self._prefixed(key))

    def set(self, key: str, value: bytes) -> None:
        self._store.set(self._prefixed(key), value)

    def set_many(self, **kwargs: bytes) -> None:
        self._store.set_many(
            **{self._prefixed(key): value for key, value in kwargs.items()}
        )

    def keys(self, prefix: str = "") -> Iterable[str]:
        """Keys under this namespace, including nested ones."""
        start = f"{self.namespace}/"
        for key in self._store.keys(start + prefix):
            yield key[len(start):]

    def __contains__(self, key: str) -> bool:
        return self._prefixed(key) in self._store

    def remove(self, key: str) -> None:
        self._store.remove(self._prefixed(key))

    def remove_many(self, *keys: str) -> None:
        self._store.remove_many(*(self._prefixed(key) for key in keys))

    def cas(self, key: str, value: bytes, expected: bytes | None) -> bool:
        return self._store.cas(self._prefixed(key), value, expected)

    def clear(self) -> None:
        """Remove every key in this namespace (the backend is untouched)."""
        self._store.remove_many(*list(self._store.keys(f"{self.namespace}/")))
