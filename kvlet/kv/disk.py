"""Disk-backed KV store using diskcache."""

from typing import Iterable, cast

from .base import KVStore, check_bytes


class Disk(KVStore):
    """KV store backed by diskcache (SQLite + mmap).

    Eviction is disabled: repository objects must never be culled.
    """

    def __init__(self, directory: str) -> None:
        from diskcache import Cache as DiskCache

        self.directory = directory
        self.store = DiskCache(directory, eviction_policy="none")

    def get(self, key: str) -> bytes | None:
        return cast(bytes | None, self.store.get(key))

    def set(self, key: str, value: bytes) -> None:
        check_bytes(value)
        self.store[key] = value

    def set_many(self, **kwargs: bytes) -> None:
        for key, value in kwargs.items():
            check_bytes(value, key)
        with self.store.transact():
            for key, value in kwargs.items():
                self.store[key] = value

    def keys(self, prefix: str = "") -> Iterable[str]:
        for key in self.store.iterkeys():
            if isinstance(key, str) and key.startswith(prefix):
                yield key

    def __contains__(self, key: str) -> bool:
        return key in self.store

    def remove(self, key: str) -> None:
        self.store.delete(key)

    def remove_many(self, *keys: str) -> None:
        with self.store.transact():
            for key in keys:
                self.store.delete(key, retry=False)

    def cas(self, key: str, value: bytes, expected: bytes | None) -> bool:
        check_bytes(value)
        with self.store.transact():
            current = cast(bytes | None, self.store.get(key))
            if current == expected:
                self.store[key] = value
                return True
            return False

    def clear(self) -> None:
        self.store.clear()

    def close(self) -> None:
        self.store.close()
