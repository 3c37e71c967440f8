"""In-memory KV store."""

from typing import Iterable

from .base import KVStore, check_bytes


class Memory(KVStore):
    """A dict-backed KV store, used for tests and scratch repositories."""

    def __init__(self) -> None:
        self.memory: dict[str, bytes] = {}

    def get(self, key: str) -> bytes | None:
        return self.memory.get(key)

    def set(self, key: str, value: bytes) -> None:
        check_bytes(value)
        self.memory[key] = value

    def set_many(self, **kwargs: bytes) -> None:
        for key, value in kwargs.items():
            check_bytes(value, key)
        self.memory.update(kwargs)

    def keys(self, prefix: str = "") -> Iterable[str]:
        return [key for key in self.memory if key.startswith(prefix)]

    def __contains__(self, key: str) -> bool:
        return key in self.memory

    def remove(self, key: str) -> None:
        self.memory.pop(key, None)

    def remove_many(self, *keys: str) -> None:
        for key in keys:
            self.memory.pop(key, None)

    def cas(self, key: str, value: bytes, expected: bytes | None) -> bool:
        check_bytes(value)
        if self.memory.get(key) != expected:
            return False
        self.memory[key] = value
        return True

    def clear(self) -> None:
        self.memory.clear()
