"""Abstract KV store interface."""

from abc import ABC, abstractmethod
from typing import Iterable


class KVStore(ABC):
    """Key-value store operating on bytes only.

    All values are stored and retrieved as bytes. Encoding of commits,
    branch pointers and staged content is handled by the components
    layered on top (ObjectStore, BranchRegistry, StagingArea).
    """

    @abstractmethod
    def get(self, key: str) -> bytes | None:
        """Get bytes value for key, or None if not found."""

    @abstractmethod
    def set(self, key: str, value: bytes) -> None:
        """Set bytes value for key."""

    @abstractmethod
    def set_many(self, **kwargs: bytes) -> None:
        """Set multiple key-value pairs in one step."""

    @abstractmethod
    def keys(self, prefix: str = "") -> Iterable[str]:
        """Iterate over all keys starting with ``prefix``."""

    @abstractmethod
    def __contains__(self, key: str) -> bool:
        """Check if key exists in store."""

    @abstractmethod
    def remove(self, key: str) -> None:
        """Remove a key if present."""

    @abstractmethod
    def remove_many(self, *keys: str) -> None:
        """Remove multiple keys."""

    @abstractmethod
    def cas(self, key: str, value: bytes, expected: bytes | None) -> bool:
        """Atomic compare-and-swap.

        Set value only if current value equals expected.
        None means "key must not exist".

        Returns True if swap succeeded, False otherwise.
        """

    @abstractmethod
    def clear(self) -> None:
        """Remove all items from the store."""

    def close(self) -> None:
        """Release any resources held by the backend."""


def check_bytes(value: object, key: str | None = None) -> None:
    """Raise TypeError unless ``value`` is bytes."""
    if not isinstance(value, bytes):
        if key is None:
            raise TypeError(f"Expected bytes, got {type(value).__name__}")
        raise TypeError(f"Expected bytes for {key}, got {type(value).__name__}")
