"""Plain-file KV store over a single directory."""

import os
from pathlib import Path
from typing import Iterable

from .base import KVStore, check_bytes


class Directory(KVStore):
    """KV store whose keys are plain file names in one directory.

    Used as the working tree. Only regular files directly inside the
    directory are visible; subdirectories and hidden names (including
    the ``.kvlet`` repository directory) are ignored.
    """

    def __init__(self, directory: str | os.PathLike) -> None:
        self.path = Path(directory)

    def _file(self, key: str) -> Path:
        if not key or "/" in key or os.sep in key or key.startswith("."):
            raise ValueError(f"Invalid working file name: {key!r}")
        return self.path / key

    def get(self, key: str) -> bytes | None:
        file = self._file(key)
        if not file.is_file():
            return None
        return file.read_bytes()

    def set(self, key: str, value: bytes) -> None:
        check_bytes(value)
        self._file(key).write_bytes(value)

    def set_many(self, **kwargs: bytes) -> None:
        for key, value in kwargs.items():
            check_bytes(value, key)
        for key, value in kwargs.items():
            self._file(key).write_bytes(value)

    def keys(self, prefix: str = "") -> Iterable[str]:
        if not self.path.is_dir():
            return []
        return sorted(
            entry.name
            for entry in self.path.iterdir()
            if entry.is_file()
            and not entry.name.startswith(".")
            and entry.name.startswith(prefix)
        )

    def __contains__(self, key: str) -> bool:
        try:
            return self._file(key).is_file()
        except ValueError:
            return False

    def remove(self, key: str) -> None:
        self._file(key).unlink(missing_ok=True)

    def remove_many(self, *keys: str) -> None:
        for key in keys:
            self.remove(key)

    def cas(self, key: str, value: bytes, expected: bytes | None) -> bool:
        check_bytes(value)
        if self.get(key) != expected:
            return False
        self.set(key, value)
        return True

    def clear(self) -> None:
        for key in list(self.keys()):
            self.remove(key)
