"""Repository factory function."""

import os
import time
from typing import Callable, Literal

from .constants import DEFAULT_BRANCH, REPO_DIR
from .repository import Repository


def repo_exists(path: str | os.PathLike) -> bool:
    """Whether ``path`` holds an on-disk repository directory."""
    return os.path.isdir(os.path.join(path, REPO_DIR))


def open_repository(
    kind: Literal["disk", "memory"] = "disk",
    *,
    path: str | os.PathLike | None = None,
    default_branch: str = DEFAULT_BRANCH,
    clock: Callable[[], float] = time.time,
) -> Repository:
    """Create a Repository with sensible defaults.

    Args:
        kind: ``"disk"`` (default) keeps metadata in ``path/.kvlet``
            and reads working files from ``path``; ``"memory"`` keeps
            both in memory (for tests and experiments).
        path: Required when ``kind="disk"``. The working directory.
        default_branch: Branch ``init()`` creates (default ``"master"``).
        clock: Source of commit timestamps (default ``time.time``).

    Returns:
        A ``Repository``; call ``init()`` on it if it is new.
    """
    if kind == "memory":
        from .kv.memory import Memory

        meta = Memory()
        worktree = Memory()
    elif kind == "disk":
        if path is None:
            raise ValueError("path is required when kind='disk'")
        from .kv.directory import Directory
        from .kv.disk import Disk

        meta = Disk(os.path.join(path, REPO_DIR))
        worktree = Directory(path)
    else:
        raise ValueError(f"Unknown kind: {kind!r}")

    return Repository(meta, worktree, default_branch=default_branch, clock=clock)
