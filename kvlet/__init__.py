"""kvlet: a miniature local version-control engine over a KV store."""

from .branches import Branch, BranchRegistry
from .errors import (
    ConcurrencyError,
    KvletError,
    NotInitialized,
    ObjectNotFound,
    RepositoryError,
    UserError,
)
from .graph import Commit, CommitGraph
from .kv.base import KVStore
from .merge import MergeEngine, MergePlan, MergeResult, classify, conflict_content
from .objects import ObjectStore
from .repository import Repository, Status
from .staging import StagingArea
from .store import open_repository
from .sync import WorkingTreeSync

__all__ = [
    "Branch",
    "BranchRegistry",
    "Commit",
    "CommitGraph",
    "ConcurrencyError",
    "KVStore",
    "KvletError",
    "MergeEngine",
    "MergePlan",
    "MergeResult",
    "NotInitialized",
    "ObjectNotFound",
    "ObjectStore",
    "Repository",
    "RepositoryError",
    "StagingArea",
    "Status",
    "UserError",
    "WorkingTreeSync",
    "classify",
    "conflict_content",
    "open_repository",
]
