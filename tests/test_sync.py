"""Tests for WorkingTreeSync: checkout and reset."""

import itertools

import pytest

from kvlet import open_repository
from kvlet.errors import (
    AlreadyOnBranch,
    AmbiguousCommitId,
    FileNotInCommit,
    NoSuchBranch,
    NoSuchCommit,
    UntrackedFileInTheWay,
)


@pytest.fixture
def repo():
    r = open_repository("memory", clock=itertools.count(1).__next__)
    r.init()
    return r


def commit_files(repo, message, **files):
    for name, content in files.items():
        repo.worktree.set(name, content)
        repo.add(name)
    return repo.commit(message)


class TestCheckoutFile:
    def test_round_trip(self, repo):
        c = commit_files(repo, "c1", **{"f.txt": b"original"})
        repo.worktree.set("f.txt", b"scribbled")
        repo.checkout_file("f.txt", c.digest)
        assert repo.worktree.get("f.txt") == b"original"

    def test_default_is_head(self, repo):
        commit_files(repo, "c1", **{"f.txt": b"original"})
        repo.worktree.set("f.txt", b"scribbled")
        repo.checkout_file("f.txt")
        assert repo.worktree.get("f.txt") == b"original"

    def test_abbreviated_id(self, repo):
        c1 = commit_files(repo, "c1", **{"f.txt": b"v1"})
        commit_files(repo, "c2", **{"f.txt": b"v2"})
        repo.checkout_file("f.txt", c1.digest[:8])
        assert repo.worktree.get("f.txt") == b"v1"

    def test_staging_untouched(self, repo):
        c = commit_files(repo, "c1", **{"f.txt": b"v1"})
        repo.worktree.set("g.txt", b"new")
        repo.add("g.txt")
        repo.checkout_file("f.txt", c.digest)
        assert repo.staging.additions() == {"g.txt": b"new"}

    def test_unknown_commit(self, repo):
        with pytest.raises(NoSuchCommit, match="No commit with that id exists."):
            repo.checkout_file("f.txt", "not-a-digest")

    def test_missing_file(self, repo):
        c = commit_files(repo, "c1", **{"f.txt": b"v1"})
        with pytest.raises(FileNotInCommit, match="File does not exist in that commit."):
            repo.checkout_file("other.txt", c.digest)

    def test_ambiguous_id(self, repo):
        for i in range(20):
            commit_files(repo, f"c{i}", **{"f.txt": str(i).encode()})
        first = [d[0] for d in repo.graph.commits()]
        prefix = next(c for c in first if first.count(c) > 1)
        with pytest.raises(AmbiguousCommitId):
            repo.checkout_file("f.txt", prefix)


class TestCheckoutBranch:
    def test_switches_files_and_branch(self, repo):
        commit_files(repo, "base", **{"keep.txt": b"k", "gone.txt": b"g"})
        repo.branch("dev")
        repo.rm("gone.txt")
        commit_files(repo, "master work", **{"keep.txt": b"k2", "new.txt": b"n"})

        repo.checkout_branch("dev")
        assert repo.active_branch().name == "dev"
        assert repo.worktree.get("keep.txt") == b"k"
        assert repo.worktree.get("gone.txt") == b"g"
        assert repo.worktree.get("new.txt") is None

    def test_clears_staging(self, repo):
        commit_files(repo, "base", **{"a.txt": b"a"})
        repo.branch("dev")
        repo.worktree.set("b.txt", b"b")
        repo.add("b.txt")
        repo.checkout_branch("dev")
        assert repo.staging.is_clear()

    def test_missing_branch(self, repo):
        with pytest.raises(NoSuchBranch, match="No such branch exists."):
            repo.checkout_branch("nope")

    def test_current_branch(self, repo):
        with pytest.raises(AlreadyOnBranch):
            repo.checkout_branch("master")

    def test_untracked_file_guard(self, repo):
        repo.branch("dev")
        repo.checkout_branch("dev")
        commit_files(repo, "dev adds", **{"shared.txt": b"from dev"})
        repo.checkout_branch("master")
        repo.worktree.set("shared.txt", b"my untracked work")
        repo.worktree.set("other.txt", b"untouched")

        head_before = repo.branches.head()
        with pytest.raises(UntrackedFileInTheWay) as exc_info:
            repo.checkout_branch("dev")
        assert exc_info.value.filenames == ["shared.txt"]
        assert repo.worktree.get("shared.txt") == b"my untracked work"
        assert repo.active_branch().name == "master"
        assert repo.branches.head() == head_before

    def test_deleted_tracked_file_is_fine(self, repo):
        commit_files(repo, "base", **{"a.txt": b"a"})
        repo.branch("dev")
        repo.checkout_branch("dev")
        commit_files(repo, "dev", **{"b.txt": b"b"})
        repo.checkout_branch("master")
        repo.checkout_branch("dev")
        repo.rm("b.txt")
        repo.checkout_branch("master")
        assert repo.worktree.get("b.txt") is None


class TestReset:
    def test_reset_moves_active_branch(self, repo):
        c1 = commit_files(repo, "c1", **{"f.txt": b"v1"})
        commit_files(repo, "c2", **{"f.txt": b"v2", "g.txt": b"g"})
        repo.reset(c1.digest)
        assert repo.active_branch().name == "master"
        assert repo.branches.head() == c1.digest
        assert repo.worktree.get("f.txt") == b"v1"
        assert repo.worktree.get("g.txt") is None

    def test_reset_clears_staging(self, repo):
        c1 = commit_files(repo, "c1", **{"f.txt": b"v1"})
        repo.worktree.set("f.txt", b"dirty")
        repo.add("f.txt")
        repo.reset(c1.digest[:10])
        assert repo.staging.is_clear()
        assert repo.worktree.get("f.txt") == b"v1"

    def test_reset_to_other_branch_commit(self, repo):
        repo.branch("dev")
        repo.checkout_branch("dev")
        d = commit_files(repo, "dev", **{"d.txt": b"d"})
        repo.checkout_branch("master")
        repo.reset(d.digest)
        assert repo.active_branch().name == "master"
        assert repo.branches.get("master").commit == d.digest
        assert repo.worktree.get("d.txt") == b"d"

    def test_reset_unknown_commit(self, repo):
        with pytest.raises(NoSuchCommit):
            repo.reset("not-a-digest")

    def test_reset_untracked_guard(self, repo):
        c1 = commit_files(repo, "c1", **{"f.txt": b"v1"})
        repo.rm("f.txt")
        repo.commit("drop f")
        repo.worktree.set("f.txt", b"untracked now")
        with pytest.raises(UntrackedFileInTheWay):
            repo.reset(c1.digest)
        assert repo.worktree.get("f.txt") == b"untracked now"
