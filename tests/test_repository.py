"""End-to-end tests for Repository over in-memory stores."""

import itertools

import pytest

from kvlet import Repository, open_repository
from kvlet.constants import INITIAL_MESSAGE
from kvlet.errors import (
    AlreadyInitialized,
    BranchExists,
    EmptyMessage,
    FileMissing,
    NoMatchingCommit,
    NoSuchBranch,
    NothingToCommit,
    NothingToRemove,
    NotInitialized,
    RemoveActiveBranch,
)
from kvlet.kv import Memory
from kvlet.objects import object_digest


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


class TestInit:
    def test_root_commit(self, repo):
        root = repo.head()
        assert root.message == INITIAL_MESSAGE
        assert root.timestamp == 0
        assert root.parents == ()
        assert root.snapshot == {}
        assert repo.branches.names() == ["master"]
        assert repo.active_branch().name == "master"

    def test_root_is_identical_across_repositories(self, repo):
        other = open_repository("memory")
        other.init()
        assert other.head().digest == repo.head().digest

    def test_init_twice(self, repo):
        with pytest.raises(AlreadyInitialized):
            repo.init()

    def test_default_branch_name(self):
        r = Repository(Memory(), Memory(), default_branch="main")
        r.init()
        assert r.active_branch().name == "main"

    def test_commands_require_init(self):
        r = open_repository("memory")
        assert not r.initialized
        with pytest.raises(NotInitialized):
            r.head()
        with pytest.raises(NotInitialized):
            r.add("f.txt")
        with pytest.raises(NotInitialized):
            r.status()


class TestAdd:
    def test_missing_file(self, repo):
        with pytest.raises(FileMissing, match="File does not exist."):
            repo.add("nope.txt")

    def test_add_is_idempotent(self, repo):
        repo.worktree.set("f.txt", b"x")
        assert repo.add("f.txt")
        assert not repo.add("f.txt")
        assert repo.staging.additions() == {"f.txt": b"x"}

    def test_add_unchanged_file_is_noop(self, repo):
        commit_files(repo, "c1", **{"f.txt": b"x"})
        assert not repo.add("f.txt")
        assert repo.staging.is_clear()

    def test_reverting_to_head_unstages(self, repo):
        commit_files(repo, "c1", **{"f.txt": b"x"})
        repo.worktree.set("f.txt", b"y")
        repo.add("f.txt")
        repo.worktree.set("f.txt", b"x")
        assert repo.add("f.txt")
        assert repo.staging.is_clear()

    def test_add_cancels_removal(self, repo):
        commit_files(repo, "c1", **{"f.txt": b"x"})
        repo.rm("f.txt")
        repo.worktree.set("f.txt", b"x")
        repo.add("f.txt")
        assert repo.staging.is_clear()

    def test_staging_writes_no_blobs(self, repo):
        repo.worktree.set("f.txt", b"never committed")
        repo.add("f.txt")
        repo.rm("f.txt")
        assert repo.objects.digests() == []
        assert repo.worktree.get("f.txt") == b"never committed"


class TestRm:
    def test_untracked_unstaged(self, repo):
        repo.worktree.set("f.txt", b"x")
        with pytest.raises(NothingToRemove, match="No reason to remove the file."):
            repo.rm("f.txt")

    def test_tracked_file_is_deleted_and_dropped(self, repo):
        commit_files(repo, "c1", **{"f.txt": b"x", "g.txt": b"y"})
        repo.rm("f.txt")
        assert "f.txt" not in repo.worktree
        assert repo.staging.removals() == {"f.txt"}
        c2 = repo.commit("drop f")
        assert set(c2.snapshot) == {"g.txt"}

    def test_tracked_file_already_deleted(self, repo):
        commit_files(repo, "c1", **{"f.txt": b"x"})
        repo.worktree.remove("f.txt")
        repo.rm("f.txt")
        assert repo.staging.removals() == {"f.txt"}


class TestCommit:
    def test_empty_message(self, repo):
        repo.worktree.set("f.txt", b"x")
        repo.add("f.txt")
        with pytest.raises(EmptyMessage, match="Please enter a commit message."):
            repo.commit("   ")
        assert not repo.staging.is_clear()

    def test_nothing_staged(self, repo):
        with pytest.raises(NothingToCommit, match="No changes added to the commit."):
            repo.commit("empty")

    def test_commit_advances_branch(self, repo):
        root = repo.head()
        c1 = commit_files(repo, "c1", **{"f.txt": b"x"})
        assert c1.parents == (root.digest,)
        assert c1.snapshot == {"f.txt": object_digest(b"x")}
        assert repo.branches.head() == c1.digest
        assert repo.staging.is_clear()

    def test_unchanged_files_share_blobs(self, repo):
        c1 = commit_files(repo, "c1", **{"f.txt": b"x", "g.txt": b"y"})
        c2 = commit_files(repo, "c2", **{"g.txt": b"z"})
        assert c2.snapshot["f.txt"] == c1.snapshot["f.txt"]
        assert c2.snapshot["g.txt"] != c1.snapshot["g.txt"]
        assert len(repo.objects.digests()) == 3

    def test_identical_content_stored_once(self, repo):
        c1 = commit_files(repo, "c1", **{"a.txt": b"same", "b.txt": b"same"})
        assert c1.snapshot["a.txt"] == c1.snapshot["b.txt"]
        assert len(repo.objects.digests()) == 1


class TestLogAndFind:
    def test_log_is_first_parent_newest_first(self, repo):
        c1 = commit_files(repo, "c1", **{"f": b"1"})
        c2 = commit_files(repo, "c2", **{"f": b"2"})
        assert [c.digest for c in repo.log()] == [
            c2.digest,
            c1.digest,
            c1.parent,
        ]
        assert repo.log()[-1].message == INITIAL_MESSAGE

    def test_global_log_includes_other_branches(self, repo):
        repo.branch("side")
        repo.checkout_branch("side")
        side = commit_files(repo, "on side", **{"f": b"1"})
        repo.checkout_branch("master")
        digests = {c.digest for c in repo.global_log()}
        assert side.digest in digests
        assert side.digest not in {c.digest for c in repo.log()}
        assert len(digests) == 2

    def test_find(self, repo):
        c1 = commit_files(repo, "same", **{"f": b"1"})
        c2 = commit_files(repo, "same", **{"f": b"2"})
        assert sorted(repo.find("same")) == sorted([c1.digest, c2.digest])

    def test_find_requires_exact_message(self, repo):
        commit_files(repo, "fix bug", **{"f": b"1"})
        with pytest.raises(NoMatchingCommit, match="Found no commit with that message."):
            repo.find("fix")


class TestBranches:
    def test_branch_points_at_head(self, repo):
        c1 = commit_files(repo, "c1", **{"f": b"1"})
        b = repo.branch("feature")
        assert b.commit == c1.digest
        assert repo.active_branch().name == "master"

    def test_duplicate(self, repo):
        repo.branch("feature")
        with pytest.raises(BranchExists):
            repo.branch("feature")

    def test_rm_branch_keeps_commits(self, repo):
        repo.branch("feature")
        repo.checkout_branch("feature")
        c1 = commit_files(repo, "c1", **{"f": b"1"})
        repo.checkout_branch("master")
        repo.rm_branch("feature")
        assert repo.branches.names() == ["master"]
        assert repo.graph.get(c1.digest).message == "c1"

    def test_rm_active(self, repo):
        with pytest.raises(RemoveActiveBranch, match="Cannot remove the current branch."):
            repo.rm_branch("master")

    def test_rm_missing(self, repo):
        with pytest.raises(NoSuchBranch):
            repo.rm_branch("ghost")


class TestStatus:
    def test_clean(self, repo):
        status = repo.status()
        assert status.branches == ("master",)
        assert status.active == "master"
        assert status.staged == ()
        assert status.removed == ()
        assert status.modified == ()
        assert status.deleted == ()
        assert status.untracked == ()

    def test_every_section(self, repo):
        commit_files(
            repo, "c1", **{"keep": b"k", "edit": b"e", "gone": b"g", "drop": b"d"}
        )
        repo.branch("other")
        repo.worktree.set("new", b"n")
        repo.add("new")
        repo.rm("drop")
        repo.worktree.set("edit", b"edited")
        repo.worktree.remove("gone")
        repo.worktree.set("stray", b"s")

        status = repo.status()
        assert status.branches == ("master", "other")
        assert status.staged == ("new",)
        assert status.removed == ("drop",)
        assert status.modified == ("edit",)
        assert status.deleted == ("gone",)
        assert status.untracked == ("stray",)

    def test_staged_then_changed(self, repo):
        repo.worktree.set("f", b"v1")
        repo.add("f")
        repo.worktree.set("f", b"v2")
        status = repo.status()
        assert status.staged == ("f",)
        assert status.modified == ("f",)

    def test_staged_then_deleted(self, repo):
        repo.worktree.set("f", b"v1")
        repo.add("f")
        repo.worktree.remove("f")
        assert repo.status().deleted == ("f",)


class TestScenario:
    def test_branch_edit_and_merge_back(self, repo):
        repo.worktree.set("f.txt", b"x")
        repo.add("f.txt")
        c1 = repo.commit("c1")
        repo.branch("b")
        repo.checkout_branch("b")
        repo.worktree.set("f.txt", b"y")
        repo.add("f.txt")
        c2 = repo.commit("c2")
        repo.checkout_branch("master")
        assert repo.worktree.get("f.txt") == b"x"

        result = repo.merge("b")
        assert result.strategy == "fast_forward"
        assert repo.worktree.get("f.txt") == b"y"
        assert repo.branches.head() == c2.digest
        assert repo.graph.get(c2.digest).parent == c1.digest

    def test_diverged_edits_merge_cleanly(self, repo):
        commit_files(repo, "c1", **{"a.txt": b"a", "b.txt": b"b"})
        repo.branch("b")
        commit_files(repo, "master edit", **{"a.txt": b"A"})
        repo.checkout_branch("b")
        commit_files(repo, "branch edit", **{"b.txt": b"B"})
        repo.checkout_branch("master")

        result = repo.merge("b")
        assert result.strategy == "three_way"
        assert result.conflicts == ()
        assert repo.worktree.get("a.txt") == b"A"
        assert repo.worktree.get("b.txt") == b"B"
        assert repo.log()[0].message == "Merged b into master."
        assert repo.status().untracked == ()
