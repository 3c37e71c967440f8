"""kvlet error types.

Two families: ``UserError`` subclasses describe outcomes the command
line reports as a message and then exits normally; ``RepositoryError``
subclasses mean a persisted invariant was violated and the command must
abort.
"""


class KvletError(Exception):
    """Base class for all kvlet errors."""


class UserError(KvletError):
    """A user-facing outcome: print the message, leave state untouched.

    Subclasses set ``message`` to the text shown to the user; passing
    an explicit message overrides it.
    """

    message = "Invalid operation."

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.message)


class AlreadyInitialized(UserError):
    message = "A kvlet version-control system already exists in the current directory."


class FileMissing(UserError):
    message = "File does not exist."


class EmptyMessage(UserError):
    message = "Please enter a commit message."


class NothingToCommit(UserError):
    message = "No changes added to the commit."


class NothingToRemove(UserError):
    message = "No reason to remove the file."


class BlankBranchName(UserError):
    message = "Please enter a branch name."


class BranchExists(UserError):
    message = "A branch with that name already exists."


class NoSuchBranch(UserError):
    message = "A branch with that name does not exist."


class RemoveActiveBranch(UserError):
    message = "Cannot remove the current branch."


class AlreadyOnBranch(UserError):
    message = "No need to checkout the current branch."


class NoSuchCommit(UserError):
    message = "No commit with that id exists."


class AmbiguousCommitId(UserError):
    """Raised when an abbreviated commit id matches several commits.

    Attributes:
        prefix: The abbreviated id as given.
        candidates: The full digests it matched, sorted.
    """

    def __init__(self, prefix: str, candidates: list[str]) -> None:
        self.prefix = prefix
        self.candidates = sorted(candidates)
        super().__init__(
            f"Commit id {prefix} is ambiguous; it matches "
            f"{len(self.candidates)} commits."
        )


class FileNotInCommit(UserError):
    message = "File does not exist in that commit."


class NoMatchingCommit(UserError):
    message = "Found no commit with that message."


class UntrackedFileInTheWay(UserError):
    """Raised when checkout, reset or merge would overwrite untracked work.

    Attributes:
        filenames: The untracked working files that are in the way.
    """

    message = (
        "There is an untracked file in the way; "
        "delete it, or add and commit it first."
    )

    def __init__(self, filenames: set[str] | None = None) -> None:
        self.filenames = sorted(filenames or ())
        super().__init__()


class UncommittedChanges(UserError):
    message = "You have uncommitted changes."


class MergeWithSelf(UserError):
    message = "Cannot merge a branch with itself."


class NoCommonAncestor(UserError):
    message = "There are no common ancestors between the current branch and given branch."


class RepositoryError(KvletError):
    """Raised when the repository's persisted state is inconsistent."""


class NotInitialized(RepositoryError):
    """Raised when a command runs outside an initialized repository."""

    def __init__(self, message: str = "Not in an initialized kvlet directory.") -> None:
        super().__init__(message)


class ObjectNotFound(RepositoryError):
    """Raised when a digest does not name a stored object.

    Attributes:
        digest: The missing digest.
        kind: ``"blob"`` or ``"commit"``.
    """

    def __init__(self, digest: str, kind: str) -> None:
        self.digest = digest
        self.kind = kind
        super().__init__(f"No {kind} object with digest {digest}")


class ConcurrencyError(RepositoryError):
    """Raised when a branch pointer moved between read and update.

    Another process advanced the branch while this command was running.
    Nothing was overwritten; rerun the command.
    """
