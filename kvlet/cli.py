"""Command-line entry point: ``kvlet <command> [operands]``."""

import argparse
import logging
import os
import sys
import time
from typing import Callable, NoReturn, TextIO

from .constants import SHORT_ID_LENGTH
from .errors import KvletError, NotInitialized, UserError
from .graph import Commit
from .repository import Repository, Status
from .store import open_repository, repo_exists

logger = logging.getLogger(__name__)

LOG_LEVEL_ENV = "KVLET_LOG_LEVEL"


class UsageError(Exception):
    """Raised for malformed command lines."""


class ArgumentParser(argparse.ArgumentParser):
    """Reports every parse failure as a UsageError instead of exiting."""

    def error(self, message: str) -> NoReturn:
        raise UsageError("Incorrect operands.")


def format_timestamp(timestamp: float) -> str:
    """Render a commit time like ``Thu Jan 1 00:00:00 1970 +0000``."""
    t = time.localtime(timestamp)
    return (
        time.strftime("%a %b ", t)
        + str(t.tm_mday)
        + time.strftime(" %H:%M:%S %Y %z", t)
    )


def format_commit(commit: Commit, *, show_merge: bool = True) -> str:
    lines = ["===", f"commit {commit.digest}"]
    if show_merge and commit.is_merge:
        lines.append(
            f"Merge: {commit.parent[:SHORT_ID_LENGTH]} "
            f"{commit.second_parent[:SHORT_ID_LENGTH]}"
        )
    lines.append(f"Date: {format_timestamp(commit.timestamp)}")
    lines.append(commit.message)
    lines.append("")
    return "\n".join(lines)


def format_status(status: Status) -> str:
    sections = [
        (
            "Branches",
            [f"*{b}" if b == status.active else b for b in status.branches],
        ),
        ("Staged Files", list(status.staged)),
        ("Removed Files", list(status.removed)),
        (
            "Modifications Not Staged For Commit",
            sorted(
                [f"{name} (modified)" for name in status.modified]
                + [f"{name} (deleted)" for name in status.deleted]
            ),
        ),
        ("Untracked Files", list(status.untracked)),
    ]
    out: list[str] = []
    for title, entries in sections:
        out.append(f"=== {title} ===")
        out.extend(entries)
        out.append("")
    return "\n".join(out)


def _require(operands: list[str], count: int) -> None:
    if len(operands) != count:
        raise UsageError("Incorrect operands.")


# -- Commands --


def cmd_add(repo: Repository, operands: list[str], out: TextIO) -> None:
    _require(operands, 1)
    repo.add(operands[0])


def cmd_rm(repo: Repository, operands: list[str], out: TextIO) -> None:
    _require(operands, 1)
    repo.rm(operands[0])


def cmd_commit(repo: Repository, operands: list[str], out: TextIO) -> None:
    _require(operands, 1)
    repo.commit(operands[0])


def cmd_log(repo: Repository, operands: list[str], out: TextIO) -> None:
    _require(operands, 0)
    for commit in repo.log():
        print(format_commit(commit), file=out)


def cmd_global_log(repo: Repository, operands: list[str], out: TextIO) -> None:
    _require(operands, 0)
    for commit in repo.global_log():
        print(format_commit(commit, show_merge=False), file=out)


def cmd_find(repo: Repository, operands: list[str], out: TextIO) -> None:
    _require(operands, 1)
    for digest in repo.find(operands[0]):
        print(digest, file=out)


def cmd_status(repo: Repository, operands: list[str], out: TextIO) -> None:
    _require(operands, 0)
    print(format_status(repo.status()), file=out)


def cmd_checkout(repo: Repository, operands: list[str], out: TextIO) -> None:
    if len(operands) == 1 and operands[0] != "--":
        repo.checkout_branch(operands[0])
    elif len(operands) == 2 and operands[0] == "--":
        repo.checkout_file(operands[1])
    elif len(operands) == 3 and operands[1] == "--":
        repo.checkout_file(operands[2], operands[0])
    else:
        raise UsageError("Incorrect operands.")


def cmd_branch(repo: Repository, operands: list[str], out: TextIO) -> None:
    _require(operands, 1)
    repo.branch(operands[0])


def cmd_rm_branch(repo: Repository, operands: list[str], out: TextIO) -> None:
    _require(operands, 1)
    repo.rm_branch(operands[0])


def cmd_reset(repo: Repository, operands: list[str], out: TextIO) -> None:
    _require(operands, 1)
    repo.reset(operands[0])


def cmd_merge(repo: Repository, operands: list[str], out: TextIO) -> None:
    _require(operands, 1)
    result = repo.merge(operands[0])
    if result.message:
        print(result.message, file=out)


COMMANDS: dict[str, Callable[[Repository, list[str], TextIO], None]] = {
    "add": cmd_add,
    "rm": cmd_rm,
    "commit": cmd_commit,
    "log": cmd_log,
    "global-log": cmd_global_log,
    "find": cmd_find,
    "status": cmd_status,
    "checkout": cmd_checkout,
    "branch": cmd_branch,
    "rm-branch": cmd_rm_branch,
    "reset": cmd_reset,
    "merge": cmd_merge,
}


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = ArgumentParser(prog="kvlet", add_help=False)
    commands = parser.add_subparsers(dest="command")
    commands.required = True

    init_parser = commands.add_parser("init", add_help=False)
    init_parser.set_defaults(func=None)
    init_parser.add_argument("operands", nargs="*")

    for name, func in COMMANDS.items():
        command_parser = commands.add_parser(name, add_help=False)
        command_parser.set_defaults(func=func)
        # checkout keeps "--" to tell "checkout <branch>" from
        # "checkout -- <file>".
        nargs = argparse.REMAINDER if name == "checkout" else "*"
        command_parser.add_argument("operands", nargs=nargs)

    if argv and argv[0] not in commands.choices:
        raise UsageError("No command with that name exists.")
    return parser.parse_args(argv)


def run(
    argv: list[str],
    *,
    cwd: str | None = None,
    out: TextIO | None = None,
    err: TextIO | None = None,
) -> int:
    """Execute one command and return its exit code.

    User errors print their message to ``out`` and return 0; usage
    errors and repository errors print to ``err`` and return 1.
    """
    out = out or sys.stdout
    err = err or sys.stderr
    cwd = cwd or os.getcwd()

    if not argv:
        print("Please enter a command.", file=err)
        return 1

    try:
        args = parse_args(argv)
        if args.func is None:
            _require(args.operands, 0)
            repo = open_repository("disk", path=cwd)
            try:
                repo.init()
            finally:
                repo.close()
            return 0
        if not repo_exists(cwd):
            raise NotInitialized()
        repo = open_repository("disk", path=cwd)
        try:
            if not repo.initialized:
                raise NotInitialized()
            args.func(repo, list(args.operands), out)
        finally:
            repo.close()
    except UserError as e:
        print(e, file=out)
    except (UsageError, KvletError) as e:
        logger.debug("Command %s failed", argv[0], exc_info=True)
        print(e, file=err)
        return 1
    return 0


def main() -> None:
    logging.basicConfig(
        level=os.environ.get(LOG_LEVEL_ENV, "WARNING").upper(),
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )
    sys.exit(run(sys.argv[1:]))


if __name__ == "__main__":
    main()
