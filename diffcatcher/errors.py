"""Exception hierarchy for the diff scanner."""

from __future__ import annotations

from pathlib import Path


class PatrolError(Exception):
    """Base class for every error raised by the package."""


class MissingRootError(PatrolError):
    """The directory to scan does not exist."""

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)
        super().__init__(f"root directory does not exist: {self.path}")


class InvalidArgumentError(PatrolError):
    """A command-line option, config value or plugin file is invalid."""

    def __init__(self, detail: str) -> None:
        self.detail = detail
        super().__init__(f"invalid argument: {detail}")


class GitCommandError(PatrolError):
    """A git command could not be started or reported failure."""

    def __init__(self, repo: str, message: str) -> None:
        self.repo = repo
        self.message = message
        super().__init__(f"git command failed for repo {repo}: {message}")


class GitTimeoutError(PatrolError):
    """A git command did not finish within its time limit."""

    def __init__(self, repo: str, command: str) -> None:
        self.repo = repo
        self.command = command
        super().__init__(f"timeout running git command for repo {repo}: {command}")