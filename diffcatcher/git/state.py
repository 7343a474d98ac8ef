"""Capturing commit metadata and working-tree state."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

from diffcatcher.git.commands import run_git_expect_stdout

_LOG_FORMAT = "--format=%H%n%h%n%an <%ae>%n%ct%n%B"


@dataclass(frozen=True)
class CommitInfo:
    """Identity, author, message and commit time of one commit."""

    hash: str
    short_hash: str
    message: str
    full_message: str
    author: str
    timestamp: str


@dataclass(frozen=True)
class RepoState:
    """The checked-out commit, branch and dirtiness of a repository."""

    commit: CommitInfo
    branch: str
    dirty: bool


def _rfc3339(seconds: int) -> str:
    try:
        moment = datetime.fromtimestamp(seconds, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        moment = datetime.now(timezone.utc)
    return moment.isoformat()


def _parse_timestamp(raw: str) -> int:
    try:
        return int(raw)
    except ValueError:
        return 0


def _parse_log(output: str) -> CommitInfo:
    lines = output.splitlines()
    field_at = lambda i: lines[i] if i < len(lines) else ""  # noqa: E731
    full_message = "\n".join(lines[4:]).strip()
    first_line = full_message.splitlines()[0].strip() if full_message else ""
    return CommitInfo(
        hash=field_at(0),
        short_hash=field_at(1),
        message=first_line,
        full_message=full_message,
        author=field_at(2),
        timestamp=_rfc3339(_parse_timestamp(field_at(3))),
    )


def capture_commit(repo: Path | str, timeout_secs: int, spec: str) -> CommitInfo:
    """Read the metadata of the commit that spec names."""
    output = run_git_expect_stdout(repo, timeout_secs, ["log", "-1", _LOG_FORMAT, spec])
    return _parse_log(output)


def capture_repo_state(repo: Path | str, timeout_secs: int, detect_dirty: bool) -> RepoState:
    """Read HEAD's commit and branch, and optionally whether the tree is dirty."""
    output = run_git_expect_stdout(repo, timeout_secs, ["log", "-1", _LOG_FORMAT])
    commit = _parse_log(output)
    branch = run_git_expect_stdout(repo, timeout_secs, ["rev-parse", "--abbrev-ref", "HEAD"])
    dirty = False
    if detect_dirty:
        status = run_git_expect_stdout(repo, timeout_secs, ["status", "--porcelain"])
        dirty = bool(status.strip())
    return RepoState(commit=commit, branch=branch, dirty=dirty)