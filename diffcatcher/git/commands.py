"""Running git as a subprocess."""

from __future__ import annotations

import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Sequence

from diffcatcher.errors import GitCommandError, GitTimeoutError


@dataclass(frozen=True)
class GitCommandOutput:
    """Exit code and trimmed output of a finished git command."""

    returncode: int
    stdout: str
    stderr: str

    def ok(self) -> bool:
        """Whether git exited successfully."""
        return self.returncode == 0


def _decode(data: bytes) -> str:
    return data.decode("utf-8", errors="replace").strip()


def run_git(repo: Path | str, timeout_secs: int, args: Sequence[str]) -> GitCommandOutput:
    """Run `git -C repo args...`; a timeout of 0 means no limit."""
    args = list(args)
    repo_name = str(repo)
    try:
        completed = subprocess.run(
            ["git", "-C", repo_name, *args],
            stdin=subprocess.DEVNULL,
            capture_output=True,
            timeout=timeout_secs or None,
            check=False,
        )
    except subprocess.TimeoutExpired:
        raise GitTimeoutError(repo_name, "git " + " ".join(args)) from None
    except OSError as err:
        raise GitCommandError(
            repo_name, f"failed to spawn git with args {args!r}: {err}"
        ) from err

    return GitCommandOutput(
        returncode=completed.returncode,
        stdout=_decode(completed.stdout),
        stderr=_decode(completed.stderr),
    )


def run_git_expect_stdout(repo: Path | str, timeout_secs: int, args: Sequence[str]) -> str:
    """Run git and return its stdout, raising GitCommandError if it fails."""
    args = list(args)
    out = run_git(repo, timeout_secs, args)
    if not out.ok():
        detail = out.stderr or out.stdout
        raise GitCommandError(str(repo), f"git {' '.join(args)} failed: {detail}")
    return out.stdout