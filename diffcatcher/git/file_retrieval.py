"""Reading file contents at a given commit."""

from __future__ import annotations

from pathlib import Path

from diffcatcher.errors import PatrolError
from diffcatcher.git.commands import run_git, run_git_expect_stdout

_MISSING_MARKERS = ("exists on disk", "does not exist", "Path '")


def show_file(
    repo: Path | str, commit: str, file_path: str, timeout_secs: int
) -> str | None:
    """Return the (trimmed) contents of file_path at commit, or None if it is absent."""
    spec = f"{commit}:{file_path}"
    out = run_git(repo, timeout_secs, ["show", spec])
    if out.ok():
        return out.stdout

    # Missing files are expected around additions, deletions and renames.
    if any(marker in out.stderr for marker in _MISSING_MARKERS):
        return None

    try:
        run_git_expect_stdout(repo, timeout_secs, ["cat-file", "-e", spec])
    except PatrolError:
        return None
    return out.stdout