"""Diff pairs, diff artifact generation and parsing of git's diff summaries."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from diffcatcher.errors import PatrolError
from diffcatcher.git.commands import run_git, run_git_expect_stdout

_U32_RE = re.compile(r"\+?[0-9]+")
_U32_MAX = 2**32 - 1


class FileStatus(str, Enum):
    """How a file changed between two commits."""

    ADDED = "Added"
    DELETED = "Deleted"
    MODIFIED = "Modified"
    RENAMED = "Renamed"
    COPIED = "Copied"
    UNKNOWN = "Unknown"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class DiffPair:
    """Two revisions to diff, with a label used in file names."""

    label: str
    from_: str
    to: str


@dataclass(frozen=True)
class NameStatusEntry:
    """One line of `git diff --name-status`."""

    status: FileStatus
    old_path: str | None
    new_path: str


@dataclass
class GeneratedDiffArtifacts:
    """Names of the files written for a diff and the counts read back from git."""

    patch_filename: str
    changes_filename: str
    files_changed: int = 0
    insertions: int = 0
    deletions: int = 0
    name_status: dict[str, NameStatusEntry] = field(default_factory=dict)


def commit_exists(repo: Path | str, timeout_secs: int, spec: str) -> bool:
    """Whether spec resolves to an object in the repository."""
    try:
        out = run_git(repo, timeout_secs, ["rev-parse", "--verify", "--quiet", spec])
    except PatrolError:
        return False
    return out.ok()


def build_history_pairs(
    head_hash: str, history_depth: int, include_current_pair: bool
) -> list[DiffPair]:
    """Pairs of consecutive ancestors of head_hash, newest first."""
    pairs: list[DiffPair] = []
    if include_current_pair:
        pairs.append(DiffPair("N_vs_N-1", f"{head_hash}~1", head_hash))
    if history_depth >= 2:
        pairs.append(DiffPair("N-1_vs_N-2", f"{head_hash}~2", f"{head_hash}~1"))
    for idx in range(2, history_depth):
        pairs.append(
            DiffPair(
                f"N-{idx}_vs_N-{idx + 1}",
                f"{head_hash}~{idx + 1}",
                f"{head_hash}~{idx}",
            )
        )
    return pairs


def generate_diff_artifacts(
    repo: Path | str, diff_dir: Path | str, timeout_secs: int, pair: DiffPair
) -> GeneratedDiffArtifacts:
    """Write the patch and change list for a pair and return what git reported."""
    diff_dir = Path(diff_dir)
    diff_dir.mkdir(parents=True, exist_ok=True)

    patch_filename = f"diff_{pair.label}.patch"
    changes_filename = f"changes_{pair.label}.txt"
    revision_range = f"{pair.from_}..{pair.to}"

    patch_output = run_git(repo, timeout_secs, ["diff", revision_range])
    (diff_dir / patch_filename).write_bytes(patch_output.stdout.encode("utf-8"))

    name_status_output = run_git(repo, timeout_secs, ["diff", "--name-status", revision_range])
    try:
        numstat_output = run_git_expect_stdout(
            repo, timeout_secs, ["diff", "--numstat", revision_range]
        )
    except PatrolError:
        numstat_output = ""

    parts: list[str] = []
    if numstat_output:
        parts.append(f"# numstat\n{numstat_output}\n")
    if name_status_output.stdout:
        parts.append(f"\n# name-status\n{name_status_output.stdout}\n")
    (diff_dir / changes_filename).write_bytes("".join(parts).encode("utf-8"))

    files_changed, insertions, deletions = parse_numstat(numstat_output)
    return GeneratedDiffArtifacts(
        patch_filename=patch_filename,
        changes_filename=changes_filename,
        files_changed=files_changed,
        insertions=insertions,
        deletions=deletions,
        name_status=parse_name_status(name_status_output.stdout),
    )


def _parse_count(raw: str) -> int | None:
    if not _U32_RE.fullmatch(raw):
        return None
    value = int(raw)
    return value if value <= _U32_MAX else None


def parse_numstat(text: str) -> tuple[int, int, int]:
    """Sum `git diff --numstat` output into (files, insertions, deletions)."""
    files_changed = insertions = deletions = 0
    for line in text.splitlines():
        fields = line.split("\t")
        added = fields[0]
        removed = fields[1] if len(fields) > 1 else ""
        path = fields[2] if len(fields) > 2 else ""
        if not path:
            continue
        files_changed += 1
        insertions += _parse_count(added) or 0
        deletions += _parse_count(removed) or 0
    return files_changed, insertions, deletions


_STATUS_BY_LETTER = {
    "A": FileStatus.ADDED,
    "D": FileStatus.DELETED,
    "M": FileStatus.MODIFIED,
}


def parse_name_status(text: str) -> dict[str, NameStatusEntry]:
    """Map each new path in `git diff --name-status` output to its entry, sorted by path."""
    entries: dict[str, NameStatusEntry] = {}
    for line in text.splitlines():
        fields = line.split("\t")
        token = fields[0].strip()
        if not token:
            continue
        if token[0] in ("R", "C"):
            old_path = fields[1] if len(fields) > 1 else ""
            new_path = fields[2] if len(fields) > 2 else ""
            status = FileStatus.RENAMED if token[0] == "R" else FileStatus.COPIED
            entry = NameStatusEntry(status, old_path, new_path)
        else:
            new_path = fields[1] if len(fields) > 1 else ""
            status = _STATUS_BY_LETTER.get(token[0], FileStatus.UNKNOWN)
            entry = NameStatusEntry(status, None, new_path)
        if new_path:
            entries[new_path] = entry
    return dict(sorted(entries.items()))


def safe_diff_pair(repo: Path | str, timeout_secs: int, pair: DiffPair) -> bool:
    """Whether both ends of the pair exist in the repository."""
    return commit_exists(repo, timeout_secs, pair.from_) and commit_exists(
        repo, timeout_secs, pair.to
    )


def path_in_repo(base: Path | str, child: str) -> Path:
    """Join a repository-relative path onto the repository root."""
    return Path(base) / child