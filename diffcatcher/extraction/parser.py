"""Parser for git's unified diff output."""

from __future__ import annotations

import re
from dataclasses import dataclass, field

_HUNK_RE = re.compile(r"^@@\s+-(\d+)(?:,(\d+))?\s+\+(\d+)(?:,(\d+))?\s+@@\s*(.*)$")
_U32_MAX = 2**32 - 1


@dataclass
class RawHunk:
    """One change block of a file diff; `lines` holds its body, newline-terminated."""

    header: str
    old_start: int
    old_count: int
    new_start: int
    new_count: int
    context_function: str | None = None
    lines: str = ""


@dataclass
class ParsedFileDiff:
    """All changes to one file."""

    new_path: str
    old_path: str | None = None
    hunks: list[RawHunk] = field(default_factory=list)
    insertions: int = 0
    deletions: int = 0
    is_binary: bool = False


@dataclass
class ParsedDiff:
    """Every file touched by a diff, in order of appearance."""

    files: list[ParsedFileDiff] = field(default_factory=list)


def _lines(text: str) -> list[str]:
    if not text:
        return []
    parts = text.split("\n")
    if parts[-1] == "":
        parts.pop()
    return [part[:-1] if part.endswith("\r") else part for part in parts]


def _parse_u32(raw: str | None, default: int) -> int:
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError:
        return default
    return value if 0 <= value <= _U32_MAX else default


def _strip_prefix(text: str, prefix: str) -> str:
    return text[len(prefix) :] if text.startswith(prefix) else text


def _header_path(raw: str) -> str:
    return raw.split("\t", 1)[0].strip()


def _parse_hunk_header(line: str, match: re.Match[str]) -> RawHunk:
    context = (match.group(5) or "").strip()
    return RawHunk(
        header=line,
        old_start=_parse_u32(match.group(1), 0),
        old_count=_parse_u32(match.group(2), 1),
        new_start=_parse_u32(match.group(3), 0),
        new_count=_parse_u32(match.group(4), 1),
        context_function=context or None,
    )


def _apply_binary_line(file: ParsedFileDiff, rest: str) -> None:
    file.is_binary = True
    if " and " not in rest:
        return
    left, right = rest.split(" and ", 1)
    left_path = left.strip()
    right_path = right.removesuffix(" differ").strip()
    if left_path == "/dev/null":
        file.old_path = None
    else:
        file.old_path = _strip_prefix(left_path, "a/")
    if right_path != "/dev/null":
        file.new_path = _strip_prefix(right_path, "b/")


def parse_unified_diff(text: str) -> ParsedDiff:
    """Parse `git diff` output into files, hunks and line counts."""
    parsed = ParsedDiff()
    current_file: ParsedFileDiff | None = None
    current_hunk: RawHunk | None = None

    def close_file() -> None:
        if current_file is None:
            return
        if current_hunk is not None:
            current_file.hunks.append(current_hunk)
        parsed.files.append(current_file)

    for line in _lines(text):
        if line.startswith("diff --git "):
            close_file()
            current_hunk = None
            parts = line[len("diff --git ") :].split()
            a = parts[0] if parts else "a/"
            b = parts[1] if len(parts) > 1 else "b/"
            current_file = ParsedFileDiff(
                new_path=_strip_prefix(b, "b/"),
                old_path=_strip_prefix(a, "a/"),
            )
            continue

        if current_file is None:
            continue
        file = current_file

        if line.startswith("Binary files "):
            _apply_binary_line(file, line[len("Binary files ") :])
            continue
        if line.startswith("+++ "):
            new_path = _header_path(line[4:])
            if new_path != "/dev/null":
                file.new_path = _strip_prefix(new_path, "b/")
            continue
        if line.startswith("--- "):
            old_path = _header_path(line[4:])
            file.old_path = None if old_path == "/dev/null" else _strip_prefix(old_path, "a/")
            continue
        if line.startswith("rename from "):
            file.old_path = line[len("rename from ") :]
            continue
        if line.startswith("rename to "):
            file.new_path = line[len("rename to ") :]
            continue

        match = _HUNK_RE.match(line)
        if match:
            if current_hunk is not None:
                file.hunks.append(current_hunk)
            current_hunk = _parse_hunk_header(line, match)
            continue

        if current_hunk is not None:
            if line.startswith("+") and not line.startswith("+++"):
                file.insertions += 1
            elif line.startswith("-") and not line.startswith("---"):
                file.deletions += 1
            current_hunk.lines += line + "\n"

    close_file()
    return parsed