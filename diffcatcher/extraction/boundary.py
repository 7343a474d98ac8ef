"""Snippet boundary detection and truncation."""

from __future__ import annotations


def _lines(text: str) -> list[str]:
    """Split on newlines, dropping one trailing empty line and any CR before LF."""
    if not text:
        return []
    parts = text.split("\n")
    if parts[-1] == "":
        parts.pop()
    return [part[:-1] if part.endswith("\r") else part for part in parts]


def truncate_with_limit(code: str, max_lines: int) -> tuple[str, bool, int]:
    """Clip code to max_lines lines; return (code, truncated, actual_line_count)."""
    lines = _lines(code)
    actual = len(lines)
    if actual <= max_lines:
        return code, False, actual
    return "\n".join(lines[:max_lines]), True, actual


def try_capture_full_element(code: str) -> str | None:
    """Return the first complete brace- or indentation-delimited block, if any."""
    lines = _lines(code)
    if not lines:
        return None
    captured = _capture_brace_block(lines)
    if captured is not None:
        return captured
    return _capture_indentation_block(lines)


def _capture_brace_block(lines: list[str]) -> str | None:
    start = next(
        (i for i, line in enumerate(lines) if "{" in line or line.lstrip().startswith("fn ")),
        None,
    )
    if start is None:
        return None

    started = False
    depth = 0
    for offset in range(start, len(lines)):
        for ch in lines[offset]:
            if ch == "{":
                depth += 1
                started = True
            elif ch == "}" and started:
                depth -= 1
        if started and depth == 0:
            return "\n".join(lines[start : offset + 1])
    return None


def _capture_indentation_block(lines: list[str]) -> str | None:
    start = next(
        (i for i, line in enumerate(lines) if line.rstrip().endswith(":") and line.strip()),
        None,
    )
    if start is None:
        return None

    base_indent = _indentation(lines[start])
    end = start
    for idx, line in enumerate(lines[start + 1 :], start=start + 1):
        if not line.strip():
            end = idx
            continue
        if _indentation(line) <= base_indent:
            break
        end = idx

    if end > start:
        return "\n".join(lines[start : end + 1])
    return None


def _indentation(line: str) -> int:
    return len(line) - len(line.lstrip())