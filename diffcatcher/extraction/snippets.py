"""Before/after code snippets for changed elements."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from diffcatcher.extraction.boundary import truncate_with_limit, try_capture_full_element
from diffcatcher.extraction.elements import ChangeType, DetectedElement
from diffcatcher.extraction.parser import RawHunk


class ScopeKind(str, Enum):
    """How much code a snippet captures."""

    DIFF_ONLY = "DiffOnly"
    HUNK_WITH_CONTEXT = "HunkWithContext"
    FULL_ELEMENT = "FullElement"
    TRUNCATED = "Truncated"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class CaptureScope:
    """The capture scope of a snippet, with the numbers that go with its kind."""

    kind: ScopeKind
    context_lines: int | None = None
    actual_lines: int | None = None
    max_lines: int | None = None

    @classmethod
    def diff_only(cls) -> CaptureScope:
        return cls(ScopeKind.DIFF_ONLY)

    @classmethod
    def hunk_with_context(cls, context_lines: int) -> CaptureScope:
        return cls(ScopeKind.HUNK_WITH_CONTEXT, context_lines=context_lines)

    @classmethod
    def full_element(cls) -> CaptureScope:
        return cls(ScopeKind.FULL_ELEMENT)

    @classmethod
    def truncated(cls, actual_lines: int, max_lines: int) -> CaptureScope:
        return cls(ScopeKind.TRUNCATED, actual_lines=actual_lines, max_lines=max_lines)


@dataclass
class SnippetContent:
    """Code of an element as it stands at one commit."""

    code: str
    start_line: int
    end_line: int
    commit: str


@dataclass
class CodeSnippet:
    """Before and after views of an element plus the raw diff lines behind them."""

    before: SnippetContent | None
    after: SnippetContent | None
    diff_lines: str
    capture_scope: CaptureScope


@dataclass(frozen=True)
class SnippetOptions:
    """Limits for snippet capture."""

    context_lines: int = 5
    max_snippet_lines: int = 200
    no_snippets: bool = False


def _lines(text: str) -> list[str]:
    if not text:
        return []
    parts = text.split("\n")
    if parts[-1] == "":
        parts.pop()
    return [part[:-1] if part.endswith("\r") else part for part in parts]


def _relevant_hunks(element: DetectedElement, hunks: list[RawHunk]) -> list[RawHunk]:
    by_context = [
        h for h in hunks if h.context_function is not None and element.name in h.context_function
    ]
    if by_context:
        return by_context

    if element.line_range is not None:
        start = element.line_range[0]
        by_range = [h for h in hunks if h.new_start <= start <= h.new_start + h.new_count]
        if by_range:
            return by_range

    return list(hunks)


def _joined(lines: list[str]) -> str | None:
    return "\n".join(lines) if lines else None


def _split_before_after(hunks: list[RawHunk]) -> tuple[str | None, str | None]:
    before: list[str] = []
    after: list[str] = []
    for hunk in hunks:
        for line in _lines(hunk.lines):
            marker, rest = line[:1], line[1:]
            if marker == "-":
                before.append(rest)
            elif marker == "+":
                after.append(rest)
            elif marker == " ":
                before.append(rest)
                after.append(rest)
            else:
                # Special diff markers stay visible in both views.
                before.append(line)
                after.append(line)
    return _joined(before), _joined(after)


def _split_from_diff_lines(text: str) -> tuple[str | None, str | None]:
    before: list[str] = []
    after: list[str] = []
    for line in _lines(text):
        marker, rest = line[:1], line[1:]
        if marker == "-":
            before.append(rest)
        elif marker == "+":
            after.append(rest)
        elif marker == " ":
            before.append(rest)
            after.append(rest)
    return _joined(before), _joined(after)


def _render(
    code: str,
    commit: str,
    element: DetectedElement,
    options: SnippetOptions,
    scope: CaptureScope,
) -> tuple[SnippetContent, CaptureScope]:
    full = try_capture_full_element(code)
    if full is not None:
        scope = CaptureScope.full_element()
        code = full
    clipped, truncated, actual = truncate_with_limit(code, options.max_snippet_lines)
    if truncated:
        scope = CaptureScope.truncated(actual, options.max_snippet_lines)
    start, end = element.line_range if element.line_range is not None else (0, 0)
    return SnippetContent(code=clipped, start_line=start, end_line=end, commit=commit), scope


def build_snippet(
    element: DetectedElement,
    hunks: list[RawHunk],
    from_commit: str,
    to_commit: str,
    options: SnippetOptions,
) -> CodeSnippet:
    """Build the snippet for an element from the hunks that concern it."""
    relevant = _relevant_hunks(element, hunks)
    diff_lines = "\n".join(h.lines for h in relevant)

    if options.no_snippets:
        return CodeSnippet(None, None, diff_lines, CaptureScope.diff_only())

    before_code, after_code = _split_before_after(relevant)

    if element.change_type is ChangeType.MODIFIED:
        if before_code is None and after_code is None:
            before_code, after_code = _split_from_diff_lines(diff_lines)
        if before_code is None and after_code is None:
            before_code, after_code = "", ""
        if before_code is None:
            before_code = after_code
        if after_code is None:
            after_code = before_code

    scope = CaptureScope.hunk_with_context(options.context_lines)

    before = None
    if element.change_type is not ChangeType.ADDED and before_code is not None:
        before, scope = _render(before_code, from_commit, element, options, scope)

    after = None
    if element.change_type is not ChangeType.REMOVED and after_code is not None:
        after, scope = _render(after_code, to_commit, element, options, scope)

    return CodeSnippet(before=before, after=after, diff_lines=diff_lines, capture_scope=scope)