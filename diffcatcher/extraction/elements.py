"""Detection of changed code elements inside diff hunks."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum

from diffcatcher.extraction.classifier import Language
from diffcatcher.extraction.parser import RawHunk

_MAX_NAME_LEN = 120


class ElementKind(str, Enum):
    """The kind of a code element; declaration order is the sort order."""

    FUNCTION = "Function"
    METHOD = "Method"
    STRUCT = "Struct"
    CLASS = "Class"
    ENUM = "Enum"
    TRAIT = "Trait"
    INTERFACE = "Interface"
    IMPL = "Impl"
    MODULE = "Module"
    IMPORT = "Import"
    CONSTANT = "Constant"
    STATIC = "Static"
    TYPE_ALIAS = "TypeAlias"
    MACRO = "Macro"
    TEST = "Test"
    CONFIG = "Config"
    OTHER = "Other"

    def __str__(self) -> str:
        return self.value

    @property
    def rank(self) -> int:
        return _KIND_RANK[self]


_KIND_RANK = {kind: index for index, kind in enumerate(ElementKind)}


class ChangeType(str, Enum):
    """How an element changed; declaration order is the sort order."""

    ADDED = "Added"
    MODIFIED = "Modified"
    REMOVED = "Removed"

    def __str__(self) -> str:
        return self.value


@dataclass
class DetectedElement:
    """An element found in the changed lines of a file."""

    kind: ElementKind
    name: str
    change_type: ChangeType
    line_range: tuple[int, int] | None = None
    lines_added: int = 0
    lines_removed: int = 0
    enclosing_context: str | None = None
    signature: str | None = None


_Pattern = tuple[ElementKind, "re.Pattern[str]"]


def _patterns(*specs: tuple[ElementKind, str]) -> tuple[_Pattern, ...]:
    return tuple((kind, re.compile(regex)) for kind, regex in specs)


K = ElementKind

_GENERIC = _patterns(
    (K.FUNCTION, r"(?i)^\s*(?:pub\s+)?(?:async\s+)?fn\s+([A-Za-z_][A-Za-z0-9_]*)"),
    (K.FUNCTION, r"(?i)^\s*def\s+([A-Za-z_][A-Za-z0-9_]*)"),
    (K.FUNCTION, r"(?i)^\s*function\s+([A-Za-z_][A-Za-z0-9_]*)"),
    (K.FUNCTION, r"(?i)^\s*func\s+([A-Za-z_][A-Za-z0-9_]*)"),
    (K.STRUCT, r"(?i)^\s*struct\s+([A-Za-z_][A-Za-z0-9_]*)"),
    (K.CLASS, r"(?i)^\s*class\s+([A-Za-z_][A-Za-z0-9_]*)"),
    (K.ENUM, r"(?i)^\s*enum(?:\s+class)?\s+([A-Za-z_][A-Za-z0-9_]*)"),
    (K.TRAIT, r"(?i)^\s*trait\s+([A-Za-z_][A-Za-z0-9_]*)"),
    (K.INTERFACE, r"(?i)^\s*interface\s+([A-Za-z_][A-Za-z0-9_]*)"),
    (K.IMPL, r"(?i)^\s*impl\s+([A-Za-z_][A-Za-z0-9_]*)"),
    (K.TYPE_ALIAS, r"(?i)^\s*type\s+([A-Za-z_][A-Za-z0-9_]*)"),
    (K.IMPORT, r"(?i)^\s*(?:use|import|from\s+.+\s+import|#include)\s+(.+)"),
    (K.MODULE, r"(?i)^\s*(?:mod|module\.exports|package)\s+([A-Za-z_][A-Za-z0-9_\-\.]*)"),
    (K.CONSTANT, r"(?i)^\s*(?:pub\s+)?const\s+([A-Za-z_][A-Za-z0-9_]*)"),
    (K.STATIC, r"(?i)^\s*(?:pub\s+)?static\s+([A-Za-z_][A-Za-z0-9_]*)"),
    (
        K.MACRO,
        r"(?i)^\s*(?:macro_rules!\s*([A-Za-z_][A-Za-z0-9_]*)|#define\s+([A-Za-z_][A-Za-z0-9_]*))",
    ),
    (K.TEST, r"(?i)(#\[test\]|#\[cfg\(test\)\]|\bdescribe\(|\bit\(|\btest_[A-Za-z_0-9]+)"),
)

_RUST = _patterns(
    (
        K.FUNCTION,
        r"^\s*(?:pub(?:\(crate\))?\s+)?(?:async\s+)?(?:unsafe\s+)?fn\s+([A-Za-z_][A-Za-z0-9_]*)",
    ),
    (K.STRUCT, r"^\s*(?:pub(?:\(crate\))?\s+)?struct\s+([A-Za-z_][A-Za-z0-9_]*)"),
    (K.ENUM, r"^\s*(?:pub(?:\(crate\))?\s+)?enum\s+([A-Za-z_][A-Za-z0-9_]*)"),
    (K.TRAIT, r"^\s*(?:pub(?:\(crate\))?\s+)?(?:unsafe\s+)?trait\s+([A-Za-z_][A-Za-z0-9_]*)"),
    (
        K.IMPL,
        r"^\s*(?:unsafe\s+)?impl(?:<[^>]*>)?\s+(?:([A-Za-z_][A-Za-z0-9_:]*)\s+for\s+)?"
        r"([A-Za-z_][A-Za-z0-9_]*)",
    ),
    (K.TYPE_ALIAS, r"^\s*(?:pub(?:\(crate\))?\s+)?type\s+([A-Za-z_][A-Za-z0-9_]*)"),
    (K.MACRO, r"^\s*macro_rules!\s*([A-Za-z_][A-Za-z0-9_]*)"),
    (K.CONSTANT, r"^\s*(?:pub(?:\(crate\))?\s+)?const\s+([A-Za-z_][A-Za-z0-9_]*)"),
    (K.STATIC, r"^\s*(?:pub(?:\(crate\))?\s+)?static\s+(?:mut\s+)?([A-Za-z_][A-Za-z0-9_]*)"),
    (K.MODULE, r"^\s*(?:pub(?:\(crate\))?\s+)?mod\s+([A-Za-z_][A-Za-z0-9_]*)"),
    (K.IMPORT, r"^\s*use\s+(.+)"),
    (K.TEST, r"#\[(?:test|cfg\(test\))\]"),
)

_PYTHON = _patterns(
    (K.FUNCTION, r"^\s*(?:async\s+)?def\s+([A-Za-z_][A-Za-z0-9_]*)"),
    (K.CLASS, r"^\s*class\s+([A-Za-z_][A-Za-z0-9_]*)"),
    (K.IMPORT, r"^\s*(?:from\s+\S+\s+)?import\s+(.+)"),
    (K.CONSTANT, r"^([A-Z][A-Z0-9_]+)\s*="),
    (K.TEST, r"^\s*def\s+(test_[A-Za-z0-9_]*)"),
    (K.CONFIG, r"^\s*@(\w+)"),
)

_JAVASCRIPT = _patterns(
    (K.FUNCTION, r"^\s*(?:export\s+)?(?:async\s+)?function\s+([A-Za-z_$][A-Za-z0-9_$]*)"),
    (
        K.FUNCTION,
        r"^\s*(?:export\s+)?(?:const|let|var)\s+([A-Za-z_$][A-Za-z0-9_$]*)\s*=\s*(?:async\s+)?\(",
    ),
    (
        K.FUNCTION,
        r"^\s*(?:export\s+)?(?:const|let|var)\s+([A-Za-z_$][A-Za-z0-9_$]*)\s*=\s*(?:async\s+)?"
        r"(?:\([^)]*\)|[A-Za-z_$][A-Za-z0-9_$]*)\s*=>",
    ),
    (K.CLASS, r"^\s*(?:export\s+)?class\s+([A-Za-z_$][A-Za-z0-9_$]*)"),
    (K.IMPORT, r"^\s*import\s+(.+)"),
    (K.IMPORT, r"^\s*(?:const|let|var)\s+.+=\s*require\("),
    (K.MODULE, r"^\s*module\.exports\s*="),
    (K.CONSTANT, r"^\s*(?:export\s+)?const\s+([A-Z][A-Z0-9_]+)\s*="),
    (K.INTERFACE, r"^\s*(?:export\s+)?interface\s+([A-Za-z_$][A-Za-z0-9_$]*)"),
    (K.TYPE_ALIAS, r"^\s*(?:export\s+)?type\s+([A-Za-z_$][A-Za-z0-9_$]*)"),
    (K.ENUM, r"^\s*(?:export\s+)?enum\s+([A-Za-z_$][A-Za-z0-9_$]*)"),
    (K.TEST, r"^\s*(?:describe|it|test)\s*\("),
)

_GO = _patterns(
    (K.FUNCTION, r"^\s*func\s+([A-Za-z_][A-Za-z0-9_]*)"),
    (K.METHOD, r"^\s*func\s+\([^)]+\)\s+([A-Za-z_][A-Za-z0-9_]*)"),
    (K.STRUCT, r"^\s*type\s+([A-Za-z_][A-Za-z0-9_]*)\s+struct\b"),
    (K.INTERFACE, r"^\s*type\s+([A-Za-z_][A-Za-z0-9_]*)\s+interface\b"),
    (K.TYPE_ALIAS, r"^\s*type\s+([A-Za-z_][A-Za-z0-9_]*)\s+[^si]"),
    (K.IMPORT, r"^\s*import\s+(.+)"),
    (K.CONSTANT, r"^\s*const\s+([A-Za-z_][A-Za-z0-9_]*)"),
    (K.STATIC, r"^\s*var\s+([A-Za-z_][A-Za-z0-9_]*)"),
    (K.MODULE, r"^\s*package\s+([A-Za-z_][A-Za-z0-9_]*)"),
    (K.TEST, r"^\s*func\s+(Test[A-Za-z0-9_]*)"),
)

_JAVA_KOTLIN = _patterns(
    (
        K.CLASS,
        r"^\s*(?:public|private|protected)?\s*(?:abstract|final|sealed)?\s*(?:data\s+)?"
        r"class\s+([A-Za-z_][A-Za-z0-9_]*)",
    ),
    (K.INTERFACE, r"^\s*(?:public|private|protected)?\s*interface\s+([A-Za-z_][A-Za-z0-9_]*)"),
    (
        K.ENUM,
        r"^\s*(?:public|private|protected)?\s*enum\s+(?:class\s+)?([A-Za-z_][A-Za-z0-9_]*)",
    ),
    (
        K.FUNCTION,
        r"^\s*(?:public|private|protected)?\s*(?:static\s+)?(?:final\s+)?(?:suspend\s+)?"
        r"(?:fun|void|int|long|String|boolean|double|float|[A-Z][A-Za-z0-9_<>,\s]*)\s+"
        r"([a-z_][A-Za-z0-9_]*)\s*\(",
    ),
    (
        K.FUNCTION,
        r"^\s*(?:(?:public|private|protected|internal)\s+)?(?:suspend\s+)?fun\s+"
        r"([A-Za-z_][A-Za-z0-9_]*)",
    ),
    (K.IMPORT, r"^\s*import\s+(.+)"),
    (K.MODULE, r"^\s*package\s+(.+)"),
    (
        K.CONSTANT,
        r"^\s*(?:public|private|protected)?\s*(?:static\s+)?(?:final\s+)?(?:val|const)\s+"
        r"([A-Za-z_][A-Za-z0-9_]*)",
    ),
    (K.CONFIG, r"^\s*@([A-Za-z_][A-Za-z0-9_]*)"),
    (K.TEST, r"@Test|@ParameterizedTest|@RepeatedTest"),
)

_RUBY = _patterns(
    (K.FUNCTION, r"^\s*def\s+(?:self\.)?([A-Za-z_][A-Za-z0-9_!?]*)"),
    (K.CLASS, r"^\s*class\s+([A-Za-z_][A-Za-z0-9_]*)"),
    (K.MODULE, r"^\s*module\s+([A-Za-z_][A-Za-z0-9_]*)"),
    (K.IMPORT, r"^\s*require(?:_relative)?\s+(.+)"),
    (K.IMPORT, r"^\s*include\s+([A-Za-z_][A-Za-z0-9_:]*)"),
    (K.CONFIG, r"^\s*attr_(?:accessor|reader|writer)\s+(.+)"),
    (K.CONSTANT, r"^\s*([A-Z][A-Z0-9_]+)\s*="),
    (K.TEST, r"""^\s*(?:def\s+test_|it\s+['"]|describe\s+['"])"""),
)

_C_CPP = _patterns(
    (
        K.FUNCTION,
        r"^\s*(?:static\s+)?(?:inline\s+)?(?:virtual\s+)?(?:const\s+)?(?:unsigned\s+)?"
        r"(?:void|int|long|char|float|double|bool|auto|"
        r"[A-Z][A-Za-z0-9_]*(?:::[A-Za-z0-9_]*)*[*&\s]*)\s+([A-Za-z_][A-Za-z0-9_:]*)\s*\(",
    ),
    (K.STRUCT, r"^\s*(?:typedef\s+)?struct\s+([A-Za-z_][A-Za-z0-9_]*)"),
    (K.CLASS, r"^\s*class\s+([A-Za-z_][A-Za-z0-9_]*)"),
    (K.ENUM, r"^\s*enum\s+(?:class\s+)?([A-Za-z_][A-Za-z0-9_]*)"),
    (K.IMPORT, r"^\s*#include\s+(.+)"),
    (K.MACRO, r"^\s*#define\s+([A-Za-z_][A-Za-z0-9_]*)"),
    (K.TYPE_ALIAS, r"^\s*(?:typedef|using)\s+.+\s+([A-Za-z_][A-Za-z0-9_]*)"),
    (K.MODULE, r"^\s*namespace\s+([A-Za-z_][A-Za-z0-9_]*)"),
    (
        K.CONSTANT,
        r"^\s*(?:static\s+)?(?:const(?:expr)?\s+)([A-Za-z_][A-Za-z0-9_]*(?:::[A-Za-z0-9_]*)*)",
    ),
)

_SHELL = _patterns(
    (K.FUNCTION, r"^\s*(?:function\s+)?([A-Za-z_][A-Za-z0-9_]*)\s*\(\)"),
    (K.FUNCTION, r"^\s*function\s+([A-Za-z_][A-Za-z0-9_]*)"),
    (K.CONSTANT, r"^\s*(?:export\s+)?([A-Z][A-Z0-9_]+)="),
    (K.IMPORT, r"^\s*(?:source|\\.)\s+(.+)"),
)

del K

_BY_LANGUAGE: dict[Language, tuple[_Pattern, ...]] = {
    Language.RUST: _RUST,
    Language.PYTHON: _PYTHON,
    Language.JAVASCRIPT: _JAVASCRIPT,
    Language.TYPESCRIPT: _JAVASCRIPT,
    Language.GO: _GO,
    Language.JAVA: _JAVA_KOTLIN,
    Language.KOTLIN: _JAVA_KOTLIN,
    Language.RUBY: _RUBY,
    Language.C: _C_CPP,
    Language.CPP: _C_CPP,
    Language.SHELL: _SHELL,
}


@dataclass
class _Tracker:
    kind: ElementKind
    name: str
    context: str | None
    line_range: tuple[int, int] | None
    plus: bool = False
    minus: bool = False
    lines_added: int = 0
    lines_removed: int = 0
    signature: str | None = None

    def record(self, sign: str | None) -> None:
        if sign == "+":
            self.plus = True
            self.lines_added += 1
        elif sign == "-":
            self.minus = True
            self.lines_removed += 1

    @property
    def change_type(self) -> ChangeType:
        if self.plus and not self.minus:
            return ChangeType.ADDED
        if self.minus and not self.plus:
            return ChangeType.REMOVED
        return ChangeType.MODIFIED


def _lines(text: str) -> list[str]:
    if not text:
        return []
    parts = text.split("\n")
    if parts[-1] == "":
        parts.pop()
    return [part[:-1] if part.endswith("\r") else part for part in parts]


def _hunk_range(hunk: RawHunk) -> tuple[int, int]:
    return hunk.new_start, hunk.new_start + max(hunk.new_count - 1, 0)


def _group(match: re.Match[str], index: int) -> str | None:
    if index > match.re.groups:
        return None
    return match.group(index)


def _element_name(match: re.Match[str]) -> str:
    first = _group(match, 1)
    name = first.strip() if first is not None else ""
    if not name:
        second = _group(match, 2)
        name = second.strip() if second is not None else "anonymous"
    return name[:_MAX_NAME_LEN]


def detect_elements(
    file_path: str,
    hunks: list[RawHunk],
    max_elements: int,
    language: Language,
) -> list[DetectedElement]:
    """Find the elements touched by a file's hunks, at most max_elements of them."""
    patterns = _BY_LANGUAGE.get(language, _GENERIC)
    trackers: dict[tuple[ElementKind, str], _Tracker] = {}

    def tracker_for(kind: ElementKind, name: str, hunk: RawHunk) -> _Tracker:
        key = (kind, name)
        if key not in trackers:
            trackers[key] = _Tracker(
                kind=kind,
                name=name,
                context=hunk.context_function,
                line_range=_hunk_range(hunk),
            )
        return trackers[key]

    for hunk in hunks:
        saw_specific = False
        for line in _lines(hunk.lines):
            sign = line[0] if line[:1] in ("+", "-") else None
            content = line[1:] if sign else line

            for kind, regex in patterns:
                match = regex.search(content)
                if match is None:
                    continue
                saw_specific = True
                tracker = tracker_for(kind, _element_name(match), hunk)
                if tracker.signature is None:
                    tracker.signature = content.strip()
                tracker.record(sign)

        if not saw_specific:
            name = hunk.context_function or f"body_changes_hunk_{hunk.new_start}"
            tracker = tracker_for(ElementKind.OTHER, name, hunk)
            for line in _lines(hunk.lines):
                if line[:1] in ("+", "-"):
                    tracker.record(line[0])

        if len(trackers) >= max_elements:
            break

    ordered = sorted(trackers.values(), key=lambda t: (t.kind.rank, t.name))
    elements = [
        DetectedElement(
            kind=tr.kind,
            name=tr.name,
            change_type=tr.change_type,
            line_range=tr.line_range,
            lines_added=tr.lines_added,
            lines_removed=tr.lines_removed,
            enclosing_context=tr.context,
            signature=tr.signature,
        )
        for tr in ordered[:max_elements]
    ]

    if not elements:
        elements.append(
            DetectedElement(
                kind=ElementKind.OTHER,
                name=f"body_changes_in_{file_path}",
                change_type=ChangeType.MODIFIED,
            )
        )
    return elements