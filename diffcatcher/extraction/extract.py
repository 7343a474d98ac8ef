"""Turning a unified diff into per-file element reports and a summary."""

from __future__ import annotations

from dataclasses import dataclass, field

from diffcatcher.extraction.classifier import Language, classify_language
from diffcatcher.extraction.elements import ChangeType, ElementKind, detect_elements
from diffcatcher.extraction.parser import RawHunk, parse_unified_diff
from diffcatcher.extraction.plugins import ExtractorPlugin, detect_plugin_elements
from diffcatcher.extraction.snippets import CodeSnippet, SnippetOptions, build_snippet
from diffcatcher.git.diff import FileStatus, NameStatusEntry

_TOP_ELEMENTS = 10
_SECURITY_BONUS = 50

_KIND_BONUS = {
    ElementKind.FUNCTION: 10,
    ElementKind.METHOD: 10,
    ElementKind.STRUCT: 8,
    ElementKind.CLASS: 8,
    ElementKind.TRAIT: 8,
    ElementKind.INTERFACE: 8,
    ElementKind.ENUM: 6,
    ElementKind.IMPL: 6,
    ElementKind.CONSTANT: 4,
    ElementKind.STATIC: 4,
    ElementKind.TYPE_ALIAS: 4,
    ElementKind.MACRO: 5,
    ElementKind.TEST: 3,
    ElementKind.MODULE: 2,
    ElementKind.IMPORT: 1,
    ElementKind.CONFIG: 1,
    ElementKind.OTHER: 0,
}

_VENDOR_DIRS = (
    "/node_modules/",
    "/vendor/",
    "/third_party/",
    "/third-party/",
    "/build/",
    "/dist/",
    "/.next/",
    "/__pycache__/",
    "/.venv/",
    "/venv/",
    "/target/",
    "/bower_components/",
    "/packages/",
)
_GENERATED_SUFFIXES = (
    ".min.js",
    ".min.css",
    ".bundle.js",
    ".chunk.js",
    ".generated.rs",
    ".pb.go",
    ".pb.rs",
)
_LOCK_FILES = frozenset(
    {
        "package-lock.json",
        "yarn.lock",
        "pnpm-lock.yaml",
        "cargo.lock",
        "poetry.lock",
        "composer.lock",
        "gemfile.lock",
        "go.sum",
    }
)
_TEST_MARKERS = ("/test", "/tests", "/spec", "__tests__")
_TEST_SUFFIXES = ("_test.rs", "_test.py", "_spec.rb")


@dataclass
class ExtractionOptions:
    """What to extract from a diff and how much of it."""

    no_summary_extraction: bool = False
    no_snippets: bool = False
    snippet_context: int = 5
    max_snippet_lines: int = 200
    max_elements: int = 500
    include_vendor: bool = False
    plugin_extractors: list[ExtractorPlugin] = field(default_factory=list)


@dataclass
class ChangedElement:
    """An element changed in a file, with its snippet."""

    kind: ElementKind
    name: str
    change_type: ChangeType
    file_path: str
    line_range: tuple[int, int] | None
    lines_added: int
    lines_removed: int
    enclosing_context: str | None
    signature: str | None
    snippet: CodeSnippet
    security_tags: list[str] = field(default_factory=list)
    in_test: bool = False
    snippet_files: list[str] | None = None


@dataclass
class KindCounts:
    """Per-kind counts of added, modified and removed elements."""

    added: int = 0
    modified: int = 0
    removed: int = 0


@dataclass
class ElementSummary:
    """Totals and highlights over every element of a diff."""

    total_elements: int
    by_change_type: dict[ChangeType, int]
    by_kind: dict[ElementKind, KindCounts]
    elements: list[ChangedElement]
    top_elements: list[str]


@dataclass
class FileChangeDetail:
    """Everything known about the change to one file."""

    path: str
    old_path: str | None
    status: FileStatus
    language: Language
    insertions: int
    deletions: int
    elements: list[ChangedElement]
    raw_hunks: list[RawHunk]
    is_binary: bool


def is_vendor_or_generated(path: str) -> bool:
    """Whether a path looks like vendored, built or generated code, or a lock file."""
    lowered = path.lower()
    if any(d in lowered for d in _VENDOR_DIRS):
        return True
    return lowered.endswith(_GENERATED_SUFFIXES) or lowered in _LOCK_FILES


def is_test_path(path: str) -> bool:
    """Whether a path looks like test code."""
    lowered = path.lower()
    return any(m in lowered for m in _TEST_MARKERS) or lowered.endswith(_TEST_SUFFIXES)


def _extract_elements(
    file_path: str,
    hunks: list[RawHunk],
    language: Language,
    from_commit: str,
    to_commit: str,
    options: ExtractionOptions,
) -> list[ChangedElement]:
    detected = detect_elements(file_path, hunks, options.max_elements, language)
    if options.plugin_extractors and len(detected) < options.max_elements:
        detected.extend(
            detect_plugin_elements(
                file_path,
                hunks,
                language,
                options.plugin_extractors,
                options.max_elements - len(detected),
            )
        )

    snippet_options = SnippetOptions(
        context_lines=options.snippet_context,
        max_snippet_lines=options.max_snippet_lines,
        no_snippets=options.no_snippets,
    )
    in_test = is_test_path(file_path)
    return [
        ChangedElement(
            kind=element.kind,
            name=element.name,
            change_type=element.change_type,
            file_path=file_path,
            line_range=element.line_range,
            lines_added=element.lines_added,
            lines_removed=element.lines_removed,
            enclosing_context=element.enclosing_context,
            signature=element.signature,
            snippet=build_snippet(element, hunks, from_commit, to_commit, snippet_options),
            in_test=in_test,
        )
        for element in detected
    ]


def extract_from_patch(
    patch_text: str,
    name_status: dict[str, NameStatusEntry],
    from_commit: str,
    to_commit: str,
    options: ExtractionOptions,
) -> tuple[list[FileChangeDetail], ElementSummary | None]:
    """Parse a patch into file details, sorted by path, and an element summary."""
    files: list[FileChangeDetail] = []
    for parsed in parse_unified_diff(patch_text).files:
        entry = name_status.get(parsed.new_path)
        status = entry.status if entry is not None else FileStatus.MODIFIED
        old_path = entry.old_path if entry is not None else None
        if old_path is None:
            old_path = parsed.old_path

        file_path = parsed.new_path
        language = classify_language(file_path)
        skip = (
            options.no_summary_extraction
            or parsed.is_binary
            or (not options.include_vendor and is_vendor_or_generated(file_path))
        )
        elements = (
            []
            if skip
            else _extract_elements(
                file_path, parsed.hunks, language, from_commit, to_commit, options
            )
        )
        files.append(
            FileChangeDetail(
                path=file_path,
                old_path=old_path,
                status=status,
                language=language,
                insertions=parsed.insertions,
                deletions=parsed.deletions,
                elements=elements,
                raw_hunks=parsed.hunks,
                is_binary=parsed.is_binary,
            )
        )

    files.sort(key=lambda f: f.path)
    if options.no_summary_extraction:
        return files, None
    all_elements = [element for f in files for element in f.elements]
    return files, build_element_summary(all_elements)


def _impact(element: ChangedElement) -> int:
    security = _SECURITY_BONUS if element.security_tags else 0
    return element.lines_added + element.lines_removed + security + _KIND_BONUS[element.kind]


def build_element_summary(elements: list[ChangedElement]) -> ElementSummary:
    """Count elements by change type and kind and rank the most significant ones."""
    by_change_type: dict[ChangeType, int] = {}
    by_kind: dict[ElementKind, KindCounts] = {}
    for element in elements:
        by_change_type[element.change_type] = by_change_type.get(element.change_type, 0) + 1
        counts = by_kind.setdefault(element.kind, KindCounts())
        if element.change_type is ChangeType.ADDED:
            counts.added += 1
        elif element.change_type is ChangeType.MODIFIED:
            counts.modified += 1
        else:
            counts.removed += 1

    change_order = list(ChangeType)
    ranked = sorted(elements, key=_impact, reverse=True)
    top = [f"{e.change_type} {e.name} ({e.file_path})" for e in ranked[:_TOP_ELEMENTS]]

    return ElementSummary(
        total_elements=len(elements),
        by_change_type=dict(sorted(by_change_type.items(), key=lambda i: change_order.index(i[0]))),
        by_kind=dict(sorted(by_kind.items(), key=lambda i: i[0].rank)),
        elements=list(elements),
        top_elements=top or ["No elements extracted"],
    )