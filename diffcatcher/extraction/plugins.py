"""User-defined, regex-based element extractors loaded from JSON files."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable

from diffcatcher.errors import InvalidArgumentError
from diffcatcher.extraction.classifier import Language
from diffcatcher.extraction.elements import ChangeType, DetectedElement, ElementKind
from diffcatcher.extraction.parser import RawHunk

_SUPPORTED_VERSION = 1


@dataclass(frozen=True)
class ExtractorPlugin:
    """A regex that names elements in changed lines, optionally for one language."""

    name: str
    kind: ElementKind
    regex: re.Pattern[str]
    language: Language | None = None
    capture_group: int = 1


@dataclass
class _Tracker:
    plus: bool = False
    minus: bool = False
    lines_added: int = 0
    lines_removed: int = 0
    signature: str | None = None
    context: str | None = None
    line_range: tuple[int, int] | None = None

    @property
    def change_type(self) -> ChangeType:
        if self.plus and self.minus:
            return ChangeType.MODIFIED
        if self.plus:
            return ChangeType.ADDED
        return ChangeType.REMOVED


_KINDS = {
    "function": ElementKind.FUNCTION,
    "method": ElementKind.METHOD,
    "struct": ElementKind.STRUCT,
    "class": ElementKind.CLASS,
    "enum": ElementKind.ENUM,
    "trait": ElementKind.TRAIT,
    "interface": ElementKind.INTERFACE,
    "impl": ElementKind.IMPL,
    "module": ElementKind.MODULE,
    "import": ElementKind.IMPORT,
    "constant": ElementKind.CONSTANT,
    "static": ElementKind.STATIC,
    "typealias": ElementKind.TYPE_ALIAS,
    "type_alias": ElementKind.TYPE_ALIAS,
    "macro": ElementKind.MACRO,
    "test": ElementKind.TEST,
    "config": ElementKind.CONFIG,
    "other": ElementKind.OTHER,
}

_LANGUAGES = {
    "rust": Language.RUST,
    "rs": Language.RUST,
    "python": Language.PYTHON,
    "py": Language.PYTHON,
    "javascript": Language.JAVASCRIPT,
    "js": Language.JAVASCRIPT,
    "typescript": Language.TYPESCRIPT,
    "ts": Language.TYPESCRIPT,
    "go": Language.GO,
    "c": Language.C,
    "cpp": Language.CPP,
    "cxx": Language.CPP,
    "cc": Language.CPP,
    "java": Language.JAVA,
    "kotlin": Language.KOTLIN,
    "kt": Language.KOTLIN,
    "ruby": Language.RUBY,
    "rb": Language.RUBY,
    "toml": Language.TOML,
    "yaml": Language.YAML,
    "yml": Language.YAML,
    "json": Language.JSON,
    "markdown": Language.MARKDOWN,
    "md": Language.MARKDOWN,
    "shell": Language.SHELL,
    "sh": Language.SHELL,
    "bash": Language.SHELL,
    "dockerfile": Language.DOCKERFILE,
    "docker": Language.DOCKERFILE,
}


def parse_element_kind(value: str) -> ElementKind | None:
    """Map a kind name from a plugin file to an ElementKind, or None."""
    return _KINDS.get(value.strip().lower())


def parse_language(value: str) -> Language | None:
    """Map a language name or extension from a plugin file to a Language, or None."""
    return _LANGUAGES.get(value.strip().lower())


def load_extractor_plugins(paths: Iterable[Path | str]) -> list[ExtractorPlugin]:
    """Load every extractor from the given plugin files, in order."""
    plugins: list[ExtractorPlugin] = []
    for path in paths:
        plugins.extend(_load_plugin_file(Path(path)))
    return plugins


def _invalid_file(path: Path, detail: str) -> InvalidArgumentError:
    return InvalidArgumentError(f"invalid extractor plugin file {path}: {detail}")


def _is_uint(value: Any) -> bool:
    return type(value) is int and value >= 0


def _optional(spec: dict, key: str, check: Any, path: Path, what: str) -> Any:
    value = spec.get(key)
    if value is not None and not check(value):
        raise _invalid_file(path, f"field '{key}' must be {what}")
    return value


def _required_str(spec: dict, key: str, path: Path) -> str:
    if key not in spec:
        raise _invalid_file(path, f"missing field '{key}'")
    value = spec[key]
    if not isinstance(value, str):
        raise _invalid_file(path, f"field '{key}' must be a string")
    return value


def _read_document(path: Path) -> tuple[int, list[dict]]:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as err:
        raise _invalid_file(path, str(err)) from None
    if not isinstance(data, dict):
        raise _invalid_file(path, "expected a JSON object")
    for key in ("version", "extractors"):
        if key not in data:
            raise _invalid_file(path, f"missing field '{key}'")
    version = data["version"]
    if not _is_uint(version):
        raise _invalid_file(path, "field 'version' must be a non-negative integer")
    specs = data["extractors"]
    if not isinstance(specs, list) or not all(isinstance(s, dict) for s in specs):
        raise _invalid_file(path, "field 'extractors' must be a list of objects")
    for spec in specs:
        _required_str(spec, "kind", path)
        _required_str(spec, "regex", path)
        _optional(spec, "name", lambda v: isinstance(v, str), path, "a string")
        _optional(spec, "language", lambda v: isinstance(v, str), path, "a string")
        _optional(spec, "capture_group", _is_uint, path, "a non-negative integer")
    return version, specs


def _load_plugin_file(path: Path) -> list[ExtractorPlugin]:
    version, specs = _read_document(path)
    if version != _SUPPORTED_VERSION:
        raise InvalidArgumentError(
            f"unsupported extractor plugin file version {version} in {path} "
            f"(expected {_SUPPORTED_VERSION})"
        )

    plugins = []
    for spec in specs:
        kind_raw = spec["kind"]
        kind = parse_element_kind(kind_raw)
        if kind is None:
            raise InvalidArgumentError(f"unknown extractor kind '{kind_raw}' in {path}")

        language = None
        language_raw = spec.get("language")
        if language_raw is not None:
            language = parse_language(language_raw)
            if language is None:
                raise InvalidArgumentError(
                    f"unknown extractor language '{language_raw}' in {path}"
                )

        pattern = spec["regex"]
        try:
            regex = re.compile(pattern)
        except re.error as err:
            raise InvalidArgumentError(
                f"invalid extractor regex '{pattern}' in {path}: {err}"
            ) from None

        name = spec.get("name")
        capture_group = spec.get("capture_group")
        plugins.append(
            ExtractorPlugin(
                name=name if name is not None else f"plugin_{kind_raw.lower()}",
                kind=kind,
                regex=regex,
                language=language,
                capture_group=1 if capture_group is None else capture_group,
            )
        )
    return plugins


def _lines(text: str) -> list[str]:
    if not text:
        return []
    parts = text.split("\n")
    if parts[-1] == "":
        parts.pop()
    return [part[:-1] if part.endswith("\r") else part for part in parts]


def _captured_name(match: re.Match[str], group: int) -> str | None:
    if group > match.re.groups:
        return None
    value = match.group(group)
    if value is None:
        return None
    return value.strip() or None


def detect_plugin_elements(
    file_path: str,
    hunks: list[RawHunk],
    language: Language,
    plugins: list[ExtractorPlugin],
    max_elements: int,
) -> list[DetectedElement]:
    """Run the plugins that apply to `language` over the added and removed lines."""
    if not plugins or max_elements == 0:
        return []

    active = [p for p in plugins if p.language is None or p.language == language]
    if not active:
        return []

    tracked: dict[tuple[ElementKind, str], _Tracker] = {}
    for hunk in hunks:
        for raw_line in _lines(hunk.lines):
            sign = raw_line[:1]
            if sign not in ("+", "-"):
                continue
            content = raw_line[1:].strip()
            if not content:
                continue

            for plugin in active:
                match = plugin.regex.search(content)
                if match is None:
                    continue
                name = _captured_name(match, plugin.capture_group) or plugin.name
                tracker = tracked.setdefault((plugin.kind, name), _Tracker())

                if sign == "+":
                    tracker.plus = True
                    tracker.lines_added += 1
                else:
                    tracker.minus = True
                    tracker.lines_removed += 1

                if tracker.signature is None:
                    tracker.signature = content
                    tracker.context = hunk.context_function
                    line = hunk.new_start if sign == "+" else hunk.old_start
                    tracker.line_range = (line, line)

    ordered = sorted(tracked.items(), key=lambda item: (item[0][1], item[0][0].rank))
    return [
        DetectedElement(
            kind=kind,
            name=name,
            change_type=tracker.change_type,
            line_range=tracker.line_range,
            lines_added=tracker.lines_added,
            lines_removed=tracker.lines_removed,
            enclosing_context=tracker.context,
            signature=tracker.signature,
        )
        for (kind, name), tracker in ordered[:max_elements]
    ]