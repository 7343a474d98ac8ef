"""Language detection from file paths."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import ClassVar


@dataclass(frozen=True)
class Language:
    """A source language; unknown languages keep their file extension as detail."""

    name: str
    detail: str | None = None

    RUST: ClassVar[Language]
    PYTHON: ClassVar[Language]
    JAVASCRIPT: ClassVar[Language]
    TYPESCRIPT: ClassVar[Language]
    GO: ClassVar[Language]
    C: ClassVar[Language]
    CPP: ClassVar[Language]
    JAVA: ClassVar[Language]
    KOTLIN: ClassVar[Language]
    RUBY: ClassVar[Language]
    TOML: ClassVar[Language]
    YAML: ClassVar[Language]
    JSON: ClassVar[Language]
    MARKDOWN: ClassVar[Language]
    SHELL: ClassVar[Language]
    DOCKERFILE: ClassVar[Language]

    @classmethod
    def unknown(cls, detail: str) -> Language:
        return cls("Unknown", detail)

    @property
    def is_unknown(self) -> bool:
        return self.name == "Unknown"

    def __str__(self) -> str:
        return f"Unknown({self.detail})" if self.is_unknown else self.name


Language.RUST = Language("Rust")
Language.PYTHON = Language("Python")
Language.JAVASCRIPT = Language("JavaScript")
Language.TYPESCRIPT = Language("TypeScript")
Language.GO = Language("Go")
Language.C = Language("C")
Language.CPP = Language("Cpp")
Language.JAVA = Language("Java")
Language.KOTLIN = Language("Kotlin")
Language.RUBY = Language("Ruby")
Language.TOML = Language("Toml")
Language.YAML = Language("Yaml")
Language.JSON = Language("Json")
Language.MARKDOWN = Language("Markdown")
Language.SHELL = Language("Shell")
Language.DOCKERFILE = Language("Dockerfile")

_BY_EXTENSION = {
    "rs": Language.RUST,
    "py": Language.PYTHON,
    "js": Language.JAVASCRIPT,
    "jsx": Language.JAVASCRIPT,
    "mjs": Language.JAVASCRIPT,
    "cjs": Language.JAVASCRIPT,
    "ts": Language.TYPESCRIPT,
    "tsx": Language.TYPESCRIPT,
    "go": Language.GO,
    "c": Language.C,
    "h": Language.C,
    "cc": Language.CPP,
    "cpp": Language.CPP,
    "cxx": Language.CPP,
    "hpp": Language.CPP,
    "hh": Language.CPP,
    "java": Language.JAVA,
    "kt": Language.KOTLIN,
    "kts": Language.KOTLIN,
    "rb": Language.RUBY,
    "toml": Language.TOML,
    "yaml": Language.YAML,
    "yml": Language.YAML,
    "json": Language.JSON,
    "md": Language.MARKDOWN,
    "sh": Language.SHELL,
    "bash": Language.SHELL,
    "zsh": Language.SHELL,
}


def classify_language(path: str) -> Language:
    """Guess the language of a file from its name and extension."""
    p = PurePosixPath(path)
    if p.name.lower() == "dockerfile":
        return Language.DOCKERFILE
    extension = p.suffix[1:]
    return _BY_EXTENSION.get(extension, Language.unknown(extension))