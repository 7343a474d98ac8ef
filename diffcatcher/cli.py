"""Command-line options and their validation."""

from __future__ import annotations

import argparse
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Sequence

from diffcatcher.errors import InvalidArgumentError

_VERSION = "0.1.0"


class PullStrategy(str, Enum):
    """How `git pull` integrates remote changes."""

    FF_ONLY = "ff-only"
    REBASE = "rebase"
    MERGE = "merge"

    def __str__(self) -> str:
        return self.value

    def as_git_flag(self) -> str:
        """The `git pull` flag that selects this strategy."""
        return {
            PullStrategy.FF_ONLY: "--ff-only",
            PullStrategy.REBASE: "--rebase",
            PullStrategy.MERGE: "--no-rebase",
        }[self]


class SummaryFormat(str, Enum):
    """Output formats for summary reports."""

    JSON = "json"
    TXT = "txt"
    MD = "md"
    SARIF = "sarif"

    def __str__(self) -> str:
        return self.value


def _default_formats() -> list[SummaryFormat]:
    return [SummaryFormat.JSON, SummaryFormat.MD]


@dataclass
class Cli:
    """Parsed command-line options."""

    root_dir: Path | None = None
    diff_refs: str | None = None
    output: Path | None = None
    config: Path | None = None
    no_config: bool = False
    watch: bool = False
    watch_interval: int = 300
    pull_strategy: PullStrategy = PullStrategy.FF_ONLY
    timeout: int = 120
    nested: bool = False
    follow_symlinks: bool = False
    skip_hidden: bool = False
    pull: bool = False
    force_pull: bool = False
    no_pull: bool = False
    history_depth: int = 2
    parallel: int = 4
    quiet: bool = False
    verbose: bool = False
    dry_run: bool = False
    json_stdout: bool = False
    branch_filter: str = "*"
    no_summary_extraction: bool = False
    no_snippets: bool = False
    no_security_tags: bool = False
    snippet_context: int = 5
    max_snippet_lines: int = 200
    max_elements: int = 500
    summary_formats: list[SummaryFormat] = field(default_factory=_default_formats)
    incremental: bool = False
    security_tags_file: Path | None = None
    security_plugin_files: list[Path] = field(default_factory=list)
    extractor_plugin_files: list[Path] = field(default_factory=list)
    overwrite: bool = False
    include_detached: bool = False
    include_bare: bool = False
    include_test_security: bool = False
    include_vendor: bool = False

    def validate(self) -> None:
        """Raise InvalidArgumentError if the options contradict each other."""
        if self.diff_refs is not None:
            if self.root_dir is None:
                raise InvalidArgumentError("--diff requires ROOT_DIR as the repo path")
            if ".." not in self.diff_refs:
                raise InvalidArgumentError(
                    "--diff value must be in BASE..HEAD format (e.g. main..feature)"
                )
            if self.pull or self.force_pull:
                raise InvalidArgumentError("--diff cannot be used with --pull or --force-pull")
        elif self.root_dir is None:
            raise InvalidArgumentError("ROOT_DIR is required (or use --diff)")
        if self.history_depth == 0:
            raise InvalidArgumentError("--history-depth must be >= 1")
        if self.history_depth > 10:
            raise InvalidArgumentError("--history-depth must be <= 10")
        if self.force_pull and not self.pull:
            raise InvalidArgumentError("--force-pull requires --pull")
        if self.pull and self.no_pull:
            raise InvalidArgumentError("--pull and --no-pull are mutually exclusive")
        if self.parallel == 0:
            raise InvalidArgumentError("--parallel must be >= 1")
        if self.watch and self.watch_interval == 0:
            raise InvalidArgumentError("--watch-interval must be >= 1 when --watch is enabled")
        if self.no_config and self.config is not None:
            raise InvalidArgumentError("--config cannot be used together with --no-config")

    def parsed_diff_refs(self) -> tuple[str, str] | None:
        """Split the --diff value into (base, head), or None if malformed."""
        if self.diff_refs is None:
            return None
        parts = self.diff_refs.split("..", 1)
        if len(parts) == 2 and parts[0] and parts[1]:
            return parts[0], parts[1]
        return None

    def effective_pull_mode(self) -> bool:
        """Whether the run modifies working trees by pulling."""
        if self.no_pull:
            return False
        return self.pull


def _unsigned(text: str) -> int:
    try:
        value = int(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid non-negative integer: {text!r}") from None
    if value < 0:
        raise argparse.ArgumentTypeError(f"invalid non-negative integer: {text!r}")
    return value


def _format_list(text: str) -> list[SummaryFormat]:
    formats = []
    for part in text.split(","):
        try:
            formats.append(SummaryFormat(part))
        except ValueError:
            choices = ", ".join(f.value for f in SummaryFormat)
            raise argparse.ArgumentTypeError(
                f"invalid summary format {part!r} (choose from {choices})"
            ) from None
    return formats


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the command line."""
    parser = argparse.ArgumentParser(
        prog="diffcatcher",
        description="Scan git repositories and produce security-focused diff reports",
    )
    parser.add_argument("-V", "--version", action="version", version=f"%(prog)s {_VERSION}")
    parser.add_argument(
        "root_dir",
        nargs="?",
        type=Path,
        metavar="ROOT_DIR",
        help="Directory to scan recursively (not required with --diff)",
    )
    parser.add_argument(
        "--diff",
        dest="diff_refs",
        metavar="BASE..HEAD",
        help="Diff two refs in a single repo (e.g. main..feature). Use ROOT_DIR as the repo path.",
    )
    parser.add_argument(
        "-o", "--output", type=Path, metavar="DIR",
        help="Report output directory (default: ./reports/<timestamp>)",
    )
    parser.add_argument(
        "--config", type=Path, metavar="FILE",
        help="Path to .diffcatcher.toml (default: ROOT_DIR/.diffcatcher.toml if present)",
    )
    parser.add_argument("--no-config", action="store_true", help="Do not load .diffcatcher.toml")
    parser.add_argument(
        "--watch", action="store_true", help="Run continuously and rescan at a fixed interval"
    )
    parser.add_argument(
        "--watch-interval", type=_unsigned, default=300,
        help="Seconds between watch iterations (used with --watch)",
    )
    parser.add_argument(
        "-s", "--pull-strategy", type=PullStrategy, choices=list(PullStrategy),
        default=PullStrategy.FF_ONLY, help="Pull strategy: ff-only, rebase, merge",
    )
    parser.add_argument(
        "-t", "--timeout", type=_unsigned, default=120,
        help="Timeout per repo for git operations (seconds)",
    )
    parser.add_argument(
        "--nested", action="store_true", help="Recurse into repos to find nested repos"
    )
    parser.add_argument(
        "--follow-symlinks", action="store_true", help="Follow symbolic links during scan"
    )
    parser.add_argument(
        "--skip-hidden", action="store_true",
        help="Skip hidden directories (dot-prefixed) except .git",
    )
    parser.add_argument(
        "--pull", action="store_true",
        help="Actually pull (modify working tree) instead of fetch-only",
    )
    parser.add_argument(
        "--force-pull", action="store_true",
        help="Stash dirty repos before pull, pop after (requires --pull)",
    )
    parser.add_argument(
        "--no-pull", action="store_true",
        help="Skip fetching/pulling; only capture state and generate historical diffs",
    )
    parser.add_argument(
        "-d", "--history-depth", type=_unsigned, default=2,
        help="Number of historical commits to diff (min 1, max 10)",
    )
    parser.add_argument(
        "-j", "--parallel", type=_unsigned, default=4,
        help="Number of repos to process concurrently",
    )
    parser.add_argument(
        "-q", "--quiet", action="store_true",
        help="Suppress stdout progress; only write report files",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Print detailed processing output to terminal",
    )
    parser.add_argument(
        "--dry-run", action="store_true",
        help="Discover repos and report state; do not pull or modify anything",
    )
    parser.add_argument(
        "--json", dest="json_stdout", action="store_true",
        help="Print final summary to stdout as JSON (for piping)",
    )
    parser.add_argument(
        "--branch-filter", default="*",
        help="Only process repos on branches matching glob pattern",
    )
    parser.add_argument(
        "--no-summary-extraction", action="store_true",
        help="Skip element extraction; only produce raw diffs and file lists",
    )
    parser.add_argument(
        "--no-snippets", action="store_true",
        help="Extract elements but do not capture code snippets",
    )
    parser.add_argument(
        "--no-security-tags", action="store_true", help="Skip security pattern tagging"
    )
    parser.add_argument(
        "--snippet-context", type=_unsigned, default=5,
        help="Lines of context above/below changed lines in snippets",
    )
    parser.add_argument(
        "--max-snippet-lines", type=_unsigned, default=200,
        help="Max lines per individual snippet",
    )
    parser.add_argument(
        "--max-elements", type=_unsigned, default=500,
        help="Max elements to extract per diff (safety cap)",
    )
    parser.add_argument(
        "--summary-format", dest="summary_formats", type=_format_list, action="append",
        default=None, help="Comma-separated list of summary formats to generate",
    )
    parser.add_argument(
        "--incremental", action="store_true", help="Skip repos unchanged since the last run"
    )
    parser.add_argument(
        "--security-tags-file", type=Path,
        help="Custom JSON file defining security tag patterns",
    )
    parser.add_argument(
        "--security-plugin-file", dest="security_plugin_files", type=Path, action="append",
        metavar="FILE", default=None,
        help="Additional security pattern plugin JSON file (repeatable)",
    )
    parser.add_argument(
        "--extractor-plugin-file", dest="extractor_plugin_files", type=Path, action="append",
        metavar="FILE", default=None, help="Custom extractor plugin JSON file (repeatable)",
    )
    parser.add_argument(
        "--overwrite", action="store_true", help="Overwrite an existing output directory"
    )
    parser.add_argument(
        "--include-detached", action="store_true",
        help="Process repositories in detached HEAD state",
    )
    parser.add_argument(
        "--include-bare", action="store_true",
        help="Include bare repositories during discovery",
    )
    parser.add_argument(
        "--include-test-security", action="store_true",
        help="Include test-path elements when computing security tags",
    )
    parser.add_argument(
        "--include-vendor", action="store_true",
        help="Include vendor/generated files in extraction (normally skipped)",
    )
    return parser


def parse_args(argv: Sequence[str] | None = None) -> Cli:
    """Parse command-line arguments into a Cli."""
    values = vars(build_parser().parse_args(argv))
    groups = values.pop("summary_formats")
    if groups is None:
        values["summary_formats"] = _default_formats()
    else:
        values["summary_formats"] = [fmt for group in groups for fmt in group]
    values["security_plugin_files"] = values["security_plugin_files"] or []
    values["extractor_plugin_files"] = values["extractor_plugin_files"] or []
    return Cli(**values)