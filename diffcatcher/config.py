"""Runtime settings merged from the command line and an optional config file."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Union

from diffcatcher.cli import Cli, PullStrategy, SummaryFormat
from diffcatcher.errors import InvalidArgumentError

CONFIG_FILE_NAME = ".diffcatcher.toml"

DEFAULT_WATCH_INTERVAL = 300
DEFAULT_TIMEOUT = 120
DEFAULT_HISTORY_DEPTH = 2
DEFAULT_PARALLEL = 4
DEFAULT_BRANCH_FILTER = "*"
DEFAULT_SNIPPET_CONTEXT = 5
DEFAULT_MAX_SNIPPET_LINES = 200
DEFAULT_MAX_ELEMENTS = 500

_I64_MIN = -(2**63)
_I64_MAX = 2**63 - 1
_U32_MAX = 2**32 - 1
_INT_RE = re.compile(r"[+-]?[0-9]+")

ConfigValue = Union[bool, int, str, list]


@dataclass
class _FileConfig:
    """Values read from a config file; None means the key was absent."""

    output: Path | None = None
    watch: bool | None = None
    watch_interval: int | None = None
    pull_strategy: str | None = None
    timeout: int | None = None
    nested: bool | None = None
    follow_symlinks: bool | None = None
    skip_hidden: bool | None = None
    pull: bool | None = None
    force_pull: bool | None = None
    no_pull: bool | None = None
    history_depth: int | None = None
    parallel: int | None = None
    quiet: bool | None = None
    verbose: bool | None = None
    dry_run: bool | None = None
    json_stdout: bool | None = None
    branch_filter: str | None = None
    no_summary_extraction: bool | None = None
    no_snippets: bool | None = None
    no_security_tags: bool | None = None
    snippet_context: int | None = None
    max_snippet_lines: int | None = None
    max_elements: int | None = None
    summary_formats: list[str] | None = None
    incremental: bool | None = None
    security_tags_file: Path | None = None
    security_plugin_files: list[Path] = field(default_factory=list)
    extractor_plugin_files: list[Path] = field(default_factory=list)
    overwrite: bool | None = None
    include_detached: bool | None = None
    include_bare: bool | None = None
    include_test_security: bool | None = None
    include_vendor: bool | None = None
    plugins_security_pattern_files: list[Path] = field(default_factory=list)
    plugins_extractor_files: list[Path] = field(default_factory=list)


@dataclass
class RuntimeSettings:
    """Effective settings for one run."""

    output: Path | None
    watch: bool
    watch_interval: int
    pull_strategy: PullStrategy
    timeout: int
    nested: bool
    follow_symlinks: bool
    skip_hidden: bool
    pull: bool
    force_pull: bool
    no_pull: bool
    history_depth: int
    parallel: int
    quiet: bool
    verbose: bool
    dry_run: bool
    json_stdout: bool
    branch_filter: str
    no_summary_extraction: bool
    no_snippets: bool
    no_security_tags: bool
    snippet_context: int
    max_snippet_lines: int
    max_elements: int
    summary_formats: list[SummaryFormat]
    incremental: bool
    security_tags_file: Path | None
    security_plugin_files: list[Path]
    extractor_plugin_files: list[Path]
    overwrite: bool
    include_detached: bool
    include_bare: bool
    include_test_security: bool
    include_vendor: bool


# ── value conversion ───────────────────────────────────────────────────────


def _where(path: Path, line_no: int) -> str:
    return f"{path}:{line_no}"


def _as_bool(value: ConfigValue, key: str, path: Path, line_no: int) -> bool:
    if isinstance(value, bool):
        return value
    raise InvalidArgumentError(f"expected boolean for '{key}' at {_where(path, line_no)}")


def _as_u64(value: ConfigValue, key: str, path: Path, line_no: int) -> int:
    if type(value) is int and value >= 0:
        return value
    raise InvalidArgumentError(
        f"expected non-negative integer for '{key}' at {_where(path, line_no)}"
    )


def _as_u32(value: ConfigValue, key: str, path: Path, line_no: int) -> int:
    number = _as_u64(value, key, path, line_no)
    if number > _U32_MAX:
        raise InvalidArgumentError(f"value out of range for '{key}' at {_where(path, line_no)}")
    return number


def _as_str(value: ConfigValue, key: str, path: Path, line_no: int) -> str:
    if isinstance(value, str):
        return value
    raise InvalidArgumentError(f"expected string for '{key}' at {_where(path, line_no)}")


def _as_str_array(value: ConfigValue, key: str, path: Path, line_no: int) -> list[str]:
    if isinstance(value, list):
        return list(value)
    raise InvalidArgumentError(f"expected string array for '{key}' at {_where(path, line_no)}")


def _as_path(value: ConfigValue, key: str, path: Path, line_no: int) -> Path:
    return Path(_as_str(value, key, path, line_no))


def _as_paths(value: ConfigValue, key: str, path: Path, line_no: int) -> list[Path]:
    return [Path(item) for item in _as_str_array(value, key, path, line_no)]


_Converter = Callable[[ConfigValue, str, Path, int], Any]

_KEYS: dict[tuple[str, str], tuple[str, _Converter]] = {
    ("", "output"): ("output", _as_path),
    ("", "watch"): ("watch", _as_bool),
    ("", "watch_interval"): ("watch_interval", _as_u64),
    ("", "pull_strategy"): ("pull_strategy", _as_str),
    ("", "timeout"): ("timeout", _as_u64),
    ("", "nested"): ("nested", _as_bool),
    ("", "follow_symlinks"): ("follow_symlinks", _as_bool),
    ("", "skip_hidden"): ("skip_hidden", _as_bool),
    ("", "pull"): ("pull", _as_bool),
    ("", "force_pull"): ("force_pull", _as_bool),
    ("", "no_pull"): ("no_pull", _as_bool),
    ("", "history_depth"): ("history_depth", _as_u32),
    ("", "parallel"): ("parallel", _as_u64),
    ("", "quiet"): ("quiet", _as_bool),
    ("", "verbose"): ("verbose", _as_bool),
    ("", "dry_run"): ("dry_run", _as_bool),
    ("", "json_stdout"): ("json_stdout", _as_bool),
    ("", "branch_filter"): ("branch_filter", _as_str),
    ("", "no_summary_extraction"): ("no_summary_extraction", _as_bool),
    ("", "no_snippets"): ("no_snippets", _as_bool),
    ("", "no_security_tags"): ("no_security_tags", _as_bool),
    ("", "snippet_context"): ("snippet_context", _as_u32),
    ("", "max_snippet_lines"): ("max_snippet_lines", _as_u32),
    ("", "max_elements"): ("max_elements", _as_u64),
    ("", "summary_formats"): ("summary_formats", _as_str_array),
    ("", "incremental"): ("incremental", _as_bool),
    ("", "security_tags_file"): ("security_tags_file", _as_path),
    ("", "security_plugin_files"): ("security_plugin_files", _as_paths),
    ("", "extractor_plugin_files"): ("extractor_plugin_files", _as_paths),
    ("", "overwrite"): ("overwrite", _as_bool),
    ("", "include_detached"): ("include_detached", _as_bool),
    ("", "include_bare"): ("include_bare", _as_bool),
    ("", "include_test_security"): ("include_test_security", _as_bool),
    ("", "include_vendor"): ("include_vendor", _as_bool),
    ("plugins", "security_pattern_files"): ("plugins_security_pattern_files", _as_paths),
    ("plugins", "extractor_files"): ("plugins_extractor_files", _as_paths),
}


# ── parsing ────────────────────────────────────────────────────────────────


def _lines(text: str) -> list[str]:
    if not text:
        return []
    parts = text.split("\n")
    if parts[-1] == "":
        parts.pop()
    return [part[:-1] if part.endswith("\r") else part for part in parts]


def _unquote(raw: str) -> str:
    return raw[1:-1].replace('\\"', '"').replace("\\\\", "\\")


def _is_quoted(raw: str) -> bool:
    return len(raw) >= 2 and raw.startswith('"') and raw.endswith('"')


def _parse_value(raw: str, path: Path, line_no: int) -> ConfigValue:
    if _is_quoted(raw):
        return _unquote(raw)
    lowered = raw.lower()
    if lowered == "true":
        return True
    if lowered == "false":
        return False
    if raw.startswith("[") and raw.endswith("]") and len(raw) >= 2:
        items = (part.strip() for part in raw[1:-1].split(","))
        return [_unquote(item) if _is_quoted(item) else item for item in items if item]
    if _INT_RE.fullmatch(raw):
        number = int(raw)
        if _I64_MIN <= number <= _I64_MAX:
            return number
    raise InvalidArgumentError(f"invalid config value '{raw}' at {_where(path, line_no)}")


def parse_file_config(raw: str, path: Path | str) -> _FileConfig:
    """Parse the minimal TOML subset used by the config file."""
    path = Path(path)
    cfg = _FileConfig()
    section = ""

    for line_no, original in enumerate(_lines(raw), start=1):
        line = original.strip()
        if not line or line.startswith("#"):
            continue
        if "#" in line:
            line = line[: line.index("#")].strip()
            if not line:
                continue

        if line.startswith("[") and line.endswith("]"):
            section = line[1:-1].strip()
            continue

        if "=" not in line:
            raise InvalidArgumentError(
                f"invalid config line {line_no} in {path}: expected key = value"
            )
        key, value_raw = line.split("=", 1)
        key = key.strip()
        value = _parse_value(value_raw.strip(), path, line_no)

        target = _KEYS.get((section, key))
        if target is None:
            raise InvalidArgumentError(
                f"unknown config key '{key}' in section '{section}' at {_where(path, line_no)}"
            )
        attr, convert = target
        setattr(cfg, attr, convert(value, key, path, line_no))

    return cfg


def parse_pull_strategy(raw: str) -> PullStrategy:
    """Parse a pull strategy name as written in the config file."""
    name = raw.strip().lower()
    if name in ("ff-only", "ffonly"):
        return PullStrategy.FF_ONLY
    if name == "rebase":
        return PullStrategy.REBASE
    if name == "merge":
        return PullStrategy.MERGE
    raise InvalidArgumentError(
        f"invalid pull_strategy '{name}' in config (expected ff-only|rebase|merge)"
    )


_FORMAT_ALIASES = {
    "json": SummaryFormat.JSON,
    "txt": SummaryFormat.TXT,
    "text": SummaryFormat.TXT,
    "md": SummaryFormat.MD,
    "markdown": SummaryFormat.MD,
    "sarif": SummaryFormat.SARIF,
}


def _default_summary_formats() -> list[SummaryFormat]:
    return [SummaryFormat.JSON, SummaryFormat.MD]


def parse_summary_formats(raw: list[str]) -> list[SummaryFormat]:
    """Parse summary format names, dropping duplicates; empty means the default."""
    out: list[SummaryFormat] = []
    for item in raw:
        name = item.strip().lower()
        fmt = _FORMAT_ALIASES.get(name)
        if fmt is None:
            raise InvalidArgumentError(f"invalid summary format '{name}' in config")
        if fmt not in out:
            out.append(fmt)
    return out or _default_summary_formats()


# ── resolution ─────────────────────────────────────────────────────────────


def _resolve_path(base: Path, path: Path) -> Path:
    return path if path.is_absolute() else base / path


def _relativize_paths(cfg: _FileConfig, base: Path) -> None:
    if cfg.output is not None:
        cfg.output = _resolve_path(base, cfg.output)
    if cfg.security_tags_file is not None:
        cfg.security_tags_file = _resolve_path(base, cfg.security_tags_file)
    for attr in (
        "security_plugin_files",
        "extractor_plugin_files",
        "plugins_security_pattern_files",
        "plugins_extractor_files",
    ):
        setattr(cfg, attr, [_resolve_path(base, p) for p in getattr(cfg, attr)])


def _dedup_paths(paths: list[Path]) -> list[Path]:
    return list(dict.fromkeys(paths))


def _load_file_config(cli: Cli, root_dir: Path) -> _FileConfig | None:
    if cli.no_config:
        return None
    if cli.config is not None:
        config_path = Path(cli.config)
    else:
        config_path = root_dir / CONFIG_FILE_NAME
        if not config_path.exists():
            return None

    cfg = parse_file_config(config_path.read_text(encoding="utf-8"), config_path)
    _relativize_paths(cfg, config_path.parent)
    return cfg


def _pick(cli_value: Any, default: Any, cfg_value: Any) -> Any:
    if cli_value != default:
        return cli_value
    return default if cfg_value is None else cfg_value


def _validate(settings: RuntimeSettings) -> None:
    if settings.history_depth == 0:
        raise InvalidArgumentError("--history-depth must be >= 1")
    if settings.history_depth > 10:
        raise InvalidArgumentError("--history-depth must be <= 10")
    if settings.parallel == 0:
        raise InvalidArgumentError("--parallel must be >= 1")
    if settings.watch and settings.watch_interval == 0:
        raise InvalidArgumentError("--watch-interval must be >= 1 when --watch is enabled")
    if settings.force_pull and not settings.pull:
        raise InvalidArgumentError("--force-pull requires --pull")
    if settings.pull and settings.no_pull:
        raise InvalidArgumentError("--pull and --no-pull are mutually exclusive")


def resolve_runtime_settings(cli: Cli, root_dir: Path | str) -> RuntimeSettings:
    """Merge command-line options with the config file; non-default CLI values win."""
    cfg = _load_file_config(cli, Path(root_dir))
    file_cfg = cfg if cfg is not None else _FileConfig()

    def pick(name: str, default: Any) -> Any:
        return _pick(getattr(cli, name), default, getattr(file_cfg, name))

    cfg_strategy = (
        parse_pull_strategy(file_cfg.pull_strategy)
        if file_cfg.pull_strategy is not None
        else None
    )

    if cli.summary_formats != _default_summary_formats():
        summary_formats = list(cli.summary_formats)
    elif file_cfg.summary_formats is not None:
        summary_formats = parse_summary_formats(file_cfg.summary_formats)
    else:
        summary_formats = _default_summary_formats()

    security_plugin_files: list[Path] = []
    extractor_plugin_files: list[Path] = []
    if cfg is not None:
        security_plugin_files = _dedup_paths(
            cfg.security_plugin_files + cfg.plugins_security_pattern_files
        )
        extractor_plugin_files = _dedup_paths(
            cfg.extractor_plugin_files + cfg.plugins_extractor_files
        )
    security_plugin_files = _dedup_paths(security_plugin_files + list(cli.security_plugin_files))
    extractor_plugin_files = _dedup_paths(
        extractor_plugin_files + list(cli.extractor_plugin_files)
    )

    settings = RuntimeSettings(
        output=cli.output if cli.output is not None else file_cfg.output,
        watch=pick("watch", False),
        watch_interval=pick("watch_interval", DEFAULT_WATCH_INTERVAL),
        pull_strategy=_pick(cli.pull_strategy, PullStrategy.FF_ONLY, cfg_strategy),
        timeout=pick("timeout", DEFAULT_TIMEOUT),
        nested=pick("nested", False),
        follow_symlinks=pick("follow_symlinks", False),
        skip_hidden=pick("skip_hidden", False),
        pull=pick("pull", False),
        force_pull=pick("force_pull", False),
        no_pull=pick("no_pull", False),
        history_depth=pick("history_depth", DEFAULT_HISTORY_DEPTH),
        parallel=pick("parallel", DEFAULT_PARALLEL),
        quiet=pick("quiet", False),
        verbose=pick("verbose", False),
        dry_run=pick("dry_run", False),
        json_stdout=pick("json_stdout", False),
        branch_filter=pick("branch_filter", DEFAULT_BRANCH_FILTER),
        no_summary_extraction=pick("no_summary_extraction", False),
        no_snippets=pick("no_snippets", False),
        no_security_tags=pick("no_security_tags", False),
        snippet_context=pick("snippet_context", DEFAULT_SNIPPET_CONTEXT),
        max_snippet_lines=pick("max_snippet_lines", DEFAULT_MAX_SNIPPET_LINES),
        max_elements=pick("max_elements", DEFAULT_MAX_ELEMENTS),
        summary_formats=summary_formats,
        incremental=pick("incremental", False),
        security_tags_file=(
            cli.security_tags_file
            if cli.security_tags_file is not None
            else file_cfg.security_tags_file
        ),
        security_plugin_files=security_plugin_files,
        extractor_plugin_files=extractor_plugin_files,
        overwrite=pick("overwrite", False),
        include_detached=pick("include_detached", False),
        include_bare=pick("include_bare", False),
        include_test_security=pick("include_test_security", False),
        include_vendor=pick("include_vendor", False),
    )

    _validate(settings)
    return settings