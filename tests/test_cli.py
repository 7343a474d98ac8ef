import re
from pathlib import Path

import pytest

from diffcatcher.cli import Cli, PullStrategy, SummaryFormat, build_parser, parse_args
from diffcatcher.errors import InvalidArgumentError


@pytest.mark.parametrize(
    "strategy, flag",
    [
        (PullStrategy.FF_ONLY, "--ff-only"),
        (PullStrategy.REBASE, "--rebase"),
        (PullStrategy.MERGE, "--no-rebase"),
    ],
)
def test_pull_strategy_flags(strategy, flag):
    assert strategy.as_git_flag() == flag


def test_defaults_from_parse_args():
    cli = parse_args(["repos"])
    assert cli.root_dir == Path("repos")
    assert cli.watch_interval == 300
    assert cli.timeout == 120
    assert cli.history_depth == 2
    assert cli.parallel == 4
    assert cli.branch_filter == "*"
    assert cli.snippet_context == 5
    assert cli.max_snippet_lines == 200
    assert cli.max_elements == 500
    assert cli.pull_strategy is PullStrategy.FF_ONLY
    assert cli.summary_formats == [SummaryFormat.JSON, SummaryFormat.MD]
    assert cli.security_plugin_files == []
    assert cli.extractor_plugin_files == []


def test_parse_args_matches_dataclass_defaults():
    cli = parse_args(["repos"])
    assert cli == Cli(root_dir=Path("repos"))


def test_parse_flags_and_values():
    cli = parse_args(
        [
            "root",
            "-s", "rebase",
            "-j", "8",
            "--pull",
            "--force-pull",
            "--json",
            "--summary-format", "json,sarif",
            "--security-plugin-file", "a.json",
            "--security-plugin-file", "b.json",
        ]
    )
    assert cli.pull_strategy is PullStrategy.REBASE
    assert cli.parallel == 8
    assert cli.pull and cli.force_pull
    assert cli.json_stdout is True
    assert cli.summary_formats == [SummaryFormat.JSON, SummaryFormat.SARIF]
    assert cli.security_plugin_files == [Path("a.json"), Path("b.json")]


def test_repeated_summary_format_accumulates():
    cli = parse_args(["root", "--summary-format", "txt", "--summary-format", "md"])
    assert cli.summary_formats == [SummaryFormat.TXT, SummaryFormat.MD]


@pytest.mark.parametrize(
    "argv",
    [
        ["root", "-s", "squash"],
        ["root", "--summary-format", "pdf"],
        ["root", "--timeout", "-3"],
        ["root", "--parallel", "many"],
    ],
)
def test_bad_values_rejected(argv):
    with pytest.raises(SystemExit) as info:
        parse_args(argv)
    assert info.value.code == 2


def test_parser_prog_name():
    assert build_parser().prog == "diffcatcher"


@pytest.mark.parametrize(
    "cli, message",
    [
        (Cli(), "ROOT_DIR is required (or use --diff)"),
        (Cli(diff_refs="main..dev"), "--diff requires ROOT_DIR as the repo path"),
        (
            Cli(root_dir=Path("r"), diff_refs="main"),
            "--diff value must be in BASE..HEAD format (e.g. main..feature)",
        ),
        (
            Cli(root_dir=Path("r"), diff_refs="a..b", pull=True),
            "--diff cannot be used with --pull or --force-pull",
        ),
        (Cli(root_dir=Path("r"), history_depth=0), "--history-depth must be >= 1"),
        (Cli(root_dir=Path("r"), history_depth=11), "--history-depth must be <= 10"),
        (Cli(root_dir=Path("r"), force_pull=True), "--force-pull requires --pull"),
        (
            Cli(root_dir=Path("r"), pull=True, no_pull=True),
            "--pull and --no-pull are mutually exclusive",
        ),
        (Cli(root_dir=Path("r"), parallel=0), "--parallel must be >= 1"),
        (
            Cli(root_dir=Path("r"), watch=True, watch_interval=0),
            "--watch-interval must be >= 1 when --watch is enabled",
        ),
        (
            Cli(root_dir=Path("r"), no_config=True, config=Path("c.toml")),
            "--config cannot be used together with --no-config",
        ),
    ],
)
def test_validate_errors(cli, message):
    with pytest.raises(InvalidArgumentError, match=re.escape(message)):
        cli.validate()


def test_validate_accepts_boundaries():
    cli = Cli(root_dir=Path("r"), history_depth=10, pull=True, force_pull=True)
    cli.validate()
    assert cli.effective_pull_mode() is True


def test_parsed_diff_refs():
    assert Cli(diff_refs="main..feature").parsed_diff_refs() == ("main", "feature")
    assert Cli(diff_refs="a..b..c").parsed_diff_refs() == ("a", "b..c")
    assert Cli(diff_refs="main..").parsed_diff_refs() is None
    assert Cli(diff_refs="..main").parsed_diff_refs() is None
    assert Cli().parsed_diff_refs() is None


def test_effective_pull_mode():
    assert Cli(pull=True).effective_pull_mode() is True
    assert Cli(pull=False).effective_pull_mode() is False
    assert Cli(pull=True, no_pull=True).effective_pull_mode() is False