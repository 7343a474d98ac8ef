# diffcatcher

diffcatcher is a library for turning the changes between git commits into
structured data. It parses unified diffs, classifies each changed file by
language, detects the code elements that were touched (functions, classes,
imports, constants, tests and more), captures before/after snippets for each
of them and summarises the result.

It needs only the Python standard library, plus a `git` executable on `PATH`
for the helpers in `diffcatcher.git`.

## Modules

- `diffcatcher.extraction.parser` – `parse_unified_diff` turns `git diff`
  output into `ParsedDiff` / `ParsedFileDiff` / `RawHunk` objects, with
  insertion and deletion counts and handling of renames, `/dev/null` paths
  and binary files.
- `diffcatcher.extraction.classifier` – `classify_language` maps a file path
  to a `Language` (by extension, or `Dockerfile` by name); unrecognised
  extensions give `Language.unknown(<extension>)`.
- `diffcatcher.extraction.elements` – `detect_elements` finds the changed
  elements in a file's hunks using language-specific patterns and returns
  `DetectedElement` records with an `ElementKind` and a `ChangeType`.
- `diffcatcher.extraction.plugins` – `load_extractor_plugins` reads custom
  extractor definitions from JSON files; `detect_plugin_elements` applies
  them to added and removed lines. `parse_element_kind` and `parse_language`
  map the names used in plugin files.
- `diffcatcher.extraction.boundary` – `truncate_with_limit` and
  `try_capture_full_element` (first complete brace- or indentation-delimited
  block).
- `diffcatcher.extraction.snippets` – `build_snippet` produces a
  `CodeSnippet` with before/after `SnippetContent` and a `CaptureScope`.
- `diffcatcher.extraction.extract` – `extract_from_patch` ties the above
  together and returns per-file `FileChangeDetail` records, sorted by path,
  plus an `ElementSummary` (counts by change type and kind, and the ten
  highest-impact elements). `is_vendor_or_generated` and `is_test_path`
  classify paths.
- `diffcatcher.git.commands` – `run_git` and `run_git_expect_stdout` run
  `git -C <repo> ...` with a timeout.
- `diffcatcher.git.diff` – `build_history_pairs`, `generate_diff_artifacts`,
  `parse_numstat`, `parse_name_status`, `commit_exists`, `safe_diff_pair`.
- `diffcatcher.git.file_retrieval` – `show_file` returns a file's contents
  at a commit, or `None` when the file is absent there.
- `diffcatcher.git.state` – `capture_commit` and `capture_repo_state` read
  commit metadata (`CommitInfo`), the current branch and whether the working
  tree is dirty.
- `diffcatcher.config` – `resolve_runtime_settings` merges a `Cli` with a
  `.diffcatcher.toml` file into `RuntimeSettings`.
- `diffcatcher.cli` – `build_parser` and `parse_args` define the
  command-line options and return a `Cli`; `Cli.validate` checks that they
  are consistent.
- `diffcatcher.errors` – the exceptions.

## Parsing a diff

```python
from diffcatcher.extraction.classifier import classify_language
from diffcatcher.extraction.elements import detect_elements
from diffcatcher.extraction.parser import parse_unified_diff

patch = """\
diff --git a/app/auth.py b/app/auth.py
--- a/app/auth.py
+++ b/app/auth.py
@@ -1,2 +1,3 @@
 import hashlib
+def check_token(value):
+    return value == "token"
"""

parsed = parse_unified_diff(patch)
for file in parsed.files:
    language = classify_language(file.new_path)
    print(file.new_path, file.insertions, file.deletions)
    for element in detect_elements(file.new_path, file.hunks, 500, language):
        print(" ", element.kind, element.name, element.change_type)
```

To get snippets and a summary in one step, use `extract_from_patch`:

```python
from diffcatcher.extraction.extract import ExtractionOptions, extract_from_patch

files, summary = extract_from_patch(patch, {}, "old-commit", "new-commit", ExtractionOptions())
print(summary.total_elements, summary.top_elements)
```

The second argument maps paths to `NameStatusEntry` records (as returned by
`parse_name_status`); files missing from it are reported as modified.
Binary files and, unless `include_vendor` is set, vendored, built or
generated files and lock files get no elements.

## Working with a repository

```python
from pathlib import Path

from diffcatcher.git.diff import build_history_pairs, generate_diff_artifacts
from diffcatcher.git.state import capture_repo_state

repo = Path("path/to/repo")
state = capture_repo_state(repo, 120, True)
print(state.branch, state.commit.short_hash, "dirty" if state.dirty else "clean")

for pair in build_history_pairs(state.commit.hash, 2, True):
    artifacts = generate_diff_artifacts(repo, Path("reports/diffs"), 120, pair)
    print(pair.label, artifacts.files_changed, artifacts.insertions, artifacts.deletions)
```

A `DiffPair` has `label`, `from_` and `to`. Each pair writes a
`diff_<label>.patch` file and a `changes_<label>.txt` file (numstat and
name-status) into the chosen directory. A timeout of `0` means no limit; a
command that runs too long raises `GitTimeoutError`.

## Options and configuration

```python
from diffcatcher.cli import parse_args
from diffcatcher.config import resolve_runtime_settings

cli = parse_args(["path/to/repos", "--history-depth", "3"])
cli.validate()
settings = resolve_runtime_settings(cli, cli.root_dir)
```

Settings can be kept in a `.diffcatcher.toml` in the root directory (or the
file given with `--config`; `--no-config` skips it). It accepts `key = value`
lines with strings, booleans, integers and arrays, one optional `[plugins]`
section, and `#` comments:

```toml
history_depth = 3
parallel = 8
pull_strategy = "rebase"
summary_formats = ["json", "md", "sarif"]
branch_filter = "main"

[plugins]
extractor_files = ["extractors.json"]
```

Relative paths are resolved against the directory holding the file. An
option given on the command line with a non-default value wins over the file;
plugin file lists from both are combined without duplicates. Unknown keys,
malformed lines and values of the wrong type raise `InvalidArgumentError`.

## Extractor plugins

An extractor plugin file is JSON with `version` set to `1`:

```json
{
  "version": 1,
  "extractors": [
    {"name": "route", "language": "python", "kind": "function",
     "regex": "@app\\.route\\(\"([^\"]+)\"", "capture_group": 1}
  ]
}
```

`kind` is any element kind (`function`, `class`, `config`, ...) and is
required, as is `regex`. `language` is optional and limits the extractor to
one language. `capture_group` (default 1) names the element; when it captures
nothing, `name` is used (default `plugin_<kind>`).

## Errors

All failures raise subclasses of `diffcatcher.errors.PatrolError`:
`MissingRootError`, `InvalidArgumentError`, `GitCommandError` and
`GitTimeoutError`.

## What it does not do

diffcatcher is a library; it installs no command. `parse_args` only parses
options into a `Cli`. The package does not discover repositories under a
directory, fetch or pull them, tag elements with security patterns, or write
JSON, Markdown, text or SARIF reports. Options that concern those steps
(`--watch`, `--pull`, `--incremental`, `--summary-format`,
`--security-tags-file` and the like) are parsed, merged and validated, but
nothing in the package acts on them.