import subprocess
from pathlib import Path
from unittest import mock

import pytest

from diffcatcher.git.diff import (
    DiffPair,
    FileStatus,
    build_history_pairs,
    commit_exists,
    generate_diff_artifacts,
    parse_name_status,
    parse_numstat,
    path_in_repo,
    safe_diff_pair,
)


class FakeGit:
    def __init__(self, handler):
        self.handler = handler
        self.calls = []

    def __call__(self, cmd, **kwargs):
        args = tuple(cmd[3:])
        self.calls.append(args)
        code, out, err = self.handler(args)
        return subprocess.CompletedProcess(cmd, code, out.encode(), err.encode())


def test_history_pairs_with_current_pair():
    pairs = build_history_pairs("abc", 2, True)
    assert [p.label for p in pairs] == ["N_vs_N-1", "N-1_vs_N-2"]
    assert pairs[0].from_ == "abc~1" and pairs[0].to == "abc"
    assert pairs[1].from_ == "abc~2" and pairs[1].to == "abc~1"


def test_history_pairs_depth_one_without_current_is_empty():
    assert build_history_pairs("abc", 1, False) == []


def test_history_pairs_deeper_chain_is_consecutive():
    pairs = build_history_pairs("h", 4, False)
    assert len(pairs) == 3
    assert pairs[1].label == "N-2_vs_N-3"
    for earlier, later in zip(pairs, pairs[1:]):
        assert later.to == earlier.from_


def test_parse_numstat_counts_and_binary():
    text = "3\t1\ta.py\n-\t-\timage.png\n\nnot a line"
    files, ins, dels = parse_numstat(text)
    assert files == 2
    assert ins == 3
    assert dels == 1


def test_parse_numstat_empty():
    assert parse_numstat("") == (0, 0, 0)


def test_parse_name_status_statuses():
    text = "A\tnew.py\nD\tgone.py\nM\tsame.py\nR100\told.py\tmoved.py\nC75\tsrc.py\tcopy.py\nT\tx.sh"
    entries = parse_name_status(text)
    assert entries["new.py"].status is FileStatus.ADDED
    assert entries["gone.py"].status is FileStatus.DELETED
    assert entries["same.py"].status is FileStatus.MODIFIED
    assert entries["moved.py"].status is FileStatus.RENAMED
    assert entries["moved.py"].old_path == "old.py"
    assert entries["copy.py"].status is FileStatus.COPIED
    assert entries["x.sh"].status is FileStatus.UNKNOWN
    assert entries["same.py"].old_path is None
    assert list(entries) == sorted(entries)


def test_parse_name_status_skips_missing_path():
    assert parse_name_status("M\n\nR100\tonly_old.py") == {}


def test_path_in_repo():
    assert path_in_repo("/repo", "src/a.py") == Path("/repo") / "src/a.py"


def test_commit_exists_and_safe_pair():
    fake = FakeGit(lambda args: (0, "", "") if args[-1] == "good" else (1, "", ""))
    with mock.patch("subprocess.run", fake):
        assert commit_exists("/repo", 5, "good") is True
        assert commit_exists("/repo", 5, "bad") is False
        assert safe_diff_pair("/repo", 5, DiffPair("x", "good", "good")) is True
        assert safe_diff_pair("/repo", 5, DiffPair("x", "good", "bad")) is False
    assert ("rev-parse", "--verify", "--quiet", "good") in fake.calls


def test_commit_exists_false_when_git_missing():
    with mock.patch("subprocess.run", side_effect=FileNotFoundError("git")):
        assert commit_exists("/repo", 5, "HEAD") is False


def test_generate_diff_artifacts_writes_files(tmp_path):
    patch = "diff --git a/a.txt b/a.txt\n+hello"

    def handler(args):
        if args == ("diff", "base..head"):
            return 0, patch, ""
        if args == ("diff", "--name-status", "base..head"):
            return 0, "A\ta.txt", ""
        if args == ("diff", "--numstat", "base..head"):
            return 0, "1\t0\ta.txt", ""
        return 1, "", "unexpected"

    diff_dir = tmp_path / "out" / "diffs"
    with mock.patch("subprocess.run", FakeGit(handler)):
        artifacts = generate_diff_artifacts("/repo", diff_dir, 5, DiffPair("L", "base", "head"))

    assert artifacts.patch_filename == "diff_L.patch"
    assert artifacts.changes_filename == "changes_L.txt"
    assert (diff_dir / "diff_L.patch").read_text() == patch
    changes = (diff_dir / "changes_L.txt").read_text()
    assert changes.startswith("# numstat\n1\t0\ta.txt\n")
    assert "\n# name-status\nA\ta.txt\n" in changes
    assert (artifacts.files_changed, artifacts.insertions, artifacts.deletions) == (1, 1, 0)
    assert artifacts.name_status["a.txt"].status is FileStatus.ADDED


def test_generate_diff_artifacts_tolerates_numstat_failure(tmp_path):
    def handler(args):
        if "--numstat" in args:
            return 128, "", "fatal: bad revision"
        return 0, "", ""

    with mock.patch("subprocess.run", FakeGit(handler)):
        artifacts = generate_diff_artifacts("/repo", tmp_path, 5, DiffPair("E", "a", "b"))

    assert artifacts.files_changed == 0
    assert artifacts.name_status == {}
    assert (tmp_path / "changes_E.txt").read_text() == ""