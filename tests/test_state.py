import subprocess
from datetime import datetime
from unittest import mock

import pytest

from diffcatcher.errors import GitCommandError
from diffcatcher.git.state import capture_commit, capture_repo_state

LOG = "abc123def\nabc123d\nAlice <alice@example.com>\n1700000000\nSubject line\n\nBody text\n"


class FakeGit:
    def __init__(self, responses):
        self.responses = responses
        self.calls = []

    def __call__(self, cmd, **kwargs):
        args = tuple(cmd[3:])
        self.calls.append(args)
        code, out, err = self.responses.get(args[0], (1, "", "unknown command"))
        return subprocess.CompletedProcess(cmd, code, out.encode(), err.encode())


def test_capture_commit_parses_fields():
    fake = FakeGit({"log": (0, LOG, "")})
    with mock.patch("subprocess.run", fake):
        commit = capture_commit("/repo", 5, "HEAD~1")
    assert commit.hash == "abc123def"
    assert commit.short_hash == "abc123d"
    assert commit.author == "Alice <alice@example.com>"
    assert commit.message == "Subject line"
    assert commit.full_message == "Subject line\n\nBody text"
    assert datetime.fromisoformat(commit.timestamp).timestamp() == 1700000000
    assert fake.calls[0][-1] == "HEAD~1"


def test_capture_commit_bad_timestamp_is_epoch():
    fake = FakeGit({"log": (0, "h\ns\nBob <bob@example.com>\nnotanumber\nmsg", "")})
    with mock.patch("subprocess.run", fake):
        commit = capture_commit("/repo", 5, "HEAD")
    assert datetime.fromisoformat(commit.timestamp).timestamp() == 0
    assert commit.message == "msg"


def test_capture_commit_failure_raises():
    fake = FakeGit({"log": (128, "", "fatal: bad revision")})
    with mock.patch("subprocess.run", fake):
        with pytest.raises(GitCommandError) as info:
            capture_commit("/repo", 5, "nope")
    assert "fatal: bad revision" in str(info.value)


def test_capture_repo_state_dirty():
    fake = FakeGit(
        {"log": (0, LOG, ""), "rev-parse": (0, "main\n", ""), "status": (0, " M file.py", "")}
    )
    with mock.patch("subprocess.run", fake):
        state = capture_repo_state("/repo", 5, True)
    assert state.branch == "main"
    assert state.dirty is True
    assert state.commit.hash == "abc123def"


def test_capture_repo_state_without_dirty_detection_skips_status():
    fake = FakeGit({"log": (0, LOG, ""), "rev-parse": (0, "HEAD", "")})
    with mock.patch("subprocess.run", fake):
        state = capture_repo_state("/repo", 5, False)
    assert state.dirty is False
    assert state.branch == "HEAD"
    assert all(call[0] != "status" for call in fake.calls)


def test_capture_repo_state_clean():
    fake = FakeGit({"log": (0, LOG, ""), "rev-parse": (0, "dev", ""), "status": (0, "", "")})
    with mock.patch("subprocess.run", fake):
        state = capture_repo_state("/repo", 5, True)
    assert state.dirty is False