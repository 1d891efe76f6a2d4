from __future__ import annotations

from pathlib import Path

import pytest

from devrel.core.result import Err, Ok, Result
from devrel.git import repository as repo_mod
from devrel.git.repository import GitError, LogEntry, Repository
from devrel.platform.process import ProcessError


class _Git:
    """Scripted ``git`` output keyed by subcommand."""

    def __init__(self, **outputs: str | ProcessError) -> None:
        self.outputs = outputs
        self.calls: list[list[str]] = []
        self.timeouts: list[float | None] = []

    def __call__(
        self, cmd: list[str], *, cwd: Path, timeout: float | None = None
    ) -> Result[str, ProcessError]:
        del cwd
        self.calls.append(cmd)
        self.timeouts.append(timeout)
        output = self.outputs.get(cmd[1], "")
        if isinstance(output, ProcessError):
            return Err(output)
        return Ok(output)


def _repo(monkeypatch: pytest.MonkeyPatch, tmp_path: Path, git: _Git) -> Repository:
    monkeypatch.setattr(repo_mod, "run_process", git)
    return Repository(tmp_path)


def test_current_branch(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    repo = _repo(monkeypatch, tmp_path, _Git(**{"rev-parse": "main\n"}))
    assert repo.current_branch_or_revision() == Ok("main")


def test_detached_head_returns_sha(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    responses = iter(["HEAD\n", "abc123\n"])

    def fake_run(cmd: list[str], *, cwd: Path, timeout: float | None = None):
        del cmd, cwd, timeout
        return Ok(next(responses))

    monkeypatch.setattr(repo_mod, "run_process", fake_run)
    assert Repository(tmp_path).current_branch_or_revision() == Ok("abc123")


@pytest.mark.parametrize(("porcelain", "dirty"), [("", False), (" M package.json\n", True)])
def test_uncommitted_changes(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path, porcelain: str, dirty: bool
) -> None:
    git = _Git(status=porcelain)
    repo = _repo(monkeypatch, tmp_path, git)

    assert repo.has_uncommitted_changes() == Ok(dirty)
    assert "--untracked-files=no" in git.calls[0]


def test_forced_checkout(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    git = _Git()
    repo = _repo(monkeypatch, tmp_path, git)

    assert repo.checkout("my-feature", force=True) == Ok(None)
    assert git.calls == [["git", "checkout", "-q", "-f", "my-feature"]]


def test_fetch_and_checkout_detached(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    git = _Git()
    repo = _repo(monkeypatch, tmp_path, git)

    repo.fetch_and_checkout_detached("https://github.com/acme/widgets.git", "10.2.x")
    assert git.calls == [
        ["git", "fetch", "-q", "https://github.com/acme/widgets.git", "refs/heads/10.2.x"],
        ["git", "checkout", "-q", "FETCH_HEAD", "--detach"],
    ]
    # Network subcommands get the longer timeout.
    assert git.timeouts[0] is not None and git.timeouts[1] is not None
    assert git.timeouts[0] > git.timeouts[1]


def test_fetch_failure_skips_checkout(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    error = ProcessError(
        command=("git", "fetch"), returncode=128, stdout="", stderr="fatal: no such ref\n"
    )
    git = _Git(fetch=error)
    repo = _repo(monkeypatch, tmp_path, git)

    result = repo.fetch_and_checkout_detached("origin", "10.9.x")
    assert result == Err(
        GitError(command="git fetch", message="fatal: no such ref", returncode=128)
    )
    assert len(git.calls) == 1


def test_commit_adds_then_commits(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    git = _Git()
    repo = _repo(monkeypatch, tmp_path, git)

    repo.commit("release: cut the v10.2.0 release", ["package.json", "CHANGELOG.md"])
    assert git.calls[0] == ["git", "add", "--", "package.json", "CHANGELOG.md"]
    assert git.calls[1][:4] == ["git", "commit", "-q", "--no-verify"]


def test_log_parses_records(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    output = "aaa\x1ffeat(forms): add\n\nbody\n\x1e\nbbb\x1ffix: trim\n\x1e\n"
    git = _Git(log=output)
    repo = _repo(monkeypatch, tmp_path, git)

    assert repo.log("10.1.0") == Ok(
        [LogEntry("aaa", "feat(forms): add\n\nbody"), LogEntry("bbb", "fix: trim")]
    )
    assert git.calls[0][-1] == "10.1.0..HEAD"


def test_tags(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    repo = _repo(monkeypatch, tmp_path, _Git(tag="10.1.0\n10.1.1\n"))
    assert repo.tags() == Ok(["10.1.0", "10.1.1"])
