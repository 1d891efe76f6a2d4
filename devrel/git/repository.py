"""Local git working tree operations.

``Repository`` wraps the git subcommands the release tool needs. Every
method returns a ``Result``; callers decide whether a failure is fatal.

Usage:
    repo = Repository(Path("/path/to/clone"))
    match repo.current_branch_or_revision():
        case Ok(ref):
            print(f"on {ref}")
        case Err(e):
            print(f"git failed: {e.message}")
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from devrel.core.result import Err, Ok, Result
from devrel.platform.process import run as run_process

_GIT_TIMEOUT_SECONDS = 30.0
_GIT_NETWORK_TIMEOUT_SECONDS = 3 * 60.0
_NETWORK_SUBCOMMANDS = frozenset({"fetch", "pull", "push", "clone"})

_FIELD_SEP = "\x1f"
_RECORD_SEP = "\x1e"

__all__ = ["GitError", "LogEntry", "Repository", "RepositoryProtocol"]


@dataclass(frozen=True, slots=True)
class GitError:
    """A failed git invocation."""

    command: str
    message: str
    returncode: int = 1


@dataclass(frozen=True, slots=True)
class LogEntry:
    sha: str
    message: str


class RepositoryProtocol(Protocol):
    """Operations the release actions perform on the local clone."""

    @property
    def path(self) -> Path: ...

    def current_branch_or_revision(self) -> Result[str, GitError]: ...

    def has_uncommitted_changes(self) -> Result[bool, GitError]: ...

    def head_sha(self, ref: str = "HEAD") -> Result[str, GitError]: ...

    def checkout(self, ref: str, *, force: bool = False) -> Result[None, GitError]: ...

    def fetch_and_checkout_detached(
        self, remote_url: str, branch: str
    ) -> Result[None, GitError]: ...

    def create_or_reset_branch(self, name: str) -> Result[None, GitError]: ...

    def push_head(self, remote_url: str, branch: str) -> Result[None, GitError]: ...

    def commit(self, message: str, files: list[str]) -> Result[None, GitError]: ...

    def tags(self) -> Result[list[str], GitError]: ...

    def log(self, from_ref: str, to_ref: str = "HEAD") -> Result[list[LogEntry], GitError]: ...


class Repository:
    """A git clone on disk."""

    def __init__(self, path: Path) -> None:
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    def current_branch_or_revision(self) -> Result[str, GitError]:
        """Branch name, or the commit sha when HEAD is detached."""
        result = self._run(["rev-parse", "--abbrev-ref", "HEAD"])
        if isinstance(result, Err):
            return result
        branch = result.value.strip()
        if branch != "HEAD":
            return Ok(branch)
        return self.head_sha()

    def has_uncommitted_changes(self) -> Result[bool, GitError]:
        """True when tracked files differ from HEAD. Untracked files are ignored."""
        result = self._run(["status", "--porcelain", "--untracked-files=no"])
        if isinstance(result, Err):
            return result
        return Ok(bool(result.value.strip()))

    def head_sha(self, ref: str = "HEAD") -> Result[str, GitError]:
        return self._run(["rev-parse", ref]).map(str.strip)

    def checkout(self, ref: str, *, force: bool = False) -> Result[None, GitError]:
        cmd = ["checkout", "-q"]
        if force:
            cmd.append("-f")
        cmd.append(ref)
        return self._run(cmd).map(_discard)

    def fetch_and_checkout_detached(self, remote_url: str, branch: str) -> Result[None, GitError]:
        fetched = self._run(["fetch", "-q", remote_url, f"refs/heads/{branch}"])
        if isinstance(fetched, Err):
            return fetched
        return self._run(["checkout", "-q", "FETCH_HEAD", "--detach"]).map(_discard)

    def create_or_reset_branch(self, name: str) -> Result[None, GitError]:
        """Point local ``name`` at HEAD and check it out."""
        return self._run(["checkout", "-q", "-B", name]).map(_discard)

    def push_head(self, remote_url: str, branch: str) -> Result[None, GitError]:
        return self._run(["push", "-q", remote_url, f"HEAD:refs/heads/{branch}"]).map(_discard)

    def commit(self, message: str, files: list[str]) -> Result[None, GitError]:
        added = self._run(["add", "--", *files])
        if isinstance(added, Err):
            return added
        return self._run(["commit", "-q", "--no-verify", "-m", message, "--", *files]).map(
            _discard
        )

    def tags(self) -> Result[list[str], GitError]:
        result = self._run(["tag", "--list"])
        if isinstance(result, Err):
            return result
        return Ok([line.strip() for line in result.value.splitlines() if line.strip()])

    def log(self, from_ref: str, to_ref: str = "HEAD") -> Result[list[LogEntry], GitError]:
        """Commits reachable from ``to_ref`` but not from ``from_ref``, newest first."""
        fmt = f"--format=%H{_FIELD_SEP}%B{_RECORD_SEP}"
        result = self._run(["log", fmt, f"{from_ref}..{to_ref}"])
        if isinstance(result, Err):
            return result

        entries: list[LogEntry] = []
        for record in result.value.split(_RECORD_SEP):
            record = record.strip()
            if not record:
                continue
            sha, _, message = record.partition(_FIELD_SEP)
            entries.append(LogEntry(sha=sha.strip(), message=message.strip()))
        return Ok(entries)

    def _run(self, args: list[str]) -> Result[str, GitError]:
        timeout = (
            _GIT_NETWORK_TIMEOUT_SECONDS
            if args[0] in _NETWORK_SUBCOMMANDS
            else _GIT_TIMEOUT_SECONDS
        )
        result = run_process(["git", *args], cwd=self._path, timeout=timeout)
        match result:
            case Ok(stdout):
                return Ok(stdout)
            case Err(e):
                return Err(
                    GitError(
                        command=f"git {args[0]}",
                        message=e.stderr.strip() or str(e),
                        returncode=e.returncode,
                    )
                )


def _discard(_: object) -> None:
    return None
