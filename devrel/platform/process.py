"""Subprocess execution returning Results.

All external programs (git, gh, npm, the build command) run through this
module so tests can replace a single seam.
"""

from __future__ import annotations

import subprocess
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from devrel.core.result import Err, Ok, Result

__all__ = ["ProcessError", "run", "run_silent"]

# Exit status reported when the process never produced one.
NO_EXIT_STATUS = -1


@dataclass(frozen=True, slots=True)
class ProcessError:
    """A command that exited non-zero, timed out or could not start."""

    command: tuple[str, ...]
    returncode: int
    stdout: str
    stderr: str

    @classmethod
    def not_started(cls, cmd: Sequence[str], error: OSError) -> ProcessError:
        return cls(tuple(cmd), NO_EXIT_STATUS, "", str(error))

    @classmethod
    def timed_out(
        cls, cmd: Sequence[str], timeout: float | None, partial: object
    ) -> ProcessError:
        stdout = partial if isinstance(partial, str) else ""
        return cls(tuple(cmd), NO_EXIT_STATUS, stdout, f"Command timed out after {timeout}s")

    @property
    def output(self) -> str:
        """stderr and stdout together, for matching error markers."""
        return f"{self.stderr}\n{self.stdout}"

    def __str__(self) -> str:
        shown = " ".join(self.command[:3])
        if len(self.command) > 3:
            shown += " ..."
        return f"{shown} failed (exit {self.returncode})"


def run(
    cmd: list[str],
    cwd: Path,
    env: dict[str, str] | None = None,
    *,
    timeout: float | None = None,
) -> Result[str, ProcessError]:
    """Run ``cmd`` in ``cwd`` and return its captured stdout."""
    try:
        proc = subprocess.run(
            cmd,
            cwd=str(cwd),
            env=env,
            capture_output=True,
            text=True,
            timeout=timeout,
            check=False,
        )
    except subprocess.TimeoutExpired as e:
        return Err(ProcessError.timed_out(cmd, timeout, e.stdout))
    except OSError as e:
        return Err(ProcessError.not_started(cmd, e))

    if proc.returncode:
        return Err(ProcessError(tuple(cmd), proc.returncode, proc.stdout, proc.stderr))
    return Ok(proc.stdout)


def run_silent(
    cmd: list[str],
    cwd: Path,
    env: dict[str, str] | None = None,
) -> Result[None, ProcessError]:
    """Run ``cmd`` with output streaming to the terminal.

    Used for long-running steps (dependency install, npm login) where the
    operator should see progress.
    """
    try:
        returncode = subprocess.run(cmd, cwd=str(cwd), env=env, check=False).returncode
    except OSError as e:
        return Err(ProcessError.not_started(cmd, e))

    if returncode:
        return Err(ProcessError(tuple(cmd), returncode, "", ""))
    return Ok(None)
