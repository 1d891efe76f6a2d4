from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path

from devrel.core.config import Config
from devrel.git.repository import RepositoryProtocol
from devrel.github.client import GithubClient
from devrel.output.console import ConsoleProtocol
from devrel.registry.npm import PackageRegistry


def _utc_now() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True, slots=True)
class RepoContext:
    """Everything one invocation needs, built once and passed down.

    Nothing below the CLI layer reads configuration or creates clients on
    its own.
    """

    workspace_root: Path
    config: Config
    github: GithubClient
    registry: PackageRegistry
    git: RepositoryProtocol
    console: ConsoleProtocol
    now: Callable[[], datetime] = field(default=_utc_now)
