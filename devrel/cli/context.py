from __future__ import annotations

import os
from pathlib import Path

import typer

from devrel.context import RepoContext
from devrel.core.config import find_config_file, load_config
from devrel.core.errors import ErrorCode
from devrel.core.result import Err
from devrel.git.repository import Repository
from devrel.github.client import GhCliClient
from devrel.github.models import RepoRef
from devrel.output.console import RichConsole
from devrel.registry.http import UrllibHttpClient
from devrel.registry.npm import NpmRegistry

CONFIG_ENV_VAR = "DEVREL_CONFIG"


def _config_path() -> Path:
    override = os.environ.get(CONFIG_ENV_VAR)
    if override:
        return Path(override)

    found = find_config_file(Path.cwd())
    if isinstance(found, Err):
        typer.echo(f"error: {found.error.message}", err=True)
        raise typer.Exit(code=int(ErrorCode.CONFIG_ERROR))
    return found.value


def build_context() -> RepoContext:
    config_path = _config_path()
    config_result = load_config(config_path)
    if isinstance(config_result, Err):
        typer.echo(f"error: {config_result.error.message}", err=True)
        raise typer.Exit(code=int(ErrorCode.CONFIG_ERROR))
    config = config_result.value

    root = config_path.resolve().parent
    return RepoContext(
        workspace_root=root,
        config=config,
        github=GhCliClient(
            workspace_root=root,
            repo=RepoRef(owner=config.github.owner, name=config.github.name),
        ),
        registry=NpmRegistry(UrllibHttpClient(), config.release.registry_url),
        git=Repository(root),
        console=RichConsole(),
    )
