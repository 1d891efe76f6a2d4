from __future__ import annotations

import os
from pathlib import Path

import typer

from devrel import __version__
from devrel.cli.commands.pr_cmd import pr_app
from devrel.cli.commands.release_cmd import release_app
from devrel.cli.context import CONFIG_ENV_VAR
from devrel.core.errors import ErrorCode


app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    rich_markup_mode="rich",
)

# Sub-apps
app.add_typer(release_app, name="release", help="Release trains and publishing.")
app.add_typer(pr_app, name="pr", help="Pull request target branches and validation.")


def _show_version(value: bool) -> None:
    if value:
        typer.echo(__version__)
        raise typer.Exit(code=0)


@app.callback()
def _main(  # pyright: ignore[reportUnusedFunction]
    version: bool = typer.Option(
        False, "--version", callback=_show_version, is_eager=True, help="Show version and exit."
    ),
    config: Path | None = typer.Option(
        None,
        "--config",
        help="Path to .devrel.toml (overrides discovery from the current directory)",
    ),
) -> None:
    del version
    if config is not None:
        path = config.expanduser()
        if not path.is_file():
            typer.echo(f"error: --config '{path}' does not exist", err=True)
            raise typer.Exit(code=int(ErrorCode.CONFIG_ERROR))
        os.environ[CONFIG_ENV_VAR] = str(path.resolve())


def main() -> None:
    app()
