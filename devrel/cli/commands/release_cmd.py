from __future__ import annotations

from collections.abc import Sequence

import typer

from devrel.cli.commands._helpers import exit_on_error, exit_with_code
from devrel.cli.context import build_context
from devrel.core.errors import ErrorCode
from devrel.release.actions import ReleaseAction
from devrel.release.print_trains import print_active_release_trains
from devrel.release.tool import CompletionState, ReleaseTool
from devrel.release.trains import fetch_active_release_trains

release_app = typer.Typer(add_completion=False, no_args_is_help=True)

_EXIT_CODES = {
    CompletionState.SUCCESS: ErrorCode.OK,
    CompletionState.FATAL_ERROR: ErrorCode.FATAL_ERROR,
    CompletionState.MANUALLY_ABORTED: ErrorCode.USER_ABORTED,
}


def prompt_for_release_action(actions: Sequence[ReleaseAction]) -> ReleaseAction | None:
    """Numbered menu on stdin; ``0`` cancels."""
    for index, action in enumerate(actions, start=1):
        typer.echo(f"  {index}) {action.describe()}")
    typer.echo("  0) Cancel")

    choice: int = typer.prompt("Please select an action", type=int, default=1)
    if choice <= 0 or choice > len(actions):
        return None
    return actions[choice - 1]


@release_app.command("publish")
def publish() -> None:
    """Interactively pick and perform a release action."""
    ctx = build_context()
    state = ReleaseTool(ctx, select_action=prompt_for_release_action).run()
    code = _EXIT_CODES[state]
    if code is not ErrorCode.OK:
        exit_with_code(code)


@release_app.command("info")
def info() -> None:
    """Print the active release trains and LTS branches."""
    ctx = build_context()
    trains = exit_on_error(
        fetch_active_release_trains(
            ctx.github,
            next_branch=ctx.config.github.main_branch,
            manifest_path=ctx.config.release.manifest_path,
        ),
        ctx.console,
    )
    exit_on_error(print_active_release_trains(ctx, trains), ctx.console)
