from __future__ import annotations

import typer

from devrel.cli.commands._helpers import exit_on_error, exit_with_code
from devrel.cli.context import build_context
from devrel.context import RepoContext
from devrel.core.errors import ErrorCode
from devrel.core.result import Err
from devrel.output.console import Style
from devrel.pr.check_target_branches import print_target_branches_for_pull_request
from devrel.pr.default_labels import target_labels_for_context
from devrel.pr.lts_check import ConfirmExpired
from devrel.pr.validate import load_and_validate_pull_request
from devrel.release.trains import fetch_active_release_trains

pr_app = typer.Typer(add_completion=False, no_args_is_help=True)


def _expired_lts_policy(ctx: RepoContext, *, force: bool) -> ConfirmExpired:
    if force:
        return lambda _prompt: True
    return lambda prompt: ctx.console.confirm(prompt)


@pr_app.command("check-target-branches")
def check_target_branches(
    number: int = typer.Argument(..., help="Pull request number."),
) -> None:
    """Print the branches a pull request will be merged into."""
    ctx = build_context()
    exit_on_error(
        print_target_branches_for_pull_request(
            ctx, number, confirm_expired=_expired_lts_policy(ctx, force=False)
        ),
        ctx.console,
    )


@pr_app.command("validate")
def validate(
    number: int = typer.Argument(..., help="Pull request number."),
    ignore_non_fatal: bool = typer.Option(
        False, "--ignore-non-fatal", help="Do not fail on pending or failing CI."
    ),
    force_lts: bool = typer.Option(
        False, "--force-lts", help="Accept LTS branches whose support window has ended."
    ),
) -> None:
    """Check whether a pull request can be merged."""
    ctx = build_context()
    trains = exit_on_error(
        fetch_active_release_trains(
            ctx.github,
            next_branch=ctx.config.github.main_branch,
            manifest_path=ctx.config.release.manifest_path,
        ),
        ctx.console,
    )
    labels = target_labels_for_context(
        ctx, trains, confirm_expired=_expired_lts_policy(ctx, force=force_lts)
    )
    result = load_and_validate_pull_request(
        ctx, number, target_labels=labels, ignore_non_fatal_failures=ignore_non_fatal
    )
    if isinstance(result, Err) and getattr(result.error, "non_fatal", False):
        ctx.console.error(result.error.message)
        ctx.console.print("hint: pass --ignore-non-fatal to skip the CI check.", Style.DIM)
        exit_with_code(ErrorCode.FATAL_ERROR)
    pull_request = exit_on_error(result, ctx.console)

    ctx.console.success(f"PR #{pull_request.number} can be merged: {pull_request.title}")
    ctx.console.print(f"  target branches: {', '.join(pull_request.target_branches)}")
    if pull_request.required_base_sha:
        ctx.console.print(f"  required base commit: {pull_request.required_base_sha}", Style.DIM)
    if pull_request.needs_commit_message_fixup:
        ctx.console.warning("Commit messages need a fixup before merging.")
    if pull_request.has_caretaker_note:
        ctx.console.warning("The pull request has a caretaker note.")
