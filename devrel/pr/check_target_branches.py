from __future__ import annotations

from devrel.context import RepoContext
from devrel.core.result import Err, Ok, Result
from devrel.pr.default_labels import target_labels_for_context
from devrel.pr.failures import PullRequestFailure
from devrel.pr.lts_check import ConfirmExpired
from devrel.pr.target_label import (
    RemoteFailure,
    get_branches_from_target_label,
    get_target_label_from_pull_request,
)
from devrel.release.errors import ReleaseError
from devrel.release.trains import fetch_active_release_trains

type TargetBranchError = ReleaseError | PullRequestFailure | RemoteFailure


def get_target_branches_for_pull_request(
    ctx: RepoContext,
    number: int,
    *,
    confirm_expired: ConfirmExpired,
) -> Result[list[str], TargetBranchError]:
    """Branches pull request ``number`` would be merged into, per its target label."""
    trains = fetch_active_release_trains(
        ctx.github,
        next_branch=ctx.config.github.main_branch,
        manifest_path=ctx.config.release.manifest_path,
    )
    if isinstance(trains, Err):
        return trains

    raw = ctx.github.get_pull_request(number)
    if isinstance(raw, Err):
        return Err(RemoteFailure(message=raw.error.message, hint=raw.error.hint))
    if raw.value is None:
        return Err(PullRequestFailure.not_found())

    labels = target_labels_for_context(ctx, trains.value, confirm_expired=confirm_expired)
    label = get_target_label_from_pull_request(labels, raw.value.labels)
    if isinstance(label, Err):
        return Err(label.error.to_failure())

    branches = get_branches_from_target_label(label.value, raw.value.base_ref_name)
    if isinstance(branches, Err):
        error = branches.error
        if isinstance(error, RemoteFailure):
            return Err(error)
        return Err(error.to_failure())
    return Ok(branches.value)


def print_target_branches_for_pull_request(
    ctx: RepoContext,
    number: int,
    *,
    confirm_expired: ConfirmExpired,
) -> Result[list[str], TargetBranchError]:
    result = get_target_branches_for_pull_request(ctx, number, confirm_expired=confirm_expired)
    if isinstance(result, Ok):
        ctx.console.info(f"PR #{number} will merge into:")
        for branch in result.value:
            ctx.console.print(f"  - {branch}")
    return result
