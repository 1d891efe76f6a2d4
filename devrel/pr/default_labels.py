"""The standard target label set, resolved against the active release trains."""

from __future__ import annotations

from collections.abc import Callable

from devrel.context import RepoContext
from devrel.core.config import TargetLabelNames
from devrel.core.result import Err, Ok, Result
from devrel.pr.lts_check import ConfirmExpired, assert_active_lts_branch
from devrel.pr.target_label import (
    DynamicBranches,
    ResolveError,
    StaticBranches,
    TargetLabel,
    TargetLabelKind,
    invalid_branch,
    invalid_label,
)
from devrel.release.trains import ActiveReleaseTrains
from devrel.release.version_branches import is_version_branch

LtsCheck = Callable[[str], Result[None, ResolveError]]


def get_default_target_labels(
    trains: ActiveReleaseTrains,
    *,
    names: TargetLabelNames,
    lts_check: LtsCheck,
) -> list[TargetLabel]:
    next_branch = trains.next.branch_name
    latest_branch = trains.latest.branch_name
    rc = trains.release_candidate

    def major(_: str) -> Result[list[str], ResolveError]:
        # A major label is only meaningful while next is heading to a new major.
        if not trains.next.is_major:
            return invalid_label(
                f'Unable to merge pull request. The "{next_branch}" branch will be released '
                "as a minor version."
            )
        return Ok([next_branch])

    def patch(base: str) -> Result[list[str], ResolveError]:
        # A patch PR raised directly against the latest branch lands only there.
        if base == latest_branch:
            return Ok([latest_branch])
        branches = [next_branch, latest_branch]
        if rc is not None:
            branches.append(rc.branch_name)
        return Ok(branches)

    def release_candidate(base: str) -> Result[list[str], ResolveError]:
        if rc is None:
            return invalid_label(
                "No active feature-freeze/release-candidate branch. Unable to merge pull "
                f'request using "{names.rc}" label.'
            )
        if base == rc.branch_name:
            return Ok([rc.branch_name])
        return Ok([next_branch, rc.branch_name])

    def lts(base: str) -> Result[list[str], ResolveError]:
        if not is_version_branch(base):
            return invalid_branch(
                f'PR cannot be merged as it does not target a long-term support branch: "{base}"'
            )
        if base == latest_branch:
            return invalid_branch(
                f'PR cannot be merged with "{names.lts}" into patch branch. Consider changing '
                f'the label to "{names.patch}" if this is intentional.'
            )
        if rc is not None and base == rc.branch_name:
            return invalid_branch(
                f'PR cannot be merged with "{names.lts}" into feature-freeze/release-candidate '
                f'branch. Consider changing the label to "{names.rc}" if this is intentional.'
            )
        checked = lts_check(base)
        if isinstance(checked, Err):
            return checked
        return Ok([base])

    return [
        TargetLabel(TargetLabelKind.MAJOR, names.major, DynamicBranches(major)),
        TargetLabel(TargetLabelKind.MINOR, names.minor, StaticBranches((next_branch,))),
        TargetLabel(TargetLabelKind.PATCH, names.patch, DynamicBranches(patch)),
        TargetLabel(TargetLabelKind.RC, names.rc, DynamicBranches(release_candidate)),
        TargetLabel(TargetLabelKind.LTS, names.lts, DynamicBranches(lts)),
    ]


def target_labels_for_context(
    ctx: RepoContext,
    trains: ActiveReleaseTrains,
    *,
    confirm_expired: ConfirmExpired,
) -> list[TargetLabel]:
    """Default labels with the LTS check wired to the context's registry."""

    def lts_check(branch: str) -> Result[None, ResolveError]:
        return assert_active_lts_branch(ctx, branch, confirm_expired=confirm_expired)

    return get_default_target_labels(
        trains, names=ctx.config.merge.target_labels, lts_check=lts_check
    )
