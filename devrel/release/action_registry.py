"""Release actions an operator can pick from.

The registry is a fixed tuple; which entries are offered is decided by
each action's ``is_active`` predicate against the current trains.
"""

from __future__ import annotations

from devrel.context import RepoContext
from devrel.release.actions import ReleaseAction
from devrel.release.branch_off import BranchOffFeatureFreezeAction, BranchOffReleaseCandidateAction
from devrel.release.cut import (
    CutNewPatchAction,
    CutNextPrereleaseAction,
    CutReleaseCandidateForFeatureFreezeAction,
    CutStableAction,
)
from devrel.release.trains import ActiveReleaseTrains

__all__ = ["RELEASE_ACTIONS", "active_release_actions"]


RELEASE_ACTIONS: tuple[type[ReleaseAction], ...] = (
    CutStableAction,
    CutReleaseCandidateForFeatureFreezeAction,
    CutNewPatchAction,
    CutNextPrereleaseAction,
    BranchOffFeatureFreezeAction,
    BranchOffReleaseCandidateAction,
)


def active_release_actions(
    trains: ActiveReleaseTrains,
    ctx: RepoContext,
    actions: tuple[type[ReleaseAction], ...] = RELEASE_ACTIONS,
) -> list[ReleaseAction]:
    return [action(trains, ctx) for action in actions if action.is_active(trains)]
