from __future__ import annotations

from devrel.context import RepoContext
from devrel.core.result import Err, Ok, Result
from devrel.output.console import Style
from devrel.release.errors import ReleaseError
from devrel.release.long_term_support import fetch_long_term_support_branches
from devrel.release.trains import ActiveReleaseTrains, ReleaseTrain, TrainPhase

_PHASE_LABELS = {
    TrainPhase.NEXT: "next",
    TrainPhase.FEATURE_FREEZE: "feature-freeze",
    TrainPhase.RELEASE_CANDIDATE: "release-candidate",
    TrainPhase.LATEST: "latest (patch)",
}


def _describe(train: ReleaseTrain) -> str:
    phase = _PHASE_LABELS[train.phase]
    return f"  - {train.branch_name} contains changes for {phase} (v{train.version})"


def print_active_release_trains(
    ctx: RepoContext, trains: ActiveReleaseTrains
) -> Result[None, ReleaseError]:
    console = ctx.console
    console.header("Current version branches in the project:")
    console.print(_describe(trains.next))
    if trains.release_candidate is not None:
        console.print(_describe(trains.release_candidate))
    else:
        console.print("  - No feature-freeze/release-candidate branch active.", Style.DIM)
    console.print(_describe(trains.latest))

    lts = fetch_long_term_support_branches(ctx, trains)
    if isinstance(lts, Err):
        return lts

    console.header("Long-term support branches:")
    if not lts.value.active and not lts.value.inactive:
        console.print("  - No LTS versions tagged in the registry.", Style.DIM)
    for branch in lts.value.active:
        console.print(f"  - {branch.name} (v{branch.version}, {branch.dist_tag})")
    for branch in lts.value.inactive:
        console.print(f"  - {branch.name} (v{branch.version}, support ended)", Style.DIM)
    return Ok(None)
