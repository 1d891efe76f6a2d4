"""Release train discovery.

The repository's branching topology is derived fresh on every invocation
from the protected version branches and the versions their manifests
declare. Three trains can be active at once:

- ``next``: the integration branch, always present.
- ``release_candidate``: a version branch in feature-freeze (``-next.N``)
  or release-candidate (``-rc.N``) phase, at most one.
- ``latest``: the most recent version branch with a stable version.

Any branch state that contradicts this model is reported as a
``branch_topology`` error and aborts the run.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from devrel.core.result import Err, Ok, Result
from devrel.github.client import GithubClient
from devrel.release.errors import ReleaseError
from devrel.release.semver import SemVer
from devrel.release.version_branches import VersionBranch, branches_for_majors, version_of_branch

__all__ = [
    "ActiveReleaseTrains",
    "ReleaseTrain",
    "ScanScope",
    "TrainPhase",
    "fetch_active_release_trains",
    "find_active_release_trains",
    "next_train_version",
    "release_train_scan_scope",
]

_RELEASE_CANDIDATE_PRERELEASES = ("rc", "next")


class TrainPhase(Enum):
    NEXT = "next"
    FEATURE_FREEZE = "feature-freeze"
    RELEASE_CANDIDATE = "release-candidate"
    LATEST = "latest"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True, slots=True)
class ReleaseTrain:
    branch_name: str
    version: SemVer
    phase: TrainPhase

    @property
    def is_major(self) -> bool:
        return self.version.is_major


@dataclass(frozen=True, slots=True)
class ActiveReleaseTrains:
    latest: ReleaseTrain
    release_candidate: ReleaseTrain | None
    next: ReleaseTrain

    def __post_init__(self) -> None:
        names = [self.latest.branch_name, self.next.branch_name]
        if self.release_candidate is not None:
            names.append(self.release_candidate.branch_name)
        if len(set(names)) != len(names):
            raise ValueError(f"release trains must map to distinct branches: {names}")

        ordered = [self.latest.version]
        if self.release_candidate is not None:
            ordered.append(self.release_candidate.version)
        ordered.append(next_train_version(self.next.version))
        if any(a >= b for a, b in zip(ordered, ordered[1:])):
            raise ValueError(
                "release trains must be ordered latest < release-candidate < next: "
                + ", ".join(str(v) for v in ordered)
            )


@dataclass(frozen=True, slots=True)
class ScanScope:
    majors: frozenset[int]
    expected_rc_major: int


def next_train_version(next_version: SemVer) -> SemVer:
    """``MAJOR.MINOR.0`` of the next branch, i.e. the version its branch-off would get."""
    return SemVer(next_version.major, next_version.minor, 0)


def release_train_scan_scope(next_version: SemVer) -> ScanScope:
    """Majors that can hold the latest/RC trains for a given next version.

    With ``X.0.0`` in next, a new major is starting and only ``X-1`` can
    hold other trains. With ``X.1.0`` in next, ``X.0.x`` may be an RC or
    the latest train, but ``X-1`` may still hold the latest train too.
    """
    major = next_version.major
    match next_version.minor:
        case 0:
            return ScanScope(majors=frozenset({major - 1}), expected_rc_major=major - 1)
        case 1:
            return ScanScope(majors=frozenset({major, major - 1}), expected_rc_major=major)
        case _:
            return ScanScope(majors=frozenset({major}), expected_rc_major=major)


def _rc_phase(version: SemVer) -> TrainPhase | None:
    if not version.prerelease or version.prerelease[0] not in _RELEASE_CANDIDATE_PRERELEASES:
        return None
    if version.prerelease[0] == "next":
        return TrainPhase.FEATURE_FREEZE
    return TrainPhase.RELEASE_CANDIDATE


def _topology_error(message: str) -> Err[ReleaseError]:
    return Err(ReleaseError(kind="branch_topology", message=message))


def find_active_release_trains(
    *,
    next_train: ReleaseTrain,
    branches: list[VersionBranch],
    version_of: Callable[[str], Result[SemVer, ReleaseError]],
    expected_rc_major: int,
) -> Result[tuple[ReleaseTrain, ReleaseTrain | None], ReleaseError]:
    """Walk ``branches`` (newest first) and pick the latest and RC trains.

    Returns ``(latest, release_candidate)``. Scanning stops at the first
    branch with a stable version, since older branches can only hold
    older patch trains.
    """
    next_branch = next_train.branch_name
    train_version = next_train_version(next_train.version)
    release_candidate: ReleaseTrain | None = None

    for branch in branches:
        if branch.parsed > train_version:
            return _topology_error(
                f'Discovered unexpected version-branch "{branch.name}" for a release-train that '
                f'is more recent than the release-train currently in the "{next_branch}" branch. '
                "Please either delete the branch if created by accident, or update the outdated "
                f"version in the next branch ({next_branch})."
            )
        if branch.parsed == train_version:
            return _topology_error(
                f'Discovered unexpected version-branch "{branch.name}" for a release-train that '
                f'is already active in the "{next_branch}" branch. Please either delete the '
                "branch if created by accident, or update the version in the next branch "
                f"({next_branch})."
            )

        version = version_of(branch.name)
        if isinstance(version, Err):
            return version

        phase = _rc_phase(version.value)
        if phase is not None:
            if release_candidate is not None:
                return _topology_error(
                    "Unable to determine latest release-train. Found two consecutive "
                    "branches in feature-freeze/release-candidate phase. Did not expect both "
                    f'"{branch.name}" and "{release_candidate.branch_name}" to be in '
                    "feature-freeze/release-candidate mode."
                )
            if version.value.major != expected_rc_major:
                return _topology_error(
                    "Discovered unexpected old feature-freeze/release-candidate branch. "
                    "Expected no version-branch in feature-freeze/release-candidate mode "
                    f"for v{version.value.major}."
                )
            release_candidate = ReleaseTrain(branch.name, version.value, phase)
            continue

        return Ok((ReleaseTrain(branch.name, version.value, TrainPhase.LATEST), release_candidate))

    considered = ", ".join(b.name for b in branches)
    return _topology_error(
        "Unable to determine the latest release-train. The following branches have been "
        f"considered: [{considered}]"
    )


def fetch_active_release_trains(
    github: GithubClient,
    *,
    next_branch: str,
    manifest_path: str,
) -> Result[ActiveReleaseTrains, ReleaseError]:
    """Discover the active trains from live branch state."""

    def version_of(branch: str) -> Result[SemVer, ReleaseError]:
        return version_of_branch(github, branch, manifest_path=manifest_path)

    next_version = version_of(next_branch)
    if isinstance(next_version, Err):
        return next_version
    next_train = ReleaseTrain(next_branch, next_version.value, TrainPhase.NEXT)

    scope = release_train_scan_scope(next_version.value)
    branches = branches_for_majors(github, set(scope.majors))
    if isinstance(branches, Err):
        return branches

    found = find_active_release_trains(
        next_train=next_train,
        branches=branches.value,
        version_of=version_of,
        expected_rc_major=scope.expected_rc_major,
    )
    if isinstance(found, Err):
        return found

    latest, release_candidate = found.value
    try:
        trains = ActiveReleaseTrains(
            latest=latest, release_candidate=release_candidate, next=next_train
        )
    except ValueError as e:
        return _topology_error(f"Inconsistent release-train versions: {e}")
    return Ok(trains)
