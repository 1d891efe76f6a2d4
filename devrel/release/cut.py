"""Release actions that publish a new version of an existing release train.

Unlike a branch-off, these stage the version on a branch that already
exists: ``next`` or the feature-freeze/release-candidate branch for
pre-releases, the release-candidate branch for a stable release, and the
latest branch for patches. Each one cherry-picks its changelog into
``next`` afterwards.
"""

from __future__ import annotations

from abc import abstractmethod

from devrel.release.actions import ReleaseAction
from devrel.release.long_term_support import lts_dist_tag
from devrel.release.semver import SemVer
from devrel.release.trains import ActiveReleaseTrains, ReleaseTrain, TrainPhase

__all__ = [
    "CutNewPatchAction",
    "CutNextPrereleaseAction",
    "CutReleaseCandidateForFeatureFreezeAction",
    "CutStableAction",
]


class _CutAction(ReleaseAction):
    """Stage, wait for the staging PR, publish, then update ``next``'s changelog."""

    _new_version: SemVer | None = None

    @abstractmethod
    def _train(self) -> ReleaseTrain: ...

    @abstractmethod
    def _compute_new_version(self) -> SemVer: ...

    @abstractmethod
    def _dist_tag(self) -> str: ...

    def new_version(self) -> SemVer:
        if self._new_version is None:
            self._new_version = self._compute_new_version()
        return self._new_version

    def perform(self) -> None:
        branch = self._train().branch_name
        staged = self.checkout_branch_and_stage_version(self.new_version(), branch)
        self.wait_for_pull_request_to_be_merged(staged.pull_request)
        self.build_and_publish(staged.release_notes, branch, self._dist_tag())
        self._after_publish()
        if branch != self.active.next.branch_name:
            self.cherry_pick_changelog_into_next_branch(staged.release_notes, branch)

    def _after_publish(self) -> None:
        pass


class CutNextPrereleaseAction(_CutAction):
    """Pre-release for the ``next`` dist-tag, from the RC branch when one exists."""

    @classmethod
    def is_active(cls, active: ActiveReleaseTrains) -> bool:
        del active
        return True

    def _train(self) -> ReleaseTrain:
        return self.active.release_candidate or self.active.next

    def _compute_new_version(self) -> SemVer:
        train = self._train()
        if train.branch_name == self.active.next.branch_name:
            return self.new_prerelease_version_for_next()
        return train.version.bump("prerelease")

    def _dist_tag(self) -> str:
        return "next"

    def describe(self) -> str:
        return (
            f'Cut a new next pre-release for the "{self._train().branch_name}" branch '
            f"(v{self.new_version()})."
        )


class CutReleaseCandidateForFeatureFreezeAction(_CutAction):
    """First release candidate of a train in feature-freeze: ``-next.N`` becomes ``-rc.0``."""

    @classmethod
    def is_active(cls, active: ActiveReleaseTrains) -> bool:
        rc = active.release_candidate
        return rc is not None and rc.phase is TrainPhase.FEATURE_FREEZE

    def _train(self) -> ReleaseTrain:
        assert self.active.release_candidate is not None
        return self.active.release_candidate

    def _compute_new_version(self) -> SemVer:
        return self._train().version.bump("prerelease", "rc")

    def _dist_tag(self) -> str:
        return "next"

    def describe(self) -> str:
        return (
            f"Cut a first release-candidate for the feature-freeze branch (v{self.new_version()})."
        )


class CutStableAction(_CutAction):
    """Stable release of the release-candidate train.

    A new major goes to the ``next`` dist-tag first, and the previous
    latest train gets its ``vN-lts`` tag.
    """

    @classmethod
    def is_active(cls, active: ActiveReleaseTrains) -> bool:
        # Feature-freeze trains must pass through a release candidate first.
        rc = active.release_candidate
        return rc is not None and rc.phase is TrainPhase.RELEASE_CANDIDATE

    def _train(self) -> ReleaseTrain:
        assert self.active.release_candidate is not None
        return self.active.release_candidate

    def _compute_new_version(self) -> SemVer:
        return self._train().version.core

    def _dist_tag(self) -> str:
        return "next" if self._train().is_major else "latest"

    def _after_publish(self) -> None:
        if not self._train().is_major:
            return
        previous = self.active.latest
        for package in self.ctx.config.release.npm_packages:
            self.set_npm_dist_tag(package, previous.version, lts_dist_tag(previous.version.major))

    def describe(self) -> str:
        return f"Cut a stable release for the release-candidate branch (v{self.new_version()})."


class CutNewPatchAction(_CutAction):
    """Patch release of the latest train; available at any time."""

    @classmethod
    def is_active(cls, active: ActiveReleaseTrains) -> bool:
        del active
        return True

    def _train(self) -> ReleaseTrain:
        return self.active.latest

    def _compute_new_version(self) -> SemVer:
        return self.active.latest.version.bump("patch")

    def _dist_tag(self) -> str:
        return "latest"

    def describe(self) -> str:
        return (
            f'Cut a new patch release for the "{self.active.latest.branch_name}" branch '
            f"(v{self.new_version()})."
        )
