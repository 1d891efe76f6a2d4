"""Moving the next release-train into feature-freeze or release-candidate phase.

Branching off creates the ``MAJOR.MINOR.x`` version branch from the tip
of ``next``, stages and publishes the first pre-release of the new train,
then bumps ``next`` to the following minor.
"""

from __future__ import annotations

from abc import abstractmethod
from typing import ClassVar

from devrel.output.console import Style
from devrel.release.actions import ReleaseAction
from devrel.release.commit_message import (
    next_branch_bump_commit_message,
    release_notes_cherry_pick_commit_message,
)
from devrel.release.notes import ReleaseNotes
from devrel.release.semver import SemVer
from devrel.release.trains import ActiveReleaseTrains, TrainPhase

__all__ = [
    "BranchOffFeatureFreezeAction",
    "BranchOffNextBranchBaseAction",
    "BranchOffReleaseCandidateAction",
]


class BranchOffNextBranchBaseAction(ReleaseAction):
    new_phase: ClassVar[TrainPhase]

    _new_version: SemVer | None = None

    @abstractmethod
    def _compute_new_version(self) -> SemVer: ...

    def new_version(self) -> SemVer:
        if self._new_version is None:
            self._new_version = self._compute_new_version()
        return self._new_version

    def describe(self) -> str:
        return (
            f'Move the "{self.active.next.branch_name}" branch into {self.new_phase} phase '
            f"(v{self.new_version()})."
        )

    def perform(self) -> None:
        new_version = self.new_version()
        new_branch = f"{new_version.major}.{new_version.minor}.x"
        # Resolved before the version branch is pushed.
        notes_from = self.previous_release_tag(new_version)

        self._create_new_version_branch_from_next(new_branch)

        # The new branch is still checked out; stage on top of it directly.
        staged = self.stage_version_for_branch_and_create_pull_request(
            new_version, new_branch, notes_from=notes_from
        )
        self.wait_for_pull_request_to_be_merged(staged.pull_request)
        self.build_and_publish(staged.release_notes, new_branch, "next")
        self._create_next_branch_update_pull_request(staged.release_notes, new_version)

    def _create_new_version_branch_from_next(self, new_branch: str) -> None:
        next_branch = self.active.next.branch_name
        self.verify_passing_github_status(next_branch)
        self.checkout_upstream_branch(next_branch)
        self.create_local_branch_from_head(new_branch)
        self.push_head_to_remote_branch(new_branch)
        self.ctx.console.success(f'Version branch "{new_branch}" created.')

    def _create_next_branch_update_pull_request(
        self, notes: ReleaseNotes, new_version: SemVer
    ) -> None:
        next_branch = self.active.next.branch_name
        current = self.active.next.version
        # next moves to the following minor; switching it to a major is a separate decision.
        new_next_version = SemVer(current.major, current.minor + 1, 0, ("next", 0))
        release = self.ctx.config.release

        self.checkout_upstream_branch(next_branch)
        self.update_project_version(new_next_version)
        self.create_commit(
            next_branch_bump_commit_message(new_next_version), [release.manifest_path]
        )
        self.prepend_release_notes_to_changelog(notes)
        self.create_commit(
            release_notes_cherry_pick_commit_message(notes.version), [release.changelog_path]
        )

        body = (
            f'The previous "next" release-train has moved into the {self.new_phase} phase. '
            "This PR updates the next branch to the subsequent release-train.\n\n"
            f"Also this PR cherry-picks the changelog for v{new_version} into the "
            f"{next_branch} branch so that the changelog is up to date."
        )
        pull_request = self.push_changes_to_fork_and_create_pull_request(
            next_branch,
            f"next-release-train-{new_next_version}",
            f'Update next branch to reflect new release-train "v{new_next_version}".',
            body,
        )
        self.ctx.console.success(
            f'Pull request for updating the "{next_branch}" branch has been created.'
        )
        self.ctx.console.print(f"Please ask team members to review: {pull_request.url}", Style.DIM)


class BranchOffFeatureFreezeAction(BranchOffNextBranchBaseAction):
    new_phase = TrainPhase.FEATURE_FREEZE

    @classmethod
    def is_active(cls, active: ActiveReleaseTrains) -> bool:
        return active.release_candidate is None and active.next.is_major

    def _compute_new_version(self) -> SemVer:
        return self.new_prerelease_version_for_next()


class BranchOffReleaseCandidateAction(BranchOffNextBranchBaseAction):
    new_phase = TrainPhase.RELEASE_CANDIDATE

    @classmethod
    def is_active(cls, active: ActiveReleaseTrains) -> bool:
        return active.release_candidate is None and not active.next.is_major

    def _compute_new_version(self) -> SemVer:
        return self.active.next.version.bump("prerelease", "rc")
