"""Reasons a pull request cannot be merged.

Failures are values, not exceptions: the validator returns one so callers
looping over many pull requests can report it and move on.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class FailureKind(Enum):
    NOT_FOUND = "not-found"
    NOT_MERGE_READY = "not-merge-ready"
    CLA_UNSIGNED = "cla-unsigned"
    IS_DRAFT = "is-draft"
    IS_CLOSED = "is-closed"
    IS_MERGED = "is-merged"
    INVALID_TARGET_LABEL = "invalid-target-label"
    INVALID_TARGET_BRANCH = "invalid-target-branch"
    HAS_BREAKING_CHANGES = "has-breaking-changes"
    HAS_DEPRECATIONS = "has-deprecations"
    HAS_FEATURE_COMMITS = "has-feature-commits"
    MISSING_BREAKING_CHANGE_LABEL = "missing-breaking-change-label"
    MISSING_BREAKING_CHANGE_COMMIT = "missing-breaking-change-commit"
    FAILING_CI = "failing-ci"
    PENDING_CI = "pending-ci"


@dataclass(frozen=True, slots=True)
class PullRequestFailure:
    """A single validation failure.

    ``non_fatal`` failures (CI state) may be ignored on request; every
    other failure always blocks the merge.
    """

    kind: FailureKind
    message: str
    non_fatal: bool = False

    @classmethod
    def not_found(cls) -> PullRequestFailure:
        return cls(FailureKind.NOT_FOUND, "Pull request could not be found upstream.")

    @classmethod
    def not_merge_ready(cls) -> PullRequestFailure:
        return cls(FailureKind.NOT_MERGE_READY, "Not marked as merge ready.")

    @classmethod
    def cla_unsigned(cls) -> PullRequestFailure:
        return cls(
            FailureKind.CLA_UNSIGNED,
            "CLA has not been signed. Please make sure the PR author has signed the CLA.",
        )

    @classmethod
    def is_draft(cls) -> PullRequestFailure:
        return cls(FailureKind.IS_DRAFT, "Pull request is still in draft.")

    @classmethod
    def is_closed(cls) -> PullRequestFailure:
        return cls(FailureKind.IS_CLOSED, "Pull request is already closed.")

    @classmethod
    def is_merged(cls) -> PullRequestFailure:
        return cls(FailureKind.IS_MERGED, "Pull request is already merged.")

    @classmethod
    def invalid_target_label(cls, message: str) -> PullRequestFailure:
        return cls(FailureKind.INVALID_TARGET_LABEL, message)

    @classmethod
    def invalid_target_branch(cls, message: str) -> PullRequestFailure:
        return cls(FailureKind.INVALID_TARGET_BRANCH, message)

    @classmethod
    def has_breaking_changes(cls, label: str) -> PullRequestFailure:
        return cls(
            FailureKind.HAS_BREAKING_CHANGES,
            f'Cannot merge into branch for "{label}" as the pull request has breaking changes. '
            'Breaking changes can only be merged with the "target: major" label.',
        )

    @classmethod
    def has_deprecations(cls, label: str) -> PullRequestFailure:
        return cls(
            FailureKind.HAS_DEPRECATIONS,
            f'Cannot merge into branch for "{label}" as the pull request contains deprecations. '
            'Deprecations can only be merged with the "target: minor" or "target: major" label.',
        )

    @classmethod
    def has_feature_commits(cls, label: str) -> PullRequestFailure:
        return cls(
            FailureKind.HAS_FEATURE_COMMITS,
            f'Cannot merge into branch for "{label}" as the pull request has commits with the '
            '"feat" type. New features can only be merged with the "target: minor" or '
            '"target: major" label.',
        )

    @classmethod
    def missing_breaking_change_label(cls) -> PullRequestFailure:
        return cls(
            FailureKind.MISSING_BREAKING_CHANGE_LABEL,
            "Pull Request has at least one commit containing a breaking change note, "
            "but does not have a breaking change label.",
        )

    @classmethod
    def missing_breaking_change_commit(cls) -> PullRequestFailure:
        return cls(
            FailureKind.MISSING_BREAKING_CHANGE_COMMIT,
            "Pull Request has a breaking change label, but does not contain any commits "
            "with breaking change notes.",
        )

    @classmethod
    def failing_ci(cls) -> PullRequestFailure:
        return cls(FailureKind.FAILING_CI, "Failing CI jobs.", non_fatal=True)

    @classmethod
    def pending_ci(cls) -> PullRequestFailure:
        return cls(FailureKind.PENDING_CI, "Pending CI jobs.", non_fatal=True)
