"""Pull request merge validation.

Checks run in a fixed order and stop at the first failure, so a human
always sees the most fundamental problem first:

1. the pull request exists
2. it is marked merge ready
3. its author signed the CLA
4. it carries exactly one target label
5. it is open and not a draft
6. its commits are allowed by the target label
7. breaking change label and commits agree
8. CI on the head commit is green (skippable)
9. the target label resolves to concrete branches
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from devrel.context import RepoContext
from devrel.core.config import MergeConfig
from devrel.core.result import Err, Ok, Result
from devrel.github.models import RawPullRequest
from devrel.pr.commits import Commit, parse_commit_message
from devrel.pr.failures import PullRequestFailure
from devrel.pr.target_label import (
    RemoteFailure,
    TargetLabel,
    TargetLabelError,
    TargetLabelKind,
    get_branches_from_target_label,
    get_target_label_from_pull_request,
)

__all__ = [
    "PullRequest",
    "ValidationError",
    "assert_changes_allowed_for_target_label",
    "assert_correct_breaking_change_labeling",
    "load_and_validate_pull_request",
    "validate_pull_request",
]

type ValidationError = PullRequestFailure | RemoteFailure


@dataclass(frozen=True, slots=True)
class PullRequest:
    """A pull request that passed validation and is ready to be merged."""

    url: str
    number: int
    title: str
    labels: tuple[str, ...]
    github_target_branch: str
    target_branches: tuple[str, ...]
    required_base_sha: str | None
    needs_commit_message_fixup: bool
    has_caretaker_note: bool
    commit_count: int


def assert_changes_allowed_for_target_label(
    commits: Sequence[Commit],
    label: TargetLabel,
    *,
    exempt_scopes: Sequence[str],
) -> Result[None, PullRequestFailure]:
    relevant = [c for c in commits if c.scope not in exempt_scopes]
    has_breaking = any(c.breaking_changes for c in relevant)

    match label.kind:
        case TargetLabelKind.MAJOR:
            return Ok(None)
        case TargetLabelKind.MINOR:
            if has_breaking:
                return Err(PullRequestFailure.has_breaking_changes(label.name))
            return Ok(None)
        case TargetLabelKind.RC | TargetLabelKind.PATCH | TargetLabelKind.LTS:
            if has_breaking:
                return Err(PullRequestFailure.has_breaking_changes(label.name))
            if any(c.type == "feat" for c in relevant):
                return Err(PullRequestFailure.has_feature_commits(label.name))
            if any(c.deprecations for c in relevant):
                return Err(PullRequestFailure.has_deprecations(label.name))
            return Ok(None)


def assert_correct_breaking_change_labeling(
    commits: Sequence[Commit],
    labels: Sequence[str],
    *,
    breaking_change_label: str,
) -> Result[None, PullRequestFailure]:
    has_label = breaking_change_label in labels
    has_commit = any(c.breaking_changes for c in commits)
    if has_commit and not has_label:
        return Err(PullRequestFailure.missing_breaking_change_label())
    if has_label and not has_commit:
        return Err(PullRequestFailure.missing_breaking_change_commit())
    return Ok(None)


def _label_error(error: TargetLabelError | RemoteFailure) -> ValidationError:
    if isinstance(error, TargetLabelError):
        return error.to_failure()
    return error


def validate_pull_request(
    raw: RawPullRequest | None,
    *,
    merge: MergeConfig,
    target_labels: Sequence[TargetLabel],
    ignore_non_fatal_failures: bool = False,
) -> Result[PullRequest, ValidationError]:
    if raw is None:
        return Err(PullRequestFailure.not_found())

    labels = raw.labels
    if merge.merge_ready_label not in labels:
        return Err(PullRequestFailure.not_merge_ready())
    if merge.cla_signed_label not in labels:
        return Err(PullRequestFailure.cla_unsigned())

    target_label = get_target_label_from_pull_request(target_labels, labels)
    if isinstance(target_label, Err):
        return Err(target_label.error.to_failure())

    if raw.is_draft:
        return Err(PullRequestFailure.is_draft())
    if raw.state == "CLOSED":
        return Err(PullRequestFailure.is_closed())
    if raw.state == "MERGED":
        return Err(PullRequestFailure.is_merged())

    commits = [parse_commit_message(message) for message in raw.commit_messages]
    allowed = assert_changes_allowed_for_target_label(
        commits, target_label.value, exempt_scopes=merge.target_label_exempt_scopes
    )
    if isinstance(allowed, Err):
        return allowed

    labeling = assert_correct_breaking_change_labeling(
        commits, labels, breaking_change_label=merge.breaking_change_label
    )
    if isinstance(labeling, Err):
        return labeling

    if not ignore_non_fatal_failures:
        if raw.last_commit_status == "failure":
            return Err(PullRequestFailure.failing_ci())
        if raw.last_commit_status == "pending":
            return Err(PullRequestFailure.pending_ci())

    branches = get_branches_from_target_label(target_label.value, raw.base_ref_name)
    if isinstance(branches, Err):
        return Err(_label_error(branches.error))

    return Ok(
        PullRequest(
            url=raw.url,
            number=raw.number,
            title=raw.title,
            labels=labels,
            github_target_branch=raw.base_ref_name,
            target_branches=tuple(branches.value),
            required_base_sha=merge.required_base_commits.get(raw.base_ref_name),
            needs_commit_message_fixup=merge.commit_message_fixup_label in labels,
            has_caretaker_note=merge.caretaker_note_label in labels,
            commit_count=raw.commit_count,
        )
    )


def load_and_validate_pull_request(
    ctx: RepoContext,
    number: int,
    *,
    target_labels: Sequence[TargetLabel],
    ignore_non_fatal_failures: bool = False,
) -> Result[PullRequest, ValidationError]:
    """Fetch pull request ``number`` and validate it."""
    raw = ctx.github.get_pull_request(number)
    if isinstance(raw, Err):
        return Err(RemoteFailure(message=raw.error.message, hint=raw.error.hint))

    return validate_pull_request(
        raw.value,
        merge=ctx.config.merge,
        target_labels=target_labels,
        ignore_non_fatal_failures=ignore_non_fatal_failures,
    )
