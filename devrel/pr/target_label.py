"""Target labels and their branch resolution.

Every pull request carries exactly one target label declaring where the
change must land. A label resolves either to a fixed list of branches or,
when the answer depends on the pull request's base branch, through a
resolver function.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Literal

from devrel.core.result import Err, Ok, Result
from devrel.pr.failures import PullRequestFailure

__all__ = [
    "BranchResolution",
    "DynamicBranches",
    "RemoteFailure",
    "ResolveError",
    "StaticBranches",
    "TargetLabel",
    "TargetLabelError",
    "TargetLabelKind",
    "get_branches_from_target_label",
    "get_target_label_from_pull_request",
    "invalid_branch",
    "invalid_label",
]


class TargetLabelKind(Enum):
    MAJOR = "major"
    MINOR = "minor"
    PATCH = "patch"
    RC = "rc"
    LTS = "lts"


@dataclass(frozen=True, slots=True)
class TargetLabelError:
    kind: Literal["invalid_target_label", "invalid_target_branch"]
    message: str

    def to_failure(self) -> PullRequestFailure:
        if self.kind == "invalid_target_label":
            return PullRequestFailure.invalid_target_label(self.message)
        return PullRequestFailure.invalid_target_branch(self.message)


@dataclass(frozen=True, slots=True)
class RemoteFailure:
    """Hosting API or registry failure met while resolving or validating."""

    message: str
    hint: str | None = None


type ResolveError = TargetLabelError | RemoteFailure


@dataclass(frozen=True, slots=True)
class StaticBranches:
    branches: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class DynamicBranches:
    resolve: Callable[[str], Result[list[str], ResolveError]]


type BranchResolution = StaticBranches | DynamicBranches


@dataclass(frozen=True, slots=True)
class TargetLabel:
    kind: TargetLabelKind
    name: str
    branches: BranchResolution


def invalid_label(message: str) -> Err[TargetLabelError]:
    return Err(TargetLabelError(kind="invalid_target_label", message=message))


def invalid_branch(message: str) -> Err[TargetLabelError]:
    return Err(TargetLabelError(kind="invalid_target_branch", message=message))


def get_target_label_from_pull_request(
    target_labels: Sequence[TargetLabel], pr_labels: Sequence[str]
) -> Result[TargetLabel, TargetLabelError]:
    """The single target label present on a pull request."""
    present = set(pr_labels)
    matches = [label for label in target_labels if label.name in present]
    if not matches:
        return invalid_label("Unable to determine target for the PR as it has no target label.")
    if len(matches) > 1:
        return invalid_label(
            "Unable to determine target for the PR as it has multiple target labels."
        )
    return Ok(matches[0])


def get_branches_from_target_label(
    label: TargetLabel, github_target_branch: str
) -> Result[list[str], ResolveError]:
    match label.branches:
        case StaticBranches(branches):
            return Ok(list(branches))
        case DynamicBranches(resolve):
            return resolve(github_target_branch)
