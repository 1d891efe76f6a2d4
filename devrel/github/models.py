from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

CommitStatus = Literal["success", "pending", "failure"]
PullRequestState = Literal["merged", "closed", "open"]


@dataclass(frozen=True, slots=True)
class GithubError:
    """A failed hosting API call.

    ``status`` carries the HTTP status when the failure came from the API
    rather than from the transport or the ``gh`` binary.
    """

    message: str
    hint: str | None = None
    status: int | None = None

    @property
    def is_not_found(self) -> bool:
        return self.status == 404


@dataclass(frozen=True, slots=True)
class RepoRef:
    owner: str
    name: str

    @property
    def slug(self) -> str:
        return f"{self.owner}/{self.name}"

    def remote_url(self, *, use_ssh: bool) -> str:
        if use_ssh:
            return f"git@github.com:{self.slug}.git"
        return f"https://github.com/{self.slug}.git"


@dataclass(frozen=True, slots=True)
class RawPullRequest:
    """Pull request as returned by the hosting API, before validation.

    ``last_commit_status`` is the rolled-up CI state of the head commit,
    or None when no checks reported for it.
    """

    number: int
    url: str
    title: str
    is_draft: bool
    state: Literal["OPEN", "CLOSED", "MERGED"]
    base_ref_name: str
    head_ref_name: str
    head_sha: str
    labels: tuple[str, ...]
    commit_messages: tuple[str, ...]
    commit_count: int
    last_commit_status: CommitStatus | None


@dataclass(frozen=True, slots=True)
class PullRequestRef:
    number: int
    url: str
    head_branch: str
