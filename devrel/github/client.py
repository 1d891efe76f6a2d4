"""Hosting API access through the GitHub CLI.

``GhCliClient`` shells out to ``gh api`` so authentication, proxies and
enterprise hosts are whatever the operator already configured for ``gh``.
Reads are retried on transient failures; writes run exactly once.
"""

from __future__ import annotations

import base64
import binascii
import json
import re
from datetime import UTC, datetime, timedelta
from pathlib import Path
from time import sleep
from typing import Literal, Protocol, cast

from devrel.core.result import Err, Ok, Result
from devrel.core.structured import StrDict, as_obj_list, as_str_dict, get_int, get_str, get_table
from devrel.github.models import (
    CommitStatus,
    GithubError,
    PullRequestRef,
    PullRequestState,
    RawPullRequest,
    RepoRef,
)
from devrel.github.timeouts import (
    GH_READ_RETRY_ATTEMPTS,
    GH_READ_RETRY_DELAY_SECONDS,
    GH_TIMEOUT_SECONDS,
)
from devrel.platform.process import ProcessError
from devrel.platform.process import run as run_process

__all__ = ["GithubClient", "GhCliClient"]

_HTTP_STATUS_RE = re.compile(r"\(HTTP (\d{3})\)|HTTP (\d{3})")

_PULL_REQUEST_QUERY = """
query($owner: String!, $name: String!, $number: Int!) {
  repository(owner: $owner, name: $name) {
    pullRequest(number: $number) {
      url
      number
      title
      isDraft
      state
      baseRefName
      headRefName
      headRefOid
      labels(first: 100) { nodes { name } }
      commits(last: 100) {
        totalCount
        nodes { commit { message statusCheckRollup { state } } }
      }
    }
  }
}
"""

_FORK_QUERY = """
query($owner: String!, $name: String!) {
  repository(owner: $owner, name: $name) {
    forks(affiliations: [OWNER], first: 1, orderBy: {field: NAME, direction: ASC}) {
      nodes { name owner { login } }
    }
  }
}
"""

# A PR closed by a commit push (rather than the merge button) is still merged.
_CLOSING_COMMIT_RE = r"(?:close[sd]?|fix(?:e[sd])?|resolve[sd]?):? #{number}(?!\d)"
_CLOSE_SETTLE_TIME = timedelta(seconds=30)


class GithubClient(Protocol):
    """Hosting operations used by release-train discovery, validation and actions."""

    @property
    def repo(self) -> RepoRef: ...

    def list_protected_branches(self) -> Result[list[str], GithubError]: ...

    def get_file_text(self, path: str, ref: str) -> Result[str, GithubError]: ...

    def get_branch_head_sha(self, branch: str) -> Result[str, GithubError]: ...

    def get_combined_status(self, ref: str) -> Result[CommitStatus | None, GithubError]: ...

    def get_commit_message(self, sha: str) -> Result[str, GithubError]: ...

    def get_pull_request(self, number: int) -> Result[RawPullRequest | None, GithubError]: ...

    def get_pull_request_state(self, number: int) -> Result[PullRequestState, GithubError]: ...

    def create_pull_request(
        self, *, head: RepoRef, head_branch: str, base: str, title: str, body: str
    ) -> Result[PullRequestRef, GithubError]: ...

    def add_labels(self, number: int, labels: list[str]) -> Result[None, GithubError]: ...

    def find_fork(self) -> Result[RepoRef, GithubError]: ...

    def branch_exists(self, repo: RepoRef, branch: str) -> Result[bool, GithubError]: ...

    def create_tag(self, tag: str, sha: str) -> Result[None, GithubError]: ...

    def create_release(
        self, *, tag: str, name: str, body: str, prerelease: bool
    ) -> Result[None, GithubError]: ...


def _is_transient_gh_error(error: ProcessError) -> bool:
    text = error.output.lower()
    markers = (
        "timed out",
        "timeout",
        "connection reset",
        "connection refused",
        "temporarily unavailable",
        "service unavailable",
        "bad gateway",
        "gateway timeout",
        "tls handshake timeout",
        "network is unreachable",
        "http 429",
        "http 500",
        "http 502",
        "http 503",
        "http 504",
    )
    return any(marker in text for marker in markers)


def _http_status(error: ProcessError) -> int | None:
    match = _HTTP_STATUS_RE.search(error.output)
    if match is None:
        return None
    return int(match.group(1) or match.group(2))


def _to_github_error(error: ProcessError, *, message: str) -> GithubError:
    return GithubError(
        message=message,
        hint=error.stderr.strip() or None,
        status=_http_status(error),
    )


def _parse_json(payload: str, *, what: str) -> Result[object, GithubError]:
    try:
        obj: object = json.loads(payload)
    except json.JSONDecodeError as e:
        return Err(GithubError(message=f"invalid JSON from gh for {what}: {e}"))
    return Ok(obj)


def _map_rollup_state(state: str | None) -> CommitStatus | None:
    match state:
        case "SUCCESS":
            return "success"
        case "FAILURE" | "ERROR":
            return "failure"
        case "PENDING" | "EXPECTED":
            return "pending"
        case _:
            return None


class GhCliClient:
    """``GithubClient`` backed by the ``gh`` executable."""

    def __init__(
        self,
        *,
        workspace_root: Path,
        repo: RepoRef,
        retry_attempts: int = GH_READ_RETRY_ATTEMPTS,
    ) -> None:
        self._root = workspace_root
        self._repo = repo
        self._retry_attempts = max(1, retry_attempts)

    @property
    def repo(self) -> RepoRef:
        return self._repo

    # -- transport -----------------------------------------------------------

    def _read(self, args: list[str], *, message: str) -> Result[str, GithubError]:
        cmd = ["gh", "api", *args]
        for attempt in range(self._retry_attempts):
            result = run_process(cmd, cwd=self._root, timeout=GH_TIMEOUT_SECONDS)
            if isinstance(result, Ok):
                return result

            error = result.error
            if attempt < self._retry_attempts - 1 and _is_transient_gh_error(error):
                sleep(GH_READ_RETRY_DELAY_SECONDS * (attempt + 1))
                continue
            return Err(_to_github_error(error, message=message))

        return Err(GithubError(message=message))

    def _read_json(self, args: list[str], *, message: str) -> Result[object, GithubError]:
        result = self._read(args, message=message)
        if isinstance(result, Err):
            return result
        return _parse_json(result.value, what=message)

    def _write(self, args: list[str], *, message: str) -> Result[object, GithubError]:
        cmd = ["gh", "api", *args]
        result = run_process(cmd, cwd=self._root, timeout=GH_TIMEOUT_SECONDS)
        if isinstance(result, Err):
            return Err(_to_github_error(result.error, message=message))
        if not result.value.strip():
            return Ok(None)
        return _parse_json(result.value, what=message)

    def _graphql(self, query: str, **variables: str | int) -> Result[StrDict, GithubError]:
        args = ["graphql", "-f", f"query={query}"]
        for key, value in variables.items():
            # -F sends typed values (Int), -f always sends strings.
            flag = "-F" if isinstance(value, int) else "-f"
            args.extend([flag, f"{key}={value}"])
        result = self._read_json(args, message="GraphQL query failed")
        if isinstance(result, Err):
            return result
        data = get_table(as_str_dict(result.value) or {}, "data")
        if data is None:
            return Err(GithubError(message="unexpected GraphQL payload"))
        return Ok(data)

    # -- reads ---------------------------------------------------------------

    def list_protected_branches(self) -> Result[list[str], GithubError]:
        endpoint = f"repos/{self._repo.slug}/branches?protected=true&per_page=100"
        result = self._read(
            ["--paginate", endpoint, "--jq", ".[].name"],
            message="failed to list protected branches",
        )
        if isinstance(result, Err):
            return result
        return Ok([line.strip() for line in result.value.splitlines() if line.strip()])

    def get_file_text(self, path: str, ref: str) -> Result[str, GithubError]:
        endpoint = f"repos/{self._repo.slug}/contents/{path}?ref={ref}"
        obj = self._read_json([endpoint], message=f"failed to read {path} at {ref}")
        if isinstance(obj, Err):
            return obj

        data = as_str_dict(obj.value) or {}
        content = get_str(data, "content")
        if get_str(data, "encoding") != "base64" or content is None:
            return Err(GithubError(message=f"unexpected contents payload for {path} at {ref}"))
        try:
            raw = base64.b64decode(content, validate=False)
            return Ok(raw.decode("utf-8"))
        except (binascii.Error, ValueError) as e:
            return Err(GithubError(message=f"failed to decode {path} at {ref}: {e}"))

    def get_branch_head_sha(self, branch: str) -> Result[str, GithubError]:
        endpoint = f"repos/{self._repo.slug}/git/ref/heads/{branch}"
        obj = self._read_json([endpoint], message=f"failed to resolve branch {branch}")
        if isinstance(obj, Err):
            return obj
        target = get_table(as_str_dict(obj.value) or {}, "object") or {}
        sha = get_str(target, "sha")
        if sha is None:
            return Err(GithubError(message=f"unexpected ref payload for {branch}"))
        return Ok(sha)

    def get_combined_status(self, ref: str) -> Result[CommitStatus | None, GithubError]:
        """Fold legacy commit statuses and check runs into one state."""
        statuses = self._read_json(
            [f"repos/{self._repo.slug}/commits/{ref}/status"],
            message=f"failed to read commit status for {ref}",
        )
        if isinstance(statuses, Err):
            return statuses
        checks = self._read_json(
            [f"repos/{self._repo.slug}/commits/{ref}/check-runs?per_page=100"],
            message=f"failed to read check runs for {ref}",
        )
        if isinstance(checks, Err):
            return checks

        states: list[CommitStatus] = []
        status_data = as_str_dict(statuses.value) or {}
        if (get_int(status_data, "total_count") or 0) > 0:
            match get_str(status_data, "state"):
                case "success":
                    states.append("success")
                case "failure" | "error":
                    states.append("failure")
                case _:
                    states.append("pending")

        for run in as_obj_list((as_str_dict(checks.value) or {}).get("check_runs")) or []:
            run_data = as_str_dict(run) or {}
            if get_str(run_data, "status") != "completed":
                states.append("pending")
                continue
            conclusion = get_str(run_data, "conclusion")
            if conclusion in ("success", "neutral", "skipped"):
                states.append("success")
            else:
                states.append("failure")

        if not states:
            return Ok(None)
        if "failure" in states:
            return Ok("failure")
        if "pending" in states:
            return Ok("pending")
        return Ok("success")

    def get_commit_message(self, sha: str) -> Result[str, GithubError]:
        obj = self._read_json(
            [f"repos/{self._repo.slug}/commits/{sha}"],
            message=f"failed to read commit {sha}",
        )
        if isinstance(obj, Err):
            return obj
        commit = get_table(as_str_dict(obj.value) or {}, "commit") or {}
        message = commit.get("message")
        if not isinstance(message, str):
            return Err(GithubError(message=f"unexpected commit payload for {sha}"))
        return Ok(message)

    def get_pull_request(self, number: int) -> Result[RawPullRequest | None, GithubError]:
        """Fetch a pull request, or ``Ok(None)`` when it does not exist."""
        result = self._graphql(
            _PULL_REQUEST_QUERY, owner=self._repo.owner, name=self._repo.name, number=number
        )
        if isinstance(result, Err):
            if result.error.hint and "Could not resolve to a PullRequest" in result.error.hint:
                return Ok(None)
            return result

        repository = get_table(result.value, "repository") or {}
        node = get_table(repository, "pullRequest")
        if node is None:
            return Ok(None)
        return _parse_pull_request(node)

    def get_pull_request_state(self, number: int) -> Result[PullRequestState, GithubError]:
        obj = self._read_json(
            [f"repos/{self._repo.slug}/pulls/{number}"],
            message=f"failed to read pull request #{number}",
        )
        if isinstance(obj, Err):
            return obj
        data = as_str_dict(obj.value) or {}
        if data.get("merged") is True:
            return Ok("merged")

        closed_at = _parse_timestamp(get_str(data, "closed_at"))
        # GitHub needs a moment to associate the closing commit with the PR.
        if closed_at is None or closed_at > _utc_now() - _CLOSE_SETTLE_TIME:
            return Ok("open")
        return self._closed_state(number)

    def _closed_state(self, number: int) -> Result[PullRequestState, GithubError]:
        """``merged`` when the most recent close came from a commit."""
        events = self._read_json(
            [f"repos/{self._repo.slug}/issues/{number}/events?per_page=100"],
            message=f"failed to read events of pull request #{number}",
        )
        if isinstance(events, Err):
            return events

        closing = re.compile(_CLOSING_COMMIT_RE.format(number=number), re.IGNORECASE)
        for event in reversed(as_obj_list(events.value) or []):
            data = as_str_dict(event) or {}
            kind = get_str(data, "event")
            commit_id = get_str(data, "commit_id")
            if kind == "reopened":
                return Ok("closed")
            if commit_id is None:
                continue
            if kind == "closed":
                return Ok("merged")
            if kind == "referenced":
                message = self.get_commit_message(commit_id)
                if isinstance(message, Err):
                    return message
                if closing.search(message.value):
                    return Ok("merged")
        return Ok("closed")

    def find_fork(self) -> Result[RepoRef, GithubError]:
        result = self._graphql(_FORK_QUERY, owner=self._repo.owner, name=self._repo.name)
        if isinstance(result, Err):
            return result
        forks = get_table(get_table(result.value, "repository") or {}, "forks") or {}
        for node in as_obj_list(forks.get("nodes")) or []:
            data = as_str_dict(node) or {}
            owner = get_str(get_table(data, "owner") or {}, "login")
            name = get_str(data, "name")
            if owner and name:
                return Ok(RepoRef(owner=owner, name=name))
        return Err(
            GithubError(
                message=f"Unable to find a fork of {self._repo.slug} owned by the current user.",
                hint=f"Fork {self._repo.slug} on GitHub (gh repo fork {self._repo.slug})",
            )
        )

    def branch_exists(self, repo: RepoRef, branch: str) -> Result[bool, GithubError]:
        result = self._read(
            [f"repos/{repo.slug}/branches/{branch}"],
            message=f"failed to look up branch {branch} in {repo.slug}",
        )
        if isinstance(result, Err):
            if result.error.is_not_found:
                return Ok(False)
            return result
        return Ok(True)

    # -- writes --------------------------------------------------------------

    def create_pull_request(
        self, *, head: RepoRef, head_branch: str, base: str, title: str, body: str
    ) -> Result[PullRequestRef, GithubError]:
        result = self._write(
            [
                f"repos/{self._repo.slug}/pulls",
                "--method",
                "POST",
                "-f",
                f"head={head.owner}:{head_branch}",
                "-f",
                f"base={base}",
                "-f",
                f"title={title}",
                "-f",
                f"body={body}",
            ],
            message=f"failed to create pull request for {head.owner}:{head_branch}",
        )
        if isinstance(result, Err):
            return result
        data = as_str_dict(result.value) or {}
        number = get_int(data, "number")
        url = get_str(data, "html_url")
        if number is None or url is None:
            return Err(GithubError(message="unexpected payload for created pull request"))
        return Ok(PullRequestRef(number=number, url=url, head_branch=head_branch))

    def add_labels(self, number: int, labels: list[str]) -> Result[None, GithubError]:
        args = [f"repos/{self._repo.slug}/issues/{number}/labels", "--method", "POST"]
        for label in labels:
            args.extend(["-f", f"labels[]={label}"])
        return self._write(args, message=f"failed to label pull request #{number}").map(_discard)

    def create_tag(self, tag: str, sha: str) -> Result[None, GithubError]:
        return self._write(
            [
                f"repos/{self._repo.slug}/git/refs",
                "--method",
                "POST",
                "-f",
                f"ref=refs/tags/{tag}",
                "-f",
                f"sha={sha}",
            ],
            message=f"failed to create tag {tag}",
        ).map(_discard)

    def create_release(
        self, *, tag: str, name: str, body: str, prerelease: bool
    ) -> Result[None, GithubError]:
        return self._write(
            [
                f"repos/{self._repo.slug}/releases",
                "--method",
                "POST",
                "-f",
                f"tag_name={tag}",
                "-f",
                f"name={name}",
                "-f",
                f"body={body}",
                "-F",
                f"prerelease={'true' if prerelease else 'false'}",
            ],
            message=f"failed to create release {name}",
        ).map(_discard)


def _parse_pull_request(node: StrDict) -> Result[RawPullRequest | None, GithubError]:
    number = get_int(node, "number")
    state = get_str(node, "state")
    if number is None or state not in ("OPEN", "CLOSED", "MERGED"):
        return Err(GithubError(message="unexpected pull request payload"))

    labels = [
        get_str(as_str_dict(item) or {}, "name")
        for item in as_obj_list((get_table(node, "labels") or {}).get("nodes")) or []
    ]

    commits_table = get_table(node, "commits") or {}
    messages: list[str] = []
    last_status: CommitStatus | None = None
    for item in as_obj_list(commits_table.get("nodes")) or []:
        commit = get_table(as_str_dict(item) or {}, "commit") or {}
        message = commit.get("message")
        messages.append(message if isinstance(message, str) else "")
        rollup = get_table(commit, "statusCheckRollup") or {}
        last_status = _map_rollup_state(get_str(rollup, "state"))

    return Ok(
        RawPullRequest(
            number=number,
            url=get_str(node, "url") or "",
            title=get_str(node, "title") or "",
            is_draft=node.get("isDraft") is True,
            state=cast(Literal["OPEN", "CLOSED", "MERGED"], state),
            base_ref_name=get_str(node, "baseRefName") or "",
            head_ref_name=get_str(node, "headRefName") or "",
            head_sha=get_str(node, "headRefOid") or "",
            labels=tuple(label for label in labels if label),
            commit_messages=tuple(messages),
            commit_count=get_int(commits_table, "totalCount") or len(messages),
            last_commit_status=last_status,
        )
    )


def _discard(_: object) -> None:
    return None


def _utc_now() -> datetime:
    return datetime.now(UTC)


def _parse_timestamp(value: str | None) -> datetime | None:
    if value is None:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
