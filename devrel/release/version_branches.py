"""Version branch naming and lookup.

A version branch is named ``MAJOR.MINOR.x`` and holds the integration
point of one release train. The version a branch *name* stands for is
``MAJOR.MINOR.0``; the version the train is *at* is whatever its manifest
declares.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass

from devrel.core.result import Err, Ok, Result
from devrel.core.structured import as_str_dict, get_str
from devrel.github.client import GithubClient
from devrel.release.errors import ReleaseError
from devrel.release.semver import SemVer, parse_semver

__all__ = [
    "VersionBranch",
    "branches_for_majors",
    "get_version_for_version_branch",
    "is_version_branch",
    "parse_manifest_version",
    "version_of_branch",
]

_VERSION_BRANCH_RE = re.compile(r"^(\d+)\.(\d+)\.x$")


@dataclass(frozen=True, slots=True)
class VersionBranch:
    name: str
    parsed: SemVer


def is_version_branch(name: str) -> bool:
    return _VERSION_BRANCH_RE.match(name) is not None


def get_version_for_version_branch(name: str) -> SemVer | None:
    m = _VERSION_BRANCH_RE.match(name)
    if m is None:
        return None
    return SemVer(int(m.group(1)), int(m.group(2)), 0)


def branches_for_majors(
    github: GithubClient, majors: set[int]
) -> Result[list[VersionBranch], ReleaseError]:
    """Protected version branches of the given majors, newest first."""
    listed = github.list_protected_branches()
    if isinstance(listed, Err):
        return Err(
            ReleaseError(
                kind="remote_failure",
                message=listed.error.message,
                hint=listed.error.hint,
            )
        )

    branches: list[VersionBranch] = []
    for name in listed.value:
        parsed = get_version_for_version_branch(name)
        if parsed is not None and parsed.major in majors:
            branches.append(VersionBranch(name=name, parsed=parsed))
    branches.sort(key=lambda b: b.parsed, reverse=True)
    return Ok(branches)


def parse_manifest_version(text: str, *, source: str) -> Result[SemVer, ReleaseError]:
    try:
        data = as_str_dict(json.loads(text))
    except json.JSONDecodeError as e:
        return Err(ReleaseError(kind="invalid_version", message=f"{source} is not valid JSON: {e}"))

    raw = get_str(data or {}, "version")
    version = parse_semver(raw) if raw is not None else None
    if version is None:
        return Err(
            ReleaseError(
                kind="invalid_version",
                message=f"Invalid version detected in following branch: {source}.",
            )
        )
    return Ok(version)


def version_of_branch(
    github: GithubClient, branch: str, *, manifest_path: str
) -> Result[SemVer, ReleaseError]:
    """Version declared by the manifest at the head of ``branch``."""
    text = github.get_file_text(manifest_path, branch)
    if isinstance(text, Err):
        return Err(
            ReleaseError(
                kind="remote_failure",
                message=f"Unable to read {manifest_path} from branch {branch}",
                hint=text.error.hint or text.error.message,
            )
        )
    return parse_manifest_version(text.value, source=branch)
