from __future__ import annotations

from devrel.release.semver import SemVer


def release_commit_message(version: SemVer) -> str:
    """Message of the commit that stages a release; publishing checks for this prefix."""
    return f"release: cut the v{version} release"


def next_branch_bump_commit_message(version: SemVer) -> str:
    return f"release: bump the next branch to v{version}"


def release_notes_cherry_pick_commit_message(version: SemVer) -> str:
    return f"docs: release notes for the v{version} release"
