from __future__ import annotations

from collections.abc import Callable

from devrel.context import RepoContext
from devrel.core.result import Err, Ok, Result
from devrel.pr.target_label import RemoteFailure, ResolveError, invalid_branch
from devrel.release.long_term_support import (
    compute_lts_end_date,
    fetch_representative_package,
    lts_dist_tag,
)
from devrel.release.semver import parse_semver
from devrel.release.version_branches import version_of_branch

ConfirmExpired = Callable[[str], bool]

FORCE_EXPIRED_LTS_PROMPT = "Do you want to forcibly proceed with merging?"


def assert_active_lts_branch(
    ctx: RepoContext,
    branch_name: str,
    *,
    confirm_expired: ConfirmExpired,
) -> Result[None, ResolveError]:
    """Check that ``branch_name`` is the LTS home of its major and still supported.

    An expired window is not an outright rejection: ``confirm_expired`` is
    asked whether to merge anyway. Interactive callers prompt the
    operator; batch callers pass a pre-decided answer.
    """
    version = version_of_branch(
        ctx.github, branch_name, manifest_path=ctx.config.release.manifest_path
    )
    if isinstance(version, Err):
        return Err(RemoteFailure(message=version.error.message, hint=version.error.hint))
    major = version.value.major

    info = fetch_representative_package(ctx)
    if isinstance(info, Err):
        return Err(RemoteFailure(message=info.error.message, hint=info.error.hint))

    tagged = info.value.dist_tags.get(lts_dist_tag(major))
    lts_version = parse_semver(tagged) if tagged is not None else None
    if lts_version is None:
        return invalid_branch(f"No LTS version tagged for v{major} in NPM.")

    expected_branch = f"{lts_version.major}.{lts_version.minor}.x"
    if expected_branch != branch_name:
        return invalid_branch(
            f"Not using last-minor branch for v{major} LTS version. PR should be updated "
            f"to target: {expected_branch}"
        )

    released = info.value.publish_times.get(f"{major}.0.0")
    if released is None:
        return invalid_branch(f"Unable to determine the release date of v{major}.0.0.")

    end_date = compute_lts_end_date(released, ctx.config.release.lts_support_months)
    if ctx.now() <= end_date:
        return Ok(None)

    end_text = end_date.date().isoformat()
    ctx.console.warning(f"Long-term support ended for v{major} on {end_text}.")
    if confirm_expired(FORCE_EXPIRED_LTS_PROMPT):
        ctx.console.info(f"Forcibly merging into expired LTS branch {branch_name}.")
        return Ok(None)
    return invalid_branch(
        f"Long-term supported ended for v{major} on {end_text}. Pull request cannot be "
        f"merged into the {branch_name} branch."
    )
