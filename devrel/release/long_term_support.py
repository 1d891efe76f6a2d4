"""Long-term support windows.

A major ``N`` is in LTS once a newer major is out. Its LTS home branch is
declared by the ``vN-lts`` dist-tag of the representative package, and
the window ends ``lts_support_months`` after ``N.0.0`` was published.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timedelta

from devrel.context import RepoContext
from devrel.core.result import Err, Ok, Result
from devrel.registry.npm import PackageInfo
from devrel.release.errors import ReleaseError
from devrel.release.semver import SemVer, parse_semver
from devrel.release.trains import ActiveReleaseTrains

__all__ = [
    "LtsBranch",
    "LtsBranches",
    "add_months",
    "compute_lts_end_date",
    "fetch_long_term_support_branches",
    "fetch_representative_package",
    "lts_dist_tag",
]

_LTS_DIST_TAG_RE = re.compile(r"^v(\d+)-lts$")


@dataclass(frozen=True, slots=True)
class LtsBranch:
    name: str
    version: SemVer
    dist_tag: str


@dataclass(frozen=True, slots=True)
class LtsBranches:
    active: list[LtsBranch]
    inactive: list[LtsBranch]


def lts_dist_tag(major: int) -> str:
    return f"v{major}-lts"


def add_months(moment: datetime, months: int) -> datetime:
    """Shift by calendar months.

    A day past the end of the target month overflows into the following
    month: Jan 31 plus one month is Mar 3 (Mar 2 in leap years).
    """
    index = moment.month - 1 + months
    first = moment.replace(year=moment.year + index // 12, month=index % 12 + 1, day=1)
    return first + timedelta(days=moment.day - 1)


def compute_lts_end_date(major_release_date: datetime, support_months: int) -> datetime:
    return add_months(major_release_date, support_months)


def fetch_representative_package(ctx: RepoContext) -> Result[PackageInfo, ReleaseError]:
    package = ctx.config.release.representative_package
    result = ctx.registry.fetch_package_info(package)
    if isinstance(result, Err):
        return Err(
            ReleaseError(
                kind="registry_failure", message=result.error.message, hint=result.error.hint
            )
        )
    return result


def fetch_long_term_support_branches(
    ctx: RepoContext, trains: ActiveReleaseTrains
) -> Result[LtsBranches, ReleaseError]:
    """LTS branches declared in the registry, split by whether support has ended."""
    info = fetch_representative_package(ctx)
    if isinstance(info, Err):
        return info

    today = ctx.now()
    months = ctx.config.release.lts_support_months
    active: list[LtsBranch] = []
    inactive: list[LtsBranch] = []

    for tag, raw_version in info.value.dist_tags.items():
        m = _LTS_DIST_TAG_RE.match(tag)
        version = parse_semver(raw_version)
        if m is None or version is None:
            continue
        # Only majors older than the latest train can be in LTS.
        if version.major >= trains.latest.version.major:
            continue

        branch = LtsBranch(
            name=f"{version.major}.{version.minor}.x", version=version, dist_tag=tag
        )
        released = info.value.publish_times.get(f"{version.major}.0.0")
        if released is not None and today <= compute_lts_end_date(released, months):
            active.append(branch)
        else:
            inactive.append(branch)

    active.sort(key=lambda b: b.version, reverse=True)
    inactive.sort(key=lambda b: b.version, reverse=True)
    return Ok(LtsBranches(active=active, inactive=inactive))
