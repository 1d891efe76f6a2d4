"""Package registry metadata.

Only the fields the release-train tooling needs are decoded: the tag map
(``dist-tags``), per-version publish times (``time``) and the set of
published versions.
"""

from __future__ import annotations

import urllib.parse
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime
from typing import Protocol

from devrel.core.result import Err, Ok, Result
from devrel.core.structured import as_str_dict, get_table
from devrel.registry.http import HttpClient

__all__ = ["NpmRegistry", "PackageInfo", "PackageRegistry", "RegistryError"]


@dataclass(frozen=True, slots=True)
class RegistryError:
    message: str
    hint: str | None = None


@dataclass(frozen=True, slots=True)
class PackageInfo:
    name: str
    dist_tags: Mapping[str, str]
    publish_times: Mapping[str, datetime]
    versions: frozenset[str]

    def is_published(self, version: str) -> bool:
        return version in self.versions


class PackageRegistry(Protocol):
    def fetch_package_info(self, package: str) -> Result[PackageInfo, RegistryError]: ...


def _parse_timestamp(value: str) -> datetime | None:
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


class NpmRegistry:
    """Reads package documents from an npm-compatible registry.

    A document is fetched at most once per package for the lifetime of the
    instance; instances are created per CLI invocation.
    """

    def __init__(self, http: HttpClient, registry_url: str) -> None:
        self._http = http
        self._registry_url = registry_url.rstrip("/")
        self._cache: dict[str, PackageInfo] = {}

    def package_url(self, package: str) -> str:
        return f"{self._registry_url}/{urllib.parse.quote(package, safe='@')}"

    def fetch_package_info(self, package: str) -> Result[PackageInfo, RegistryError]:
        cached = self._cache.get(package)
        if cached is not None:
            return Ok(cached)

        url = self.package_url(package)
        result = self._http.get_json(url)
        if isinstance(result, Err):
            return Err(
                RegistryError(
                    message=f"Unable to fetch registry metadata for {package}",
                    hint=str(result.error),
                )
            )

        doc = result.value
        tags = get_table(doc, "dist-tags") or {}
        dist_tags = {k: v for k, v in tags.items() if isinstance(v, str)}
        times: dict[str, datetime] = {}
        for version, stamp in (get_table(doc, "time") or {}).items():
            if isinstance(stamp, str) and (parsed := _parse_timestamp(stamp)) is not None:
                times[version] = parsed
        versions = frozenset((as_str_dict(doc.get("versions")) or {}).keys())

        info = PackageInfo(
            name=package,
            dist_tags=dist_tags,
            publish_times=times,
            versions=versions,
        )
        self._cache[package] = info
        return Ok(info)
