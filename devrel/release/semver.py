from __future__ import annotations

import re
from dataclasses import dataclass, field
from functools import total_ordering
from typing import Literal

Identifier = int | str
ReleaseBump = Literal["major", "minor", "patch", "prerelease"]

_SEMVER_RE = re.compile(
    r"^v?(0|[1-9]\d*)\.(0|[1-9]\d*)\.(0|[1-9]\d*)"
    r"(?:-((?:0|[1-9]\d*|\d*[a-zA-Z-][0-9a-zA-Z-]*)(?:\.(?:0|[1-9]\d*|\d*[a-zA-Z-][0-9a-zA-Z-]*))*))?"
    r"(?:\+([0-9a-zA-Z-]+(?:\.[0-9a-zA-Z-]+)*))?$"
)


def _parse_identifier(part: str) -> Identifier:
    return int(part) if part.isdigit() else part


@total_ordering
@dataclass(frozen=True, slots=True)
class SemVer:
    major: int
    minor: int
    patch: int
    prerelease: tuple[Identifier, ...] = ()
    build: tuple[str, ...] = field(default=(), compare=False)

    def __str__(self) -> str:
        text = f"{self.major}.{self.minor}.{self.patch}"
        if self.prerelease:
            text += "-" + ".".join(str(p) for p in self.prerelease)
        if self.build:
            text += "+" + ".".join(self.build)
        return text

    def to_tag(self) -> str:
        return f"v{self}"

    @property
    def is_prerelease(self) -> bool:
        return bool(self.prerelease)

    @property
    def is_major(self) -> bool:
        """True for ``X.0.0`` regardless of prerelease."""
        return self.minor == 0 and self.patch == 0

    @property
    def core(self) -> SemVer:
        """The version without prerelease and build metadata."""
        return SemVer(self.major, self.minor, self.patch)

    def _key(self) -> tuple[object, ...]:
        # A release sorts after all of its prereleases. Within a prerelease,
        # numeric identifiers sort before alphanumeric ones.
        if not self.prerelease:
            pre: tuple[object, ...] = (1,)
        else:
            pre = (
                0,
                tuple((0, p, "") if isinstance(p, int) else (1, 0, p) for p in self.prerelease),
            )
        return (self.major, self.minor, self.patch, pre)

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, SemVer):
            return NotImplemented
        return self._key() < other._key()

    def bump(self, kind: ReleaseBump, identifier: str | None = None) -> SemVer:
        match kind:
            case "major":
                return SemVer(self.major + 1, 0, 0)
            case "minor":
                return SemVer(self.major, self.minor + 1, 0)
            case "patch":
                return SemVer(self.major, self.minor, self.patch + 1)
            case "prerelease":
                return self._bump_prerelease(identifier)
            case _:
                raise AssertionError(f"unexpected bump kind: {kind}")

    def _bump_prerelease(self, identifier: str | None) -> SemVer:
        """Increment the prerelease counter.

        ``10.1.0-next.3`` -> ``10.1.0-next.4``; with identifier ``rc`` the
        result switches series: ``10.1.0-next.3`` -> ``10.1.0-rc.0``. A
        stable version first moves to the next patch: ``1.2.3`` -> ``1.2.4-0``.
        """
        base = self if self.prerelease else SemVer(self.major, self.minor, self.patch + 1)
        parts = list(self.prerelease)

        numeric = [i for i, p in enumerate(parts) if isinstance(p, int)]
        if not parts:
            parts = [0]
        elif numeric:
            last = numeric[-1]
            parts[last] = int(parts[last]) + 1
        else:
            parts.append(0)

        if identifier is not None:
            same_series = parts[0] == identifier and len(parts) > 1 and isinstance(parts[1], int)
            if not same_series:
                parts = [identifier, 0]

        return SemVer(base.major, base.minor, base.patch, tuple(parts))


def parse_semver(text: str) -> SemVer | None:
    m = _SEMVER_RE.match(text.strip())
    if m is None:
        return None
    prerelease = tuple(_parse_identifier(p) for p in m.group(4).split(".")) if m.group(4) else ()
    build = tuple(m.group(5).split(".")) if m.group(5) else ()
    return SemVer(int(m.group(1)), int(m.group(2)), int(m.group(3)), prerelease, build)
