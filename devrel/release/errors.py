from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

ReleaseErrorKind = Literal[
    "invalid_version",
    "branch_topology",
    "remote_failure",
    "registry_failure",
]


@dataclass(frozen=True, slots=True)
class ReleaseError:
    kind: ReleaseErrorKind
    message: str
    hint: str | None = None


class FatalReleaseActionError(Exception):
    """A release action failed; the cause has already been reported."""


class UserAbortedReleaseActionError(Exception):
    """The operator declined to continue. Not an error."""
