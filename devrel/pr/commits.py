"""Conventional commit message parsing.

Just enough structure for versioning policy and release notes: the
header's type and scope, and the ``BREAKING CHANGE:`` / ``DEPRECATED:``
notes in the footer. This is not a linter; malformed headers parse with
an empty type.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

__all__ = ["Commit", "parse_commit_message"]

_HEADER_RE = re.compile(r"^(?P<type>[\w-]+)(?:\((?P<scope>[^)]*)\))?!?: (?P<subject>.+)$")
_REVERT_RE = re.compile(r'^(?:revert:?\s|Revert\s+")', re.IGNORECASE)
_NOTE_RE = re.compile(r"^(?P<keyword>BREAKING CHANGE|BREAKING-CHANGE|DEPRECATED):\s*(?P<text>.*)$")
_FIXUP_PREFIX = "fixup! "
_SQUASH_PREFIX = "squash! "


@dataclass(frozen=True, slots=True)
class Commit:
    header: str
    body: str
    footer: str
    type: str
    scope: str
    subject: str
    breaking_changes: tuple[str, ...]
    deprecations: tuple[str, ...]
    is_revert: bool
    is_squash: bool
    is_fixup: bool


def _split_notes(lines: list[str]) -> tuple[list[str], list[str], list[str]]:
    """Split message lines into body lines, breaking change notes and deprecation notes."""
    body: list[str] = []
    breaking: list[list[str]] = []
    deprecated: list[list[str]] = []
    current: list[str] | None = None

    for line in lines:
        m = _NOTE_RE.match(line)
        if m is not None:
            current = [m.group("text")]
            if m.group("keyword") == "DEPRECATED":
                deprecated.append(current)
            else:
                breaking.append(current)
            continue
        if current is None:
            body.append(line)
        else:
            current.append(line)

    def join(notes: list[list[str]]) -> list[str]:
        return ["\n".join(note).strip() for note in notes]

    return body, join(breaking), join(deprecated)


def parse_commit_message(message: str) -> Commit:
    lines = message.replace("\r\n", "\n").strip().split("\n")
    header = lines[0].strip() if lines else ""

    is_fixup = header.startswith(_FIXUP_PREFIX)
    is_squash = header.startswith(_SQUASH_PREFIX)
    stripped = header
    for prefix in (_FIXUP_PREFIX, _SQUASH_PREFIX):
        if stripped.startswith(prefix):
            stripped = stripped[len(prefix) :]

    m = _HEADER_RE.match(stripped)
    body_lines, breaking, deprecations = _split_notes(lines[1:])
    footer_start = next(
        (i for i, line in enumerate(lines[1:]) if _NOTE_RE.match(line) is not None),
        None,
    )
    footer = "\n".join(lines[1 + footer_start :]).strip() if footer_start is not None else ""

    return Commit(
        header=header,
        body="\n".join(body_lines).strip(),
        footer=footer,
        type=m.group("type") if m else "",
        scope=(m.group("scope") or "") if m else "",
        subject=m.group("subject") if m else stripped,
        breaking_changes=tuple(breaking),
        deprecations=tuple(deprecations),
        is_revert=_REVERT_RE.match(stripped) is not None,
        is_squash=is_squash,
        is_fixup=is_fixup,
    )
