"""Release notes rendered from the commits of a release range."""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from datetime import date
from pathlib import Path

from devrel.core.result import Err, Ok, Result
from devrel.git.repository import GitError, RepositoryProtocol
from devrel.pr.commits import Commit, parse_commit_message
from devrel.release.semver import SemVer

__all__ = ["NotesEntry", "ReleaseNotes", "build_release_notes", "prepend_to_changelog"]

# Commit types that describe user-facing changes.
_LISTED_TYPES = frozenset({"feat", "fix", "perf"})
_NO_SCOPE = "misc"


@dataclass(frozen=True, slots=True)
class NotesEntry:
    sha: str
    commit: Commit


@dataclass(frozen=True, slots=True)
class ReleaseNotes:
    version: SemVer
    released_on: date
    repo_url: str
    entries: tuple[NotesEntry, ...]

    def _commit_link(self, sha: str) -> str:
        return f"[{sha[:7]}]({self.repo_url}/commit/{sha})"

    def _notes_section(self, title: str, notes: list[tuple[str, str]]) -> list[str]:
        if not notes:
            return []
        by_scope: dict[str, list[str]] = defaultdict(list)
        for scope, text in notes:
            by_scope[scope].append(text)
        lines = [f"## {title}"]
        for scope in sorted(by_scope):
            lines.append(f"### {scope}")
            lines.extend(f"- {text}" for text in by_scope[scope])
        return lines

    def _body(self) -> list[str]:
        breaking = [
            (e.commit.scope or _NO_SCOPE, note)
            for e in self.entries
            for note in e.commit.breaking_changes
        ]
        deprecations = [
            (e.commit.scope or _NO_SCOPE, note)
            for e in self.entries
            for note in e.commit.deprecations
        ]

        lines = self._notes_section("Breaking Changes", breaking)
        lines += self._notes_section("Deprecations", deprecations)

        by_scope: dict[str, list[NotesEntry]] = defaultdict(list)
        for entry in self.entries:
            if entry.commit.type in _LISTED_TYPES:
                by_scope[entry.commit.scope or _NO_SCOPE].append(entry)
        for scope in sorted(by_scope):
            lines.append(f"### {scope}")
            lines.append("| Commit | Type | Description |")
            lines.append("| -- | -- | -- |")
            for entry in by_scope[scope]:
                lines.append(
                    f"| {self._commit_link(entry.sha)} | {entry.commit.type} "
                    f"| {entry.commit.subject} |"
                )
        return lines

    def changelog_entry(self) -> str:
        header = [
            f'<a name="{self.version}"></a>',
            f"# {self.version} ({self.released_on.isoformat()})",
        ]
        return "\n".join(header + self._body()) + "\n"

    def github_release_entry(self) -> str:
        body = self._body()
        if not body:
            return "No user-facing changes in this release."
        return "\n".join(body) + "\n"


def build_release_notes(
    repo: RepositoryProtocol,
    version: SemVer,
    *,
    from_ref: str,
    to_ref: str = "HEAD",
    released_on: date,
    repo_url: str,
) -> Result[ReleaseNotes, GitError]:
    log = repo.log(from_ref, to_ref)
    if isinstance(log, Err):
        return log

    entries: list[NotesEntry] = []
    # git log is newest first; notes list changes in the order they landed.
    for item in reversed(log.value):
        commit = parse_commit_message(item.message)
        if commit.type == "release" or commit.is_fixup or commit.is_squash:
            continue
        entries.append(NotesEntry(sha=item.sha, commit=commit))

    return Ok(
        ReleaseNotes(
            version=version,
            released_on=released_on,
            repo_url=repo_url,
            entries=tuple(entries),
        )
    )


def prepend_to_changelog(changelog: Path, entry: str) -> None:
    existing = changelog.read_text(encoding="utf-8") if changelog.exists() else ""
    changelog.write_text(f"{entry}\n\n{existing}" if existing else entry, encoding="utf-8")
