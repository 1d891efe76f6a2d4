"""Tests for release notes rendering."""

from __future__ import annotations

from datetime import date
from pathlib import Path

from devrel.core.result import Ok
from devrel.git.repository import LogEntry
from devrel.release.notes import build_release_notes, prepend_to_changelog
from devrel.release.semver import SemVer
from devrel.test.fakes import FakeRepository

ENTRIES = [
    # newest first, as git log prints them
    LogEntry("f" * 40, "release: cut the v10.1.0-next.1 release"),
    LogEntry("e" * 40, "fixup! feat(forms): add validators"),
    LogEntry(
        "d" * 40,
        "feat(core): drop legacy renderer\n\nBREAKING CHANGE: The legacy renderer is gone.",
    ),
    LogEntry("c" * 40, "docs: fix typo"),
    LogEntry("b" * 40, "fix(forms): keep focus on reset"),
    LogEntry("a" * 40, "feat(forms): add validators"),
]


def _notes():
    repo = FakeRepository(entries=list(ENTRIES))
    result = build_release_notes(
        repo,
        SemVer(10, 1, 0, ("next", 2)),
        from_ref="10.1.0-next.1",
        released_on=date(2026, 3, 1),
        repo_url="https://github.com/acme/widgets",
    )
    assert isinstance(result, Ok)
    assert ("log", "10.1.0-next.1", "HEAD") in repo.calls
    return result.value


def test_skips_release_and_fixup_commits() -> None:
    notes = _notes()
    assert [e.sha[0] for e in notes.entries] == ["a", "b", "c", "d"]


def test_changelog_entry() -> None:
    entry = _notes().changelog_entry()
    lines = entry.splitlines()

    assert lines[0] == '<a name="10.1.0-next.2"></a>'
    assert lines[1] == "# 10.1.0-next.2 (2026-03-01)"
    assert "## Breaking Changes" in lines
    assert "- The legacy renderer is gone." in lines
    assert "### forms" in lines
    assert "| [aaaaaaa](https://github.com/acme/widgets/commit/" + "a" * 40 + ") | feat | add validators |" in lines
    assert "fix typo" not in entry


def test_github_release_entry_without_changes() -> None:
    repo = FakeRepository(entries=[LogEntry("c" * 40, "docs: fix typo")])
    result = build_release_notes(
        repo,
        SemVer(1, 0, 1),
        from_ref="1.0.0",
        released_on=date(2026, 3, 1),
        repo_url="https://github.com/acme/widgets",
    )
    assert isinstance(result, Ok)
    assert result.value.github_release_entry() == "No user-facing changes in this release."


def test_prepend_to_changelog(tmp_path: Path) -> None:
    changelog = tmp_path / "CHANGELOG.md"
    prepend_to_changelog(changelog, "# 1.0.0\n")
    prepend_to_changelog(changelog, "# 1.1.0\n")

    text = changelog.read_text(encoding="utf-8")
    assert text.index("# 1.1.0") < text.index("# 1.0.0")
