"""Tests for the branch-off release actions and the action registry."""

from __future__ import annotations

import json
from datetime import date
from pathlib import Path

import pytest

from devrel.context import RepoContext
from devrel.git.repository import LogEntry
from devrel.output.console import MockConsole
from devrel.release import actions as actions_mod
from devrel.release import external
from devrel.release.action_registry import active_release_actions
from devrel.release.branch_off import BranchOffFeatureFreezeAction, BranchOffReleaseCandidateAction
from devrel.release.errors import FatalReleaseActionError
from devrel.release.external import BuiltPackage
from devrel.release.notes import ReleaseNotes
from devrel.release.semver import SemVer, parse_semver
from devrel.release.trains import ActiveReleaseTrains, ReleaseTrain, TrainPhase
from devrel.test.fakes import (
    FakeGithub,
    FakeRepository,
    make_context,
    registry_document,
    stub_publishing,
    write_release_workspace,
)

BRANCH_OFF_ACTIONS = (BranchOffFeatureFreezeAction, BranchOffReleaseCandidateAction)


def _trains(next_version: str, *, rc: bool = False) -> ActiveReleaseTrains:
    version = parse_semver(next_version)
    assert version is not None
    return ActiveReleaseTrains(
        latest=ReleaseTrain("10.1.x", SemVer(10, 1, 4), TrainPhase.LATEST),
        release_candidate=(
            ReleaseTrain("10.2.x", SemVer(10, 2, 0, ("rc", 0)), TrainPhase.RELEASE_CANDIDATE)
            if rc
            else None
        ),
        next=ReleaseTrain("main", version, TrainPhase.NEXT),
    )


class TestActivation:
    @staticmethod
    def _branch_offs(trains: ActiveReleaseTrains) -> list[type]:
        offered = active_release_actions(trains, make_context(FakeGithub()))
        return [type(a) for a in offered if isinstance(a, BRANCH_OFF_ACTIONS)]

    def test_minor_next_offers_release_candidate(self) -> None:
        assert self._branch_offs(_trains("10.2.0-next.3")) == [BranchOffReleaseCandidateAction]

    def test_major_next_offers_feature_freeze(self) -> None:
        assert self._branch_offs(_trains("11.0.0-next.1")) == [BranchOffFeatureFreezeAction]

    def test_no_branch_off_while_release_candidate_is_active(self) -> None:
        assert self._branch_offs(_trains("10.3.0-next.0", rc=True)) == []

    @pytest.mark.parametrize("next_version", ["10.2.0-next.0", "11.0.0-next.0", "12.5.0-next.4"])
    def test_predicates_are_mutually_exclusive(self, next_version: str) -> None:
        trains = _trains(next_version)
        assert sum(action.is_active(trains) for action in BRANCH_OFF_ACTIONS) == 1


class TestNewVersion:
    def test_release_candidate_version(self) -> None:
        action = BranchOffReleaseCandidateAction(_trains("10.2.0-next.3"), make_context(FakeGithub()))
        assert action.new_version() == SemVer(10, 2, 0, ("rc", 0))
        assert action.describe() == (
            'Move the "main" branch into release-candidate phase (v10.2.0-rc.0).'
        )

    def test_feature_freeze_keeps_unpublished_version(self) -> None:
        registry = registry_document(times={"11.0.0-next.1": "2026-02-01T00:00:00.000Z"})
        ctx = make_context(FakeGithub(), registry=registry)
        action = BranchOffFeatureFreezeAction(_trains("11.0.0-next.2"), ctx)
        assert action.new_version() == SemVer(11, 0, 0, ("next", 2))

    def test_feature_freeze_bumps_published_version(self) -> None:
        registry = registry_document(times={"11.0.0-next.2": "2026-02-01T00:00:00.000Z"})
        ctx = make_context(FakeGithub(), registry=registry)
        action = BranchOffFeatureFreezeAction(_trains("11.0.0-next.2"), ctx)
        assert action.describe() == (
            'Move the "main" branch into feature-freeze phase (v11.0.0-next.3).'
        )


class TestPerform:
    def test_release_candidate_branch_off(
        self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path
    ) -> None:
        (tmp_path / "package.json").write_text(
            json.dumps({"name": "acme", "version": "10.2.0-next.3"}), encoding="utf-8"
        )
        (tmp_path / "CHANGELOG.md").write_text("# 10.2.0-next.3\n", encoding="utf-8")
        dist = tmp_path / "dist" / "core"
        dist.mkdir(parents=True)
        (dist / "package.json").write_text(
            json.dumps({"name": "@acme/core", "version": "10.2.0-rc.0"}), encoding="utf-8"
        )

        github = FakeGithub()
        github.head_shas = {"main": "sha-main", "10.2.x": "sha-rc"}
        github.commit_messages["sha-rc"] = "release: cut the v10.2.0-rc.0 release"
        git = FakeRepository(
            path=tmp_path,
            tag_names=["10.2.0-next.3"],
            entries=[LogEntry("a" * 40, "feat(core): add widgets")],
        )
        console = MockConsole(answers=[True])
        ctx = make_context(github, git=git, console=console, root=tmp_path)

        published: list[tuple[str, str]] = []
        installs: list[Path] = []

        def fake_install(console: object, *, cwd: Path, command: list[str]) -> None:
            del console, command
            installs.append(cwd)

        def fake_build(console: object, *, cwd: Path, command: list[str]) -> list[BuiltPackage]:
            del console, cwd, command
            return [BuiltPackage(name="@acme/core", output_path=dist)]

        def fake_publish(
            console: object, package: BuiltPackage, *, dist_tag: str, registry: str
        ) -> None:
            del console, registry
            published.append((package.name, dist_tag))

        monkeypatch.setattr(external, "invoke_install_command", fake_install)
        monkeypatch.setattr(external, "invoke_release_build_command", fake_build)
        monkeypatch.setattr(external, "run_npm_publish", fake_publish)
        monkeypatch.setattr(actions_mod, "sleep", lambda _s: None)

        BranchOffReleaseCandidateAction(_trains("10.2.0-next.3"), ctx).perform()

        upstream = "https://github.com/acme/widgets.git"
        assert ("push", upstream, "10.2.x") in git.calls
        assert ("commit", "release: cut the v10.2.0-rc.0 release", "package.json", "CHANGELOG.md") in git.calls
        assert ("commit", "release: bump the next branch to v10.3.0-next.0", "package.json") in git.calls
        assert ("commit", "docs: release notes for the v10.2.0-rc.0 release", "CHANGELOG.md") in git.calls

        stage, next_update = github.created_prs
        assert stage["base"] == "10.2.x"
        assert stage["head_branch"] == "release-stage-10.2.0-rc.0"
        assert stage["title"] == 'Bump version to "v10.2.0-rc.0" with changelog.'
        assert next_update["base"] == "main"
        assert next_update["head_branch"] == "next-release-train-10.3.0-next.0"
        assert next_update["title"] == (
            'Update next branch to reflect new release-train "v10.3.0-next.0".'
        )

        assert installs == [tmp_path]
        assert github.tags == [("10.2.0-rc.0", "sha-rc")]
        assert github.releases[0]["prerelease"] is True
        assert published == [("@acme/core", "next")]

        manifest = json.loads((tmp_path / "package.json").read_text(encoding="utf-8"))
        assert manifest["version"] == "10.3.0-next.0"
        changelog = (tmp_path / "CHANGELOG.md").read_text(encoding="utf-8")
        assert changelog.count('<a name="10.2.0-rc.0"></a>') == 2

    def test_publish_requires_staging_commit(self, tmp_path: Path) -> None:
        github = FakeGithub()
        github.head_shas = {"10.2.x": "sha-rc"}
        github.commit_messages["sha-rc"] = "fix(core): something else"
        ctx = make_context(github, root=tmp_path)
        action = BranchOffReleaseCandidateAction(_trains("10.2.0-next.3"), ctx)

        notes = ReleaseNotes(SemVer(10, 2, 0, ("rc", 0)), date(2026, 3, 1), "https://x", ())
        with pytest.raises(FatalReleaseActionError):
            action.build_and_publish(notes, "10.2.x", "next")
        assert github.tags == []


class TestBranchOffFromUnpublishedNext:
    """``next`` carries a version that was never tagged or published."""

    UPSTREAM = "https://github.com/acme/widgets.git"

    def _context(
        self, tmp_path: Path, *, next_version: str, new_version: str, tags: list[str]
    ) -> tuple[FakeGithub, FakeRepository, RepoContext, BuiltPackage]:
        built = write_release_workspace(tmp_path, next_version, new_version)
        new_branch = ".".join(new_version.split(".")[:2]) + ".x"
        github = FakeGithub()
        github.head_shas = {"main": "sha-main", new_branch: "sha-new"}
        github.commit_messages["sha-new"] = f"release: cut the v{new_version} release"
        git = FakeRepository(
            path=tmp_path, tag_names=tags, entries=[LogEntry("b" * 40, "feat(core): add gears")]
        )
        registry = registry_document(times={"10.1.4": "2026-01-10T00:00:00.000Z"})
        ctx = make_context(
            github, git=git, console=MockConsole(answers=[True]), root=tmp_path, registry=registry
        )
        return github, git, ctx, built

    def test_feature_freeze(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        github, git, ctx, built = self._context(
            tmp_path,
            next_version="11.0.0-next.0",
            new_version="11.0.0-next.0",
            tags=["10.1.3", "10.1.4"],
        )
        log = stub_publishing(monkeypatch, [built])

        action = BranchOffFeatureFreezeAction(_trains("11.0.0-next.0"), ctx)
        assert action.new_version() == SemVer(11, 0, 0, ("next", 0))
        action.perform()

        assert ("push", self.UPSTREAM, "11.0.x") in git.calls
        assert ("log", "10.1.4", "HEAD") in git.calls
        assert github.created_prs[0]["head_branch"] == "release-stage-11.0.0-next.0"
        assert github.tags == [("11.0.0-next.0", "sha-new")]
        assert log.published == [("@acme/core", "next")]

    def test_release_candidate(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        github, git, ctx, built = self._context(
            tmp_path, next_version="10.2.0-next.0", new_version="10.2.0-rc.0", tags=["v10.1.4"]
        )
        log = stub_publishing(monkeypatch, [built])

        BranchOffReleaseCandidateAction(_trains("10.2.0-next.0"), ctx).perform()

        assert ("push", self.UPSTREAM, "10.2.x") in git.calls
        assert ("log", "v10.1.4", "HEAD") in git.calls
        assert github.tags == [("10.2.0-rc.0", "sha-new")]
        assert log.published == [("@acme/core", "next")]

    def test_missing_release_tag_fails_before_pushing(
        self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path
    ) -> None:
        github, git, ctx, built = self._context(
            tmp_path, next_version="10.2.0-next.0", new_version="10.2.0-rc.0", tags=["nightly"]
        )
        stub_publishing(monkeypatch, [built])

        with pytest.raises(FatalReleaseActionError):
            BranchOffReleaseCandidateAction(_trains("10.2.0-next.0"), ctx).perform()

        assert not any(call[0] == "push" for call in git.calls)
        assert github.created_prs == []
