"""Tests for release train discovery."""

from __future__ import annotations

import pytest

from devrel.core.result import Err, Ok
from devrel.release.semver import SemVer, parse_semver
from devrel.release.trains import (
    ActiveReleaseTrains,
    ReleaseTrain,
    TrainPhase,
    fetch_active_release_trains,
    release_train_scan_scope,
)
from devrel.test.fakes import FakeGithub


def _discover(github: FakeGithub):
    return fetch_active_release_trains(github, next_branch="main", manifest_path="package.json")


def _v(text: str) -> SemVer:
    v = parse_semver(text)
    assert v is not None
    return v


class TestScanScope:
    @pytest.mark.parametrize("major", [1, 5, 11, 42])
    def test_new_major_scans_previous_major_only(self, major: int) -> None:
        scope = release_train_scan_scope(SemVer(major, 0, 0, ("next", 0)))
        assert scope.majors == frozenset({major - 1})
        assert scope.expected_rc_major == major - 1

    def test_first_minor_scans_both_majors(self) -> None:
        scope = release_train_scan_scope(SemVer(11, 1, 0, ("next", 0)))
        assert scope.majors == frozenset({11, 10})
        assert scope.expected_rc_major == 11

    def test_later_minor_scans_current_major(self) -> None:
        scope = release_train_scan_scope(SemVer(11, 4, 0, ("next", 2)))
        assert scope.majors == frozenset({11})
        assert scope.expected_rc_major == 11


class TestDiscovery:
    def test_latest_and_release_candidate(self) -> None:
        github = FakeGithub(
            {"main": "10.2.0-next.0", "10.1.x": "10.1.0-rc.1", "10.0.x": "10.0.3", "9.2.x": "9.2.1"}
        )
        result = _discover(github)

        assert isinstance(result, Ok)
        trains = result.value
        assert trains.next == ReleaseTrain("main", _v("10.2.0-next.0"), TrainPhase.NEXT)
        assert trains.release_candidate == ReleaseTrain(
            "10.1.x", _v("10.1.0-rc.1"), TrainPhase.RELEASE_CANDIDATE
        )
        assert trains.latest == ReleaseTrain("10.0.x", _v("10.0.3"), TrainPhase.LATEST)

    def test_feature_freeze_phase(self) -> None:
        github = FakeGithub({"main": "11.0.0-next.0", "10.2.x": "10.2.0-next.1", "10.1.x": "10.1.4"})
        result = _discover(github)

        assert isinstance(result, Ok)
        assert result.value.release_candidate is not None
        assert result.value.release_candidate.phase is TrainPhase.FEATURE_FREEZE
        assert result.value.latest.branch_name == "10.1.x"

    def test_no_release_candidate(self) -> None:
        github = FakeGithub({"main": "10.3.0-next.0", "10.2.x": "10.2.1", "10.1.x": "10.1.4"})
        result = _discover(github)

        assert isinstance(result, Ok)
        assert result.value.release_candidate is None
        assert result.value.latest.branch_name == "10.2.x"

    def test_latest_in_previous_major(self) -> None:
        github = FakeGithub({"main": "11.1.0-next.0", "11.0.x": "11.0.0-rc.2", "10.2.x": "10.2.9"})
        result = _discover(github)

        assert isinstance(result, Ok)
        assert result.value.release_candidate is not None
        assert result.value.release_candidate.branch_name == "11.0.x"
        assert result.value.latest.branch_name == "10.2.x"

    def test_stops_at_first_stable_branch(self) -> None:
        github = FakeGithub(
            {"main": "10.3.0-next.0", "10.2.x": "10.2.1", "10.1.x": "not-a-version"}
        )
        result = _discover(github)

        assert isinstance(result, Ok)
        assert ("package.json", "10.1.x") not in github.file_reads

    def test_ignores_non_version_branches(self) -> None:
        github = FakeGithub(
            {"main": "10.3.0-next.0", "10.2.x": "10.2.1"},
            protected=["main", "10.2.x", "release", "9.x"],
        )
        result = _discover(github)
        assert isinstance(result, Ok)

    def test_discovery_is_repeatable(self) -> None:
        github = FakeGithub(
            {"main": "10.2.0-next.0", "10.1.x": "10.1.0-rc.1", "10.0.x": "10.0.3"}
        )
        assert _discover(github) == _discover(github)

    def test_old_release_candidate_is_fatal(self) -> None:
        github = FakeGithub({"main": "11.1.0-next.0", "10.2.x": "10.2.9-rc.0", "10.1.x": "10.1.0"})
        result = _discover(github)

        assert isinstance(result, Err)
        assert result.error.kind == "branch_topology"
        assert "unexpected old feature-freeze/release-candidate branch" in result.error.message
        assert "v10" in result.error.message

    def test_two_release_candidates_is_fatal(self) -> None:
        github = FakeGithub(
            {"main": "10.3.0-next.0", "10.2.x": "10.2.0-rc.0", "10.1.x": "10.1.0-next.1"}
        )
        result = _discover(github)

        assert isinstance(result, Err)
        assert "Found two consecutive branches" in result.error.message

    def test_branch_newer_than_next_is_fatal(self) -> None:
        github = FakeGithub({"main": "10.2.0-next.0", "10.3.x": "10.3.0", "10.1.x": "10.1.0"})
        result = _discover(github)

        assert isinstance(result, Err)
        assert "more recent than the release-train currently in the" in result.error.message

    def test_branch_for_next_train_is_fatal(self) -> None:
        github = FakeGithub({"main": "10.2.0-next.0", "10.2.x": "10.2.0", "10.1.x": "10.1.0"})
        result = _discover(github)

        assert isinstance(result, Err)
        assert "already active in the" in result.error.message

    def test_no_latest_is_fatal(self) -> None:
        github = FakeGithub({"main": "10.2.0-next.0", "10.1.x": "10.1.0-rc.0"})
        result = _discover(github)

        assert isinstance(result, Err)
        assert result.error.message.endswith("considered: [10.1.x]")

    def test_invalid_version_in_branch(self) -> None:
        github = FakeGithub({"main": "10.2.0-next.0", "10.1.x": "garbage"})
        result = _discover(github)

        assert isinstance(result, Err)
        assert result.error.kind == "invalid_version"
        assert "10.1.x" in result.error.message


def test_active_trains_must_use_distinct_branches() -> None:
    train = ReleaseTrain("10.1.x", SemVer(10, 1, 0), TrainPhase.LATEST)
    with pytest.raises(ValueError):
        ActiveReleaseTrains(latest=train, release_candidate=train, next=train)


def test_active_trains_must_be_ordered() -> None:
    with pytest.raises(ValueError, match="latest < release-candidate < next"):
        ActiveReleaseTrains(
            latest=ReleaseTrain("10.2.x", SemVer(10, 2, 1), TrainPhase.LATEST),
            release_candidate=ReleaseTrain(
                "10.1.x", SemVer(10, 1, 0, ("rc", 0)), TrainPhase.RELEASE_CANDIDATE
            ),
            next=ReleaseTrain("main", SemVer(10, 3, 0, ("next", 0)), TrainPhase.NEXT),
        )
