"""Tests for install/build/npm command wrappers."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from devrel.core.result import Err, Ok
from devrel.output.console import MockConsole
from devrel.platform.process import ProcessError
from devrel.release import external
from devrel.release.errors import FatalReleaseActionError


def _failure(cmd: list[str]) -> Err[ProcessError]:
    return Err(ProcessError(command=tuple(cmd), returncode=1, stdout="", stderr="E401 unauthorized"))


def test_build_command_parses_packages(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    payload = [
        {"name": "@acme/core", "outputPath": "dist/core"},
        {"name": "@acme/forms", "outputPath": str(tmp_path / "abs" / "forms")},
    ]

    def fake_run(cmd: list[str], *, cwd: Path, timeout: float | None = None):
        del cwd, timeout
        assert cmd == ["yarn", "build-packages"]
        return Ok(json.dumps(payload) + "\n")

    monkeypatch.setattr(external, "run_process", fake_run)

    packages = external.invoke_release_build_command(
        MockConsole(), cwd=tmp_path, command=["yarn", "build-packages"]
    )

    assert [p.name for p in packages] == ["@acme/core", "@acme/forms"]
    assert packages[0].output_path == tmp_path / "dist" / "core"
    assert packages[1].output_path == tmp_path / "abs" / "forms"


def test_build_command_invalid_json(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    def fake_run(cmd: list[str], *, cwd: Path, timeout: float | None = None):
        del cmd, cwd, timeout
        return Ok("Building...\n")

    monkeypatch.setattr(external, "run_process", fake_run)
    console = MockConsole()

    with pytest.raises(FatalReleaseActionError):
        external.invoke_release_build_command(console, cwd=tmp_path, command=["build"])
    assert console.find("did not print valid JSON")


def test_npm_publish_uses_dist_tag(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    calls: list[tuple[list[str], Path]] = []

    def fake_run(cmd: list[str], *, cwd: Path, timeout: float | None = None):
        del timeout
        calls.append((cmd, cwd))
        return Ok("")

    monkeypatch.setattr(external, "run_process", fake_run)
    package = external.BuiltPackage(name="@acme/core", output_path=tmp_path)

    external.run_npm_publish(
        MockConsole(), package, dist_tag="next", registry="https://registry.example.test"
    )

    assert calls == [
        (
            [
                "npm",
                "publish",
                "--access",
                "public",
                "--tag",
                "next",
                "--registry",
                "https://registry.example.test",
            ],
            tmp_path,
        )
    ]


def test_npm_publish_failure(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    def fake_run(cmd: list[str], *, cwd: Path, timeout: float | None = None):
        del cwd, timeout
        return _failure(cmd)

    monkeypatch.setattr(external, "run_process", fake_run)
    console = MockConsole()
    package = external.BuiltPackage(name="@acme/core", output_path=tmp_path)

    with pytest.raises(FatalReleaseActionError):
        external.run_npm_publish(console, package, dist_tag="latest", registry="r")
    assert console.find('An error occurred while publishing "@acme/core".')
    assert console.find("E401 unauthorized")


def test_npm_is_logged_in(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    def fake_run(cmd: list[str], *, cwd: Path, timeout: float | None = None):
        del cwd, timeout
        return _failure(cmd)

    monkeypatch.setattr(external, "run_process", fake_run)
    assert external.npm_is_logged_in(cwd=tmp_path, registry="r") is False


def test_npm_dist_tag_add(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    calls: list[list[str]] = []

    def fake_run(cmd: list[str], *, cwd: Path, timeout: float | None = None):
        del cwd, timeout
        calls.append(cmd)
        return Ok("")

    monkeypatch.setattr(external, "run_process", fake_run)
    console = MockConsole()

    external.run_npm_dist_tag_add(
        console, "@acme/core", "10.4.2", dist_tag="v10-lts", registry="https://r.test", cwd=tmp_path
    )

    assert calls == [
        ["npm", "dist-tag", "add", "@acme/core@10.4.2", "v10-lts", "--registry", "https://r.test"]
    ]
    assert console.messages == ['OK Set "v10-lts" of "@acme/core" to v10.4.2.']


def test_npm_dist_tag_add_failure(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    def fake_run(cmd: list[str], *, cwd: Path, timeout: float | None = None):
        del cwd, timeout
        return _failure(cmd)

    monkeypatch.setattr(external, "run_process", fake_run)
    console = MockConsole()

    with pytest.raises(FatalReleaseActionError):
        external.run_npm_dist_tag_add(
            console, "@acme/core", "10.4.2", dist_tag="latest", registry="r", cwd=tmp_path
        )
    assert console.find("E401 unauthorized")
