"""Tests for the active LTS branch check."""

from __future__ import annotations

from devrel.core.result import Err, Ok
from devrel.output.console import MockConsole
from devrel.pr.lts_check import FORCE_EXPIRED_LTS_PROMPT, assert_active_lts_branch
from devrel.pr.target_label import RemoteFailure
from devrel.test.fakes import FakeGithub, make_context, registry_document

REGISTRY = registry_document(
    dist_tags={"latest": "10.1.4", "v9-lts": "9.2.3", "v8-lts": "8.2.1"},
    times={
        "8.0.0": "2024-01-10T00:00:00.000Z",
        "9.0.0": "2025-06-01T00:00:00.000Z",
    },
)

GITHUB_VERSIONS = {"9.2.x": "9.2.4", "9.1.x": "9.1.7", "8.2.x": "8.2.2", "7.4.x": "7.4.0"}


def _check(branch: str, *, answers: list[bool] | None = None):
    console = MockConsole(answers=answers or [])
    prompts: list[str] = []

    def confirm(prompt: str) -> bool:
        prompts.append(prompt)
        return console.confirm(prompt)

    ctx = make_context(FakeGithub(GITHUB_VERSIONS), registry=REGISTRY, console=console)
    return assert_active_lts_branch(ctx, branch, confirm_expired=confirm), console, prompts


def test_active_lts_branch() -> None:
    result, console, prompts = _check("9.2.x")
    assert result == Ok(None)
    assert prompts == []
    assert not console.has_warning()


def test_no_lts_tag() -> None:
    result, _, _ = _check("7.4.x")
    assert isinstance(result, Err)
    assert result.error.message == "No LTS version tagged for v7 in NPM."


def test_not_the_last_minor_branch() -> None:
    result, _, _ = _check("9.1.x")
    assert isinstance(result, Err)
    assert result.error.kind == "invalid_target_branch"
    assert "PR should be updated to target: 9.2.x" in result.error.message


def test_expired_declined() -> None:
    result, console, prompts = _check("8.2.x", answers=[False])
    assert isinstance(result, Err)
    assert result.error.message == (
        "Long-term supported ended for v8 on 2025-01-10. Pull request cannot be merged "
        "into the 8.2.x branch."
    )
    assert prompts == [FORCE_EXPIRED_LTS_PROMPT]
    assert console.has_warning()


def test_expired_forced() -> None:
    result, console, _ = _check("8.2.x", answers=[True])
    assert result == Ok(None)
    assert console.find("Forcibly merging into expired LTS branch 8.2.x.")


def test_registry_failure_is_remote() -> None:
    ctx = make_context(FakeGithub(GITHUB_VERSIONS))
    result = assert_active_lts_branch(ctx, "9.2.x", confirm_expired=lambda _p: True)
    assert isinstance(result, Err)
    assert isinstance(result.error, RemoteFailure)
