"""Release action base class and shared release steps.

A release action is one operator-selectable transition of the release
trains (for example moving ``next`` into feature-freeze). Actions mutate
remote state step by step and raise on the first failure:

- ``FatalReleaseActionError`` once the failure has been reported,
- ``UserAbortedReleaseActionError`` when the operator declines a prompt.
"""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from time import monotonic, sleep

from devrel.context import RepoContext
from devrel.core.result import Err, Ok, Result
from devrel.github.models import PullRequestRef, RepoRef
from devrel.output.console import Style
from devrel.release import external
from devrel.release.commit_message import (
    release_commit_message,
    release_notes_cherry_pick_commit_message,
)
from devrel.release.errors import FatalReleaseActionError, UserAbortedReleaseActionError
from devrel.release.long_term_support import fetch_representative_package
from devrel.release.notes import ReleaseNotes, build_release_notes, prepend_to_changelog
from devrel.release.semver import SemVer, parse_semver
from devrel.release.trains import ActiveReleaseTrains

__all__ = ["ReleaseAction", "StagedRelease"]

IGNORE_STATUS_PROMPT = "Do you want to ignore the Github status and proceed?"
COMMIT_CHANGES_PROMPT = "Do you want to proceed and commit the changes?"


@dataclass(frozen=True, slots=True)
class StagedRelease:
    pull_request: PullRequestRef
    release_notes: ReleaseNotes


class ReleaseAction(ABC):
    """One selectable release transition."""

    def __init__(self, active: ActiveReleaseTrains, ctx: RepoContext) -> None:
        self.active = active
        self.ctx = ctx
        self._fork: RepoRef | None = None

    @classmethod
    @abstractmethod
    def is_active(cls, active: ActiveReleaseTrains) -> bool:
        """Whether this action applies to the given trains."""

    @abstractmethod
    def describe(self) -> str: ...

    @abstractmethod
    def perform(self) -> None: ...

    # -- failure helpers -----------------------------------------------------

    def _fatal(self, message: str, hint: str | None = None) -> FatalReleaseActionError:
        self.ctx.console.error(message)
        if hint:
            self.ctx.console.print(f"hint: {hint}", Style.DIM)
        return FatalReleaseActionError(message)

    def _expect[T](self, result: Result[T, object], message: str) -> T:
        """Unwrap ``result`` or report ``message`` and abort the action."""
        if isinstance(result, Err):
            error = result.error
            hint = getattr(error, "hint", None) or getattr(error, "message", None) or str(error)
            raise self._fatal(message, hint)
        return result.value

    # -- project files -------------------------------------------------------

    def _manifest_path(self) -> Path:
        return self.ctx.workspace_root / self.ctx.config.release.manifest_path

    def _changelog_path(self) -> Path:
        return self.ctx.workspace_root / self.ctx.config.release.changelog_path

    def update_project_version(self, new_version: SemVer) -> None:
        path = self._manifest_path()
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise self._fatal(f"Unable to read {path}", str(e)) from e
        if not isinstance(data, dict):
            raise self._fatal(f"Unexpected manifest content in {path}")
        data["version"] = str(new_version)
        path.write_text(json.dumps(data, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")
        self.ctx.console.success(f"Updated project version to {new_version}")

    def prepend_release_notes_to_changelog(self, notes: ReleaseNotes) -> None:
        prepend_to_changelog(self._changelog_path(), notes.changelog_entry())
        self.ctx.console.success(f'Updated the changelog to capture changes for "{notes.version}".')

    # -- git -----------------------------------------------------------------

    def verify_passing_github_status(self, branch: str) -> None:
        github = self.ctx.github
        sha = self._expect(github.get_branch_head_sha(branch), f'Unable to resolve "{branch}".')
        state = self._expect(
            github.get_combined_status(sha), f'Unable to read the CI status of "{sha}".'
        )
        commits_url = f"https://github.com/{github.repo.slug}/commits/{branch}"

        if state == "failure":
            self.ctx.console.error(
                f'Cannot stage release. Commit "{sha}" does not pass all github status checks. '
                "Please make sure this commit passes all checks before re-running."
            )
        elif state == "pending":
            self.ctx.console.error(
                f'Commit "{sha}" still has pending github statuses that need to succeed '
                "before staging a release."
            )
        else:
            self.ctx.console.success("Upstream commit is passing all github status checks.")
            return

        self.ctx.console.print(f"Please have a look at: {commits_url}", Style.DIM)
        if self.ctx.console.confirm(IGNORE_STATUS_PROMPT):
            self.ctx.console.warning("Upstream commit status has been forcibly ignored.")
            return
        raise UserAbortedReleaseActionError()

    def checkout_upstream_branch(self, branch: str) -> None:
        self._expect(
            self.ctx.git.fetch_and_checkout_detached(self.ctx.config.github.remote_url, branch),
            f'Unable to check out upstream branch "{branch}".',
        )

    def create_local_branch_from_head(self, branch: str) -> None:
        self._expect(
            self.ctx.git.create_or_reset_branch(branch),
            f'Unable to create local branch "{branch}".',
        )

    def push_head_to_remote_branch(self, branch: str) -> None:
        self._expect(
            self.ctx.git.push_head(self.ctx.config.github.remote_url, branch),
            f'Unable to push to "{branch}".',
        )

    def create_commit(self, message: str, files: list[str]) -> None:
        self._expect(self.ctx.git.commit(message, files), f'Unable to create commit "{message}".')

    def previous_release_tag(self, new_version: SemVer) -> str:
        """Tag of the most recent release older than ``new_version``.

        Release notes cover the commits since this tag.
        """
        tags = self._expect(self.ctx.git.tags(), "Unable to list git tags.")
        released = [(v, tag) for tag in tags if (v := parse_semver(tag)) is not None]
        older = [(v, tag) for v, tag in released if v < new_version]
        if not older:
            raise self._fatal(
                f'Unable to find a release tag older than "{new_version}".',
                "Fetch the upstream tags and run the release tool again.",
            )
        return max(older, key=lambda item: item[0])[1]

    def new_prerelease_version_for_next(self) -> SemVer:
        """Version of the next pre-release cut from the ``next`` branch.

        A version that was bumped in ``next`` but never published is
        released as-is.
        """
        next_version = self.active.next.version
        info = self._expect(
            fetch_representative_package(self.ctx), "Unable to look up the published versions."
        )
        if info.is_published(str(next_version)):
            return next_version.bump("prerelease")
        return next_version

    # -- pull requests -------------------------------------------------------

    def _fork_of_authenticated_user(self) -> RepoRef:
        if self._fork is None:
            self._fork = self._expect(
                self.ctx.github.find_fork(), "Unable to find fork for currently authenticated user."
            )
        return self._fork

    def _find_available_branch_name(self, fork: RepoRef, base_name: str) -> str:
        name = base_name
        suffix = 0
        while self._expect(
            self.ctx.github.branch_exists(fork, name), f"Unable to look up branch {name}."
        ):
            suffix += 1
            name = f"{base_name}_{suffix}"
        return name

    def push_changes_to_fork_and_create_pull_request(
        self, target_branch: str, proposed_fork_branch: str, title: str, body: str = ""
    ) -> PullRequestRef:
        fork = self._fork_of_authenticated_user()
        branch = self._find_available_branch_name(fork, proposed_fork_branch)
        self.create_local_branch_from_head(branch)
        self._expect(
            self.ctx.git.push_head(
                fork.remote_url(use_ssh=self.ctx.config.github.use_ssh), branch
            ),
            f"Unable to push to {fork.slug}:{branch}.",
        )

        github = self.ctx.github
        pull_request = self._expect(
            github.create_pull_request(
                head=fork, head_branch=branch, base=target_branch, title=title, body=body
            ),
            f'Unable to create pull request against "{target_branch}".',
        )
        labels = list(self.ctx.config.release.release_pr_labels)
        if labels:
            self._expect(
                github.add_labels(pull_request.number, labels),
                f"Unable to label pull request #{pull_request.number}.",
            )
        self.ctx.console.success(
            f"Created pull request #{pull_request.number} in {github.repo.slug}."
        )
        return pull_request

    def wait_for_pull_request_to_be_merged(self, pull_request: PullRequestRef) -> None:
        """Poll until merged. A closed pull request aborts the action.

        Hosting API errors while polling are reported and retried on the
        next tick.
        """
        release = self.ctx.config.release
        interval = release.merge_poll_interval_seconds
        timeout = release.merge_wait_timeout_seconds
        deadline = None if timeout is None else monotonic() + timeout
        self.ctx.console.info(f"Waiting for pull request #{pull_request.number} to be merged.")

        while True:
            state = self.ctx.github.get_pull_request_state(pull_request.number)
            match state:
                case Ok("merged"):
                    self.ctx.console.success(
                        f"Pull request #{pull_request.number} has been merged."
                    )
                    return
                case Ok("closed"):
                    self.ctx.console.warning(
                        f"Pull request #{pull_request.number} has been closed."
                    )
                    raise UserAbortedReleaseActionError()
                case Err(error):
                    self.ctx.console.print(
                        f"Unable to poll pull request: {error.message}", Style.DIM
                    )
                case _:
                    pass

            if deadline is not None and monotonic() >= deadline:
                raise self._fatal(
                    f"Pull request #{pull_request.number} was not merged within {timeout}s.",
                    pull_request.url,
                )
            sleep(interval)

    # -- staging and publishing ----------------------------------------------

    def wait_for_edits_and_create_release_commit(self, new_version: SemVer) -> None:
        self.ctx.console.warning(
            "Please review the changelog and ensure that the log contains only changes that "
            "apply to the public API surface. Manual changes can be made. When done, please "
            "proceed with the prompt below."
        )
        if not self.ctx.console.confirm(COMMIT_CHANGES_PROMPT):
            raise UserAbortedReleaseActionError()

        release = self.ctx.config.release
        self.create_commit(
            release_commit_message(new_version), [release.manifest_path, release.changelog_path]
        )
        self.ctx.console.success(f'Created release commit for: "{new_version}".')

    def stage_version_for_branch_and_create_pull_request(
        self, new_version: SemVer, base_branch: str, *, notes_from: str | None = None
    ) -> StagedRelease:
        """Bump the version, write release notes and open the staging pull request.

        Must run with ``base_branch`` checked out at its upstream head.
        ``notes_from`` defaults to the previous release tag.
        """
        if notes_from is None:
            notes_from = self.previous_release_tag(new_version)
        notes = self._expect(
            build_release_notes(
                self.ctx.git,
                new_version,
                from_ref=notes_from,
                released_on=self.ctx.now().date(),
                repo_url=f"https://github.com/{self.ctx.github.repo.slug}",
            ),
            "Unable to collect commits for the release notes.",
        )
        self.update_project_version(new_version)
        self.prepend_release_notes_to_changelog(notes)
        self.wait_for_edits_and_create_release_commit(new_version)

        pull_request = self.push_changes_to_fork_and_create_pull_request(
            base_branch,
            f"release-stage-{new_version}",
            f'Bump version to "v{new_version}" with changelog.',
        )
        self.ctx.console.success("Release staging pull request has been created.")
        self.ctx.console.print(f"Please ask team members to review: {pull_request.url}", Style.DIM)
        return StagedRelease(pull_request=pull_request, release_notes=notes)

    def checkout_branch_and_stage_version(
        self, new_version: SemVer, staging_branch: str
    ) -> StagedRelease:
        notes_from = self.previous_release_tag(new_version)
        self.verify_passing_github_status(staging_branch)
        self.checkout_upstream_branch(staging_branch)
        return self.stage_version_for_branch_and_create_pull_request(
            new_version, staging_branch, notes_from=notes_from
        )

    def cherry_pick_changelog_into_next_branch(
        self, notes: ReleaseNotes, staging_branch: str
    ) -> None:
        """Copy the release notes of ``notes.version`` into ``next`` through a pull request."""
        next_branch = self.active.next.branch_name
        message = release_notes_cherry_pick_commit_message(notes.version)

        self.checkout_upstream_branch(next_branch)
        self.prepend_release_notes_to_changelog(notes)
        self.create_commit(message, [self.ctx.config.release.changelog_path])
        pull_request = self.push_changes_to_fork_and_create_pull_request(
            next_branch,
            f"changelog-cherry-pick-{notes.version}",
            message,
            f'Cherry-picks the changelog from the "{staging_branch}" branch to the next '
            f"branch ({next_branch}).",
        )
        self.ctx.console.success(
            f'Pull request for cherry-picking the changelog into "{next_branch}" has been created.'
        )
        self.ctx.console.print(f"Please ask team members to review: {pull_request.url}", Style.DIM)
        self.wait_for_pull_request_to_be_merged(pull_request)

    def _is_commit_for_version_staging(self, version: SemVer, sha: str) -> bool:
        message = self._expect(
            self.ctx.github.get_commit_message(sha), f'Unable to read commit "{sha}".'
        )
        return message.startswith(release_commit_message(version))

    def _verify_package_versions(
        self, version: SemVer, packages: list[external.BuiltPackage]
    ) -> None:
        # Experimental packages are versioned 0.{major * 100 + minor}.{patch}.
        experimental = SemVer(
            0, version.major * 100 + version.minor, version.patch, version.prerelease
        )
        for package in packages:
            manifest = package.output_path / "package.json"
            try:
                raw = json.loads(manifest.read_text(encoding="utf-8")).get("version", "")
            except (OSError, json.JSONDecodeError, AttributeError) as e:
                raise self._fatal(f"Unable to read {manifest}", str(e)) from e
            built = parse_semver(raw) if isinstance(raw, str) else None
            if built != version and built != experimental:
                raise self._fatal(
                    "The built package version does not match the version being released.",
                    f"release v{version} ({experimental}), generated {raw}",
                )

    def _create_github_release(self, notes: ReleaseNotes, sha: str, *, prerelease: bool) -> None:
        tag = str(notes.version)
        self._expect(self.ctx.github.create_tag(tag, sha), f"Unable to create tag {tag}.")
        self.ctx.console.success(f"Tagged v{notes.version} release upstream.")
        self._expect(
            self.ctx.github.create_release(
                tag=tag,
                name=f"v{notes.version}",
                body=notes.github_release_entry(),
                prerelease=prerelease,
            ),
            f"Unable to create the v{notes.version} release.",
        )
        self.ctx.console.success(f"Created v{notes.version} release in Github.")

    def build_and_publish(self, notes: ReleaseNotes, publish_branch: str, dist_tag: str) -> None:
        sha = self._expect(
            self.ctx.github.get_branch_head_sha(publish_branch),
            f'Unable to resolve "{publish_branch}".',
        )
        if not self._is_commit_for_version_staging(notes.version, sha):
            raise self._fatal(
                f'Latest commit in "{publish_branch}" branch is not a staging commit.',
                "Please make sure the staging pull request has been merged.",
            )

        self.checkout_upstream_branch(publish_branch)

        release = self.ctx.config.release
        root = self.ctx.workspace_root
        console = self.ctx.console
        external.invoke_install_command(console, cwd=root, command=list(release.install_command))
        packages = external.invoke_release_build_command(
            console, cwd=root, command=list(release.build_command)
        )
        self._verify_package_versions(notes.version, packages)
        self._create_github_release(notes, sha, prerelease=dist_tag == "next")

        for package in packages:
            external.run_npm_publish(
                console, package, dist_tag=dist_tag, registry=release.registry_url
            )
        console.success("Published all packages successfully")

    def set_npm_dist_tag(self, package: str, version: SemVer, dist_tag: str) -> None:
        external.run_npm_dist_tag_add(
            self.ctx.console,
            package,
            str(version),
            dist_tag=dist_tag,
            registry=self.ctx.config.release.registry_url,
            cwd=self.ctx.workspace_root,
        )
