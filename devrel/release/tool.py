"""Interactive release tool.

``ReleaseTool.run`` checks the local environment, prints the active
release trains, lets the operator pick one of the active release actions
and performs it. Whatever happens, the branch or revision that was checked
out before the run is restored afterwards.
"""

from __future__ import annotations

import traceback
from collections.abc import Callable, Sequence
from enum import Enum

from devrel.context import RepoContext
from devrel.core.result import Err
from devrel.output.console import Style
from devrel.release import external
from devrel.release.action_registry import RELEASE_ACTIONS, active_release_actions
from devrel.release.actions import ReleaseAction
from devrel.release.errors import FatalReleaseActionError, UserAbortedReleaseActionError
from devrel.release.print_trains import print_active_release_trains
from devrel.release.trains import fetch_active_release_trains

__all__ = ["CompletionState", "ReleaseTool", "SelectAction"]

NPM_LOGIN_PROMPT = "Would you like to log into NPM now?"

type SelectAction = Callable[[Sequence[ReleaseAction]], ReleaseAction | None]


class CompletionState(Enum):
    SUCCESS = "success"
    FATAL_ERROR = "fatal_error"
    MANUALLY_ABORTED = "manually_aborted"


class ReleaseTool:
    def __init__(
        self,
        ctx: RepoContext,
        *,
        select_action: SelectAction,
        actions: tuple[type[ReleaseAction], ...] = RELEASE_ACTIONS,
    ) -> None:
        self._ctx = ctx
        self._select_action = select_action
        self._actions = actions
        self._npm_session = False

    def run(self) -> CompletionState:
        console = self._ctx.console
        console.newline()
        console.header("devrel release staging")
        console.newline()

        previous = self._ctx.git.current_branch_or_revision()
        if isinstance(previous, Err):
            console.error(f"Unable to determine the checked out revision: {previous.error.message}")
            return CompletionState.FATAL_ERROR

        try:
            return self._run()
        except UserAbortedReleaseActionError:
            return CompletionState.MANUALLY_ABORTED
        except FatalReleaseActionError:
            return CompletionState.FATAL_ERROR
        except Exception as e:  # noqa: BLE001
            console.error(f"{type(e).__name__}: {e}")
            console.print(traceback.format_exc().rstrip(), Style.DIM)
            return CompletionState.FATAL_ERROR
        finally:
            self._cleanup(previous.value)

    def _run(self) -> CompletionState:
        ctx = self._ctx
        if not self._verify_no_uncommitted_changes() or not self._verify_running_from_next_branch():
            return CompletionState.FATAL_ERROR
        if not self._verify_npm_login_state():
            return CompletionState.MANUALLY_ABORTED

        trains = fetch_active_release_trains(
            ctx.github,
            next_branch=ctx.config.github.main_branch,
            manifest_path=ctx.config.release.manifest_path,
        )
        if isinstance(trains, Err):
            ctx.console.error(trains.error.message)
            if trains.error.hint:
                ctx.console.print(f"hint: {trains.error.hint}", Style.DIM)
            return CompletionState.FATAL_ERROR

        printed = print_active_release_trains(ctx, trains.value)
        if isinstance(printed, Err):
            ctx.console.error(printed.error.message)
            return CompletionState.FATAL_ERROR

        available = active_release_actions(trains.value, ctx, self._actions)
        if not available:
            ctx.console.warning("No release action is available for the current release trains.")
            return CompletionState.MANUALLY_ABORTED

        ctx.console.info("Please select the type of release you want to perform.")
        action = self._select_action(available)
        if action is None:
            return CompletionState.MANUALLY_ABORTED

        action.perform()
        return CompletionState.SUCCESS

    def _cleanup(self, previous: str) -> None:
        ctx = self._ctx
        restored = ctx.git.checkout(previous, force=True)
        if isinstance(restored, Err):
            ctx.console.warning(f'Unable to check out "{previous}" again: {restored.error.message}')
        if self._npm_session:
            external.npm_logout(cwd=ctx.workspace_root, registry=ctx.config.release.registry_url)

    def _verify_no_uncommitted_changes(self) -> bool:
        dirty = self._ctx.git.has_uncommitted_changes()
        if isinstance(dirty, Err):
            self._ctx.console.error(dirty.error.message)
            return False
        if dirty.value:
            self._ctx.console.error(
                "There are changes which are not committed and should be discarded."
            )
            return False
        return True

    def _verify_running_from_next_branch(self) -> bool:
        ctx = self._ctx
        next_branch = ctx.config.github.main_branch
        local = ctx.git.head_sha()
        if isinstance(local, Err):
            ctx.console.error(local.error.message)
            return False
        upstream = ctx.github.get_branch_head_sha(next_branch)
        if isinstance(upstream, Err):
            ctx.console.error(upstream.error.message)
            return False
        if local.value != upstream.value:
            ctx.console.error("Running release tool from an outdated local branch.")
            ctx.console.print(
                f'Please make sure you are running from the "{next_branch}" branch.', Style.DIM
            )
            return False
        return True

    def _verify_npm_login_state(self) -> bool:
        ctx = self._ctx
        registry = ctx.config.release.registry_url
        if external.npm_is_logged_in(cwd=ctx.workspace_root, registry=registry):
            ctx.console.print(f"Already logged into NPM at {registry}.", Style.DIM)
            self._npm_session = True
            return True

        ctx.console.error(f"Not currently logged into NPM at {registry}.")
        if not ctx.console.confirm(NPM_LOGIN_PROMPT):
            return False
        ctx.console.print("Starting NPM login.", Style.DIM)
        self._npm_session = external.npm_login(cwd=ctx.workspace_root, registry=registry)
        return self._npm_session
