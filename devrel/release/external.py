"""External commands run while publishing: install, build, npm.

Each step reports its own failure on the console and raises
``FatalReleaseActionError`` so the running action stops.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path

from devrel.core.result import Err
from devrel.core.structured import as_obj_list, as_str_dict, get_str
from devrel.output.console import ConsoleProtocol, Style
from devrel.platform.process import run as run_process
from devrel.platform.process import run_silent
from devrel.release.errors import FatalReleaseActionError

_BUILD_TIMEOUT_SECONDS = 30 * 60.0
_NPM_TIMEOUT_SECONDS = 5 * 60.0


@dataclass(frozen=True, slots=True)
class BuiltPackage:
    name: str
    output_path: Path


def _fail(console: ConsoleProtocol, message: str, detail: str) -> FatalReleaseActionError:
    console.error(message)
    if detail:
        console.print(detail, Style.DIM)
    return FatalReleaseActionError(message)


def invoke_install_command(console: ConsoleProtocol, *, cwd: Path, command: list[str]) -> None:
    console.print(f"$ {' '.join(command)}", Style.DIM)
    result = run_silent(command, cwd=cwd)
    if isinstance(result, Err):
        raise _fail(console, "An error occurred while installing dependencies.", str(result.error))
    console.success("Installed project dependencies.")


def invoke_release_build_command(
    console: ConsoleProtocol, *, cwd: Path, command: list[str]
) -> list[BuiltPackage]:
    """Run the build command, which prints a JSON list of ``{name, outputPath}``."""
    console.print(f"$ {' '.join(command)}", Style.DIM)
    result = run_process(command, cwd=cwd, timeout=_BUILD_TIMEOUT_SECONDS)
    if isinstance(result, Err):
        raise _fail(
            console,
            "An error occurred while building the release packages.",
            result.error.stderr.strip(),
        )

    try:
        payload: object = json.loads(result.value.strip())
    except json.JSONDecodeError as e:
        raise _fail(console, "The release build command did not print valid JSON.", str(e)) from e

    packages: list[BuiltPackage] = []
    for item in as_obj_list(payload) or []:
        data = as_str_dict(item) or {}
        name = get_str(data, "name")
        output_path = get_str(data, "outputPath")
        if name is None or output_path is None:
            raise _fail(console, "Unexpected entry in release build output.", repr(item))
        path = Path(output_path)
        resolved = path if path.is_absolute() else cwd / path
        packages.append(BuiltPackage(name=name, output_path=resolved))

    console.success("Built release output for all packages.")
    return packages


def run_npm_publish(
    console: ConsoleProtocol, package: BuiltPackage, *, dist_tag: str, registry: str
) -> None:
    command = ["npm", "publish", "--access", "public", "--tag", dist_tag, "--registry", registry]
    result = run_process(command, cwd=package.output_path, timeout=_NPM_TIMEOUT_SECONDS)
    if isinstance(result, Err):
        raise _fail(
            console,
            f'An error occurred while publishing "{package.name}".',
            result.error.stderr.strip(),
        )
    console.success(f'Successfully published "{package.name}".')


def npm_is_logged_in(*, cwd: Path, registry: str) -> bool:
    result = run_process(
        ["npm", "whoami", "--registry", registry], cwd=cwd, timeout=_NPM_TIMEOUT_SECONDS
    )
    return not isinstance(result, Err)


def npm_login(*, cwd: Path, registry: str) -> bool:
    return not isinstance(run_silent(["npm", "login", "--registry", registry], cwd=cwd), Err)


def npm_logout(*, cwd: Path, registry: str) -> bool:
    result = run_process(
        ["npm", "logout", "--registry", registry], cwd=cwd, timeout=_NPM_TIMEOUT_SECONDS
    )
    return not isinstance(result, Err)


def run_npm_dist_tag_add(
    console: ConsoleProtocol,
    package: str,
    version: str,
    *,
    dist_tag: str,
    registry: str,
    cwd: Path,
) -> None:
    """Point ``dist_tag`` of ``package`` at an already published ``version``."""
    command = ["npm", "dist-tag", "add", f"{package}@{version}", dist_tag, "--registry", registry]
    result = run_process(command, cwd=cwd, timeout=_NPM_TIMEOUT_SECONDS)
    if isinstance(result, Err):
        raise _fail(
            console,
            f'An error occurred while setting the "{dist_tag}" tag for "{package}".',
            result.error.stderr.strip(),
        )
    console.success(f'Set "{dist_tag}" of "{package}" to v{version}.')
