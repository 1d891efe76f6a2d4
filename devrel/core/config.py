"""Typed configuration loading.

The configuration lives in a ``.devrel.toml`` file at the repository root:

    [github]
    owner = "acme"
    name = "widgets"
    main_branch = "main"

    [merge]
    merge_ready_label = "action: merge"
    target_label_exempt_scopes = ["packaging"]

    [release]
    npm_packages = ["@acme/widgets"]
    lts_support_months = 18
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from .result import Err, Ok, Result
from .structured import (
    StrDict,
    as_str_dict,
    get_bool,
    get_int,
    get_str,
    get_str_list,
    get_str_map,
    get_table,
)

__all__ = [
    "CONFIG_FILE_NAME",
    "Config",
    "ConfigError",
    "GithubConfig",
    "MergeConfig",
    "ReleaseConfig",
    "TargetLabelNames",
    "find_config_file",
    "load_config",
]

CONFIG_FILE_NAME = ".devrel.toml"

DEFAULT_REGISTRY_URL = "https://registry.npmjs.org"
DEFAULT_MERGE_POLL_INTERVAL_SECONDS = 10


@dataclass(frozen=True, slots=True)
class ConfigError:
    """Error when config cannot be found, loaded or parsed."""

    message: str
    path: Path | None = None


@dataclass(frozen=True, slots=True)
class GithubConfig:
    owner: str
    name: str
    main_branch: str = "main"
    use_ssh: bool = False

    @property
    def slug(self) -> str:
        return f"{self.owner}/{self.name}"

    @property
    def remote_url(self) -> str:
        if self.use_ssh:
            return f"git@github.com:{self.slug}.git"
        return f"https://github.com/{self.slug}.git"


@dataclass(frozen=True, slots=True)
class TargetLabelNames:
    """Label text for each target label kind."""

    major: str = "target: major"
    minor: str = "target: minor"
    patch: str = "target: patch"
    rc: str = "target: rc"
    lts: str = "target: lts"


@dataclass(frozen=True, slots=True)
class MergeConfig:
    merge_ready_label: str = "action: merge"
    cla_signed_label: str = "cla: yes"
    breaking_change_label: str = "breaking changes"
    commit_message_fixup_label: str = "commit message fixup"
    caretaker_note_label: str = "action: merge-assistance"
    target_label_exempt_scopes: tuple[str, ...] = ()
    required_base_commits: Mapping[str, str] = field(default_factory=dict)
    target_labels: TargetLabelNames = field(default_factory=TargetLabelNames)


@dataclass(frozen=True, slots=True)
class ReleaseConfig:
    """Release publishing settings.

    Attributes:
        npm_packages: Published packages; the first one is the
            representative package whose registry metadata drives the
            LTS policy and "already published" checks.
        lts_support_months: Months a major stays in long-term support,
            counted from the publish time of ``{major}.0.0``.
        merge_wait_timeout_seconds: Upper bound for waiting on a staging
            pull request. ``None`` waits until interrupted.
    """

    npm_packages: tuple[str, ...]
    lts_support_months: int
    manifest_path: str = "package.json"
    changelog_path: str = "CHANGELOG.md"
    registry_url: str = DEFAULT_REGISTRY_URL
    build_command: tuple[str, ...] = ("yarn", "--silent", "build-packages", "--json")
    install_command: tuple[str, ...] = ("yarn", "install", "--frozen-lockfile", "--non-interactive")
    release_pr_labels: tuple[str, ...] = ()
    merge_poll_interval_seconds: int = DEFAULT_MERGE_POLL_INTERVAL_SECONDS
    merge_wait_timeout_seconds: int | None = None

    @property
    def representative_package(self) -> str:
        return self.npm_packages[0]


@dataclass(frozen=True, slots=True)
class Config:
    github: GithubConfig
    release: ReleaseConfig
    merge: MergeConfig = field(default_factory=MergeConfig)

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> Config:
        """Build a Config from parsed TOML.

        Raises:
            ValueError: A required key is missing or has the wrong type.
        """
        github: StrDict = get_table(data, "github") or {}
        merge: StrDict = get_table(data, "merge") or {}
        release: StrDict = get_table(data, "release") or {}
        labels: StrDict = get_table(merge, "target_labels") or {}

        owner = get_str(github, "owner")
        name = get_str(github, "name")
        if owner is None or name is None:
            raise ValueError("[github] owner and name are required")

        packages = get_str_list(release, "npm_packages")
        if not packages:
            raise ValueError("[release] npm_packages must list at least one package")

        lts_months = get_int(release, "lts_support_months")
        if lts_months is None or lts_months <= 0:
            raise ValueError("[release] lts_support_months is required (positive integer)")

        poll = get_int(release, "merge_poll_interval_seconds")
        if poll is not None and poll <= 0:
            raise ValueError("[release] merge_poll_interval_seconds must be positive")

        merge_defaults = MergeConfig()
        release_defaults = ReleaseConfig(npm_packages=(), lts_support_months=lts_months)
        label_defaults = TargetLabelNames()

        return cls(
            github=GithubConfig(
                owner=owner,
                name=name,
                main_branch=get_str(github, "main_branch") or "main",
                use_ssh=get_bool(github, "use_ssh") or False,
            ),
            merge=MergeConfig(
                merge_ready_label=get_str(merge, "merge_ready_label")
                or merge_defaults.merge_ready_label,
                cla_signed_label=get_str(merge, "cla_signed_label")
                or merge_defaults.cla_signed_label,
                breaking_change_label=get_str(merge, "breaking_change_label")
                or merge_defaults.breaking_change_label,
                commit_message_fixup_label=get_str(merge, "commit_message_fixup_label")
                or merge_defaults.commit_message_fixup_label,
                caretaker_note_label=get_str(merge, "caretaker_note_label")
                or merge_defaults.caretaker_note_label,
                target_label_exempt_scopes=tuple(
                    get_str_list(merge, "target_label_exempt_scopes") or ()
                ),
                required_base_commits=get_str_map(merge, "required_base_commits"),
                target_labels=TargetLabelNames(
                    major=get_str(labels, "major") or label_defaults.major,
                    minor=get_str(labels, "minor") or label_defaults.minor,
                    patch=get_str(labels, "patch") or label_defaults.patch,
                    rc=get_str(labels, "rc") or label_defaults.rc,
                    lts=get_str(labels, "lts") or label_defaults.lts,
                ),
            ),
            release=ReleaseConfig(
                npm_packages=tuple(packages),
                lts_support_months=lts_months,
                manifest_path=get_str(release, "manifest_path") or release_defaults.manifest_path,
                changelog_path=get_str(release, "changelog_path")
                or release_defaults.changelog_path,
                registry_url=(get_str(release, "registry_url") or DEFAULT_REGISTRY_URL).rstrip("/"),
                build_command=tuple(
                    get_str_list(release, "build_command") or release_defaults.build_command
                ),
                install_command=tuple(
                    get_str_list(release, "install_command") or release_defaults.install_command
                ),
                release_pr_labels=tuple(get_str_list(release, "release_pr_labels") or ()),
                merge_poll_interval_seconds=poll or DEFAULT_MERGE_POLL_INTERVAL_SECONDS,
                merge_wait_timeout_seconds=get_int(release, "merge_wait_timeout_seconds"),
            ),
        )


def _parse_toml(path: Path) -> Result[StrDict, ConfigError]:
    import tomllib

    try:
        data_obj: object = tomllib.loads(path.read_bytes().decode("utf-8"))
    except FileNotFoundError:
        return Err(ConfigError(f"Config file not found: {path}", path=path))
    except PermissionError:
        return Err(ConfigError(f"Permission denied reading: {path}", path=path))
    except tomllib.TOMLDecodeError as e:
        return Err(ConfigError(f"Invalid TOML syntax: {e}", path=path))
    except UnicodeDecodeError as e:
        return Err(ConfigError(f"Error reading config: {e}", path=path))

    data = as_str_dict(data_obj)
    if data is None:
        return Err(ConfigError("Config root must be a TOML table", path=path))
    return Ok(data)


def find_config_file(start: Path) -> Result[Path, ConfigError]:
    """Walk up from ``start`` to the first directory holding the config file."""
    current = start.resolve()
    for directory in (current, *current.parents):
        candidate = directory / CONFIG_FILE_NAME
        if candidate.is_file():
            return Ok(candidate)
    return Err(ConfigError(f"No {CONFIG_FILE_NAME} found in {current} or any parent directory"))


def load_config(path: Path) -> Result[Config, ConfigError]:
    """Load and validate configuration from a TOML file."""
    result = _parse_toml(path)
    if isinstance(result, Err):
        return result

    try:
        return Ok(Config.from_dict(result.value))
    except (KeyError, TypeError, ValueError) as e:
        return Err(ConfigError(f"Invalid config: {e}", path=path))
