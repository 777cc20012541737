"""Pipeline configuration loaded from ``shipwright.toml``."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

try:
    import tomllib  # type: ignore[attr-defined]
except ModuleNotFoundError:  # pragma: no cover - fallback for Py<3.11
    import tomli as tomllib  # type: ignore[no-redef]

from shipwright_release.errors import InvalidConfig
from shipwright_release.manifest import DEFAULT_VERSION_FIELD
from shipwright_release.retry import RetryPolicy
from shipwright_release.schemas import Target

from .builder import BuildSettings
from .drafts import DEFAULT_RELEASE_NAME
from .tagging import TagPolicy
from .versioning import DEFAULT_TAG_PREFIX

DEFAULT_CONFIG_NAME = "shipwright.toml"
REPO_ENV = "GITHUB_REPOSITORY"


class ReleaseSection(BaseModel):
    repo: Optional[str] = Field(default=None, description="Release host repository as owner/name.")
    manifest: str = Field(default="Cargo.toml", description="Manifest path relative to the workspace.")
    version_field: str = DEFAULT_VERSION_FIELD
    tag_prefix: str = DEFAULT_TAG_PREFIX
    tag_policy: TagPolicy = TagPolicy.REUSE
    release_name: str = DEFAULT_RELEASE_NAME
    remote: str = "origin"
    token_env: str = "GITHUB_TOKEN"
    api_url: str = "https://api.github.com"
    upload_url: str = "https://uploads.github.com"
    timeout_seconds: Optional[float] = Field(default=None, gt=0, description="Overall fan-out timeout.")
    max_workers: Optional[int] = Field(default=None, ge=1)

    model_config = ConfigDict(extra="forbid")


class BuildSection(BaseModel):
    command: List[str] = Field(default_factory=lambda: ["cross"], min_length=1)
    subcommand: str = "build"
    toolchain: Optional[str] = "nightly"
    strip: bool = True
    release: bool = True
    project_dir: str = "."
    target_dir: str = "target"
    extra_args: List[str] = Field(default_factory=list)
    env: Dict[str, str] = Field(default_factory=dict)
    timeout_seconds: Optional[float] = Field(default=None, gt=0, description="Per-target build timeout.")

    model_config = ConfigDict(extra="forbid")


class RetrySection(BaseModel):
    attempts: int = Field(default=3, ge=1)
    initial_delay: float = Field(default=1.0, ge=0)
    backoff: float = Field(default=2.0, ge=1)
    max_delay: float = Field(default=30.0, ge=0)

    model_config = ConfigDict(extra="forbid")


class PipelineConfig(BaseModel):
    release: ReleaseSection = Field(default_factory=ReleaseSection)
    build: BuildSection = Field(default_factory=BuildSection)
    retry: RetrySection = Field(default_factory=RetrySection)
    targets: List[Target] = Field(..., min_length=1)
    workspace_root: Path = Field(default=Path("."), exclude=True)

    model_config = ConfigDict(extra="forbid")

    @model_validator(mode="after")
    def _unique_targets(self) -> "PipelineConfig":
        platforms = [target.platform for target in self.targets]
        if len(set(platforms)) != len(platforms):
            raise ValueError("target platforms must be unique")
        names = [target.artifact_name for target in self.targets]
        if len(set(names)) != len(names):
            raise ValueError("target artifact names must be unique (they become release asset names)")
        return self

    def resolve(self, value: str | Path) -> Path:
        path = Path(value)
        return path if path.is_absolute() else (self.workspace_root / path).resolve()

    @property
    def manifest_path(self) -> Path:
        return self.resolve(self.release.manifest)

    def retry_policy(self) -> RetryPolicy:
        return RetryPolicy(
            attempts=self.retry.attempts,
            initial_delay=self.retry.initial_delay,
            backoff=self.retry.backoff,
            max_delay=self.retry.max_delay,
        )

    def build_settings(self) -> BuildSettings:
        build = self.build
        return BuildSettings(
            command=tuple(build.command),
            subcommand=build.subcommand,
            toolchain=build.toolchain,
            strip=build.strip,
            release=build.release,
            project_dir=self.resolve(build.project_dir),
            target_dir=self.resolve(build.target_dir),
            extra_args=tuple(build.extra_args),
            env=dict(build.env),
            timeout_seconds=build.timeout_seconds,
        )

    def select_targets(self, names: Optional[Iterable[str]] = None) -> List[Target]:
        """Return the targets matching ``names`` (platform or artifact name), or all of them."""

        wanted = [name for name in (names or []) if name]
        if not wanted:
            return list(self.targets)
        unknown = [
            name
            for name in wanted
            if not any(name in (target.platform, target.artifact_name) for target in self.targets)
        ]
        if unknown:
            available = ", ".join(target.platform for target in self.targets)
            raise InvalidConfig(f"Unknown target(s) {', '.join(unknown)}. Available targets: {available}.")
        return [
            target for target in self.targets if target.platform in wanted or target.artifact_name in wanted
        ]

    def require_repo(self) -> str:
        repo = self.release.repo or os.getenv(REPO_ENV)
        if not repo or "/" not in repo:
            raise InvalidConfig(f"[release].repo must be set to owner/name (or export {REPO_ENV}).")
        return repo


def load_config(path: str | Path, *, workspace_root: str | Path | None = None) -> PipelineConfig:
    config_path = Path(path)
    try:
        data = tomllib.loads(config_path.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise InvalidConfig(f"Configuration file not found: {config_path}") from exc
    except UnicodeDecodeError as exc:
        raise InvalidConfig(f"Configuration file {config_path} is not valid UTF-8: {exc}") from exc
    except tomllib.TOMLDecodeError as exc:
        raise InvalidConfig(f"Unable to parse {config_path}: {exc}") from exc

    try:
        config = PipelineConfig.model_validate(data)
    except ValidationError as exc:
        raise InvalidConfig(f"Invalid configuration in {config_path}: {exc}") from exc

    root = Path(workspace_root) if workspace_root is not None else config_path.resolve().parent
    config.workspace_root = root.resolve()
    return config
