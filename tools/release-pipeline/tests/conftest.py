from __future__ import annotations

import sys
from pathlib import Path
from typing import List

import pytest

ROOT = Path(__file__).resolve().parents[3]
for candidate in (ROOT / "tools" / "release", ROOT / "tools" / "release-pipeline"):
    if str(candidate) not in sys.path:
        sys.path.insert(0, str(candidate))

from shipwright_release.schemas import Target  # noqa: E402

from pipeline_fakes import FakeReleaseHost, FakeSourceControl, ScriptedExecutor  # noqa: E402


@pytest.fixture()
def targets() -> List[Target]:
    return [
        Target(platform="x86_64-unknown-linux-gnu", artifact_name="web-server"),
        Target(platform="x86_64-pc-windows-gnu", artifact_name="web-server.exe"),
    ]


@pytest.fixture()
def scm() -> FakeSourceControl:
    return FakeSourceControl()


@pytest.fixture()
def host() -> FakeReleaseHost:
    return FakeReleaseHost()


@pytest.fixture()
def executor(tmp_path: Path) -> ScriptedExecutor:
    return ScriptedExecutor(tmp_path / "target")


@pytest.fixture()
def workspace(tmp_path: Path) -> Path:
    root = tmp_path / "workspace"
    (root / "web-server").mkdir(parents=True)
    (root / "web-server" / "Cargo.toml").write_text(
        '[package]\nname = "web-server"\nversion = "2.0.0"\nedition = "2021"\n',
        encoding="utf-8",
    )
    (root / "shipwright.toml").write_text(
        """
[release]
repo = "acme/web-server"
manifest = "web-server/Cargo.toml"

[retry]
attempts = 3
initial_delay = 0

[build]
project_dir = "web-server"

[[targets]]
platform = "x86_64-unknown-linux-gnu"
artifact_name = "web-server"

[[targets]]
platform = "x86_64-pc-windows-gnu"
artifact_name = "web-server.exe"
""".lstrip(),
        encoding="utf-8",
    )
    return root
