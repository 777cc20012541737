from __future__ import annotations

from pathlib import Path

import pytest

from shipwright_release.errors import InvalidConfig
from shipwright_pipeline.config import load_config
from shipwright_pipeline.tagging import TagPolicy


def test_load_config_resolves_paths(workspace: Path) -> None:
    config = load_config(workspace / "shipwright.toml")

    assert config.workspace_root == workspace.resolve()
    assert config.manifest_path == (workspace / "web-server" / "Cargo.toml").resolve()
    assert config.release.tag_policy is TagPolicy.REUSE
    assert config.release.release_name == "Release {tag}"
    settings = config.build_settings()
    assert settings.project_dir == (workspace / "web-server").resolve()
    assert settings.target_dir == (workspace / "target").resolve()
    assert settings.command == ("cross",)
    assert settings.strip is True and settings.release is True
    assert config.retry_policy().attempts == 3


def test_missing_config_file(tmp_path: Path) -> None:
    with pytest.raises(InvalidConfig):
        load_config(tmp_path / "shipwright.toml")


def test_non_utf8_config_file(tmp_path: Path) -> None:
    config = tmp_path / "shipwright.toml"
    config.write_bytes(b'[release]\nrepo = "acme/\xff"\n')

    with pytest.raises(InvalidConfig):
        load_config(config)


def test_config_requires_targets(tmp_path: Path) -> None:
    path = tmp_path / "shipwright.toml"
    path.write_text('[release]\nrepo = "acme/web"\n', encoding="utf-8")

    with pytest.raises(InvalidConfig):
        load_config(path)


def test_duplicate_artifact_names_rejected(tmp_path: Path) -> None:
    path = tmp_path / "shipwright.toml"
    path.write_text(
        """
[[targets]]
platform = "x86_64-unknown-linux-gnu"
artifact_name = "web-server"

[[targets]]
platform = "aarch64-unknown-linux-gnu"
artifact_name = "web-server"
""",
        encoding="utf-8",
    )

    with pytest.raises(InvalidConfig) as excinfo:
        load_config(path)
    assert "artifact names must be unique" in str(excinfo.value)


def test_unknown_keys_rejected(tmp_path: Path) -> None:
    path = tmp_path / "shipwright.toml"
    path.write_text(
        '[release]\nfail_fast = false\n\n[[targets]]\nplatform = "x"\nartifact_name = "y"\n',
        encoding="utf-8",
    )

    with pytest.raises(InvalidConfig):
        load_config(path)


def test_repo_falls_back_to_environment(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    path = tmp_path / "shipwright.toml"
    path.write_text('[[targets]]\nplatform = "x"\nartifact_name = "y"\n', encoding="utf-8")
    config = load_config(path)

    monkeypatch.delenv("GITHUB_REPOSITORY", raising=False)
    with pytest.raises(InvalidConfig):
        config.require_repo()

    monkeypatch.setenv("GITHUB_REPOSITORY", "acme/web-server")
    assert config.require_repo() == "acme/web-server"
