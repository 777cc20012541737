from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest

from shipwright_pipeline import cli
from shipwright_pipeline.config import PipelineConfig
from shipwright_pipeline.pipeline import ReleasePipeline

from pipeline_fakes import FakeReleaseHost, FakeSourceControl, ScriptedExecutor


@pytest.fixture(autouse=True)
def _restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture()
def fake_wiring(monkeypatch: pytest.MonkeyPatch, tmp_path: Path):
    state = {
        "scm": FakeSourceControl(),
        "host": FakeReleaseHost(),
        "executor": ScriptedExecutor(tmp_path / "out"),
    }

    def _build(config: PipelineConfig) -> ReleasePipeline:
        return ReleasePipeline(
            config,
            scm=state["scm"],
            host=state["host"],
            executor=state["executor"],
            sleep=lambda _: None,
        )

    monkeypatch.setattr(cli, "build_pipeline", _build)
    return state


def test_version_command(workspace: Path, capsys: pytest.CaptureFixture[str]) -> None:
    exit_code = cli.main(["--config", str(workspace / "shipwright.toml"), "version"])

    assert exit_code == 0
    payload = json.loads(capsys.readouterr().out)
    assert payload["version"] == "2.0.0"
    assert payload["tag"] == "v2.0.0"


def test_targets_command(workspace: Path, capsys: pytest.CaptureFixture[str]) -> None:
    exit_code = cli.main(["--config", str(workspace / "shipwright.toml"), "targets"])

    assert exit_code == 0
    payload = json.loads(capsys.readouterr().out)
    assert [item["artifact_name"] for item in payload] == ["web-server", "web-server.exe"]


def test_run_success_exits_zero(workspace: Path, fake_wiring, capsys: pytest.CaptureFixture[str]) -> None:
    exit_code = cli.main(["--config", str(workspace / "shipwright.toml"), "run"])

    assert exit_code == 0
    payload = json.loads(capsys.readouterr().out)
    assert payload["status"] == "Succeeded"
    assert payload["tag"] == "v2.0.0"
    assert len(payload["targets"]) == 2


def test_run_partial_failure_exits_non_zero(
    workspace: Path, fake_wiring, capsys: pytest.CaptureFixture[str]
) -> None:
    fake_wiring["executor"].fail("x86_64-pc-windows-gnu", "linker `x86_64-w64-mingw32-gcc` not found")

    exit_code = cli.main(["--config", str(workspace / "shipwright.toml"), "run"])

    assert exit_code == 1
    payload = json.loads(capsys.readouterr().out)
    assert payload["status"] == "PartiallyFailed"
    windows = payload["targets"][1]
    assert windows["status"] == "Failed"
    assert "mingw32" in windows["error"]
    assert payload["targets"][0]["status"] == "Succeeded"


def test_run_single_target(workspace: Path, fake_wiring, capsys: pytest.CaptureFixture[str]) -> None:
    exit_code = cli.main(
        ["--config", str(workspace / "shipwright.toml"), "run", "--target", "x86_64-unknown-linux-gnu"]
    )

    assert exit_code == 0
    payload = json.loads(capsys.readouterr().out)
    assert [item["platform"] for item in payload["targets"]] == ["x86_64-unknown-linux-gnu"]


def test_missing_config_exits_two(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    exit_code = cli.main(["--config", str(tmp_path / "nope.toml"), "targets"])

    assert exit_code == 2
    assert "not found" in capsys.readouterr().err


def test_run_without_token_fails_before_side_effects(
    workspace: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    monkeypatch.delenv("GITHUB_TOKEN", raising=False)

    exit_code = cli.main(["--config", str(workspace / "shipwright.toml"), "run"])

    assert exit_code == 2
    assert "GITHUB_TOKEN" in capsys.readouterr().err
