from __future__ import annotations

from pathlib import Path

import pytest

from shipwright_release.errors import ReleaseHostUnavailable, SourceControlUnavailable
from shipwright_pipeline.config import load_config
from shipwright_pipeline.models import RunStatus, TargetStatus
from shipwright_pipeline.pipeline import ReleasePipeline

from pipeline_fakes import HEAD, OTHER, FakeReleaseHost, FakeSourceControl, ScriptedExecutor


def _pipeline(workspace: Path, scm: FakeSourceControl, host: FakeReleaseHost, executor: ScriptedExecutor) -> ReleasePipeline:
    config = load_config(workspace / "shipwright.toml")
    return ReleasePipeline(config, scm=scm, host=host, executor=executor, sleep=lambda _: None)


def test_successful_release(workspace, scm, host, executor) -> None:
    run = _pipeline(workspace, scm, host, executor).run()

    assert run.status is RunStatus.SUCCEEDED
    assert run.exit_code == 0
    assert run.version == "2.0.0"
    assert run.tag == "v2.0.0"
    assert scm.pushes == [("v2.0.0", HEAD)]
    assert host.created == ["v2.0.0"]
    release = host.releases[run.release_id]
    assert release.draft is True
    assert sorted(release.assets) == ["web-server", "web-server.exe"]


def test_windows_failure_is_partial(workspace, scm, host, executor) -> None:
    executor.fail("x86_64-pc-windows-gnu", "error[E0433]: failed to resolve: use of undeclared crate")

    run = _pipeline(workspace, scm, host, executor).run()

    assert run.status is RunStatus.PARTIALLY_FAILED
    assert run.exit_code != 0
    assert scm.pushes == [("v2.0.0", HEAD)]
    assert host.created == ["v2.0.0"]
    assert list(host.releases[run.release_id].assets) == ["web-server"]
    failed = [result for result in run.results if result.status is TargetStatus.FAILED]
    assert [result.target.platform for result in failed] == ["x86_64-pc-windows-gnu"]
    assert "E0433" in (failed[0].error or "")
    report = run.to_dict()
    assert report["rerun"] == ["--target x86_64-pc-windows-gnu"]
    linux_report = report["targets"][0]
    assert linux_report["status"] == "Succeeded"
    assert "error" not in linux_report


def test_rerun_is_idempotent_and_converges(workspace, scm, host, executor) -> None:
    executor.fail("x86_64-pc-windows-gnu", "linker not found")
    first = _pipeline(workspace, scm, host, executor).run()

    executor.failures.clear()
    second = _pipeline(workspace, scm, host, executor).run(only_targets=["x86_64-pc-windows-gnu"])

    assert second.status is RunStatus.SUCCEEDED
    assert second.tag == first.tag
    assert second.release_id == first.release_id
    assert second.tag_created is False
    assert second.release_created is False
    assert len(scm.pushes) == 1
    assert host.created == ["v2.0.0"]
    assert sorted(host.releases[first.release_id].assets) == ["web-server", "web-server.exe"]
    assert [result.target.platform for result in second.results] == ["x86_64-pc-windows-gnu"]


def test_full_rerun_replaces_assets_without_duplicates(workspace, scm, host, executor) -> None:
    first = _pipeline(workspace, scm, host, executor).run()
    second = _pipeline(workspace, scm, host, executor).run()

    assert first.release_id == second.release_id
    assert sorted(host.releases[second.release_id].assets) == ["web-server", "web-server.exe"]
    assert len(host.uploads) == 4


def test_tag_conflict_aborts_before_any_build(workspace, host, executor) -> None:
    scm = FakeSourceControl(tags={"v2.0.0": OTHER})

    run = _pipeline(workspace, scm, host, executor).run()

    assert run.status is RunStatus.FAILED
    assert run.failed_stage == "tag"
    assert "v2.0.0" in (run.error or "")
    assert run.exit_code == 2
    assert scm.tags["v2.0.0"] == OTHER
    assert host.created == []
    assert executor.calls == []


def test_invalid_manifest_aborts_before_side_effects(workspace, scm, host, executor) -> None:
    (workspace / "web-server" / "Cargo.toml").write_text('[package]\nversion = "two"\n', encoding="utf-8")

    run = _pipeline(workspace, scm, host, executor).run()

    assert run.status is RunStatus.FAILED
    assert run.failed_stage == "version"
    assert scm.pushes == []
    assert host.created == []


def test_undecodable_manifest_fails_version_stage(workspace, scm, host, executor) -> None:
    (workspace / "web-server" / "Cargo.toml").write_bytes(b'[package]\nname = "\xff"\nversion = "2.0.0"\n')

    run = _pipeline(workspace, scm, host, executor).run()

    assert run.status is RunStatus.FAILED
    assert run.failed_stage == "version"
    assert run.exit_code == 2
    assert executor.calls == []


def test_exhausted_release_host_retries_fail_the_run(workspace, scm, host, executor) -> None:
    host.find_failures = [ReleaseHostUnavailable("503") for _ in range(3)]

    run = _pipeline(workspace, scm, host, executor).run()

    assert run.status is RunStatus.FAILED
    assert run.failed_stage == "draft-release"
    assert executor.calls == []


def test_transient_tag_failure_recovers(workspace, scm, host, executor) -> None:
    scm.lookup_failures = [SourceControlUnavailable("timeout")]

    run = _pipeline(workspace, scm, host, executor).run()

    assert run.status is RunStatus.SUCCEEDED


def test_cancel_before_fan_out_starts_no_targets(workspace, scm, host, executor) -> None:
    pipeline = _pipeline(workspace, scm, host, executor)
    pipeline.cancel()

    run = pipeline.run()

    assert run.status is RunStatus.FAILED
    assert run.results == []
    assert executor.calls == []
    assert scm.pushes == []


def test_cancel_mid_upload_lets_that_upload_finish(workspace, scm, host, executor) -> None:
    pipeline = _pipeline(workspace, scm, host, executor)
    host.upload_hooks["web-server"] = pipeline.cancel
    executor.behaviours["x86_64-pc-windows-gnu"] = lambda target, cancel_event: cancel_event.wait(5.0)

    run = pipeline.run()
    linux, windows = run.results

    assert linux.status is TargetStatus.SUCCEEDED
    assert "web-server" in host.releases[run.release_id].assets
    assert windows.status is TargetStatus.FAILED
    assert windows.stage == "publish"
    assert "cancelled" in (windows.error or "")
    assert "web-server.exe" not in host.releases[run.release_id].assets
    assert run.status is RunStatus.PARTIALLY_FAILED


def test_unknown_target_filter_is_configuration_error(workspace, scm, host, executor) -> None:
    run = _pipeline(workspace, scm, host, executor).run(only_targets=["aarch64-apple-darwin"])

    assert run.status is RunStatus.FAILED
    assert run.failed_stage == "configure"
    assert "aarch64-apple-darwin" in (run.error or "")


@pytest.mark.parametrize("selector", ["web-server.exe", "x86_64-pc-windows-gnu"])
def test_target_filter_accepts_platform_or_artifact(workspace, scm, host, executor, selector: str) -> None:
    run = _pipeline(workspace, scm, host, executor).run(only_targets=[selector])

    assert [result.target.artifact_name for result in run.results] == ["web-server.exe"]
