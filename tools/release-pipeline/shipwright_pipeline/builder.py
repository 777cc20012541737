"""Build executors: turn one target into a release binary on disk."""

from __future__ import annotations

import logging
import os
import subprocess
import tempfile
import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from shipwright_release.errors import BuildCancelled, BuildFailed
from shipwright_release.schemas import Target

logger = logging.getLogger(__name__)

DIAGNOSTIC_TAIL_CHARS = 8000


@dataclass(slots=True)
class BuildSettings:
    """How a target is compiled."""

    command: Sequence[str] = ("cross",)
    subcommand: str = "build"
    toolchain: Optional[str] = "nightly"
    strip: bool = True
    release: bool = True
    project_dir: Path = Path(".")
    target_dir: Path = Path("target")
    extra_args: Sequence[str] = ()
    env: Dict[str, str] = field(default_factory=dict)
    timeout_seconds: Optional[float] = None
    poll_interval: float = 0.2
    terminate_grace: float = 10.0

    @property
    def profile(self) -> str:
        return "release" if self.release else "debug"


class BuildExecutor(ABC):
    @abstractmethod
    def build(self, target: Target, source_ref: str, cancel_event: Optional[threading.Event] = None) -> Path:
        """Build ``target`` and return the path of the produced binary.

        Raises ``BuildFailed`` with the captured diagnostics on failure and
        ``BuildCancelled`` when ``cancel_event`` is set while building.
        """


class CargoBuildExecutor(BuildExecutor):
    """Runs ``cross``/``cargo`` for one target triple and locates the binary."""

    def __init__(self, settings: BuildSettings) -> None:
        self.settings = settings

    @property
    def target_dir(self) -> Path:
        return Path(self.settings.target_dir).resolve()

    def command_for(self, target: Target) -> List[str]:
        settings = self.settings
        command = list(settings.command)
        toolchain = target.toolchain or settings.toolchain
        if toolchain:
            command.append(f"+{toolchain}")
        command.extend([settings.subcommand, "--target", target.platform])
        if settings.release:
            command.append("--release")
        command.extend(settings.extra_args)
        return command

    def artifact_path(self, target: Target) -> Path:
        return self.target_dir / target.platform / self.settings.profile / target.artifact_name

    def build(self, target: Target, source_ref: str, cancel_event: Optional[threading.Event] = None) -> Path:
        settings = self.settings
        command = self.command_for(target)
        env = {
            **os.environ,
            **settings.env,
            "CARGO_TARGET_DIR": str(self.target_dir),
            "SHIPWRIGHT_SOURCE_REF": source_ref,
        }
        if settings.strip:
            env[f"CARGO_PROFILE_{settings.profile.upper()}_STRIP"] = "symbols"

        logger.info("Building %s: %s", target.platform, " ".join(command))
        with tempfile.TemporaryFile() as output:
            try:
                proc = subprocess.Popen(
                    command,
                    cwd=str(settings.project_dir),
                    env=env,
                    stdout=output,
                    stderr=subprocess.STDOUT,
                )
            except OSError as exc:
                raise BuildFailed(target.platform, f"unable to start {command[0]}: {exc}") from exc

            outcome = self._wait(proc, cancel_event)
            output.seek(0)
            diagnostics = _tail(output.read().decode("utf-8", errors="replace"))

        if outcome == "cancelled":
            raise BuildCancelled(target.platform, diagnostics)
        if outcome == "timeout":
            raise BuildFailed(target.platform, f"timed out after {settings.timeout_seconds}s\n{diagnostics}".strip())
        if proc.returncode != 0:
            raise BuildFailed(target.platform, diagnostics, proc.returncode)

        artifact = self.artifact_path(target)
        if not artifact.is_file():
            raise BuildFailed(target.platform, f"build succeeded but {artifact} was not produced\n{diagnostics}".strip())
        logger.info("Built %s -> %s", target.platform, artifact)
        return artifact

    def _wait(self, proc: subprocess.Popen, cancel_event: Optional[threading.Event]) -> str:
        settings = self.settings
        deadline = time.monotonic() + settings.timeout_seconds if settings.timeout_seconds else None
        while True:
            try:
                proc.wait(timeout=settings.poll_interval)
                return "finished"
            except subprocess.TimeoutExpired:
                pass
            if cancel_event is not None and cancel_event.is_set():
                self._stop(proc)
                return "cancelled"
            if deadline is not None and time.monotonic() >= deadline:
                self._stop(proc)
                return "timeout"

    def _stop(self, proc: subprocess.Popen) -> None:
        proc.terminate()
        try:
            proc.wait(timeout=self.settings.terminate_grace)
        except subprocess.TimeoutExpired:
            logger.warning("Build process %s ignored terminate; killing it", proc.pid)
            proc.kill()
            proc.wait()


def _tail(text: str, limit: int = DIAGNOSTIC_TAIL_CHARS) -> str:
    text = text.strip()
    if len(text) <= limit:
        return text
    return "..." + text[-limit:]
