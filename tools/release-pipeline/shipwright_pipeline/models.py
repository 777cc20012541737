from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional

from shipwright_release.schemas import Target


class RunStatus(str, Enum):
    PENDING = "Pending"
    TAGGING = "Tagging"
    BUILDING = "Building"
    PARTIALLY_FAILED = "PartiallyFailed"
    SUCCEEDED = "Succeeded"
    FAILED = "Failed"


class TargetStatus(str, Enum):
    SUCCEEDED = "Succeeded"
    FAILED = "Failed"


@dataclass(slots=True)
class TargetBuildResult:
    target: Target
    status: TargetStatus
    artifact_path: Optional[str] = None
    error: Optional[str] = None
    stage: Optional[str] = None
    asset_url: Optional[str] = None
    duration_seconds: float = 0.0

    @property
    def succeeded(self) -> bool:
        return self.status is TargetStatus.SUCCEEDED

    def to_dict(self) -> Dict[str, object]:
        payload: Dict[str, object] = {
            "platform": self.target.platform,
            "artifact_name": self.target.artifact_name,
            "status": self.status.value,
            "artifact_path": self.artifact_path,
            "duration_seconds": round(self.duration_seconds, 3),
        }
        if self.asset_url:
            payload["asset_url"] = self.asset_url
        if self.error is not None:
            payload["stage"] = self.stage
            payload["error"] = self.error
        return payload


def aggregate_status(results: List[TargetBuildResult]) -> RunStatus:
    if not results:
        return RunStatus.FAILED
    succeeded = sum(1 for result in results if result.succeeded)
    if succeeded == len(results):
        return RunStatus.SUCCEEDED
    if succeeded == 0:
        return RunStatus.FAILED
    return RunStatus.PARTIALLY_FAILED


@dataclass
class PipelineRun:
    """State of a single pipeline execution, owned by the run controller."""

    targets: List[Target]
    status: RunStatus = RunStatus.PENDING
    version: Optional[str] = None
    tag: Optional[str] = None
    tag_commit: Optional[str] = None
    tag_created: Optional[bool] = None
    release_id: Optional[str] = None
    release_created: Optional[bool] = None
    results: List[TargetBuildResult] = field(default_factory=list)
    failed_stage: Optional[str] = None
    error: Optional[str] = None
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    finished_at: Optional[datetime] = None

    @property
    def failed_targets(self) -> List[Target]:
        return [result.target for result in self.results if not result.succeeded]

    @property
    def exit_code(self) -> int:
        if self.status is RunStatus.SUCCEEDED:
            return 0
        if self.results:
            return 1
        return 2

    def to_dict(self) -> Dict[str, object]:
        payload: Dict[str, object] = {
            "status": self.status.value,
            "version": self.version,
            "tag": self.tag,
            "tag_commit": self.tag_commit,
            "tag_created": self.tag_created,
            "release_id": self.release_id,
            "release_created": self.release_created,
            "targets": [result.to_dict() for result in self.results],
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
        }
        if self.error is not None:
            payload["failed_stage"] = self.failed_stage
            payload["error"] = self.error
        failed = self.failed_targets
        if failed:
            payload["rerun"] = [f"--target {target.platform}" for target in failed]
        return payload
