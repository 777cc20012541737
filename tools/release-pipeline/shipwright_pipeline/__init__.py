"""Release pipeline orchestration: tag, draft and publish a multi-platform build."""

from .builder import BuildExecutor, BuildSettings, CargoBuildExecutor
from .config import PipelineConfig, load_config
from .coordinator import TargetBuildCoordinator
from .drafts import DraftReleaseManager, DraftResolution
from .models import PipelineRun, RunStatus, TargetBuildResult, TargetStatus, aggregate_status
from .pipeline import PipelineError, ReleasePipeline, RunCancelled
from .publisher import ArtifactPublisher
from .tagging import TagPolicy, TagResolution, TagResolver
from .versioning import bump_version, format_tag, parse_tag

__all__ = [
    "ArtifactPublisher",
    "BuildExecutor",
    "BuildSettings",
    "CargoBuildExecutor",
    "DraftReleaseManager",
    "DraftResolution",
    "PipelineConfig",
    "PipelineError",
    "PipelineRun",
    "ReleasePipeline",
    "RunCancelled",
    "RunStatus",
    "TagPolicy",
    "TagResolution",
    "TagResolver",
    "TargetBuildCoordinator",
    "TargetBuildResult",
    "TargetStatus",
    "aggregate_status",
    "bump_version",
    "format_tag",
    "load_config",
    "parse_tag",
]
