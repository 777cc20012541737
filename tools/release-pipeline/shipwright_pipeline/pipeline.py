"""Top-level run controller: version -> tag -> draft release -> target fan-out."""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timezone
from typing import Callable, Iterable, Optional

from shipwright_release.errors import ReleaseError
from shipwright_release.hosting import ReleaseHost
from shipwright_release.manifest import read_version
from shipwright_release.scm import SourceControl

from .builder import BuildExecutor
from .config import PipelineConfig
from .coordinator import TargetBuildCoordinator
from .drafts import DraftReleaseManager
from .models import PipelineRun, RunStatus, aggregate_status
from .publisher import ArtifactPublisher
from .tagging import TagResolver

logger = logging.getLogger(__name__)


class PipelineError(ReleaseError):
    """Raised when the run controller itself stops a run."""


class RunCancelled(PipelineError):
    def __init__(self) -> None:
        super().__init__("Run cancelled before the build stage")


class ReleasePipeline:
    """Sequences one promotion run and reports every target's outcome.

    The prefix (version, tag, draft release) runs strictly in order and must
    succeed before any target task starts. Errors in the prefix end the run as
    ``Failed`` with the failing stage recorded; target failures only affect
    their own result.
    """

    def __init__(
        self,
        config: PipelineConfig,
        *,
        scm: SourceControl,
        host: ReleaseHost,
        executor: BuildExecutor,
        sleep: Optional[Callable[[float], None]] = None,
    ) -> None:
        self.config = config
        self._cancel_event = threading.Event()
        retry = config.retry_policy()
        self.tag_resolver = TagResolver(
            scm,
            prefix=config.release.tag_prefix,
            policy=config.release.tag_policy,
            retry=retry,
            sleep=sleep,
            cancel_event=self._cancel_event,
        )
        self.draft_manager = DraftReleaseManager(
            host,
            name_template=config.release.release_name,
            retry=retry,
            sleep=sleep,
            cancel_event=self._cancel_event,
        )
        self.publisher = ArtifactPublisher(host, retry=retry, sleep=sleep)
        self.coordinator = TargetBuildCoordinator(
            executor,
            self.publisher,
            max_workers=config.release.max_workers,
            timeout_seconds=config.release.timeout_seconds,
            cancel_event=self._cancel_event,
        )

    @property
    def cancelled(self) -> bool:
        return self._cancel_event.is_set()

    def cancel(self) -> None:
        if not self._cancel_event.is_set():
            logger.warning("Cancellation requested; in-flight uploads will be allowed to finish")
        self._cancel_event.set()

    def read_version(self) -> str:
        return read_version(self.config.manifest_path, self.config.release.version_field)

    def run(self, only_targets: Optional[Iterable[str]] = None) -> PipelineRun:
        run = PipelineRun(targets=list(self.config.targets))
        stage = "configure"
        try:
            run.targets = self.config.select_targets(only_targets)

            stage = "version"
            run.version = self.read_version()
            logger.info("Manifest %s declares version %s", self.config.manifest_path, run.version)
            self._check_cancelled()

            run.status = RunStatus.TAGGING
            stage = "tag"
            resolution = self.tag_resolver.resolve(run.version)
            run.version = resolution.version
            run.tag = resolution.tag
            run.tag_commit = resolution.commit_ref
            run.tag_created = resolution.created
            self._check_cancelled()

            stage = "draft-release"
            draft = self.draft_manager.ensure_draft(resolution.tag)
            run.release_id = draft.release_id
            run.release_created = draft.created
            self._check_cancelled()
        except ReleaseError as exc:
            logger.error("Run stopped during %s: %s", stage, exc)
            run.status = RunStatus.FAILED
            run.failed_stage = stage
            run.error = str(exc)
            run.finished_at = datetime.now(timezone.utc)
            return run

        run.status = RunStatus.BUILDING
        logger.info(
            "Building %d target(s) for %s into release %s",
            len(run.targets),
            run.tag,
            run.release_id,
        )
        run.results = self.coordinator.run(run.targets, run.release_id, run.tag_commit)
        run.status = aggregate_status(run.results)
        run.finished_at = datetime.now(timezone.utc)

        for result in run.results:
            if result.succeeded:
                logger.info("%s: succeeded", result.target.platform)
            else:
                logger.error("%s: failed during %s", result.target.platform, result.stage)
        logger.info("Run finished with status %s", run.status.value)
        return run

    def _check_cancelled(self) -> None:
        if self._cancel_event.is_set():
            raise RunCancelled()
