"""Fan out one independent build-and-publish task per target."""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor, wait
from typing import Callable, Dict, List, Optional, Sequence

from shipwright_release.errors import BuildCancelled, ReleaseError, TargetError
from shipwright_release.schemas import Target

from .builder import BuildExecutor
from .models import TargetBuildResult, TargetStatus
from .publisher import ArtifactPublisher

logger = logging.getLogger(__name__)


class TargetBuildCoordinator:
    """Runs every target to completion regardless of how its siblings fare.

    Each task converts its own failure into a ``TargetBuildResult``; nothing a
    task raises can cancel another task or abort the fan-out. Results are
    collected per target and returned in the configured target order.
    """

    def __init__(
        self,
        executor: BuildExecutor,
        publisher: ArtifactPublisher,
        *,
        max_workers: Optional[int] = None,
        timeout_seconds: Optional[float] = None,
        cancel_event: Optional[threading.Event] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.executor = executor
        self.publisher = publisher
        self.max_workers = max_workers
        self.timeout_seconds = timeout_seconds
        self.cancel_event = cancel_event or threading.Event()
        self._clock = clock
        self._stop_reason = "run cancelled"

    def run(self, targets: Sequence[Target], release_id: str, source_ref: str) -> List[TargetBuildResult]:
        if not targets:
            return []

        workers = self.max_workers or len(targets)
        results: Dict[Target, TargetBuildResult] = {}
        pool = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="shipwright-target")
        try:
            futures = {
                pool.submit(self._run_target, target, release_id, source_ref): target for target in targets
            }
            _, pending = wait(futures, timeout=self.timeout_seconds)
            if pending:
                logger.error(
                    "Overall timeout of %ss elapsed with %d target(s) unfinished; cancelling them",
                    self.timeout_seconds,
                    len(pending),
                )
                self._stop_reason = f"overall timeout of {self.timeout_seconds}s elapsed"
                self.cancel_event.set()
                # In-flight work is allowed to settle so no asset is left half uploaded.
                wait(pending)
            for future, target in futures.items():
                results[target] = future.result()
        finally:
            pool.shutdown(wait=True)

        return [results[target] for target in targets]

    def _run_target(self, target: Target, release_id: str, source_ref: str) -> TargetBuildResult:
        started = self._clock()
        stage = "build"
        artifact_path: Optional[str] = None
        try:
            if self.cancel_event.is_set():
                raise BuildCancelled(target.platform, self._stop_reason)
            artifact = self.executor.build(target, source_ref, self.cancel_event)
            artifact_path = str(artifact)

            stage = "publish"
            if self.cancel_event.is_set():
                raise TargetError(f"{self._stop_reason} before uploading {target.artifact_name}")
            asset = self.publisher.publish(release_id, target, artifact, self.cancel_event)
        except ReleaseError as exc:
            logger.error("Target %s failed during %s: %s", target.platform, stage, exc)
            return self._failed(target, stage, str(exc), artifact_path, started)
        except Exception as exc:
            logger.exception("Target %s crashed during %s", target.platform, stage)
            return self._failed(target, stage, f"unexpected error: {exc!r}", artifact_path, started)

        logger.info("Target %s published as %s", target.platform, asset.name)
        return TargetBuildResult(
            target=target,
            status=TargetStatus.SUCCEEDED,
            artifact_path=artifact_path,
            asset_url=asset.url,
            duration_seconds=self._clock() - started,
        )

    def _failed(
        self,
        target: Target,
        stage: str,
        error: str,
        artifact_path: Optional[str],
        started: float,
    ) -> TargetBuildResult:
        return TargetBuildResult(
            target=target,
            status=TargetStatus.FAILED,
            artifact_path=artifact_path,
            error=error,
            stage=stage,
            duration_seconds=self._clock() - started,
        )
