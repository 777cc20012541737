"""Upload built artifacts to the draft release, replacing older copies by name."""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Callable, Optional

from shipwright_release.errors import ArtifactNotFound
from shipwright_release.hosting import ReleaseHost
from shipwright_release.retry import RetryPolicy, call_with_retry
from shipwright_release.schemas import ReleaseAsset, Target

logger = logging.getLogger(__name__)


class ArtifactPublisher:
    def __init__(
        self,
        host: ReleaseHost,
        *,
        retry: RetryPolicy = RetryPolicy(),
        sleep: Optional[Callable[[float], None]] = None,
    ) -> None:
        self.host = host
        self.retry = retry
        self._sleep = sleep

    def publish(
        self,
        release_id: str,
        target: Target,
        artifact_path: str | Path,
        cancel_event: Optional[threading.Event] = None,
    ) -> ReleaseAsset:
        path = Path(artifact_path)
        if not path.is_file():
            raise ArtifactNotFound(str(path))

        logger.info("Publishing %s as %s on release %s", path, target.artifact_name, release_id)
        return call_with_retry(
            lambda: self.host.upload_asset(release_id, target.artifact_name, path, overwrite=True),
            self.retry,
            description=f"upload {target.artifact_name}",
            sleep=self._sleep,
            cancel_event=cancel_event,
        )
