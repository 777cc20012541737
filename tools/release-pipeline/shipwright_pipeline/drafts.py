"""Create-or-get of the draft release that collects the build artifacts."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Callable, Optional

from shipwright_release.errors import ReleaseConflict
from shipwright_release.hosting import ReleaseHost
from shipwright_release.retry import RetryPolicy, call_with_retry
from shipwright_release.schemas import ReleaseRecord

logger = logging.getLogger(__name__)

DEFAULT_RELEASE_NAME = "Release {tag}"


@dataclass(frozen=True)
class DraftResolution:
    release: ReleaseRecord
    created: bool

    @property
    def release_id(self) -> str:
        return self.release.id


class DraftReleaseManager:
    def __init__(
        self,
        host: ReleaseHost,
        *,
        name_template: str = DEFAULT_RELEASE_NAME,
        retry: RetryPolicy = RetryPolicy(),
        sleep: Optional[Callable[[float], None]] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> None:
        self.host = host
        self.name_template = name_template
        self.retry = retry
        self._sleep = sleep
        self._cancel_event = cancel_event

    def ensure_draft(self, tag: str) -> DraftResolution:
        """Return the draft release for ``tag``, creating it on first use."""

        created = False

        def attempt() -> ReleaseRecord:
            nonlocal created
            existing = self.host.find_release(tag)
            if existing is not None:
                if not existing.draft:
                    raise ReleaseConflict(tag, existing.id)
                return existing
            release = self.host.create_draft_release(tag, self.name_template.format(tag=tag))
            created = True
            return release

        release = call_with_retry(
            attempt,
            self.retry,
            description=f"create draft release for {tag}",
            sleep=self._sleep,
            cancel_event=self._cancel_event,
        )
        if created:
            logger.info("Created draft release %s for %s", release.id, tag)
        else:
            logger.info("Reusing draft release %s for %s", release.id, tag)
        return DraftResolution(release=release, created=created)
