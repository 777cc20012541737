"""Resolve the release tag for a version and make sure it exists on the remote."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from shipwright_release.errors import TagConflict
from shipwright_release.retry import RetryPolicy, call_with_retry
from shipwright_release.scm import SourceControl

from .versioning import DEFAULT_TAG_PREFIX, bump_version, format_tag

logger = logging.getLogger(__name__)

MAX_INCREMENTS = 100


class TagPolicy(str, Enum):
    REUSE = "reuse"
    INCREMENT = "increment"


@dataclass(frozen=True)
class TagResolution:
    tag: str
    version: str
    commit_ref: str
    created: bool


class TagResolver:
    """Computes ``<prefix><version>`` and pushes it at the current commit.

    An existing tag on the current commit is reused as-is. An existing tag on a
    different commit is a ``TagConflict`` unless the increment policy is
    selected, in which case the patch number is bumped until a usable tag is
    found.
    """

    def __init__(
        self,
        scm: SourceControl,
        *,
        prefix: str = DEFAULT_TAG_PREFIX,
        policy: TagPolicy = TagPolicy.REUSE,
        retry: RetryPolicy = RetryPolicy(),
        sleep: Optional[Callable[[float], None]] = None,
        cancel_event: Optional[threading.Event] = None,
        max_increments: int = MAX_INCREMENTS,
    ) -> None:
        self.scm = scm
        self.prefix = prefix
        self.policy = TagPolicy(policy)
        self.max_increments = max(1, max_increments)
        self.retry = retry
        self._sleep = sleep
        self._cancel_event = cancel_event

    def resolve(self, version: str) -> TagResolution:
        head = self._with_retry(self.scm.head_commit, "read current commit")
        candidate = version
        tries = 1
        while True:
            try:
                return self._ensure_tag(candidate, head)
            except TagConflict as exc:
                if self.policy is not TagPolicy.INCREMENT:
                    raise
                if tries >= self.max_increments:
                    logger.error("No free tag within %d attempt(s) starting at %s", tries, version)
                    raise
                logger.warning("%s; trying next patch version", exc)
                candidate = bump_version(candidate, "patch")
                tries += 1

    def _ensure_tag(self, version: str, head: str) -> TagResolution:
        tag = format_tag(version, self.prefix)
        created = False

        def attempt() -> None:
            nonlocal created
            # Re-read on every attempt so a push that landed before a network error is not repeated.
            existing = self.scm.tag_commit(tag)
            if existing == head:
                return
            if existing is not None:
                raise TagConflict(tag, existing, head)
            self.scm.push_tag(tag, head)
            created = True

        self._with_retry(attempt, f"push tag {tag}")
        if created:
            logger.info("Pushed tag %s at %s", tag, head)
        else:
            logger.info("Tag %s already points at %s; reusing it", tag, head)
        return TagResolution(tag=tag, version=version, commit_ref=head, created=created)

    def _with_retry(self, operation, description: str):
        return call_with_retry(
            operation,
            self.retry,
            description=description,
            sleep=self._sleep,
            cancel_event=self._cancel_event,
        )
