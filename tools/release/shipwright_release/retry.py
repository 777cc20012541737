"""Bounded retry with exponential backoff for transient collaborator failures."""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional, Tuple, Type, TypeVar

from .errors import TransientError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    attempts: int = 3
    initial_delay: float = 1.0
    backoff: float = 2.0
    max_delay: float = 30.0

    def delay_for(self, attempt: int) -> float:
        """Delay to wait after the given (1-based) failed attempt."""

        delay = self.initial_delay * (self.backoff ** (attempt - 1))
        return min(delay, self.max_delay)


def call_with_retry(
    operation: Callable[[], T],
    policy: RetryPolicy,
    *,
    description: str = "operation",
    retry_on: Tuple[Type[BaseException], ...] = (TransientError,),
    sleep: Optional[Callable[[float], None]] = None,
    cancel_event: Optional[threading.Event] = None,
) -> T:
    """Invoke ``operation`` until it succeeds or the policy is exhausted.

    Only exceptions listed in ``retry_on`` trigger another attempt; anything
    else propagates immediately. When attempts run out the last retryable
    error is re-raised unchanged. Without an explicit ``sleep`` the backoff
    waits on ``cancel_event`` so cancelling ends it early.
    """

    attempts = max(1, policy.attempts)
    for attempt in range(1, attempts + 1):
        try:
            return operation()
        except retry_on as exc:
            if attempt >= attempts:
                logger.error("%s failed after %d attempt(s): %s", description, attempt, exc)
                raise
            if cancel_event is not None and cancel_event.is_set():
                logger.warning("%s not retried; run cancelled", description)
                raise
            delay = policy.delay_for(attempt)
            logger.warning(
                "%s failed (attempt %d/%d): %s; retrying in %.1fs",
                description,
                attempt,
                attempts,
                exc,
                delay,
            )
            if sleep is not None:
                sleep(delay)
            elif cancel_event is not None:
                if cancel_event.wait(delay):
                    logger.warning("%s not retried; run cancelled during backoff", description)
                    raise
            else:
                time.sleep(delay)
    raise AssertionError("unreachable")  # pragma: no cover


__all__ = ["RetryPolicy", "call_with_retry"]
