# shopreco/utils/circuit_breaker.py
from __future__ import annotations
from typing import Callable, Optional
import logging
import time

logger = logging.getLogger(__name__)

CLOSED = "closed"
OPEN = "open"
HALF_OPEN = "half_open"


class CircuitBreaker:
    """
    Consecutive-failure breaker for a remote dependency.
    - closed: every call goes to the remote.
    - open: calls skip the remote until `reset_timeout` seconds have passed.
    - half_open: a single trial call is let through; success closes, failure
      re-opens. A trial with no recorded outcome after `reset_timeout`
      (e.g. a cancelled request) frees the slot for another one.
    Single event loop, no locking.
    """
    def __init__(
        self,
        name: str,
        failure_threshold: int = 3,
        reset_timeout: float = 30.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.name = name
        self.failure_threshold = max(1, failure_threshold)
        self.reset_timeout = reset_timeout
        self._clock = clock
        self._state = CLOSED
        self._failures = 0
        self._opened_at: Optional[float] = None
        self._trial_started_at: Optional[float] = None

    @property
    def state(self) -> str:
        if self._state == OPEN and self._clock() - (self._opened_at or 0.0) >= self.reset_timeout:
            self._state = HALF_OPEN
            self._trial_started_at = None
            logger.info("breaker %s half-open after %.1fs", self.name, self.reset_timeout)
        return self._state

    def allow_request(self) -> bool:
        state = self.state
        if state == CLOSED:
            return True
        if state == OPEN:
            return False
        now = self._clock()
        if self._trial_started_at is not None and now - self._trial_started_at < self.reset_timeout:
            return False
        self._trial_started_at = now
        return True

    def record_success(self) -> None:
        if self._state != CLOSED:
            logger.info("breaker %s closed", self.name)
        self._state = CLOSED
        self._failures = 0
        self._opened_at = None
        self._trial_started_at = None

    def record_failure(self) -> None:
        self._failures += 1
        self._trial_started_at = None
        if self._state == HALF_OPEN or self._failures >= self.failure_threshold:
            if self._state != OPEN:
                logger.warning("breaker %s open after %s consecutive failures", self.name, self._failures)
            self._state = OPEN
            self._opened_at = self._clock()
