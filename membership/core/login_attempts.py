"""
Brute-force throttling for authentication.

A LoginAttemptTracker counts consecutive failed logins for one identity and
locks it out for a fixed duration once the maximum is reached. Trackers live in
a LoginAttemptRegistry owned by the authentication flow. State is held in
process memory only and is lost on restart; it is a throttle, not an audit log.
"""
from __future__ import annotations

import logging
import threading
from datetime import datetime, timedelta
from typing import Callable, Dict, Optional

from membership.db.base import now_utc

logger = logging.getLogger(__name__)

MAX_LOGIN_ATTEMPTS = 5
LOCKOUT_DURATION = timedelta(minutes=15)
RETENTION_PERIOD = timedelta(hours=24)

Clock = Callable[[], datetime]


# PUBLIC_INTERFACE
class LoginAttemptTracker:
    """
    Consecutive-failure counter with a time-bounded lockout.

    States:
      Clear  - fewer than ``max_attempts`` failures, no lockout.
      Locked - ``locked_out_until`` lies in the future.

    ``is_locked()`` is the single authority on whether the identity may attempt a
    login. Once the lockout has expired, that check resets the tracker to Clear.
    All methods share one lock so concurrent failures cannot race past the
    threshold.
    """

    def __init__(
        self,
        max_attempts: int = MAX_LOGIN_ATTEMPTS,
        lockout_duration: timedelta = LOCKOUT_DURATION,
        clock: Clock = now_utc,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self._max_attempts = max_attempts
        self._lockout_duration = lockout_duration
        self._clock = clock
        self._lock = threading.Lock()
        self._failed_attempts = 0
        self._locked_out_until: Optional[datetime] = None
        self._last_attempt: datetime = clock()

    @property
    def failed_attempts(self) -> int:
        with self._lock:
            return self._failed_attempts

    @property
    def locked_out_until(self) -> Optional[datetime]:
        with self._lock:
            return self._locked_out_until

    def reset(self) -> None:
        """Return to Clear, e.g. after a successful login."""
        with self._lock:
            self._clear()

    def get_last_attempt(self) -> datetime:
        with self._lock:
            return self._last_attempt

    def increment_failed_attempts(self) -> None:
        """Record a failed login; reaching the maximum starts a lockout."""
        with self._lock:
            now = self._clock()
            self._failed_attempts += 1
            self._last_attempt = now
            if self._failed_attempts >= self._max_attempts:
                self._locked_out_until = now + self._lockout_duration

    def is_locked(self) -> bool:
        with self._lock:
            if self._locked_out_until is None:
                return False
            if self._clock() < self._locked_out_until:
                return True
            self._clear()
            return False

    def _clear(self) -> None:
        # caller holds self._lock
        self._failed_attempts = 0
        self._locked_out_until = None
        self._last_attempt = self._clock()


# PUBLIC_INTERFACE
class LoginAttemptRegistry:
    """
    Process-wide map from identity (e.g. an email address) to its tracker.

    ``get`` creates the tracker on first use; lookups and creation are atomic so
    two concurrent first attempts share one tracker.
    """

    def __init__(
        self,
        max_attempts: int = MAX_LOGIN_ATTEMPTS,
        lockout_duration: timedelta = LOCKOUT_DURATION,
        retention: timedelta = RETENTION_PERIOD,
        clock: Clock = now_utc,
    ) -> None:
        self._max_attempts = max_attempts
        self._lockout_duration = lockout_duration
        self._retention = retention
        self._clock = clock
        self._lock = threading.Lock()
        self._trackers: Dict[str, LoginAttemptTracker] = {}

    def get(self, identity: str) -> LoginAttemptTracker:
        with self._lock:
            tracker = self._trackers.get(identity)
            if tracker is None:
                tracker = LoginAttemptTracker(
                    max_attempts=self._max_attempts,
                    lockout_duration=self._lockout_duration,
                    clock=self._clock,
                )
                self._trackers[identity] = tracker
            return tracker

    def discard(self, identity: str) -> None:
        with self._lock:
            self._trackers.pop(identity, None)

    def cleanup(self, now: Optional[datetime] = None) -> int:
        """
        Drop trackers whose last attempt is older than the retention window.

        Returns the number of trackers removed.
        """
        cutoff = (now or self._clock()) - self._retention
        with self._lock:
            stale = [
                identity
                for identity, tracker in self._trackers.items()
                if tracker.get_last_attempt() < cutoff
            ]
            for identity in stale:
                del self._trackers[identity]
        if stale:
            logger.debug("Dropped %d idle login attempt trackers", len(stale))
        return len(stale)

    def __contains__(self, identity: object) -> bool:
        with self._lock:
            return identity in self._trackers

    def __len__(self) -> int:
        with self._lock:
            return len(self._trackers)
