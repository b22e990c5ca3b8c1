import threading
import time
from dataclasses import dataclass

from flask import current_app

DEFAULT_LOCKOUT_THRESHOLD = 5
DEFAULT_LOCKOUT_DURATION_SECONDS = 15 * 60


@dataclass
class LoginAttemptRecord:
    identifier: str
    count: int
    first_attempt: float


class LoginAttemptGuard:
    """
    Tracks failed logins per identifier (email or IP) and locks the identifier
    out once `threshold` failures land inside one window of `duration_seconds`
    measured from the first failure.

    State lives in process memory only: a restart clears every lockout, and
    separate worker processes do not share counts.
    """

    def __init__(self, threshold: int = DEFAULT_LOCKOUT_THRESHOLD,
                 duration_seconds: float = DEFAULT_LOCKOUT_DURATION_SECONDS,
                 clock=time.monotonic):
        self.threshold = threshold
        self.duration_seconds = duration_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._records: dict[str, LoginAttemptRecord] = {}

    def _expired(self, record: LoginAttemptRecord, now: float) -> bool:
        return now >= record.first_attempt + self.duration_seconds

    def is_locked(self, identifier: str) -> bool:
        return self.lockout_status(identifier)[0]

    def lockout_status(self, identifier: str) -> tuple[bool, int]:
        """
        Returns (locked, seconds_remaining) read under one lock.
        seconds_remaining is at least 1 while locked.
        """
        now = self._clock()
        with self._lock:
            record = self._records.get(identifier)
            if record is None:
                return False, 0
            if self._expired(record, now):
                del self._records[identifier]
                return False, 0
            if record.count < self.threshold:
                return False, 0
            remaining = record.first_attempt + self.duration_seconds - now
            return True, max(int(remaining), 1)

    def seconds_remaining(self, identifier: str) -> int:
        """
        Returns seconds until the lockout lifts, 0 when not locked.
        """
        return self.lockout_status(identifier)[1]

    def record_failure(self, identifier: str) -> int:
        """
        Counts one failed login. Returns the count in the current window.
        """
        now = self._clock()
        with self._lock:
            record = self._records.get(identifier)
            if record is None or now - record.first_attempt > self.duration_seconds:
                record = LoginAttemptRecord(identifier=identifier, count=1, first_attempt=now)
                self._records[identifier] = record
            else:
                record.count += 1
            return record.count

    def clear_record(self, identifier: str):
        with self._lock:
            self._records.pop(identifier, None)

    def attempts(self, identifier: str) -> int:
        with self._lock:
            record = self._records.get(identifier)
            return record.count if record else 0


def init_login_guard(app, clock=time.monotonic) -> LoginAttemptGuard:
    guard = LoginAttemptGuard(
        threshold=app.config.get("LOCKOUT_THRESHOLD", DEFAULT_LOCKOUT_THRESHOLD),
        duration_seconds=app.config.get("LOCKOUT_DURATION_SECONDS", DEFAULT_LOCKOUT_DURATION_SECONDS),
        clock=clock,
    )
    app.extensions["login_guard"] = guard
    return guard


def get_login_guard() -> LoginAttemptGuard:
    return current_app.extensions["login_guard"]
