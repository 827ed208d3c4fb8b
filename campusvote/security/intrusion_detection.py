# campusvote/security/intrusion_detection.py

import threading
from collections import defaultdict
from datetime import timedelta

from campusvote.operations.time_sync import utcnow

# Failed-login tracking per client address for the admin and student login
# endpoints. Progressive delay + short lockout to throttle brute-force attempts.
# State is per process; the Flask-Limiter limits apply across processes.


class IntrusionDetection:
    def __init__(self, max_attempts=5, window_minutes=15, lockout_minutes=5,
                 base_delay_seconds=1, max_delay_seconds=60, cleanup_interval_seconds=60):
        """
        max_attempts: attempts within `window_minutes` that trigger lockout
        window_minutes: sliding window to count attempts
        lockout_minutes: duration of short lockout when max_attempts reached
        base_delay_seconds: starting delay applied after first failed attempt
        max_delay_seconds: cap for exponential backoff delay
        cleanup_interval_seconds: how often expired entries are pruned while recording
        """
        self.failed_logins = defaultdict(list)  # key -> list[datetime]
        self.max_attempts = max_attempts
        self.window = timedelta(minutes=window_minutes)
        self.lockout_duration = timedelta(minutes=lockout_minutes)
        self.base_delay_seconds = base_delay_seconds
        self.max_delay_seconds = max_delay_seconds

        self.locks = {}  # key -> locked_until datetime
        self.next_allowed = {}  # key -> datetime when next attempt is allowed
        self._mutex = threading.Lock()
        self.cleanup_interval = timedelta(seconds=cleanup_interval_seconds)
        self._last_cleanup = None

    def _now(self):
        return utcnow()

    def record_failed_attempt(self, key):
        """
        Record a failed login for `key` (client address).

        Returns:
            delay_seconds (int): number of seconds client should wait before next attempt.
                If a lockout is in effect, returns remaining lockout seconds (>0).
        """
        now = self._now()
        self._cleanup_if_due(now)
        with self._mutex:
            locked_until = self.locks.get(key)
            if locked_until and now < locked_until:
                return int((locked_until - now).total_seconds())

            attempts = [t for t in self.failed_logins[key] + [now] if now - t <= self.window]
            self.failed_logins[key] = attempts
            count = len(attempts)

            if count >= self.max_attempts:
                self.locks[key] = now + self.lockout_duration
                self.failed_logins[key] = []
                return int(self.lockout_duration.total_seconds())

            delay = min(self.base_delay_seconds * (2 ** (count - 1)), self.max_delay_seconds)
            self.next_allowed[key] = now + timedelta(seconds=delay)
            return int(delay)

    def clear_attempts(self, key):
        """Forget failures after a successful login."""
        with self._mutex:
            self.failed_logins.pop(key, None)
            self.next_allowed.pop(key, None)
            self.locks.pop(key, None)

    def is_blocked(self, key):
        """Return True if `key` is in the lockout period (not for short throttle delays)."""
        locked_until = self.locks.get(key)
        return bool(locked_until and self._now() < locked_until)

    def is_throttled(self, key):
        """Return True if `key` should wait before next attempt due to progressive delay."""
        next_allowed = self.next_allowed.get(key)
        return bool(next_allowed and self._now() < next_allowed)

    def _cleanup_if_due(self, now):
        if self._last_cleanup is None or now - self._last_cleanup >= self.cleanup_interval:
            self._last_cleanup = now
            self.clear_old_records()

    def clear_old_records(self):
        now = self._now()
        with self._mutex:
            for key, attempts in list(self.failed_logins.items()):
                pruned = [t for t in attempts if now - t <= self.window]
                if pruned:
                    self.failed_logins[key] = pruned
                else:
                    del self.failed_logins[key]

            for key, locked_until in list(self.locks.items()):
                if now >= locked_until:
                    del self.locks[key]

            for key, when in list(self.next_allowed.items()):
                if now >= when:
                    del self.next_allowed[key]
