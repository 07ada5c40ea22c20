"""In-process rate limiting and PIN lockout.

Both trackers keep their counters in a dict guarded by a lock. State is
per-process and lost on restart; a shared backend only has to implement the
``check`` / ``record`` / ``clear`` trio of :class:`AttemptTracker`.

Keys that never come back would stay in the dict forever, so callers on the
request path call :meth:`AttemptTracker.sweep`, which drops expired keys at
most once per ``cleanup_interval`` seconds.
"""
import logging
import time
from dataclasses import dataclass
from threading import Lock
from typing import Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Decision:
    allowed: bool
    remaining: int
    retry_after: Optional[float] = None


class AttemptTracker:
    def __init__(self, cleanup_interval, clock=time.monotonic):
        self.cleanup_interval = cleanup_interval
        self.clock = clock
        self._entries = {}  # key -> [count, timestamp]
        self._lock = Lock()
        self._last_cleanup = clock()

    def _expired(self, entry, now) -> bool:
        raise NotImplementedError

    def check(self, key: str) -> Decision:
        raise NotImplementedError

    def record(self, key: str) -> None:
        raise NotImplementedError

    def clear(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def hit(self, key: str) -> Decision:
        """Check and, when allowed, count one attempt."""
        decision = self.check(key)
        if decision.allowed:
            self.record(key)
            decision = Decision(True, max(decision.remaining - 1, 0))
        return decision

    def prune(self) -> int:
        """Drop every expired key and return how many went."""
        now = self.clock()
        with self._lock:
            self._last_cleanup = now
            expired = [key for key, entry in self._entries.items() if self._expired(entry, now)]
            for key in expired:
                del self._entries[key]
        if expired:
            logger.debug('Pruned %d expired %s entries', len(expired), type(self).__name__)
        return len(expired)

    def sweep(self) -> int:
        """:meth:`prune`, but at most once per ``cleanup_interval``."""
        if self.clock() - self._last_cleanup < self.cleanup_interval:
            return 0
        return self.prune()


class FixedWindowLimiter(AttemptTracker):
    """``limit`` attempts per key in each fixed window of ``window`` seconds."""

    def __init__(self, limit, window, clock=time.monotonic):
        super().__init__(window, clock)
        self.limit = limit
        self.window = window

    def _expired(self, entry, now):
        return now - entry[1] >= self.window

    def _live_entry(self, key, now):
        entry = self._entries.get(key)
        if entry and self._expired(entry, now):
            del self._entries[key]
            return None
        return entry

    def check(self, key):
        now = self.clock()
        with self._lock:
            entry = self._live_entry(key, now)
            if entry is None:
                return Decision(True, self.limit)
            if entry[0] >= self.limit:
                return Decision(False, 0, entry[1] + self.window - now)
            return Decision(True, self.limit - entry[0])

    def record(self, key):
        now = self.clock()
        with self._lock:
            entry = self._live_entry(key, now)
            if entry is None:
                self._entries[key] = [1, now]
            else:
                entry[0] += 1


class LoginLockout(AttemptTracker):
    """Lock a key out after ``max_attempts`` failures.

    The lockout runs for ``lockout_seconds`` after the most recent failure;
    a quiet period of that length forgets the failures.
    """

    def __init__(self, max_attempts, lockout_seconds, clock=time.monotonic):
        super().__init__(lockout_seconds, clock)
        self.max_attempts = max_attempts
        self.lockout_seconds = lockout_seconds

    def _expired(self, entry, now):
        return now - entry[1] > self.lockout_seconds

    def check(self, key):
        now = self.clock()
        with self._lock:
            record = self._entries.get(key)
            if record is None:
                return Decision(True, self.max_attempts)
            if self._expired(record, now):
                del self._entries[key]
                return Decision(True, self.max_attempts)
            if record[0] >= self.max_attempts:
                return Decision(False, 0, record[1] + self.lockout_seconds - now)
            return Decision(True, self.max_attempts - record[0])

    def record(self, key):
        now = self.clock()
        with self._lock:
            record = self._entries.get(key)
            if record is None or self._expired(record, now):
                self._entries[key] = [1, now]
            else:
                record[0] += 1
                record[1] = now
