"""
Fixed-window request limiting.

Counters live in process memory and are shared by all request threads in the
process. They are not shared between processes: running more than one
instance multiplies the effective limit by the number of instances, and a
shared counter store would be needed to enforce a global quota.
"""

from typing import Callable, Dict, Optional
from threading import Lock
import logging
import time

logger = logging.getLogger(__name__)


class RateLimitRecord(object):
    """Count of requests in the current window for a single key."""

    __slots__ = ('count', 'window_reset_at')

    def __init__(self, count: int, window_reset_at: float) -> None:
        self.count = count
        self.window_reset_at = window_reset_at


class RateLimiter(object):
    """
    Counts requests per key over fixed windows.

    This is an approximate limiter: because windows are fixed rather than
    sliding, up to twice ``limit`` requests may be allowed across a window
    boundary.
    """

    def __init__(self, clock: Optional[Callable[[], float]] = None,
                 max_entries: int = 10000) -> None:
        self._clock = clock or time.monotonic
        self._max_entries = max_entries
        self._records: Dict[str, RateLimitRecord] = {}
        self._lock = Lock()

    def __len__(self) -> int:
        return len(self._records)

    def allow(self, key: str, limit: int, window: float) -> bool:
        """
        Count a request against ``key``, if the limit allows it.

        Parameters
        ----------
        key : str
            Identifies the counter. Distinct operations should use distinct
            keys; see :meth:`allow_for`.
        limit : int
            Maximum number of requests per window.
        window : float
            Duration of the window, in seconds.

        Returns
        -------
        bool
            ``False`` if the limit has been reached for the current window.
            Denied requests are not counted.
        """
        with self._lock:
            now = self._clock()
            record = self._records.get(key)
            if record is None:
                if len(self._records) >= self._max_entries:
                    self._prune(now)
                record = RateLimitRecord(0, now + window)
                self._records[key] = record
            elif now > record.window_reset_at:
                record.count = 0
                record.window_reset_at = now + window

            if record.count >= limit:
                return False
            record.count += 1
            return True

    def allow_for(self, operation: str, identifier: str, limit: int,
                  window: float) -> bool:
        """Count a request for ``identifier`` against ``operation``'s limit."""
        allowed = self.allow(f'{operation}:{identifier}', limit, window)
        if not allowed:
            logger.info('Rate limit reached for %s', operation)
        return allowed

    def _prune(self, now: float) -> None:
        stale = [key for key, record in self._records.items()
                 if now > record.window_reset_at]
        for key in stale:
            del self._records[key]
        logger.debug('Pruned %i rate limit records', len(stale))
