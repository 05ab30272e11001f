"""Removal of expired handshake sessions."""

from typing import Callable, Optional
from datetime import datetime, timedelta
import logging

from pytz import UTC

from ..exceptions import SessionStoreError
from ..services.session_store import SessionStore

logger = logging.getLogger(__name__)


class CleanupSweeper(object):
    """
    Deletes sessions whose expiry has passed.

    Intended to run on a fixed schedule, independently of request traffic.
    Each sweep runs to completion; anything it fails to remove is picked up
    by the next one.
    """

    def __init__(self, store: SessionStore, grace: timedelta = timedelta(0),
                 batch_size: int = 500,
                 clock: Optional[Callable[[], datetime]] = None) -> None:
        self.store = store
        self.grace = grace
        self.batch_size = batch_size
        self._clock = clock or (lambda: datetime.now(tz=UTC))

    def sweep(self) -> int:
        """
        Delete expired sessions.

        Returns
        -------
        int
            The number of sessions removed. Store failures end the sweep
            early and are logged rather than raised.
        """
        cutoff = self._clock() - self.grace
        removed = 0
        try:
            while True:
                expired = self.store.expired(cutoff, limit=self.batch_size)
                if not expired:
                    break
                deleted = self.store.delete_expired(expired, cutoff)
                removed += deleted
                if deleted < len(expired) or len(expired) < self.batch_size:
                    break
        except SessionStoreError as e:
            logger.error('Error cleaning up expired sessions: %s', e)
            return removed
        if removed:
            logger.info('Cleaned up %i expired sessions', removed)
        else:
            logger.debug('No expired sessions to clean up')
        return removed
