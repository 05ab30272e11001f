"""Append-only audit trail for credential grants and key assignments."""

from typing import Any, Callable, Optional
from datetime import datetime
import json
import logging

from pytz import UTC
import redis

from ..exceptions import SessionStoreError

logger = logging.getLogger(__name__)

GRANTS = 'devicelink:audit:session_grants'
API_KEY_ASSIGNMENTS = 'devicelink:audit:api_key_assignments'


def redact(secret: str, keep: int = 8) -> str:
    """Keep only a short prefix of a secret, for audit purposes."""
    return secret[:keep] + '...'


class AuditLog(object):
    """
    Writes audit events to capped Redis lists.

    Writing audit events is best-effort side work. Callers should use
    :meth:`record_quietly` on request paths so that a failure to write the
    trail never aborts the operation being audited.
    """

    def __init__(self, r: redis.Redis, max_length: int = 10000,
                 clock: Optional[Callable[[], datetime]] = None) -> None:
        self.r = r
        self._max_length = max_length
        self._clock = clock or (lambda: datetime.now(tz=UTC))

    def record(self, stream: str, event: dict) -> None:
        """Append an event to ``stream``."""
        event = dict(event, recordedAt=self._clock().isoformat())
        try:
            with self.r.pipeline() as pipe:
                pipe.rpush(stream, json.dumps(event))
                pipe.ltrim(stream, -self._max_length, -1)
                pipe.execute()
        except redis.exceptions.RedisError as e:
            raise SessionStoreError(f'Failed to write audit event: {e}') from e

    def record_quietly(self, stream: str, event: dict) -> bool:
        """Append an event, logging rather than raising on failure."""
        try:
            self.record(stream, event)
        except Exception as e:
            logger.warning('Failed to write %s audit event: %s', stream, e)
            return False
        return True

    def events(self, stream: str) -> list:
        """Load the events in ``stream``, oldest first."""
        return [json.loads(raw) for raw in self.r.lrange(stream, 0, -1)]
