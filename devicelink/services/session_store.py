"""
Redis-backed store for handshake sessions.

Each session is held as a JSON document under its own key. A sorted set,
scored by expiry time, indexes the sessions so that the cleanup sweeper can
find expired records without scanning the keyspace. Records are given no
Redis TTL: deletion belongs to the sweeper alone.

Mutations are optimistic transactions (``WATCH``/``MULTI``/``EXEC``). A
conditional write whose record changed after it was read fails with
:class:`.StaleSession`, so two racing writers cannot both move a session out
of the pending state.
"""

from typing import Any, Callable, Iterable, List, Mapping, Optional
from datetime import datetime
import json
import logging

import redis

from .. import domain
from ..exceptions import SessionExists, SessionStoreError, StaleSession

logger = logging.getLogger(__name__)

KEY_PREFIX = 'devicelink:session:'
EXPIRY_INDEX = 'devicelink:session-expiry'

Replaceable = Callable[[domain.Session], bool]
"""Decides whether an existing pending record may be replaced."""


def _score(when: datetime) -> float:
    return when.timestamp()


class SessionStore(object):
    """
    Manages session records in Redis.

    The client instance is thread safe and connections are attached at the
    time a command is executed. This class provides a container for the
    connection and the key layout.
    """

    def __init__(self, r: redis.Redis) -> None:
        self.r = r

    @staticmethod
    def key(session_id: str) -> str:
        """The Redis key holding a session record."""
        return f'{KEY_PREFIX}{session_id}'

    def get(self, session_id: str) -> Optional[domain.Session]:
        """
        Load a session by id.

        Returns
        -------
        :class:`.domain.Session` or None
            None if no record exists for ``session_id``.
        """
        try:
            raw = self.r.get(self.key(session_id))
        except redis.exceptions.ConnectionError as e:
            raise SessionStoreError(f'Connection failed: {e}') from e
        except redis.exceptions.RedisError as e:
            raise SessionStoreError(f'Failed to load: {e}') from e
        return self._decode(raw)

    def create(self, session: domain.Session,
               replaceable: Optional[Replaceable] = None) \
            -> domain.Session:
        """
        Store a new pending session.

        Parameters
        ----------
        session : :class:`.domain.Session`
        replaceable : callable
            Called with an existing pending record for the same id. The record
            is replaced only if this returns True. If not given, existing
            records are never replaced. Terminal records are never replaced.

        Raises
        ------
        :class:`.SessionExists`
            Raised if a record exists and may not be replaced.
        :class:`.StaleSession`
            Raised if the record changed while it was being replaced.
        """
        key = self.key(session.session_id)
        try:
            with self.r.pipeline() as pipe:
                pipe.watch(key)
                existing = self._decode(pipe.get(key))
                if existing is not None and (
                        existing.is_terminal or replaceable is None
                        or not replaceable(existing)):
                    raise SessionExists(f'Session {session.session_id} exists',
                                        existing=existing)
                pipe.multi()
                self._write(pipe, session)
                pipe.execute()
        except redis.exceptions.WatchError as e:
            raise StaleSession(f'Session {session.session_id} changed') from e
        except redis.exceptions.ConnectionError as e:
            raise SessionStoreError(f'Connection failed: {e}') from e
        except redis.exceptions.RedisError as e:
            raise SessionStoreError(f'Failed to create: {e}') from e
        if existing is not None:
            logger.info('Replaced pending session %s', session.session_id)
        return session

    def transition(self, session: domain.Session,
                   expected: domain.Session) -> domain.Session:
        """
        Replace a session record, if it is still exactly ``expected``.

        ``expected`` is the record as it was read before ``session`` was
        derived from it. A record that has since been resolved, replaced or
        removed is left alone.

        Raises
        ------
        :class:`.StaleSession`
            Raised if the record no longer matches ``expected``, or changed
            before the write could be committed.
        """
        key = self.key(session.session_id)
        try:
            with self.r.pipeline() as pipe:
                pipe.watch(key)
                current = self._decode(pipe.get(key))
                if current != expected:
                    raise StaleSession(
                        f'Session {session.session_id} is not as it was read'
                    )
                pipe.multi()
                self._write(pipe, session)
                pipe.execute()
        except redis.exceptions.WatchError as e:
            raise StaleSession(f'Session {session.session_id} changed') from e
        except redis.exceptions.ConnectionError as e:
            raise SessionStoreError(f'Connection failed: {e}') from e
        except redis.exceptions.RedisError as e:
            raise SessionStoreError(f'Failed to update: {e}') from e
        return session

    def expired(self, cutoff: datetime, limit: int = 500) -> List[str]:
        """Get the ids of up to ``limit`` sessions expired by ``cutoff``."""
        try:
            members = self.r.zrangebyscore(EXPIRY_INDEX, '-inf',
                                           f'({_score(cutoff)}',
                                           start=0, num=limit)
        except redis.exceptions.ConnectionError as e:
            raise SessionStoreError(f'Connection failed: {e}') from e
        except redis.exceptions.RedisError as e:
            raise SessionStoreError(f'Failed to query expiry: {e}') from e
        return [m.decode('utf-8') if isinstance(m, bytes) else m
                for m in members]

    def delete_expired(self, session_ids: Iterable[str],
                       cutoff: datetime) -> int:
        """
        Delete sessions in a single transaction, if they are still expired.

        A session whose expiry moved past ``cutoff`` after it was selected is
        left alone. If any of the records change during the transaction,
        nothing is deleted and the sessions are left for a later attempt.

        Returns
        -------
        int
            The number of sessions deleted.
        """
        session_ids = list(session_ids)
        if not session_ids:
            return 0
        keys = [self.key(session_id) for session_id in session_ids]
        threshold = _score(cutoff)
        try:
            with self.r.pipeline() as pipe:
                pipe.watch(*keys)
                doomed = [session_id for session_id in session_ids
                          if self._still_expired(pipe, session_id, threshold)]
                pipe.multi()
                for session_id in doomed:
                    pipe.delete(self.key(session_id))
                    pipe.zrem(EXPIRY_INDEX, session_id)
                pipe.execute()
        except redis.exceptions.WatchError as e:
            raise StaleSession('Sessions changed during deletion') from e
        except redis.exceptions.ConnectionError as e:
            raise SessionStoreError(f'Connection failed: {e}') from e
        except redis.exceptions.RedisError as e:
            raise SessionStoreError(f'Failed to delete: {e}') from e
        return len(doomed)

    def _still_expired(self, pipe: Any, session_id: str,
                       threshold: float) -> bool:
        score = pipe.zscore(EXPIRY_INDEX, session_id)
        return score is None or score < threshold

    def _write(self, pipe: Any, session: domain.Session) -> None:
        pipe.set(self.key(session.session_id),
                 json.dumps(domain.to_record(session)))
        pipe.zadd(EXPIRY_INDEX,
                  {session.session_id: _score(session.expires_at)})

    def _decode(self, raw: Optional[bytes]) -> Optional[domain.Session]:
        if not raw:
            return None
        try:
            return domain.from_record(json.loads(raw))
        except (ValueError, TypeError) as e:
            raise SessionStoreError('Corrupted session record') from e


def get_redis(config: Mapping) -> redis.Redis:
    """Get a Redis client for an application configuration."""
    if config.get('REDIS_FAKE'):
        import fakeredis     # Only needed for tests and local development.
        logger.warning('Using fakeredis; sessions will not be shared')
        return fakeredis.FakeStrictRedis(server=fakeredis.FakeServer())
    return redis.StrictRedis(host=config.get('REDIS_HOST', 'localhost'),
                             port=int(config.get('REDIS_PORT', '6379')),
                             db=int(config.get('REDIS_DATABASE', '0')),
                             password=config.get('REDIS_TOKEN') or None)


def init_app(app: Any) -> None:
    """Set default configuration parameters for an application instance."""
    app.config.setdefault('REDIS_HOST', 'localhost')
    app.config.setdefault('REDIS_PORT', '6379')
    app.config.setdefault('REDIS_DATABASE', '0')
    app.config.setdefault('REDIS_TOKEN', None)
    app.config.setdefault('REDIS_FAKE', False)
