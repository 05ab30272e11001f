"""
The cross-device handshake.

A session moves from ``pending`` to exactly one of ``success`` or ``error``,
and never back. The displaying device initializes the session, the
authenticating device completes it under the same identity, and the
displaying device polls its status until it is resolved.

A pending session is short-lived, since it backs a code shown on a screen.
Once resolved, the session is kept for a day so that a device with poor
connectivity still has a chance to pick up its credential.
"""

from typing import Callable, Optional
from datetime import datetime, timedelta
import logging

from pytz import UTC

from .. import domain
from ..domain import Identity, Session, Status
from ..exceptions import Conflict, CredentialError, DeviceLinkError, \
    Expired, Forbidden, InternalError, NotFound, SessionExists, \
    SessionStoreError, StaleSession
from ..services.audit import AuditLog, GRANTS
from ..services.credentials import CredentialIssuer
from ..services.session_store import Replaceable, SessionStore

logger = logging.getLogger(__name__)

PENDING_WINDOW = timedelta(minutes=5)
RESOLVED_WINDOW = timedelta(hours=24)

OVERWRITE = 'overwrite'
REJECT = 'reject'
REINITIALIZE_POLICIES = (OVERWRITE, REJECT)


class SessionOrchestrator(object):
    """Creates, completes and reports on handshake sessions."""

    def __init__(self, store: SessionStore, issuer: CredentialIssuer,
                 audit: Optional[AuditLog] = None,
                 reinitialize: str = OVERWRITE,
                 clock: Optional[Callable[[], datetime]] = None) -> None:
        if reinitialize not in REINITIALIZE_POLICIES:
            raise ValueError(f'Unknown re-initialization policy: '
                             f'{reinitialize}')
        self.store = store
        self.issuer = issuer
        self.audit = audit
        self.reinitialize = reinitialize
        self._clock = clock or (lambda: datetime.now(tz=UTC))

    def now(self) -> datetime:
        return self._clock()

    def initialize(self, session_id: str, identity: Identity) -> Session:
        """
        Start a new pending session owned by ``identity``.

        Under the ``overwrite`` policy, a pending session that already exists
        under ``session_id`` is replaced if it belongs to the same subject, or
        if its pending window has elapsed. Under ``reject`` it is never
        replaced. A resolved session is never replaced.

        Raises
        ------
        :class:`.Conflict`
            Raised if the session exists and may not be replaced.
        :class:`.InternalError`
            Raised if the session could not be stored.
        """
        domain.validate_session_id(session_id)
        now = self.now()
        session = Session(
            session_id=session_id,
            owner_identity=identity.subject_id,
            owner_email=identity.email,
            auth_provider=identity.provider,
            status=Status.PENDING,
            created_at=now,
            expires_at=now + PENDING_WINDOW
        )
        try:
            self.store.create(session, replaceable=self._replaceable(session))
        except SessionExists as e:
            logger.info('Refused to re-initialize session %s', session_id)
            raise Conflict('Session already exists') from e
        except StaleSession as e:
            raise Conflict('Session was modified concurrently') from e
        except SessionStoreError as e:
            logger.error('Could not create session %s: %s', session_id, e)
            raise InternalError('Could not create session') from e
        logger.info('Session initialized for user %s, session %s',
                    identity.subject_id, session_id)
        return session

    def complete(self, session_id: str, identity: Identity) -> Session:
        """
        Issue a credential for a pending session owned by ``identity``.

        If issuing the credential fails, the session is moved to ``error`` so
        that the polling device sees a resolution, and the failure is raised.

        Returns
        -------
        :class:`.domain.Session`
            The resolved session, including its credential.

        Raises
        ------
        :class:`.NotFound`
        :class:`.Forbidden`
        :class:`.Conflict`
            Raised if the session has already been resolved, or if it was
            resolved or re-initialized while this call was in progress.
        :class:`.Expired`
        :class:`.CredentialError`
        :class:`.InternalError`
        """
        session = self._load(session_id)
        if session.owner_identity != identity.subject_id:
            logger.info('Session %s does not belong to %s', session_id,
                        identity.subject_id)
            raise Forbidden('Session does not belong to this user')
        if session.is_terminal:
            raise Conflict('Session has already been completed')
        now = self.now()
        if session.expired(now):
            raise Expired('Session has expired')

        try:
            credential = self.issuer.issue()
        except Exception as e:
            self._fail(session, e)
            if isinstance(e, DeviceLinkError):
                raise
            raise InternalError('Failed to issue credential') from e

        resolved = session._replace(
            status=Status.SUCCESS,
            credential=credential,
            completed_at=now,
            expires_at=now + RESOLVED_WINDOW
        )
        self._commit(resolved, session)
        logger.info('Authentication completed for user %s, session %s',
                    identity.subject_id, session_id)
        if self.audit is not None:
            self.audit.record_quietly(GRANTS, {
                'sessionId': session_id,
                'userId': identity.subject_id,
                'authProvider': session.auth_provider,
                'grantedAt': now.isoformat()
            })
        return resolved

    def status(self, session_id: str) -> dict:
        """
        Get the public view of a session.

        This does not require an identity: the polling device has none.
        """
        return domain.status_view(self._load(session_id))

    def _replaceable(self, session: Session) -> Optional[Replaceable]:
        if self.reinitialize != OVERWRITE:
            return None

        def replaceable(existing: Session) -> bool:
            return existing.owner_identity == session.owner_identity \
                or existing.expired(session.created_at)
        return replaceable

    def _load(self, session_id: str) -> Session:
        domain.validate_session_id(session_id)
        try:
            session = self.store.get(session_id)
        except SessionStoreError as e:
            logger.error('Could not load session %s: %s', session_id, e)
            raise InternalError('Could not load session') from e
        if session is None:
            raise NotFound('Session not found')
        return session

    def _commit(self, session: Session, loaded: Session) -> None:
        try:
            self.store.transition(session, expected=loaded)
        except StaleSession as e:
            logger.info('Session %s changed while it was being completed',
                        session.session_id)
            raise Conflict('Session was modified concurrently') from e
        except SessionStoreError as e:
            logger.error('Could not update session %s: %s',
                         session.session_id, e)
            raise InternalError('Could not update session') from e

    def _fail(self, session: Session, error: Exception) -> None:
        """Record a failed completion, without masking the original error."""
        if isinstance(error, CredentialError):
            detail = str(error)
        else:
            detail = 'Failed to issue credential'
        logger.error('Completion failed for session %s: %s',
                     session.session_id, error)
        now = self.now()
        failed = session._replace(status=Status.ERROR, error_detail=detail,
                                  completed_at=now,
                                  expires_at=now + RESOLVED_WINDOW)
        try:
            self.store.transition(failed, expected=session)
        except SessionStoreError as e:
            logger.error('Failed to update session %s with error: %s',
                         session.session_id, e)
