"""Core data structures for cross-device handshakes."""

from typing import Any, NamedTuple, Optional
from datetime import datetime
import re

import dateutil.parser
from pytz import UTC

from .exceptions import ValidationError

SESSION_ID_PATTERN = re.compile(r'[A-Za-z0-9._-]{1,128}')
"""Session ids are supplied by the displaying device and are untrusted."""


class Status(object):
    """Session states."""

    PENDING = 'pending'
    SUCCESS = 'success'
    ERROR = 'error'

    TERMINAL = (SUCCESS, ERROR)
    ALL = (PENDING, SUCCESS, ERROR)


class Identity(NamedTuple):
    """An authenticated subject, as reported by the auth gate."""

    subject_id: str
    """Stable identifier of the user (or service) making the request."""

    email: Optional[str] = None
    """Informational; not used for authorization."""

    provider: Optional[str] = None
    """Sign-in provider reported by the identity service."""


class Session(NamedTuple):
    """A single cross-device authentication attempt."""

    session_id: str
    """Caller-chosen identifier displayed by the initiating device."""

    owner_identity: str
    """Subject id bound to the session when it was initialized."""

    status: str
    """One of :attr:`Status.ALL`."""

    created_at: datetime
    """When the session was initialized."""

    expires_at: datetime
    """After this moment the session may be removed by the sweeper."""

    owner_email: Optional[str] = None
    auth_provider: Optional[str] = None

    completed_at: Optional[datetime] = None
    """When the session left the pending state."""

    credential: Optional[str] = None
    """Signed developer token; only present on success."""

    error_detail: Optional[str] = None
    """Why the completion failed; only present on error."""

    @property
    def is_terminal(self) -> bool:
        """Whether the session has been resolved."""
        return self.status in Status.TERMINAL

    def expired(self, now: datetime) -> bool:
        """Whether ``now`` is past the session's expiry."""
        return now > self.expires_at


# Persisted field name -> Session attribute.
RECORD_FIELDS = (
    ('sessionId', 'session_id'),
    ('ownerIdentity', 'owner_identity'),
    ('ownerEmail', 'owner_email'),
    ('authProvider', 'auth_provider'),
    ('status', 'status'),
    ('createdAt', 'created_at'),
    ('expiresAt', 'expires_at'),
    ('completedAt', 'completed_at'),
    ('credential', 'credential'),
    ('errorDetail', 'error_detail'),
)
DATETIME_FIELDS = ('created_at', 'expires_at', 'completed_at')


def validate_session_id(session_id: Any) -> str:
    """Reject session ids that are not short, printable tokens."""
    if not session_id or not isinstance(session_id, str):
        raise ValidationError('Missing sessionId')
    if not SESSION_ID_PATTERN.fullmatch(session_id):
        raise ValidationError('Malformed sessionId')
    return session_id


def to_record(session: Session) -> dict:
    """Generate the persisted representation of a :class:`.Session`."""
    record = {}
    for key, attr in RECORD_FIELDS:
        value = getattr(session, attr)
        if value is None:
            continue
        if isinstance(value, datetime):
            value = value.isoformat()
        record[key] = value
    return record


def from_record(record: dict) -> Session:
    """Instantiate a :class:`.Session` from its persisted representation."""
    data = {}
    for key, attr in RECORD_FIELDS:
        value = record.get(key)
        if value is not None and attr in DATETIME_FIELDS:
            value = dateutil.parser.parse(value)
            if value.tzinfo is None:
                value = UTC.localize(value)
        data[attr] = value
    return Session(**data)


def status_view(session: Session) -> dict:
    """
    Generate the public, read-only view of a session.

    The credential is included only once the session has succeeded, and the
    error detail only once it has failed.
    """
    view = {
        'sessionId': session.session_id,
        'status': session.status,
        'createdAt': session.created_at.isoformat(),
        'expiresAt': session.expires_at.isoformat(),
    }
    if session.status == Status.SUCCESS:
        view['credential'] = session.credential
    elif session.status == Status.ERROR:
        view['error'] = session.error_detail
    return view
