"""Exceptions raised by the handshake service."""

from http import HTTPStatus


class DeviceLinkError(RuntimeError):
    """Base class for failures that are reported to the caller."""

    kind = 'InternalError'
    status_code = HTTPStatus.INTERNAL_SERVER_ERROR
    public_reason = 'Internal server error'

    @property
    def reason(self) -> str:
        """Message that is safe to include in a response."""
        if self.status_code == HTTPStatus.INTERNAL_SERVER_ERROR:
            return self.public_reason
        return str(self) or self.public_reason


class ValidationError(DeviceLinkError):
    """Required input is missing or malformed."""

    kind = 'ValidationError'
    status_code = HTTPStatus.BAD_REQUEST


class Unauthorized(DeviceLinkError):
    """No valid identity assertion or operation key was provided."""

    kind = 'Unauthorized'
    status_code = HTTPStatus.UNAUTHORIZED


class Forbidden(DeviceLinkError):
    """The caller does not own the session (or resource) in question."""

    kind = 'Forbidden'
    status_code = HTTPStatus.FORBIDDEN


class NotFound(DeviceLinkError):
    """No such session."""

    kind = 'NotFound'
    status_code = HTTPStatus.NOT_FOUND


class Conflict(DeviceLinkError):
    """The session has already left the pending state."""

    kind = 'Conflict'
    status_code = HTTPStatus.CONFLICT


class Expired(DeviceLinkError):
    """The pending window elapsed before the session was completed."""

    kind = 'Expired'
    status_code = HTTPStatus.GONE


class RateLimited(DeviceLinkError):
    """Too many requests for this operation and identifier."""

    kind = 'RateLimited'
    status_code = HTTPStatus.TOO_MANY_REQUESTS


class Unavailable(DeviceLinkError):
    """A required resource is not configured or not available."""

    kind = 'Unavailable'
    status_code = HTTPStatus.SERVICE_UNAVAILABLE
    public_reason = 'Service unavailable'


class InternalError(DeviceLinkError):
    """Unexpected or uncategorized failure."""


class CredentialError(DeviceLinkError):
    """Base class for failures to produce a signed credential."""


class ConfigurationError(CredentialError):
    """A required configuration parameter is missing."""

    kind = 'ConfigurationError'

    def __init__(self, missing: list) -> None:
        self.missing = list(missing)
        super().__init__(
            'Missing required configuration: %s' % ', '.join(self.missing)
        )


class KeyUnavailable(CredentialError):
    """The private key could not be resolved or read."""

    kind = 'KeyUnavailable'


class SigningError(CredentialError):
    """The credential could not be signed."""

    kind = 'SigningError'


class InvalidCredential(RuntimeError):
    """An identity assertion failed verification."""


class SessionStoreError(RuntimeError):
    """The session store could not complete an operation."""


class SessionExists(SessionStoreError):
    """A record already exists for the session id."""

    def __init__(self, message: str, existing: object = None) -> None:
        super().__init__(message)
        self.existing = existing


class StaleSession(SessionStoreError):
    """The record changed between read and conditional write."""
