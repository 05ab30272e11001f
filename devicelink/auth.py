"""
Authentication of mutating requests.

Every call that creates or changes a session must carry either a bearer
identity assertion (a Firebase ID token) or, for service-to-service calls, a
pre-shared operation key. :class:`AuthGate` turns that material into an
:class:`.Identity`, or refuses the request before anything else happens.
"""

from typing import Iterable, Optional, Protocol
import hashlib
import hmac
import logging

from .domain import Identity
from .exceptions import InvalidCredential, Unauthorized

logger = logging.getLogger(__name__)

NO_TOKEN = 'No valid authentication token provided'
BAD_TOKEN = 'Invalid authentication token'


class Verifier(Protocol):
    """Verifies a bearer assertion. See :mod:`.services.identity`."""

    def verify(self, assertion: str) -> Identity:
        ...


def bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Get the token from an ``Authorization: Bearer <token>`` header."""
    if not authorization:
        return None
    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != 'bearer':
        logger.debug('Authorization header is not a bearer token')
        return None
    return parts[1]


def fingerprint(key: str) -> str:
    """A short, non-reversible label for an operation key."""
    return hashlib.sha256(key.encode('utf-8')).hexdigest()[:12]


class AuthGate(object):
    """Authenticates requests by identity assertion or operation key."""

    def __init__(self, verifier: Verifier,
                 operation_keys: Iterable[str] = ()) -> None:
        self.verifier = verifier
        self.operation_keys = tuple(key for key in operation_keys if key)

    def authenticate(self, authorization: Optional[str] = None,
                     id_token: Optional[str] = None,
                     operation_key: Optional[str] = None) -> Identity:
        """
        Establish the identity behind a request.

        Parameters
        ----------
        authorization : str
            Value of the ``Authorization`` header, if any.
        id_token : str
            An ID token passed in the request body, if any. Used only when
            there is no bearer token in the header.
        operation_key : str
            A pre-shared key, if any. Checked only when no identity assertion
            was presented.

        Returns
        -------
        :class:`.Identity`

        Raises
        ------
        :class:`.Unauthorized`
        """
        assertion = bearer_token(authorization) or id_token
        if assertion:
            try:
                return self.verifier.verify(assertion)
            except InvalidCredential as e:
                logger.info('Authentication error: %s', e)
                raise Unauthorized(BAD_TOKEN) from e
        if operation_key:
            return self._check_operation_key(operation_key)
        raise Unauthorized(NO_TOKEN)

    def _check_operation_key(self, operation_key: str) -> Identity:
        # Every candidate is compared; no short-circuit.
        matched = False
        for candidate in self.operation_keys:
            if hmac.compare_digest(candidate.encode('utf-8'),
                                   operation_key.encode('utf-8')):
                matched = True
        if not matched:
            logger.info('Rejected unknown operation key')
            raise Unauthorized(BAD_TOKEN)
        return Identity(subject_id=f'service:{fingerprint(operation_key)}',
                        provider='operation_key')
