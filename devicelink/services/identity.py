"""
Verification of Firebase ID tokens.

The phone or browser that completes a handshake signs the user in with
Firebase and passes the resulting ID token. Tokens are verified against
Google's published signing certificates; the certificates are cached
according to their HTTP cache headers.
"""

from contextlib import contextmanager
from threading import RLock
from typing import Iterator, Optional, Union
import logging

import google.auth.exceptions
import google.auth.transport.requests
import google.oauth2.id_token
import requests
import cachecontrol

from ..domain import Identity
from ..exceptions import InvalidCredential

logger = logging.getLogger(__name__)

_sess: Optional[requests.Session] = None
"""HTTP session with caching of Google's certificates."""

_lock = RLock()
"""Lock for using the session; it is not known to be thread safe."""


@contextmanager
def locked_session() -> Iterator[requests.Session]:
    """Get a session with caching of certs from Google."""
    global _sess
    with _lock:
        if not _sess:
            _sess = cachecontrol.CacheControl(requests.session())
        yield _sess


class FirebaseVerifier(object):
    """Verifies Firebase ID tokens issued for a single project."""

    def __init__(self, project_id: str) -> None:
        self.project_id = project_id

    def verify(self, assertion: Union[str, bytes]) -> Identity:
        """
        Verify an ID token and get the identity it asserts.

        Raises
        ------
        :class:`.InvalidCredential`
            Raised if the token is malformed, expired, issued for another
            project, or does not name a subject.
        """
        if not self.project_id:
            raise InvalidCredential('Identity verification is not configured')
        with locked_session() as session:
            request = google.auth.transport.requests.Request(session=session)
            try:
                claims = google.oauth2.id_token.verify_firebase_token(
                    assertion, request, audience=self.project_id
                )
            except (ValueError, google.auth.exceptions.GoogleAuthError) as e:
                logger.debug('ID token failed verification: %s', e)
                raise InvalidCredential('Invalid authentication token') from e
        return identity_from_claims(claims)


def identity_from_claims(claims: Optional[dict]) -> Identity:
    """Build an :class:`.Identity` from verified ID token claims."""
    if not claims:
        raise InvalidCredential('No claims in authentication token')
    subject_id = claims.get('sub') or claims.get('user_id')
    if not subject_id:
        raise InvalidCredential('Authentication token has no subject')
    provider = (claims.get('firebase') or {}).get('sign_in_provider')
    return Identity(subject_id=subject_id, email=claims.get('email'),
                    provider=provider or 'unknown')
