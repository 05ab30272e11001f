"""
Issues signed developer tokens for the downstream music API.

A token is an ES256-signed JWT whose header carries the signing key id
(``kid``) and whose claims are limited to ``iss``, ``iat``, ``exp`` and
``aud``. Tokens are valid for six months from the moment they are issued,
independently of the lifetime of the handshake session that carries them.
"""

from typing import Any, Callable, Optional
from threading import Lock
import logging
import os
import time

import jwt
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec

from ..exceptions import ConfigurationError, KeyUnavailable, SigningError

logger = logging.getLogger(__name__)

ALGORITHM = 'ES256'
AUDIENCE = 'appstoreconnect-v1'
TOKEN_LIFETIME = 6 * 30 * 24 * 60 * 60
"""Six months, in seconds."""

PEM_MARKER = '-----BEGIN'


def load_private_key(reference: str) -> ec.EllipticCurvePrivateKey:
    """
    Resolve and parse an EC private key.

    Parameters
    ----------
    reference : str
        Either the path to a PEM file, or the PEM content itself. Content
        passed through environment variables often has its newlines escaped;
        these are restored.

    Returns
    -------
    :class:`ec.EllipticCurvePrivateKey`

    Raises
    ------
    :class:`.KeyUnavailable`
        Raised if the file cannot be read, or if the content is not an EC
        private key.
    """
    if os.path.exists(reference):
        try:
            with open(reference, 'rb') as f:
                content = f.read()
        except OSError as e:
            raise KeyUnavailable('Could not read private key file') from e
        logger.debug('Loaded private key from file')
    elif PEM_MARKER in reference:
        content = reference.replace('\\n', '\n').encode('utf-8')
    else:
        raise KeyUnavailable('Private key file does not exist')

    try:
        key = serialization.load_pem_private_key(content, password=None)
    except (ValueError, TypeError, UnsupportedAlgorithm) as e:
        raise KeyUnavailable('Private key could not be parsed') from e
    if not isinstance(key, ec.EllipticCurvePrivateKey):
        raise KeyUnavailable('Private key is not an elliptic-curve key')
    return key


class CredentialIssuer(object):
    """
    Signs developer tokens with a single, configured key.

    The key is resolved the first time a token is issued and reused for the
    life of the process. Claims are computed afresh for every token.
    """

    def __init__(self, key_id: str, team_id: str, issuer_id: str,
                 private_key: str,
                 clock: Optional[Callable[[], float]] = None) -> None:
        """
        Validate issuer configuration.

        Raises
        ------
        :class:`.ConfigurationError`
            Raised if any of the four parameters is missing, naming all of
            the missing parameters.
        """
        missing = [name for name, value in [('keyId', key_id),
                                            ('teamId', team_id),
                                            ('issuerId', issuer_id),
                                            ('privateKey', private_key)]
                   if not value]
        if missing:
            raise ConfigurationError(missing)
        self.key_id = key_id
        self.team_id = team_id
        self.issuer_id = issuer_id
        self._key_reference = private_key
        self._key: Optional[ec.EllipticCurvePrivateKey] = None
        self._key_lock = Lock()
        self._clock = clock or time.time

    @classmethod
    def from_settings(cls, settings: Any,
                      clock: Optional[Callable[[], float]] = None) \
            -> 'CredentialIssuer':
        """Create an issuer from a :class:`devicelink.settings.Settings`."""
        return cls(settings.key_id, settings.team_id, settings.issuer_id,
                   settings.private_key, clock=clock)

    @property
    def private_key(self) -> ec.EllipticCurvePrivateKey:
        """The signing key, resolved on first access."""
        if self._key is None:
            with self._key_lock:
                if self._key is None:
                    self._key = load_private_key(self._key_reference)
        return self._key

    def claims(self) -> dict:
        """Generate a fresh claim set."""
        now = int(self._clock())
        return {
            'iss': self.issuer_id,
            'iat': now,
            'exp': now + TOKEN_LIFETIME,
            'aud': AUDIENCE
        }

    def issue(self) -> str:
        """
        Issue a new developer token.

        Raises
        ------
        :class:`.KeyUnavailable`
        :class:`.SigningError`
        """
        key = self.private_key
        try:
            token: str = jwt.encode(self.claims(), key, algorithm=ALGORITHM,
                                    headers={'kid': self.key_id})
        except (jwt.exceptions.PyJWTError, ValueError, TypeError) as e:
            raise SigningError('Failed to sign developer token') from e
        logger.debug('Issued developer token with key %s', self.key_id)
        return token
