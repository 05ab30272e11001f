"""Tests for :mod:`devicelink.services.identity`."""

from unittest import TestCase, mock

import google.auth.exceptions

from ...exceptions import InvalidCredential
from .. import identity
from ..identity import FirebaseVerifier, identity_from_claims

CLAIMS = {
    'iss': 'https://securetoken.google.com/my-project',
    'aud': 'my-project',
    'sub': 'firebase-uid-1',
    'user_id': 'firebase-uid-1',
    'email': 'foo@bar.com',
    'firebase': {'sign_in_provider': 'google.com'}
}


class TestFirebaseVerifier(TestCase):
    """Verify Firebase ID tokens."""

    @mock.patch(f'{identity.__name__}.google.oauth2.id_token')
    def test_valid_token(self, mock_id_token):
        """A valid token yields the identity it asserts."""
        mock_id_token.verify_firebase_token.return_value = CLAIMS
        result = FirebaseVerifier('my-project').verify('token')
        self.assertEqual(result.subject_id, 'firebase-uid-1')
        self.assertEqual(result.email, 'foo@bar.com')
        self.assertEqual(result.provider, 'google.com')
        args, kwargs = mock_id_token.verify_firebase_token.call_args
        self.assertEqual(args[0], 'token')
        self.assertEqual(kwargs['audience'], 'my-project')

    @mock.patch(f'{identity.__name__}.google.oauth2.id_token')
    def test_invalid_token(self, mock_id_token):
        """A token that fails verification is an invalid credential."""
        mock_id_token.verify_firebase_token.side_effect = \
            ValueError('Token expired')
        with self.assertRaises(InvalidCredential):
            FirebaseVerifier('my-project').verify('token')

    @mock.patch(f'{identity.__name__}.google.oauth2.id_token')
    def test_cannot_fetch_certs(self, mock_id_token):
        """A failure to fetch certificates is an invalid credential."""
        mock_id_token.verify_firebase_token.side_effect = \
            google.auth.exceptions.TransportError('offline')
        with self.assertRaises(InvalidCredential):
            FirebaseVerifier('my-project').verify('token')

    def test_not_configured(self):
        """Without a project, nothing can be verified."""
        with self.assertRaises(InvalidCredential):
            FirebaseVerifier(None).verify('token')


class TestIdentityFromClaims(TestCase):
    def test_user_id_fallback(self):
        """The ``user_id`` claim is used when ``sub`` is absent."""
        claims = {'user_id': 'uid-2'}
        result = identity_from_claims(claims)
        self.assertEqual(result.subject_id, 'uid-2')
        self.assertEqual(result.provider, 'unknown')
        self.assertIsNone(result.email)

    def test_no_subject(self):
        with self.assertRaises(InvalidCredential):
            identity_from_claims({'email': 'foo@bar.com'})

    def test_no_claims(self):
        with self.assertRaises(InvalidCredential):
            identity_from_claims(None)
