"""Tests for :mod:`devicelink.auth`."""

from unittest import TestCase, mock

from ..auth import BAD_TOKEN, NO_TOKEN, AuthGate, bearer_token, fingerprint
from ..domain import Identity
from ..exceptions import InvalidCredential, Unauthorized

ALICE = Identity('alice', email='alice@example.com', provider='google.com')


class TestAuthGate(TestCase):
    """Establish the identity behind a request."""

    def setUp(self):
        self.verifier = mock.MagicMock()
        self.verifier.verify.return_value = ALICE
        self.gate = AuthGate(self.verifier, ['op-key-1', 'op-key-2'])

    def test_bearer_token(self):
        """A bearer token in the header is verified."""
        self.assertEqual(self.gate.authenticate('Bearer abc.def.ghi'), ALICE)
        self.verifier.verify.assert_called_once_with('abc.def.ghi')

    def test_body_token(self):
        """An ID token from the request body may be used instead."""
        self.assertEqual(self.gate.authenticate(None, 'abc.def.ghi'), ALICE)
        self.verifier.verify.assert_called_once_with('abc.def.ghi')

    def test_header_wins(self):
        self.gate.authenticate('Bearer from-header', 'from-body')
        self.verifier.verify.assert_called_once_with('from-header')

    def test_invalid_token(self):
        """A token that fails verification is refused."""
        self.verifier.verify.side_effect = InvalidCredential('expired')
        with self.assertRaises(Unauthorized) as ctx:
            self.gate.authenticate('Bearer abc.def.ghi')
        self.assertEqual(str(ctx.exception), BAD_TOKEN)

    def test_no_credentials(self):
        """A request with nothing to go on is refused."""
        with self.assertRaises(Unauthorized) as ctx:
            self.gate.authenticate()
        self.assertEqual(str(ctx.exception), NO_TOKEN)

    def test_not_bearer(self):
        """Other authorization schemes are not accepted."""
        with self.assertRaises(Unauthorized):
            self.gate.authenticate('Basic Zm9vOmJhcg==')
        self.verifier.verify.assert_not_called()

    def test_operation_key(self):
        """A known operation key authenticates as a service."""
        identity = self.gate.authenticate(operation_key='op-key-2')
        self.assertEqual(identity.subject_id,
                         f'service:{fingerprint("op-key-2")}')
        self.assertEqual(identity.provider, 'operation_key')
        self.verifier.verify.assert_not_called()

    def test_unknown_operation_key(self):
        with self.assertRaises(Unauthorized) as ctx:
            self.gate.authenticate(operation_key='op-key-3')
        self.assertEqual(str(ctx.exception), BAD_TOKEN)

    def test_no_operation_keys_configured(self):
        gate = AuthGate(self.verifier, ['', None])
        with self.assertRaises(Unauthorized):
            gate.authenticate(operation_key='')
        with self.assertRaises(Unauthorized):
            gate.authenticate(operation_key='anything')

    def test_assertion_takes_precedence(self):
        """An invalid token is not rescued by a valid operation key."""
        self.verifier.verify.side_effect = InvalidCredential('expired')
        with self.assertRaises(Unauthorized):
            self.gate.authenticate('Bearer abc.def.ghi',
                                   operation_key='op-key-1')


class TestHelpers(TestCase):
    def test_bearer_token(self):
        self.assertEqual(bearer_token('Bearer foo'), 'foo')
        self.assertEqual(bearer_token('bearer foo'), 'foo')
        self.assertIsNone(bearer_token('Bearer'))
        self.assertIsNone(bearer_token('Token foo'))
        self.assertIsNone(bearer_token(None))

    def test_fingerprint(self):
        """Fingerprints are stable and do not reveal the key."""
        self.assertEqual(fingerprint('op-key-1'), fingerprint('op-key-1'))
        self.assertNotEqual(fingerprint('op-key-1'), fingerprint('op-key-2'))
        self.assertNotIn('op-key', fingerprint('op-key-1'))
        self.assertEqual(len(fingerprint('op-key-1')), 12)
