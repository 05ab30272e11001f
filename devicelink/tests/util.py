"""Helpers for tests."""

from datetime import datetime, timedelta

import fakeredis
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec
from pytz import UTC


def generate_pem() -> str:
    """Generate a P-256 private key, PEM-encoded."""
    key = ec.generate_private_key(ec.SECP256R1())
    return key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption()
    ).decode('ascii')


def public_key(pem: str) -> ec.EllipticCurvePublicKey:
    """Get the public half of a PEM-encoded private key."""
    key = serialization.load_pem_private_key(pem.encode('ascii'),
                                             password=None)
    return key.public_key()


class Clock(object):
    """A clock that only moves when told to."""

    def __init__(self, start: datetime = None) -> None:
        self.current = start or datetime(2024, 3, 1, 12, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs: float) -> datetime:
        self.current += timedelta(**kwargs)
        return self.current


def fake_redis() -> fakeredis.FakeStrictRedis:
    """A fake Redis client with its own, empty, server."""
    return fakeredis.FakeStrictRedis(server=fakeredis.FakeServer())
