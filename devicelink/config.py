"""Flask configuration."""

import os

VERSION = '1.0.0'

LOGLEVEL = os.environ.get('LOGLEVEL', 'INFO')

REDIS_HOST = os.environ.get('REDIS_HOST', 'localhost')
REDIS_PORT = os.environ.get('REDIS_PORT', '6379')
REDIS_DATABASE = os.environ.get('REDIS_DATABASE', '0')
REDIS_TOKEN = os.environ.get('REDIS_TOKEN', None)
"""This is the token used in the AUTH procedure."""

REDIS_FAKE = bool(int(os.environ.get('REDIS_FAKE', '0')))
"""Use the fakeredis library instead of a redis service.

Useful for testing and local development."""

SWEEP_INTERVAL = int(os.environ.get('SWEEP_INTERVAL', '300'))
"""Seconds between runs of the expired session sweeper."""

SWEEP_GRACE = int(os.environ.get('SWEEP_GRACE', '0'))
"""Seconds past expiry before a session is eligible for removal."""

CELERY_BROKER_URL = os.environ.get('CELERY_BROKER_URL',
                                   f'redis://{REDIS_HOST}:{REDIS_PORT}/1')

# Credential issuer, identity verification, operation keys, rate limits and
# the session re-initialization policy are resolved by
# :func:`devicelink.settings.load_settings`, which falls back to the
# environment for anything not set here.
