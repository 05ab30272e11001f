"""
Resolution of service settings.

Settings are resolved once, when the application is created, and passed to
the components that need them. Each setting is looked up in order of
precedence:

1. The application config (e.g. values set by the deployment platform, or
   by tests, on the Flask app).
2. The process environment.
3. The default given here, if any.

Empty values are treated as missing at every level.
"""

from typing import Any, Mapping, NamedTuple, Optional, Tuple
import os

from .process.handshake import OVERWRITE, REINITIALIZE_POLICIES


class Settings(NamedTuple):
    """Configuration consumed by the handshake components."""

    key_id: Optional[str]
    """Identifier of the developer token signing key (``kid``)."""

    team_id: Optional[str]
    """Developer team (organization) that owns the signing key."""

    issuer_id: Optional[str]
    """Value of the ``iss`` claim."""

    private_key: Optional[str]
    """PEM content of the signing key, or a path to it."""

    firebase_project_id: Optional[str] = None
    """Audience for ID token verification."""

    operation_keys: Tuple[str, ...] = ()
    """Pre-shared keys accepted for service-to-service calls."""

    distributable_api_keys: Tuple[str, ...] = ()
    """Keys handed out to authenticated app installations."""

    reinitialize: str = OVERWRITE
    """What to do when a pending session id is initialized again."""

    init_limit: Tuple[int, int] = (5, 300)
    complete_limit: Tuple[int, int] = (3, 300)
    status_limit: Tuple[int, int] = (10, 60)
    api_key_limit: Tuple[int, int] = (5, 300)
    """Rate limits as (requests, window in seconds)."""


def _lookup(name: str, config: Mapping, environ: Mapping,
            default: Any = None) -> Any:
    for source in (config, environ):
        value = source.get(name)
        if value is not None and value != '':
            return value
    return default


def _split(value: Any) -> Tuple[str, ...]:
    if not value:
        return ()
    if isinstance(value, str):
        value = value.split(',')
    return tuple(item.strip() for item in value if item and item.strip())


def _limit(name: str, config: Mapping, environ: Mapping,
           default: Tuple[int, int]) -> Tuple[int, int]:
    limit = int(_lookup(f'{name}_LIMIT', config, environ, default[0]))
    window = int(_lookup(f'{name}_WINDOW', config, environ, default[1]))
    if limit < 0 or window <= 0:
        raise ValueError(f'Invalid rate limit for {name}')
    return limit, window


def load_settings(config: Mapping,
                  environ: Optional[Mapping] = None) -> Settings:
    """
    Resolve settings from the application config and the environment.

    The signing key may be given as content (``APPLE_MUSIC_PRIVATE_KEY``) or
    as a path (``APPLE_MUSIC_PRIVATE_KEY_PATH``); content wins if both are
    set. Whether the key exists or parses is not checked here: that happens
    the first time a credential is issued.

    Raises
    ------
    ValueError
        Raised if the re-initialization policy or a rate limit is invalid.
    """
    if environ is None:
        environ = os.environ
    private_key = _lookup('APPLE_MUSIC_PRIVATE_KEY', config, environ) \
        or _lookup('APPLE_MUSIC_PRIVATE_KEY_PATH', config, environ)
    reinitialize = _lookup('SESSION_REINITIALIZE', config, environ, OVERWRITE)
    if reinitialize not in REINITIALIZE_POLICIES:
        raise ValueError(f'SESSION_REINITIALIZE must be one of '
                         f'{", ".join(REINITIALIZE_POLICIES)}')
    return Settings(
        key_id=_lookup('APPLE_MUSIC_KEY_ID', config, environ),
        team_id=_lookup('APPLE_MUSIC_TEAM_ID', config, environ),
        issuer_id=_lookup('APPLE_MUSIC_ISSUER', config, environ),
        private_key=private_key,
        firebase_project_id=_lookup('FIREBASE_PROJECT_ID', config, environ),
        operation_keys=_split(_lookup('OPERATION_KEYS', config, environ)),
        distributable_api_keys=_split(
            _lookup('DISTRIBUTABLE_API_KEYS', config, environ)
        ),
        reinitialize=reinitialize,
        init_limit=_limit('INIT_SESSION', config, environ, (5, 300)),
        complete_limit=_limit('COMPLETE_AUTH', config, environ, (3, 300)),
        status_limit=_limit('GET_STATUS', config, environ, (10, 60)),
        api_key_limit=_limit('API_KEY', config, environ, (5, 300)),
    )

