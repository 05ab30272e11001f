"""Distribution of API keys to authenticated app installations."""

from typing import Optional
from datetime import timedelta
from http import HTTPStatus
import logging

from ..context import Components
from ..exceptions import DeviceLinkError, Forbidden, Unavailable, \
    ValidationError
from ..services.audit import API_KEY_ASSIGNMENTS, redact
from .util import ResponseData, enforce_limit, failure

logger = logging.getLogger(__name__)

KEY_LIFETIME = timedelta(hours=24)
REQUIRED_FIELDS = ('userId', 'deviceId', 'appVersion')


def get_api_key(components: Components, payload: Optional[dict],
                authorization: Optional[str] = None,
                ip_address: Optional[str] = None) -> ResponseData:
    """
    Hand out an API key to the authenticated user's device.

    Parameters
    ----------
    components : :class:`.Components`
    payload : dict
        Must include ``userId`` (matching the authenticated user),
        ``deviceId`` and ``appVersion``.
    authorization : str
        Value of the ``Authorization`` header.
    ip_address : str
        Address of the client, for the audit trail.

    Returns
    -------
    dict
        Response data.
    int
        An HTTP status code.
    dict
        Headers to add to the response.
    """
    payload = payload or {}
    try:
        identity = components.gate.authenticate(authorization)
        enforce_limit(components, 'api_key', identity.subject_id,
                      components.settings.api_key_limit)

        if not all(payload.get(field) for field in REQUIRED_FIELDS):
            raise ValidationError('Missing required fields: '
                                  + ', '.join(REQUIRED_FIELDS))
        if payload['userId'] != identity.subject_id:
            raise Forbidden('User ID mismatch')

        logger.info('API key request from user: %s, device: %s, app: %s',
                    identity.subject_id, payload['deviceId'],
                    payload['appVersion'])
        keys = components.settings.distributable_api_keys
        if not keys:
            raise Unavailable('No API keys available')
    except DeviceLinkError as e:
        return failure(e)

    api_key = keys[0]
    now = components.orchestrator.now()
    expires_at = (now + KEY_LIFETIME).isoformat()
    components.audit.record_quietly(API_KEY_ASSIGNMENTS, {
        'userId': identity.subject_id,
        'deviceId': payload['deviceId'],
        'appVersion': payload['appVersion'],
        'apiKey': redact(api_key),
        'assignedAt': now.isoformat(),
        'expiresAt': expires_at,
        'ipAddress': ip_address
    })
    return {
        'success': True,
        'apiKey': api_key,
        'expiresAt': expires_at
    }, HTTPStatus.OK, {}
