"""
Controllers for the cross-device handshake.

The displaying device initializes a session under an id of its choosing and
then polls :func:`get_status`. The authenticating device calls
:func:`complete_authentication` with the same session id, as the same user.
"""

from typing import Optional
from http import HTTPStatus
import logging

from .. import domain
from ..context import Components
from ..exceptions import DeviceLinkError
from .util import ResponseData, enforce_limit, failure

logger = logging.getLogger(__name__)

INITIALIZED = 'Session initialized successfully'
COMPLETED = 'Authentication completed successfully'


def initialize_session(components: Components, payload: Optional[dict],
                       authorization: Optional[str] = None,
                       operation_key: Optional[str] = None) -> ResponseData:
    """
    Start a pending session for the authenticated user.

    Parameters
    ----------
    components : :class:`.Components`
    payload : dict
        Request body. Must include ``sessionId``; may include
        ``firebaseIdToken`` in lieu of an ``Authorization`` header.
    authorization : str
        Value of the ``Authorization`` header, if any.
    operation_key : str
        Pre-shared operation key, if any.

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
        session_id = domain.validate_session_id(payload.get('sessionId'))
        enforce_limit(components, 'init_session', session_id,
                      components.settings.init_limit)
        identity = components.gate.authenticate(
            authorization, payload.get('firebaseIdToken'), operation_key
        )
        components.orchestrator.initialize(session_id, identity)
    except DeviceLinkError as e:
        logger.debug('Initialization refused: %s', e.kind)
        return failure(e)
    return {
        'success': True,
        'sessionId': session_id,
        'message': INITIALIZED
    }, HTTPStatus.OK, {}


def complete_authentication(components: Components, payload: Optional[dict],
                            authorization: Optional[str] = None,
                            operation_key: Optional[str] = None) \
        -> ResponseData:
    """
    Resolve a pending session, issuing a credential for the polling device.

    Parameters are as for :func:`initialize_session`. The credential is
    also returned to the caller.
    """
    payload = payload or {}
    try:
        session_id = domain.validate_session_id(payload.get('sessionId'))
        enforce_limit(components, 'complete_auth', session_id,
                      components.settings.complete_limit)
        identity = components.gate.authenticate(
            authorization, payload.get('firebaseIdToken'), operation_key
        )
        session = components.orchestrator.complete(session_id, identity)
    except DeviceLinkError as e:
        logger.debug('Completion refused: %s', e.kind)
        return failure(e)
    return {
        'success': True,
        'sessionId': session_id,
        'message': COMPLETED,
        'credential': session.credential
    }, HTTPStatus.OK, {}


def get_status(components: Components,
               session_id: Optional[str]) -> ResponseData:
    """Report the status of a session. No authentication is required."""
    try:
        session_id = domain.validate_session_id(session_id)
        enforce_limit(components, 'get_status', session_id,
                      components.settings.status_limit)
        view = components.orchestrator.status(session_id)
    except DeviceLinkError as e:
        return failure(e)
    view['success'] = True
    return view, HTTPStatus.OK, {}
