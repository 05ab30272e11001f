"""Provides routes for the handshake API."""

from datetime import datetime

from flask import Blueprint, Response, current_app, jsonify, request
from pytz import UTC

from .context import get_components
from .controllers import api_keys, sessions

blueprint = Blueprint('devicelink', __name__, url_prefix='')

OPERATION_KEY_HEADER = 'X-Operation-Key'


def _respond(data: dict, status_code: int, headers: dict) -> Response:
    response: Response = jsonify(data)
    response.status_code = status_code
    response.headers.extend(headers)
    return response


@blueprint.route('/session/initialize', methods=['POST'])
def initialize_session() -> Response:
    """Start a pending session."""
    payload = request.get_json(force=True, silent=True)
    data, status_code, headers = sessions.initialize_session(
        get_components(), payload,
        authorization=request.headers.get('Authorization'),
        operation_key=request.headers.get(OPERATION_KEY_HEADER)
    )
    return _respond(data, status_code, headers)


@blueprint.route('/session/complete', methods=['POST'])
def complete_authentication() -> Response:
    """Complete a pending session and issue a credential."""
    payload = request.get_json(force=True, silent=True)
    data, status_code, headers = sessions.complete_authentication(
        get_components(), payload,
        authorization=request.headers.get('Authorization'),
        operation_key=request.headers.get(OPERATION_KEY_HEADER)
    )
    return _respond(data, status_code, headers)


@blueprint.route('/session/status', methods=['GET'])
def session_status() -> Response:
    """Get the status of a session, for the polling device."""
    data, status_code, headers = sessions.get_status(
        get_components(), request.args.get('sessionId')
    )
    return _respond(data, status_code, headers)


@blueprint.route('/api-key', methods=['POST'])
def get_api_key() -> Response:
    """Hand out an API key to an authenticated app installation."""
    payload = request.get_json(force=True, silent=True)
    data, status_code, headers = api_keys.get_api_key(
        get_components(), payload,
        authorization=request.headers.get('Authorization'),
        ip_address=request.remote_addr
    )
    return _respond(data, status_code, headers)


@blueprint.route('/health', methods=['GET'])
def health() -> Response:
    """Health check endpoint."""
    return jsonify({
        'status': 'healthy',
        'service': 'devicelink',
        'timestamp': datetime.now(tz=UTC).isoformat(),
        'version': current_app.config['VERSION'],
        'description': 'Cross-device sign-in and developer token provider'
    })
