"""Application factory for the handshake service."""

from typing import Mapping, Optional
from datetime import timedelta

from celery import Celery
from flask import Flask, Response, jsonify
from werkzeug.exceptions import HTTPException, BadRequest, \
    InternalServerError, MethodNotAllowed, NotFound

from . import routes
from .app_logging import setup_logger
from .auth import AuthGate
from .context import EXTENSION, Components
from .process.cleanup import CleanupSweeper
from .process.handshake import SessionOrchestrator
from .services import session_store
from .services.audit import AuditLog
from .services.credentials import CredentialIssuer
from .services.identity import FirebaseVerifier
from .services.ratelimit import RateLimiter
from .settings import load_settings

celery_app = Celery('devicelink', include=['devicelink.tasks'])


def create_web_app(config: Optional[Mapping] = None) -> Flask:
    """
    Initialize and configure the handshake application.

    Parameters
    ----------
    config : dict
        Overrides for the values in :mod:`devicelink.config`. These take
        precedence over the environment when settings are resolved.

    Raises
    ------
    :class:`.ConfigurationError`
        Raised if the credential issuer is not fully configured.
    """
    app = Flask('devicelink')
    app.config.from_pyfile('config.py')
    if config:
        app.config.update(config)
    setup_logger(app.config['LOGLEVEL'])
    session_store.init_app(app)

    settings = load_settings(app.config)
    r = session_store.get_redis(app.config)
    store = session_store.SessionStore(r)
    audit = AuditLog(r)
    orchestrator = SessionOrchestrator(
        store,
        CredentialIssuer.from_settings(settings),
        audit=audit,
        reinitialize=settings.reinitialize
    )
    app.extensions[EXTENSION] = Components(
        settings=settings,
        limiter=RateLimiter(),
        gate=AuthGate(FirebaseVerifier(settings.firebase_project_id),
                      settings.operation_keys),
        orchestrator=orchestrator,
        sweeper=CleanupSweeper(
            store, grace=timedelta(seconds=int(app.config['SWEEP_GRACE']))
        ),
        audit=audit
    )

    app.register_blueprint(routes.blueprint)
    register_error_handlers(app)
    return app


def create_worker_app() -> Flask:
    """Initialize the application for use in the Celery worker and beat."""
    app = create_web_app()
    celery_app.config_from_object('devicelink.celeryconfig')
    celery_app.conf.broker_url = app.config['CELERY_BROKER_URL']
    return app


def register_error_handlers(app: Flask) -> None:
    """Register error handlers for the Flask app."""
    app.errorhandler(BadRequest)(jsonify_exception)
    app.errorhandler(NotFound)(jsonify_exception)
    app.errorhandler(MethodNotAllowed)(jsonify_exception)
    app.errorhandler(InternalServerError)(jsonify_exception)


def jsonify_exception(error: HTTPException) -> Response:
    """Render exceptions as JSON."""
    exc_resp = error.get_response()
    if isinstance(error, InternalServerError):
        reason = 'Internal server error'
    else:
        reason = error.description
    response: Response = jsonify(success=False, error=error.name,
                                 reason=reason)
    response.status_code = exc_resp.status_code
    return response
