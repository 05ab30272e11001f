"""Components shared by request handlers and tasks in an application."""

from typing import Any, NamedTuple, Optional

from flask import Flask, current_app

from .auth import AuthGate
from .process.cleanup import CleanupSweeper
from .process.handshake import SessionOrchestrator
from .services.audit import AuditLog
from .services.ratelimit import RateLimiter
from .settings import Settings

EXTENSION = 'devicelink'


class Components(NamedTuple):
    """Everything that handlers need, built once by the app factory."""

    settings: Settings
    limiter: RateLimiter
    gate: AuthGate
    orchestrator: SessionOrchestrator
    sweeper: CleanupSweeper
    audit: AuditLog


def get_components(app: Optional[Flask] = None) -> Components:
    """Get the components attached to ``app`` (or the current app)."""
    app = app or current_app
    components: Any = app.extensions[EXTENSION]
    return components
