"""Asynchronous and scheduled tasks."""

from typing import Any, Dict
import logging

from celery import shared_task

from .context import get_components

logger = logging.getLogger(__name__)


@shared_task(name='devicelink.tasks.cleanup_expired_sessions')
def cleanup_expired_sessions() -> Dict[str, Any]:
    """
    Remove expired sessions; scheduled by Celery beat.

    A failed sweep is logged and left for the next scheduled run. It is not
    retried, and nothing is raised to the worker.
    """
    try:
        removed = get_components().sweeper.sweep()
    except Exception:
        logger.exception('Error cleaning up expired sessions')
        return {'success': False, 'cleanedSessions': 0}
    return {'success': True, 'cleanedSessions': removed}
