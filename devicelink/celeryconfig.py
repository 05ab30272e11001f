"""
Celery configuration module.

See `the celery docs
<http://docs.celeryproject.org/en/latest/userguide/configuration.html>`_.
"""

from .config import SWEEP_INTERVAL

worker_prefetch_multiplier = 1
task_acks_late = True
task_ignore_result = True

beat_schedule = {
    'cleanup-expired-sessions': {
        'task': 'devicelink.tasks.cleanup_expired_sessions',
        'schedule': float(SWEEP_INTERVAL),
    },
}
