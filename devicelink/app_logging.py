"""JSON logging for the service and its worker."""

import logging

from pythonjsonlogger import jsonlogger


def setup_logger(level: str = 'INFO') -> None:
    """Send records from all loggers to stderr, formatted as JSON."""
    logger = logging.getLogger()
    if any(getattr(handler, '_devicelink', False)
           for handler in logger.handlers):
        logger.setLevel(level)
        return
    logHandler = logging.StreamHandler()
    formatter = jsonlogger.JsonFormatter(
        '%(asctime)s %(levelname)s %(name)s %(message)s',
        rename_fields={'levelname': 'level', 'asctime': 'timestamp'}
    )
    logHandler.setFormatter(formatter)
    logHandler._devicelink = True    # type: ignore
    logger.addHandler(logHandler)
    logger.setLevel(level)
