"""Log setup for the web application."""

import logging

from pythonjsonlogger.json import JsonFormatter

FORMAT = '%(asctime)s %(levelname)s %(name)s %(message)s'


def setup_logger(level: str = 'INFO', json: bool = False) -> None:
    """Attach a stream handler to the root logger."""
    log_handler = logging.StreamHandler()
    if json:
        formatter: logging.Formatter = JsonFormatter(
            FORMAT,
            rename_fields={'levelname': 'level', 'asctime': 'timestamp'}
        )
    else:
        formatter = logging.Formatter(FORMAT)
    log_handler.setFormatter(formatter)
    logger = logging.getLogger()
    for handler in list(logger.handlers):
        if getattr(handler, '_noteboard', False):
            logger.removeHandler(handler)
    log_handler._noteboard = True  # type: ignore
    logger.addHandler(log_handler)
    logger.setLevel(level)
