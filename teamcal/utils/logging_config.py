"""Logging configuration for the application."""

import logging
import sys

def setup_logging():
    """Configure logging for the application."""
    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.INFO)
    # Avoid stacking handlers when both the app and a script call this
    if not any(getattr(h, '_teamcal_handler', False) for h in root_logger.handlers):
        console_handler._teamcal_handler = True
        root_logger.addHandler(console_handler)

    # Set higher log levels for noisy components
    logging.getLogger('httpcore').setLevel(logging.WARNING)
    logging.getLogger('httpx').setLevel(logging.WARNING)
    logging.getLogger('sqlalchemy.engine').setLevel(logging.WARNING)

    loggers = [
        'teamcal.services.reminders',
        'teamcal.services.invitations',
        'teamcal.services.notifier',
        'teamcal.visibility.evaluator',
    ]

    for logger_name in loggers:
        logger = logging.getLogger(logger_name)
        logger.setLevel(logging.INFO)
