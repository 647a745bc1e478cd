"""Logging utilities for mail-composer.

This module provides a centralized logging helper. The actual logging setup
(level, handlers, format) is configured via ``logging.basicConfig()`` in the
command line entry point to avoid duplicate handlers.

Example:
    Typical usage in a module::

        from mail_composer.logger import get_logger

        logger = get_logger("Sendmail")
        logger.info("Message handed to local MTA")
"""

import logging


def get_logger(name: str = "MailComposer") -> logging.Logger:
    """Retrieve a logger instance.

    Handlers and formatters are left to the application entry point.

    Args:
        name: The logger name. Defaults to "MailComposer".

    Returns:
        A ``logging.Logger`` instance bound to the given name.
    """
    return logging.getLogger(name)
