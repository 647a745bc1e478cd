# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Exceptions raised by mail-composer.

Serialization never fails; errors only come from reading attachment files,
from configuration files and from the delivery channels.
"""

from __future__ import annotations

import asyncio

import aiosmtplib


class MailComposerError(Exception):
    """Base class for all mail-composer errors."""

    code = "mail_composer_error"


class FileReadError(MailComposerError):
    """Raised when an attachment source file cannot be read."""

    code = "file_read_error"

    def __init__(self, path: str, reason: str | None = None):
        message = f"Cannot read attachment file: {path}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)
        self.path = path


class ConfigError(MailComposerError):
    """Raised when a configuration file holds an unusable value."""

    code = "config_error"


class DeliveryError(MailComposerError):
    """Raised when a delivery channel fails to accept a message.

    Attributes:
        smtp_code: SMTP reply code when the failure came from the relay.
        temporary: True if retrying later may succeed.
        returncode: Exit status of the local submission program, if any.
        stderr: Captured standard error of the local submission program.
    """

    code = "delivery_error"

    def __init__(
        self,
        message: str,
        *,
        smtp_code: int | None = None,
        temporary: bool = False,
        returncode: int | None = None,
        stderr: str | None = None,
    ):
        super().__init__(message)
        self.smtp_code = smtp_code
        self.temporary = temporary
        self.returncode = returncode
        self.stderr = stderr


def classify_smtp_error(exc: Exception) -> tuple[bool, int | None]:
    """
    Classify an SMTP error as temporary or permanent.

    Returns:
        tuple: (is_temporary, smtp_code)
            - is_temporary: True if the error may go away on retry
            - smtp_code: The SMTP error code if available, None otherwise
    """
    smtp_code = None
    if isinstance(exc, aiosmtplib.SMTPRecipientsRefused) and exc.recipients:
        smtp_code = exc.recipients[0].code
    elif isinstance(exc, aiosmtplib.SMTPException):
        smtp_code = getattr(exc, "code", None)

    # Network/timeout errors are temporary
    if isinstance(exc, (asyncio.TimeoutError, TimeoutError, ConnectionError)):
        return True, smtp_code

    if smtp_code:
        if 400 <= smtp_code < 500:
            return True, smtp_code
        if 500 <= smtp_code < 600:
            return False, smtp_code

    error_msg = str(exc).lower()
    permanent_patterns = [
        "wrong_version_number",  # TLS/STARTTLS mismatch
        "certificate verify failed",
        "ssl handshake",
        "authentication failed",
        "535",  # Authentication credentials invalid
        "530",  # Authentication required
    ]
    for pattern in permanent_patterns:
        if pattern in error_msg:
            return False, smtp_code

    # Unknown errors are treated as temporary
    return True, smtp_code
