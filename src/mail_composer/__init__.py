# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Compose MIME mail messages and hand them to a delivery channel.

This package builds RFC 5322 / MIME messages with attachments and delivers
them either to an SMTP relay or to the local sendmail binary.

Components:
    Message: Mutable builder for envelope fields, body and attachments.
    serialize: Renders a Message to LF or CRLF octets.
    send_smtp: Delivers through an SMTP relay (aiosmtplib).
    sendmail: Delivers through the local sendmail binary.

Features:
    - RFC 2047 encoded-words for non-ASCII subjects and filenames
    - multipart/mixed framing with base64 attachments
    - Nested message/rfc822 parts for "inline" attachments
    - Bcc recipients kept out of the headers
    - LF output for local submission, CRLF output for SMTP

Example:
    Compose and send a message::

        from mail_composer import Address, new_plain_message, send_smtp

        msg = new_plain_message("Hello", "Body text")
        msg.from_ = Address("Me", "me@example.com")
        msg.to = ["you@example.com"]
        msg.attach_buffer("notes.txt", b"some notes")

        await send_smtp("smtp.example.com:587", None, msg)
"""

from .errors import ConfigError, DeliveryError, FileReadError, MailComposerError
from .message import (
    Address,
    Attachment,
    Message,
    new_html_message,
    new_plain_message,
)
from .sendmail import SENDMAIL_PATH, sendmail
from .serializer import DEFAULT_BOUNDARY, random_boundary, serialize
from .smtp import SmtpAuth, send_smtp

__version__ = "0.1.0"

__all__ = [
    "Address",
    "Attachment",
    "ConfigError",
    "DEFAULT_BOUNDARY",
    "DeliveryError",
    "FileReadError",
    "MailComposerError",
    "Message",
    "SENDMAIL_PATH",
    "SmtpAuth",
    "new_html_message",
    "new_plain_message",
    "random_boundary",
    "send_smtp",
    "sendmail",
    "serialize",
]
