# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""MIME serializer.

Turns a :class:`~mail_composer.message.Message` into octets. Without
attachments the body is written as a single part; otherwise a
``multipart/mixed`` entity holds the body followed by one part per
attachment.

Headers are written in a fixed order::

    From, Date, To, Cc (if any), Subject, Reply-To (if any),
    MIME-Version, Content-Type

``Bcc`` recipients are never written; they only reach the envelope.

Body line endings are rewritten to the requested separator. Inline
attachment payloads are copied verbatim.
"""

from __future__ import annotations

import io
import mimetypes
import re
import secrets
from datetime import datetime
from email.utils import format_datetime
from typing import TYPE_CHECKING

from .encoding import encode, wrap_base64

if TYPE_CHECKING:
    from .message import Attachment, Message

DEFAULT_BOUNDARY = "f46d043c813270fc6b04c2d223da"
DEFAULT_CONTENT_TYPE = "application/octet-stream"

NEWLINE_RE = re.compile(r"\r\n|\r|\n")


def random_boundary() -> str:
    """Return a fresh 28 hex character boundary token."""
    return secrets.token_hex(14)


def guess_content_type(filename: str) -> str:
    """Determine the Content-Type for a filename based on its extension.

    Text types carry an explicit utf-8 charset.
    """
    mt, _ = mimetypes.guess_type(filename, strict=False)
    if not mt:
        return DEFAULT_CONTENT_TYPE
    if mt.startswith("text/"):
        return f"{mt}; charset=utf-8"
    return mt


def format_date(now: datetime | None = None) -> str:
    """Format ``now`` (default: current local time) as RFC 1123 with numeric zone."""
    if now is None:
        now = datetime.now()
    if now.tzinfo is None:
        now = now.astimezone()
    return format_datetime(now)


class _Writer:
    """Octet buffer that knows the line separator in use."""

    def __init__(self, line_separator: str):
        self.sep = line_separator
        self.buf = io.BytesIO()

    def write(self, text: str) -> None:
        self.buf.write(text.encode("utf-8", errors="surrogateescape"))

    def write_bytes(self, data: bytes) -> None:
        self.buf.write(data)

    def line(self, text: str = "") -> None:
        self.write(text + self.sep)

    def getvalue(self) -> bytes:
        return self.buf.getvalue()


def serialize(message: Message, line_separator: str, now: datetime | None = None) -> bytes:
    """Serialize ``message`` using ``line_separator`` between lines.

    Args:
        message: The message to render. It is only read.
        line_separator: ``"\\n"`` for local submission, ``"\\r\\n"`` for SMTP.
        now: Timestamp for the ``Date:`` header; defaults to the current time.

    Returns:
        The complete message as bytes.
    """
    out = _Writer(line_separator)
    sep = line_separator

    out.line(f"From: {message.from_}")
    out.line(f"Date: {format_date(now)}")
    out.line(f"To: {','.join(message.to)}")
    if message.cc:
        out.line(f"Cc: {','.join(message.cc)}")
    out.line(f"Subject: {encode(message.subject, sep)}")
    if message.reply_to:
        out.line(f"Reply-To: {message.reply_to}")
    out.line("MIME-Version: 1.0")

    boundary = message.boundary
    attachments = list(message.attachments.values())

    if attachments:
        out.line(f'Content-Type: multipart/mixed; boundary="{boundary}"')
        out.line()
        out.line(f"--{boundary}")

    out.line(f"Content-Type: {message.body_content_type}; charset=utf-8")
    out.line()
    out.write(NEWLINE_RE.sub(sep, message.body))
    out.write(sep)

    if not attachments:
        return out.getvalue()

    for attachment in attachments:
        out.write(sep + sep)
        out.line(f"--{boundary}")
        _write_attachment(out, attachment)

    out.write(f"{sep}--{boundary}--")
    return out.getvalue()


def _write_attachment(out: _Writer, attachment: Attachment) -> None:
    sep = out.sep
    filename = encode(attachment.filename, sep)

    if attachment.inline:
        out.line("Content-Type: message/rfc822")
        out.line(f'Content-Disposition: inline; filename="{filename}"')
        out.line()
        out.write_bytes(attachment.data)
        return

    out.line(f"Content-Type: {guess_content_type(attachment.filename)}")
    out.line("Content-Transfer-Encoding: base64")
    out.line("Content-Disposition: attachment;")
    out.line(f' filename="{filename}"')
    out.line()
    out.write_bytes(wrap_base64(attachment.data, sep.encode("ascii")))
