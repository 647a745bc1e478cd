# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Message builder and data model.

A :class:`Message` accumulates envelope fields, a single body and a keyed
collection of attachments, then serializes itself to LF or CRLF octets.

Example:
    Compose and render a message::

        msg = new_plain_message("Report", "See attached.")
        msg.from_ = Address("Reports", "reports@example.com")
        msg.to = ["team@example.com"]
        msg.attach_file("/tmp/report.pdf")

        wire = msg.bytes_crlf()

Note:
    An *inline* attachment is emitted as a nested ``message/rfc822`` part.
    It is not a Content-ID referenced part (such as an embedded image).
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from datetime import datetime
from email.utils import parseaddr
from pathlib import Path

from .encoding import b_encode, q_encode
from .errors import FileReadError
from .logger import get_logger
from .serializer import DEFAULT_BOUNDARY, serialize

logger = get_logger("MessageBuilder")

PLAIN = "text/plain"
HTML = "text/html"

NAME_SPECIALS = frozenset("\"#$%&'(),.:;<>@[]^`{|}~")


@dataclass(frozen=True)
class Address:
    """A display name and addr-spec pair."""

    name: str = ""
    address: str = ""

    @classmethod
    def parse(cls, text: str) -> Address:
        """Build an Address from ``Name <addr>`` or a bare addr-spec."""
        name, address = parseaddr(text)
        if not address:
            address = text.strip()
        return cls(name=name, address=address)

    def __str__(self) -> str:
        if not self.name:
            return self.address
        if not _is_printable(self.name):
            # Q words may not carry RFC 2047 specials; fall back to B.
            if any(ch in NAME_SPECIALS for ch in self.name):
                return f"{b_encode(self.name, charset='utf-8')} <{self.address}>"
            return f"{q_encode(self.name)} <{self.address}>"
        quoted = self.name.replace("\\", "\\\\").replace('"', '\\"')
        return f'"{quoted}" <{self.address}>'


def _is_printable(text: str) -> bool:
    return all(" " <= ch <= "~" or ch == "\t" for ch in text)


@dataclass(frozen=True)
class Attachment:
    """An attachment payload and the way it is disposed."""

    filename: str
    data: bytes
    inline: bool = False

    def __post_init__(self) -> None:
        if not self.filename:
            raise ValueError("Attachment filename must not be empty")


@dataclass
class Message:
    """Mutable builder for a single outgoing message.

    Attributes:
        from_: Sender address, written to the ``From:`` header.
        to: Primary recipients.
        cc: Carbon copy recipients.
        bcc: Blind carbon copy recipients; never written to a header.
        reply_to: Optional ``Reply-To:`` value.
        subject: Subject text, may contain non-ASCII.
        body: Body text.
        body_content_type: ``text/plain`` or ``text/html``.
        attachments: Attachments keyed by filename, in insertion order.
        boundary: MIME boundary used when attachments are present.
    """

    subject: str = ""
    body: str = ""
    body_content_type: str = PLAIN
    from_: Address = field(default_factory=Address)
    to: list[str] = field(default_factory=list)
    cc: list[str] = field(default_factory=list)
    bcc: list[str] = field(default_factory=list)
    reply_to: str = ""
    attachments: dict[str, Attachment] = field(default_factory=dict)
    boundary: str = DEFAULT_BOUNDARY

    def attach_file(self, path: str | os.PathLike[str]) -> None:
        """Attach the file at ``path`` under its basename.

        Raises:
            FileReadError: If the file cannot be read.
        """
        self._attach(path, inline=False)

    def inline_file(self, path: str | os.PathLike[str]) -> None:
        """Include the file at ``path`` as a nested ``message/rfc822`` part.

        Raises:
            FileReadError: If the file cannot be read.
        """
        self._attach(path, inline=True)

    def attach_buffer(self, filename: str, data: bytes, inline: bool = False) -> None:
        """Attach in-memory ``data`` under ``filename``."""
        self.attachments[filename] = Attachment(filename=filename, data=bytes(data), inline=inline)

    def _attach(self, path: str | os.PathLike[str], inline: bool) -> None:
        data = read_attachment(path)
        filename = Path(path).name
        logger.debug("Loaded attachment %s (%d bytes, inline=%s)", filename, len(data), inline)
        self.attach_buffer(filename, data, inline=inline)

    def to_list(self) -> list[str]:
        """Return every envelope recipient: To, then Cc, then Bcc."""
        return [*self.to, *self.cc, *self.bcc]

    def bytes_lf(self, now: datetime | None = None) -> bytes:
        """Serialize with LF line endings, for local submission."""
        return serialize(self, "\n", now=now)

    def bytes_crlf(self, now: datetime | None = None) -> bytes:
        """Serialize with CRLF line endings, for SMTP."""
        return serialize(self, "\r\n", now=now)


def read_attachment(path: str | os.PathLike[str]) -> bytes:
    """Read an attachment source file.

    Raises:
        FileReadError: If the file cannot be read.
    """
    try:
        return Path(path).read_bytes()
    except OSError as exc:
        raise FileReadError(str(path), exc.strerror) from exc


def new_plain_message(subject: str, body: str) -> Message:
    """Return a new ``text/plain`` message."""
    return Message(subject=subject, body=body, body_content_type=PLAIN)


def new_html_message(subject: str, body: str) -> Message:
    """Return a new ``text/html`` message."""
    return Message(subject=subject, body=body, body_content_type=HTML)
