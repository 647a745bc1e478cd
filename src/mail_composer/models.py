# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Pydantic models for JSON message descriptions.

A message can be described as a JSON document and turned into a
:class:`~mail_composer.message.Message`::

    {
        "from": "Reports <reports@example.com>",
        "to": ["team@example.com"],
        "bcc": "audit@example.com",
        "subject": "Weekly report",
        "body": "<p>See attached.</p>",
        "content_type": "html",
        "attachments": [
            {"filename": "report.csv", "content_base64": "YSxiLGMK"},
            {"path": "/var/spool/original.eml", "inline": true}
        ]
    }

Models:
    - AttachmentPayload: one attachment, either inline base64 or a file path
    - MessagePayload: the message envelope, body and attachments
"""

from __future__ import annotations

import base64
import binascii
from pathlib import Path
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .message import Address, Message, new_html_message, new_plain_message, read_attachment


def _split_addresses(value: Any) -> Any:
    if value is None:
        return []
    if isinstance(value, str):
        return [part.strip() for part in value.split(",") if part.strip()]
    return value


class AttachmentPayload(BaseModel):
    """An attachment given either as base64 content or as a file path.

    Attributes:
        filename: Attachment filename. Defaults to the basename of ``path``.
        content_base64: Base64 encoded attachment bytes.
        path: Filesystem path to read the attachment from.
        inline: Emit as a nested ``message/rfc822`` part.
    """

    model_config = ConfigDict(extra="forbid")

    filename: Annotated[
        str | None,
        Field(default=None, min_length=1, description="Attachment filename")
    ]
    content_base64: Annotated[
        str | None,
        Field(default=None, description="Base64 encoded content")
    ]
    path: Annotated[
        str | None,
        Field(default=None, min_length=1, description="File to read the content from")
    ]
    inline: Annotated[
        bool,
        Field(default=False, description="Nested message/rfc822 part instead of a base64 attachment")
    ]

    @model_validator(mode="after")
    def exactly_one_source(self) -> AttachmentPayload:
        """Validate that exactly one content source is given."""
        if (self.content_base64 is None) == (self.path is None):
            raise ValueError("exactly one of 'content_base64' or 'path' is required")
        if self.content_base64 is not None and not self.filename:
            raise ValueError("filename is required with 'content_base64'")
        return self

    def decode(self) -> bytes:
        """Return the decoded base64 content.

        Raises:
            ValueError: If the content is not valid base64.
        """
        try:
            return base64.b64decode(self.content_base64 or "", validate=True)
        except binascii.Error as e:
            raise ValueError(f"Invalid base64 content for {self.filename}: {e}") from e


class MessagePayload(BaseModel):
    """A complete message description.

    Attributes:
        from_: Sender, ``Name <addr>`` or a bare address (JSON key ``from``).
        to: Primary recipients, list or comma separated string.
        cc: Carbon copy recipients.
        bcc: Blind carbon copy recipients.
        reply_to: Optional Reply-To value.
        subject: Subject text.
        body: Body text.
        content_type: ``plain`` or ``html``.
        attachments: Attachments in emission order.
    """

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    from_: Annotated[
        str,
        Field(alias="from", description="Sender address")
    ]
    to: Annotated[
        list[str],
        Field(default_factory=list, description="Primary recipients")
    ]
    cc: Annotated[
        list[str],
        Field(default_factory=list, description="Carbon copy recipients")
    ]
    bcc: Annotated[
        list[str],
        Field(default_factory=list, description="Blind carbon copy recipients")
    ]
    reply_to: Annotated[
        str | None,
        Field(default=None, description="Reply-To header value")
    ]
    subject: Annotated[
        str,
        Field(default="", description="Subject text")
    ]
    body: Annotated[
        str,
        Field(default="", description="Body text")
    ]
    content_type: Annotated[
        Literal["plain", "html"],
        Field(default="plain", description="Body content type")
    ]
    attachments: Annotated[
        list[AttachmentPayload],
        Field(default_factory=list, description="Attachments")
    ]

    @field_validator("to", "cc", "bcc", mode="before")
    @classmethod
    def split_address_list(cls, v: Any) -> Any:
        """Accept comma separated strings as well as lists."""
        return _split_addresses(v)

    def to_message(self) -> Message:
        """Build a :class:`Message` from this payload.

        Raises:
            ValueError: If an attachment holds invalid base64.
            FileReadError: If an attachment file cannot be read.
        """
        factory = new_html_message if self.content_type == "html" else new_plain_message
        message = factory(self.subject, self.body)
        message.from_ = Address.parse(self.from_)
        message.to = list(self.to)
        message.cc = list(self.cc)
        message.bcc = list(self.bcc)
        message.reply_to = self.reply_to or ""

        for att in self.attachments:
            if att.path is None:
                message.attach_buffer(att.filename or "", att.decode(), inline=att.inline)
            else:
                filename = att.filename or Path(att.path).name
                message.attach_buffer(filename, read_attachment(att.path), inline=att.inline)
        return message
