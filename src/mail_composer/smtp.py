# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""SMTP delivery adapter.

Submits a message to an SMTP relay using ``aiosmtplib``. The message is
serialized with CRLF line endings, the envelope sender is the addr-spec of
``message.from_`` and the envelope recipients are ``message.to_list()``.

Example:
    Sending through a relay that requires authentication::

        await send_smtp(
            "smtp.example.com:587",
            SmtpAuth("mailer@example.com", "secret"),
            message,
        )
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass

import aiosmtplib

from .errors import DeliveryError, classify_smtp_error
from .logger import get_logger
from .message import Message

logger = get_logger("SmtpDelivery")

DEFAULT_PORT = 25
DEFAULT_TIMEOUT = 30.0


@dataclass(frozen=True)
class SmtpAuth:
    """Credentials for SMTP AUTH."""

    username: str
    password: str


def split_address(addr: str) -> tuple[str, int]:
    """Split ``host:port`` or ``[ipv6]:port`` into its parts. The port defaults to 25."""
    if addr.startswith("["):
        host, bracket, rest = addr[1:].partition("]")
        if not bracket or (rest and not rest.startswith(":")):
            raise ValueError(f"Invalid SMTP address: {addr!r}")
        if not rest:
            return host, DEFAULT_PORT
        port = rest[1:]
    else:
        host, sep, port = addr.rpartition(":")
        if not sep:
            return addr, DEFAULT_PORT
    try:
        return host, int(port)
    except ValueError:
        raise ValueError(f"Invalid SMTP port in address: {addr!r}") from None


def _client(host: str, port: int, use_tls: bool | None, timeout: float) -> aiosmtplib.SMTP:
    # Port 465: Direct TLS (use_tls=True, start_tls=False)
    # Other ports with TLS: STARTTLS (use_tls=False, start_tls=True)
    # use_tls=False: Plain connection
    # use_tls=None: STARTTLS when the server offers it
    if use_tls and port == 465:
        return aiosmtplib.SMTP(hostname=host, port=port, start_tls=False, use_tls=True, timeout=timeout)
    if use_tls:
        return aiosmtplib.SMTP(hostname=host, port=port, start_tls=True, use_tls=False, timeout=timeout)
    if use_tls is None:
        return aiosmtplib.SMTP(hostname=host, port=port, start_tls=None, use_tls=False, timeout=timeout)
    return aiosmtplib.SMTP(hostname=host, port=port, start_tls=False, use_tls=False, timeout=timeout)


async def send_smtp(
    addr: str,
    auth: SmtpAuth | None,
    message: Message,
    *,
    use_tls: bool | None = None,
    timeout: float = DEFAULT_TIMEOUT,
) -> None:
    """Deliver ``message`` to the SMTP relay at ``addr``.

    Args:
        addr: Relay address as ``host:port``.
        auth: Credentials, or None to skip authentication.
        message: The message to deliver.
        use_tls: True for TLS (implicit on port 465, STARTTLS otherwise),
            False for plain SMTP, None for opportunistic STARTTLS.
        timeout: Socket timeout in seconds.

    Raises:
        DeliveryError: If the address is malformed, or if connecting,
            authenticating or submitting fails.
    """
    try:
        host, port = split_address(addr)
    except ValueError as exc:
        raise DeliveryError(str(exc)) from exc
    sender = message.from_.address
    recipients = message.to_list()
    smtp = _client(host, port, use_tls, timeout)

    try:
        await smtp.connect()
        try:
            if auth is not None:
                await smtp.login(auth.username, auth.password)
            await smtp.sendmail(sender, recipients, message.bytes_crlf())
        finally:
            try:
                await smtp.quit()
            except aiosmtplib.SMTPException:
                smtp.close()
    except (aiosmtplib.SMTPException, asyncio.TimeoutError, OSError) as exc:
        temporary, smtp_code = classify_smtp_error(exc)
        logger.error("SMTP delivery to %s failed: %s", addr, exc)
        raise DeliveryError(
            f"SMTP delivery to {addr} failed: {exc}",
            smtp_code=smtp_code,
            temporary=temporary,
        ) from exc

    logger.info("Delivered message to %d recipient(s) via %s", len(recipients), addr)
