# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Local submission adapter.

Hands a message to the local MTA through its sendmail-compatible binary. The
message is serialized with LF line endings, which qmail requires for locally
injected mail and which postfix and sendmail accept.

The program is invoked as::

    /usr/sbin/sendmail -i -f <sender> -- <recipient>...
"""

from __future__ import annotations

import asyncio

from .errors import DeliveryError
from .logger import get_logger
from .message import Message

logger = get_logger("Sendmail")

SENDMAIL_PATH = "/usr/sbin/sendmail"


def sendmail_args(sender: str, message: Message) -> list[str]:
    """Return the argument list passed to the sendmail binary."""
    return ["-i", "-f", sender, "--", *message.to_list()]


async def sendmail(sender: str, message: Message, path: str = SENDMAIL_PATH) -> None:
    """Pipe ``message`` to the local sendmail binary.

    Args:
        sender: Envelope sender addr-spec.
        message: The message to deliver.
        path: Location of the sendmail-compatible program.

    Raises:
        DeliveryError: If the program cannot be started or exits non-zero.
    """
    args = sendmail_args(sender, message)

    try:
        process = await asyncio.create_subprocess_exec(
            path,
            *args,
            stdin=asyncio.subprocess.PIPE,
            stdout=asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as exc:
        logger.error("Cannot start %s: %s", path, exc)
        raise DeliveryError(f"Cannot start {path}: {exc}") from exc

    _, stderr = await process.communicate(message.bytes_lf())
    error_output = stderr.decode("utf-8", errors="replace").strip() if stderr else ""

    if process.returncode != 0:
        logger.error("%s exited with status %s: %s", path, process.returncode, error_output)
        raise DeliveryError(
            f"{path} exited with status {process.returncode}",
            returncode=process.returncode,
            stderr=error_output,
        )

    logger.info("Handed message for %d recipient(s) to %s", len(message.to_list()), path)
