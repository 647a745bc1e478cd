# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Command-line interface for mail-composer.

Usage:
    # Print the serialized message (LF line endings by default)
    mail-composer render --from "Me <me@example.com>" --to you@example.com \\
        --subject "Hello" --body "Hi there" --attach report.pdf

    # Deliver through the relay configured in config.ini
    mail-composer send --config config.ini --via smtp --payload message.json

    # Deliver through the local sendmail binary
    mail-composer send --via sendmail --from me@example.com --to you@example.com \\
        --subject "Hello" --body-file body.txt

Environment:
    MAIL_COMPOSER_CONFIG - default value for --config
    MAIL_COMPOSER_LOG_LEVEL - logging level when --verbose is not given
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import sys
from pathlib import Path
from typing import Any

import click
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .config_loader import ComposerConfig, load_config
from .errors import MailComposerError
from .message import Address, Message, new_html_message, new_plain_message
from .models import MessagePayload
from .sendmail import sendmail
from .serializer import random_boundary
from .smtp import send_smtp

console = Console()
err_console = Console(stderr=True)


def run_async(coro):
    """Run an async coroutine synchronously."""
    return asyncio.run(coro)


def print_error(message: str) -> None:
    """Print an error message to stderr."""
    err_console.print(f"[red]Error:[/red] {message}")


def print_failure(exc: Exception) -> None:
    """Print an exception, tagged with its error code when it carries one."""
    if isinstance(exc, MailComposerError):
        print_error(f"{escape(str(exc))} ({exc.code})")
    else:
        print_error(escape(str(exc)))


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[green]✓[/green] {message}")


def _message_options(func):
    options = [
        click.option("--payload", type=click.Path(exists=True, dir_okay=False),
                     help="JSON message description to start from."),
        click.option("--from", "sender", help="Sender, 'Name <addr>' or a bare address."),
        click.option("--to", multiple=True, help="Recipient (repeatable)."),
        click.option("--cc", multiple=True, help="Carbon copy recipient (repeatable)."),
        click.option("--bcc", multiple=True, help="Blind carbon copy recipient (repeatable)."),
        click.option("--reply-to", help="Reply-To header value."),
        click.option("--subject", help="Subject text."),
        click.option("--body", help="Body text."),
        click.option("--body-file", type=click.Path(exists=True, dir_okay=False),
                     help="Read the body from a file."),
        click.option("--html", is_flag=True, help="Send the body as text/html."),
        click.option("--attach", multiple=True, help="Attach a file (repeatable)."),
        click.option("--inline", multiple=True,
                     help="Include a file as a nested message/rfc822 part (repeatable)."),
        click.option("--random-boundary", is_flag=True, help="Draw a random MIME boundary."),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def build_message(
    payload: str | None = None,
    sender: str | None = None,
    to: tuple[str, ...] = (),
    cc: tuple[str, ...] = (),
    bcc: tuple[str, ...] = (),
    reply_to: str | None = None,
    subject: str | None = None,
    body: str | None = None,
    body_file: str | None = None,
    html: bool = False,
    attach: tuple[str, ...] = (),
    inline: tuple[str, ...] = (),
    random_boundary_flag: bool = False,
) -> Message:
    """Build a Message from a JSON payload and command-line options.

    Options given on the command line override the payload's scalar fields
    and extend its recipient and attachment lists.

    Raises:
        ValidationError: If the payload is invalid.
        FileReadError: If an attachment cannot be read.
    """
    if payload:
        data = json.loads(Path(payload).read_text(encoding="utf-8"))
        message = MessagePayload.model_validate(data).to_message()
        if html:
            message.body_content_type = "text/html"
    else:
        message = new_html_message("", "") if html else new_plain_message("", "")

    if sender:
        message.from_ = Address.parse(sender)
    if subject is not None:
        message.subject = subject
    if body_file:
        message.body = Path(body_file).read_text(encoding="utf-8")
    elif body is not None:
        message.body = body
    if reply_to:
        message.reply_to = reply_to

    message.to.extend(to)
    message.cc.extend(cc)
    message.bcc.extend(bcc)

    for path in attach:
        message.attach_file(path)
    for path in inline:
        message.inline_file(path)

    if random_boundary_flag:
        message.boundary = random_boundary()
    return message


def _options_to_kwargs(options: dict[str, Any]) -> dict[str, Any]:
    kwargs = dict(options)
    kwargs["random_boundary_flag"] = kwargs.pop("random_boundary")
    return kwargs


def _load_config(config_path: str | None) -> ComposerConfig:
    if not config_path:
        return ComposerConfig()
    return load_config(config_path)


def _envelope_table(message: Message, size: int) -> Table:
    table = Table(title="Envelope")
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("Sender", message.from_.address)
    table.add_row("Recipients", ", ".join(message.to_list()))
    table.add_row("Attachments", ", ".join(message.attachments) or "-")
    table.add_row("Size", f"{size} bytes")
    return table


@click.group()
@click.version_option(package_name="mail-composer")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
def main(verbose: bool) -> None:
    """mail-composer CLI - Compose MIME messages and hand them to a mail channel."""
    log_level = "DEBUG" if verbose else os.getenv("MAIL_COMPOSER_LOG_LEVEL", "WARNING").upper()
    logging.basicConfig(
        level=getattr(logging, log_level, logging.WARNING),
        format="[%(asctime)s] [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        force=True,
    )


@main.command("render")
@_message_options
@click.option("--crlf", is_flag=True, help="Use CRLF line endings (SMTP wire format).")
def render(crlf: bool, **options: Any) -> None:
    """Write the serialized message to standard output."""
    try:
        message = build_message(**_options_to_kwargs(options))
    except ValidationError as e:
        print_error(f"Validation error: {e}")
        sys.exit(1)
    except (MailComposerError, ValueError) as e:
        print_failure(e)
        sys.exit(1)

    data = message.bytes_crlf() if crlf else message.bytes_lf()
    stdout = click.get_binary_stream("stdout")
    stdout.write(data)
    stdout.flush()


@main.command("send")
@_message_options
@click.option("--via", type=click.Choice(["smtp", "sendmail"]), default="smtp", show_default=True,
              help="Delivery channel.")
@click.option("--config", "config_path", envvar="MAIL_COMPOSER_CONFIG",
              type=click.Path(dir_okay=False), help="Configuration file (INI).")
@click.option("--server", help="SMTP relay as host:port (overrides the config file).")
@click.option("--user", help="SMTP username (overrides the config file).")
@click.option("--password", help="SMTP password (overrides the config file).")
@click.option("--dry-run", is_flag=True, help="Show the envelope without delivering.")
def send(
    via: str,
    config_path: str | None,
    server: str | None,
    user: str | None,
    password: str | None,
    dry_run: bool,
    **options: Any,
) -> None:
    """Compose a message and deliver it."""
    try:
        config = _load_config(config_path)
        kwargs = _options_to_kwargs(options)
        kwargs["random_boundary_flag"] = kwargs["random_boundary_flag"] or config.random_boundary
        message = build_message(**kwargs)
    except ValidationError as e:
        print_error(f"Validation error: {e}")
        sys.exit(1)
    except (MailComposerError, FileNotFoundError, ValueError) as e:
        print_failure(e)
        sys.exit(1)

    if dry_run:
        console.print(_envelope_table(message, len(message.bytes_crlf())))
        return

    smtp_config = config.smtp
    if user is not None:
        smtp_config.user = user
    if password is not None:
        smtp_config.password = password
    address = server or smtp_config.address

    try:
        if via == "sendmail":
            run_async(sendmail(message.from_.address, message, path=config.sendmail.path))
        else:
            run_async(send_smtp(
                address,
                smtp_config.auth,
                message,
                use_tls=smtp_config.use_tls,
                timeout=smtp_config.timeout,
            ))
    except (MailComposerError, ValueError) as e:
        print_failure(e)
        sys.exit(1)

    print_success(f"Message delivered via {via} to {len(message.to_list())} recipient(s).")


if __name__ == "__main__":
    main()
