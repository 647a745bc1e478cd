# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Configuration loader for delivery settings.

Settings are read from an INI-style configuration file.

Example:
    Configuration file format (config.ini)::

        [smtp]
        host = smtp.example.com
        port = 587
        user = mailer@example.com
        password = secret
        use_tls = true
        timeout = 30

        [sendmail]
        path = /usr/sbin/sendmail

        [message]
        # "fixed" keeps the well-known boundary, "random" draws one per message
        boundary = random

    Loading it::

        config = load_config("/etc/mail-composer/config.ini")
        await send_smtp(config.smtp.address, config.smtp.auth, message,
                        use_tls=config.smtp.use_tls)
"""

from __future__ import annotations

import configparser
from dataclasses import dataclass, field
from pathlib import Path

from .errors import ConfigError
from .logger import get_logger
from .sendmail import SENDMAIL_PATH
from .smtp import DEFAULT_PORT, DEFAULT_TIMEOUT, SmtpAuth

logger = get_logger("ConfigLoader")

BOUNDARY_MODES = ("fixed", "random")


@dataclass
class SmtpConfig:
    """SMTP relay settings.

    Attributes:
        host: Relay hostname.
        port: Relay port.
        user: Username for SMTP AUTH, or None.
        password: Password for SMTP AUTH, or None.
        use_tls: True, False, or None for opportunistic STARTTLS.
        timeout: Socket timeout in seconds.
    """

    host: str = "localhost"
    port: int = DEFAULT_PORT
    user: str | None = None
    password: str | None = None
    use_tls: bool | None = None
    timeout: float = DEFAULT_TIMEOUT

    @property
    def address(self) -> str:
        """Relay address as ``host:port``."""
        return f"{self.host}:{self.port}"

    @property
    def auth(self) -> SmtpAuth | None:
        """Credentials when both user and password are configured."""
        if self.user and self.password:
            return SmtpAuth(self.user, self.password)
        return None


@dataclass
class SendmailConfig:
    """Local submission settings."""

    path: str = SENDMAIL_PATH


@dataclass
class ComposerConfig:
    """Main configuration container."""

    smtp: SmtpConfig = field(default_factory=SmtpConfig)
    sendmail: SendmailConfig = field(default_factory=SendmailConfig)
    boundary: str = "fixed"
    """Boundary mode: "fixed" or "random"."""

    @property
    def random_boundary(self) -> bool:
        return self.boundary == "random"


def load_config(config_path: str) -> ComposerConfig:
    """Load delivery configuration from config file.

    Missing sections and keys fall back to defaults. Malformed numbers and
    booleans are logged and replaced by their default.

    Raises:
        FileNotFoundError: If config file doesn't exist.
        ConfigError: If the file cannot be parsed or the boundary mode is
            not recognised.
    """
    if not Path(config_path).exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    # Passwords may contain "%", so values are taken literally.
    config = configparser.ConfigParser(interpolation=None)
    try:
        config.read(config_path)
    except configparser.Error as exc:
        raise ConfigError(f"Cannot parse config file {config_path}: {exc}") from exc

    def get_str(section: str, key: str, default: str | None = None) -> str | None:
        value = config.get(section, key, fallback=default)
        return value.strip() if value else default

    def get_int(section: str, key: str, default: int) -> int:
        try:
            return config.getint(section, key, fallback=default)
        except ValueError:
            logger.warning(f"Invalid int for {section}.{key}, using default {default}")
            return default

    def get_float(section: str, key: str, default: float) -> float:
        try:
            return config.getfloat(section, key, fallback=default)
        except ValueError:
            logger.warning(f"Invalid float for {section}.{key}, using default {default}")
            return default

    def get_bool(section: str, key: str, default: bool | None) -> bool | None:
        if not config.has_option(section, key):
            return default
        try:
            return config.getboolean(section, key)
        except ValueError:
            logger.warning(f"Invalid boolean for {section}.{key}, using default {default}")
            return default

    smtp = SmtpConfig(
        host=get_str("smtp", "host", "localhost") or "localhost",
        port=get_int("smtp", "port", DEFAULT_PORT),
        user=get_str("smtp", "user"),
        password=get_str("smtp", "password"),
        use_tls=get_bool("smtp", "use_tls", None),
        timeout=get_float("smtp", "timeout", DEFAULT_TIMEOUT),
    )
    sendmail = SendmailConfig(path=get_str("sendmail", "path", SENDMAIL_PATH) or SENDMAIL_PATH)

    boundary = (get_str("message", "boundary", "fixed") or "fixed").lower()
    if boundary not in BOUNDARY_MODES:
        raise ConfigError(f"Unknown boundary mode in [message]: {boundary!r}")

    logger.debug("Loaded configuration from %s", config_path)
    return ComposerConfig(smtp=smtp, sendmail=sendmail, boundary=boundary)
