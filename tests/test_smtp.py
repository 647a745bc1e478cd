import asyncio

import aiosmtplib
import pytest

from mail_composer.errors import DeliveryError
from mail_composer.message import Address, new_plain_message
from mail_composer.smtp import SmtpAuth, send_smtp, split_address


class DummySMTP:
    def __init__(self, hostname, port, start_tls=None, use_tls=False, timeout=None):
        self.hostname = hostname
        self.port = port
        self.start_tls = start_tls
        self.use_tls = use_tls
        self.timeout = timeout
        self.login_credentials = None
        self.connected = False
        self.quit_called = False
        self.closed = False
        self.sent = []
        self.fail_on = None
        self.quit_error = None

    async def connect(self):
        if self.fail_on == "connect":
            raise aiosmtplib.SMTPConnectError("Connection refused")
        self.connected = True

    async def login(self, user, password):
        if self.fail_on == "login":
            raise aiosmtplib.SMTPAuthenticationError(535, "authentication failed")
        self.login_credentials = (user, password)

    async def sendmail(self, sender, recipients, message):
        if self.fail_on == "sendmail":
            raise aiosmtplib.SMTPRecipientsRefused(
                [aiosmtplib.SMTPRecipientRefused(550, "No such user", recipients[0])]
            )
        if self.fail_on == "timeout":
            raise asyncio.TimeoutError()
        self.sent.append((sender, recipients, message))
        return {}, "OK"

    async def quit(self):
        self.quit_called = True
        if self.quit_error:
            raise self.quit_error

    def close(self):
        self.closed = True


@pytest.fixture
def smtp_factory(monkeypatch):
    created = []
    behaviour = {}

    def factory(**kwargs):
        smtp = DummySMTP(**kwargs)
        smtp.fail_on = behaviour.get("fail_on")
        smtp.quit_error = behaviour.get("quit_error")
        created.append(smtp)
        return smtp

    monkeypatch.setattr("mail_composer.smtp.aiosmtplib.SMTP", factory)
    factory.created = created
    factory.behaviour = behaviour
    return factory


@pytest.fixture
def message():
    msg = new_plain_message("Subject", "Body")
    msg.from_ = Address("From", "from@example.com")
    msg.to = ["a@x"]
    msg.cc = ["b@x"]
    msg.bcc = ["c@x"]
    return msg


def test_split_address():
    assert split_address("smtp.example.com:587") == ("smtp.example.com", 587)
    assert split_address("smtp.example.com") == ("smtp.example.com", 25)
    assert split_address("[::1]:2525") == ("::1", 2525)


def test_split_address_invalid_port():
    with pytest.raises(ValueError):
        split_address("smtp.example.com:smtp")


def test_split_address_bracketed_host_without_port():
    assert split_address("[::1]") == ("::1", 25)
    assert split_address("[2001:db8::25]") == ("2001:db8::25", 25)


def test_split_address_malformed_brackets():
    with pytest.raises(ValueError):
        split_address("[::1")
    with pytest.raises(ValueError):
        split_address("[::1]2525")


@pytest.mark.asyncio
async def test_malformed_address_raises_delivery_error(smtp_factory, message):
    with pytest.raises(DeliveryError) as exc_info:
        await send_smtp("smtp.local:smtp", None, message)

    assert isinstance(exc_info.value.__cause__, ValueError)
    assert smtp_factory.created == []


@pytest.mark.asyncio
async def test_send_uses_envelope_and_crlf(smtp_factory, message):
    await send_smtp("smtp.local:25", SmtpAuth("user", "pass"), message)

    smtp = smtp_factory.created[0]
    assert smtp.hostname == "smtp.local"
    assert smtp.port == 25
    assert smtp.login_credentials == ("user", "pass")
    sender, recipients, data = smtp.sent[0]
    assert sender == "from@example.com"
    assert recipients == ["a@x", "b@x", "c@x"]
    assert data.startswith(b'From: "From" <from@example.com>\r\n')
    assert b"Bcc" not in data
    assert smtp.quit_called is True


@pytest.mark.asyncio
async def test_send_without_auth_skips_login(smtp_factory, message):
    await send_smtp("smtp.local:25", None, message)
    assert smtp_factory.created[0].login_credentials is None


@pytest.mark.asyncio
async def test_tls_selection(smtp_factory, message):
    await send_smtp("smtp.secure:465", None, message, use_tls=True)
    await send_smtp("smtp.secure:587", None, message, use_tls=True)
    await send_smtp("smtp.plain:25", None, message, use_tls=False)
    await send_smtp("smtp.auto:25", None, message)

    implicit, starttls, plain, auto = smtp_factory.created
    assert (implicit.use_tls, implicit.start_tls) == (True, False)
    assert (starttls.use_tls, starttls.start_tls) == (False, True)
    assert (plain.use_tls, plain.start_tls) == (False, False)
    assert (auto.use_tls, auto.start_tls) == (False, None)


@pytest.mark.asyncio
async def test_rejected_recipient_raises_permanent_error(smtp_factory, message):
    smtp_factory.behaviour["fail_on"] = "sendmail"

    with pytest.raises(DeliveryError) as exc_info:
        await send_smtp("smtp.local:25", None, message)

    assert isinstance(exc_info.value.__cause__, aiosmtplib.SMTPRecipientsRefused)
    assert exc_info.value.smtp_code == 550
    assert exc_info.value.temporary is False
    assert smtp_factory.created[0].quit_called is True


@pytest.mark.asyncio
async def test_authentication_failure_is_permanent(smtp_factory, message):
    smtp_factory.behaviour["fail_on"] = "login"

    with pytest.raises(DeliveryError) as exc_info:
        await send_smtp("smtp.local:25", SmtpAuth("user", "wrong"), message)

    assert exc_info.value.smtp_code == 535
    assert exc_info.value.temporary is False


@pytest.mark.asyncio
async def test_connection_failure_is_temporary(smtp_factory, message):
    smtp_factory.behaviour["fail_on"] = "connect"

    with pytest.raises(DeliveryError) as exc_info:
        await send_smtp("smtp.local:25", None, message)

    assert exc_info.value.temporary is True


@pytest.mark.asyncio
async def test_timeout_is_temporary(smtp_factory, message):
    smtp_factory.behaviour["fail_on"] = "timeout"

    with pytest.raises(DeliveryError) as exc_info:
        await send_smtp("smtp.local:25", None, message)

    assert exc_info.value.temporary is True


@pytest.mark.asyncio
async def test_quit_failure_after_send_closes_connection(smtp_factory, message):
    smtp_factory.behaviour["quit_error"] = aiosmtplib.SMTPServerDisconnected("gone")

    await send_smtp("smtp.local:25", None, message)

    smtp = smtp_factory.created[0]
    assert smtp.sent
    assert smtp.closed is True
