"""Tests for the local sendmail adapter."""

import asyncio
import importlib
import os
import stat
import sys

import pytest

from mail_composer.errors import DeliveryError
from mail_composer.message import Address, new_plain_message
from mail_composer.sendmail import SENDMAIL_PATH, sendmail, sendmail_args


class FakeProcess:
    def __init__(self, returncode=0, stderr=b""):
        self.returncode = None
        self._returncode = returncode
        self._stderr = stderr
        self.stdin_data = None

    async def communicate(self, input=None):
        self.stdin_data = input
        self.returncode = self._returncode
        return None, self._stderr


@pytest.fixture
def message():
    msg = new_plain_message("Subject", "Body")
    msg.from_ = Address("From", "from@example.com")
    msg.to = ["a@x"]
    msg.cc = ["b@x"]
    msg.bcc = ["c@x"]
    return msg


@pytest.fixture
def fake_exec(monkeypatch):
    calls = []
    state = {"process": FakeProcess()}

    async def create_subprocess_exec(program, *args, **kwargs):
        calls.append((program, args, kwargs))
        if isinstance(state["process"], Exception):
            raise state["process"]
        return state["process"]

    # The package re-exports the sendmail() function under the module's name.
    sendmail_module = importlib.import_module("mail_composer.sendmail")
    monkeypatch.setattr(sendmail_module.asyncio, "create_subprocess_exec", create_subprocess_exec)
    return calls, state


def test_sendmail_args(message):
    assert sendmail_args("bounce@example.com", message) == [
        "-i", "-f", "bounce@example.com", "--", "a@x", "b@x", "c@x",
    ]


@pytest.mark.asyncio
async def test_sendmail_pipes_lf_message(fake_exec, message):
    calls, state = fake_exec

    await sendmail("from@example.com", message)

    program, args, kwargs = calls[0]
    assert program == SENDMAIL_PATH == "/usr/sbin/sendmail"
    assert list(args) == ["-i", "-f", "from@example.com", "--", "a@x", "b@x", "c@x"]
    assert kwargs["stdin"] == asyncio.subprocess.PIPE
    assert kwargs["stderr"] == asyncio.subprocess.PIPE
    data = state["process"].stdin_data
    assert data.startswith(b'From: "From" <from@example.com>\n')
    assert b"\r\n" not in data
    assert b"Bcc" not in data


@pytest.mark.asyncio
async def test_sendmail_non_zero_exit(fake_exec, message):
    _, state = fake_exec
    state["process"] = FakeProcess(returncode=75, stderr=b"queue full\n")

    with pytest.raises(DeliveryError) as exc_info:
        await sendmail("from@example.com", message)

    assert exc_info.value.returncode == 75
    assert exc_info.value.stderr == "queue full"


@pytest.mark.asyncio
async def test_sendmail_start_failure(fake_exec, message):
    _, state = fake_exec
    state["process"] = FileNotFoundError(2, "No such file or directory")

    with pytest.raises(DeliveryError) as exc_info:
        await sendmail("from@example.com", message, path="/nonexistent/sendmail")

    assert isinstance(exc_info.value.__cause__, FileNotFoundError)


@pytest.mark.asyncio
@pytest.mark.skipif(sys.platform == "win32", reason="needs a POSIX shell")
async def test_sendmail_with_real_program(tmp_path, message):
    out_file = tmp_path / "out.eml"
    args_file = tmp_path / "args.txt"
    script = tmp_path / "fake-sendmail"
    script.write_text(
        "#!/bin/sh\n"
        f'printf "%s\\n" "$@" > "{args_file}"\n'
        f'cat > "{out_file}"\n'
    )
    script.chmod(script.stat().st_mode | stat.S_IXUSR)

    await sendmail("from@example.com", message, path=str(script))

    assert args_file.read_text().splitlines() == ["-i", "-f", "from@example.com", "--", "a@x", "b@x", "c@x"]
    assert out_file.read_bytes().startswith(b'From: "From" <from@example.com>\n')


@pytest.mark.asyncio
@pytest.mark.skipif(not os.path.exists("/bin/false"), reason="needs /bin/false")
async def test_sendmail_real_failure(message):
    with pytest.raises(DeliveryError) as exc_info:
        await sendmail("from@example.com", message, path="/bin/false")

    assert exc_info.value.returncode == 1
