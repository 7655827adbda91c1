# =============================================================================
# Pytest Configuration and Fixtures
# =============================================================================
# Shared fixtures for the Hawk-Mailer test suite.
#
# SMTP tests never open a real socket: FakeSMTPServer stands in for
# socket.create_connection and hands out FakeSocket objects that replay a
# scripted list of server replies and record everything the client sends.
# =============================================================================

import io
import tempfile
from pathlib import Path

import pytest

from hawk_mailer.config import Config, GeneralConfig, SMTPConfig
from hawk_mailer.core import Address, ContentType, Message


# Replies of a server that accepts one message from one recipient
OK_SCRIPT = [
    "220 smtp.example.com ESMTP ready",
    "250 smtp.example.com",
    "250 2.1.0 Ok",
    "250 2.1.5 Ok",
    "354 End data with <CR><LF>.<CR><LF>",
    "250 2.0.0 Ok: queued as 4F2A1",
    "221 2.0.0 Bye",
]


class FakeSocket:
    """A socket that replays canned reply lines and records what is sent."""

    def __init__(self, replies: list[str]):
        self.reader = io.BytesIO("".join(f"{r}\r\n" for r in replies).encode("utf-8"))
        self.sent = bytearray()
        self.closed = False

    def makefile(self, mode="rb"):
        return self.reader

    def sendall(self, data: bytes) -> None:
        self.sent += data

    def close(self) -> None:
        self.closed = True

    @property
    def lines(self) -> list[str]:
        """Everything sent so far, split into CRLF-terminated lines."""
        text = self.sent.decode("utf-8")
        lines = text.split("\r\n")
        if lines and lines[-1] == "":
            lines.pop()
        return lines

    @property
    def commands(self) -> list[str]:
        """The SMTP verbs the client sent, in order (message data excluded)."""
        verbs = []
        in_data = False
        for line in self.lines:
            if in_data:
                in_data = line != "."
                continue
            verbs.append(line.split(" ", 1)[0].split(":", 1)[0])
            in_data = line == "DATA"
        return verbs


class FakeSMTPServer:
    """
    Replacement for socket.create_connection.

    Every call opens a new FakeSocket replaying the same script, so a
    broadcast (one connection per subscriber) can be driven by one server.
    """

    def __init__(self, replies: list[str] | None = None):
        self.replies = list(replies if replies is not None else OK_SCRIPT)
        self.connections: list[FakeSocket] = []
        self.addresses: list[tuple] = []
        self.timeouts: list[float] = []

    def __call__(self, address, timeout=None):
        self.addresses.append(address)
        self.timeouts.append(timeout)
        sock = FakeSocket(self.replies)
        self.connections.append(sock)
        return sock

    @property
    def socket(self) -> FakeSocket:
        """The most recent connection."""
        return self.connections[-1]


class FakeSSLContext:
    """
    Replacement for ssl.SSLContext.

    wrap_socket() returns a fresh FakeSocket replaying the replies that the
    server sends over the encrypted channel.
    """

    def __init__(self, replies: list[str]):
        self.replies = replies
        self.wrapped: list[tuple[FakeSocket, str | None]] = []
        self.tls_sockets: list[FakeSocket] = []

    def wrap_socket(self, sock, server_hostname=None):
        self.wrapped.append((sock, server_hostname))
        tls = FakeSocket(self.replies)
        self.tls_sockets.append(tls)
        return tls


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def sender():
    """The From address used throughout the tests."""
    return Address("alice@example.com", "Alice Sender")


@pytest.fixture
def sample_message(sender):
    """A plain-text message to one recipient."""
    return Message(
        sender=sender,
        to=[Address("bob@example.org", "Bob")],
        subject="Test Subject",
        body="Hello Bob,\n\nThis is a test.\n",
    )


@pytest.fixture
def html_message(sender):
    """An HTML message with Cc and Bcc recipients."""
    return Message(
        sender=sender,
        to=[Address("bob@example.org")],
        cc=[Address("carol@example.org")],
        bcc=[Address("dave@example.org")],
        subject="Newsletter",
        body="<html><body><h1>Hello</h1><p>This is <b>news</b>.</p></body></html>",
        content_type=ContentType.HTML,
    )


@pytest.fixture
def smtp_config():
    """
    Config for the smtp protocol.

    helo_name is set so tests never look up the local host name.
    """
    return Config(
        general=GeneralConfig(protocol="smtp"),
        smtp=SMTPConfig(
            host="smtp.example.com",
            port=25,
            helo_name="client.example.com",
        ),
    )


@pytest.fixture
def smtp_server():
    """A fake SMTP server that accepts every message."""
    return FakeSMTPServer()


@pytest.fixture
def no_sleep():
    """A sleep() replacement that records the requested pauses."""
    pauses: list[float] = []

    def sleep(seconds: float) -> None:
        pauses.append(seconds)

    sleep.pauses = pauses
    return sleep
