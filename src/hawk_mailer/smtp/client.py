# =============================================================================
# SMTP Client
# =============================================================================
# A synchronous SMTP client that speaks the wire protocol directly over a
# socket.
#
# Key responsibilities:
#   - Connection management (plain TCP, implicit SSL, or STARTTLS upgrade)
#   - HELO greeting, repeated after a STARTTLS handshake
#   - AUTH LOGIN (base64 username/password challenge-response)
#   - The MAIL FROM / RCPT TO / DATA / QUIT transaction
#   - Reply-code validation for every step
#
# Session states:
#   Disconnected -> Connected -> (TLS) -> Authenticated
#       -> MAIL FROM -> RCPT TO* -> DATA -> Sent -> QUIT -> Disconnected
#
# Every line sent and received is appended to the Outcome log. A reply with
# an unexpected code raises; the caller then closes the socket without QUIT.
# =============================================================================

import base64
import logging
import re
import socket
import ssl
from dataclasses import dataclass, field
from typing import IO, TYPE_CHECKING, Any, Callable, Iterable

from hawk_mailer.core import (
    AuthenticationError,
    MailConnectionError,
    MailError,
    Outcome,
    ProtocolError,
)

if TYPE_CHECKING:
    from hawk_mailer.config import SMTPConfig

logger = logging.getLogger(__name__)

# SMTP line terminator (RFC 5321)
CRLF = "\r\n"

# Longest reply line we accept before giving up on the server
MAX_LINE = 8192

# Extension parameter added to RCPT TO when delivery status is tracked
DSN_NOTIFY = "NOTIFY=SUCCESS,DELAY,FAILURE"

# Placeholder written to the log instead of AUTH LOGIN credentials
HIDDEN = "<credentials hidden>"


def local_hostname() -> str:
    """
    Name to announce in HELO.

    The fully-qualified domain name when one resolves, otherwise the local
    IP address as a bracketed address literal (RFC 5321 section 4.1.3).
    """
    fqdn = socket.getfqdn()
    if "." in fqdn:
        return fqdn
    try:
        address = socket.gethostbyname(socket.gethostname())
    except OSError:
        address = "127.0.0.1"
    return f"[{address}]"


def dot_stuff(payload: str) -> list[str]:
    """
    Split a DATA payload into lines and double every leading dot.

    Example:
        >>> dot_stuff("Hi\\n.hidden\\n")
        ['Hi', '..hidden']
    """
    lines = re.split(r"\r\n|\r|\n", payload)
    if lines and lines[-1] == "":
        lines.pop()
    return ["." + line if line.startswith(".") else line for line in lines]


@dataclass
class SMTPReply:
    """
    A (possibly multi-line) server reply.

    Attributes:
        code: Three-digit status code from the final reply line.
        lines: Text of every reply line, without the code and separator.
    """
    code: int
    lines: list[str] = field(default_factory=list)

    @property
    def text(self) -> str:
        return " ".join(self.lines)


@dataclass
class SMTPSession:
    """
    Transient state of one connection.

    Lives for a single connect -> transact -> quit cycle and is never shared
    between sends.

    Attributes:
        sock: The (possibly TLS-wrapped) socket.
        reader: Buffered binary reader over the socket.
        tls: Whether the connection is encrypted.
        authenticated: Whether AUTH LOGIN succeeded.
        last_code: Code of the most recent reply.
    """
    sock: Any = None
    reader: IO[bytes] | None = None
    tls: bool = False
    authenticated: bool = False
    last_code: int | None = None


class SMTPClient:
    """
    Blocking SMTP client.

    Usage:
        >>> client = SMTPClient(config.smtp, outcome)
        >>> client.connect()
        >>> client.authenticate()
        >>> client.transact("me@example.com", ["you@example.org"], payload)
        >>> client.quit()

    Attributes:
        settings: SMTP server settings (host, port, encryption, credentials).
        outcome: Sink for the raw protocol log.
        session: State of the current connection.
    """

    # Connect timeout (seconds) when the settings leave it unset
    TIMEOUT = 5

    def __init__(
        self,
        settings: "SMTPConfig",
        outcome: Outcome | None = None,
        *,
        connection_factory: Callable[..., Any] = socket.create_connection,
        ssl_context: ssl.SSLContext | None = None,
    ) -> None:
        """
        Initialize the SMTP client.

        Args:
            settings: SMTP server settings.
            outcome: Where protocol lines are logged. A fresh one by default.
            connection_factory: Opens the TCP connection; called like
                                socket.create_connection(address, timeout).
            ssl_context: Context for implicit SSL and STARTTLS.
        """
        self.settings = settings
        self.outcome = outcome if outcome is not None else Outcome()
        self.session = SMTPSession()
        self._connection_factory = connection_factory
        self._ssl_context = ssl_context

    @property
    def is_connected(self) -> bool:
        """Check if a socket is open."""
        return self.session.sock is not None

    @property
    def ssl_context(self) -> ssl.SSLContext:
        if self._ssl_context is None:
            self._ssl_context = ssl.create_default_context()
        return self._ssl_context

    # =========================================================================
    # Connection Management
    # =========================================================================

    def connect(self) -> None:
        """
        Open the connection, read the greeting and say HELO.

        With encryption "ssl" the socket is wrapped before the greeting; with
        "tls" the client greets, upgrades via STARTTLS and greets again.

        Raises:
            SMTPConnectionError: Socket or TLS failure, or a greeting other
                                 than 220.
            SMTPProtocolError: HELO or STARTTLS rejected.
        """
        host, port = self.settings.host, self.settings.port
        timeout = self.settings.timeout or self.TIMEOUT
        logger.info(f"Connecting to SMTP {host}:{port}")

        try:
            sock = self._connection_factory((host, port), timeout)
        except OSError as e:
            raise SMTPConnectionError(f"Failed to connect to SMTP {host}:{port}: {e}") from e

        tls = False
        if self.settings.encryption == "ssl":
            sock = self._wrap(sock)
            tls = True

        self.session = SMTPSession(sock=sock, reader=sock.makefile("rb"), tls=tls)

        reply = self._read_reply()
        if reply.code != 220:
            raise SMTPConnectionError(
                f"Unexpected greeting from {host}: {reply.code} {reply.text}",
                code=reply.code,
            )

        if self.settings.encryption == "tls":
            self.starttls()

        self.helo()
        logger.debug(f"SMTP session ready (tls={self.session.tls})")

    def helo(self) -> SMTPReply:
        """Send HELO with the local host name."""
        name = self.settings.helo_name or local_hostname()
        return self.command(f"HELO {name}", 250)

    def starttls(self) -> None:
        """
        Upgrade the connection with STARTTLS (RFC 3207).

        The server forgets the earlier greeting after the handshake, so
        connect() sends HELO again afterwards.
        """
        self.helo()
        # RFC 3207 says 220; some servers answer 250
        self.command("STARTTLS", (220, 250))

        logger.debug("Upgrading SMTP connection via STARTTLS")
        sock = self._wrap(self.session.sock)
        self.session.reader.close()
        self.session.sock = sock
        self.session.reader = sock.makefile("rb")
        self.session.tls = True

    def _wrap(self, sock: Any) -> Any:
        try:
            return self.ssl_context.wrap_socket(sock, server_hostname=self.settings.host)
        except (ssl.SSLError, OSError) as e:
            try:
                sock.close()
            except OSError:
                pass
            raise SMTPConnectionError(f"TLS handshake with {self.settings.host} failed: {e}") from e

    def authenticate(self) -> None:
        """
        Log in with AUTH LOGIN when a username is configured.

        Raises:
            SMTPAuthenticationError: No password available, or any step
                                     answered with an unexpected code.
        """
        username = self.settings.username
        if not username:
            return

        password = self.settings.resolve_password()
        if not password:
            raise SMTPAuthenticationError(
                f"No SMTP password for {username}. Set it in the config file or with: "
                f"keyring set {self.settings.keyring_service} {username}"
            )

        logger.debug(f"Authenticating as {username}")
        self.command("AUTH LOGIN", 334, error=SMTPAuthenticationError)
        self.command(_b64(username), 334, error=SMTPAuthenticationError, secret=True)
        self.command(_b64(password), 235, error=SMTPAuthenticationError, secret=True)
        self.session.authenticated = True
        logger.debug("SMTP authentication successful")

    def quit(self) -> None:
        """Send QUIT, expect 221 and close the connection."""
        try:
            self.command("QUIT", 221)
        finally:
            self.close()

    def close(self) -> None:
        """Close the socket without any protocol exchange. Safe to repeat."""
        session, self.session = self.session, SMTPSession()
        for resource in (session.reader, session.sock):
            if resource is None:
                continue
            try:
                resource.close()
            except OSError as e:
                logger.warning(f"Error while closing SMTP connection: {e}")

    # =========================================================================
    # Transaction
    # =========================================================================

    def transact(self, sender: str, recipients: Iterable[str], payload: str) -> None:
        """
        Run one MAIL FROM / RCPT TO / DATA exchange.

        Args:
            sender: Envelope sender.
            recipients: Envelope recipients, one RCPT TO each.
            payload: Rendered headers, blank line and body.

        Raises:
            SMTPProtocolError: Any step answered with an unexpected code.
        """
        self.mail_from(sender)
        for recipient in recipients:
            self.rcpt_to(recipient)
        self.data(payload)

    def mail_from(self, sender: str) -> SMTPReply:
        return self.command(f"MAIL FROM:<{sender}>", 250)

    def rcpt_to(self, recipient: str) -> SMTPReply:
        line = f"RCPT TO:<{recipient}>"
        if self.settings.dsn:
            line += f" {DSN_NOTIFY}"
        return self.command(line, 250)

    def data(self, payload: str) -> SMTPReply:
        """
        Send the message content.

        Lines are dot-stuffed and terminated with CRLF, followed by the
        lone "." that ends the data. The server must answer 250.
        """
        self.command("DATA", 354)

        lines = dot_stuff(payload)
        for line in lines:
            self.outcome.add_log(f">> {line}")
        self._write(CRLF.join(lines + ["."]) + CRLF)
        logger.debug(f"Sent {len(lines)} lines of message data")

        return self._expect(250)

    # =========================================================================
    # Wire I/O
    # =========================================================================

    def command(
        self,
        line: str,
        expected: int | tuple[int, ...],
        *,
        error: type["SMTPError"] | None = None,
        secret: bool = False,
    ) -> SMTPReply:
        """
        Send one command line and check the reply code.

        Args:
            line: Command without the line terminator.
            expected: Acceptable reply code(s).
            error: Exception class raised on a mismatch.
            secret: Log a placeholder instead of the line.

        Returns:
            The server's reply.
        """
        shown = HIDDEN if secret else line
        self.outcome.add_log(f">> {shown}")
        logger.debug(f"SMTP >> {shown}")
        self._write(line + CRLF)
        return self._expect(expected, error)

    def _expect(
        self,
        expected: int | tuple[int, ...],
        error: type["SMTPError"] | None = None,
    ) -> SMTPReply:
        codes = (expected,) if isinstance(expected, int) else expected
        reply = self._read_reply()
        if reply.code not in codes:
            error_class = error or SMTPProtocolError
            raise error_class(
                f"Expected {'/'.join(map(str, codes))}, got {reply.code} {reply.text}",
                code=reply.code,
                text=reply.text,
            )
        return reply

    def _write(self, data: str) -> None:
        if self.session.sock is None:
            raise SMTPConnectionError("Not connected to SMTP server")
        try:
            self.session.sock.sendall(data.encode("utf-8"))
        except OSError as e:
            raise SMTPConnectionError(f"Failed to write to SMTP server: {e}") from e

    def _read_reply(self) -> SMTPReply:
        """Read one reply, following "250-" continuation lines."""
        if self.session.reader is None:
            raise SMTPConnectionError("Not connected to SMTP server")

        lines: list[str] = []
        while True:
            try:
                raw = self.session.reader.readline(MAX_LINE + 1)
            except OSError as e:
                raise SMTPConnectionError(f"Failed to read from SMTP server: {e}") from e
            if not raw:
                raise SMTPConnectionError("Connection closed by SMTP server")
            if len(raw) > MAX_LINE:
                raise SMTPProtocolError("SMTP reply line too long")

            line = raw.decode("utf-8", "replace").rstrip("\r\n")
            self.outcome.add_log(f"<< {line}")
            logger.debug(f"SMTP << {line}")

            try:
                code = int(line[:3])
            except ValueError:
                raise SMTPProtocolError(f"Malformed SMTP reply: {line!r}", text=line) from None

            lines.append(line[4:])
            if line[3:4] != "-":
                break

        self.session.last_code = code
        return SMTPReply(code=code, lines=lines)


def _b64(value: str) -> str:
    return base64.b64encode(value.encode("utf-8")).decode("ascii")


# =============================================================================
# Exceptions
# =============================================================================

class SMTPError(MailError):
    """Base exception for SMTP operations."""

    def __init__(self, message: str, code: int | None = None, text: str = "") -> None:
        super().__init__(message, code)
        self.text = text


class SMTPConnectionError(SMTPError, MailConnectionError):
    """Raised when unable to connect to (or talk to) the SMTP server."""
    pass


class SMTPAuthenticationError(SMTPError, AuthenticationError):
    """Raised when SMTP authentication fails."""
    pass


class SMTPProtocolError(SMTPError, ProtocolError):
    """Raised when a transaction step gets an unexpected reply code."""
    pass
