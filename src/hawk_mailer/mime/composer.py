# =============================================================================
# MIME Composer
# =============================================================================
# Turns a Message into wire-ready headers and body. No I/O apart from reading
# attachment files when they are rendered.
#
# Body layouts:
#   - plain text:            the body, in the message's transfer encoding
#   - HTML, multipart off:   word-wrapped, quoted-printable HTML
#   - HTML, multipart on:    multipart/alternative
#                              ├── text/plain  (alt body, or HTML sans markup)
#                              └── text/html   (word-wrapped, quoted-printable)
#   - with attachments:      multipart/mixed
#                              ├── one of the layouts above
#                              └── one base64 part per attachment
#
# Boundaries are generated once per send (timestamp + random suffix). Nothing
# checks the body for a collision with the boundary token.
# =============================================================================

import base64
import secrets
import time
import uuid
from email.utils import formatdate

from bs4 import BeautifulSoup

from hawk_mailer.core import Address, Message
from hawk_mailer.mime.encoding import (
    DEFAULT_WRAP,
    normalize_newlines,
    q_encode,
    quoted_printable,
    strip_unwrap,
    wordwrap,
)

# Text shown by mail readers that do not understand MIME
PREAMBLE = (
    "This is a multi-part message in MIME format.",
    "Your email application may not support this format.",
)

# Prefix that turns an alternative boundary into the matching mixed boundary
MIXED_PREFIX = "mixed_"

# Protocols that get a Bcc header (everything else must never leak it)
BCC_PROTOCOLS = frozenset({"smtp"})

# Protocols that pass the subject outside the header block
OUT_OF_BAND_SUBJECT_PROTOCOLS = frozenset({"mail"})


def new_boundary() -> str:
    """
    Create a boundary token for one send.

    Example:
        >>> new_boundary()
        '__hawk_mailer_alt_17f0c1d2e3a4b5c6_9f8e7d6c5b4a'
    """
    return f"__hawk_mailer_alt_{time.time_ns():x}_{secrets.token_hex(6)}"


def mixed_boundary(boundary: str) -> str:
    """The multipart/mixed boundary paired with an alternative boundary."""
    return MIXED_PREFIX + boundary


def format_address(address: Address, charset: str = "utf-8", newline: str = "\r\n") -> str:
    """An address for a header, with a non-ASCII display name Q-encoded."""
    if address.name and not address.name.isascii():
        return f"{q_encode(address.name, charset, newline)} <{address.email}>"
    return str(address)


def strip_markup(html: str) -> str:
    """Remove every markup tag from an HTML document, keeping its text."""
    return BeautifulSoup(html, "html.parser").get_text()


def encode_text(text: str, encoding: str, charset: str, newline: str) -> str:
    """
    Apply a Content-Transfer-Encoding to a text part.

    "quoted-printable" and "base64" transform the text; 7bit, 8bit and
    binary leave it as it is.
    """
    token = encoding.lower()
    if token == "quoted-printable":
        return quoted_printable(text, newline, charset)
    if token == "base64":
        encoded = base64.b64encode(text.encode(charset, "xmlcharrefreplace")).decode("ascii")
        return newline.join(encoded[i:i + 76] for i in range(0, len(encoded), 76))
    return text


def content_headers(message: Message, boundary: str, multipart: bool = True) -> dict[str, str]:
    """
    Content-Type and Content-Transfer-Encoding for the message body
    (without attachments).
    """
    if not message.is_html:
        return {
            "Content-Type": f"text/plain; charset={message.charset}",
            "Content-Transfer-Encoding": message.encoding,
        }
    if not multipart:
        return {
            "Content-Type": f"text/html; charset={message.charset}",
            "Content-Transfer-Encoding": "quoted-printable",
        }
    return {"Content-Type": f'multipart/alternative; boundary="{boundary}"'}


def compose_headers(
    message: Message,
    boundary: str,
    *,
    user_agent: str,
    protocol: str,
    multipart: bool = True,
    newline: str = "\r\n",
) -> dict[str, str]:
    """
    Build the header map for a message.

    Insertion order is wire order. The Subject is Q-encoded, Bcc is only
    present for protocols in BCC_PROTOCOLS, and the Subject is left out for
    protocols that pass it out of band.

    Args:
        message: The message being sent.
        boundary: Boundary token generated for this send.
        user_agent: Value for User-Agent and X-Mailer.
        protocol: Name of the active transport ("mail", "sendmail", "smtp").
        multipart: Send HTML as multipart/alternative.
        newline: Line terminator used when folding long encoded subjects.

    Returns:
        Ordered mapping of header name to value.
    """
    headers = dict(message.headers)

    headers["User-Agent"] = headers["X-Mailer"] = user_agent
    headers["X-Sender"] = message.sender.email
    if message.priority is not None:
        headers["X-Priority"] = str(message.priority)
    headers["Message-ID"] = f"<{uuid.uuid4().hex}.{message.return_path}>"
    headers["Date"] = formatdate(localtime=True)
    headers["Mime-Version"] = message.mime_version

    if message.to is not None:
        headers["To"] = ", ".join(message.recipients())
    headers["From"] = format_address(message.sender, message.charset, newline)
    if message.cc is not None:
        headers["Cc"] = ", ".join(a.email for a in message.cc)
    if message.bcc is not None and protocol in BCC_PROTOCOLS:
        headers["Bcc"] = ", ".join(a.email for a in message.bcc)
    headers["Reply-To"] = format_address(message.reply_to, message.charset, newline)

    if protocol not in OUT_OF_BAND_SUBJECT_PROTOCOLS:
        headers["Subject"] = q_encode(message.subject, message.charset, newline)

    if message.attachments:
        headers["Content-Type"] = f'multipart/mixed; boundary="{mixed_boundary(boundary)}"'
    else:
        headers.update(content_headers(message, boundary, multipart))

    return headers


def render_headers(headers: dict[str, str], newline: str = "\r\n") -> str:
    """Join a header map into "Name: value" lines, each ending in newline."""
    return "".join(f"{name}: {value}{newline}" for name, value in headers.items())


def _alternative_body(message: Message, boundary: str, limit: int, newline: str) -> str:
    alt_body = message.alt_body or strip_markup(message.body)
    charset = message.charset
    parts = [
        newline.join(PREAMBLE),
        "",
        f"--{boundary}",
        f"Content-Type: text/plain; charset={charset}",
        f"Content-Transfer-Encoding: {message.encoding}",
        "",
        encode_text(alt_body, message.encoding, charset, newline),
        "",
        f"--{boundary}",
        f"Content-Type: text/html; charset={charset}",
        "Content-Transfer-Encoding: quoted-printable",
        "",
        quoted_printable(wordwrap(message.body, limit, newline), newline, charset),
        "",
        f"--{boundary}--",
    ]
    return newline.join(parts)


def _flat_body(message: Message, boundary: str, limit: int, multipart: bool, newline: str) -> str:
    if message.is_html and multipart:
        return _alternative_body(message, boundary, limit, newline)
    if message.is_html:
        return quoted_printable(wordwrap(message.body, limit, newline), newline, message.charset)
    return encode_text(message.body, message.encoding, message.charset, newline)


def compose_body(
    message: Message,
    boundary: str,
    *,
    wordwrap_limit: int = DEFAULT_WRAP,
    multipart: bool = True,
    newline: str = "\n",
) -> str:
    """
    Build the wire-ready body of a message.

    Attachments turn the body into multipart/mixed: the text body (or the
    multipart/alternative structure) becomes the first part, each attachment
    follows as its own part. {unwrap} markers are removed last and every
    line ending is converted to ``newline``.

    Args:
        message: The message being sent.
        boundary: Boundary token generated for this send.
        wordwrap_limit: Column limit for the HTML part.
        multipart: Send HTML as multipart/alternative.
        newline: Line terminator of the target transport.

    Returns:
        The complete body.

    Raises:
        TransportError: If an attachment file cannot be read.
    """
    body = _flat_body(message, boundary, wordwrap_limit, multipart, newline)

    if message.attachments:
        mixed = mixed_boundary(boundary)
        inner = render_headers(content_headers(message, boundary, multipart), newline)
        parts = [
            newline.join(PREAMBLE),
            "",
            f"--{mixed}",
            inner + newline + body,
        ]
        for attachment in message.attachments:
            parts.append(f"--{mixed}")
            parts.append(attachment.render(newline))
        parts.append(f"--{mixed}--")
        body = newline.join(parts)

    return normalize_newlines(strip_unwrap(body), newline)
