# =============================================================================
# Message Model
# =============================================================================
# Represents an outgoing email before it is composed into wire format:
#   - Envelope information (from, to/cc/bcc, reply-to, return path)
#   - Subject and body (plain text or HTML with a plain-text fallback)
#   - Character set and transfer encoding of the text parts
#   - Attachments (files rendered as base64 MIME parts at send time)
#   - Broadcast subscribers (one delivery per subscriber)
#
# A Message is built once by the caller and is read-only afterwards. Recipient
# lists keep the difference between "not set" (None) and "set but empty" (()).
# =============================================================================

import base64
import mimetypes
import re
from dataclasses import dataclass, field
from email.utils import encode_rfc2231, make_msgid
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Iterable, Mapping

from hawk_mailer.core.address import Address
from hawk_mailer.core.errors import HeaderError, TransportError

# RFC 5322 field names: printable ASCII except the colon
HEADER_NAME_PATTERN = re.compile(r"[!-9;-~]+")


class ContentType(str, Enum):
    """Body content type of a message."""
    PLAIN = "plain"
    HTML = "html"

    @classmethod
    def from_value(cls, value: "str | ContentType") -> "ContentType":
        """
        Resolve a content type name. Unknown names fall back to PLAIN,
        and "text" is accepted as an alias for it.
        """
        if isinstance(value, cls):
            return value
        if str(value).lower() == "html":
            return cls.HTML
        return cls.PLAIN


@dataclass(frozen=True)
class Attachment:
    """
    A file attached to an outgoing message.

    The file is only read when the attachment is rendered, so building a
    Message stays cheap and free of I/O.

    Attributes:
        path: Location of the file on disk.
        filename: Name shown to the recipient. Defaults to the file's name.
        content_type: MIME type. Guessed from the filename when not given.

    Example:
        >>> attachment = Attachment(Path("report.pdf"))
        >>> attachment.content_type
        'application/pdf'
    """
    path: Path
    filename: str = ""
    content_type: str = ""

    # Base64 payload line length (RFC 2045)
    LINE_LENGTH = 76

    def __post_init__(self) -> None:
        path = Path(self.path)
        object.__setattr__(self, "path", path)
        if not self.filename:
            object.__setattr__(self, "filename", path.name)
        if not self.content_type:
            guessed, _ = mimetypes.guess_type(self.filename)
            object.__setattr__(self, "content_type", guessed or "application/octet-stream")

    def _filename_param(self, param: str) -> str:
        """Format a filename parameter, RFC 2231 encoded when not ASCII."""
        try:
            self.filename.encode("ascii")
        except UnicodeEncodeError:
            return f"{param}*={encode_rfc2231(self.filename, 'utf-8')}"
        escaped = self.filename.replace("\\", "\\\\").replace('"', '\\"')
        return f'{param}="{escaped}"'

    def render(self, newline: str = "\r\n") -> str:
        """
        Render this attachment as a MIME body part (headers, blank line,
        base64 payload). The surrounding boundary lines are added by the
        composer.

        Raises:
            TransportError: If the file cannot be read.
        """
        try:
            data = self.path.read_bytes()
        except OSError as e:
            raise TransportError(f"Cannot read attachment {self.path}: {e}") from e

        encoded = base64.b64encode(data).decode("ascii")
        payload = newline.join(
            encoded[i:i + self.LINE_LENGTH]
            for i in range(0, len(encoded), self.LINE_LENGTH)
        )

        headers = [
            f"Content-Type: {self.content_type}; {self._filename_param('name')}",
            f"Content-Disposition: attachment; {self._filename_param('filename')}",
            "Content-Transfer-Encoding: base64",
            f"Content-ID: {make_msgid(domain='hawk-mailer')}",
        ]
        return newline.join(headers) + newline * 2 + payload


def _addresses(values: "Iterable[Address | str] | None") -> tuple[Address, ...] | None:
    """Normalize a recipient list, keeping None (not set) distinct from ()."""
    if values is None:
        return None
    return tuple(v if isinstance(v, Address) else Address.parse(v) for v in values)


def _headers(values: Mapping[str, str]) -> dict[str, str]:
    """Copy the extra headers, refusing anything that would split a header line."""
    headers = {}
    for name, value in values.items():
        if not HEADER_NAME_PATTERN.fullmatch(name):
            raise HeaderError(f"Invalid header name {name!r}")
        value = str(value)
        if any(c in value for c in "\r\n\0"):
            raise HeaderError(f"Header {name} contains a control character")
        headers[name] = value
    return headers


@dataclass(frozen=True)
class Message:
    """
    An outgoing email message.

    Attributes:
        sender: The From address.
        subject: Subject line (Q-encoded when composed).
        body: Message body, plain text or HTML depending on content_type.
        to: "To" recipients, or None when not set.
        cc: "Cc" recipients, or None when not set.
        bcc: "Bcc" recipients, or None when not set.
        reply_to: Reply-To address. Defaults to the sender.
        alt_body: Plain-text fallback for HTML mail. When empty, the HTML
                  body with its markup removed is used instead.
        content_type: ContentType.PLAIN or ContentType.HTML.
        charset: Character set of the text parts.
        encoding: Content-Transfer-Encoding token of the plain-text part.
        priority: X-Priority value (1 = highest, 5 = lowest), or None.
        return_path: Envelope sender for bounces. Defaults to sender.email.
        attachments: Files to attach, or None.
        subscribers: Broadcast recipients, or None. When set, the message is
                     delivered separately to each subscriber instead of to
                     the "To" list.
        mime_version: Value of the Mime-Version header.
        headers: Extra headers emitted before the composed ones (read-only).

    Example:
        >>> message = Message(
        ...     sender=Address("alice@example.com", "Alice"),
        ...     to=[Address("bob@example.com")],
        ...     subject="Hello",
        ...     body="Hi Bob!",
        ... )
    """
    sender: Address
    subject: str = ""
    body: str = ""
    to: tuple[Address, ...] | None = None
    cc: tuple[Address, ...] | None = None
    bcc: tuple[Address, ...] | None = None
    reply_to: Address | None = None
    alt_body: str = ""
    content_type: ContentType = ContentType.PLAIN
    charset: str = "utf-8"
    encoding: str = "8bit"
    priority: int | None = None
    return_path: str = ""
    attachments: tuple[Attachment, ...] | None = None
    subscribers: tuple[Address, ...] | None = None
    mime_version: str = "1.0"
    headers: Mapping[str, str] = field(default_factory=dict, hash=False)

    def __post_init__(self) -> None:
        sender = self.sender if isinstance(self.sender, Address) else Address.parse(self.sender)
        object.__setattr__(self, "sender", sender)

        for name in ("to", "cc", "bcc", "subscribers"):
            object.__setattr__(self, name, _addresses(getattr(self, name)))

        if self.attachments is not None:
            object.__setattr__(self, "attachments", tuple(
                a if isinstance(a, Attachment) else Attachment(Path(a))
                for a in self.attachments
            ))

        # Reply-To and the return path always resolve to something usable
        reply_to = self.reply_to or sender
        if not isinstance(reply_to, Address):
            reply_to = Address.parse(reply_to)
        object.__setattr__(self, "reply_to", reply_to)
        if not self.return_path:
            object.__setattr__(self, "return_path", sender.email)

        object.__setattr__(self, "content_type", ContentType.from_value(self.content_type))
        object.__setattr__(self, "headers", MappingProxyType(_headers(self.headers)))

    @property
    def is_html(self) -> bool:
        """Returns True for HTML messages."""
        return self.content_type is ContentType.HTML

    def recipients(self) -> list[str]:
        """Mailboxes of the "To" list (empty when not set)."""
        return [address.email for address in self.to or ()]

    def copies(self, include_bcc: bool = True) -> list[str]:
        """Mailboxes of the Cc list, followed by Bcc when requested."""
        emails = [address.email for address in self.cc or ()]
        if include_bcc:
            emails.extend(address.email for address in self.bcc or ())
        return emails
