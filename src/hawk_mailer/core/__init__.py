# =============================================================================
# Hawk-Mailer Core Module
# =============================================================================
# Domain models and exceptions for Hawk-Mailer. These have no dependency on
# the composer or the transports, so they can be imported anywhere without
# causing circular imports.
#
#   - Address: A mailbox with an optional display name
#   - Message: An outgoing email (envelope, subject, body, attachments)
#   - Attachment: A file rendered as a base64 MIME part
#   - ContentType: plain or html
#   - Outcome: Success flag, errors and protocol log of a send
# =============================================================================

from hawk_mailer.core.address import Address
from hawk_mailer.core.errors import (
    AddressError,
    AuthenticationError,
    ConfigurationError,
    HeaderError,
    MailConnectionError,
    MailError,
    ProtocolError,
    TransportError,
)
from hawk_mailer.core.message import Attachment, ContentType, Message
from hawk_mailer.core.outcome import Outcome

__all__ = [
    "Address",
    "Attachment",
    "ContentType",
    "Message",
    "Outcome",
    # Errors
    "MailError",
    "ConfigurationError",
    "MailConnectionError",
    "AuthenticationError",
    "ProtocolError",
    "TransportError",
    "AddressError",
    "HeaderError",
]
