# =============================================================================
# Transport Base
# =============================================================================
# The common send(message) -> Outcome contract shared by every transport.
#
# A send goes through the same steps whatever the transport:
#   1. Generate a boundary and compose headers + body (mime.composer)
#   2. Wrap them in an Envelope (the immutable, wire-ready message)
#   3. Deliver once to the "To" list, or once per subscriber when the
#      message is a broadcast, pausing between subscriber deliveries
#   4. Record every error in the Outcome instead of raising
#
# Subclasses only implement deliver(), and declare their protocol name and
# line terminator.
# =============================================================================

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Callable, ClassVar, Mapping

from hawk_mailer.core import MailError, Message, Outcome
from hawk_mailer.mime import compose_body, compose_headers, new_boundary, q_encode, render_headers

if TYPE_CHECKING:
    from hawk_mailer.config import Config

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Envelope:
    """
    A composed message ready for one delivery.

    Attributes:
        sender: Envelope sender (the message's return path).
        recipients: Primary recipients of this delivery.
        copies: Cc and Bcc mailboxes, for transports that route them.
        subject: Q-encoded subject, for transports that pass it out of band.
        headers: Composed headers in wire order (read-only).
        body: Composed body.
        newline: Line terminator used in headers and body.
    """
    sender: str
    recipients: tuple[str, ...]
    subject: str
    headers: Mapping[str, str]
    body: str
    newline: str = "\n"
    copies: tuple[str, ...] = field(default=())

    def header_block(self, exclude: frozenset[str] = frozenset()) -> str:
        """Rendered header lines, optionally without some headers."""
        headers = {k: v for k, v in self.headers.items() if k not in exclude}
        return render_headers(headers, self.newline)

    def payload(self, exclude: frozenset[str] = frozenset()) -> str:
        """Header block, blank line and body."""
        return self.header_block(exclude) + self.newline + self.body


class Transport(ABC):
    """
    Base class for the mail transports.

    Usage:
        >>> transport = SMTPTransport(config)
        >>> outcome = transport.send(message)
        >>> outcome.success
        True

    Attributes:
        config: Mailer configuration.
        protocol: Protocol name, as used in the configuration file.
        newline: Line terminator expected by the transport.
    """

    protocol: ClassVar[str] = ""
    newline: ClassVar[str] = "\n"

    # Broadcasts are paced at 15 messages per minute: one every 4 seconds
    BROADCAST_PAUSE = 4.0

    def __init__(self, config: "Config", *, sleep: Callable[[float], None] = time.sleep) -> None:
        """
        Initialize the transport.

        Args:
            config: Mailer configuration.
            sleep: Called with BROADCAST_PAUSE between subscriber deliveries.
        """
        self.config = config
        self._sleep = sleep

    def compose(self, message: Message, boundary: str | None = None) -> tuple[dict[str, str], str]:
        """
        Compose the headers and body of a message for this transport.

        Raises:
            MailError: If the message cannot be composed (unreadable
                       attachment).
        """
        boundary = boundary or new_boundary()
        general = self.config.general
        headers = compose_headers(
            message,
            boundary,
            user_agent=general.user_agent,
            protocol=self.protocol,
            multipart=general.multipart,
            newline=self.newline,
        )
        body = compose_body(
            message,
            boundary,
            wordwrap_limit=general.wordwrap,
            multipart=general.multipart,
            newline=self.newline,
        )
        logger.debug(f"Composed {len(headers)} headers and {len(body)} body characters")
        return headers, body

    def send(self, message: Message) -> Outcome:
        """
        Send a message.

        Broadcast messages (subscribers set) are delivered one subscriber at a
        time with a pause between deliveries; the first failure stops the
        broadcast. Otherwise the message is delivered once to its "To" list.

        Returns:
            The Outcome; falsy when any delivery failed.
        """
        outcome = Outcome()

        try:
            headers, body = self.compose(message)
        except MailError as e:
            logger.error(f"Failed to compose message: {e}")
            outcome.add_exception(e)
            return outcome

        subject = q_encode(message.subject, message.charset, self.newline)

        if message.subscribers is not None:
            subscribers = message.subscribers
            for index, address in enumerate(subscribers):
                # Each delivery is addressed to its subscriber alone
                delivery_headers = {**headers, "To": address.email}
                envelope = Envelope(
                    sender=message.return_path,
                    recipients=(address.email,),
                    subject=subject,
                    headers=MappingProxyType(delivery_headers),
                    body=body,
                    newline=self.newline,
                )
                if not self._attempt(envelope, outcome):
                    return outcome
                if index < len(subscribers) - 1:
                    self._sleep(self.BROADCAST_PAUSE)
            outcome.success = True
            return outcome

        if not message.to:
            outcome.add_error(None, "Message has no recipients")
            return outcome

        envelope = Envelope(
            sender=message.return_path,
            recipients=tuple(message.recipients()),
            copies=tuple(message.copies()),
            subject=subject,
            headers=MappingProxyType(headers),
            body=body,
            newline=self.newline,
        )
        outcome.success = self._attempt(envelope, outcome)
        return outcome

    def _attempt(self, envelope: Envelope, outcome: Outcome) -> bool:
        recipients = ", ".join(envelope.recipients)
        try:
            self.deliver(envelope, outcome)
        except MailError as e:
            logger.error(f"Sending via {self.protocol} to {recipients} failed: {e}")
            outcome.add_exception(e)
            return False
        logger.info(f"Sent via {self.protocol} to {recipients}")
        return True

    @abstractmethod
    def deliver(self, envelope: Envelope, outcome: Outcome) -> None:
        """
        Hand one envelope to the delivery mechanism.

        Raises:
            MailError: If the delivery fails.
        """
        raise NotImplementedError
