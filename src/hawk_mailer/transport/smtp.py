# =============================================================================
# SMTP Transport
# =============================================================================
# Delivers through SMTPClient. Each delivery opens its own connection, runs
# one transaction and closes it again; nothing is kept open between sends.
#
# Bcc is part of the composed headers (it decides the RCPT TO list) but is
# left out of the header block written after DATA, so the other recipients
# never see it.
# =============================================================================

import logging
import socket
import ssl
from typing import Any, Callable

from hawk_mailer.core import ConfigurationError, MailError, Outcome
from hawk_mailer.smtp import SMTPClient
from hawk_mailer.transport.base import Envelope, Transport

logger = logging.getLogger(__name__)

# Headers that stay out of the DATA payload
PRIVATE_HEADERS = frozenset({"Bcc"})


class SMTPTransport(Transport):
    """Delivers by talking SMTP to the configured server."""

    protocol = "smtp"
    newline = "\r\n"

    def __init__(
        self,
        config,
        *,
        connection_factory: Callable[..., Any] = socket.create_connection,
        ssl_context: ssl.SSLContext | None = None,
        **kwargs,
    ) -> None:
        """
        Initialize the transport.

        Args:
            config: Mailer configuration.
            connection_factory: Passed on to SMTPClient.
            ssl_context: Passed on to SMTPClient.
        """
        super().__init__(config, **kwargs)
        self._connection_factory = connection_factory
        self._ssl_context = ssl_context

    def client(self, outcome: Outcome) -> SMTPClient:
        """Create a client for one delivery."""
        return SMTPClient(
            self.config.smtp,
            outcome,
            connection_factory=self._connection_factory,
            ssl_context=self._ssl_context,
        )

    def deliver(self, envelope: Envelope, outcome: Outcome) -> None:
        if not self.config.smtp.host:
            raise ConfigurationError("SMTP host is not configured")

        client = self.client(outcome)
        try:
            client.connect()
            client.authenticate()
            client.transact(
                envelope.sender,
                [*envelope.recipients, *envelope.copies],
                envelope.payload(exclude=PRIVATE_HEADERS),
            )
            client.quit()
        except MailError:
            # No QUIT after a failure, just drop the connection
            client.close()
            raise
