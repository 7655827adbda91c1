# =============================================================================
# Local Mail Transport
# =============================================================================
# Hands the message to a local mail-submission function with the signature
#
#   mail_function(to, subject, body, headers, arguments) -> bool
#
# in the spirit of the classic mail() primitive: recipients and subject are
# passed separately, the header block never contains Subject or Bcc, and
# extra command-line arguments (the -f envelope sender) come as a list.
#
# The default function feeds the message to the local sendmail binary.
# =============================================================================

import logging
import subprocess
from functools import partial
from typing import Callable

from hawk_mailer.core import Outcome, TransportError
from hawk_mailer.transport.base import Envelope, Transport
from hawk_mailer.transport.validation import safe_envelope_sender

logger = logging.getLogger(__name__)

MailFunction = Callable[[str, str, str, str, list[str]], bool]


def system_mail(
    to: str,
    subject: str,
    body: str,
    headers: str,
    arguments: list[str],
    *,
    mailpath: str = "/usr/sbin/sendmail",
) -> bool:
    """
    Submit a message through the local sendmail binary.

    To (unless already among the headers) and Subject are written in front
    of the header block, the way mail() does it.

    Returns:
        True if the mailer accepted the message.
    """
    newline = "\r\n"
    lead = ""
    if not any(line.lower().startswith("to:") for line in headers.splitlines()):
        lead += f"To: {to}{newline}"
    lead += f"Subject: {subject}{newline}"

    message = lead + headers + newline + body
    result = subprocess.run(
        [mailpath, "-t", "-i", *arguments],
        input=message.encode("utf-8"),
        capture_output=True,
        check=False,
    )
    if result.returncode != 0:
        logger.error(f"{mailpath} exited with status {result.returncode}")
    return result.returncode == 0


class LocalTransport(Transport):
    """Delivers through a local mail() style function."""

    protocol = "mail"
    newline = "\r\n"

    def __init__(self, config, *, mail_function: MailFunction | None = None, **kwargs) -> None:
        """
        Initialize the transport.

        Args:
            config: Mailer configuration.
            mail_function: Submission function. Defaults to system_mail using
                           the configured mailpath.
        """
        super().__init__(config, **kwargs)
        self.mail_function = mail_function or partial(system_mail, mailpath=config.general.mailpath)

    def deliver(self, envelope: Envelope, outcome: Outcome) -> None:
        recipients = ",".join(envelope.recipients)

        arguments: list[str] = []
        sender = safe_envelope_sender(envelope.sender)
        if sender:
            arguments = ["-f", sender]

        outcome.add_log(f">> mail({recipients}) {' '.join(arguments)}".rstrip())
        try:
            accepted = self.mail_function(
                recipients,
                envelope.subject,
                envelope.body,
                envelope.header_block(),
                arguments,
            )
        except OSError as e:
            raise TransportError(f"Mail submission failed: {e}") from e

        if not accepted:
            raise TransportError("Mail submission was not accepted")
