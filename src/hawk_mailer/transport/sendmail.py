# =============================================================================
# Sendmail Transport
# =============================================================================
# Pipes the composed message into a sendmail-compatible executable:
#
#   <mailpath> -oi [-f <envelope sender>] -t
#
# -t makes sendmail read the recipients from the To/Cc headers, -oi stops a
# lone "." line from ending the input early. The envelope sender is only
# passed when it is shell-safe (see transport.validation).
# =============================================================================

import logging
import subprocess

from hawk_mailer.core import Outcome, TransportError
from hawk_mailer.transport.base import Envelope, Transport
from hawk_mailer.transport.validation import safe_envelope_sender

logger = logging.getLogger(__name__)


class SendmailTransport(Transport):
    """Delivers through a piped sendmail process."""

    protocol = "sendmail"
    newline = "\n"

    def command(self, envelope: Envelope) -> list[str]:
        """Argument vector for one delivery."""
        arguments = [self.config.general.mailpath, "-oi"]
        sender = safe_envelope_sender(envelope.sender)
        if sender:
            arguments += ["-f", sender]
        arguments.append("-t")
        return arguments

    def deliver(self, envelope: Envelope, outcome: Outcome) -> None:
        arguments = self.command(envelope)
        outcome.add_log(f">> {' '.join(arguments)}")
        logger.debug(f"Running {arguments}")

        try:
            result = subprocess.run(
                arguments,
                input=envelope.payload().encode("utf-8"),
                capture_output=True,
                check=False,
            )
        except OSError as e:
            raise TransportError(f"Could not run {arguments[0]}: {e}") from e

        if result.returncode != 0:
            detail = (result.stderr or b"").decode("utf-8", "replace").strip()
            raise TransportError(
                f"{arguments[0]} exited with status {result.returncode}"
                + (f": {detail}" if detail else ""),
                code=result.returncode,
            )
