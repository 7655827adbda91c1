# =============================================================================
# Transport Module
# =============================================================================
# Interchangeable ways of delivering a composed message:
#   - mail:      a local mail() style submission function
#   - sendmail:  a piped sendmail-compatible process
#   - smtp:      a direct SMTP conversation with a server
#
# All of them share Transport.send(message) -> Outcome.
# =============================================================================

from hawk_mailer.transport.base import Envelope, Transport
from hawk_mailer.transport.local import LocalTransport, system_mail
from hawk_mailer.transport.sendmail import SendmailTransport
from hawk_mailer.transport.smtp import SMTPTransport
from hawk_mailer.transport.validation import safe_envelope_sender, validate_email_for_shell

# Protocol name (as written in the config file) -> transport class
TRANSPORTS: dict[str, type[Transport]] = {
    LocalTransport.protocol: LocalTransport,
    SendmailTransport.protocol: SendmailTransport,
    SMTPTransport.protocol: SMTPTransport,
}

__all__ = [
    "Envelope",
    "Transport",
    "LocalTransport",
    "SendmailTransport",
    "SMTPTransport",
    "TRANSPORTS",
    "system_mail",
    "safe_envelope_sender",
    "validate_email_for_shell",
]
