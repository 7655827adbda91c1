# =============================================================================
# SMTP Module
# =============================================================================
# Sends email by speaking SMTP (Simple Mail Transfer Protocol) directly over
# a socket.
#
# Features:
#   - Plain, implicit SSL and STARTTLS connections
#   - AUTH LOGIN with keyring-backed passwords
#   - MAIL FROM / RCPT TO / DATA / QUIT with reply-code checks
#   - Optional delivery status notifications (NOTIFY=SUCCESS,DELAY,FAILURE)
# =============================================================================

from hawk_mailer.smtp.client import (
    SMTPClient,
    SMTPReply,
    SMTPSession,
    SMTPError,
    SMTPConnectionError,
    SMTPAuthenticationError,
    SMTPProtocolError,
)

__all__ = [
    "SMTPClient",
    "SMTPReply",
    "SMTPSession",
    "SMTPError",
    "SMTPConnectionError",
    "SMTPAuthenticationError",
    "SMTPProtocolError",
]
