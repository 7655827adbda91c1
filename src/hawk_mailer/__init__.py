# =============================================================================
# Hawk-Mailer: MIME Composition and Delivery
# =============================================================================
#
# Hawk-Mailer composes email (headers, multipart MIME bodies, attachments)
# and delivers it through one of three transports.
#
# Features:
#   - multipart/alternative HTML mail with a plain-text fallback
#   - Quoted-printable bodies and RFC 2047 encoded subjects
#   - Word-wrapping that never splits URLs or {unwrap} spans
#   - A hand-written SMTP client (SSL, STARTTLS, AUTH LOGIN)
#   - mail() style and piped sendmail transports with shell-safe senders
#   - Paced broadcasts to subscriber lists
#   - XDG Base Directory compliant configuration
#
# =============================================================================

__version__ = "0.1.0"
__app_name__ = "hawk-mailer"

# Main entry point - this is what gets called by the 'hawk-mailer' command
from hawk_mailer.app import main

__all__ = ["main", "__version__", "__app_name__"]
