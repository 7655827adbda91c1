# =============================================================================
# MIME Module
# =============================================================================
# Builds the wire representation of a Message:
#   - Header assembly (User-Agent, Message-ID, To/Cc/Bcc, Q-encoded Subject)
#   - Body assembly (plain, HTML, multipart/alternative, multipart/mixed)
#   - Text encodings (word-wrap, quoted-printable, RFC 2047 Q-encoding)
# =============================================================================

from hawk_mailer.mime.composer import (
    compose_body,
    compose_headers,
    new_boundary,
    render_headers,
    strip_markup,
)
from hawk_mailer.mime.encoding import (
    q_encode,
    quoted_printable,
    strip_unwrap,
    wordwrap,
)

__all__ = [
    # Composer
    "compose_headers",
    "compose_body",
    "new_boundary",
    "render_headers",
    "strip_markup",
    # Encodings
    "wordwrap",
    "quoted_printable",
    "q_encode",
    "strip_unwrap",
]
