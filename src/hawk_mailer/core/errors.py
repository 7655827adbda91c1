# =============================================================================
# Mailer Exceptions
# =============================================================================
# One hierarchy for everything that can go wrong between building a message
# and handing it to a transport:
#
#   MailError
#     ├── ConfigurationError   (missing/invalid settings, e.g. no SMTP host)
#     ├── MailConnectionError  (socket/TLS failure, bad greeting)
#     ├── AuthenticationError  (AUTH LOGIN step rejected)
#     ├── ProtocolError        (MAIL FROM / RCPT TO / DATA / QUIT mismatch)
#     ├── TransportError       (sendmail process or mail primitive failed)
#     ├── AddressError         (address fails mailbox or shell-safety checks)
#     └── HeaderError          (line break or bad name in a header)
#
# Transports catch these inside send() and record them in the Outcome; they
# never propagate to the caller of send().
# =============================================================================


class MailError(Exception):
    """
    Base exception for mail composition and delivery.

    Attributes:
        code: Numeric status code when one exists (SMTP reply code,
              process exit status), otherwise None.
    """

    def __init__(self, message: str, code: int | None = None) -> None:
        super().__init__(message)
        self.code = code


class ConfigurationError(MailError):
    """Raised when required configuration is missing or invalid."""
    pass


class MailConnectionError(MailError):
    """Raised when a connection cannot be opened or upgraded."""
    pass


class AuthenticationError(MailError):
    """Raised when the server rejects an authentication step."""
    pass


class ProtocolError(MailError):
    """
    Raised when a server reply does not carry the expected status code.

    Attributes:
        code: The status code the server actually sent.
        text: The raw reply text (without the trailing line break).
    """

    def __init__(self, message: str, code: int | None = None, text: str = "") -> None:
        super().__init__(message, code)
        self.text = text


class TransportError(MailError):
    """Raised when a local delivery mechanism fails."""
    pass


class AddressError(MailError, ValueError):
    """Raised when an address is not a valid (or not a shell-safe) mailbox."""
    pass


class HeaderError(MailError, ValueError):
    """Raised when a header name or value would break the header block."""
    pass
