# =============================================================================
# Shell-Safe Address Validation
# =============================================================================
# The envelope sender ends up on a sendmail command line ("-f <sender>").
# A crafted address such as "a@b.com; rm -rf /" must never get there, so
# before an address is used as an argument it has to pass a stricter check
# than ordinary mailbox syntax:
#
#   1. The domain is converted to ASCII (IDNA), so internationalized domains
#      are compared in the form that reaches the command line.
#   2. email-validator must accept the result without changing it.
#   3. The result must match [a-z0-9._+-]+@[a-z0-9.-]{1,253} in full.
#
# An address that fails is not an error for the send: the transport simply
# leaves out -f and lets the system pick its default envelope sender.
# =============================================================================

import logging
import re

from email_validator import EmailNotValidError, validate_email

from hawk_mailer.core import AddressError

logger = logging.getLogger(__name__)

SHELL_SAFE_PATTERN = re.compile(r"[a-z0-9._+-]+@[a-z0-9.-]{1,253}", re.IGNORECASE)


def validate_email_for_shell(email: str) -> str:
    """
    Check that an address is safe to pass as a command-line argument.

    Args:
        email: The address to check.

    Returns:
        The address with its domain in ASCII form.

    Raises:
        AddressError: If the address is not a plain, shell-safe mailbox.
    """
    local, at, domain = email.rpartition("@")
    if not at or not local or not domain:
        raise AddressError(f"Not a mailbox: {email!r}")

    try:
        ascii_domain = domain.encode("idna").decode("ascii")
    except UnicodeError as e:
        raise AddressError(f"Cannot convert domain of {email!r} to ASCII: {e}") from e

    candidate = f"{local}@{ascii_domain}"
    try:
        validated = validate_email(
            candidate,
            check_deliverability=False,
            allow_smtputf8=False,
            globally_deliverable=False,
        )
    except EmailNotValidError as e:
        raise AddressError(f"Invalid mailbox {email!r}: {e}") from e

    # email-validator only lowercases the domain; anything else means the
    # input was not in canonical form
    if (validated.ascii_email or "").lower() != candidate.lower():
        raise AddressError(f"Mailbox {email!r} is not in canonical form")

    if not SHELL_SAFE_PATTERN.fullmatch(candidate):
        raise AddressError(f"Mailbox {email!r} contains characters unsafe for a shell")

    return candidate


def safe_envelope_sender(email: str) -> str | None:
    """
    The envelope sender to pass with -f, or None when it must be left out.
    """
    try:
        return validate_email_for_shell(email)
    except AddressError as e:
        logger.warning(f"Not passing envelope sender to the mailer: {e}")
        return None
