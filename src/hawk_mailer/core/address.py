# =============================================================================
# Address Model
# =============================================================================
# A mailbox plus an optional display name. Used for From, Reply-To, To, Cc,
# Bcc and broadcast subscribers.
#
# Addresses are validated once, at construction time, with email-validator
# (the same library pydantic's EmailStr uses). DNS checks are off, and local
# domains such as "localhost" or "corp.local" are accepted, since the mail
# and sendmail transports submit to the local machine.
# =============================================================================

from dataclasses import dataclass
from email.utils import parseaddr

import email_validator
from email_validator import EmailNotValidError, validate_email

from hawk_mailer.core.errors import AddressError

# Reserved names that still make sense for local submission. email-validator
# rejects every special-use name; its documented way to allow one is to take
# it off SPECIAL_USE_DOMAIN_NAMES.
LOCAL_DOMAINS = ("local", "localhost")

for _domain in LOCAL_DOMAINS:
    if _domain in email_validator.SPECIAL_USE_DOMAIN_NAMES:
        email_validator.SPECIAL_USE_DOMAIN_NAMES.remove(_domain)


@dataclass(frozen=True)
class Address:
    """
    An email address with an optional display name.

    Attributes:
        email: The mailbox, e.g. "alice@example.com".
        name: Display name, e.g. "Alice Smith". Empty when not set.

    Example:
        >>> str(Address("alice@example.com", "Alice"))
        '"Alice" <alice@example.com>'
        >>> str(Address("alice@example.com"))
        'alice@example.com'
    """
    email: str
    name: str = ""

    def __post_init__(self) -> None:
        email = (self.email or "").strip()
        try:
            validate_email(email, check_deliverability=False, globally_deliverable=False)
        except EmailNotValidError as e:
            raise AddressError(f"Invalid email address {email!r}: {e}") from e

        name = (self.name or "").strip()
        if any(c in name for c in "\r\n\0"):
            raise AddressError(f"Display name of {email!r} contains a control character")

        # frozen dataclass: bypass __setattr__ to store the cleaned values
        object.__setattr__(self, "email", email)
        object.__setattr__(self, "name", name)

    @classmethod
    def parse(cls, value: str) -> "Address":
        """
        Build an Address from an extended address string.

        Accepts both "Joe Smith <joe@example.com>" and a bare mailbox.
        """
        name, email = parseaddr(value)
        if not email:
            raise AddressError(f"Invalid email address {value!r}")
        return cls(email=email, name=name)

    @property
    def domain(self) -> str:
        """The part after the @ sign."""
        return self.email.rsplit("@", 1)[1]

    def __str__(self) -> str:
        if not self.name:
            return self.email
        escaped = self.name.replace("\\", "\\\\").replace('"', '\\"')
        return f'"{escaped}" <{self.email}>'
