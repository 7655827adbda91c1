# =============================================================================
# Send Outcome
# =============================================================================
# What a send reports back to its caller: a success flag, the errors that
# occurred (in order, as (code, message) pairs) and the raw protocol lines
# exchanged with the server. Callers decide how to surface these.
# =============================================================================

from dataclasses import dataclass, field

from hawk_mailer.core.errors import MailError


@dataclass
class Outcome:
    """
    Result of one send (or one broadcast).

    Attributes:
        success: True when every delivery attempt was accepted.
        errors: (code, message) pairs. code is an SMTP reply code or a
                process exit status, or None when there is none.
        log: Raw request/response lines, prefixed with ">>" (sent) or
             "<<" (received).

    Usage:
        >>> outcome = transport.send(message)
        >>> if not outcome:
        ...     for code, text in outcome.errors:
        ...         print(code, text)
    """
    success: bool = False
    errors: list[tuple[int | None, str]] = field(default_factory=list)
    log: list[str] = field(default_factory=list)

    def add_error(self, code: int | None, message: str) -> None:
        """Record an error."""
        self.errors.append((code, message))

    def add_exception(self, error: MailError) -> None:
        """Record a MailError, keeping its status code."""
        self.add_error(error.code, str(error))

    def add_log(self, line: str) -> None:
        """Record a raw protocol line."""
        self.log.append(line)

    def __bool__(self) -> bool:
        return self.success
