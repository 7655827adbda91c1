# =============================================================================
# MIME Text Encodings
# =============================================================================
# Pure string transforms used by the composer:
#
#   - wordwrap():          keep body lines within the RFC 2045 limit without
#                          breaking URLs or {unwrap}...{/unwrap} spans
#   - quoted_printable():  Content-Transfer-Encoding: quoted-printable
#                          (RFC 2045 section 6.7)
#   - q_encode():          RFC 2047 "Q" encoded-words for header values
#   - strip_unwrap():      drop the {unwrap} markers, keep what they wrap
#
# No I/O and no module state; every function returns a new string.
# =============================================================================

import re
import textwrap
from email import quoprimime

# RFC 2045 line limit (excluding the line terminator)
DEFAULT_WRAP = 76

# {unwrap}...{/unwrap} marks content that must reach the wire untouched
# (tracking pixels, long inline links, pre-formatted blocks)
UNWRAP_PATTERN = re.compile(r"\{unwrap\}(.*?)\{/unwrap\}", re.IGNORECASE | re.DOTALL)
_PROTECTED_SPAN = re.compile(r"\{unwrap\}.+?\{/unwrap\}", re.IGNORECASE | re.DOTALL)
_PLACEHOLDER = re.compile(r"\{\{unwrapped(\d+)\}\}")
_TOKEN = re.compile(r"(\{\{unwrapped\d+\}\}|\s+)")

# Over-long "words" that look like links are never hard-split
URL_PATTERN = re.compile(r"\[url.+\]|://|www\.", re.IGNORECASE)

# Bytes that can always be used literally in quoted-printable (RFC 2049):
# ' ( ) + , - . / : = ? plus digits and letters. "=" is in the set but is
# still escaped, since it is the escape character itself.
QP_SAFE_BYTES = frozenset(
    b"'()+,-./:=?"
    b"0123456789"
    b"ABCDEFGHIJKLMNOPQRSTUVWXYZ"
    b"abcdefghijklmnopqrstuvwxyz"
)

# Maximum quoted-printable output line, including the "=" soft break
QP_LINE_LENGTH = 76

# Q-encoded header lines are folded before this column, leaving room for the
# closing "?=" within the 75 characters RFC 2047 allows per encoded-word
Q_LINE_LENGTH = 73


def normalize_newlines(text: str, newline: str = "\n") -> str:
    """Convert CRLF, CR and LF line endings to a single convention."""
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    if newline != "\n":
        text = text.replace("\n", newline)
    return text


def strip_unwrap(text: str) -> str:
    """
    Replace every {unwrap}...{/unwrap} span with its inner content.

    Example:
        >>> strip_unwrap("a {unwrap}<img src=x>{/unwrap} b")
        'a <img src=x> b'
    """
    return UNWRAP_PATTERN.sub(lambda match: match.group(1), text)


def wordwrap(text: str, limit: int = DEFAULT_WRAP, newline: str = "\n") -> str:
    """
    Wrap text so that no line is longer than ``limit`` characters.

    Lines are broken at whitespace only. A single word longer than the
    limit is cut into ``limit``-sized chunks, unless it looks like a URL
    ("://", "www." or a "[url ...]" marker), in which case it is left alone.
    {unwrap}...{/unwrap} spans are lifted out before wrapping and put back
    afterwards, markers included, so wrapping already-wrapped text leaves
    them exactly as they were.

    Args:
        text: Text to wrap. Any line ending convention is accepted.
        limit: Maximum line length. Values below 1 mean the RFC 2045 default.
        newline: Line terminator used to join the output lines.

    Returns:
        The wrapped text, lines joined with ``newline``.
    """
    if isinstance(limit, bool) or limit < 1:
        limit = DEFAULT_WRAP

    text = normalize_newlines(text)

    # Collapse trailing whitespace before each line break
    text = re.sub(r"[ \t]+\n", "\n", text)

    protected: list[str] = []

    def _protect(match: re.Match) -> str:
        protected.append(match.group(0))
        return "{{unwrapped%d}}" % (len(protected) - 1)

    text = _PROTECTED_SPAN.sub(_protect, text)

    wrapper = textwrap.TextWrapper(
        width=limit,
        break_long_words=False,     # long words are handled below
        break_on_hyphens=False,
        expand_tabs=False,
        replace_whitespace=False,
    )

    lines: list[str] = []
    for paragraph in text.split("\n"):
        for line in wrapper.wrap(paragraph) or [""]:
            if _width(line, protected) <= limit:
                lines.append(line)
            else:
                lines.extend(_refit(line, limit, protected))

    output = newline.join(lines)

    if protected:
        output = _PLACEHOLDER.sub(lambda match: _span(match, protected), output)

    return output


def _span(match: re.Match, protected: list[str]) -> str:
    index = int(match.group(1))
    return protected[index] if index < len(protected) else match.group(0)


def _width(line: str, protected: list[str]) -> int:
    """Length of a line once its placeholders are put back."""
    return len(_PLACEHOLDER.sub(lambda match: _span(match, protected), line))


def _refit(line: str, limit: int, protected: list[str]) -> list[str]:
    """
    Break an over-long line again, word by word.

    Protected spans and URL-like words are never cut; when one does not fit
    it starts a new line, where it may stand alone past the limit. Any other
    word longer than the limit is cut into ``limit``-sized chunks.
    """
    lines: list[str] = []
    current, width, gap = "", 0, ""

    for token in _TOKEN.split(line):
        if not token:
            continue
        if token.isspace():
            # Leading indentation of the first line is kept
            gap = token if current or not lines else ""
            continue

        placeholder = _PLACEHOLDER.fullmatch(token)
        atomic = bool(placeholder) or bool(URL_PATTERN.search(token))
        size = len(_span(placeholder, protected)) if placeholder else len(token)

        if current and width + len(gap) + size > limit:
            lines.append(current)
            current, width, gap = "", 0, ""

        if not atomic and len(gap) + size > limit:
            token = gap + token
            gap = ""
            while len(token) > limit:
                lines.append(token[:limit])
                token = token[limit:]
            size = len(token)

        current += gap + token
        width += len(gap) + size
        gap = ""

    if current or not lines:
        lines.append(current)
    return lines


def quoted_printable(text: str, newline: str = "\n", charset: str = "utf-8") -> str:
    """
    Encode text as quoted-printable (RFC 2045 section 6.7).

    Letters, digits and ' ( ) + , - . / : ? pass through; "=" and every other
    byte become "=XX". Spaces and tabs are kept mid-line but escaped at the
    end of a line. Output lines are soft-wrapped with a trailing "=" so that
    none exceeds 76 characters.

    With a CRLF terminator the standard library encoder does the work. Any
    other terminator (some MTAs only accept bare LF) goes through the manual
    encoder below, which produces the same byte-level result.

    Args:
        text: Text to encode. {unwrap} markers are dropped first.
        newline: Line terminator for hard and soft line breaks.
        charset: Character set used to turn text into bytes. Characters the
                 charset cannot represent become HTML character references.

    Returns:
        The encoded text.
    """
    text = text.replace("{unwrap}", "").replace("{/unwrap}", "")
    text = normalize_newlines(text)

    if newline == "\r\n":
        latin = text.encode(charset, "xmlcharrefreplace").decode("latin-1")
        return quoprimime.body_encode(latin, maxlinelen=QP_LINE_LENGTH, eol=newline)

    output: list[str] = []
    for line in text.split("\n"):
        raw = line.encode(charset, "xmlcharrefreplace")
        last = len(raw) - 1
        current = ""

        for i, byte in enumerate(raw):
            if byte in (0x20, 0x09):
                # Whitespace survives unless it would end the line
                character = f"={byte:02X}" if i == last else chr(byte)
            elif byte == 0x3D or byte not in QP_SAFE_BYTES:
                character = f"={byte:02X}"
            else:
                character = chr(byte)

            if len(current) + len(character) >= QP_LINE_LENGTH:
                output.append(current + "=")
                current = ""
            current += character

        output.append(current)

    return newline.join(output)


def q_encode(text: str, charset: str = "utf-8", newline: str = "\r\n") -> str:
    """
    Encode a header value as RFC 2047 "Q" encoded-words.

    Every character is written as the =XX form of its bytes in ``charset``.
    The bytes of one character always stay in the same encoded-word. When a
    line would pass column 73 the word is closed and a folded continuation
    line (leading space, new "=?charset?Q?" prefix) is started.

    Example:
        >>> q_encode("Hi", "utf-8")
        '=?utf-8?Q?=48=69?='

    Args:
        text: Header value. CR and LF are removed first.
        charset: Character set named in the encoded-words.
        newline: Line terminator used when folding.

    Returns:
        One or more encoded-words, folded across lines when needed.
    """
    text = text.replace("\r", "").replace("\n", "")
    prefix = f"=?{charset}?Q?"

    output = prefix
    length = len(prefix)
    for character in text:
        encoded = "".join(f"={byte:02X}" for byte in character.encode(charset, "replace"))
        if length + len(encoded) > Q_LINE_LENGTH:
            output += f"?={newline} {prefix}{encoded}"
            length = 1 + len(prefix) + len(encoded)
        else:
            output += encoded
            length += len(encoded)

    return output + "?="
