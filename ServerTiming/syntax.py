"""
RFC7230 Header Syntax for ServerTiming.

Token and quoted-string handling shared by the Server-Timing codec.
"""

import string


# tchar from RFC7230 section 3.2.6
TOKEN_CHARS = frozenset(string.ascii_letters + string.digits + "!#$%&'*+-.^_`|~")

# OWS
WHITESPACE = " \t"


class HeaderFormatError(ValueError):
    """Raised when a header value is structurally malformed."""

    def __init__(self, message: str, fragment: str) -> None:
        super().__init__(f"{message}: {fragment!r}")
        self.fragment = fragment


def is_token(value: str) -> bool:
    """Check if value is a non-empty RFC7230 token."""
    return bool(value) and all(char in TOKEN_CHARS for char in value)


def header_safe(value: str) -> str:
    """
    Replace characters that cannot appear in a header field value.

    Control characters other than HTAB (CR and LF included) become a space
    and characters outside Latin-1 become "?". obs-text (0x80-0xFF) is kept.
    """
    chars = []
    for char in value:
        code = ord(char)
        if (code < 0x20 and char != "\t") or code == 0x7F:
            chars.append(" ")
        elif code > 0xFF:
            chars.append("?")
        else:
            chars.append(char)
    return "".join(chars)


def quote(value: str) -> str:
    """Return value as a bare token if it is one, otherwise as a quoted-string."""
    if is_token(value):
        return value

    escaped = header_safe(value).replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def encode_param(name: str, value: str) -> str:
    """Encode a single name=value parameter."""
    return f"{name}={quote(value)}"


def split_list(value: str) -> list[str]:
    """
    Split a comma-separated header value into its elements.

    Commas inside quoted-strings do not split. Empty elements and
    surrounding whitespace are dropped, as RFC7230 section 7 allows.

    Raises:
        HeaderFormatError: If a quoted-string is never closed.
    """
    elements: list[str] = []
    current: list[str] = []
    in_quotes = False
    escaped = False

    for char in value:
        if in_quotes:
            current.append(char)
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_quotes = False
            continue

        if char == ",":
            elements.append("".join(current))
            current = []
            continue

        if char == '"':
            in_quotes = True
        current.append(char)

    if in_quotes:
        raise HeaderFormatError("unterminated quoted-string", "".join(current).strip(WHITESPACE))

    elements.append("".join(current))

    return [element.strip(WHITESPACE) for element in elements if element.strip(WHITESPACE)]


def _skip_whitespace(text: str, pos: int) -> int:
    while pos < len(text) and text[pos] in WHITESPACE:
        pos += 1
    return pos


def _read_token(text: str, pos: int) -> tuple[str, int]:
    start = pos
    while pos < len(text) and text[pos] in TOKEN_CHARS:
        pos += 1
    return text[start:pos], pos


def _read_quoted(text: str, pos: int) -> tuple[str, int]:
    """Read a quoted-string starting at the opening quote."""
    chars: list[str] = []
    pos += 1

    while pos < len(text):
        char = text[pos]
        if char == "\\":
            if pos + 1 >= len(text):
                raise HeaderFormatError("dangling escape in quoted-string", text)
            chars.append(text[pos + 1])
            pos += 2
            continue
        if char == '"':
            return "".join(chars), pos + 1
        chars.append(char)
        pos += 1

    raise HeaderFormatError("unterminated quoted-string", text)


def parse_value_and_params(element: str) -> tuple[str, dict[str, str]]:
    """
    Parse a single list element of the form ``value;name=param;...``.

    Parameter names are case-insensitive and returned lowercased. A
    parameter without ``=`` maps to the empty string. If a name repeats,
    the first occurrence is kept.

    Returns:
        The leading token and the parameters in the order they appeared.

    Raises:
        HeaderFormatError: If the element does not follow the grammar.
    """
    value, pos = _read_token(element, 0)
    if not value:
        raise HeaderFormatError("expected a token", element)

    params: dict[str, str] = {}
    pos = _skip_whitespace(element, pos)

    while pos < len(element):
        if element[pos] != ";":
            raise HeaderFormatError("unexpected data after parameter", element[pos:])

        pos = _skip_whitespace(element, pos + 1)
        name, pos = _read_token(element, pos)
        if not name:
            raise HeaderFormatError("expected a parameter name", element[pos:] or element)

        pos = _skip_whitespace(element, pos)
        param = ""
        if pos < len(element) and element[pos] == "=":
            pos = _skip_whitespace(element, pos + 1)
            if pos < len(element) and element[pos] == '"':
                param, pos = _read_quoted(element, pos)
            else:
                param, pos = _read_token(element, pos)
            pos = _skip_whitespace(element, pos)

        params.setdefault(name.lower(), param)

    return value, params
