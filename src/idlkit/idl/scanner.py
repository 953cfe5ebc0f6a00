"""
IDL Lexical Scanner
===================

This module implements the low-level scanning primitives used by both
the preprocessor and the declaration parser. There is no token stream:
each primitive looks at raw text from a position and reports how many
characters it consumed.

Every primitive has the signature

    primitive(text, pos, ...) -> (consumed, value)

where ``consumed`` is the number of characters advanced from ``pos`` and
``value`` is the text that was read. The Cursor class wraps a text and
a position and exposes the same primitives as advancing methods.

Primitives
----------
| Function        | Reads                                          |
|-----------------|------------------------------------------------|
| skip_spaces     | spaces and newlines (tabs/CR removed earlier)  |
| read_name       | identifier [A-Za-z_:][A-Za-z0-9_:]*            |
| read_digit      | hex (0x..) or decimal/float literal            |
| read_token      | identifier chars, or chars from a symbol set   |
| read_block      | delimiter-balanced span, strings respected     |
| expect_symbol   | asserts and consumes one symbol                |
| get_symbol      | peeks at the next symbol                       |

Capacities
----------
The ``size`` arguments bound how long a value may be, mirroring fixed
destination buffers: a value longer than ``size - 1`` characters raises
BufferOverflowError.

Example
-------
>>> from idlkit.idl.scanner import read_block
>>> read_block("prefix(a(b)c)suffix", 6, "(", ")")
(7, 'a(b)c')
"""

import string
from typing import Optional

from idlkit.errors import SourceLocation
from idlkit.idl.errors import (
    BufferOverflowError,
    InvalidNameError,
    UnbalancedDelimitersError,
    UnexpectedEndOfInputError,
    UnexpectedSymbolError,
)


# =============================================================================
# Character Classes and Default Capacities
# =============================================================================

SPACE_CHARS = " \n"
NAME_START_CHARS = frozenset(string.ascii_letters + "_:")
NAME_CHARS = frozenset(string.ascii_letters + string.digits + "_:")
DIGIT_CHARS = frozenset(string.digits)
HEX_CHARS = frozenset(string.hexdigits)

NAME_SIZE = 256
TOKEN_SIZE = 256
DIGIT_SIZE = 256
BLOCK_SIZE = 4096


# =============================================================================
# Location Helpers
# =============================================================================

def line_number(text: str, pos: int) -> int:
    """Return the 1-based line number of ``pos`` in ``text``."""
    return text.count("\n", 0, max(0, min(pos, len(text)))) + 1


def location_of(text: str, pos: int, filename: str = "<input>") -> SourceLocation:
    """Build a SourceLocation (line and column) for a position."""
    pos = max(0, min(pos, len(text)))
    line_start = text.rfind("\n", 0, pos) + 1
    return SourceLocation(filename, line_number(text, pos), pos - line_start + 1)


def line_at(text: str, pos: int) -> str:
    """Return the full source line containing ``pos`` (without newline)."""
    pos = max(0, min(pos, len(text)))
    start = text.rfind("\n", 0, pos) + 1
    end = text.find("\n", pos)
    if end < 0:
        end = len(text)
    return text[start:end]


def _context(text: str, pos: int, filename: str) -> dict:
    return {
        "location": location_of(text, pos, filename),
        "source_line": line_at(text, pos),
    }


# =============================================================================
# Scanning Primitives
# =============================================================================

def skip_spaces(text: str, pos: int = 0) -> int:
    """Return the number of spaces and newlines starting at ``pos``."""
    end = pos
    length = len(text)
    while end < length and text[end] in SPACE_CHARS:
        end += 1
    return end - pos


def read_name(
    text: str,
    pos: int = 0,
    size: int = NAME_SIZE,
    filename: str = "<input>",
) -> tuple[int, str]:
    """
    Read an identifier after optional spaces.

    Args:
        text: Source text
        pos: Start position
        size: Capacity of the name
        filename: Used for error locations

    Returns:
        Tuple of (consumed, name)

    Raises:
        UnexpectedEndOfInputError: No text left after the spaces
        InvalidNameError: The first character cannot start a name
        BufferOverflowError: The name is longer than ``size - 1``
    """
    start = pos
    pos += skip_spaces(text, pos)

    if pos >= len(text):
        raise UnexpectedEndOfInputError("a name", **_context(text, pos, filename))
    if text[pos] not in NAME_START_CHARS:
        raise InvalidNameError(text[pos], **_context(text, pos, filename))

    begin = pos
    while pos < len(text) and text[pos] in NAME_CHARS:
        if pos - begin >= size - 1:
            raise BufferOverflowError("read_name", size, **_context(text, pos, filename))
        pos += 1

    return pos - start, text[begin:pos]


def read_digit(
    text: str,
    pos: int = 0,
    size: int = DIGIT_SIZE,
    filename: str = "<input>",
) -> tuple[int, str]:
    """
    Read a numeric literal after optional spaces.

    Recognizes ``0x``/``0X`` hexadecimal literals, and decimal literals
    with an optional fraction, exponent (``e``/``E`` with optional sign)
    and ``f``/``F`` suffix. Each extension is only accepted directly after
    a digit, the exponent sign only directly after ``e``/``E``.

    Returns:
        Tuple of (consumed, literal). The literal is empty when no digit
        starts at the position.
    """
    start = pos
    pos += skip_spaces(text, pos)
    begin = pos
    length = len(text)

    def check_capacity() -> None:
        if pos - begin >= size - 1:
            raise BufferOverflowError("read_digit", size, **_context(text, pos, filename))

    if text.startswith(("0x", "0X"), pos):
        pos += 2
        while pos < length and text[pos] in HEX_CHARS:
            check_capacity()
            pos += 1
    else:
        while pos < length:
            ch = text[pos]
            prev = text[pos - 1] if pos > 0 else ""
            if ch in DIGIT_CHARS:
                pass
            elif ch == "." and prev in DIGIT_CHARS:
                pass
            elif ch in "eE" and prev in DIGIT_CHARS:
                pass
            elif ch in "+-" and prev in ("e", "E"):
                pass
            elif ch in "fF" and prev in DIGIT_CHARS:
                pass
            else:
                break
            check_capacity()
            pos += 1

    return pos - start, text[begin:pos]


def read_token(
    text: str,
    pos: int = 0,
    symbols: Optional[str] = None,
    size: int = TOKEN_SIZE,
    filename: str = "<input>",
) -> tuple[int, str]:
    """
    Read a raw token after optional spaces.

    Without ``symbols`` the token is a run of identifier characters; with
    ``symbols`` it is a run of characters from that set. At end of input
    an empty token is returned and nothing is consumed.
    """
    start = pos
    pos += skip_spaces(text, pos)

    if pos >= len(text):
        return 0, ""

    allowed = NAME_CHARS if symbols is None else frozenset(symbols)
    begin = pos
    while pos < len(text) and text[pos] in allowed:
        if pos - begin >= size - 1:
            raise BufferOverflowError("read_token", size, **_context(text, pos, filename))
        pos += 1

    return pos - start, text[begin:pos]


def read_block(
    text: str,
    pos: int = 0,
    opening: Optional[str] = None,
    closing: Optional[str] = None,
    size: int = BLOCK_SIZE,
    require_close: bool = False,
    filename: str = "<input>",
) -> tuple[int, str]:
    """
    Read a delimiter-balanced span.

    Leading spaces are skipped. If the current character is ``opening``
    it is consumed as the opening delimiter. The scan then tracks:

    - nested ``opening``/``closing`` pairs (only when both are given)
    - nested parentheses, independently
    - double-quoted strings, copied verbatim (escaped quotes included)
      without affecting any counter

    The scan ends after consuming ``closing`` seen at zero nesting outside
    a string. The closing delimiter is not part of the returned block. A
    backslash-newline outside a string is a line continuation and is
    dropped.

    Args:
        text: Source text
        pos: Start position
        opening: Opening delimiter, or None
        closing: Closing delimiter, or None to read to end of input
        size: Capacity of the block
        require_close: Raise when input ends before ``closing``
        filename: Used for error locations

    Returns:
        Tuple of (consumed, block)

    Raises:
        UnbalancedDelimitersError: A closing delimiter with nothing open
        BufferOverflowError: The block is longer than ``size - 1``
        UnexpectedEndOfInputError: ``require_close`` and no ``closing``
    """
    start = pos
    length = len(text)
    while pos < length and text[pos] == " ":
        pos += 1

    if pos >= length:
        if require_close:
            raise UnexpectedEndOfInputError(
                f"'{closing}'", **_context(text, pos, filename)
            )
        return pos - start, ""

    in_string = False
    parens = 0
    counter = 0
    block: list[str] = []

    if opening is not None and text[pos] == opening:
        if opening == '"':
            in_string = True
        if opening == "(":
            parens += 1
        counter += 1
        pos += 1

    closed = False
    while pos < length:
        if len(block) >= size - 1:
            raise BufferOverflowError("read_block", size, **_context(text, pos, filename))

        ch = text[pos]
        if not in_string:
            if ch == '"':
                in_string = True
            else:
                if ch == "(":
                    parens += 1
                elif ch == ")":
                    parens -= 1
                    if parens < 0:
                        raise UnbalancedDelimitersError(
                            "(", ")", **_context(text, pos, filename)
                        )
                if ch == "\\" and text.startswith("\n", pos + 1):
                    pos += 2
                    continue
                if opening is not None and closing is not None:
                    if ch == opening:
                        counter += 1
                    elif ch == closing:
                        counter -= 1
                        if counter < 0:
                            raise UnbalancedDelimitersError(
                                opening, closing, **_context(text, pos, filename)
                            )
            if ch == closing and counter == 0 and parens == 0:
                pos += 1
                closed = True
                break
            block.append(ch)
            pos += 1
        else:
            if ch == '"' and text[pos - 1] != "\\":
                in_string = False
                if ch == closing:
                    pos += 1
                    closed = True
                    break
            block.append(ch)
            pos += 1

    if require_close and not closed:
        raise UnexpectedEndOfInputError(f"'{closing}'", **_context(text, pos, filename))

    return pos - start, "".join(block)


def expect_symbol(
    text: str,
    pos: int,
    symbol: str,
    filename: str = "<input>",
) -> int:
    """
    Assert that the next non-space character is ``symbol`` and consume it.

    Returns:
        Number of characters consumed (spaces plus the symbol)

    Raises:
        UnexpectedEndOfInputError: Input ended before the symbol
        UnexpectedSymbolError: A different symbol was found
    """
    start = pos
    pos += skip_spaces(text, pos)
    if pos >= len(text):
        raise UnexpectedEndOfInputError(f"'{symbol}'", **_context(text, pos, filename))
    if text[pos] != symbol:
        raise UnexpectedSymbolError(text[pos], f"'{symbol}'", **_context(text, pos, filename))
    return pos + 1 - start


def get_symbol(
    text: str,
    pos: int,
    symbols: Optional[str] = None,
    filename: str = "<input>",
) -> str:
    """
    Peek at the next non-space character without consuming it.

    Returns an empty string at end of input when no symbol set is given.

    Raises:
        UnexpectedSymbolError: ``symbols`` given and the character (or end
            of input) is not one of them
    """
    pos += skip_spaces(text, pos)
    ch = text[pos] if pos < len(text) else ""
    if symbols is not None and (not ch or ch not in symbols):
        expected = " or ".join(f"'{s}'" for s in symbols)
        raise UnexpectedSymbolError(
            ch or "end of input", expected, **_context(text, pos, filename)
        )
    return ch


# =============================================================================
# Cursor
# =============================================================================

class Cursor:
    """
    A position over an immutable text buffer.

    Each method calls the matching primitive at the current position,
    advances by the consumed count and returns the value read.

    Example:
        cursor = Cursor("struct Foo { int a; };")
        cursor.read_token()     # 'struct'
        cursor.read_name()      # 'Foo'
        cursor.read_block("{", "}", require_close=True)  # ' int a; '

    Attributes:
        text: The buffer being scanned
        pos: Current position
        filename: Source name used in error locations
    """

    def __init__(self, text: str, pos: int = 0, filename: str = "<input>"):
        self.text = text
        self.pos = pos
        self.filename = filename

    def __repr__(self) -> str:
        return f"Cursor({self.filename}:{self.line}, pos={self.pos})"

    @property
    def at_end(self) -> bool:
        return self.pos >= len(self.text)

    @property
    def remaining(self) -> str:
        return self.text[self.pos:]

    @property
    def line(self) -> int:
        return line_number(self.text, self.pos)

    def peek(self, offset: int = 0) -> str:
        """Return the character at ``pos + offset`` or '' past the end."""
        index = self.pos + offset
        if 0 <= index < len(self.text):
            return self.text[index]
        return ""

    def advance(self, count: int = 1) -> int:
        """Move forward by ``count`` characters, clamped to the end."""
        count = max(0, min(count, len(self.text) - self.pos))
        self.pos += count
        return count

    def location(self) -> SourceLocation:
        return location_of(self.text, self.pos, self.filename)

    def current_line(self) -> str:
        return line_at(self.text, self.pos)

    def skip_spaces(self) -> int:
        return self.advance(skip_spaces(self.text, self.pos))

    def read_name(self, size: int = NAME_SIZE) -> str:
        consumed, name = read_name(self.text, self.pos, size, self.filename)
        self.pos += consumed
        return name

    def read_digit(self, size: int = DIGIT_SIZE) -> str:
        consumed, digits = read_digit(self.text, self.pos, size, self.filename)
        self.pos += consumed
        return digits

    def read_token(self, symbols: Optional[str] = None, size: int = TOKEN_SIZE) -> str:
        consumed, token = read_token(self.text, self.pos, symbols, size, self.filename)
        self.pos += consumed
        return token

    def read_block(
        self,
        opening: Optional[str] = None,
        closing: Optional[str] = None,
        size: int = BLOCK_SIZE,
        require_close: bool = False,
    ) -> str:
        consumed, block = read_block(
            self.text, self.pos, opening, closing, size, require_close, self.filename
        )
        self.pos += consumed
        return block

    def expect_symbol(self, symbol: str) -> None:
        self.pos += expect_symbol(self.text, self.pos, symbol, self.filename)

    def get_symbol(self, symbols: Optional[str] = None) -> str:
        return get_symbol(self.text, self.pos, symbols, self.filename)
