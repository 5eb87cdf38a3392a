"""
Character-level scanning for the SCHWIFT programming language.

SCHWIFT has no separate token pass: keywords such as `show me what you got!`
contain spaces, and operators such as `moresquanch` are ordinary letters, so
the parser works directly on characters. This module provides the pieces it
scans with:

Classes:
    CharacterStream: Backtrackable cursor over the source with line/column lookup.
    Lexer: Terminal recognizers (identifiers, numbers, strings, keywords, newlines).

Functions:
    unescape(raw): Decode the body of a string literal.
    escape(text): Inverse of `unescape`, used when emitting source.

Every `Lexer.scan_*` / `Lexer.match_*` method either consumes its match and
returns it, or leaves the stream where it was and returns None/False.

Example:
    >>> lexer = Lexer(CharacterStream("3.14"))
    >>> lexer.scan_float()
    '3.14'
"""

from __future__ import annotations

from bisect import bisect_right

from schwift.schwift_errors import StringEscapeError

HORIZONTAL_WHITESPACE = " \t"

_ESCAPES = {
    "\\": "\\",
    '"': '"',
    "'": "'",
    "n": "\n",
    "t": "\t",
    "r": "\r",
    "0": "\0",
}

_REVERSE_ESCAPES = {
    "\\": "\\\\",
    '"': '\\"',
    "\n": "\\n",
    "\t": "\\t",
    "\r": "\\r",
    "\0": "\\0",
}


def is_identifier_start(ch: str) -> bool:
    return ch == "_" or ("a" <= ch <= "z") or ("A" <= ch <= "Z")


def is_identifier_char(ch: str) -> bool:
    return is_identifier_start(ch) or ("0" <= ch <= "9")


def is_digit(ch: str) -> bool:
    return "0" <= ch <= "9"


class CharacterStream:
    """
    A cursor over SCHWIFT source text.

    Unlike a one-way stream, the position can be saved with `mark()` and
    restored with `reset()`; the parser relies on that for backtracking.
    Line and column numbers are computed on demand from the offset.

    Attributes:
        source (str): The input source string.
        position (int): Current index in the source.
    """

    def __init__(self, source: str, position: int = 0):
        self.source = source
        self.position = position
        self._line_starts = [0]
        for index, char in enumerate(source):
            if char == "\n":
                self._line_starts.append(index + 1)

    def next(self) -> str:
        """Consumes and returns the next character in the stream."""
        if self.position >= len(self.source):
            raise EOFError(
                f"CharacterStreamError: Attempted to read past end of source at position=<{self.position}>"
            )
        char = self.source[self.position]
        self.position += 1
        return char

    def peek(self, offset: int = 0) -> str:
        """Returns the character `offset` places ahead, or "" past either end."""
        index = self.position + offset
        if index < 0 or index >= len(self.source):
            return ""
        return self.source[index]

    def end_of_file(self) -> bool:
        return self.position >= len(self.source)

    def startswith(self, text: str) -> bool:
        return self.source.startswith(text, self.position)

    def mark(self) -> int:
        return self.position

    def reset(self, mark: int) -> None:
        self.position = mark

    def line_col(self, offset: int | None = None) -> tuple[int, int]:
        """Returns the 1-based (line, column) of `offset` (default: the current position)."""
        if offset is None:
            offset = self.position
        line_index = bisect_right(self._line_starts, offset) - 1
        return line_index + 1, offset - self._line_starts[line_index] + 1

    def snippet(self, start: int, end: int) -> str:
        return self.source[start:end]


class Lexer:
    """Terminal recognizers over a CharacterStream.

    Attributes:
        stream (CharacterStream): The source stream to scan.
    """

    def __init__(self, stream: CharacterStream) -> None:
        self.stream = stream

    def peek(self) -> str:
        return self.stream.peek()

    def advance(self) -> str:
        return self.stream.next()

    def skip_whitespace(self) -> int:
        """Skips spaces and tabs (never newlines). Returns how many were skipped."""
        start = self.stream.position
        while self.peek() != "" and self.peek() in HORIZONTAL_WHITESPACE:
            self.advance()
        return self.stream.position - start

    def skip_all_whitespace(self) -> int:
        """Skips spaces, tabs, carriage returns and line feeds."""
        start = self.stream.position
        while self.peek() != "" and self.peek() in " \t\r\n":
            self.advance()
        return self.stream.position - start

    def at_word_boundary(self) -> bool:
        return not is_identifier_char(self.peek())

    def match_text(self, text: str) -> bool:
        """Consumes `text` if the stream continues with it exactly."""
        if self.stream.startswith(text):
            self.stream.position += len(text)
            return True
        return False

    def match_keyword(self, text: str) -> bool:
        """Like `match_text`, but a keyword ending in a letter may not run into an identifier."""
        start = self.stream.mark()
        if not self.match_text(text):
            return False
        if is_identifier_char(text[-1]) and not self.at_word_boundary():
            self.stream.reset(start)
            return False
        return True

    def scan_identifier(self) -> str | None:
        if not is_identifier_start(self.peek()):
            return None
        ident = ""
        while is_identifier_char(self.peek()):
            ident += self.advance()
        return ident

    def scan_digits(self) -> str:
        digits = ""
        while is_digit(self.peek()):
            digits += self.advance()
        return digits

    def scan_float(self) -> str | None:
        """digit+ "." digit+"""
        start = self.stream.mark()
        whole = self.scan_digits()
        if whole and self.match_text("."):
            fraction = self.scan_digits()
            if fraction:
                return f"{whole}.{fraction}"
        self.stream.reset(start)
        return None

    def scan_int(self) -> str | None:
        """Optional minus sign, then digit+"""
        start = self.stream.mark()
        sign = "-" if self.match_text("-") else ""
        digits = self.scan_digits()
        if digits:
            return sign + digits
        self.stream.reset(start)
        return None

    def scan_string(self) -> str | None:
        """
        Scans a double-quoted string literal and returns its raw body.

        The body may span lines. A backslash always takes the following
        character with it, so `\\"` does not end the literal; decoding the
        body is left to `unescape`.
        """
        start = self.stream.mark()
        if not self.match_text('"'):
            return None
        raw = ""
        while not self.stream.end_of_file():
            ch = self.peek()
            if ch == '"':
                self.advance()
                return raw
            if ch == "\\":
                raw += self.advance()
                if self.stream.end_of_file():
                    break
            raw += self.advance()
        self.stream.reset(start)
        return None

    def scan_newline(self) -> str | None:
        """[ \\t]* ("\\n" | "\\r\\n")"""
        start = self.stream.mark()
        self.skip_whitespace()
        if self.match_text("\n") or self.match_text("\r\n"):
            return self.stream.snippet(start, self.stream.position)
        self.stream.reset(start)
        return None


def unescape(raw: str, start: int = 0, stream: CharacterStream | None = None) -> str:
    """
    Decodes the raw body of a string literal.

    Args:
        raw (str): The characters between the quotes.
        start (int): Source offset of the first character of `raw`, for error positions.
        stream (CharacterStream | None): Used to turn offsets into line/column.

    Raises:
        StringEscapeError: On an escape other than \\\\ \\" \\' \\n \\t \\r \\0.
    """
    out = []
    index = 0
    while index < len(raw):
        ch = raw[index]
        if ch != "\\":
            out.append(ch)
            index += 1
            continue
        code = raw[index + 1] if index + 1 < len(raw) else ""
        if code not in _ESCAPES:
            position = start + index
            line, col = stream.line_col(position) if stream else (1, position + 1)
            raise StringEscapeError(
                f"Invalid escape sequence '\\{code}' in string literal",
                position,
                line,
                col,
                expected=[f"'\\{key}'" for key in _ESCAPES],
            )
        out.append(_ESCAPES[code])
        index += 2
    return "".join(out)


def escape(text: str) -> str:
    return "".join(_REVERSE_ESCAPES.get(ch, ch) for ch in text)


__all__ = ["CharacterStream", "Lexer", "escape", "unescape"]
