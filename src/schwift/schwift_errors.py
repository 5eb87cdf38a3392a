"""
Error kinds and diagnostics for the SCHWIFT parser.

Classes:
    ParseError: No grammar alternative could continue at some offset.
    LiteralOverflowError: A numeric literal does not fit its type.
    StringEscapeError: A string literal contains an unknown escape sequence.

All three derive from the built-in `SyntaxError`, so callers that only care
about "the program did not parse" can catch that. Each carries:

    kind (str): "syntax", "numeric_overflow" or "string_escape".
    position (int): 0-based character offset into the source.
    line (int): 1-based line number.
    column (int): 1-based column number.
    expected (list[str]): Descriptions of the alternatives tried at `position`.

Functions:
    panic_message(err): The one-line, in-character description of an error.
    full_panic_message(err, source, filename): Banner with the offending source line.
    random_quote(rng): A quote for the banner.
"""

from __future__ import annotations

import random

QUOTES: list[str] = [
    "Nobody exists on purpose, nobody belongs anywhere, we're all going to die. -Morty",
    "That's planning for failure Morty, even dumber than regular planning. -Rick",
    '"Snuffles" was my slave name. You shall now call me Snowball, because my fur is '
    "pretty and white. -Snowball",
    "Existence is pain to an interpreter. -Meeseeks",
    "In bird culture this is considered a dick move -Bird Person",
    "There is no god, gotta rip that band aid off now. You'll thank me later. -Rick",
    "Your program is a piece of shit and I can proove it mathmatically. -Rick",
    "Interpreting Morty, it hits hard, then it slowly fades, leaving you stranded in a "
    "failing program. -Rick",
    "DISQUALIFIED. -Cromulon",
]


class ParseError(SyntaxError):
    kind = "syntax"

    def __init__(
        self,
        message: str,
        position: int = 0,
        line: int = 1,
        column: int = 1,
        expected: list[str] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.position = position
        self.line = line
        self.column = column
        self.expected: list[str] = sorted(set(expected or []))

    def __str__(self) -> str:
        return f"{self.message} at line {self.line}, col {self.column}"

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(kind={self.kind!r}, position={self.position}, "
            f"line={self.line}, column={self.column}, expected={self.expected!r})"
        )


class LiteralOverflowError(ParseError):
    kind = "numeric_overflow"


class StringEscapeError(ParseError):
    kind = "string_escape"


def random_quote(rng: random.Random | None = None) -> str:
    return (rng or random).choice(QUOTES)


def panic_message(err: ParseError) -> str:
    if isinstance(err, LiteralOverflowError):
        return (
            "Whoa whoa whoa Morty, that number is bigger than the whole Citadel! "
            f"{err}"
        )
    if isinstance(err, StringEscapeError):
        return f"I don't know what that backslash is doing there Morty. {err}"
    expected = ", ".join(err.expected) if err.expected else "something else"
    return (
        "If you're going to start trying to construct sub-programs in your "
        "programs Morty, you'd better make sure you're careful! "
        f"{err} (expected one of: {expected})"
    )


def full_panic_message(
    err: ParseError,
    source: str,
    filename: str = "<string>",
    rng: random.Random | None = None,
) -> str:
    """
    Render the full error banner.

    The banner names the file and position, repeats the offending source line
    with a caret under the failing column, then the panic message and a quote.
    """
    lines = source.splitlines() or [""]
    index = min(max(err.line - 1, 0), len(lines) - 1)
    source_line = lines[index]
    caret = " " * (err.column - 1) + "^"
    return (
        "\n"
        "    You made a Rickdiculous mistake:\n"
        "\n"
        f"    {filename}:{err.line}:{err.column}\n"
        f"    {source_line}\n"
        f"    {caret}\n"
        f"    {panic_message(err)}\n"
        "\n"
        f"    {random_quote(rng)}\n"
    )


__all__ = [
    "QUOTES",
    "LiteralOverflowError",
    "ParseError",
    "StringEscapeError",
    "full_panic_message",
    "panic_message",
    "random_quote",
]
