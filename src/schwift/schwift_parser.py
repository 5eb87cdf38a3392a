"""
SCHWIFT Language Parser

Parses SCHWIFT source text into structured abstract syntax trees (ASTs).

The grammar is a prioritized-choice grammar: every rule lists its
alternatives in a fixed order, tries them one after another from the same
position, and takes the first that matches. A failed alternative rewinds the
stream before the next one is tried. Most statements start with an
identifier, so the order of the alternatives decides what a line means and
must not be rearranged. The recursive rules (expressions, statements,
blocks) are memoized per position, which keeps deeply parenthesized input
linear.

Supported Constructs
--------------------
- Values: `3.14`, `-7`, `"text"`, `rick` (true), `morty` (false)
- Expressions:
    * Forced evaluation: `{ expr }`
    * Binary forms, always parenthesized: `(a + b)`, `(x moresquanch 1)`
    * List access: `xs[0]`, list length: `xs squanch`
    * Calls: `f(1, 2)`, negation: `!x`
- Statements:
    * Variables: `x squanch 1`, `squanch x`
    * Lists: `xs on a cob`, `xs assimilate 1`, `xs[0] squanch 2`, `squanch xs[0]`
    * Functions: `f(a, b) :< ... >:`, calls `f(1, 2)`, `return expr`
    * Control flow: `if`/`else`, `while`, `normal plan :< >: plan for failure :< >:`
    * I/O: `show me what you got expr`, `show me what you got! expr`, `portal gun x`
    * Native libraries: `microverse "lib.so" :< ... >:`

Parser Behavior
---------------
- Fails fast: the first position where no alternative can continue raises
  `ParseError`. There is no recovery and nothing is silently dropped.
- Errors report the farthest offset any alternative reached, with the set of
  things that would have been accepted there.
- Every statement node records the exact source span it was parsed from.
- Nesting depth is bounded by `RECURSION_LIMIT`; input nested deeper than
  that raises `ParseError` instead of exhausting the interpreter stack.

Entry Points
------------
- `parse()`: Parse a full program into a list of statements.
- `parse_statement()`, `parse_expression()`, `parse_value()`, `parse_operator()`,
  `parse_block()`, `parse_params()`, `parse_args()`, `parse_newline()`: Parse the
  whole input as exactly one of that construct.

Raises
------
ParseError
    Raised when the input does not match the grammar.
LiteralOverflowError
    Raised when a numeric literal does not fit its type.
StringEscapeError
    Raised when a string literal contains an unknown escape.
"""

from __future__ import annotations

import functools
import logging
import math
import sys
import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import Any, TypeVar

from schwift.schwift_ast import ASTNode
from schwift.schwift_constants import (
    ASSIMILATE,
    BLOCK_CLOSE,
    BLOCK_OPEN,
    CATCH,
    DYLIB_LOAD,
    ELSE,
    FALSE_KEYWORD,
    IF,
    INPUT,
    INT_MAX,
    INT_MIN,
    LIST_NEW,
    PRINT,
    PRINT_NO_NL,
    RETURN,
    SQUANCH,
    TRUE_KEYWORD,
    TRY,
    WHILE,
    Operator,
    operator_table,
)
from schwift.schwift_errors import LiteralOverflowError, ParseError
from schwift.schwift_lexer import CharacterStream, Lexer, unescape

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Each nesting level costs about four Python frames.
RECURSION_LIMIT = 5000

_limit_lock = threading.Lock()
_active_parses = 0
_saved_limit = 0


@contextmanager
def _deep_recursion() -> Iterator[None]:
    """Raises the interpreter recursion limit while any parse is running."""
    global _active_parses, _saved_limit
    with _limit_lock:
        if _active_parses == 0:
            _saved_limit = sys.getrecursionlimit()
            if _saved_limit < RECURSION_LIMIT:
                sys.setrecursionlimit(RECURSION_LIMIT)
        _active_parses += 1
    try:
        yield
    finally:
        with _limit_lock:
            _active_parses -= 1
            if _active_parses == 0:
                sys.setrecursionlimit(_saved_limit)


def memoize(rule: Callable[["Parser"], T | None]) -> Callable[["Parser"], T | None]:
    """Caches a rule's result and end position per start position."""
    name = rule.__name__

    @functools.wraps(rule)
    def wrapper(self: "Parser") -> T | None:
        key = (name, self.stream.position)
        if key in self._memo:
            result, end = self._memo[key]
            self.stream.reset(end)
            return result
        start = self.stream.mark()
        result = rule(self)
        if result is None:
            self.stream.reset(start)
        self._memo[key] = (result, self.stream.position)
        return result

    return wrapper


class Parser:
    """
    SCHWIFT Parser Class

    Turns one source string into AST nodes. A Parser holds its own stream,
    memo table and failure tracker, so separate instances share nothing and
    can be used from separate threads.

    Every rule method (`_value`, `_expression`, `_statement`, ...) either
    consumes its match and returns the result, or returns None with the
    stream where it started. Operator results are `Operator` members,
    params are `list[str]`, blocks and args are `list[ASTNode]`; everything
    else is an `ASTNode`.

    Attributes
    ----------
    stream : CharacterStream
        The input being parsed.
    lexer : Lexer
        Terminal recognizers over `stream`.
    """

    def __init__(self, source: str) -> None:
        self.source = source
        self.stream = CharacterStream(source)
        self.lexer = Lexer(self.stream)
        self._memo: dict[tuple[str, int], tuple[Any, int]] = {}
        self._farthest = 0
        self._expected: set[str] = set()

    # Failure bookkeeping

    def _expect(self, description: str) -> None:
        position = self.stream.position
        if position > self._farthest:
            self._farthest = position
            self._expected = {description}
        elif position == self._farthest:
            self._expected.add(description)

    def _error(self) -> ParseError:
        position = self._farthest
        line, col = self.stream.line_col(position)
        found = self.source[position] if position < len(self.source) else "end of input"
        return ParseError(
            f"Unexpected {found!r}", position, line, col, sorted(self._expected)
        )

    def _attempt(self, *alternatives: Callable[[], T | None]) -> T | None:
        """Prioritized choice: the first alternative that matches wins."""
        for alternative in alternatives:
            start = self.stream.mark()
            result = alternative()
            if result is not None:
                return result
            self.stream.reset(start)
        return None

    # Terminals

    def _ws(self) -> bool:
        self.lexer.skip_whitespace()
        return True

    def _space(self) -> bool:
        if self.lexer.skip_whitespace():
            return True
        self._expect("whitespace")
        return False

    def _literal(self, text: str) -> bool:
        if self.lexer.match_text(text):
            return True
        self._expect(repr(text))
        return False

    def _keyword(self, text: str) -> bool:
        if self.lexer.match_keyword(text):
            return True
        self._expect(repr(text))
        return False

    def _newline(self) -> str | None:
        text = self.lexer.scan_newline()
        if text is None:
            self._expect("newline")
        return text

    def _identifier(self) -> str | None:
        ident = self.lexer.scan_identifier()
        if ident is None:
            self._expect("identifier")
        return ident

    # Values

    @memoize
    def _value(self) -> ASTNode | None:
        return self._attempt(self._float, self._int, self._string, self._boolean)

    def _float(self) -> ASTNode | None:
        start = self.stream.mark()
        text = self.lexer.scan_float()
        if text is None:
            self._expect("float")
            return None
        value = float(text)
        if math.isinf(value):
            raise self._overflow(f"Float literal {text} is out of range", start)
        return ASTNode("float", value)

    def _int(self) -> ASTNode | None:
        start = self.stream.mark()
        text = self.lexer.scan_int()
        if text is None:
            self._expect("integer")
            return None
        # int() refuses very long digit strings, so leading zeros are dropped
        # and the length is checked first
        significant = text.lstrip("-").lstrip("0") or "0"
        if len(significant) > 19:
            raise self._overflow(f"Integer literal {text} is out of range", start)
        value = -int(significant) if text.startswith("-") else int(significant)
        if not INT_MIN <= value <= INT_MAX:
            raise self._overflow(f"Integer literal {text} is out of range", start)
        return ASTNode("int", value)

    def _overflow(self, message: str, position: int) -> LiteralOverflowError:
        line, col = self.stream.line_col(position)
        return LiteralOverflowError(message, position, line, col)

    def _string_literal(self) -> str | None:
        start = self.stream.mark()
        raw = self.lexer.scan_string()
        if raw is None:
            self._expect("string")
            return None
        return unescape(raw, start + 1, self.stream)

    def _string(self) -> ASTNode | None:
        text = self._string_literal()
        return ASTNode("str", text) if text is not None else None

    def _boolean(self) -> ASTNode | None:
        if self._keyword(TRUE_KEYWORD):
            return ASTNode("bool", True)
        if self._keyword(FALSE_KEYWORD):
            return ASTNode("bool", False)
        return None

    # Operators

    def _operator(self) -> Operator | None:
        for text, op in operator_table:
            if self._keyword(text):
                return op
        return None

    # Expressions

    @memoize
    def _expression(self) -> ASTNode | None:
        return self._attempt(
            self._eval, self._binary, self._parenthesized, self._expression1
        )

    def _eval(self) -> ASTNode | None:
        if not (self._literal("{") and self._ws()):
            return None
        inner = self._expression()
        if inner is None or not (self._ws() and self._literal("}")):
            return None
        return ASTNode("eval", None, [inner])

    def _binary(self) -> ASTNode | None:
        if not (self._literal("(") and self._ws()):
            return None
        left = self._expression()
        if left is None or not self._ws():
            return None
        op = self._operator()
        if op is None or not self._ws():
            return None
        right = self._expression()
        if right is None or not (self._ws() and self._literal(")")):
            return None
        return ASTNode("op", op, [left, right])

    def _parenthesized(self) -> ASTNode | None:
        if not (self._literal("(") and self._ws()):
            return None
        inner = self._expression()
        if inner is None or not (self._ws() and self._literal(")")):
            return None
        return inner

    @memoize
    def _expression1(self) -> ASTNode | None:
        return self._attempt(
            self._list_index,
            self._call_expression,
            self._value,
            self._list_length,
            self._variable,
            self._not,
        )

    def _list_index(self) -> ASTNode | None:
        name = self._identifier()
        if name is None or not (self._literal("[") and self._ws()):
            return None
        index = self._expression()
        if index is None or not (self._ws() and self._literal("]")):
            return None
        return ASTNode("list_index", name, [index])

    def _call_expression(self) -> ASTNode | None:
        name = self._identifier()
        if name is None:
            return None
        args = self._args()
        if args is None:
            return None
        return ASTNode("call", name, args)

    def _list_length(self) -> ASTNode | None:
        name = self._identifier()
        if name is None or not (self._space() and self._keyword(SQUANCH)):
            return None
        return ASTNode("list_length", name)

    def _variable(self) -> ASTNode | None:
        name = self._identifier()
        return ASTNode("variable", name) if name is not None else None

    def _not(self) -> ASTNode | None:
        if not (self._literal("!") and self._ws()):
            return None
        inner = self._expression()
        return ASTNode("not", None, [inner]) if inner is not None else None

    def _separated(self, item: Callable[[], T | None]) -> list[T] | None:
        """Parenthesized, comma-separated items with optional whitespace; may be empty."""
        if not (self._literal("(") and self._ws()):
            return None
        items: list[T] = []
        first = item()
        if first is not None:
            items.append(first)
            while True:
                start = self.stream.mark()
                if not (self._ws() and self._literal(",") and self._ws()):
                    self.stream.reset(start)
                    break
                following = item()
                if following is None:
                    return None
                items.append(following)
        if not (self._ws() and self._literal(")")):
            return None
        return items

    def _args(self) -> list[ASTNode] | None:
        return self._separated(self._expression)

    def _params(self) -> list[str] | None:
        return self._separated(self._identifier)

    # Statements

    @memoize
    def _statement(self) -> ASTNode | None:
        start = self.stream.mark()
        node = self._attempt(
            self._list_delete,
            self._list_new,
            self._list_append,
            self._list_assign,
            self._function,
            self._delete,
            self._assignment,
            self._print_no_nl,
            self._print,
            self._if_else,
            self._if,
            self._while,
            self._input,
            self._catch,
            self._function_call,
            self._return,
            self._dylib_load,
        )
        if node is None:
            return None
        node.start = start
        node.end = self.stream.position
        node.line, node.col = self.stream.line_col(start)
        return node

    def _list_delete(self) -> ASTNode | None:
        if not (self._keyword(SQUANCH) and self._space()):
            return None
        name = self._identifier()
        if name is None or not (self._literal("[") and self._ws()):
            return None
        index = self._expression()
        if index is None or not (self._ws() and self._literal("]")):
            return None
        return ASTNode("list_delete", name, [index])

    def _list_new(self) -> ASTNode | None:
        name = self._identifier()
        if name is None or not (self._space() and self._keyword(LIST_NEW)):
            return None
        return ASTNode("list_new", name)

    def _list_append(self) -> ASTNode | None:
        name = self._identifier()
        if name is None or not (
            self._space() and self._keyword(ASSIMILATE) and self._space()
        ):
            return None
        expr = self._expression()
        return ASTNode("list_append", name, [expr]) if expr is not None else None

    def _list_assign(self) -> ASTNode | None:
        name = self._identifier()
        if name is None or not (self._literal("[") and self._ws()):
            return None
        index = self._expression()
        if index is None or not (self._ws() and self._literal("]")):
            return None
        if not (self._space() and self._keyword(SQUANCH) and self._space()):
            return None
        expr = self._expression()
        if expr is None:
            return None
        return ASTNode("list_assign", name, [index, expr])

    def _function(self) -> ASTNode | None:
        name = self._identifier()
        if name is None:
            return None
        params = self._params()
        if params is None or not self._ws():
            return None
        body = self._block()
        if body is None:
            return None
        return ASTNode("function", name, body, params=params)

    def _delete(self) -> ASTNode | None:
        if not (self._keyword(SQUANCH) and self._space()):
            return None
        name = self._identifier()
        return ASTNode("delete", name) if name is not None else None

    def _assignment(self) -> ASTNode | None:
        name = self._identifier()
        if name is None or not (
            self._space() and self._keyword(SQUANCH) and self._space()
        ):
            return None
        expr = self._expression()
        return ASTNode("assign", name, [expr]) if expr is not None else None

    def _print_no_nl(self) -> ASTNode | None:
        if not (self._keyword(PRINT_NO_NL) and self._ws()):
            return None
        expr = self._expression()
        return ASTNode("print_no_nl", None, [expr]) if expr is not None else None

    def _print(self) -> ASTNode | None:
        if not (self._keyword(PRINT) and self._space()):
            return None
        expr = self._expression()
        return ASTNode("print", None, [expr]) if expr is not None else None

    def _condition_and_block(self) -> tuple[ASTNode, list[ASTNode]] | None:
        cond = self._expression()
        if cond is None or not self._ws():
            return None
        body = self._block()
        if body is None:
            return None
        return cond, body

    def _if_else(self) -> ASTNode | None:
        if not (self._keyword(IF) and self._space()):
            return None
        head = self._condition_and_block()
        if head is None or not (self._ws() and self._keyword(ELSE) and self._ws()):
            return None
        else_body = self._block()
        if else_body is None:
            return None
        cond, body = head
        return ASTNode("if", cond, body, else_body)

    def _if(self) -> ASTNode | None:
        if not (self._keyword(IF) and self._space()):
            return None
        head = self._condition_and_block()
        if head is None:
            return None
        cond, body = head
        return ASTNode("if", cond, body)

    def _while(self) -> ASTNode | None:
        if not (self._keyword(WHILE) and self._space()):
            return None
        head = self._condition_and_block()
        if head is None:
            return None
        cond, body = head
        return ASTNode("while", cond, body)

    def _input(self) -> ASTNode | None:
        if not (self._keyword(INPUT) and self._space()):
            return None
        name = self._identifier()
        return ASTNode("input", name) if name is not None else None

    def _catch(self) -> ASTNode | None:
        if not (self._keyword(TRY) and self._ws()):
            return None
        try_body = self._block()
        if try_body is None or not (self._ws() and self._keyword(CATCH) and self._ws()):
            return None
        handler = self._block()
        if handler is None:
            return None
        return ASTNode("catch", None, try_body, handler)

    def _function_call(self) -> ASTNode | None:
        name = self._identifier()
        if name is None:
            return None
        args = self._args()
        return ASTNode("call", name, args) if args is not None else None

    def _return(self) -> ASTNode | None:
        if not (self._keyword(RETURN) and self._space()):
            return None
        expr = self._expression()
        return ASTNode("return", None, [expr]) if expr is not None else None

    def _dylib_load(self) -> ASTNode | None:
        if not (self._keyword(DYLIB_LOAD) and self._space()):
            return None
        path = self._string_literal()
        if path is None or not self._ws():
            return None
        body = self._block()
        return ASTNode("dylib_load", path, body) if body is not None else None

    # Blocks, lines and files

    def _skip_blank_lines(self) -> None:
        while self.lexer.scan_newline() is not None:
            pass

    def _line(self) -> ASTNode | None:
        """One statement, surrounded by insignificant spaces and blank lines."""
        start = self.stream.mark()
        self._ws()
        stmt = self._statement()
        if stmt is None:
            self.stream.reset(start)
            return None
        self._ws()
        if self._newline() is not None:
            self._skip_blank_lines()
        elif not (self.stream.startswith(BLOCK_CLOSE) or self.stream.end_of_file()):
            self._expect(repr(BLOCK_CLOSE))
            self.stream.reset(start)
            return None
        return stmt

    def _lines(self) -> list[ASTNode]:
        statements: list[ASTNode] = []
        while True:
            stmt = self._line()
            if stmt is None:
                return statements
            statements.append(stmt)

    @memoize
    def _block(self) -> list[ASTNode] | None:
        if not self._literal(BLOCK_OPEN):
            return None
        self._skip_blank_lines()
        statements = self._lines()
        self._ws()
        if not self._literal(BLOCK_CLOSE):
            return None
        return statements

    def _file(self) -> list[ASTNode] | None:
        self._skip_blank_lines()
        statements = self._lines()
        if not statements:
            return None
        self.lexer.skip_all_whitespace()
        return statements

    # Entry points

    def _entry(self, rule: Callable[[], T | None], what: str) -> T:
        self.stream.reset(0)
        self._farthest = 0
        self._expected = set()
        self._memo.clear()
        try:
            with _deep_recursion():
                result = rule()
        except RecursionError:
            position = self.stream.position
            line, col = self.stream.line_col(position)
            err = ParseError("Expression nested too deeply", position, line, col)
            logger.debug("failed to parse %s: %r", what, err)
            raise err from None
        if result is not None and self.stream.end_of_file():
            return result
        if result is not None:
            self._expect("end of input")
        err = self._error()
        logger.debug("failed to parse %s: %r", what, err)
        raise err

    def parse(self) -> list[ASTNode]:
        """Parse a full SCHWIFT program and return its top-level statements."""
        statements = self._entry(self._file, "file")
        logger.debug(
            "parsed %d statements (%d memo entries)", len(statements), len(self._memo)
        )
        return statements

    def parse_statement(self) -> ASTNode:
        return self._entry(self._statement, "statement")

    def parse_expression(self) -> ASTNode:
        return self._entry(self._expression, "expression")

    def parse_value(self) -> ASTNode:
        return self._entry(self._value, "value")

    def parse_operator(self) -> Operator:
        return self._entry(self._operator, "operator")

    def parse_block(self) -> list[ASTNode]:
        return self._entry(self._block, "block")

    def parse_params(self) -> list[str]:
        return self._entry(self._params, "params")

    def parse_args(self) -> list[ASTNode]:
        return self._entry(self._args, "args")

    def parse_newline(self) -> str:
        return self._entry(self._newline, "newline")


def parse_source(source: str) -> list[ASTNode]:
    return Parser(source).parse()


def coerce_argv(args: list[str]) -> list[ASTNode]:
    """
    Turn command-line words into value nodes.

    Each word is parsed as a SCHWIFT value; anything that is not one becomes
    a string, so `["3", "rick", "hi"]` gives int 3, bool True and str "hi".
    """
    values = []
    for arg in args:
        try:
            values.append(Parser(arg).parse_value())
        except ParseError:
            values.append(ASTNode("str", arg))
    return values


__all__ = ["Parser", "coerce_argv", "memoize", "parse_source"]
