"""
Renders SCHWIFT AST nodes back into SCHWIFT source code.

This module defines the `SchwiftEmitter` class, which produces the canonical
textual form of a parsed program. Parsing the emitted text yields the same
tree again (spans aside), which makes the emitter useful for formatting
programs and for checking the parser.

Canonical form:
    - One statement per line, bodies indented by four spaces.
    - `:<` ends the line that opens a block, `>:` sits on its own line;
      `>: else :<` and `>: plan for failure :<` join the two halves.
    - Binary expressions are always parenthesized: `(a + b)`.
    - Args and params are separated by `", "`.
    - Strings are escaped with `schwift_lexer.escape`; floats are written in
      positional notation (`100000000000000000000.0`, never `1e+20`).

Raises:
    - `TypeError`: If a node appears where its kind is not allowed.
    - `NotImplementedError`: If an AST kind has no corresponding emitter.
    - `ValueError`: If a float cannot be written as a SCHWIFT literal.
"""

from decimal import Decimal

from schwift.schwift_ast import ASTNode
from schwift.schwift_constants import (
    ASSIMILATE,
    BLOCK_CLOSE,
    BLOCK_OPEN,
    CATCH,
    DYLIB_LOAD,
    ELSE,
    EXPRESSION_KINDS,
    FALSE_KEYWORD,
    IF,
    INPUT,
    LIST_NEW,
    PRINT,
    PRINT_NO_NL,
    RETURN,
    SQUANCH,
    STATEMENT_KINDS,
    TRUE_KEYWORD,
    TRY,
    WHILE,
    operator_spelling,
)
from schwift.schwift_lexer import escape


def format_float(value: float) -> str:
    """Writes a finite, non-negative float as digits "." digits."""
    if value != value or value in (float("inf"), float("-inf")):
        raise ValueError(f"Float {value!r} has no SCHWIFT literal")
    if value < 0 or str(value).startswith("-"):
        raise ValueError(f"Negative float {value!r} has no SCHWIFT literal")
    text = format(Decimal(repr(value)), "f")
    if "." not in text:
        text += ".0"
    return text


class SchwiftEmitter:
    """Emits SCHWIFT source from AST nodes.

    Attributes:
        lines (list[str]): Accumulated lines of emitted source.
        indent (int): Current indentation level.

    Methods:
        get_output(): Returns the emitted program as a string.
        emit_expr(node): Returns the source of one expression.
        emit_block_lines(nodes): Emits a block body at one deeper indentation.
        _visit(node): Dispatches a statement to its emit_* method.
    """

    def __init__(self) -> None:
        self.lines: list[str] = []
        self.indent = 0

    def indent_str(self) -> str:
        return "    " * self.indent

    def get_output(self) -> str:
        return "\n".join(self.lines) + ("\n" if self.lines else "")

    def _emit_line(self, text: str) -> None:
        self.lines.append(self.indent_str() + text)

    # Expressions

    def emit_expr(self, node: ASTNode) -> str:
        if not isinstance(node, ASTNode) or node.kind not in EXPRESSION_KINDS:
            raise TypeError(f"Expected an expression node, got {node!r}")
        method = getattr(self, f"emit_expr_{node.kind}", None)
        if method is None:  # pragma: no cover
            raise NotImplementedError(f"No emitter for expression kind: {node.kind}")
        return str(method(node))

    def emit_expr_int(self, node: ASTNode) -> str:
        return str(node.value)

    def emit_expr_float(self, node: ASTNode) -> str:
        return format_float(node.value)

    def emit_expr_str(self, node: ASTNode) -> str:
        return f'"{escape(node.value)}"'

    def emit_expr_bool(self, node: ASTNode) -> str:
        return TRUE_KEYWORD if node.value else FALSE_KEYWORD

    def emit_expr_eval(self, node: ASTNode) -> str:
        return f"{{{self.emit_expr(node.children[0])}}}"

    def emit_expr_op(self, node: ASTNode) -> str:
        left = self.emit_expr(node.children[0])
        right = self.emit_expr(node.children[1])
        return f"({left} {operator_spelling[node.value]} {right})"

    def emit_expr_list_index(self, node: ASTNode) -> str:
        return f"{node.value}[{self.emit_expr(node.children[0])}]"

    def emit_expr_call(self, node: ASTNode) -> str:
        return f"{node.value}{self.emit_args(node.children)}"

    def emit_expr_list_length(self, node: ASTNode) -> str:
        return f"{node.value} {SQUANCH}"

    def emit_expr_variable(self, node: ASTNode) -> str:
        return str(node.value)

    def emit_expr_not(self, node: ASTNode) -> str:
        return f"!{self.emit_expr(node.children[0])}"

    def emit_args(self, args: list[ASTNode]) -> str:
        return "(" + ", ".join(self.emit_expr(a) for a in args) + ")"

    # Statements

    def emit_block_lines(self, nodes: list[ASTNode]) -> None:
        self.indent += 1
        for node in nodes:
            self._visit(node)
        self.indent -= 1

    def _emit_block_statement(self, head: str, body: list[ASTNode]) -> None:
        self._emit_line(f"{head} {BLOCK_OPEN}")
        self.emit_block_lines(body)
        self._emit_line(BLOCK_CLOSE)

    def emit_list_delete(self, node: ASTNode) -> None:
        self._emit_line(f"{SQUANCH} {node.value}[{self.emit_expr(node.children[0])}]")

    def emit_list_new(self, node: ASTNode) -> None:
        self._emit_line(f"{node.value} {LIST_NEW}")

    def emit_list_append(self, node: ASTNode) -> None:
        self._emit_line(f"{node.value} {ASSIMILATE} {self.emit_expr(node.children[0])}")

    def emit_list_assign(self, node: ASTNode) -> None:
        index, value = node.children
        self._emit_line(
            f"{node.value}[{self.emit_expr(index)}] {SQUANCH} {self.emit_expr(value)}"
        )

    def emit_function(self, node: ASTNode) -> None:
        params = ", ".join(node.params or [])
        self._emit_block_statement(f"{node.value}({params})", node.children)

    def emit_delete(self, node: ASTNode) -> None:
        self._emit_line(f"{SQUANCH} {node.value}")

    def emit_assign(self, node: ASTNode) -> None:
        self._emit_line(f"{node.value} {SQUANCH} {self.emit_expr(node.children[0])}")

    def emit_print_no_nl(self, node: ASTNode) -> None:
        self._emit_line(f"{PRINT_NO_NL} {self.emit_expr(node.children[0])}")

    def emit_print(self, node: ASTNode) -> None:
        self._emit_line(f"{PRINT} {self.emit_expr(node.children[0])}")

    def emit_input(self, node: ASTNode) -> None:
        self._emit_line(f"{INPUT} {node.value}")

    def emit_if(self, node: ASTNode) -> None:
        self._emit_line(f"{IF} {self.emit_expr(node.value)} {BLOCK_OPEN}")
        self.emit_block_lines(node.children)
        if node.else_children is None:
            self._emit_line(BLOCK_CLOSE)
            return
        self._emit_line(f"{BLOCK_CLOSE} {ELSE} {BLOCK_OPEN}")
        self.emit_block_lines(node.else_children)
        self._emit_line(BLOCK_CLOSE)

    def emit_while(self, node: ASTNode) -> None:
        self._emit_block_statement(f"{WHILE} {self.emit_expr(node.value)}", node.children)

    def emit_catch(self, node: ASTNode) -> None:
        self._emit_line(f"{TRY} {BLOCK_OPEN}")
        self.emit_block_lines(node.children)
        self._emit_line(f"{BLOCK_CLOSE} {CATCH} {BLOCK_OPEN}")
        self.emit_block_lines(node.else_children or [])
        self._emit_line(BLOCK_CLOSE)

    def emit_call(self, node: ASTNode) -> None:
        self._emit_line(f"{node.value}{self.emit_args(node.children)}")

    def emit_return(self, node: ASTNode) -> None:
        self._emit_line(f"{RETURN} {self.emit_expr(node.children[0])}")

    def emit_dylib_load(self, node: ASTNode) -> None:
        self._emit_block_statement(f'{DYLIB_LOAD} "{escape(node.value)}"', node.children)

    def _visit(self, node: ASTNode) -> None:
        if not isinstance(node, ASTNode) or node.kind not in STATEMENT_KINDS:
            raise TypeError(f"Expected a statement node, got {node!r}")
        method = getattr(self, f"emit_{node.kind}", None)
        if method is None:  # pragma: no cover
            raise NotImplementedError(f"No emitter for AST node kind: {node.kind}")
        method(node)


def unparse(statements: list[ASTNode]) -> str:
    """Returns the canonical source of a program."""
    emitter = SchwiftEmitter()
    for node in statements:
        emitter._visit(node)
    return emitter.get_output()


def unparse_expression(node: ASTNode) -> str:
    return SchwiftEmitter().emit_expr(node)


__all__ = ["SchwiftEmitter", "format_float", "unparse", "unparse_expression"]
