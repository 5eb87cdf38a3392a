"""
Defines the abstract syntax tree (AST) node structure for the SCHWIFT programming language.

Classes:
    ASTNode:
        A node in the syntax tree, produced by the parser and consumed by the
        emitter and by external evaluators.

    ASTDict:
        TypedDict representation for serializing ASTNode instances to plain Python
        dictionaries, suitable for JSON output or debugging.

One class covers every variant; `kind` selects which fields are meaningful:

    Values:       int / float / str / bool           value = the Python literal
    Expressions:  eval                                children = [inner]
                  op                                  value = Operator, children = [left, right]
                  list_index                          value = name, children = [index]
                  call                                value = name, children = args
                  list_length / variable              value = name
                  not                                 children = [inner]
    Statements:   list_delete                         value = name, children = [index]
                  list_new / delete / input           value = name
                  list_append / assign                value = name, children = [expr]
                  list_assign                         value = name, children = [index, expr]
                  function                            value = name, params = names, children = body
                  print / print_no_nl / return        children = [expr]
                  if                                  value = cond, children = then, else_children = else or None
                  while                               value = cond, children = body
                  catch                               children = try body, else_children = handler
                  call                                value = name, children = args
                  dylib_load                          value = path, children = body

Statements additionally carry their source span (`start`, `end`) and the
line/column of `start`. Expression nodes leave those at zero.

Example:
    node = ASTNode("assign", "x", [ASTNode("int", 5)], start=0, end=11, line=1, col=1)
"""

from typing import Any, TypedDict

from schwift.schwift_constants import STATEMENT_KINDS, Operator


class ASTDict(TypedDict, total=False):
    """
    TypedDict representation of an ASTNode used for serialization.

    Fields:
        kind (str): The type of AST node (e.g., "if", "op", "variable").
        value (Any): Name, literal, operator name, or nested ASTDict.
        params (list[str] | None): Parameter names of a function.
        start (int): Offset of the first character of a statement.
        end (int): Offset one past the last character of a statement.
        line (int): Line of `start`.
        col (int): Column of `start`.
        children (list[ASTDict]): Primary child nodes in the AST hierarchy.
        else_children (list[ASTDict] | None): Else branch or catch handler.
    """

    kind: str
    value: Any
    params: list[str] | None
    start: int
    end: int
    line: int
    col: int
    children: list["ASTDict"]
    else_children: list["ASTDict"] | None


class ASTNode:
    """
    Represents a node in the abstract syntax tree (AST) for the SCHWIFT language.

    Nodes are built once by the parser and not mutated afterwards. Each child
    belongs to exactly one parent.

    Args:
        kind (str): The type of node (e.g., "function", "op", "if").
        value (Any): Name, literal value, Operator, or a condition ASTNode.
        children (list[ASTNode], optional): Primary child nodes.
        else_children (list[ASTNode], optional): Else block or catch handler.
        params (list[str], optional): Parameter names (functions only).
        start (int): Span start offset (statements only).
        end (int): Span end offset (statements only).
        line (int): Source line number of `start`.
        col (int): Source column number of `start`.

    Methods:
        __repr__(): Returns a structured string representation for debugging.
        __eq__(other): Checks structural equality with another ASTNode, spans included.
        to_dict(): Converts the node (and all descendants) into a nested dictionary format.
        source_text(source): The exact text a statement was parsed from.
    """

    def __init__(
        self,
        kind: str,
        value: Any = None,
        children: list["ASTNode"] | None = None,
        else_children: list["ASTNode"] | None = None,
        params: list[str] | None = None,
        start: int = 0,
        end: int = 0,
        line: int = 0,
        col: int = 0,
    ):
        self.kind = kind
        self.value = value
        self.children: list["ASTNode"] = children or []
        self.else_children = else_children
        self.params = params
        self.start = start
        self.end = end
        self.line = line
        self.col = col

    @property
    def is_statement(self) -> bool:
        return self.kind in STATEMENT_KINDS and self.end > self.start

    def source_text(self, source: str) -> str:
        return source[self.start : self.end]

    def __repr__(self) -> str:
        parts = [f"{self.kind}"]
        if self.value is not None:
            parts.append(f"value={self.value!r}")
        if self.params is not None:
            parts.append(f"params={self.params!r}")
        if self.children:
            preview = ", ".join(repr(c) for c in self.children[:3])
            if len(self.children) > 3:
                preview += ", ..."
            parts.append(f"children=[{preview}]")
        if self.else_children is not None:
            preview = ", ".join(repr(c) for c in self.else_children[:3])
            if len(self.else_children) > 3:
                preview += ", ..."
            parts.append(f"else_children=[{preview}]")
        if self.end:
            parts.append(f"span={self.start}..{self.end}")
        return f"ASTNode({', '.join(parts)})"

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, ASTNode):
            return False
        # bool is an int subclass; kind keeps rick apart from 1 but compare types anyway
        values_equal = type(self.value) is type(other.value) and self.value == other.value
        return (
            self.kind == other.kind
            and values_equal
            and self.params == other.params
            and self.start == other.start
            and self.end == other.end
            and self.line == other.line
            and self.col == other.col
            and self.children == other.children
            and self.else_children == other.else_children
        )

    def to_dict(self) -> ASTDict:
        val: Any = self.value
        if isinstance(val, ASTNode):
            val = val.to_dict()
        elif isinstance(val, Operator):
            val = val.value

        return {
            "kind": self.kind,
            "value": val,
            "params": list(self.params) if self.params is not None else None,
            "start": self.start,
            "end": self.end,
            "line": self.line,
            "col": self.col,
            "children": [c.to_dict() for c in self.children],
            "else_children": (
                [c.to_dict() for c in self.else_children]
                if self.else_children is not None
                else None
            ),
        }


def strip_spans(node: ASTNode) -> ASTNode:
    """Returns a copy of `node` with every span and position reset to zero."""
    value = strip_spans(node.value) if isinstance(node.value, ASTNode) else node.value
    return ASTNode(
        node.kind,
        value,
        [strip_spans(c) for c in node.children],
        (
            [strip_spans(c) for c in node.else_children]
            if node.else_children is not None
            else None
        ),
        list(node.params) if node.params is not None else None,
    )
