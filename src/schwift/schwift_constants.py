"""
Shared grammar constants for the SCHWIFT parser and emitter.

Exports:
    - Operator: the closed set of binary operators.
    - operator_table: operator spellings in match priority order.
    - operator_spelling: reverse lookup used by the emitter.
    - keywords: reserved words and phrases.
    - STATEMENT_KINDS / EXPRESSION_KINDS / VALUE_KINDS: valid `ASTNode.kind` values.
    - INT_MIN / INT_MAX: range of an integer literal.
"""

from enum import Enum


class Operator(Enum):
    ADD = "ADD"
    SUBTRACT = "SUBTRACT"
    MULTIPLY = "MULTIPLY"
    DIVIDE = "DIVIDE"
    EQUALITY = "EQUALITY"
    MODULUS = "MODULUS"
    GREATER_THAN_EQUAL = "GREATER_THAN_EQUAL"
    LESS_THAN_EQUAL = "LESS_THAN_EQUAL"
    GREATER_THAN = "GREATER_THAN"
    LESS_THAN = "LESS_THAN"
    SHIFT_RIGHT = "SHIFT_RIGHT"
    SHIFT_LEFT = "SHIFT_LEFT"
    OR = "OR"
    AND = "AND"

    def __repr__(self) -> str:
        return f"Operator.{self.name}"


# Order matters: `moresquanch` must be tried before `more`, `lesssquanch` before `less`.
operator_table: list[tuple[str, Operator]] = [
    ("+", Operator.ADD),
    ("-", Operator.SUBTRACT),
    ("*", Operator.MULTIPLY),
    ("/", Operator.DIVIDE),
    ("==", Operator.EQUALITY),
    ("%", Operator.MODULUS),
    ("moresquanch", Operator.GREATER_THAN_EQUAL),
    ("lesssquanch", Operator.LESS_THAN_EQUAL),
    ("more", Operator.GREATER_THAN),
    ("less", Operator.LESS_THAN),
    ("schwift>", Operator.SHIFT_RIGHT),
    ("<schwift", Operator.SHIFT_LEFT),
    ("or", Operator.OR),
    ("and", Operator.AND),
]

operator_spelling: dict[Operator, str] = {op: text for text, op in operator_table}

TRUE_KEYWORD = "rick"
FALSE_KEYWORD = "morty"

SQUANCH = "squanch"
LIST_NEW = "on a cob"
ASSIMILATE = "assimilate"
PRINT_NO_NL = "show me what you got!"
PRINT = "show me what you got"
IF = "if"
ELSE = "else"
WHILE = "while"
INPUT = "portal gun"
TRY = "normal plan"
CATCH = "plan for failure"
RETURN = "return"
DYLIB_LOAD = "microverse"

BLOCK_OPEN = ":<"
BLOCK_CLOSE = ">:"

# Words an identifier can collide with. The grammar does not reject them;
# the emitter tests use this set to keep generated names unambiguous.
keywords: frozenset[str] = frozenset(
    {
        TRUE_KEYWORD,
        FALSE_KEYWORD,
        SQUANCH,
        ASSIMILATE,
        IF,
        ELSE,
        WHILE,
        RETURN,
        DYLIB_LOAD,
        "on",
        "show",
        "portal",
        "normal",
        "plan",
        "schwift",
    }
    | {text for text, _ in operator_table if text.isalpha()}
)

VALUE_KINDS = frozenset({"int", "float", "str", "bool"})

EXPRESSION_KINDS = VALUE_KINDS | {
    "eval",
    "op",
    "list_index",
    "call",
    "list_length",
    "variable",
    "not",
}

STATEMENT_KINDS = frozenset(
    {
        "list_delete",
        "list_new",
        "list_append",
        "list_assign",
        "function",
        "delete",
        "assign",
        "print_no_nl",
        "print",
        "input",
        "if",
        "while",
        "catch",
        "call",
        "return",
        "dylib_load",
    }
)

INT_MIN = -(2**63)
INT_MAX = 2**63 - 1

SOURCE_SUFFIX = ".schwift"
