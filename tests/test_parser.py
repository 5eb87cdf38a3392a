import logging
import sys
from concurrent.futures import ThreadPoolExecutor

import pytest
from hypothesis import given
from hypothesis import strategies as st

from schwift.schwift_ast import ASTNode, strip_spans
from schwift.schwift_constants import Operator, operator_table
from schwift.schwift_errors import LiteralOverflowError, ParseError, StringEscapeError
from schwift.schwift_parser import Parser, coerce_argv, parse_source


def parse(source: str) -> list[ASTNode]:
    return parse_source(source)


def var(name: str) -> ASTNode:
    return ASTNode("variable", name)


def num(value: int) -> ASTNode:
    return ASTNode("int", value)


def op(left: ASTNode, operator: Operator, right: ASTNode) -> ASTNode:
    return ASTNode("op", operator, [left, right])


# Values


@pytest.mark.parametrize(  # type: ignore[misc]
    "source,expected",
    [
        ("3.14", ASTNode("float", 3.14)),
        ("42", ASTNode("int", 42)),
        ("-7", ASTNode("int", -7)),
        ('"hi"', ASTNode("str", "hi")),
        ('""', ASTNode("str", "")),
        ('"say \\"hi\\""', ASTNode("str", 'say "hi"')),
        ('"a\\\\b"', ASTNode("str", "a\\b")),
        ('"line\\nbreak"', ASTNode("str", "line\nbreak")),
        ("rick", ASTNode("bool", True)),
        ("morty", ASTNode("bool", False)),
    ],
)
def test_value_literals(source: str, expected: ASTNode) -> None:
    assert Parser(source).parse_value() == expected


@given(  # type: ignore[misc]
    whole=st.integers(min_value=0, max_value=10**9),
    fraction=st.from_regex(r"[0-9]{1,9}", fullmatch=True),
)
def test_float_pattern_always_parses_as_float(whole: int, fraction: str) -> None:
    text = f"{whole}.{fraction}"
    node = Parser(text).parse_value()
    assert node.kind == "float"
    assert node.value == float(text)


@given(st.integers(min_value=-(2**63), max_value=2**63 - 1))  # type: ignore[misc]
def test_int_literals_in_range(value: int) -> None:
    assert Parser(str(value)).parse_value() == ASTNode("int", value)


def test_int_overflow() -> None:
    with pytest.raises(LiteralOverflowError) as exc:
        Parser("9223372036854775808").parse_value()
    assert exc.value.kind == "numeric_overflow"
    assert exc.value.position == 0


@pytest.mark.parametrize(  # type: ignore[misc]
    "text,expected",
    [
        ("0" * 20 + "1", 1),
        ("0" * 25, 0),
        ("-" + "0" * 10 + "9223372036854775808", -(2**63)),
        ("0" * 5000 + "42", 42),
    ],
)
def test_int_leading_zeros_do_not_count_toward_range(text: str, expected: int) -> None:
    assert Parser(text).parse_value() == ASTNode("int", expected)


def test_int_overflow_after_leading_zeros() -> None:
    with pytest.raises(LiteralOverflowError):
        Parser("000" + "9223372036854775808").parse_value()


def test_int_underflow_inside_program() -> None:
    with pytest.raises(LiteralOverflowError) as exc:
        parse("x squanch 1\ny squanch -99999999999999999999999")
    assert exc.value.line == 2
    assert exc.value.column == 11


def test_float_overflow() -> None:
    with pytest.raises(LiteralOverflowError):
        Parser("1" * 400 + ".0").parse_value()


def test_string_escape_error() -> None:
    with pytest.raises(StringEscapeError) as exc:
        Parser('"bad \\q"').parse_value()
    assert exc.value.position == 5
    assert exc.value.column == 6


@pytest.mark.parametrize("source", ["3.", ".5", "-1.5", "ricky", "'single'", ""])  # type: ignore[misc]
def test_invalid_values(source: str) -> None:
    with pytest.raises(ParseError):
        Parser(source).parse_value()


# Operators


@pytest.mark.parametrize("text,expected", operator_table)  # type: ignore[misc]
def test_every_operator_spelling(text: str, expected: Operator) -> None:
    assert Parser(text).parse_operator() is expected


def test_longer_comparison_wins() -> None:
    assert Parser("moresquanch").parse_operator() is Operator.GREATER_THAN_EQUAL
    assert Parser("lesssquanch").parse_operator() is Operator.LESS_THAN_EQUAL


def test_operator_needs_word_boundary() -> None:
    with pytest.raises(ParseError):
        Parser("oreo").parse_operator()


def test_operator_table_has_fourteen_entries() -> None:
    assert len(operator_table) == 14
    assert len({o for _, o in operator_table}) == 14


# Expressions


@pytest.mark.parametrize(  # type: ignore[misc]
    "source,expected",
    [
        ("{x}", ASTNode("eval", None, [var("x")])),
        ("{ (1 + 2) }", ASTNode("eval", None, [op(num(1), Operator.ADD, num(2))])),
        ("(a + b)", op(var("a"), Operator.ADD, var("b"))),
        ("( a == b )", op(var("a"), Operator.EQUALITY, var("b"))),
        ("(a-1)", op(var("a"), Operator.SUBTRACT, num(1))),
        ("(a - -1)", op(var("a"), Operator.SUBTRACT, num(-1))),
        ("(x moresquanch 1)", op(var("x"), Operator.GREATER_THAN_EQUAL, num(1))),
        ("(x schwift> 2)", op(var("x"), Operator.SHIFT_RIGHT, num(2))),
        ("(x <schwift 2)", op(var("x"), Operator.SHIFT_LEFT, num(2))),
        (
            "((a * b) % c)",
            op(op(var("a"), Operator.MULTIPLY, var("b")), Operator.MODULUS, var("c")),
        ),
        ("((a))", var("a")),
        ("xs[(i - 1)]", ASTNode("list_index", "xs", [op(var("i"), Operator.SUBTRACT, num(1))])),
        ("f()", ASTNode("call", "f", [])),
        ("f(1, x)", ASTNode("call", "f", [num(1), var("x")])),
        ("f( 1 ,x )", ASTNode("call", "f", [num(1), var("x")])),
        ("xs squanch", ASTNode("list_length", "xs")),
        ("x", var("x")),
        ("!x", ASTNode("not", None, [var("x")])),
        ("! x", ASTNode("not", None, [var("x")])),
        ("!!x", ASTNode("not", None, [ASTNode("not", None, [var("x")])])),
        (
            "!(a and b)",
            ASTNode("not", None, [op(var("a"), Operator.AND, var("b"))]),
        ),
        (
            "(!a or b)",
            op(ASTNode("not", None, [var("a")]), Operator.OR, var("b")),
        ),
        ("(xs squanch more 0)", op(ASTNode("list_length", "xs"), Operator.GREATER_THAN, num(0))),
    ],
)
def test_expressions(source: str, expected: ASTNode) -> None:
    assert Parser(source).parse_expression() == expected


@pytest.mark.parametrize("source", ["(a + b + c)", "a + b", "(a +)", "(a", "{a", "xs[1", "f(1,)"])  # type: ignore[misc]
def test_malformed_expressions(source: str) -> None:
    with pytest.raises(ParseError):
        Parser(source).parse_expression()


def test_deeply_nested_parentheses_parse_quickly() -> None:
    depth = 50
    node = Parser("(" * depth + "x" + ")" * depth).parse_expression()
    assert node == var("x")


def test_deeply_nested_binary_expressions() -> None:
    source = "x"
    for i in range(40):
        source = f"({source} + {i})"
    node = Parser(source).parse_expression()
    assert node.kind == "op"
    assert node.children[1] == num(39)


def test_parentheses_nested_three_hundred_deep() -> None:
    depth = 300
    node = Parser("(" * depth + "x" + ")" * depth).parse_expression()
    assert node == var("x")


def test_binary_expressions_nested_three_hundred_deep_in_statement() -> None:
    source = "x"
    for i in range(300):
        source = f"({source} + {i})"
    (stmt,) = parse("y squanch " + source)
    node = stmt.children[0]
    levels = 0
    while node.kind == "op":
        assert node.children[1] == num(299 - levels)
        node = node.children[0]
        levels += 1
    assert levels == 300
    assert node == var("x")


def test_nesting_beyond_the_limit_is_a_parse_error() -> None:
    depth = 20000
    source = "x squanch " + "(" * depth + "1" + ")" * depth
    with pytest.raises(ParseError) as exc:
        parse(source)
    assert exc.value.kind == "syntax"
    assert "nested too deeply" in str(exc.value)
    assert 10 < exc.value.position < 10 + depth


def test_recursion_limit_is_restored_after_parse() -> None:
    before = sys.getrecursionlimit()
    Parser("(" * 300 + "x" + ")" * 300).parse_expression()
    with pytest.raises(ParseError):
        Parser("(" * 20000 + "x").parse_expression()
    assert sys.getrecursionlimit() == before


# Keyword / identifier collisions


def test_boolean_keyword_beats_variable() -> None:
    assert Parser("rick").parse_expression() == ASTNode("bool", True)
    assert Parser("morty").parse_expression() == ASTNode("bool", False)


def test_identifier_extending_keyword_is_variable() -> None:
    assert Parser("ricky").parse_expression() == var("ricky")
    assert Parser("mortyJr").parse_expression() == var("mortyJr")


def test_keyword_named_list_and_function_still_reachable() -> None:
    assert Parser("rick[0]").parse_expression() == ASTNode("list_index", "rick", [num(0)])
    assert Parser("morty(1)").parse_expression() == ASTNode("call", "morty", [num(1)])


def test_keyword_named_variable_assignment() -> None:
    node = strip_spans(Parser("rick squanch 1").parse_statement())
    assert node == ASTNode("assign", "rick", [num(1)])


def test_list_length_precedes_variable() -> None:
    node = strip_spans(Parser("n squanch xs squanch").parse_statement())
    assert node == ASTNode("assign", "n", [ASTNode("list_length", "xs")])


def test_squanch_keyword_needs_boundary() -> None:
    with pytest.raises(ParseError):
        Parser("return xs squanchy").parse_statement()


# Statements


@pytest.mark.parametrize(  # type: ignore[misc]
    "source,expected",
    [
        ("squanch xs[0]", ASTNode("list_delete", "xs", [num(0)])),
        ("xs on a cob", ASTNode("list_new", "xs")),
        ("xs assimilate (1 + 1)", ASTNode("list_append", "xs", [op(num(1), Operator.ADD, num(1))])),
        ("xs[0] squanch 2", ASTNode("list_assign", "xs", [num(0), num(2)])),
        (
            "f(a) :< return a >:",
            ASTNode("function", "f", [ASTNode("return", None, [var("a")])], params=["a"]),
        ),
        ("f():<>:", ASTNode("function", "f", [], params=[])),
        ("squanch x", ASTNode("delete", "x")),
        ("x squanch 1", ASTNode("assign", "x", [num(1)])),
        ("show me what you got! x", ASTNode("print_no_nl", None, [var("x")])),
        ("show me what you got!x", ASTNode("print_no_nl", None, [var("x")])),
        ("show me what you got x", ASTNode("print", None, [var("x")])),
        ("show me what you got !x", ASTNode("print", None, [ASTNode("not", None, [var("x")])])),
        (
            "if rick :< x squanch 1 >:",
            ASTNode("if", ASTNode("bool", True), [ASTNode("assign", "x", [num(1)])]),
        ),
        (
            "while (i less 10) :< i squanch (i + 1) >:",
            ASTNode(
                "while",
                op(var("i"), Operator.LESS_THAN, num(10)),
                [ASTNode("assign", "i", [op(var("i"), Operator.ADD, num(1))])],
            ),
        ),
        ("portal gun name", ASTNode("input", "name")),
        (
            'normal plan :< f() >: plan for failure :< show me what you got "oops" >:',
            ASTNode(
                "catch",
                None,
                [ASTNode("call", "f", [])],
                [ASTNode("print", None, [ASTNode("str", "oops")])],
            ),
        ),
        (
            "f(1, (2 * 3))",
            ASTNode("call", "f", [num(1), op(num(2), Operator.MULTIPLY, num(3))]),
        ),
        ("return {x}", ASTNode("return", None, [ASTNode("eval", None, [var("x")])])),
        (
            'microverse "libm.so" :< sqrt(x) >:',
            ASTNode("dylib_load", "libm.so", [ASTNode("call", "sqrt", [var("x")])]),
        ),
    ],
)
def test_statements(source: str, expected: ASTNode) -> None:
    node = Parser(source).parse_statement()
    assert strip_spans(node) == expected
    assert (node.start, node.end) == (0, len(source))


def test_if_else_statement_and_span() -> None:
    source = "if (x more 1) :< return 1 >: else :< return 0 >:"
    node = Parser(source).parse_statement()
    assert node.kind == "if"
    assert node.value == op(var("x"), Operator.GREATER_THAN, num(1))
    assert node.else_children is not None
    assert [strip_spans(n) for n in node.children] == [ASTNode("return", None, [num(1)])]
    assert [strip_spans(n) for n in node.else_children] == [ASTNode("return", None, [num(0)])]
    assert (node.start, node.end) == (0, len(source))
    assert node.source_text(source) == source
    assert node.children[0].start == 17
    assert node.children[0].source_text(source) == "return 1"
    assert node.else_children[0].source_text(source) == "return 0"


def test_if_without_else_has_no_else_block() -> None:
    node = Parser("if x :< >:").parse_statement()
    assert node.else_children is None
    assert node.children == []


def test_if_with_empty_else_keeps_empty_block() -> None:
    node = Parser("if x :< >: else :< >:").parse_statement()
    assert node.else_children == []


def test_function_declaration() -> None:
    node = Parser("f(a, b) :< return (a + b) >:").parse_statement()
    assert strip_spans(node) == ASTNode(
        "function",
        "f",
        [ASTNode("return", None, [op(var("a"), Operator.ADD, var("b"))])],
        params=["a", "b"],
    )


def test_function_params_may_repeat() -> None:
    node = Parser("f(a, a) :< >:").parse_statement()
    assert node.params == ["a", "a"]


def test_function_call_statement_without_block() -> None:
    node = Parser("f(a, b)").parse_statement()
    assert node.kind == "call"
    assert node.children == [var("a"), var("b")]


def test_keyword_needs_following_space() -> None:
    # `return(1)` is a call to a function named return
    node = Parser("return(1)").parse_statement()
    assert strip_spans(node) == ASTNode("call", "return", [num(1)])


# Blocks, lines and files


def test_program_with_blank_lines_and_whitespace() -> None:
    source = "\n\nx squanch 1\n\n   y squanch 2   \r\n\nshow me what you got (x + y)\n\n"
    program = parse(source)
    assert [n.kind for n in program] == ["assign", "assign", "print"]
    second = program[1]
    assert second.source_text(source) == "y squanch 2"
    assert (second.line, second.col) == (5, 4)


def test_program_trailing_whitespace_without_newline() -> None:
    program = parse("x squanch 1   \n  \n\t")
    assert len(program) == 1


def test_program_without_trailing_newline() -> None:
    assert len(parse("x squanch 1\ny squanch 2")) == 2


def test_multiline_program() -> None:
    source = (
        "fib(n) :<\n"
        "\n"
        "    if (n less 2) :<\n"
        "        return n\n"
        "    >:\n"
        "    return (fib((n - 1)) + fib((n - 2)))\n"
        ">:\n"
        "show me what you got fib(10)\n"
    )
    program = parse(source)
    assert [n.kind for n in program] == ["function", "print"]
    body = program[0].children
    assert [n.kind for n in body] == ["if", "return"]
    assert body[0].else_children is None
    assert body[0].line == 3
    assert body[0].col == 5
    assert body[1].source_text(source) == "return (fib((n - 1)) + fib((n - 2)))"
    assert program[1].line == 8


def test_nested_blocks_preserve_order() -> None:
    source = (
        "normal plan :<\n"
        "    xs on a cob\n"
        "    xs assimilate 1\n"
        "    xs assimilate 2\n"
        ">: plan for failure :<\n"
        "    show me what you got! \"failed\"\n"
        ">:\n"
    )
    (node,) = parse(source)
    assert [n.kind for n in node.children] == ["list_new", "list_append", "list_append"]
    assert [n.children[0].value for n in node.children[1:]] == [1, 2]
    assert node.else_children is not None
    assert node.else_children[0].kind == "print_no_nl"


def test_one_statement_per_line() -> None:
    with pytest.raises(ParseError):
        parse("x squanch 1 y squanch 2")


@pytest.mark.parametrize("source", ["", "   ", "\n\n", " \r\n "])  # type: ignore[misc]
def test_empty_program_rejected(source: str) -> None:
    with pytest.raises(ParseError):
        parse(source)


def test_unmatched_block_open_reports_location() -> None:
    source = "f() :<\n  x squanch 1\n"
    with pytest.raises(ParseError) as exc:
        parse(source)
    err = exc.value
    assert err.kind == "syntax"
    assert err.position == len(source)
    assert "'>:'" in err.expected


def test_dangling_operator_reports_location() -> None:
    with pytest.raises(ParseError) as exc:
        parse("x squanch (1 +)")
    err = exc.value
    assert err.position == 14
    assert (err.line, err.column) == (1, 15)
    assert "identifier" in err.expected
    assert "integer" in err.expected


def test_bad_line_after_good_lines_is_not_truncated() -> None:
    with pytest.raises(ParseError) as exc:
        parse("x squanch 1\ny squanch 2\n$$$\n")
    assert exc.value.line == 3
    assert exc.value.column == 1


def test_error_is_a_syntax_error() -> None:
    with pytest.raises(SyntaxError):
        parse("squanch")


# Entry points


def test_parse_block() -> None:
    block = Parser(":<\n x squanch 1\n>:").parse_block()
    assert len(block) == 1
    assert (block[0].start, block[0].line, block[0].col) == (4, 2, 2)


def test_parse_empty_block() -> None:
    assert Parser(":<>:").parse_block() == []
    assert Parser(":<\n\n   >:").parse_block() == []


def test_parse_params() -> None:
    assert Parser("(a, b,c)").parse_params() == ["a", "b", "c"]
    assert Parser("()").parse_params() == []


def test_parse_args() -> None:
    args = Parser('(1, "s", (a or b))').parse_args()
    assert args == [num(1), ASTNode("str", "s"), op(var("a"), Operator.OR, var("b"))]


@pytest.mark.parametrize("source", ["\n", "\r\n", "  \n"])  # type: ignore[misc]
def test_parse_newline(source: str) -> None:
    assert Parser(source).parse_newline() == source


def test_entry_points_require_whole_input() -> None:
    with pytest.raises(ParseError):
        Parser("3.14x").parse_value()
    with pytest.raises(ParseError):
        Parser("x ").parse_expression()
    with pytest.raises(ParseError):
        Parser("x squanch 1\n").parse_statement()
    with pytest.raises(ParseError):
        Parser("x").parse_newline()


def test_parser_can_be_reused_for_several_entry_points() -> None:
    parser = Parser("(a + b)")
    with pytest.raises(ParseError):
        parser.parse_statement()
    assert parser.parse_expression() == op(var("a"), Operator.ADD, var("b"))


def test_independent_parsers_in_threads() -> None:
    sources = [f"x{i} squanch ({i} * {i})" for i in range(20)]
    with ThreadPoolExecutor(max_workers=4) as pool:
        results = list(pool.map(parse, sources))
    for i, program in enumerate(results):
        assert program[0].value == f"x{i}"


def test_parse_logs_at_debug(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.DEBUG, logger="schwift.schwift_parser"):
        parse("x squanch 1")
    assert "parsed 1 statements" in caplog.text


def test_coerce_argv() -> None:
    assert coerce_argv(["3", "rick", "2.5", "hi", "-4", "99999999999999999999"]) == [
        num(3),
        ASTNode("bool", True),
        ASTNode("float", 2.5),
        ASTNode("str", "hi"),
        num(-4),
        ASTNode("str", "99999999999999999999"),
    ]
