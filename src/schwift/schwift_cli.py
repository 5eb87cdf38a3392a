"""
SCHWIFT CLI Entrypoint.

This module provides the command-line interface for the SCHWIFT parser.
It parses a program and prints the result in the chosen format, or opens
the interactive REPL.

Features:
    - Read source from `.schwift` files or inline strings.
    - Print the AST as a tree, as JSON, or as canonical SCHWIFT source.
    - Output to console or file.
    - On a syntax error, print the full error banner to stderr and exit 1.
    - Launch an interactive REPL with optional verbosity.

Example usage:
    schwift hello.schwift
    schwift -s "x squanch 1" -f json
    schwift messy.schwift -f source -o tidy.schwift
    schwift --repl --verbose

Functions:
    run_schwift(source: str, is_string: bool = False, fmt: str = "tree", out: Optional[str] = None,
                pretty: bool = False) -> None:
        Executes the parse pipeline (read -> parse -> render -> output).

    main() -> None:
        Parses CLI arguments and invokes the appropriate action (REPL or parse).
"""

import argparse
import json
import logging
import sys

from schwift.schwift_ast import ASTNode
from schwift.schwift_constants import SOURCE_SUFFIX
from schwift.schwift_errors import ParseError, full_panic_message
from schwift.schwift_parser import Parser
from schwift.schwift_unparse import unparse

logger = logging.getLogger(__name__)

FORMATS = ("tree", "json", "source")


def format_tree(nodes: list[ASTNode], depth: int = 0) -> list[str]:
    """Indented outline of a statement list, one node per line."""
    lines: list[str] = []
    pad = "  " * depth
    for node in nodes:
        header = f"{pad}{node.kind}"
        if node.value is not None and not isinstance(node.value, ASTNode):
            header += f" {node.value!r}"
        if node.params is not None:
            header += f" params={node.params!r}"
        if node.is_statement:
            header += f" [{node.start}..{node.end}] @{node.line}:{node.col}"
        lines.append(header)
        if isinstance(node.value, ASTNode):
            lines.append(f"{pad}  cond:")
            lines.extend(format_tree([node.value], depth + 2))
        lines.extend(format_tree(node.children, depth + 1))
        if node.else_children is not None:
            lines.append(f"{pad}  else:")
            lines.extend(format_tree(node.else_children, depth + 2))
    return lines


def render(ast: list[ASTNode], fmt: str) -> str:
    if fmt == "tree":
        return "\n".join(format_tree(ast))
    if fmt == "json":
        return json.dumps([node.to_dict() for node in ast], indent=2)
    if fmt == "source":
        return unparse(ast).rstrip("\n")
    raise ValueError(f"Unknown output format: {fmt}")


def run_schwift(
    source: str,
    is_string: bool = False,
    fmt: str = "tree",
    out: str | None = None,
    pretty: bool = False,
) -> list[ASTNode]:
    """
    Run the SCHWIFT front end: read, parse, render, and print or write the result.

    Args:
        source (str): The SCHWIFT source code or path to a `.schwift` file.
        is_string (bool): If True, treats `source` as raw code instead of a file path. Defaults to False.
        fmt (str): Output format ('tree', 'json' or 'source'). Defaults to 'tree'.
        out (str | None): Optional path to write the rendered output. If None, prints to stdout.
        pretty (bool): If True, prints banners around the output. Defaults to False.

    Returns:
        list[ASTNode]: The parsed program.

    Raises:
        ValueError: If `is_string` is False and the source does not end with '.schwift'.
        ParseError: If the program does not parse.
    """
    if not is_string and not source.endswith(SOURCE_SUFFIX):
        raise ValueError(f"Only {SOURCE_SUFFIX} files are supported.")
    if not is_string:
        logger.debug("reading %s", source)
        with open(source, encoding="utf-8") as f:
            source = f.read()

    ast = Parser(source).parse()
    text = render(ast, fmt)

    if pretty:
        banner = "=" * 20
        print(f"{banner}\nParsed SCHWIFT ({fmt})\n{banner}\n{text}\n{banner}\n")
    elif not out:
        print(text)

    if out:
        with open(out, "w", encoding="utf-8") as f:
            f.write(text + "\n")
        logger.debug("wrote %d statements to %s", len(ast), out)
        if pretty:
            print(f"(wrote to {out})")

    return ast


def main() -> None:
    """
    Entry point for the SCHWIFT CLI.

    - Launches the REPL if no arguments are passed or `--repl` is specified.
    - Otherwise parses the given file or string and prints the result.

    Supported flags:
        - `-s`, `--string`: Interpret source as a raw string instead of a file path.
        - `-f`, `--format`: Output format ('tree', 'json' or 'source'), default is 'tree'.
        - `-o`, `--out`: Write the output to a file.
        - `-p`, `--pretty`: Show banners around the output.
        - `--repl`: Launch the interactive REPL.
        - `--verbose`: Debug logging, and verbose REPL mode.
    """
    if len(sys.argv) == 1:
        from schwift.schwift_repl import start_repl

        start_repl()
        return
    parser = argparse.ArgumentParser(prog="schwift")
    parser.add_argument("source", nargs="?", help="Filename or raw source (with -s)")
    parser.add_argument(
        "-s", "--string", action="store_true", help="Interpret source as literal string"
    )
    parser.add_argument(
        "-f",
        "--format",
        dest="fmt",
        choices=FORMATS,
        default="tree",
        help="Output format (default: tree)",
    )
    parser.add_argument("-o", "--out", metavar="OUTFILE", help="Output to file")
    parser.add_argument(
        "-p", "--pretty", action="store_true", help="Show output with banners"
    )
    parser.add_argument(
        "--repl",
        action="store_true",
        help="Launch interactive REPL instead of parsing",
    )
    parser.add_argument(
        "--verbose", action="store_true", help="Debug logging; verbose REPL mode"
    )

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if args.repl or args.source is None:
        from schwift.schwift_repl import start_repl

        start_repl(verbose=args.verbose)
        return

    try:
        run_schwift(
            source=args.source,
            is_string=args.string,
            fmt=args.fmt,
            out=args.out,
            pretty=args.pretty,
        )
    except ParseError as e:
        if args.string:
            text, filename = args.source, "<string>"
        else:
            with open(args.source, encoding="utf-8") as f:
                text = f.read()
            filename = args.source
        print(full_panic_message(e, text, filename), file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__" and not any("pytest" in arg for arg in sys.argv):
    main()
