import io
import traceback

from schwift.schwift_ast import ASTNode
from schwift.schwift_cli import format_tree
from schwift.schwift_constants import BLOCK_CLOSE, BLOCK_OPEN
from schwift.schwift_errors import ParseError, panic_message
from schwift.schwift_parser import Parser, coerce_argv
from schwift.schwift_unparse import unparse, unparse_expression


def print_traceback() -> None:
    buf = io.StringIO()
    traceback.print_exc(file=buf)
    print("[error] >>>")
    print(buf.getvalue())


def handle_argv_command(src: str) -> bool:
    """`:argv a b c` shows how command-line words would be read as values."""
    words = src.split()
    if words[0] != ":argv":
        return False
    for node in coerce_argv(words[1:]):
        print(f"[argv] >>> {node.kind} {node.value!r}")
    return True


def parse_input(src: str) -> tuple[list[ASTNode] | None, ASTNode | None]:
    """
    Parse REPL input as a program, falling back to a lone expression.

    Returns (statements, None) or (None, expression). If neither parses, the
    program's error is raised since it is the more informative of the two.
    """
    parser = Parser(src)
    try:
        return parser.parse(), None
    except ParseError as program_error:
        try:
            return None, parser.parse_expression()
        except ParseError:
            raise program_error from None


def open_blocks(src: str) -> int:
    """Counts `:<` minus `>:`, skipping anything inside string literals."""
    depth = 0
    in_string = False
    index = 0
    while index < len(src):
        ch = src[index]
        if in_string:
            if ch == "\\":
                index += 2
                continue
            if ch == '"':
                in_string = False
        elif ch == '"':
            in_string = True
        elif src.startswith(BLOCK_OPEN, index):
            depth += 1
            index += len(BLOCK_OPEN)
            continue
        elif src.startswith(BLOCK_CLOSE, index):
            depth -= 1
            index += len(BLOCK_CLOSE)
            continue
        index += 1
    return depth


def read_source() -> str | None:
    """Reads one REPL entry; keeps reading while a `:<` block is still open."""
    src_lines: list[str] = []
    while True:
        prompt = ">>> " if not src_lines else "... "
        line = input(prompt)
        if line.strip() in ("exit", "quit") and not src_lines:
            return None
        src_lines.append(line)
        src = "\n".join(src_lines)
        if open_blocks(src) <= 0:
            return src.strip()


def start_repl(verbose: bool = False) -> None:
    print("Schwift REPL. Show me what you got! Type 'exit' or 'quit' to leave.")

    while True:
        try:
            src = read_source()
            if src is None:
                print("Exiting Schwift REPL.")
                return
            if not src:
                continue
            if src == "verbose-mode":
                verbose = not verbose
                print(f"[mode] >>> Verbose mode {'ON' if verbose else 'OFF'}")
                continue
            if handle_argv_command(src):
                continue

            try:
                statements, expression = parse_input(src)
            except ParseError as e:
                print("[error] >>>")
                print(panic_message(e))
                continue

            if expression is not None:
                print(f"[expr] >>> {expression!r}")
                if verbose:
                    print(f"[source] >>> {unparse_expression(expression)}")
                continue

            for line in format_tree(statements or []):
                print(line)
            if verbose:
                print("[source] >>>")
                print(unparse(statements or []).rstrip("\n"))
        except (KeyboardInterrupt, EOFError):
            print("\nExiting Schwift REPL.")
            break
        except Exception:
            print_traceback()


def main() -> None:
    start_repl()


if __name__ == "__main__":
    main()
