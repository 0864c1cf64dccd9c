"""
racket_cst.cli - racket-cst Command Line Interface

Subcommands:

- racket-cst parse FILE        Print the concrete syntax tree
- racket-cst tokens FILE       Print every token with its position
- racket-cst check FILE...     Report reader errors (exit status 1 if any)
- racket-cst highlight FILE    Print each line with its token spans
- racket-cst lsp               Start the language server on stdio

`-c CODE` parses a string instead of a file, and FILE may be `-` for
standard input. Reader options come from the nearest .racket-cst.rktd
unless --config names a file.
"""

import argparse
import sys
import traceback
from typing import Optional

from racket_cst.config import CONFIG_FILENAME, ReaderConfig
from racket_cst.lines import LineIndex, context_lines, enforce_length
from racket_cst.lsp.server import diagnostic_message, diagnostic_span
from racket_cst.reader import NodeKind, SyntaxNode, Tree, parse, tokenize
from racket_cst.reader.nodes import TRIVIA_KINDS

# Tokens left out by `tokens --no-trivia`
_TRIVIA_TOKENS = TRIVIA_KINDS | {NodeKind.DATUM_COMMENT_PREFIX}

# =============================================================================
# Helpers
# =============================================================================


def _read_source(path: str) -> str:
    if path == "-":
        return sys.stdin.read()
    with open(path, encoding="utf-8") as f:
        return f.read()


def _load_config(args: argparse.Namespace, near: Optional[str]) -> ReaderConfig:
    if args.config:
        return ReaderConfig.from_file(args.config)
    if near is None or near == "-":
        return ReaderConfig.load()
    return ReaderConfig.load(near)


def _inputs(args: argparse.Namespace) -> list[tuple[str, Optional[str]]]:
    """(display name, path) pairs; the path is None for -c code."""
    if args.command is not None:
        return [("<string>", None)]
    return [(path, path) for path in args.files]


def _load(args: argparse.Namespace, path: Optional[str]) -> tuple[str, ReaderConfig]:
    source = args.command if path is None else _read_source(path)
    return source, _load_config(args, path)


def format_node(node: SyntaxNode, depth: int = 0) -> list[str]:
    """Indented outline of a node and its descendants, trivia included."""
    label = f"{'  ' * depth}{node.kind.value} [{node.start}, {node.end})"
    if node.error is not None:
        label += f" {node.error.value}"
    if node.is_leaf:
        return [f"{label} {node.text!r}"]
    lines = [label]
    for child in node.children:
        lines.extend(format_node(child, depth + 1))
    return lines


def format_errors(tree: Tree, name: str, context: int = 0) -> list[str]:
    """One `name:row:col: error: message` line per error, with context lines."""
    index = tree.line_index
    out = []
    for node in tree.errors():
        start, end = diagnostic_span(node)
        row, column = index.position(start)
        code = node.error.value if node.error is not None else "missing"
        out.append(
            f"{name}:{row + 1}:{column + 1}: error: {diagnostic_message(node)} [{code}]"
        )
        if context < 0:
            continue
        rows = index.rows_of([(start, max(end, start))])
        marked = set(rows)
        for shown in context_lines(rows, context, index.max_row):
            marker = ">" if shown in marked else " "
            out.append(f"{marker}{shown + 1:>5} | {index.line(shown)}")
    return out


# =============================================================================
# Subcommands
# =============================================================================


def cmd_parse(args: argparse.Namespace) -> int:
    """Print the syntax tree of each input."""
    for name, path in _inputs(args):
        source, config = _load(args, path)
        tree = parse(source, config)
        if args.sexp:
            print(tree.to_sexp())
        else:
            print("\n".join(format_node(tree.root)))
    return 0


def cmd_tokens(args: argparse.Namespace) -> int:
    for name, path in _inputs(args):
        source, _ = _load(args, path)
        index = LineIndex(source)
        for tok in tokenize(source):
            if args.no_trivia and tok.kind in _TRIVIA_TOKENS:
                continue
            row, column = index.position(tok.start)
            error = f" {tok.error.value}" if tok.error is not None else ""
            print(f"{row + 1}:{column + 1}\t{tok.kind.value}{error}\t{tok.text!r}")
    return 0


def cmd_check(args: argparse.Namespace) -> int:
    """Report reader errors; exit status 1 if any input has one."""
    failed = False
    for name, path in _inputs(args):
        source, config = _load(args, path)
        tree = parse(source, config)
        if tree.has_errors():
            failed = True
            print("\n".join(format_errors(tree, name, args.context)))
        elif args.verbose:
            print(f"{name}: ok")
    return 1 if failed else 0


def cmd_highlight(args: argparse.Namespace) -> int:
    """Print each source line followed by the kinds of the tokens on it."""
    for name, path in _inputs(args):
        source, config = _load(args, path)
        tree = parse(source, config)
        index = tree.line_index
        spans: dict[int, list[str]] = {}
        for leaf in tree.leaves():
            if leaf.kind in (NodeKind.WHITESPACE, NodeKind.MISSING):
                continue
            for line_range in index.split_range(leaf.start, leaf.end):
                spans.setdefault(line_range.row, []).append(
                    f"{leaf.kind.value}@{line_range.start}-{line_range.end}"
                )
        text = source
        if args.width:
            text = enforce_length(source, args.width)
        for row, line in enumerate(text.splitlines()):
            print(f"{row + 1:>5} | {line}")
            if row in spans:
                print(f"      | {' '.join(spans[row])}")
    return 0


def cmd_lsp(args: argparse.Namespace) -> int:
    """Start the Language Server Protocol server."""
    from racket_cst.lsp.server import start_server

    try:
        start_server(log_path=args.log)
        return 0
    except OSError as e:
        print(f"Error starting LSP server: {e}", file=sys.stderr)
        traceback.print_exc(file=sys.stderr)
        return 1


# =============================================================================
# Argument Parsing
# =============================================================================


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser with all subcommands."""
    parser = argparse.ArgumentParser(
        prog="racket-cst",
        description="racket-cst - Lossless concrete syntax trees for Racket",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
examples:
  racket-cst parse main.rkt           Print the syntax tree
  racket-cst parse --sexp main.rkt    Print the named structure only
  racket-cst check src/*.rkt          Report reader errors
  racket-cst check -C 2 main.rkt      ...with two lines of context
  racket-cst -c "(1 . 2 3)" check     Check a string
  racket-cst lsp --log lsp.log        Start the language server
        """,
    )

    parser.add_argument(
        "-c",
        "--command",
        metavar="CODE",
        help="Read CODE instead of files",
    )
    parser.add_argument(
        "--config",
        metavar="PATH",
        help=f"Reader config file (default: nearest {CONFIG_FILENAME})",
    )

    subparsers = parser.add_subparsers(dest="subcommand", help="Available commands")

    parse_parser = subparsers.add_parser("parse", help="Print the syntax tree")
    parse_parser.add_argument("files", nargs="*", metavar="FILE")
    parse_parser.add_argument(
        "--sexp", action="store_true", help="Print the named structure as an s-expression"
    )

    tokens_parser = subparsers.add_parser("tokens", help="Print the token stream")
    tokens_parser.add_argument("files", nargs="*", metavar="FILE")
    tokens_parser.add_argument(
        "--no-trivia",
        action="store_true",
        help="Leave out whitespace and comment tokens",
    )

    check_parser = subparsers.add_parser("check", help="Report reader errors")
    check_parser.add_argument("files", nargs="*", metavar="FILE")
    check_parser.add_argument(
        "--context",
        "-C",
        type=int,
        default=0,
        metavar="N",
        help="Show N lines of context around each error (-1 for none)",
    )
    check_parser.add_argument(
        "--verbose", "-v", action="store_true", help="Also report files without errors"
    )

    highlight_parser = subparsers.add_parser(
        "highlight", help="Print each line with its token spans"
    )
    highlight_parser.add_argument("files", nargs="*", metavar="FILE")
    highlight_parser.add_argument(
        "--width", "-w", type=int, default=0, help="Pad or truncate lines to a width"
    )

    lsp_parser = subparsers.add_parser(
        "lsp", help="Start the Language Server Protocol server"
    )
    lsp_parser.add_argument(
        "--log",
        metavar="FILE",
        help="Log file for debugging LSP communication",
    )

    return parser


def main(argv: Optional[list[str]] = None) -> None:
    """Main entry point for the racket-cst CLI. Calls sys.exit with return code."""
    sys.exit(_main(argv))


def _main(argv: Optional[list[str]] = None) -> int:
    """Internal main that returns exit code."""
    if argv is None:
        argv = sys.argv[1:]

    parser = create_parser()
    args = parser.parse_args(argv)

    if args.subcommand == "lsp":
        return cmd_lsp(args)

    if args.subcommand is None:
        if args.command is None:
            parser.print_help()
            return 2
        # `racket-cst -c CODE` alone prints the tree
        args.subcommand = "parse"
        args.sexp = False

    if args.command is None and not args.files:
        print(f"Error: {args.subcommand} needs a FILE or -c CODE", file=sys.stderr)
        return 2

    handlers = {
        "parse": cmd_parse,
        "tokens": cmd_tokens,
        "check": cmd_check,
        "highlight": cmd_highlight,
    }
    try:
        return handlers[args.subcommand](args)
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except UnicodeDecodeError as e:
        print(f"Error: input is not UTF-8: {e}", file=sys.stderr)
        return 1
    except ValueError as e:
        print(f"Error in reader config: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    main()
