"""
Kaleido CLI Entrypoint.

This module provides the command-line interface for the Kaleido front end.
It parses source files or inline strings, dumps tokens or the AST, and
launches the interactive REPL.

Features:
    - Read source from `.kal` files (streamed) or inline strings.
    - Print the token stream, the driver's status lines, or the AST as JSON.
    - Output to console or file.
    - Extend the operator set from a JSON precedence file, given with
      `--precedence` or the `KALEIDO_PRECEDENCE` environment variable.
    - Launch an interactive REPL with optional verbosity.

Example usage:
    kaleido fib.kal
    kaleido -s "def add(x y) x+y" --json
    kaleido fib.kal --tokens -o fib.tokens
    kaleido --repl --verbose --precedence ops.json

Functions:
    load_precedence(path: str | None) -> PrecedenceTable:
        Builds the session's precedence table from defaults plus an optional file.

    run_kaleido(source: str, is_string: bool = False, ...) -> None:
        Executes the pipeline (lex → parse → report/output).

    main() -> None:
        Parses CLI arguments and invokes the appropriate action.
"""

import argparse
import json
import os
import sys
from contextlib import ExitStack

from kaleido.kaleido_ast import to_dict
from kaleido.kaleido_lexer import CharacterStream, Lexer
from kaleido.kaleido_parser import Parser
from kaleido.kaleido_precedence import PrecedenceError, PrecedenceTable
from kaleido.kaleido_repl import main_loop

PRECEDENCE_ENV = "KALEIDO_PRECEDENCE"
SOURCE_SUFFIX = ".kal"


def load_precedence(path: str | None = None) -> PrecedenceTable:
    """
    Returns the default precedence table, extended from `path` if given or
    from the file named by `KALEIDO_PRECEDENCE` otherwise.

    Raises:
        PrecedenceError: If the file is unreadable or its operators are invalid.
    """
    table = PrecedenceTable.from_defaults()
    path = path or os.getenv(PRECEDENCE_ENV)
    if path:
        table.load_from_json(path)
    return table


def run_kaleido(
    source: str,
    is_string: bool = False,
    dump_tokens: bool = False,
    emit_json: bool = False,
    out: str | None = None,
    pretty: bool = False,
    precedence_path: str | None = None,
) -> None:
    """
    Run the Kaleido front end over one source and report or write the result.

    Args:
        source (str): Kaleido source code or path to a `.kal` file.
        is_string (bool): If True, treats `source` as raw code instead of a file path.
        dump_tokens (bool): Print the token stream instead of parsing.
        emit_json (bool): Output successfully parsed items as a JSON array.
        out (str | None): Optional path to write the tokens or JSON to.
        pretty (bool): If True, prints banners around the output.
        precedence_path (str | None): Optional JSON file of extra operators.

    Raises:
        ValueError: If `is_string` is False and the source does not end with '.kal'.
        PrecedenceError: If the precedence file is invalid.
    """
    if not is_string and not source.endswith(SOURCE_SUFFIX):
        raise ValueError(f"Only {SOURCE_SUFFIX} files are supported.")
    precedence = load_precedence(precedence_path)

    with ExitStack() as stack:
        if is_string:
            stream = CharacterStream(source)
        else:
            stream = CharacterStream(stack.enter_context(open(source, encoding="utf-8")))
        lexer = Lexer(stream)

        if dump_tokens:
            text = "\n".join(
                f"{tok.line}:{tok.col}\t{tok.type}\t{tok.value}" for tok in lexer.tokens()
            )
            title = "Tokens"
        else:
            results = main_loop(Parser(lexer, precedence), quiet=emit_json or bool(out))
            if not emit_json and not out:
                return
            payload = [to_dict(r.unwrap()) for r in results if r.ok]
            text = json.dumps(payload, indent=2 if pretty else None)
            title = "AST"

    if pretty and not out:
        banner = "=" * 20
        print(f"{banner}\n{title}\n{banner}\n{text}\n{banner}")
    elif not out:
        print(text)

    if out:
        with open(out, "w", encoding="utf-8") as f:
            f.write(text + "\n")
        if pretty:
            print(f"(wrote to {out})")


def main() -> None:
    """
    Entry point for the Kaleido CLI.

    Launches the REPL if no arguments are passed or `--repl` is specified,
    otherwise runs `run_kaleido` over the given source.

    Supported flags:
        - `-s`, `--string`: Interpret source as a raw string instead of a file path.
        - `--tokens`: Print the token stream.
        - `--json`: Print parsed items as JSON.
        - `-o`, `--out`: Write tokens or JSON to a file.
        - `-p`, `--pretty`: Show banners and indented JSON.
        - `--precedence`: JSON file of extra binary operators.
        - `--repl`: Launch the interactive REPL.
        - `--verbose`: Print each parsed item in the REPL.
    """
    parser = argparse.ArgumentParser(prog="kaleido")
    parser.add_argument("source", nargs="?", help="Filename or raw source (with -s)")
    parser.add_argument(
        "-s", "--string", action="store_true", help="Interpret source as literal string"
    )
    parser.add_argument(
        "--tokens", dest="dump_tokens", action="store_true", help="Print the token stream"
    )
    parser.add_argument(
        "--json", dest="emit_json", action="store_true", help="Print parsed items as JSON"
    )
    parser.add_argument("-o", "--out", metavar="OUTFILE", help="Output to file")
    parser.add_argument(
        "-p", "--pretty", action="store_true", help="Show output with banners"
    )
    parser.add_argument(
        "--precedence",
        metavar="FILE",
        help=f"JSON file of extra operators (default: ${PRECEDENCE_ENV})",
    )
    parser.add_argument(
        "--repl", action="store_true", help="Launch interactive REPL instead of parsing"
    )
    parser.add_argument(
        "--verbose", action="store_true", help="Verbose REPL mode (if --repl)"
    )

    args = parser.parse_args()

    try:
        if args.repl or args.source is None:
            from kaleido.kaleido_repl import start_repl

            start_repl(verbose=args.verbose, precedence=load_precedence(args.precedence))
        else:
            run_kaleido(
                source=args.source,
                is_string=args.string,
                dump_tokens=args.dump_tokens,
                emit_json=args.emit_json,
                out=args.out,
                pretty=args.pretty,
                precedence_path=args.precedence,
            )
    except (PrecedenceError, ValueError, OSError) as e:
        print(f"[error] >>> {e}", file=sys.stderr)
        for conflict in getattr(e, "conflicts", []):
            print(f" - {conflict}", file=sys.stderr)
        raise SystemExit(2) from e


if __name__ == "__main__" and not any("pytest" in arg for arg in sys.argv):
    main()
