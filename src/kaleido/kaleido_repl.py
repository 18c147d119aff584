"""
Top-level driver for Kaleido.

Dispatches on the parser's lookahead, reports what was parsed, and recovers
from a failed parse by discarding one token. The same loop serves the
interactive REPL and batch runs from the CLI.
"""

import sys
from typing import Any

from kaleido.kaleido_ast import format_node
from kaleido.kaleido_constants import DEF, EOF, EXTERN
from kaleido.kaleido_lexer import CharacterStream, Lexer
from kaleido.kaleido_parser import ParseError, Parser, ParseResult
from kaleido.kaleido_precedence import PrecedenceTable

PROMPT = ">>> "
CONTINUATION_PROMPT = "... "


class PromptStream:
    """Readable text source backed by `input()`.

    Lines are fetched only when the lexer runs out of characters, so the
    prompt shows up exactly when more input is needed. `exit`, `quit`,
    Ctrl-D and Ctrl-C end the stream.
    """

    def __init__(self) -> None:
        self.prompt = PROMPT
        self.buffer = ""
        self.closed = False

    def ready(self) -> None:
        """Switches back to the top-level prompt unless a line is half consumed."""
        if not self.buffer.strip():
            self.prompt = PROMPT

    def read(self, size: int = -1, /) -> str:
        while not self.buffer and not self.closed:
            try:
                line = input(self.prompt)
            except (KeyboardInterrupt, EOFError):
                print()
                self.closed = True
                break
            self.prompt = CONTINUATION_PROMPT
            if line.strip() in ("exit", "quit"):
                self.closed = True
                break
            self.buffer = line + "\n"
        if size < 0:
            size = len(self.buffer)
        chunk, self.buffer = self.buffer[:size], self.buffer[size:]
        return chunk


def print_diagnostic(error: ParseError) -> None:
    print(f"[error] >>> {error}", file=sys.stderr)


def _report(
    result: ParseResult[Any], parser: Parser, status: str, verbose: bool, quiet: bool
) -> None:
    if result.error is not None:
        print_diagnostic(result.error)
        # Skip token for error recovery.
        parser.advance()
        return
    if quiet:
        return
    print(status)
    if verbose:
        print(f"[ast] >>> {format_node(result.unwrap())}")


def handle_definition(
    parser: Parser, verbose: bool = False, quiet: bool = False
) -> ParseResult[Any]:
    result = parser.attempt(parser.parse_definition)
    _report(result, parser, "Parsed a function definition.", verbose, quiet)
    return result


def handle_extern(
    parser: Parser, verbose: bool = False, quiet: bool = False
) -> ParseResult[Any]:
    result = parser.attempt(parser.parse_extern)
    _report(result, parser, "Parsed an extern.", verbose, quiet)
    return result


def handle_top_level_expression(
    parser: Parser, verbose: bool = False, quiet: bool = False
) -> ParseResult[Any]:
    result = parser.attempt(parser.parse_top_level_expression)
    _report(result, parser, "Parsed a top-level expression.", verbose, quiet)
    return result


def main_loop(
    parser: Parser,
    verbose: bool = False,
    prompt: PromptStream | None = None,
    quiet: bool = False,
) -> list[ParseResult[Any]]:
    """Runs `top ::= definition | external | expression | ';'` until EOF.

    Returns:
        Every parse outcome in input order, failures included.
    """
    results: list[ParseResult[Any]] = []
    while True:
        if prompt is not None:
            prompt.ready()
        tok = parser.current
        if tok.type == EOF:
            return results
        if tok.is_char(";"):
            parser.advance()
        elif tok.type == DEF:
            results.append(handle_definition(parser, verbose, quiet))
        elif tok.type == EXTERN:
            results.append(handle_extern(parser, verbose, quiet))
        else:
            results.append(handle_top_level_expression(parser, verbose, quiet))


def start_repl(verbose: bool = False, precedence: PrecedenceTable | None = None) -> None:
    print("Kaleido REPL. Type 'exit' or 'quit' to leave.")
    stream = PromptStream()
    parser = Parser(Lexer(CharacterStream(stream)), precedence)
    main_loop(parser, verbose=verbose, prompt=stream)
    print("Exiting Kaleido REPL.")


def main() -> None:
    start_repl()


if __name__ == "__main__":
    main()
