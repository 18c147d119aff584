"""
Lexical analyzer for the Kaleido expression language.

This module converts a character source into tokens, one token per call:

Classes:
    CharacterStream: Lazy character source with line/column tracking.
    Token: A single token with type, value, and source location.
    Lexer: Converts a CharacterStream into tokens on demand.

Rules, in priority order:
    - Whitespace is skipped.
    - ASCII letters start an identifier (letters and digits); `def` and
      `extern` become keyword tokens.
    - Digits or `.` start a numeric run, converted permissively to float.
    - `#` starts a comment that runs to the end of the line.
    - End of input yields EOF, and keeps yielding EOF.
    - Anything else is emitted as a single CHAR token.

Example:
    >>> lexer = Lexer(CharacterStream("def f(x) x"))
    >>> lexer.next_token()
    Token(DEF, def)

Exports:
    - CharacterStream
    - Token
    - Lexer
    - keyword_tokens
"""

import re
from collections.abc import Iterator
from typing import Any, Protocol

from kaleido.kaleido_constants import (
    CHAR,
    COMMENT_START,
    EOF,
    IDENT,
    LINE_ENDINGS,
    NUMBER,
    keyword_tokens,
)

_FLOAT_PREFIX = re.compile(r"\d+\.?\d*|\.\d+")


class Readable(Protocol):
    def read(self, size: int = -1, /) -> str: ...


class CharacterStream:
    """
    Reads characters one at a time from a string or a readable text source.

    Only a single character of lookahead is ever buffered, so an interactive
    or file-backed source is consumed lazily as the lexer asks for input.

    Attributes:
        line (int): Line number of the current character (1-indexed).
        column (int): Column number of the current character (1-indexed).
    """

    def __init__(self, source: str | Readable, line: int = 1, column: int = 1):
        self._text: str | None = source if isinstance(source, str) else None
        self._reader: Readable | None = None if isinstance(source, str) else source
        self._position = 0
        self._lookahead: str | None = None
        self.line = line
        self.column = column

    def _fill(self) -> str:
        if self._text is not None:
            if self._position < len(self._text):
                return self._text[self._position]
            return ""
        if self._lookahead is None and self._reader is not None:
            self._lookahead = self._reader.read(1)
        return self._lookahead or ""

    def peek(self) -> str:
        """Returns the current character without consuming it, or "" at EOF."""
        return self._fill()

    def current(self) -> str | None:
        """Returns the current character, or None once the source is exhausted."""
        char = self._fill()
        return char if char else None

    def end_of_file(self) -> bool:
        return self._fill() == ""

    def next(self) -> str:
        """
        Consumes and returns the current character.

        Raises:
            EOFError: If the source is already exhausted.
        """
        char = self._fill()
        if char == "":
            raise EOFError(
                f"CharacterStreamError: Attempted to read past end of source at line=<{self.line}>"
            )
        if self._text is not None:
            self._position += 1
        else:
            self._lookahead = None
        if char == "\n":
            self.line += 1
            self.column = 1
        else:
            self.column += 1
        return char


class Token:
    """A single lexical token.

    Attributes:
        type (str): One of the token types in `kaleido_constants`.
        value (str | float): Identifier text, numeric value, or the raw
            character for CHAR tokens.
        line (int): Line where the token starts.
        col (int): Column where the token starts.
    """

    def __init__(self, type_: str, value: str | float, line: int = 0, col: int = 0):
        self.type = type_
        self.value = value
        self.line = line
        self.col = col

    def is_char(self, char: str) -> bool:
        """True if this is the CHAR token for `char`."""
        return self.type == CHAR and self.value == char

    def describe(self) -> str:
        if self.type == EOF:
            return "end of input"
        if self.type == CHAR:
            return f"'{self.value}'"
        if self.type == NUMBER:
            return f"number {self.value!r}"
        return f"{self.type.lower()} '{self.value}'"

    def __repr__(self) -> str:
        return f"Token({self.type}, {self.value})"

    def __eq__(self, other: Any) -> bool:
        return (
            isinstance(other, Token)
            and self.type == other.type
            and self.value == other.value
            and self.line == other.line
            and self.col == other.col
        )

    def __hash__(self) -> int:
        return hash((self.type, self.value, self.line, self.col))


def parse_number(text: str) -> float:
    """Converts a run of digits and dots the way C's strtod does.

    The longest valid decimal prefix wins; a run with no valid prefix is 0.0.
    """
    match = _FLOAT_PREFIX.match(text)
    return float(match.group(0)) if match else 0.0


class Lexer:
    """Lexical analyzer for Kaleido.

    The lexer owns the stream cursor for one parse session. It never
    backtracks; callers needing lookahead buffer tokens themselves.

    Attributes:
        stream (CharacterStream): The source being tokenized.
    """

    def __init__(self, stream: CharacterStream) -> None:
        self.stream = stream

    def peek(self) -> str:
        return self.stream.peek()

    def advance(self) -> str:
        return self.stream.next()

    def skip_whitespace(self) -> None:
        while self.peek().isascii() and self.peek().isspace():
            self.advance()

    def skip_comment(self) -> None:
        """Advances past `#` up to, not including, the line ending or EOF."""
        while not self.stream.end_of_file() and self.peek() not in LINE_ENDINGS:
            self.advance()

    def next_token(self) -> Token:
        """Consumes and returns the next Token from the stream.

        Returns:
            Token: The next token; EOF forever once the stream is exhausted.
        """
        while True:
            self.skip_whitespace()
            ch = self.peek()
            line, col = self.stream.line, self.stream.column

            # 1. Identifier or keyword
            if ch.isascii() and ch.isalpha():
                ident = ""
                while self.peek().isascii() and self.peek().isalnum():
                    ident += self.advance()
                return Token(keyword_tokens.get(ident, IDENT), ident, line, col)

            # 2. Number
            if (ch.isascii() and ch.isdigit()) or ch == ".":
                run = ""
                while (self.peek().isascii() and self.peek().isdigit()) or self.peek() == ".":
                    run += self.advance()
                return Token(NUMBER, parse_number(run), line, col)

            # 3. Comment
            if ch == COMMENT_START:
                self.skip_comment()
                continue

            # 4. End of input, never consumed
            if ch == "":
                return Token(EOF, "EOF", line, col)

            # 5. Anything else is its own token
            return Token(CHAR, self.advance(), line, col)

    def tokens(self) -> Iterator[Token]:
        """Lazily yields tokens up to and including the first EOF."""
        while True:
            tok = self.next_token()
            yield tok
            if tok.type == EOF:
                return


__all__ = ["CharacterStream", "Lexer", "Token", "keyword_tokens", "parse_number"]
