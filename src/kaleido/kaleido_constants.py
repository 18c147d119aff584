"""
Shared token and operator constants for the Kaleido front end.

Exports:
    - Token type names (`EOF`, `DEF`, `EXTERN`, `IDENT`, `NUMBER`, `CHAR`)
    - keyword_tokens: reserved words and the token type each one produces
    - DEFAULT_PRECEDENCE: the binary operators installed at session start
    - RESERVED_SYMBOLS: punctuation the grammar uses structurally
"""

EOF = "EOF"
DEF = "DEF"
EXTERN = "EXTERN"
IDENT = "IDENT"
NUMBER = "NUMBER"
CHAR = "CHAR"

TOKEN_TYPES: tuple[str, ...] = (EOF, DEF, EXTERN, IDENT, NUMBER, CHAR)

keyword_tokens: dict[str, str] = {
    "def": DEF,
    "extern": EXTERN,
}

# Higher binds tighter.
DEFAULT_PRECEDENCE: dict[str, int] = {
    "<": 10,
    "+": 20,
    "-": 30,
    "*": 40,
}

NOT_AN_OPERATOR = -1

RESERVED_SYMBOLS: frozenset[str] = frozenset({"(", ")", ",", ";"})

COMMENT_START = "#"
LINE_ENDINGS = "\n\r"
