"""
Kaleido Language Parser

Recursive-descent parser that pulls tokens from a `Lexer` on demand and
builds the AST defined in `kaleido_ast`. Binary expressions are parsed by
operator-precedence climbing against a `PrecedenceTable`.

Grammar
-------
    top        ::= definition | external | expression | ';'
    definition ::= 'def' prototype expression
    external   ::= 'extern' prototype
    prototype  ::= identifier '(' identifier* ')'
    expression ::= primary binoprhs
    binoprhs   ::= (binop primary)*
    primary    ::= identifierexpr | numberexpr | parenexpr
    identifierexpr ::= identifier | identifier '(' (expression (',' expression)*)? ')'
    parenexpr  ::= '(' expression ')'

Parser Behavior
---------------
- Keeps exactly one token of lookahead in `current`.
- Each rule raises a `ParseError` subclass on failure, so no partial AST
  ever escapes. Tokens consumed before the failure stay consumed.
- `attempt()` turns a rule into an explicit `ParseResult`, the outcome type
  handed to callers such as the REPL driver.

Entry Points
------------
- `parse_definition()`, `parse_extern()`, `parse_top_level_expression()`
- `parse_expression()`, `parse_primary()`, `parse_bin_op_rhs()`, `parse_prototype()`

Raises
------
UnexpectedToken
    The current token cannot begin an expression.
ExpectedSymbol
    A required punctuation token was missing.
ExpectedIdentifier
    A function name was required.
NestingTooDeep
    Input nested past the interpreter recursion limit.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Generic, TypeVar, cast

from kaleido.kaleido_ast import (
    BinaryExpr,
    CallExpr,
    Expr,
    FunctionDef,
    NumberExpr,
    Prototype,
    VariableExpr,
)
from kaleido.kaleido_constants import CHAR, DEF, EXTERN, IDENT, NOT_AN_OPERATOR, NUMBER
from kaleido.kaleido_lexer import CharacterStream, Lexer, Readable, Token
from kaleido.kaleido_precedence import PrecedenceTable

T = TypeVar("T")


class ParseError(SyntaxError):
    """Base class for Kaleido parse failures.

    Attributes:
        token (Token): The lookahead token when the failure was detected.
        line (int): Line of that token.
        col (int): Column of that token.
    """

    def __init__(self, message: str, token: Token) -> None:
        super().__init__(message)
        self.message = message
        self.token = token
        self.line = token.line
        self.col = token.col

    def __str__(self) -> str:
        return f"{self.message} at line {self.line}, col {self.col} (got {self.token.describe()})"


class UnexpectedToken(ParseError):
    """The current token cannot begin a primary expression."""


class ExpectedSymbol(ParseError):
    """A required punctuation token was not found.

    Attributes:
        expected (tuple[str, ...]): The symbols that would have been accepted.
    """

    def __init__(self, message: str, token: Token, *expected: str) -> None:
        super().__init__(message, token)
        self.expected = expected

    @property
    def symbol(self) -> str:
        return self.expected[0]


class ExpectedIdentifier(ParseError):
    """A function name was required but absent."""


class NestingTooDeep(ParseError):
    """Input nests deeper than the interpreter stack allows."""


@dataclass(frozen=True)
class ParseResult(Generic[T]):
    """Outcome of one parse rule: exactly one of `value` or `error` is set."""

    value: T | None = None
    error: ParseError | None = None

    def __post_init__(self) -> None:
        if (self.value is None) == (self.error is None):
            raise ValueError("ParseResult needs exactly one of value or error")

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> T:
        """Returns the parsed value, re-raising the parse error on failure."""
        if self.error is not None:
            raise self.error
        return cast(T, self.value)


class Parser:
    """
    Kaleido parse session.

    Owns the lexer cursor, the one-token lookahead and the precedence table,
    so independent sessions never share state.

    Attributes
    ----------
    lexer : Lexer
        Token source for this session.
    precedence : PrecedenceTable
        Binary-operator precedence consulted by `parse_bin_op_rhs`.
    current : Token
        The lookahead token, not yet consumed by any rule.
    """

    def __init__(self, lexer: Lexer, precedence: PrecedenceTable | None = None) -> None:
        self.lexer = lexer
        self.precedence = precedence or PrecedenceTable.from_defaults()
        self.current: Token = lexer.next_token()

    @classmethod
    def from_source(
        cls, source: str | Readable, precedence: PrecedenceTable | None = None
    ) -> Parser:
        return cls(Lexer(CharacterStream(source)), precedence)

    def advance(self) -> Token:
        """Consumes the lookahead and returns the new one."""
        self.current = self.lexer.next_token()
        return self.current

    def attempt(self, rule: Callable[[], T]) -> ParseResult[T]:
        try:
            return ParseResult(value=rule())
        except ParseError as e:
            return ParseResult(error=e)
        except RecursionError:
            error = NestingTooDeep("Expression nested too deeply", self.current)
            return ParseResult(error=error)

    def token_precedence(self) -> int:
        tok = self.current
        if tok.type != CHAR:
            return NOT_AN_OPERATOR
        return self.precedence.precedence_of(str(tok.value))

    # numberexpr ::= number
    def parse_number_expr(self) -> NumberExpr:
        value = float(self.current.value)
        self.advance()
        return NumberExpr(value)

    # parenexpr ::= '(' expression ')'
    def parse_paren_expr(self) -> Expr:
        self.advance()
        expr = self.parse_expression()
        if not self.current.is_char(")"):
            raise ExpectedSymbol("Expected ')'", self.current, ")")
        self.advance()
        return expr

    def parse_identifier_expr(self) -> Expr:
        name = str(self.current.value)
        self.advance()

        if not self.current.is_char("("):
            return VariableExpr(name)

        self.advance()
        args: list[Expr] = []
        if not self.current.is_char(")"):
            while True:
                args.append(self.parse_expression())
                if self.current.is_char(")"):
                    break
                if not self.current.is_char(","):
                    raise ExpectedSymbol(
                        "Expected ')' or ',' in argument list", self.current, ")", ","
                    )
                self.advance()

        self.advance()
        return CallExpr(name, tuple(args))

    def parse_primary(self) -> Expr:
        tok = self.current
        if tok.type == IDENT:
            return self.parse_identifier_expr()
        if tok.type == NUMBER:
            return self.parse_number_expr()
        if tok.is_char("("):
            return self.parse_paren_expr()
        raise UnexpectedToken("Unknown token when expecting an expression", tok)

    def parse_bin_op_rhs(self, min_precedence: int, lhs: Expr) -> Expr:
        """
        Folds `(binop primary)*` onto `lhs` by precedence climbing.

        Stops at the first token whose precedence is below `min_precedence`;
        non-operators have precedence -1 and always stop the loop.
        """
        while True:
            prec = self.token_precedence()
            if prec < min_precedence:
                return lhs

            op = str(self.current.value)
            self.advance()

            rhs = self.parse_primary()

            # A tighter operator after rhs takes rhs as its own lhs first.
            if prec < self.token_precedence():
                rhs = self.parse_bin_op_rhs(prec + 1, rhs)

            lhs = BinaryExpr(op, lhs, rhs)

    def parse_expression(self) -> Expr:
        return self.parse_bin_op_rhs(0, self.parse_primary())

    # prototype ::= id '(' id* ')'
    def parse_prototype(self) -> Prototype:
        if self.current.type != IDENT:
            raise ExpectedIdentifier("Expected function name in prototype", self.current)
        name = str(self.current.value)
        self.advance()

        if not self.current.is_char("("):
            raise ExpectedSymbol("Expected '(' in prototype", self.current, "(")

        params: list[str] = []
        while self.advance().type == IDENT:
            params.append(str(self.current.value))
        if not self.current.is_char(")"):
            raise ExpectedSymbol("Expected ')' in prototype", self.current, ")")

        self.advance()
        return Prototype(name, tuple(params))

    def parse_definition(self) -> FunctionDef:
        if self.current.type != DEF:
            raise UnexpectedToken("Expected 'def'", self.current)
        self.advance()
        proto = self.parse_prototype()
        return FunctionDef(proto, self.parse_expression())

    def parse_extern(self) -> Prototype:
        if self.current.type != EXTERN:
            raise UnexpectedToken("Expected 'extern'", self.current)
        self.advance()
        return self.parse_prototype()

    def parse_top_level_expression(self) -> FunctionDef:
        body = self.parse_expression()
        return FunctionDef(Prototype.anonymous(), body)


__all__ = [
    "ExpectedIdentifier",
    "ExpectedSymbol",
    "NestingTooDeep",
    "ParseError",
    "ParseResult",
    "Parser",
    "UnexpectedToken",
]
