"""
Provides the `PrecedenceTable` that the Kaleido parser consults at every
binary-operator juncture.

Classes:
    - PrecedenceTable: Maps one-character operators to binding strength.
    - PrecedenceError: Raised when a configuration is invalid or conflicting.

Features:
    - Ships with the default operators from `DEFAULT_PRECEDENCE`
    - Extends with new operators without touching the parser
    - Loads extra operators from a JSON file
    - Detects and reports precedence conflicts

Usage:
    >>> table = PrecedenceTable.from_defaults()
    >>> table.configure({"/": 40})
    >>> table.precedence_of("/")
    40
"""

import json
from typing import Any

from kaleido.kaleido_constants import (
    COMMENT_START,
    DEFAULT_PRECEDENCE,
    NOT_AN_OPERATOR,
    RESERVED_SYMBOLS,
)


class PrecedenceError(Exception):
    """Raised when an operator configuration is invalid.

    Attributes:
        conflicts (list[str]): Operators whose requested precedence disagrees
            with the one already installed.
    """

    def __init__(self, message: str, conflicts: list[str] | None = None):
        super().__init__(message)
        self.conflicts = conflicts or []


def _check_operator(op: Any) -> None:
    if not isinstance(op, str) or len(op) != 1:
        raise PrecedenceError(f"Operator must be a single character: {op!r}")
    if not op.isascii() or not op.isprintable() or op.isspace():
        raise PrecedenceError(f"Operator must be a printable ASCII character: {op!r}")
    if op.isalnum() or op in (".", COMMENT_START):
        raise PrecedenceError(f"Character can never be lexed as an operator: {op!r}")
    if op in RESERVED_SYMBOLS:
        raise PrecedenceError(f"Reserved symbol cannot be an operator: {op!r}")


class PrecedenceTable:
    """Binary-operator precedence for one parse session.

    The table is populated before the first parse and only read afterwards.

    Attributes:
        precedence (dict[str, int]): Operator character to precedence.
    """

    def __init__(self) -> None:
        self.precedence: dict[str, int] = {}

    @classmethod
    def from_defaults(cls) -> "PrecedenceTable":
        instance = cls()
        instance.configure(DEFAULT_PRECEDENCE)
        return instance

    def precedence_of(self, op: str) -> int:
        """Returns the precedence of `op`, or -1 if it is not a binary operator."""
        if len(op) != 1 or not op.isascii():
            return NOT_AN_OPERATOR
        prec = self.precedence.get(op, 0)
        return prec if prec > 0 else NOT_AN_OPERATOR

    def __contains__(self, op: str) -> bool:
        return self.precedence_of(op) != NOT_AN_OPERATOR

    def configure(self, cfg: dict[str, int]) -> None:
        """
        Installs operators from an `{operator: precedence}` mapping.

        Nothing is installed unless the whole mapping is valid.

        Raises:
            PrecedenceError: If the mapping is not a dict, an operator is not
                a usable single character, a precedence is not a positive
                integer, or an operator is rebound to a different precedence.
        """
        if not isinstance(cfg, dict):
            raise PrecedenceError("Configuration must be a dict of operator to precedence")

        updates: dict[str, int] = {}
        conflicts: list[str] = []
        for op, prec in cfg.items():
            _check_operator(op)
            if isinstance(prec, bool) or not isinstance(prec, int) or prec <= 0:
                raise PrecedenceError(
                    f"Precedence for {op!r} must be a positive integer, got {prec!r}"
                )
            existing = self.precedence.get(op)
            if existing is not None and existing != prec:
                conflicts.append(f"'{op}' → conflict between {existing} and {prec}")
            else:
                updates[op] = prec

        if conflicts:
            raise PrecedenceError("Operator precedence conflict(s) detected", conflicts)

        self.precedence.update(updates)

    def load_from_json(self, path: str) -> None:
        """
        Loads extra operators from a JSON object such as `{"/": 40, ">": 10}`.

        Raises:
            PrecedenceError: If the file cannot be read or the mapping is invalid.
        """
        try:
            with open(path, encoding="utf-8") as f:
                raw_cfg = json.load(f)
        except (OSError, ValueError) as e:
            raise PrecedenceError(f"Failed to load precedence file: {e}") from e
        self.configure(raw_cfg)

    def report(self) -> str:
        """Returns the table as lines of `op → precedence`, loosest first."""
        rows = sorted(self.precedence.items(), key=lambda item: (item[1], item[0]))
        return "\n".join(f"{op:>4} → {prec}" for op, prec in rows)

    def summary(self) -> dict[str, int]:
        return dict(self.precedence)
