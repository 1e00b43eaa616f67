"""
SQL Statement Splitter
======================

Splits a script into statements on top-level semicolons.

A single left-to-right scan tracks three states:
    NORMAL      - semicolons terminate statements
    IN_QUOTE    - inside '...' or "..." (a doubled quote is an escaped quote)
    IN_BRACKET  - inside [...] (closed by the first ']')

Line comments (--) and block comments (/* */, not nested) are skipped while
NORMAL. Unterminated quotes, brackets and comments simply run to the end of
the script: malformed input is never an error here.
"""

import logging
from dataclasses import dataclass
from typing import List

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SqlStatement:
    """
    One statement span of a script.

    Attributes:
        text: Raw slice between terminators (leading whitespace kept)
        start_offset: Absolute offset of text[0] in the script
        end_offset: Absolute offset one past the last character (the ';', if any)
    """
    text: str
    start_offset: int
    end_offset: int


def split_sql_statements(sql: str) -> List[SqlStatement]:
    """
    Split a SQL script into statements.

    Args:
        sql: Full script text

    Returns:
        Statements in script order. The trailing segment after the last ';'
        is returned only if it contains non-whitespace.
    """
    statements: List[SqlStatement] = []
    if not sql:
        return statements

    length = len(sql)
    quote_char = None
    in_brackets = False
    stmt_start = 0
    i = 0

    while i < length:
        char = sql[i]

        if quote_char is not None:
            if char == quote_char:
                if i + 1 < length and sql[i + 1] == quote_char:
                    i += 1  # escaped quote
                else:
                    quote_char = None
        elif in_brackets:
            if char == ']':
                in_brackets = False
        elif char in ("'", '"'):
            quote_char = char
        elif char == '[':
            in_brackets = True
        elif char == '-' and sql.startswith('-', i + 1):
            newline = sql.find('\n', i)
            i = length if newline == -1 else newline
        elif char == '/' and sql.startswith('*', i + 1):
            close = sql.find('*/', i + 2)
            i = length if close == -1 else close + 1
        elif char == ';':
            statements.append(SqlStatement(
                text=sql[stmt_start:i],
                start_offset=stmt_start,
                end_offset=i,
            ))
            stmt_start = i + 1

        i += 1

    if stmt_start < length:
        tail = sql[stmt_start:]
        if tail.strip():
            statements.append(SqlStatement(
                text=tail,
                start_offset=stmt_start,
                end_offset=length,
            ))

    logger.debug(f"[SPLITTER] {len(statements)} statement(s) in {length} chars")
    return statements
