"""
CTE name extraction.

Names defined by a leading WITH clause are local to the statement and must
not be reported as unknown objects. CTE bodies are skipped with a balanced
parenthesis walk since they routinely contain nested subqueries.
"""

import re
import logging
from typing import Set

logger = logging.getLogger(__name__)

_WITH_PREFIX = re.compile(r'^\s*WITH\s+', re.IGNORECASE)

# name AS (   |   [name] AS (   |   name (col1, col2) AS (
_CTE_START = re.compile(
    r'''
    \s*
    (?:\[([^\]]+)\]|([A-Za-z_][A-Za-z0-9_]*))   # bracketed or plain name
    (?:\s*\([^()]*\))?                          # optional column list
    \s+AS\s*\(
    ''',
    re.IGNORECASE | re.VERBOSE
)

_NEXT_CTE = re.compile(r'\s*,')


def _find_closing_paren(text: str, start: int) -> int:
    """
    Index of the ')' closing a '(' that was already consumed before `start`.

    Returns -1 if the parenthesis is never closed.
    """
    depth = 1
    for i in range(start, len(text)):
        char = text[i]
        if char == '(':
            depth += 1
        elif char == ')':
            depth -= 1
            if depth == 0:
                return i
    return -1


def extract_ctes(statement_text: str) -> Set[str]:
    """
    Extract lower-cased CTE names from a statement starting with WITH.

    Stops at the first malformed definition and returns what was found.
    """
    ctes: Set[str] = set()
    if not statement_text:
        return ctes

    with_match = _WITH_PREFIX.match(statement_text)
    if not with_match:
        return ctes

    pos = with_match.end()
    while True:
        match = _CTE_START.match(statement_text, pos)
        if not match:
            break

        ctes.add((match.group(1) or match.group(2)).lower())

        close = _find_closing_paren(statement_text, match.end())
        if close == -1:
            logger.debug("[CTE] Unterminated CTE body - stopping extraction")
            break

        comma = _NEXT_CTE.match(statement_text, close + 1)
        if not comma:
            break
        pos = comma.end()

    return ctes
