"""
SQL Cursor Context Analyzer
===========================

Classifies which clause the editor cursor is in, from the text before the
cursor and the current line before the cursor.

APPROACH:
The last occurrence of each governing keyword (select, from, where, order by,
group by, having, insert, update, set, values) is located in the lower-cased
text. A fixed precedence chain then decides, each rule gated on its keyword
appearing after the competing ones:

    JOIN_TABLE -> ON_CONDITION -> ORDER_BY -> GROUP_BY -> HAVING
        -> INSERT_COLUMNS / INSERT_VALUES -> UPDATE_SET -> WHERE
        -> SELECT / AFTER_FROM / FROM -> DEFAULT

Keyword positions come from plain substring search (no word boundaries),
so identifiers containing a keyword shift the result. This is a heuristic
tuned for responsiveness on half-typed SQL, not a parser.
"""

import re
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Literal, Optional, Sequence, Pattern

logger = logging.getLogger(__name__)

Confidence = Literal["high", "medium", "low"]


class SqlContextType(str, Enum):
    SELECT = "SELECT"
    FROM = "FROM"
    AFTER_FROM = "AFTER_FROM"
    WHERE = "WHERE"
    JOIN_TABLE = "JOIN_TABLE"
    ON_CONDITION = "ON_CONDITION"
    ORDER_BY = "ORDER_BY"
    GROUP_BY = "GROUP_BY"
    HAVING = "HAVING"
    INSERT_COLUMNS = "INSERT_COLUMNS"
    INSERT_VALUES = "INSERT_VALUES"
    UPDATE_SET = "UPDATE_SET"
    DEFAULT = "DEFAULT"


@dataclass(frozen=True)
class SqlContext:
    """
    Clause classification for a cursor position.

    Attributes:
        type: Clause the cursor is in
        confidence: How reliable the classification is
        suggest_operators: WHERE/HAVING only - the current condition is a bare
                           operand still waiting for its operator
        table_name: INSERT_COLUMNS only - the INSERT target table
    """
    type: SqlContextType
    confidence: Confidence
    suggest_operators: Optional[bool] = None
    table_name: Optional[str] = None


# Line ends with [INNER|LEFT|RIGHT|FULL|CROSS] JOIN
_JOIN_AT_END = re.compile(r'\b((?:inner|left|right|full|cross)\s+)?join\s*$', re.IGNORECASE)

# JOIN table [alias] ON ...
_JOIN_ON = re.compile(r'\bjoin\s+(?:\w+\.)?(\w+)(?:\s+(?:as\s+)?(\w+))?\s+on\s*', re.IGNORECASE)
_ON_AT_END = re.compile(r'\bon\s*$', re.IGNORECASE)

_ORDER_BY_TERMINATORS = re.compile(r'\b(limit|offset|fetch|for|union|intersect|except)\b')
_HAVING_TERMINATORS = re.compile(r'\b(order|limit|union|intersect|except)\b')
_WHERE_KEYWORD = re.compile(r'\bwhere\b')

# INSERT INTO [schema.]table ( col, col   -- column list still open
_INSERT_COLUMNS = re.compile(
    r'insert\s+into\s+(?:\[?\w+\]?\.)?\[?(\w+)\]?\s*\(\s*([^)]*)?$',
    re.IGNORECASE
)

_FROM_TABLE = re.compile(r'from\s+(?:\w+\.)?(\w+)(?:\s+(?:as\s+)?(\w+))?')

_CONDITION_SPLIT = re.compile(r'\s+(?:and|or)\s+', re.IGNORECASE)

_OPERATOR_PRESENT = re.compile(
    r'\s*(=|<>|!=|<|>|<=|>=|like|in|not\s+in|is\s+null|is\s+not\s+null|between)\s*',
    re.IGNORECASE
)

_WHERE_OPERAND_PATTERNS: Sequence[Pattern] = (
    re.compile(r'^(?:\w+\.)*\w+\s*$'),    # column / alias.column
    re.compile(r'^[\'"]\w*$'),            # string literal being typed
    re.compile(r'^\d+\.?\d*$'),           # number
)

_HAVING_OPERAND_PATTERNS: Sequence[Pattern] = (
    re.compile(r'^(?:count|sum|avg|min|max|stddev|variance)\s*\([^)]*\)\s*$', re.IGNORECASE),
    re.compile(r'^(?:\w+\.)*\w+\s*$'),
)


def _needs_operator(clause_text: str, operand_patterns: Sequence[Pattern]) -> bool:
    """
    True if the last AND/OR-separated condition is a bare operand.

    An operand that already carries a comparison, IN, LIKE, BETWEEN or
    IS [NOT] NULL does not need another operator.
    """
    trimmed = clause_text.strip()
    if not trimmed:
        return False

    current = _CONDITION_SPLIT.split(trimmed)[-1].strip()
    for pattern in operand_patterns:
        if pattern.search(current):
            return not _OPERATOR_PRESENT.search(current)
    return False


def analyze_where_context(text_after_where: str) -> bool:
    """Decide whether operators should be offered inside a WHERE clause."""
    return _needs_operator(text_after_where, _WHERE_OPERAND_PATTERNS)


def analyze_having_context(text_after_having: str) -> bool:
    """Decide whether operators should be offered inside a HAVING clause."""
    return _needs_operator(text_after_having, _HAVING_OPERAND_PATTERNS)


def analyze_sql_context(text_before_cursor: str, line_before_cursor: str) -> SqlContext:
    """
    Classify the clause at the cursor.

    Args:
        text_before_cursor: Document text from the start up to the cursor
        line_before_cursor: Current line up to the cursor

    Returns:
        SqlContext (DEFAULT with low confidence when nothing applies)
    """
    lower_text = (text_before_cursor or "").lower()
    lower_line = (line_before_cursor or "").lower()

    last_select = lower_text.rfind('select')
    last_from = lower_text.rfind('from')
    last_where = lower_text.rfind('where')
    last_order_by = lower_text.rfind('order by')
    last_group_by = lower_text.rfind('group by')
    last_having = lower_text.rfind('having')
    last_insert = lower_text.rfind('insert')
    last_update = lower_text.rfind('update')
    last_set = lower_text.rfind('set')
    last_values = lower_text.rfind('values')

    if _JOIN_AT_END.search(lower_line):
        return SqlContext(SqlContextType.JOIN_TABLE, "high")

    if _JOIN_ON.search(lower_line) or _ON_AT_END.search(lower_line):
        return SqlContext(SqlContextType.ON_CONDITION, "high")

    if last_order_by != -1 and (last_order_by > last_where or last_where == -1):
        text_after_order_by = lower_text[last_order_by + len('order by'):]
        if not _ORDER_BY_TERMINATORS.search(text_after_order_by):
            return SqlContext(SqlContextType.ORDER_BY, "high")

    if last_group_by != -1 and last_group_by > max(last_where, last_order_by, last_having):
        return SqlContext(SqlContextType.GROUP_BY, "high")

    if last_having != -1 and last_having > max(last_where, last_group_by):
        text_after_having = lower_text[last_having + len('having'):]
        if not _HAVING_TERMINATORS.search(text_after_having):
            return SqlContext(
                SqlContextType.HAVING,
                "high",
                suggest_operators=analyze_having_context(text_after_having),
            )

    if last_insert != -1 and last_insert > max(last_select, last_update):
        insert_match = _INSERT_COLUMNS.search(line_before_cursor or "")
        if insert_match:
            return SqlContext(
                SqlContextType.INSERT_COLUMNS,
                "high",
                table_name=insert_match.group(1),
            )
        if last_values != -1 and last_values > last_insert:
            return SqlContext(SqlContextType.INSERT_VALUES, "high")

    if last_update != -1 and last_set != -1 and last_set > last_update:
        text_after_set = lower_text[last_set + len('set'):]
        if (not _WHERE_KEYWORD.search(text_after_set)
                or last_where == -1 or last_where < last_set):
            return SqlContext(SqlContextType.UPDATE_SET, "high")

    if last_where != -1 and last_where > max(last_from, last_set):
        text_after_where = lower_text[last_where + len('where'):]
        return SqlContext(
            SqlContextType.WHERE,
            "high",
            suggest_operators=analyze_where_context(text_after_where),
        )

    if last_select != -1:
        if last_from == -1 or last_select > last_from:
            return SqlContext(SqlContextType.SELECT, "medium")
        if _FROM_TABLE.search(lower_text[last_from:]):
            return SqlContext(SqlContextType.AFTER_FROM, "medium")
        return SqlContext(SqlContextType.FROM, "high")

    logger.debug("[CONTEXT] No governing keyword before cursor - DEFAULT")
    return SqlContext(SqlContextType.DEFAULT, "low")
