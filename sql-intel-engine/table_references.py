"""
FROM / JOIN Table Reference Finder
==================================

Extracts every object named directly after FROM or JOIN in one statement.

Four independent scans run over the statement text:
    (a) [schema].[table]
    (b) schema.table
    (c) [table]        (no following dot)
    (d) table / #temp  (no following dot)

Scans can report overlapping spans for the same object (e.g. a qualified and
an unqualified reading), so candidates are reduced by dropping every span
strictly contained in another one: the longer, more specific reading wins.

Offsets are relative to the statement text and point at the reference itself
(after the keyword and its whitespace), ready for marker placement.
"""

import re
import logging
from dataclasses import dataclass
from typing import List, Optional, Pattern, Tuple

logger = logging.getLogger(__name__)

_KEYWORD = r'\b(?:from|join)\s+'
_PLAIN_IDENT = r'[A-Za-z_][A-Za-z0-9_]*'
_BRACKET_IDENT = r'\[([^\]]+)\]'

# (pattern, has_schema). Group "ref" spans the whole reference.
BRACKETED_QUALIFIED = re.compile(
    _KEYWORD + r'(?P<ref>' + _BRACKET_IDENT + r'\s*\.\s*' + _BRACKET_IDENT + r')',
    re.IGNORECASE
)
PLAIN_QUALIFIED = re.compile(
    _KEYWORD + r'(?P<ref>(' + _PLAIN_IDENT + r')\s*\.\s*(' + _PLAIN_IDENT + r'))',
    re.IGNORECASE
)
BRACKETED_TABLE = re.compile(
    _KEYWORD + r'(?P<ref>' + _BRACKET_IDENT + r')(?!\s*\.)',
    re.IGNORECASE
)
# \b keeps the scan from backtracking into a prefix of a qualified name
PLAIN_TABLE = re.compile(
    _KEYWORD + r'(?P<ref>(#{0,2}' + _PLAIN_IDENT + r'))\b(?!\s*\.)',
    re.IGNORECASE
)

REFERENCE_SCANS: Tuple[Tuple[Pattern, bool], ...] = (
    (BRACKETED_QUALIFIED, True),
    (PLAIN_QUALIFIED, True),
    (BRACKETED_TABLE, False),
    (PLAIN_TABLE, False),
)


@dataclass(frozen=True)
class TableReference:
    """
    A FROM/JOIN target inside one statement.

    Attributes:
        schema: Schema qualifier as written, or None
        table: Object name as written (brackets removed)
        start_index: Offset of the reference in the statement text
        length: Length of the reference text (qualifier included)
        is_temp: Name starts with '#'
    """
    schema: Optional[str]
    table: str
    start_index: int
    length: int
    is_temp: bool

    @property
    def end_index(self) -> int:
        return self.start_index + self.length


def _scan(statement_text: str, pattern: Pattern, has_schema: bool) -> List[TableReference]:
    candidates = []
    for match in pattern.finditer(statement_text):
        if has_schema:
            schema, table = match.group(2), match.group(3)
        else:
            schema, table = None, match.group(2)

        start = match.start('ref')
        candidates.append(TableReference(
            schema=schema,
            table=table,
            start_index=start,
            length=match.end('ref') - start,
            is_temp=table.startswith('#'),
        ))
    return candidates


def drop_contained_references(candidates: List[TableReference]) -> List[TableReference]:
    """
    Remove candidates whose span lies inside a longer candidate's span.

    Identical spans reported twice are kept once. Output is ordered by
    start offset, longer spans first.
    """
    ordered = sorted(candidates, key=lambda ref: (ref.start_index, -ref.length))

    kept: List[TableReference] = []
    seen_spans = set()
    for current in ordered:
        span = (current.start_index, current.length)
        if span in seen_spans:
            continue

        contained = any(
            other.start_index <= current.start_index
            and current.end_index <= other.end_index
            and current.length < other.length
            for other in ordered
        )
        if not contained:
            kept.append(current)
            seen_spans.add(span)

    return kept


def find_table_references(statement_text: str) -> List[TableReference]:
    """
    Find all FROM/JOIN object references in a statement.

    Args:
        statement_text: One statement (comments should already be masked)

    Returns:
        De-duplicated references ordered by position
    """
    if not statement_text:
        return []

    candidates: List[TableReference] = []
    for pattern, has_schema in REFERENCE_SCANS:
        candidates.extend(_scan(statement_text, pattern, has_schema))

    references = drop_contained_references(candidates)
    if len(references) != len(candidates):
        logger.debug(
            f"[REFERENCES] {len(candidates) - len(references)} overlapping candidate(s) dropped"
        )
    return references
