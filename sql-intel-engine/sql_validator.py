"""
SQL Intel Engine - Schema Reference Validator
=============================================

PURPOSE:
Flags FROM/JOIN targets that do not exist in the connected database, so the
editor can underline them before the query is ever executed.

PIPELINE (per statement):
    Split script -> Mask comments -> Extract CTE names -> Find references
        -> Exempt temp tables / CTEs -> Look up schema -> Emit markers

LOOKUP RULES:
- #temp tables are never checked
- Unqualified names that match a CTE of the same statement are local
- Unqualified names match a table or view in ANY schema
- Qualified names must match schema AND name (case-insensitive)

WHAT THIS IS NOT:
- NOT column validation (only object names after FROM/JOIN)
- NOT a parser (regional regex scans over masked text)
- NOT fallible: malformed SQL yields fewer references, never an exception
"""

import re
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Set, Tuple

from sqlparse import keywords
from sqlparse import tokens as T
from sqlparse.lexer import Lexer

from cte_extractor import extract_ctes
from schema_snapshot import DatabaseSchema
from statement_splitter import split_sql_statements
from table_references import TableReference, find_table_references

logger = logging.getLogger(__name__)

_NON_NEWLINE = re.compile(r'[^\r\n]')

# T-SQL literals: a doubled quote is the only escape, backslash is literal
_TSQL_STRING_RULES = {
    T.String.Single: r"'(''|[^'])*'",
    T.String.Symbol: r'"(""|[^"])*"',
}


def _build_tsql_lexer() -> Lexer:
    """sqlparse lexer with the default rules, minus backslash escapes in quotes."""
    tsql_lexer = Lexer()
    tsql_lexer.default_initialization()
    tsql_lexer.set_SQL_REGEX([
        (_TSQL_STRING_RULES.get(ttype, regex), ttype)
        for regex, ttype in keywords.SQL_REGEX
    ])
    return tsql_lexer


_TSQL_LEXER = _build_tsql_lexer()


class MarkerSeverity(str, Enum):
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


@dataclass(frozen=True)
class ValidationMarker:
    """
    Editor diagnostic. Positions are 1-based; the end position is exclusive.
    """
    severity: MarkerSeverity
    message: str
    start_line: int
    start_column: int
    end_line: int
    end_column: int

    def to_editor_dict(self) -> Dict[str, object]:
        """Marker in the shape expected by the editor's setModelMarkers()."""
        return {
            "severity": self.severity.value,
            "message": self.message,
            "startLineNumber": self.start_line,
            "startColumn": self.start_column,
            "endLineNumber": self.end_line,
            "endColumn": self.end_column,
        }


def mask_comments(text: str) -> str:
    """
    Replace comment characters with spaces, keeping every offset and newline.

    Uses the sqlparse lexer (with T-SQL quoting) so that '--' or '/*' inside
    string literals is left untouched, and 'C:\\' is a complete literal.
    """
    if not text:
        return text

    parts = []
    for ttype, value in _TSQL_LEXER.get_tokens(text):
        if ttype in T.Comment:
            parts.append(_NON_NEWLINE.sub(' ', value))
        else:
            parts.append(value)
    return ''.join(parts)


def get_position_at(text: str, offset: int) -> Tuple[int, int]:
    """Translate an absolute offset into a 1-based (line, column) pair."""
    line = text.count('\n', 0, offset) + 1
    line_start = text.rfind('\n', 0, offset) + 1
    return line, offset - line_start + 1


def find_table_in_schema(
    table_name: str,
    schema_name: Optional[str],
    db_schema: Optional[DatabaseSchema]
) -> bool:
    """
    Check whether a table or view exists.

    Without a schema qualifier any schema matches; with one, the schema must
    match exactly (case-insensitive).
    """
    if db_schema is None:
        return False
    return SchemaReferenceValidator(db_schema).has_object(table_name, schema_name)


class SchemaReferenceValidator:
    """
    Validates object references of a script against one schema snapshot.

    Build once per snapshot; validate() may then be called for every
    keystroke-debounced validation pass.
    """

    def __init__(self, db_schema: Optional[DatabaseSchema]):
        self.db_schema = db_schema
        self._build_object_index()

    def _build_object_index(self) -> None:
        """Map: object name (lowercase) -> set of owning schemas (lowercase)."""
        self.object_index: Dict[str, Set[str]] = {}
        if self.db_schema is None:
            return

        for obj in (*self.db_schema.tables, *self.db_schema.views):
            self.object_index.setdefault(obj.name.lower(), set()).add(obj.schema_name.lower())

    def has_object(self, table_name: str, schema_name: Optional[str] = None) -> bool:
        """Unqualified names match any schema; qualified names need the same schema."""
        schemas = self.object_index.get(table_name.lower())
        if not schemas:
            return False
        if not schema_name:
            return True
        return schema_name.lower() in schemas

    def validate(self, sql: str) -> List[ValidationMarker]:
        """
        Validate every statement of a script.

        Args:
            sql: Full editor text

        Returns:
            One error marker per unknown object reference
        """
        markers: List[ValidationMarker] = []
        if not sql or not sql.strip():
            return markers

        if self.db_schema is None:
            logger.warning("[VALIDATOR] No schema snapshot available - skipping validation")
            return markers

        for stmt in split_sql_statements(sql):
            masked = mask_comments(stmt.text)
            ctes = extract_ctes(masked)

            for ref in find_table_references(masked):
                if ref.is_temp:
                    continue
                if ref.schema is None and ref.table.lower() in ctes:
                    continue
                if self.has_object(ref.table, ref.schema):
                    continue

                markers.append(self._build_marker(sql, stmt.start_offset, ref))

        if markers:
            logger.debug(f"[VALIDATOR] {len(markers)} invalid object reference(s)")
        return markers

    def _build_marker(self, sql: str, stmt_offset: int, ref: TableReference) -> ValidationMarker:
        abs_start = stmt_offset + ref.start_index
        start_line, start_column = get_position_at(sql, abs_start)
        end_line, end_column = get_position_at(sql, abs_start + ref.length)

        return ValidationMarker(
            severity=MarkerSeverity.ERROR,
            message=f"Invalid object name '{ref.table}'.",
            start_line=start_line,
            start_column=start_column,
            end_line=end_line,
            end_column=end_column,
        )


def validate_sql(sql: str, db_schema: Optional[DatabaseSchema]) -> List[ValidationMarker]:
    """Convenience function to validate a script against a schema snapshot."""
    return SchemaReferenceValidator(db_schema).validate(sql)
