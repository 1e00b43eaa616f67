"""
SQL Completion Provider
=======================

Assembles the ranked completion list for one editor request by combining
the context analyzer with the alias & relationship resolver.

RANKING (sort_text prefix, lower sorts first):
    0_  JOIN suggestions, operators (WHERE), aggregates (HAVING), INSERT columns
    1_  alias-qualified columns, operators (HAVING)
    2_  bare columns
    3_  tables
    4_  views
    5_  stored procedures and functions

Completions are advisory: any failure while assembling them is logged and an
empty list is returned so the editor keeps working.
"""

import re
import logging
from dataclasses import dataclass
from enum import Enum
from typing import List, NamedTuple, Optional, Tuple

from alias_resolver import (
    RelatedTable,
    TableInQuery,
    extract_tables_from_query,
    find_table_for_alias,
    generate_unique_alias,
    get_columns_for_table,
    get_related_tables,
)
from context_analyzer import SqlContext, SqlContextType, analyze_sql_context
from engine_config import EngineSettings, get_settings
from schema_snapshot import ColumnInfo, DatabaseSchema

logger = logging.getLogger(__name__)

# "alias.partial" at the end of the line -> column completion for alias
_DOT_ACCESS = re.compile(r'(\w+)\.\w*$')

_COLUMN_CONTEXTS = {
    SqlContextType.ORDER_BY,
    SqlContextType.GROUP_BY,
    SqlContextType.SELECT,
    SqlContextType.WHERE,
    SqlContextType.AFTER_FROM,
}

_HISTORY_HEADER = '-- Query from history'
_HISTORY_METADATA_PREFIXES = ('-- Executed:', '-- Connection:', '-- Result Sets:')


class CompletionKind(str, Enum):
    FIELD = "field"
    CLASS = "class"
    INTERFACE = "interface"
    FUNCTION = "function"
    METHOD = "method"
    OPERATOR = "operator"


@dataclass(frozen=True)
class CompletionItem:
    label: str
    kind: CompletionKind
    detail: str
    insert_text: str
    sort_text: Optional[str] = None
    is_snippet: bool = False


class SnippetSpec(NamedTuple):
    label: str
    detail: str
    insert_text: str


_SQL_OPERATORS = (
    SnippetSpec('=', 'Equal to', '= '),
    SnippetSpec('<>', 'Not equal to', '<> '),
    SnippetSpec('>', 'Greater than', '> '),
    SnippetSpec('<', 'Less than', '< '),
    SnippetSpec('>=', 'Greater than or equal to', '>= '),
    SnippetSpec('<=', 'Less than or equal to', '<= '),
    SnippetSpec('LIKE', 'Pattern matching', "LIKE '%${1}%'"),
    SnippetSpec('IN', 'Match any in list', 'IN (${1})'),
    SnippetSpec('NOT IN', 'Not in list', 'NOT IN (${1})'),
    SnippetSpec('IS NULL', 'Is null', 'IS NULL'),
    SnippetSpec('IS NOT NULL', 'Is not null', 'IS NOT NULL'),
    SnippetSpec('BETWEEN', 'Range', 'BETWEEN ${1} AND ${2}'),
)

_AGGREGATE_FUNCTIONS = (
    SnippetSpec('COUNT(*)', 'Count all rows', 'COUNT(*)'),
    SnippetSpec('COUNT(column)', 'Count non-null values', 'COUNT(${1:column})'),
    SnippetSpec('SUM(column)', 'Sum of values', 'SUM(${1:column})'),
    SnippetSpec('AVG(column)', 'Average of values', 'AVG(${1:column})'),
    SnippetSpec('MIN(column)', 'Minimum value', 'MIN(${1:column})'),
    SnippetSpec('MAX(column)', 'Maximum value', 'MAX(${1:column})'),
    SnippetSpec('STDEV(column)', 'Standard deviation', 'STDEV(${1:column})'),
    SnippetSpec('VAR(column)', 'Variance', 'VAR(${1:column})'),
)


def get_sql_operators() -> List[SnippetSpec]:
    """Operators offered after a bare WHERE/HAVING operand."""
    return list(_SQL_OPERATORS)


def get_aggregate_functions() -> List[SnippetSpec]:
    """Aggregates offered inside HAVING."""
    return list(_AGGREGATE_FUNCTIONS)


def _snippet_items(specs: List[SnippetSpec], kind: CompletionKind, rank: str) -> List[CompletionItem]:
    return [
        CompletionItem(
            label=spec.label,
            kind=kind,
            detail=spec.detail,
            insert_text=spec.insert_text,
            sort_text=f"{rank}_{spec.label}",
            is_snippet=True,
        )
        for spec in specs
    ]


def _column_item(column: ColumnInfo, label: Optional[str] = None,
                 source_table: Optional[str] = None, sort_text: Optional[str] = None) -> CompletionItem:
    detail = column.display_type
    if source_table:
        detail = f"{detail} - from {source_table}"
    label = label or column.name
    return CompletionItem(
        label=label,
        kind=CompletionKind.FIELD,
        detail=detail,
        insert_text=label,
        sort_text=sort_text,
    )


def _display_name(schema_name: str, name: str, settings: EngineSettings) -> str:
    if schema_name.lower() == settings.default_schema.lower():
        return name
    return f"{schema_name}.{name}"


def _join_items(related: List[RelatedTable], tables_in_query: List[TableInQuery],
                settings: EngineSettings) -> List[CompletionItem]:
    items = []
    taken = {t.alias for t in tables_in_query}

    for candidate in related:
        full_name = _display_name(candidate.schema, candidate.name, settings)
        alias = generate_unique_alias(candidate.name, taken)

        insert_text = f"{full_name} {alias}"
        detail = f"Table ({len(candidate.table.columns)} columns)"

        hint = candidate.join
        if hint is not None:
            if hint.direction == "to":
                condition = f"{hint.from_alias}.{hint.from_column} = {alias}.{hint.to_column}"
            else:
                condition = f"{alias}.{hint.from_column} = {hint.from_alias}.{hint.to_column}"
            insert_text = f"{full_name} {alias} ON {condition}"
            detail = f"Join on {condition}"

        items.append(CompletionItem(
            label=full_name,
            kind=CompletionKind.CLASS,
            detail=detail,
            insert_text=insert_text,
            sort_text=f"0_{full_name}",
            is_snippet=True,
        ))
    return items


def _query_column_items(full_text: str, db_schema: DatabaseSchema) -> List[CompletionItem]:
    items = []
    tables_in_query = extract_tables_from_query(full_text, db_schema)
    qualify = len(tables_in_query) > 1

    for table_info in tables_in_query:
        columns = get_columns_for_table(table_info.schema, table_info.table, db_schema)
        for column in columns:
            if table_info.has_explicit_alias or qualify:
                items.append(_column_item(
                    column,
                    label=f"{table_info.alias}.{column.name}",
                    source_table=table_info.table,
                    sort_text=f"1_{column.name}",
                ))
            items.append(_column_item(
                column,
                source_table=table_info.table,
                sort_text=f"2_{column.name}",
            ))
    return items


def _insert_column_items(context: SqlContext, db_schema: DatabaseSchema) -> List[CompletionItem]:
    if not context.table_name:
        return []
    target = context.table_name.lower()
    for table in db_schema.tables:
        if table.name.lower() == target:
            return [_column_item(column, sort_text=f"0_{column.name}") for column in table.columns]
    return []


def _schema_object_items(db_schema: DatabaseSchema) -> List[CompletionItem]:
    items = []
    for table in db_schema.tables:
        items.append(CompletionItem(
            label=table.name,
            kind=CompletionKind.CLASS,
            detail=f"Table ({len(table.columns)} columns)",
            insert_text=table.name,
            sort_text=f"3_{table.name}",
        ))
    for view in db_schema.views:
        items.append(CompletionItem(
            label=view.name, kind=CompletionKind.INTERFACE, detail="View",
            insert_text=view.name, sort_text=f"4_{view.name}",
        ))
    for procedure in db_schema.stored_procedures:
        items.append(CompletionItem(
            label=procedure.name, kind=CompletionKind.FUNCTION, detail="Stored Procedure",
            insert_text=procedure.name, sort_text=f"5_{procedure.name}",
        ))
    for function in db_schema.functions:
        items.append(CompletionItem(
            label=function.name, kind=CompletionKind.METHOD, detail="Function",
            insert_text=function.name, sort_text=f"5_{function.name}",
        ))
    return items


def _finalize(items: List[CompletionItem], settings: EngineSettings) -> List[CompletionItem]:
    """
    De-duplicate, rank, and apply the configured cap.

    Items collapse only when label, kind and detail all match, so same-named
    columns from different tables are kept apart by their source table.
    """
    seen = set()
    unique = []
    for item in items:
        key = (item.label, item.kind, item.detail)
        if key in seen:
            continue
        seen.add(key)
        unique.append(item)

    unique.sort(key=lambda item: item.sort_text or item.label)
    if settings.max_suggestions:
        unique = unique[:settings.max_suggestions]
    return unique


def _assemble(text_before_cursor: str, line_before_cursor: str, full_text: str,
              db_schema: DatabaseSchema, settings: EngineSettings) -> List[CompletionItem]:
    dot_match = _DOT_ACCESS.search(line_before_cursor)
    if dot_match:
        resolved = find_table_for_alias(
            text_before_cursor, dot_match.group(1), db_schema, settings.default_schema
        )
        if resolved is not None:
            columns = get_columns_for_table(resolved.schema, resolved.table, db_schema)
            return [_column_item(column) for column in columns]

    context = analyze_sql_context(text_before_cursor, line_before_cursor)
    logger.debug(f"[COMPLETION] Context {context.type.value} ({context.confidence})")

    items: List[CompletionItem] = []

    if context.type == SqlContextType.JOIN_TABLE:
        tables_in_query = extract_tables_from_query(text_before_cursor, db_schema)
        if tables_in_query:
            related = get_related_tables(tables_in_query, db_schema)
            return _finalize(_join_items(related, tables_in_query, settings), settings)

    elif context.type in _COLUMN_CONTEXTS:
        items.extend(_query_column_items(full_text, db_schema))
        if context.suggest_operators:
            items.extend(_snippet_items(get_sql_operators(), CompletionKind.OPERATOR, "0"))

    elif context.type == SqlContextType.HAVING:
        items.extend(_snippet_items(get_aggregate_functions(), CompletionKind.FUNCTION, "0"))
        if context.suggest_operators:
            items.extend(_snippet_items(get_sql_operators(), CompletionKind.OPERATOR, "1"))

    elif context.type == SqlContextType.INSERT_COLUMNS:
        items.extend(_insert_column_items(context, db_schema))

    items.extend(_schema_object_items(db_schema))
    return _finalize(items, settings)


def provide_completions(
    text_before_cursor: str,
    line_before_cursor: str,
    full_text: str,
    db_schema: Optional[DatabaseSchema],
    settings: Optional[EngineSettings] = None
) -> List[CompletionItem]:
    """
    Completion candidates for a cursor position.

    Args:
        text_before_cursor: Document text up to the cursor
        line_before_cursor: Current line up to the cursor
        full_text: Whole document (column suggestions look at all of it)
        db_schema: Current schema snapshot; None or an empty one yields no suggestions
        settings: Engine settings (defaults to get_settings())

    Returns:
        Ranked, de-duplicated completion items
    """
    if db_schema is None or db_schema.is_empty:
        logger.debug("[COMPLETION] No schema objects loaded - no suggestions")
        return []

    settings = settings or get_settings()
    try:
        return _assemble(
            text_before_cursor or "",
            line_before_cursor or "",
            full_text or "",
            db_schema,
            settings,
        )
    except Exception as exc:
        # Non-blocking: completion failures must never break the editor.
        logger.warning(f"[COMPLETION] Failed to assemble suggestions: {exc}")
        return []


def split_at_cursor(document: str, line_number: int, column: int) -> Tuple[str, str]:
    """
    Text and current line before a 1-based editor cursor.

    Positions past the end of a line or document are clamped.

    Returns:
        (text_before_cursor, line_before_cursor)
    """
    lines = (document or "").split('\n')
    line_index = min(max(line_number, 1), len(lines)) - 1
    line_before = lines[line_index][:max(column, 1) - 1]
    text_before = '\n'.join(lines[:line_index] + [line_before])
    return text_before, line_before


def provide_completions_at(
    document: str,
    line_number: int,
    column: int,
    db_schema: Optional[DatabaseSchema],
    settings: Optional[EngineSettings] = None
) -> List[CompletionItem]:
    """provide_completions() for a 1-based (line, column) editor cursor."""
    text_before, line_before = split_at_cursor(document, line_number, column)
    return provide_completions(text_before, line_before, document or "", db_schema, settings)


def remove_execution_comments(query_text: str) -> str:
    """
    Strip the execution header the host prepends to history entries.

    The block starts at a '-- Query from history' line and covers the
    following '-- Executed:', '-- Connection:', '-- Result Sets:' and blank
    lines. Other comments are kept.
    """
    if not query_text:
        return query_text

    result_lines = []
    skipping = False
    for line in query_text.split('\n'):
        stripped = line.strip()

        if stripped.startswith(_HISTORY_HEADER):
            skipping = True
            continue

        if skipping:
            if stripped.startswith(_HISTORY_METADATA_PREFIXES) or stripped == '':
                continue
            skipping = False

        result_lines.append(line)

    return '\n'.join(result_lines).rstrip()
