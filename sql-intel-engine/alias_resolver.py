"""
Alias & Relationship Resolver
=============================

Schema-aware helpers behind column and JOIN completions:

    find_table_for_alias()      alias token -> (schema, table)
    extract_tables_from_query() FROM/JOIN tables known to the schema + aliases
    get_related_tables()        FK neighbours of the tables in the query
    generate_smart_alias()      short alias from a table name
    generate_unique_alias()     smart alias that avoids taken names/keywords

Everything here is pure over (query text, schema snapshot). An alias or table
that cannot be resolved is "no suggestion", never an error.
"""

import re
import logging
from dataclasses import dataclass
from typing import Iterable, List, Literal, Optional, Set, Tuple

from engine_config import get_settings
from schema_snapshot import ColumnInfo, DatabaseSchema, TableInfo

logger = logging.getLogger(__name__)

# SQL keywords that are never aliases
SQL_KEYWORDS: Set[str] = {
    'select', 'from', 'where', 'join', 'inner', 'left', 'right', 'full', 'cross',
    'on', 'and', 'or', 'order', 'group', 'by', 'having', 'as', 'in', 'not', 'null',
    'is', 'like', 'between', 'exists', 'case', 'when', 'then', 'else', 'end',
    'insert', 'into', 'values', 'update', 'set', 'delete', 'create', 'alter', 'drop',
    'table', 'view', 'index', 'procedure', 'function', 'trigger', 'with', 'union',
    'except', 'intersect', 'distinct', 'top', 'asc', 'desc', 'limit', 'offset', 'fetch',
}

_TABLE_PREFIX = re.compile(r'^(tbl_?|t_)', re.IGNORECASE)
_PASCAL_BOUNDARY = re.compile(r'(?=[A-Z])')

# Clause boundaries that may follow a FROM/JOIN table declaration (lookahead,
# so a following JOIN stays available to the next match)
_DECLARATION_END = (
    r'(?=\s+(?:on|where|order\s+by|group\s+by|having|union|except|intersect|'
    r'(?:(?:inner|cross)\s+|(?:left|right|full)\s+(?:outer\s+)?)?join)\b'
    r'|\s*[,;)]|\s*$|\s*\r?\n)'
)
_DECLARATION_ALIAS = r'(?:\s+(?:as\s+)?(?:\[([^\]]+)\]|([A-Za-z_][A-Za-z0-9_]*)))?'

# Groups: (schema?), table, bracketed alias, plain alias
_BRACKETED_DECLARATION = re.compile(
    r'\b(?:from|join)\s+(?:\[([^\]]+)\]\.)?\[([^\]]+)\]' + _DECLARATION_ALIAS + _DECLARATION_END,
    re.IGNORECASE
)
_QUALIFIED_DECLARATION = re.compile(
    r'\b(?:from|join)\s+([A-Za-z_][A-Za-z0-9_]*)\.([A-Za-z_][A-Za-z0-9_]*)'
    + _DECLARATION_ALIAS + _DECLARATION_END,
    re.IGNORECASE
)
_PLAIN_DECLARATION = re.compile(
    r'\b(?:from|join)\s+()([A-Za-z_][A-Za-z0-9_]*)' + _DECLARATION_ALIAS + _DECLARATION_END,
    re.IGNORECASE
)

TABLE_DECLARATION_PATTERNS = (
    _BRACKETED_DECLARATION,
    _QUALIFIED_DECLARATION,
    _PLAIN_DECLARATION,
)


@dataclass(frozen=True)
class ResolvedTable:
    schema: str
    table: str


@dataclass(frozen=True)
class TableInQuery:
    """
    A schema table declared in the query.

    Attributes:
        schema: Owning schema (from the snapshot)
        table: Table name (snapshot casing)
        alias: Declared alias, or the table name when none was given
        has_explicit_alias: False when alias is only the table name fallback
    """
    schema: str
    table: str
    alias: str
    has_explicit_alias: bool


@dataclass(frozen=True)
class JoinHint:
    """
    How a suggested table joins to a table already in the query.

    direction "to": the query table holds the FK (query.from_column -> suggested.to_column)
    direction "from": the suggested table holds the FK (suggested.from_column -> query.to_column)
    """
    direction: Literal["to", "from"]
    from_table: str
    from_alias: str
    from_has_explicit_alias: bool
    from_column: str
    to_table: str
    to_column: str


@dataclass(frozen=True)
class RelatedTable:
    table: TableInfo
    join: Optional[JoinHint] = None

    @property
    def name(self) -> str:
        return self.table.name

    @property
    def schema(self) -> str:
        return self.table.schema_name


def _default_schema(default_schema: Optional[str]) -> str:
    return default_schema or get_settings().default_schema


def find_table(table_name: str, db_schema: Optional[DatabaseSchema]) -> Optional[ResolvedTable]:
    """First table, then view, whose name matches case-insensitively."""
    if db_schema is None or not table_name:
        return None

    lower_name = table_name.lower()
    for collection in (db_schema.tables, db_schema.views):
        for obj in collection:
            if obj.name.lower() == lower_name:
                return ResolvedTable(schema=obj.schema_name, table=obj.name)
    return None


def find_table_for_alias(
    query: str,
    alias: str,
    db_schema: Optional[DatabaseSchema],
    default_schema: Optional[str] = None
) -> Optional[ResolvedTable]:
    """
    Resolve an alias (or bare table name) used as a column qualifier.

    Looks for "FROM|JOIN [schema.]table [AS] alias" in bracketed then plain
    form. Without a match, the alias itself is looked up as a table name.
    """
    if not alias:
        return None

    escaped = re.escape(alias)
    alias_token = rf'(?:\[{escaped}\]|{escaped})(?:\s|,|$)'
    bracketed = rf'\s+(?:\[(\w+)\]\.)?\[(\w+)\]\s+(?:as\s+)?' + alias_token
    plain = rf'\s+(?:(\w+)\.)?(\w+)\s+(?:as\s+)?' + alias_token

    patterns = (
        re.compile(r'\bfrom' + bracketed, re.IGNORECASE),
        re.compile(r'\bjoin' + bracketed, re.IGNORECASE),
        re.compile(r'\bfrom' + plain, re.IGNORECASE),
        re.compile(r'\bjoin' + plain, re.IGNORECASE),
    )

    for pattern in patterns:
        match = pattern.search(query or "")
        if not match:
            continue

        schema_name, table_name = match.group(1), match.group(2)
        if not schema_name:
            known = find_table(table_name, db_schema)
            schema_name = known.schema if known else _default_schema(default_schema)
        logger.debug(f"[RESOLVER] Alias '{alias}' -> {schema_name}.{table_name}")
        return ResolvedTable(schema=schema_name, table=table_name)

    return find_table(alias, db_schema)


def get_columns_for_table(
    schema_name: str,
    table_name: str,
    db_schema: Optional[DatabaseSchema]
) -> Tuple[ColumnInfo, ...]:
    """Columns of a table or view; empty if the object is unknown."""
    if db_schema is None:
        return ()

    lower_name = table_name.lower()
    lower_schema = (schema_name or "").lower()
    for collection in (db_schema.tables, db_schema.views):
        for obj in collection:
            if obj.name.lower() == lower_name and obj.schema_name.lower() == lower_schema:
                return obj.columns
    return ()


def extract_tables_from_query(query: str, db_schema: Optional[DatabaseSchema]) -> List[TableInQuery]:
    """
    Tables declared in FROM/JOIN clauses that exist in the schema.

    Each table appears once (first declaration wins). Keywords captured in
    the alias position are discarded.
    """
    tables: List[TableInQuery] = []
    if not query or db_schema is None:
        return tables

    seen: Set[Tuple[str, str]] = set()
    for pattern in TABLE_DECLARATION_PATTERNS:
        for match in pattern.finditer(query):
            table_name = match.group(2)
            alias = match.group(3) or match.group(4)

            if alias and alias.lower() in SQL_KEYWORDS:
                alias = None

            known = find_table(table_name, db_schema)
            if known is None:
                continue

            key = (known.schema, known.table)
            if key in seen:
                continue
            seen.add(key)

            tables.append(TableInQuery(
                schema=known.schema,
                table=known.table,
                alias=alias or known.table,
                has_explicit_alias=bool(alias),
            ))

    logger.debug(f"[RESOLVER] Tables in query: {[t.alias for t in tables]}")
    return tables


def _find_schema_table(db_schema: DatabaseSchema, schema_name: str, table_name: str) -> Optional[TableInfo]:
    lower_name = table_name.lower()
    lower_schema = schema_name.lower()
    for table in db_schema.tables:
        if table.name.lower() == lower_name and table.schema_name.lower() == lower_schema:
            return table
    return None


def get_related_tables(
    tables_in_query: Iterable[TableInQuery],
    db_schema: Optional[DatabaseSchema]
) -> List[RelatedTable]:
    """
    Tables reachable through one foreign key from the tables in the query.

    Both directions are considered: FKs declared on a query table ("to" the
    suggested table) and FKs on other tables pointing at a query table
    ("from" the suggested table). Tables already in the query are skipped.
    If no relation exists, every other schema table is returned without a
    join hint.
    """
    if db_schema is None:
        return []

    tables_in_query = list(tables_in_query)
    existing = {t.table.lower() for t in tables_in_query}
    related: List[RelatedTable] = []
    added: Set[Tuple[str, str]] = set()

    def _add(table: Optional[TableInfo], hint: JoinHint) -> None:
        if table is None:
            return
        key = (table.schema_name.lower(), table.name.lower())
        if key in added:
            return
        added.add(key)
        related.append(RelatedTable(table=table, join=hint))

    for query_table in tables_in_query:
        table_name = query_table.table.lower()

        for fk in db_schema.foreign_keys:
            hint_fields = dict(
                from_table=fk.from_table,
                from_alias=query_table.alias,
                from_has_explicit_alias=query_table.has_explicit_alias,
                from_column=fk.from_column,
                to_table=fk.to_table,
                to_column=fk.to_column,
            )

            if fk.from_table.lower() == table_name and fk.to_table.lower() not in existing:
                _add(
                    _find_schema_table(db_schema, fk.to_schema, fk.to_table),
                    JoinHint(direction="to", **hint_fields),
                )

            if fk.to_table.lower() == table_name and fk.from_table.lower() not in existing:
                _add(
                    _find_schema_table(db_schema, fk.from_schema, fk.from_table),
                    JoinHint(direction="from", **hint_fields),
                )

    if not related:
        logger.debug("[RESOLVER] No FK neighbours - suggesting all other tables")
        return [
            RelatedTable(table=table)
            for table in db_schema.tables
            if table.name.lower() not in existing
        ]

    return related


def generate_smart_alias(table_name: str) -> str:
    """
    Short alias from a table name.

    tbl_/t_ prefixes are dropped; snake_case and PascalCase names use word
    initials (order_items -> oi, OrderItems -> oi); anything else its first
    letter (Users -> u). Empty names give 't'.
    """
    name = _TABLE_PREFIX.sub('', table_name or '')

    if '_' in name:
        return ''.join(word[0].lower() for word in name.split('_') if word)

    words = [word for word in _PASCAL_BOUNDARY.split(name) if word]
    if len(words) > 1:
        return ''.join(word[0].lower() for word in words)

    return name[0].lower() if name else 't'


def generate_unique_alias(table_name: str, taken: Iterable[str]) -> str:
    """
    Smart alias that collides with neither a taken alias nor a SQL keyword.

    Algorithm:
        1. generate_smart_alias(table_name)
        2. On collision: first N characters of the table name (N = 2, 3, ...)
        3. Last resort: base alias + counter (oi1, oi2, ...)
    """
    used = {alias.lower() for alias in taken} | SQL_KEYWORDS
    base = generate_smart_alias(table_name) or 't'
    if base not in used:
        return base

    raw = re.sub(r'\W', '', _TABLE_PREFIX.sub('', table_name or '')).lower()
    for size in range(2, len(raw) + 1):
        candidate = raw[:size]
        if candidate not in used and not candidate[0].isdigit():
            return candidate

    counter = 1
    while f"{base}{counter}" in used:
        counter += 1
    return f"{base}{counter}"
