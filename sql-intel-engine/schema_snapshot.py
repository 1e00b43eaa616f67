"""
Database schema snapshot models.

The host pushes a full structural snapshot (tables, views, foreign keys,
routines) whenever the connection's structure changes. Models are frozen and
collections are tuples: the engine reads a snapshot, it never edits one.
Payload keys are camelCase (fromSchema, isPrimaryKey, foreignKeys, ...);
Python code constructs models with the snake_case field names.
"""

from typing import Any, Dict, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _SnapshotModel(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        alias_generator=to_camel,
    )


class ColumnInfo(_SnapshotModel):
    name: str
    type: str
    nullable: bool = True
    is_primary_key: bool = False
    is_foreign_key: bool = False
    max_length: Optional[int] = None
    precision: Optional[int] = None
    scale: Optional[int] = None

    @property
    def display_type(self) -> str:
        """Type label shown next to a column suggestion, e.g. 'int (nullable)'."""
        return f"{self.type} (nullable)" if self.nullable else self.type


class TableInfo(_SnapshotModel):
    # "schema" would shadow BaseModel.schema(); the payload key is still "schema"
    schema_name: str = Field(alias="schema")
    name: str
    columns: Tuple[ColumnInfo, ...] = ()


class ViewInfo(TableInfo):
    pass


class ForeignKeyInfo(_SnapshotModel):
    """Directional relation: from_table.from_column references to_table.to_column."""
    from_schema: str
    from_table: str
    from_column: str
    to_schema: str
    to_table: str
    to_column: str
    constraint_name: Optional[str] = None


class StoredProcedureInfo(_SnapshotModel):
    schema_name: str = Field(alias="schema")
    name: str


class FunctionInfo(_SnapshotModel):
    schema_name: str = Field(alias="schema")
    name: str


class DatabaseSchema(_SnapshotModel):
    tables: Tuple[TableInfo, ...] = ()
    views: Tuple[ViewInfo, ...] = ()
    foreign_keys: Tuple[ForeignKeyInfo, ...] = ()
    stored_procedures: Tuple[StoredProcedureInfo, ...] = ()
    functions: Tuple[FunctionInfo, ...] = ()

    @classmethod
    def empty(cls) -> "DatabaseSchema":
        return cls()

    @classmethod
    def from_payload(cls, payload: Optional[Dict[str, Any]]) -> "DatabaseSchema":
        """
        Validate a host snapshot payload.

        Raises:
            pydantic.ValidationError: if the payload does not describe a schema
        """
        if not payload:
            return cls.empty()
        return cls.model_validate(payload)

    @property
    def is_empty(self) -> bool:
        """No object a completion could name (foreign keys alone do not count)."""
        return not (self.tables or self.views or self.stored_procedures or self.functions)
