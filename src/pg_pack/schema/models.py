"""Pydantic models for introspected catalog objects.

This module contains the read-only snapshot of one database taken at
introspection time:
- Table-level models: ColumnSchema, PrimaryKeyConstraint,
  ForeignKeyConstraint, TableSchema
- Schema-level objects: DomainSchema, FunctionSchema, SequenceSchema,
  EnumTypeSchema
- SchemaSnapshot: everything the DDL synthesizer needs for one schema

Nothing here talks to the database; see ``pg_pack.schema.introspector``.
"""

from pydantic import BaseModel, Field


# ============================================================================
# Table Models
# ============================================================================


class ColumnSchema(BaseModel):
    """Schema for a table column.

    ``type_name`` is the resolved, output-ready type text (array suffix and
    schema qualification already applied).  ``data_type`` keeps the raw
    ``information_schema`` value, which drives precision handling and
    value encoding.

    Example:
        >>> col = ColumnSchema(name="id", type_name="integer", data_type="integer")
        >>> col.is_nullable
        True
    """

    name: str
    type_name: str
    data_type: str
    is_nullable: bool = True
    default: str | None = None
    character_maximum_length: int | None = None
    numeric_precision: int | None = None
    numeric_scale: int | None = None


class PrimaryKeyConstraint(BaseModel):
    """Primary key of a table."""

    name: str
    columns: list[str] = Field(default_factory=list)


class ForeignKeyConstraint(BaseModel):
    """Foreign key from a table to a (possibly other-schema) table."""

    name: str
    columns: list[str] = Field(default_factory=list)
    references_schema: str
    references_table: str
    references_columns: list[str] = Field(default_factory=list)


class TableSchema(BaseModel):
    """Schema for a table: ordered columns plus key constraints."""

    schema_name: str
    name: str
    columns: list[ColumnSchema] = Field(default_factory=list)
    primary_key: PrimaryKeyConstraint | None = None
    foreign_keys: list[ForeignKeyConstraint] = Field(default_factory=list)

    @property
    def qualified_name(self) -> str:
        return f"{self.schema_name}.{self.name}"

    @property
    def column_names(self) -> list[str]:
        return [c.name for c in self.columns]


# ============================================================================
# Schema-level Objects
# ============================================================================


class DomainCheck(BaseModel):
    """A named CHECK constraint on a domain."""

    name: str
    clause: str


class DomainSchema(BaseModel):
    """Schema for a domain (constrained alias of a base type)."""

    schema_name: str
    name: str
    base_type: str
    owner: str
    checks: list[DomainCheck] = Field(default_factory=list)


class FunctionSchema(BaseModel):
    """Schema for a function."""

    schema_name: str
    name: str
    arguments: str = ""
    return_type: str
    volatility: str = ""  # IMMUTABLE, STABLE, VOLATILE
    is_strict: bool = False
    body: str
    language: str
    owner: str


class SequenceSchema(BaseModel):
    """Schema for a sequence.

    ``minimum_value == 1`` and ``maximum_value == BIGINT_MAX`` are the
    "unbounded" sentinels, see ``pg_pack.schema.ddl``.
    """

    schema_name: str
    name: str
    start_value: int
    minimum_value: int
    maximum_value: int
    increment: int
    cycle: bool = False
    owner: str


class EnumTypeSchema(BaseModel):
    """Schema for an enum type. ``labels`` are in defined sort order."""

    schema_name: str
    name: str
    owner: str = ""
    labels: list[str] = Field(default_factory=list)


class SchemaSnapshot(BaseModel):
    """Everything introspected for one schema."""

    name: str
    tables: list[TableSchema] = Field(default_factory=list)
    enum_types: list[EnumTypeSchema] = Field(default_factory=list)
    domains: list[DomainSchema] = Field(default_factory=list)
    functions: list[FunctionSchema] = Field(default_factory=list)
    sequences: list[SequenceSchema] = Field(default_factory=list)
