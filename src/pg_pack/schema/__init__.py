"""Catalog introspection and DDL synthesis.

Provides live catalog introspection (``CatalogIntrospector``), the models
it produces, and the statement renderers in ``pg_pack.schema.ddl``.

Usage:
    from pg_pack.schema import CatalogIntrospector, SchemaSnapshot
    from pg_pack.schema import ddl
"""

from pg_pack.schema import ddl
from pg_pack.schema.introspector import CatalogIntrospector
from pg_pack.schema.models import (
    ColumnSchema,
    DomainCheck,
    DomainSchema,
    EnumTypeSchema,
    ForeignKeyConstraint,
    FunctionSchema,
    PrimaryKeyConstraint,
    SchemaSnapshot,
    SequenceSchema,
    TableSchema,
)

__all__ = [
    "ddl",
    "CatalogIntrospector",
    "ColumnSchema",
    "DomainCheck",
    "DomainSchema",
    "EnumTypeSchema",
    "ForeignKeyConstraint",
    "FunctionSchema",
    "PrimaryKeyConstraint",
    "SchemaSnapshot",
    "SequenceSchema",
    "TableSchema",
]
