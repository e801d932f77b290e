"""PostgreSQL catalog introspection via information_schema and pg_catalog.

This module queries the live database to extract, per schema:
- Tables, with ordered columns, resolved types and defaults
- Primary key and foreign key constraints
- Enum types (labels in defined sort order)
- Domains, functions and sequences

Every listing is scoped to one namespace; nothing defined in another
schema leaks into a result.  Queries go through a ``QueryExecutor``, so
the driver stays out of this module.
"""

import logging
import re
from typing import Any

from pg_pack.adapters.base import QueryExecutor
from pg_pack.exceptions import (
    CatalogQueryError,
    PackError,
    TableNotFoundError,
    UnresolvedTypeError,
)
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

logger = logging.getLogger(__name__)

_NEXTVAL_RE = re.compile(r"nextval\('([^']*)'::regclass\)")


def qualify_sequence_defaults(default: str, schema_name: str) -> str:
    """Schema-qualify sequence names referenced by ``nextval()`` defaults.

    Example:
        >>> qualify_sequence_defaults("nextval('users_id_seq'::regclass)", "shop")
        "nextval('shop.users_id_seq'::regclass)"
    """

    def _qualify(match: re.Match) -> str:
        seq_name = match.group(1)
        if "." not in seq_name:
            seq_name = f"{schema_name}.{seq_name}"
        return f"nextval('{seq_name}'::regclass)"

    return _NEXTVAL_RE.sub(_qualify, default)


def resolve_type_name(
    data_type: str | None, udt_name: str | None, udt_schema: str | None
) -> str | None:
    """Map information_schema type columns to output-ready type text.

    - Array types (``_int4``): element type plus ``[]``, qualified when the
      element type lives outside ``pg_catalog``
    - User-defined types (enums, domains): ``schema.type``
    - Everything else: the catalog's ``data_type`` unchanged

    Returns None when the metadata is not enough to name the type.
    """
    if not udt_name or not data_type:
        return None

    if udt_name.startswith("_"):
        element = udt_name[1:]
        if udt_schema and udt_schema != "pg_catalog":
            element = f"{udt_schema}.{element}"
        return element + "[]"

    if data_type == "USER-DEFINED":
        if not udt_schema:
            return None
        return f"{udt_schema}.{udt_name}"

    return data_type


class CatalogIntrospector:
    """Introspects PostgreSQL catalog metadata one schema at a time.

    Any query failure is raised as ``CatalogQueryError``; introspection is
    never retried.

    Usage:
        introspector = CatalogIntrospector(executor)
        for schema_name in await introspector.get_schemas():
            snapshot = await introspector.introspect(schema_name)
    """

    SYSTEM_SCHEMAS = {"information_schema", "pg_catalog", "pg_toast"}
    SYSTEM_SCHEMA_PREFIXES = ("pg_temp_", "pg_toast_temp_")

    VOLATILITY = {"i": "IMMUTABLE", "s": "STABLE", "v": "VOLATILE"}

    def __init__(self, executor: QueryExecutor):
        """Initialize with the query executor.

        Args:
            executor: Anything implementing ``QueryExecutor``
        """
        self._executor = executor

    async def _query(
        self, sql: str, params: dict[str, Any] | None = None, schema: str | None = None
    ) -> list[tuple]:
        try:
            return await self._executor.fetch_all(sql, params)
        except PackError:
            raise
        except Exception as e:
            raise CatalogQueryError(f"catalog query failed: {e}", schema=schema) from e

    async def introspect(self, schema_name: str) -> SchemaSnapshot:
        """Introspect every supported object in one schema.

        Args:
            schema_name: Schema to introspect

        Returns:
            SchemaSnapshot with tables (fully loaded), enum types, domains,
            functions and sequences
        """
        snapshot = SchemaSnapshot(name=schema_name)

        for table_name in await self.get_tables(schema_name):
            snapshot.tables.append(await self.get_table(schema_name, table_name))

        snapshot.enum_types = await self.get_enum_types(schema_name)
        snapshot.domains = await self.get_domains(schema_name)
        snapshot.functions = await self.get_functions(schema_name)
        snapshot.sequences = await self.get_sequences(schema_name)

        logger.debug(
            "Introspected schema %s: %d tables, %d enums, %d domains, "
            "%d functions, %d sequences",
            schema_name,
            len(snapshot.tables),
            len(snapshot.enum_types),
            len(snapshot.domains),
            len(snapshot.functions),
            len(snapshot.sequences),
        )
        return snapshot

    async def get_schemas(self) -> list[str]:
        """Get all non-system schema names."""
        rows = await self._query(
            "SELECT nspname FROM pg_catalog.pg_namespace ORDER BY nspname"
        )
        return [
            name
            for (name,) in rows
            if name not in self.SYSTEM_SCHEMAS
            and not name.startswith(self.SYSTEM_SCHEMA_PREFIXES)
        ]

    async def get_tables(self, schema_name: str) -> list[str]:
        """Get all base table names in schema."""
        query = """
            SELECT table_name
            FROM information_schema.tables
            WHERE table_schema = :schema
              AND table_type = 'BASE TABLE'
            ORDER BY table_name
        """
        rows = await self._query(query, {"schema": schema_name}, schema_name)
        return [row[0] for row in rows]

    async def get_table(self, schema_name: str, table_name: str) -> TableSchema:
        """Load a table with its columns and key constraints.

        Raises:
            TableNotFoundError: If the name matched no columns
            UnresolvedTypeError: If a column's type cannot be named
        """
        columns = await self._get_columns(schema_name, table_name)
        if not columns:
            raise TableNotFoundError(schema_name, table_name)

        return TableSchema(
            schema_name=schema_name,
            name=table_name,
            columns=columns,
            primary_key=await self._get_primary_key(schema_name, table_name),
            foreign_keys=await self._get_foreign_keys(schema_name, table_name),
        )

    async def _get_columns(
        self, schema_name: str, table_name: str
    ) -> list[ColumnSchema]:
        """Get columns for a table in ordinal order."""
        query = """
            SELECT
                c.column_name,
                c.data_type,
                c.is_nullable,
                c.column_default,
                c.character_maximum_length,
                c.numeric_precision,
                c.numeric_scale,
                c.udt_name,
                c.udt_schema
            FROM information_schema.columns c
            WHERE c.table_schema = :schema
              AND c.table_name = :table
            ORDER BY c.ordinal_position
        """
        rows = await self._query(
            query, {"schema": schema_name, "table": table_name}, schema_name
        )

        columns = []
        for row in rows:
            (
                col_name,
                data_type,
                is_nullable,
                default,
                char_max_length,
                numeric_precision,
                numeric_scale,
                udt_name,
                udt_schema,
            ) = row

            type_name = resolve_type_name(data_type, udt_name, udt_schema)
            if type_name is None:
                raise UnresolvedTypeError(schema_name, table_name, col_name)

            if default is not None and "nextval(" in default:
                default = qualify_sequence_defaults(default, schema_name)

            columns.append(
                ColumnSchema(
                    name=col_name,
                    type_name=type_name,
                    data_type=data_type,
                    is_nullable=(is_nullable == "YES"),
                    default=default,
                    character_maximum_length=char_max_length,
                    numeric_precision=numeric_precision,
                    numeric_scale=numeric_scale,
                )
            )
        return columns

    async def _get_primary_key(
        self, schema_name: str, table_name: str
    ) -> PrimaryKeyConstraint | None:
        """Get the primary key of a table, columns in key order."""
        query = """
            SELECT
                tc.constraint_name,
                kcu.column_name
            FROM information_schema.table_constraints AS tc
            JOIN information_schema.key_column_usage AS kcu
                ON tc.constraint_name = kcu.constraint_name
                AND tc.table_schema = kcu.table_schema
                AND tc.table_name = kcu.table_name
            WHERE tc.constraint_type = 'PRIMARY KEY'
              AND tc.table_schema = :schema
              AND tc.table_name = :table
            ORDER BY kcu.ordinal_position
        """
        rows = await self._query(
            query, {"schema": schema_name, "table": table_name}, schema_name
        )
        if not rows:
            return None

        return PrimaryKeyConstraint(
            name=rows[0][0],
            columns=[col_name for _, col_name in rows],
        )

    async def _get_foreign_keys(
        self, schema_name: str, table_name: str
    ) -> list[ForeignKeyConstraint]:
        """Get foreign keys of a table.

        Reads ``pg_constraint`` directly so multi-column keys keep their
        column pairing (``conkey[i]`` references ``confkey[i]``).
        """
        query = """
            SELECT
                con.conname,
                a.attname AS column_name,
                rn.nspname AS references_schema,
                rc.relname AS references_table,
                ra.attname AS references_column
            FROM pg_catalog.pg_constraint con
            JOIN pg_catalog.pg_class cl ON cl.oid = con.conrelid
            JOIN pg_catalog.pg_namespace n ON n.oid = cl.relnamespace
            JOIN pg_catalog.pg_class rc ON rc.oid = con.confrelid
            JOIN pg_catalog.pg_namespace rn ON rn.oid = rc.relnamespace
            JOIN LATERAL unnest(con.conkey, con.confkey)
                WITH ORDINALITY AS k(attnum, ref_attnum, ordinality) ON TRUE
            JOIN pg_catalog.pg_attribute a
                ON a.attrelid = con.conrelid AND a.attnum = k.attnum
            JOIN pg_catalog.pg_attribute ra
                ON ra.attrelid = con.confrelid AND ra.attnum = k.ref_attnum
            WHERE con.contype = 'f'
              AND n.nspname = :schema
              AND cl.relname = :table
            ORDER BY con.conname, k.ordinality
        """
        rows = await self._query(
            query, {"schema": schema_name, "table": table_name}, schema_name
        )

        foreign_keys: dict[str, ForeignKeyConstraint] = {}
        for name, col_name, ref_schema, ref_table, ref_col in rows:
            if name not in foreign_keys:
                foreign_keys[name] = ForeignKeyConstraint(
                    name=name,
                    references_schema=ref_schema,
                    references_table=ref_table,
                )
            foreign_keys[name].columns.append(col_name)
            foreign_keys[name].references_columns.append(ref_col)

        return list(foreign_keys.values())

    async def get_enum_types(self, schema_name: str) -> list[EnumTypeSchema]:
        """Get enum types in schema with labels in ``enumsortorder``."""
        query = """
            SELECT
                t.typname,
                pg_catalog.pg_get_userbyid(t.typowner) AS owner,
                array_agg(e.enumlabel ORDER BY e.enumsortorder) AS labels
            FROM pg_catalog.pg_type t
            JOIN pg_catalog.pg_namespace n ON n.oid = t.typnamespace
            JOIN pg_catalog.pg_enum e ON e.enumtypid = t.oid
            WHERE n.nspname = :schema
              AND t.typtype = 'e'
              AND t.typisdefined = true
            GROUP BY t.typname, t.typowner
            ORDER BY t.typname
        """
        rows = await self._query(query, {"schema": schema_name}, schema_name)
        return [
            EnumTypeSchema(
                schema_name=schema_name,
                name=name,
                owner=owner,
                labels=list(labels),
            )
            for name, owner, labels in rows
        ]

    async def get_domains(self, schema_name: str) -> list[DomainSchema]:
        """Get domains in schema with their CHECK constraints."""
        query = """
            SELECT
                t.typname AS domain_name,
                pg_catalog.format_type(t.typbasetype, t.typtypmod) AS data_type,
                pg_catalog.pg_get_userbyid(t.typowner) AS owner,
                c.conname AS constraint_name,
                pg_catalog.pg_get_constraintdef(c.oid, true) AS check_clause
            FROM pg_catalog.pg_type t
            JOIN pg_catalog.pg_namespace n ON n.oid = t.typnamespace
            LEFT JOIN pg_catalog.pg_constraint c
                ON c.contypid = t.oid AND c.contype = 'c'
            WHERE t.typtype = 'd'
              AND n.nspname = :schema
            ORDER BY t.typname, c.conname
        """
        rows = await self._query(query, {"schema": schema_name}, schema_name)

        domains: dict[str, DomainSchema] = {}
        for name, base_type, owner, constraint_name, check_clause in rows:
            if name not in domains:
                domains[name] = DomainSchema(
                    schema_name=schema_name,
                    name=name,
                    base_type=base_type,
                    owner=owner,
                )
            if constraint_name and check_clause:
                domains[name].checks.append(
                    DomainCheck(name=constraint_name, clause=check_clause)
                )
        return list(domains.values())

    async def get_functions(self, schema_name: str) -> list[FunctionSchema]:
        """Get user-defined functions in schema.

        Note: Uses prokind = 'f' to filter for regular functions (PostgreSQL 11+).
        This excludes aggregate functions (prokind = 'a'), procedures (prokind = 'p'),
        and window functions (prokind = 'w').  Functions owned by extensions
        are skipped; the extension recreates them.
        """
        query = """
            SELECT
                p.proname AS function_name,
                p.provolatile AS volatility,
                p.proisstrict AS is_strict,
                pg_catalog.pg_get_function_arguments(p.oid) AS arguments,
                pg_catalog.pg_get_function_result(p.oid) AS return_type,
                pg_catalog.pg_get_userbyid(p.proowner) AS owner,
                p.prosrc AS body,
                l.lanname AS language
            FROM pg_catalog.pg_proc p
            JOIN pg_catalog.pg_namespace n ON n.oid = p.pronamespace
            JOIN pg_catalog.pg_language l ON l.oid = p.prolang
            WHERE n.nspname = :schema
              AND p.prokind = 'f'
              AND NOT EXISTS (
                  SELECT 1 FROM pg_catalog.pg_depend d
                  WHERE d.objid = p.oid AND d.deptype = 'e'
              )
            ORDER BY p.proname, arguments
        """
        rows = await self._query(query, {"schema": schema_name}, schema_name)

        functions = []
        for row in rows:
            name, volatility, is_strict, arguments, return_type, owner, body, language = row
            functions.append(
                FunctionSchema(
                    schema_name=schema_name,
                    name=name,
                    arguments=arguments or "",
                    return_type=return_type,
                    volatility=self.VOLATILITY.get(volatility, ""),
                    is_strict=bool(is_strict),
                    body=body,
                    language=language,
                    owner=owner,
                )
            )
        return functions

    async def get_sequences(self, schema_name: str) -> list[SequenceSchema]:
        """Get sequences in schema.

        information_schema.sequences reports bounds as character data, so
        they are cast to bigint in the query.
        """
        query = """
            SELECT
                s.sequence_name,
                s.start_value::bigint,
                s.minimum_value::bigint,
                s.maximum_value::bigint,
                s.increment::bigint,
                s.cycle_option,
                pg_catalog.pg_get_userbyid(c.relowner) AS owner
            FROM information_schema.sequences s
            JOIN pg_catalog.pg_namespace n ON n.nspname = s.sequence_schema
            JOIN pg_catalog.pg_class c
                ON c.relname = s.sequence_name AND c.relnamespace = n.oid
            WHERE s.sequence_schema = :schema
            ORDER BY s.sequence_name
        """
        rows = await self._query(query, {"schema": schema_name}, schema_name)
        return [
            SequenceSchema(
                schema_name=schema_name,
                name=name,
                start_value=start,
                minimum_value=minimum,
                maximum_value=maximum,
                increment=increment,
                cycle=(cycle_option == "YES"),
                owner=owner,
            )
            for name, start, minimum, maximum, increment, cycle_option, owner in rows
        ]
