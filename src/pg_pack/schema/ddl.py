"""DDL synthesis from introspected catalog models.

Pure logic, no I/O.  Every function takes models from
``pg_pack.schema.models`` and returns statement text without a trailing
newline; callers decide how sections are joined and framed.

Per schema the package emits, in order: drops, enum types, domains,
functions, sequences, tables, (records), primary keys, foreign keys.
Constraints come last so rows load without per-row validation and so a
foreign key never precedes the table or key it references.

Usage:
    from pg_pack.schema.ddl import create_table_statement

    stmt = create_table_statement(table)
"""

from pg_pack.schema.models import (
    ColumnSchema,
    DomainSchema,
    EnumTypeSchema,
    FunctionSchema,
    SequenceSchema,
    TableSchema,
)

BIGINT_MAX = 9223372036854775807

# Types that take (precision[,scale]) when numeric_precision is present
PRECISION_TYPES = frozenset({"numeric", "decimal", "timestamp", "interval"})

SQL_BODY_DELIMITER = "$_$"
PROCEDURAL_BODY_DELIMITER = "$$"
PROCEDURAL_LANGUAGES = frozenset({"plpgsql"})


def quote_literal(value: str) -> str:
    """Single-quote a string, doubling embedded quotes."""
    return "'" + value.replace("'", "''") + "'"


# ============================================================================
# Tables
# ============================================================================


def drop_table_statement(table: TableSchema) -> str:
    return f"DROP TABLE IF EXISTS {table.qualified_name};"


def column_definition(column: ColumnSchema) -> str:
    """Format ``name type[(len|prec[,scale])] [NOT NULL] [DEFAULT expr]``.

    Example:
        >>> column_definition(ColumnSchema(
        ...     name="price", type_name="numeric", data_type="numeric",
        ...     numeric_precision=10, numeric_scale=2, is_nullable=False,
        ... ))
        'price numeric(10,2) NOT NULL'
    """
    definition = f"{column.name} {column.type_name}"

    if column.character_maximum_length is not None:
        definition += f"({column.character_maximum_length})"
    elif column.data_type in PRECISION_TYPES and column.numeric_precision is not None:
        if column.numeric_scale is not None:
            definition += f"({column.numeric_precision},{column.numeric_scale})"
        else:
            definition += f"({column.numeric_precision})"

    if not column.is_nullable:
        definition += " NOT NULL"

    if column.default is not None:
        definition += f" DEFAULT {column.default}"

    return definition


def create_table_statement(table: TableSchema) -> str:
    """Render ``CREATE TABLE`` with columns in introspected order."""
    column_defs = ",\n\t".join(column_definition(c) for c in table.columns)
    return f"CREATE TABLE {table.qualified_name} (\n\t{column_defs}\n);"


def primary_key_statement(table: TableSchema) -> str:
    """Render ``ALTER TABLE ONLY ... PRIMARY KEY``; empty when the table has none."""
    pk = table.primary_key
    if pk is None or not pk.columns:
        return ""
    return (
        f"ALTER TABLE ONLY {table.qualified_name}\n"
        f"\tADD CONSTRAINT {pk.name} PRIMARY KEY ({', '.join(pk.columns)});"
    )


def foreign_key_statements(table: TableSchema) -> str:
    """Render one ``ALTER TABLE ONLY ... FOREIGN KEY`` per foreign key."""
    statements = [
        f"ALTER TABLE ONLY {table.qualified_name}\n"
        f"\tADD CONSTRAINT {fk.name} FOREIGN KEY ({', '.join(fk.columns)}) "
        f"REFERENCES {fk.references_schema}.{fk.references_table}"
        f"({', '.join(fk.references_columns)});"
        for fk in table.foreign_keys
    ]
    return "\n".join(statements)


# ============================================================================
# Types, Domains, Functions, Sequences
# ============================================================================


def create_enum_statement(enum_type: EnumTypeSchema) -> str:
    """Render ``CREATE TYPE ... AS ENUM`` keeping label order as given."""
    labels = ",".join(quote_literal(label) for label in enum_type.labels)
    return (
        f"CREATE TYPE {enum_type.schema_name}.{enum_type.name} AS ENUM ({labels});"
    )


def create_domain_statement(domain: DomainSchema) -> str:
    """Render ``CREATE DOMAIN`` with its checks, then the ownership transfer."""
    qualified = f"{domain.schema_name}.{domain.name}"
    stmt = f"CREATE DOMAIN {qualified} AS {domain.base_type}"
    for check in domain.checks:
        stmt += f"\n    CONSTRAINT {check.name} {check.clause}"
    stmt += ";\n"
    stmt += f"\nALTER DOMAIN {qualified} OWNER TO {domain.owner};"
    return stmt


def body_delimiter(language: str) -> str:
    """Pick the dollar-quote tag for a function body by its language."""
    if language.lower() in PROCEDURAL_LANGUAGES:
        return PROCEDURAL_BODY_DELIMITER
    return SQL_BODY_DELIMITER


def create_function_statement(function: FunctionSchema) -> str:
    """Render ``CREATE FUNCTION`` followed by ``ALTER FUNCTION ... OWNER TO``."""
    signature = f"{function.schema_name}.{function.name}({function.arguments})"
    delimiter = body_delimiter(function.language)

    attributes = [function.language]
    if function.volatility:
        attributes.append(function.volatility)
    if function.is_strict:
        attributes.append("STRICT")

    return (
        f"CREATE FUNCTION {signature} RETURNS {function.return_type}\n"
        f"\tLANGUAGE {' '.join(attributes)}\n"
        f"AS {delimiter}\n{function.body}\n{delimiter};\n"
        f"\nALTER FUNCTION {signature} OWNER TO {function.owner};"
    )


def create_sequence_statement(sequence: SequenceSchema) -> str:
    """Render ``CREATE SEQUENCE`` and its ownership transfer.

    ``minimum_value == 1`` and ``maximum_value == BIGINT_MAX`` are the
    catalog's "unbounded" sentinels and render as ``NO MINVALUE`` /
    ``NO MAXVALUE``.
    """
    qualified = f"{sequence.schema_name}.{sequence.name}"

    if sequence.minimum_value == 1:
        min_clause = "NO MINVALUE"
    else:
        min_clause = f"MINVALUE {sequence.minimum_value}"

    if sequence.maximum_value == BIGINT_MAX:
        max_clause = "NO MAXVALUE"
    else:
        max_clause = f"MAXVALUE {sequence.maximum_value}"

    lines = [
        f"CREATE SEQUENCE {qualified}",
        f"\tSTART WITH {sequence.start_value}",
        f"\t{min_clause}",
        f"\t{max_clause}",
        f"\tINCREMENT BY {sequence.increment}",
    ]
    if sequence.cycle:
        lines.append("\tCYCLE")

    return (
        "\n".join(lines)
        + "\n;\n"
        + f"\nALTER SEQUENCE {qualified} OWNER TO {sequence.owner};"
    )
