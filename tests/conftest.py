"""Shared fixtures: an in-memory catalog standing in for PostgreSQL.

``FakeExecutor`` implements the ``QueryExecutor`` protocol.  Catalog
queries are answered from ``FakeCatalog`` by recognising which catalog
view the SQL reads; ``stream()`` serves table rows by qualified name.
"""

from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from typing import Any

import pytest


def column_row(
    name: str,
    data_type: str = "integer",
    *,
    nullable: bool = True,
    default: str | None = None,
    char_len: int | None = None,
    precision: int | None = None,
    scale: int | None = None,
    udt_name: str | None = None,
    udt_schema: str | None = "pg_catalog",
) -> tuple:
    """Build one information_schema.columns row in query column order."""
    if udt_name is None:
        udt_name = {"integer": "int4", "text": "text", "boolean": "bool"}.get(
            data_type, data_type
        )
    return (
        name,
        data_type,
        "YES" if nullable else "NO",
        default,
        char_len,
        precision,
        scale,
        udt_name,
        udt_schema,
    )


@dataclass
class FakeCatalog:
    """Catalog contents keyed by schema (and table where relevant)."""

    schemas: list[str] = field(default_factory=lambda: ["public"])
    # schema -> table -> column rows
    columns: dict[str, dict[str, list[tuple]]] = field(default_factory=dict)
    # (schema, table) -> [(constraint_name, column)]
    primary_keys: dict[tuple[str, str], list[tuple]] = field(default_factory=dict)
    # (schema, table) -> [(name, column, ref_schema, ref_table, ref_column)]
    foreign_keys: dict[tuple[str, str], list[tuple]] = field(default_factory=dict)
    enums: dict[str, list[tuple]] = field(default_factory=dict)
    domains: dict[str, list[tuple]] = field(default_factory=dict)
    functions: dict[str, list[tuple]] = field(default_factory=dict)
    sequences: dict[str, list[tuple]] = field(default_factory=dict)

    def answer(self, sql: str, params: dict[str, Any]) -> list[tuple]:
        schema = params.get("schema")
        table = params.get("table")

        if "pg_catalog.pg_namespace ORDER BY nspname" in sql:
            return [(s,) for s in self.schemas]
        if "information_schema.tables" in sql:
            return [(t,) for t in sorted(self.columns.get(schema, {}))]
        if "information_schema.columns" in sql:
            return self.columns.get(schema, {}).get(table, [])
        if "'PRIMARY KEY'" in sql:
            return self.primary_keys.get((schema, table), [])
        if "con.contype = 'f'" in sql:
            return self.foreign_keys.get((schema, table), [])
        if "pg_catalog.pg_enum" in sql:
            return self.enums.get(schema, [])
        if "t.typtype = 'd'" in sql:
            return self.domains.get(schema, [])
        if "pg_catalog.pg_proc" in sql:
            return self.functions.get(schema, [])
        if "information_schema.sequences" in sql:
            return self.sequences.get(schema, [])
        raise AssertionError(f"unexpected catalog query: {sql}")


class FakeExecutor:
    """In-memory ``QueryExecutor``.

    Args:
        catalog: Answers for catalog queries.
        rows: Qualified table name -> rows served by ``stream()``.
        stream_errors: Qualified table name -> (rows before failure, error).
    """

    def __init__(
        self,
        catalog: FakeCatalog | None = None,
        rows: dict[str, list[tuple]] | None = None,
        stream_errors: dict[str, tuple[int, Exception]] | None = None,
    ):
        self.catalog = catalog or FakeCatalog()
        self.rows = rows or {}
        self.stream_errors = stream_errors or {}
        self.queries: list[tuple[str, dict]] = []
        self.streamed: list[str] = []
        # tables whose row stream ran to the end or was closed
        self.finished_streams: list[str] = []
        self.fail_catalog: Exception | None = None
        self.closed = False

    async def fetch_all(self, sql: str, params: dict | None = None) -> list[tuple]:
        params = params or {}
        self.queries.append((sql, params))
        if self.fail_catalog is not None:
            raise self.fail_catalog
        return self.catalog.answer(sql, params)

    async def stream(self, sql: str, params: dict | None = None) -> AsyncIterator[tuple]:
        self.streamed.append(sql)
        table = sql.rsplit(" FROM ", 1)[1].strip().replace('"', "")
        fail_after, error = self.stream_errors.get(table, (None, None))
        try:
            for i, row in enumerate(self.rows.get(table, [])):
                if fail_after is not None and i == fail_after:
                    raise error
                yield row
            if fail_after is not None and fail_after >= len(self.rows.get(table, [])):
                raise error
        finally:
            self.finished_streams.append(table)

    async def test_connection(self) -> bool:
        return True

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def shop_catalog() -> FakeCatalog:
    """A small ``shop`` schema: customers, orders, a status enum, a domain,
    a function and the customers id sequence."""
    return FakeCatalog(
        schemas=["shop"],
        columns={
            "shop": {
                "customers": [
                    column_row(
                        "id",
                        nullable=False,
                        default="nextval('customers_id_seq'::regclass)",
                    ),
                    column_row(
                        "name", "character varying", char_len=80, udt_name="varchar"
                    ),
                    column_row("active", "boolean"),
                ],
                "orders": [
                    column_row("id", nullable=False),
                    column_row("customer_id"),
                    column_row(
                        "status",
                        "USER-DEFINED",
                        udt_name="order_status",
                        udt_schema="shop",
                    ),
                    column_row(
                        "total", "numeric", precision=10, scale=2, udt_name="numeric"
                    ),
                    column_row("placed_on", "date", udt_name="date"),
                ],
            }
        },
        primary_keys={
            ("shop", "customers"): [("customers_pkey", "id")],
            ("shop", "orders"): [("orders_pkey", "id")],
        },
        foreign_keys={
            ("shop", "orders"): [
                ("orders_customer_fk", "customer_id", "shop", "customers", "id")
            ],
        },
        enums={"shop": [("order_status", "owner", ["new", "paid", "shipped"])]},
        domains={
            "shop": [
                ("email", "text", "owner", "email_check", "CHECK (VALUE ~ '@'::text)")
            ]
        },
        functions={
            "shop": [
                (
                    "add_one",
                    "i",
                    True,
                    "x integer",
                    "integer",
                    "owner",
                    "SELECT x + 1",
                    "sql",
                )
            ]
        },
        sequences={
            "shop": [
                ("customers_id_seq", 1, 1, 9223372036854775807, 1, "NO", "owner")
            ]
        },
    )


@pytest.fixture
def shop_rows() -> dict[str, list[tuple]]:
    from datetime import date
    from decimal import Decimal

    return {
        "shop.customers": [
            (1, "O'Brien", True),
            (2, "NULL", None),
        ],
        "shop.orders": [
            (10, 1, "paid", Decimal("19.99"), date(2024, 3, 1)),
        ],
    }
