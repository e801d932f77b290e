"""Tests for catalog introspection against an in-memory catalog."""

import pytest

from conftest import FakeCatalog, FakeExecutor, column_row
from pg_pack.exceptions import (
    CatalogQueryError,
    TableNotFoundError,
    UnresolvedTypeError,
)
from pg_pack.schema.introspector import (
    CatalogIntrospector,
    qualify_sequence_defaults,
    resolve_type_name,
)


# ============================================================================
# Helpers
# ============================================================================


class TestResolveTypeName:
    def test_builtin_type_uses_data_type(self) -> None:
        assert resolve_type_name("integer", "int4", "pg_catalog") == "integer"

    def test_builtin_array(self) -> None:
        assert resolve_type_name("ARRAY", "_int4", "pg_catalog") == "int4[]"

    def test_user_defined_array_is_qualified(self) -> None:
        assert resolve_type_name("ARRAY", "_mood", "public") == "public.mood[]"

    def test_user_defined_is_qualified(self) -> None:
        assert resolve_type_name("USER-DEFINED", "mood", "public") == "public.mood"

    def test_unresolvable(self) -> None:
        assert resolve_type_name("USER-DEFINED", "mood", None) is None
        assert resolve_type_name(None, "int4", "pg_catalog") is None
        assert resolve_type_name("integer", None, None) is None


class TestQualifySequenceDefaults:
    def test_bare_name_is_qualified(self) -> None:
        assert (
            qualify_sequence_defaults("nextval('users_id_seq'::regclass)", "shop")
            == "nextval('shop.users_id_seq'::regclass)"
        )

    def test_qualified_name_is_unchanged(self) -> None:
        default = "nextval('other.users_id_seq'::regclass)"
        assert qualify_sequence_defaults(default, "shop") == default


# ============================================================================
# Introspector
# ============================================================================


class TestGetSchemas:
    async def test_system_schemas_are_excluded(self) -> None:
        catalog = FakeCatalog(
            schemas=[
                "information_schema",
                "pg_catalog",
                "pg_temp_3",
                "pg_toast",
                "pg_toast_temp_3",
                "public",
                "shop",
            ]
        )
        introspector = CatalogIntrospector(FakeExecutor(catalog))

        assert await introspector.get_schemas() == ["public", "shop"]


class TestGetTable:
    async def test_columns_keys_and_defaults(self, shop_catalog: FakeCatalog) -> None:
        introspector = CatalogIntrospector(FakeExecutor(shop_catalog))

        customers = await introspector.get_table("shop", "customers")

        assert customers.column_names == ["id", "name", "active"]
        assert customers.columns[0].is_nullable is False
        assert customers.columns[0].default == "nextval('shop.customers_id_seq'::regclass)"
        assert customers.columns[1].type_name == "character varying"
        assert customers.columns[1].character_maximum_length == 80
        assert customers.primary_key is not None
        assert customers.primary_key.columns == ["id"]
        assert customers.foreign_keys == []

    async def test_user_defined_column_and_foreign_key(
        self, shop_catalog: FakeCatalog
    ) -> None:
        introspector = CatalogIntrospector(FakeExecutor(shop_catalog))

        orders = await introspector.get_table("shop", "orders")

        assert orders.columns[2].type_name == "shop.order_status"
        assert orders.columns[2].data_type == "USER-DEFINED"
        assert len(orders.foreign_keys) == 1
        fk = orders.foreign_keys[0]
        assert fk.columns == ["customer_id"]
        assert (fk.references_schema, fk.references_table) == ("shop", "customers")
        assert fk.references_columns == ["id"]

    async def test_composite_foreign_key_is_grouped(self) -> None:
        catalog = FakeCatalog(
            columns={"public": {"lines": [column_row("a"), column_row("b")]}},
            foreign_keys={
                ("public", "lines"): [
                    ("lines_fk", "a", "public", "slots", "x"),
                    ("lines_fk", "b", "public", "slots", "y"),
                ]
            },
        )
        introspector = CatalogIntrospector(FakeExecutor(catalog))

        table = await introspector.get_table("public", "lines")

        assert len(table.foreign_keys) == 1
        assert table.foreign_keys[0].columns == ["a", "b"]
        assert table.foreign_keys[0].references_columns == ["x", "y"]

    async def test_missing_table(self) -> None:
        introspector = CatalogIntrospector(FakeExecutor(FakeCatalog()))

        with pytest.raises(TableNotFoundError, match="public.ghost"):
            await introspector.get_table("public", "ghost")

    async def test_unresolved_type(self) -> None:
        catalog = FakeCatalog(
            columns={
                "public": {
                    "t": [column_row("c", "USER-DEFINED", udt_name="x", udt_schema=None)]
                }
            }
        )
        introspector = CatalogIntrospector(FakeExecutor(catalog))

        with pytest.raises(UnresolvedTypeError) as exc_info:
            await introspector.get_table("public", "t")
        assert exc_info.value.column == "c"
        assert str(exc_info.value) == "cannot resolve type of column c in public.t"


class TestSchemaObjects:
    async def test_introspect_snapshot(self, shop_catalog: FakeCatalog) -> None:
        introspector = CatalogIntrospector(FakeExecutor(shop_catalog))

        snapshot = await introspector.introspect("shop")

        assert snapshot.name == "shop"
        assert [t.name for t in snapshot.tables] == ["customers", "orders"]
        assert snapshot.enum_types[0].labels == ["new", "paid", "shipped"]
        assert snapshot.domains[0].checks[0].name == "email_check"
        assert snapshot.functions[0].volatility == "IMMUTABLE"
        assert snapshot.functions[0].is_strict is True
        assert snapshot.sequences[0].cycle is False

    async def test_queries_are_scoped_to_schema(self, shop_catalog: FakeCatalog) -> None:
        executor = FakeExecutor(shop_catalog)
        introspector = CatalogIntrospector(executor)

        await introspector.introspect("shop")

        assert executor.queries
        assert all(params.get("schema") == "shop" for _, params in executor.queries)

    async def test_domain_with_several_checks(self) -> None:
        catalog = FakeCatalog(
            domains={
                "public": [
                    ("score", "integer", "app", "score_lo", "CHECK (VALUE >= 0)"),
                    ("score", "integer", "app", "score_hi", "CHECK (VALUE <= 100)"),
                    ("tag", "text", "app", None, None),
                ]
            }
        )
        introspector = CatalogIntrospector(FakeExecutor(catalog))

        domains = await introspector.get_domains("public")

        assert [d.name for d in domains] == ["score", "tag"]
        assert [c.name for c in domains[0].checks] == ["score_lo", "score_hi"]
        assert domains[1].checks == []

    async def test_empty_schema(self) -> None:
        introspector = CatalogIntrospector(FakeExecutor(FakeCatalog()))

        snapshot = await introspector.introspect("empty")

        assert snapshot.tables == []
        assert snapshot.sequences == []


class TestQueryFailures:
    async def test_driver_error_becomes_catalog_query_error(self) -> None:
        executor = FakeExecutor()
        executor.fail_catalog = RuntimeError("connection reset")
        introspector = CatalogIntrospector(executor)

        with pytest.raises(CatalogQueryError, match="connection reset") as exc_info:
            await introspector.get_tables("shop")
        assert exc_info.value.schema == "shop"
