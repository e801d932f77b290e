"""Query executor protocol definition.

Defines the ``QueryExecutor`` Protocol the introspector and the record
streamer talk to.  The database driver itself stays behind this seam;
pg_pack only ever needs "run this query, give me the rows".

Usage:
    from pg_pack.adapters.base import QueryExecutor

    async def count_tables(executor: QueryExecutor) -> int:
        rows = await executor.fetch_all(
            "SELECT count(*) FROM information_schema.tables"
        )
        return rows[0][0]
"""

from collections.abc import AsyncIterator
from typing import Any, Protocol


class QueryExecutor(Protocol):
    """Read-only query interface over a PostgreSQL database.

    All methods are async; callers must ``await`` (or ``async for``)
    every operation.
    """

    async def fetch_all(
        self, sql: str, params: dict[str, Any] | None = None
    ) -> list[tuple]:
        """Run a query and return every row as a tuple.

        Args:
            sql: SQL text using ``:name`` placeholders.
            params: Optional dict of named parameters.

        Returns:
            List of row tuples in the order the server returned them.
            Empty list if the query matched nothing.

        Example:
            rows = await executor.fetch_all(
                "SELECT table_name FROM information_schema.tables "
                "WHERE table_schema = :schema",
                {"schema": "public"},
            )
        """
        ...

    def stream(
        self, sql: str, params: dict[str, Any] | None = None
    ) -> AsyncIterator[tuple]:
        """Run a query and yield rows one at a time.

        Implementations must not materialize the whole result set; the
        record streamer relies on this to keep memory bounded per table.

        Example:
            async for row in executor.stream("SELECT * FROM public.users"):
                ...
        """
        ...

    async def test_connection(self) -> bool:
        """Verify the database is reachable.

        Raises:
            ConnectionError: If the database cannot be reached.
        """
        ...

    async def close(self) -> None:
        """Release driver resources."""
        ...
