"""Query executor package.

Provides the ``QueryExecutor`` Protocol and the asyncpg-backed
``AsyncPostgresExecutor`` implementation.

Usage:
    from pg_pack.adapters import QueryExecutor, AsyncPostgresExecutor
"""

from pg_pack.adapters.base import QueryExecutor
from pg_pack.adapters.postgres import AsyncPostgresExecutor

__all__ = [
    "QueryExecutor",
    "AsyncPostgresExecutor",
]
