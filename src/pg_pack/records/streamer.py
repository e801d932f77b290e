"""Per-table record streaming in INSERT or COPY framing.

For each table, ``RecordStreamer.stream()`` starts a producer task that
runs its own row-fetch query and pushes one serialized fragment at a time
through a ``RecordChannel``.  The caller iterates the fragments; the
sequence is lazy, finite and cannot be restarted.

Fragments per mode:

- INSERT: one ``INSERT INTO schema.table (cols) VALUES (...);`` line per row
- COPY: a ``COPY ... FROM stdin`` header line, one tab-separated line per
  row, then the ``\\.`` end-of-block line

Usage:
    streamer = RecordStreamer(executor, RecordMode.COPY)
    async for fragment in streamer.stream(table):
        output.write(fragment)
"""

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import aclosing

from pg_pack.adapters.base import QueryExecutor
from pg_pack.config.models import RecordMode
from pg_pack.exceptions import StreamDecodeError
from pg_pack.records.channel import RecordChannel
from pg_pack.records.encoder import encode_row
from pg_pack.schema.models import TableSchema

logger = logging.getLogger(__name__)

COPY_END_MARKER = "\\.\n"

# COPY options under which the INSERT-mode literals load verbatim:
# quoted values use '' as quote and escape, unquoted NULL is null.
COPY_OPTIONS = "FORMAT csv, DELIMITER E'\\t', NULL 'NULL', QUOTE ''''"


def quote_ident(name: str) -> str:
    """Double-quote an identifier, doubling embedded double quotes."""
    return '"' + name.replace('"', '""') + '"'


def select_statement(table: TableSchema) -> str:
    """Row-fetch query; identifiers are quoted so case and keywords survive."""
    columns = ", ".join(quote_ident(c) for c in table.column_names)
    return (
        f"SELECT {columns} "
        f"FROM {quote_ident(table.schema_name)}.{quote_ident(table.name)}"
    )


def insert_fragment(table: TableSchema, literals: list[str]) -> str:
    return (
        f"INSERT INTO {table.qualified_name} ({', '.join(table.column_names)}) "
        f"VALUES ({', '.join(literals)});\n"
    )


def copy_header(table: TableSchema) -> str:
    return (
        f"COPY {table.qualified_name} ({', '.join(table.column_names)}) "
        f"FROM stdin WITH ({COPY_OPTIONS});\n"
    )


def copy_fragment(literals: list[str]) -> str:
    return "\t".join(literals) + "\n"


class RecordStreamer:
    """Streams serialized table rows from a producer task.

    Tables are streamed one at a time: the caller drains a table's stream
    before starting the next, so there is never more than one producer.
    """

    def __init__(self, executor: QueryExecutor, mode: RecordMode):
        self._executor = executor
        self._mode = mode

    @property
    def mode(self) -> RecordMode:
        return self._mode

    async def _produce(self, table: TableSchema, channel: RecordChannel) -> None:
        """Fetch rows and hand each serialized fragment to the channel.

        Any failure ends the stream with an error fragment rather than
        propagating out of the task.
        """
        data_types = [c.data_type for c in table.columns]
        rows = 0
        try:
            if self._mode is RecordMode.COPY:
                await channel.send(copy_header(table))

            source = self._executor.stream(select_statement(table))
            async with aclosing(source):
                async for row in source:
                    literals = encode_row(row, data_types)
                    if self._mode is RecordMode.INSERT:
                        await channel.send(insert_fragment(table, literals))
                    else:
                        await channel.send(copy_fragment(literals))
                    rows += 1

            if self._mode is RecordMode.COPY:
                await channel.send(COPY_END_MARKER)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.debug(
                "Producer for %s failed after %d rows", table.qualified_name, rows
            )
            await channel.fail(f"{type(e).__name__}: {e}")
            return

        logger.debug("Producer for %s sent %d rows", table.qualified_name, rows)
        await channel.close()

    async def stream(self, table: TableSchema) -> AsyncIterator[str]:
        """Yield a table's serialized fragments.

        Raises:
            StreamDecodeError: If the row-fetch query or a row's decoding
                failed.  Fragments yielded before the failure are partial.
        """
        channel = RecordChannel()
        producer = asyncio.create_task(
            self._produce(table, channel),
            name=f"records:{table.qualified_name}",
        )
        try:
            async for fragment in channel:
                yield fragment

            if channel.error is not None:
                raise StreamDecodeError(
                    table.schema_name, table.name, channel.error.reason
                )
            await producer
        finally:
            if not producer.done():
                producer.cancel()
                try:
                    await producer
                except asyncio.CancelledError:
                    pass
