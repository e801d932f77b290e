"""Pack orchestration: one job from lock to compressed package.

``PackManager.pack()`` walks the job through its states::

    IDLE -> INITIALIZING -> WRITING -> FINALIZING -> DONE
                 |             |
                 +--> FAILED <-+

- INITIALIZING validates the record mode, checks the database is
  reachable, asks before overwriting an existing output, and opens the
  ``JobHandle`` (empty output file plus lock artifact).
- WRITING emits the preamble, then per schema: drops, types, domains,
  functions, sequences, tables, records, constraints, each framed by
  ``-- START OF`` / ``-- END OF`` banners.
- FINALIZING closes the script and, if requested, compresses it and
  deletes the plain file.

The lock is released whichever way the job ends.

Usage:
    manager = PackManager(executor, PackOptions(output="dump.sql"))
    result = await manager.pack()
"""

import logging
from collections.abc import Callable
from enum import Enum
from pathlib import Path
from typing import TextIO

from pydantic import BaseModel
from rich.prompt import Confirm

from pg_pack.adapters.base import QueryExecutor
from pg_pack.config.models import PackOptions, RecordMode
from pg_pack.exceptions import JobAborted, PackError, PackIOError
from pg_pack.pack.compress import BrotliCompressor, Compressor
from pg_pack.pack.job import JobHandle
from pg_pack.records.streamer import RecordStreamer
from pg_pack.schema import ddl
from pg_pack.schema.introspector import CatalogIntrospector
from pg_pack.schema.models import SchemaSnapshot

logger = logging.getLogger(__name__)

HEADER = "-- This file was created by pg_pack. DO NOT MODIFY.\n\n"

PREAMBLE = [
    "SET client_encoding = 'UTF8';",
    "SET statement_timeout = 0;",
    "SET lock_timeout = 0;",
    "SET idle_in_transaction_session_timeout = 0;",
    "SET standard_conforming_strings = on;",
    "SET check_function_bodies = false;",
    "SET xmloption = content;",
    "SET client_min_messages = warning;",
    "SET row_security = off;",
    "SELECT pg_catalog.set_config('search_path', '', false);",
]


class PackState(str, Enum):
    IDLE = "idle"
    INITIALIZING = "initializing"
    WRITING = "writing"
    FINALIZING = "finalizing"
    DONE = "done"
    FAILED = "failed"


class PackResult(BaseModel):
    """Summary of a finished pack job."""

    output_path: str
    compressed: bool = False
    schemas: int = 0
    tables: int = 0
    rows: int = 0


def ask_overwrite(path: Path) -> bool:
    """Ask on the terminal whether an existing output may be overwritten."""
    return Confirm.ask(
        f"The specified output file {path} already exists. Overwrite?",
        default=False,
    )


class PackManager:
    """Runs one pack job against a database.

    Args:
        executor: Query executor for the source database.
        options: Output path, record mode, data-only and compress flags.
        confirm_overwrite: Called with the output path when it already
            exists; returning False aborts the job cleanly.
        compressor: Compression stage used when ``options.compress`` is set.
    """

    def __init__(
        self,
        executor: QueryExecutor,
        options: PackOptions,
        confirm_overwrite: Callable[[Path], bool] = ask_overwrite,
        compressor: Compressor | None = None,
    ):
        self._executor = executor
        self._options = options
        self._confirm_overwrite = confirm_overwrite
        self._compressor = compressor or BrotliCompressor()
        self._introspector = CatalogIntrospector(executor)
        self.state = PackState.IDLE

    def _transition(self, state: PackState) -> None:
        logger.debug("Pack job %s -> %s", self.state.value, state.value)
        self.state = state

    # ------------------------------------------------------------------
    # Job lifecycle
    # ------------------------------------------------------------------

    async def pack(self) -> PackResult:
        """Run the whole job.

        Returns:
            PackResult describing the written package.

        Raises:
            JobAborted: The user declined to overwrite the output file.
            PackError: Any fatal configuration, connection, I/O, catalog or
                streaming error.  The lock is released before it propagates.
        """
        self._transition(PackState.INITIALIZING)
        try:
            job, mode = await self._initialize()
        except JobAborted:
            self._transition(PackState.IDLE)
            raise
        except Exception:
            self._transition(PackState.FAILED)
            raise

        with job:
            try:
                self._transition(PackState.WRITING)
                result = PackResult(output_path=str(job.output_path))
                await self._write(job.output_path, mode, result)

                self._transition(PackState.FINALIZING)
                self._finalize(job.output_path, result)
            except Exception:
                self._transition(PackState.FAILED)
                logger.error("Pack job for %s failed", job.output_path)
                raise

        self._transition(PackState.DONE)
        logger.info(
            "Packed %d schemas, %d tables, %d rows into %s",
            result.schemas,
            result.tables,
            result.rows,
            result.output_path,
        )
        return result

    async def _initialize(self) -> tuple[JobHandle, RecordMode]:
        mode = self._options.normalized_record_mode()

        await self._executor.test_connection()

        output_path = Path(self._options.output)
        if output_path.exists() and not self._confirm_overwrite(output_path):
            raise JobAborted(f"not overwriting {output_path}")

        job = JobHandle.open(output_path)
        logger.info("Started pack job for %s (record mode: %s)", output_path, mode.value)
        return job, mode

    def _finalize(self, output_path: Path, result: PackResult) -> None:
        if not self._options.compress:
            return

        compressed = self._compressor.compress(output_path)
        try:
            output_path.unlink()
        except OSError as e:
            raise PackIOError(f"error while deleting plain pack file: {e}") from e

        result.output_path = str(compressed)
        result.compressed = True

    # ------------------------------------------------------------------
    # Writing
    # ------------------------------------------------------------------

    async def _write(self, output_path: Path, mode: RecordMode, result: PackResult) -> None:
        streamer = RecordStreamer(self._executor, mode)

        try:
            out = open(output_path, "w", encoding="utf-8", newline="\n")
        except OSError as e:
            raise PackIOError(f"error while creating output file: {e}") from e

        try:
            with out:
                out.write(HEADER)
                out.write("\n".join(PREAMBLE) + "\n")

                for schema_name in await self._introspector.get_schemas():
                    logger.info("Packing schema %s", schema_name)
                    snapshot = await self._introspector.introspect(schema_name)
                    await self._write_schema(out, snapshot, streamer, result)
                    result.schemas += 1
        except PackError:
            raise
        except OSError as e:
            # Covers the final flush on close as well as each write
            raise PackIOError(f"error while writing output file: {e}") from e

    async def _write_schema(
        self,
        out: TextIO,
        snapshot: SchemaSnapshot,
        streamer: RecordStreamer,
        result: PackResult,
    ) -> None:
        schema_sections = not self._options.data_only

        if schema_sections:
            _write_section(
                out,
                "DROPPING TABLES",
                [ddl.drop_table_statement(t) for t in snapshot.tables],
                separator="\n",
            )
            _write_section(
                out,
                "CREATING TYPES",
                [ddl.create_enum_statement(e) for e in snapshot.enum_types],
            )
            _write_section(
                out,
                "DOMAINS",
                [ddl.create_domain_statement(d) for d in snapshot.domains],
            )
            _write_section(
                out,
                "FUNCTIONS",
                [ddl.create_function_statement(f) for f in snapshot.functions],
            )
            _write_section(
                out,
                "SEQUENCES",
                [ddl.create_sequence_statement(s) for s in snapshot.sequences],
            )
            _write_section(
                out,
                "CREATING TABLES",
                [ddl.create_table_statement(t) for t in snapshot.tables],
            )

        out.write("\n-- START OF RECORDS\n")
        for table in snapshot.tables:
            out.write(f"\n-- Table: {table.qualified_name}\n")
            fragments = 0
            async for fragment in streamer.stream(table):
                out.write(fragment)
                fragments += 1

            rows = fragments - 2 if streamer.mode is RecordMode.COPY else fragments
            logger.info("  %s: %d rows", table.qualified_name, rows)
            result.rows += rows
            result.tables += 1
        out.write("-- END OF RECORDS\n")

        if schema_sections:
            out.write("\n-- START OF CONSTRAINTS\n")
            for table in snapshot.tables:
                out.write(
                    f"\n-- Constraint: PRIMARY KEY\tTable: {table.qualified_name}\n"
                )
                out.write(ddl.primary_key_statement(table) + "\n")
            for table in snapshot.tables:
                out.write(
                    f"\n-- Constraint: FOREIGN KEY\tTable: {table.qualified_name}\n"
                )
                out.write(ddl.foreign_key_statements(table) + "\n")
            out.write("-- END OF CONSTRAINTS\n")


def _write_section(
    out: TextIO, title: str, statements: list[str], separator: str = "\n\n"
) -> None:
    """Write statements between ``-- START OF`` / ``-- END OF`` banners."""
    out.write(f"\n-- START OF {title}\n")
    body = separator.join(s for s in statements if s)
    if body:
        out.write(body + "\n")
    out.write(f"-- END OF {title}\n")
