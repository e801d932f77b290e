"""Exception classes for pg_pack.

Every fatal condition of a pack job derives from ``PackError`` so the CLI
can map the whole family to a non-zero exit with one handler.

``JobAborted`` is not a ``PackError``: it signals the user
declining to overwrite an existing package, which ends the process cleanly.
"""

__all__ = [
    "PackError",
    "ConfigurationError",
    "PackConnectionError",
    "PackIOError",
    "CatalogQueryError",
    "UnresolvedTypeError",
    "TableNotFoundError",
    "StreamDecodeError",
    "JobAborted",
]


class PackError(Exception):
    """Base exception for pg_pack."""


class ConfigurationError(PackError):
    """Invalid job configuration (e.g. unknown record mode)."""


class PackConnectionError(PackError, ConnectionError):
    """The database could not be reached."""


class PackIOError(PackError, OSError):
    """The output file or lock artifact could not be created or removed."""


class CatalogQueryError(PackError):
    """A metadata query against the system catalogs failed."""

    def __init__(self, message: str, schema: str | None = None) -> None:
        super().__init__(message)
        self.schema = schema


class UnresolvedTypeError(PackError):
    """A column's type could not be resolved to output text."""

    def __init__(self, schema: str, table: str, column: str) -> None:
        super().__init__(
            f"cannot resolve type of column {column} in {schema}.{table}"
        )
        self.schema = schema
        self.table = table
        self.column = column


class TableNotFoundError(PackError):
    """A table name matched no columns in the catalog."""

    def __init__(self, schema: str, table: str) -> None:
        super().__init__(f"Table '{schema}.{table}' not found")
        self.schema = schema
        self.table = table


class StreamDecodeError(PackError):
    """Reading or decoding a table's rows failed mid-stream."""

    def __init__(self, schema: str, table: str, reason: str) -> None:
        super().__init__(f"error while streaming {schema}.{table}: {reason}")
        self.schema = schema
        self.table = table
        self.reason = reason


class JobAborted(Exception):
    """The user declined to overwrite an existing output file."""
