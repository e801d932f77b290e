"""Command-line entry point for pg_pack.

Packs a PostgreSQL database into a replayable SQL script (optionally a
Brotli-compressed ``.pack`` file).

Usage:
    pg-pack -d shop -o shop.sql
    pg-pack -d shop -o shop.sql --record-mode insert --compress
    PG_PACK_PROFILE=staging pg-pack -o staging.sql
    pg-pack --profile staging --config ./pg_pack.toml -o staging.sql -y

Exit codes:
    0 - package written, or overwrite declined
    1 - any pack error
"""

import argparse
import asyncio
import getpass
import logging
import sys
from pathlib import Path

from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from pg_pack.adapters.postgres import AsyncPostgresExecutor
from pg_pack.config.loader import DEFAULT_CONFIG_FILE, load_pack_config, resolve_profile
from pg_pack.config.models import ConnectionCreds, PackConfig, PackOptions
from pg_pack.exceptions import ConfigurationError, JobAborted, PackError
from pg_pack.pack.manager import PackManager, PackResult, ask_overwrite

console = Console()


def configure_logging(verbose: bool = False) -> None:
    """Route pg_pack logs through rich; quiet SQLAlchemy."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
    )
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.pool").setLevel(logging.WARNING)


# ============================================================================
# Argument resolution
# ============================================================================


def _load_config(args: argparse.Namespace) -> PackConfig:
    """Load the TOML config if one was named or exists in the cwd."""
    if args.config:
        return load_pack_config(Path(args.config))

    default_path = Path.cwd() / DEFAULT_CONFIG_FILE
    if default_path.exists():
        return load_pack_config(default_path)
    return PackConfig()


def build_creds(args: argparse.Namespace, config: PackConfig) -> ConnectionCreds:
    """Merge profile values with explicit command-line flags.

    Flags given on the command line win over the profile.

    Raises:
        ConfigurationError: If no database name is available
    """
    profile = resolve_profile(config, args.profile)
    values = profile.model_dump() if profile else {}

    overrides = {
        "host": args.host,
        "port": args.port,
        "username": args.user,
        "password": args.password,
        "database": args.database,
    }
    values.update({k: v for k, v in overrides.items() if v is not None})
    if args.ssl:
        values["ssl"] = True

    if not values.get("database"):
        raise ConfigurationError("a database is required (--database or a profile)")

    return ConnectionCreds(**values)


def build_options(args: argparse.Namespace, config: PackConfig) -> PackOptions:
    """Merge ``[pack]`` defaults with explicit command-line flags."""
    values = dict(config.defaults)
    values["output"] = args.output
    if args.record_mode is not None:
        values["record_mode"] = args.record_mode
    if args.compress:
        values["compress"] = True
    if args.data_only:
        values["data_only"] = True
    return PackOptions(**values)


def _print_result(result: PackResult) -> None:
    table = Table(title="Pack Summary", show_header=False)
    table.add_column("Key", style="dim")
    table.add_column("Value")
    table.add_row("Output", f"[bold cyan]{result.output_path}[/bold cyan]")
    table.add_row("Compressed", "yes" if result.compressed else "no")
    table.add_row("Schemas", str(result.schemas))
    table.add_row("Tables", str(result.tables))
    table.add_row("Rows", str(result.rows))
    console.print(table)


# ============================================================================
# Command implementation
# ============================================================================


async def _async_pack(args: argparse.Namespace) -> int:
    """Async implementation of the pack command.

    Returns:
        0 on success or declined overwrite, 1 on failure.
    """
    try:
        config = _load_config(args)
        creds = build_creds(args, config)
        options = build_options(args, config)
    except (ConfigurationError, FileNotFoundError, ValidationError) as e:
        console.print(f"[bold red]x[/bold red] {e}")
        return 1

    if creds.password is None:
        creds.password = getpass.getpass(f"Password for user {creds.username}: ")

    confirm = (lambda path: True) if args.yes else ask_overwrite
    executor = AsyncPostgresExecutor(creds.to_url())
    try:
        manager = PackManager(executor, options, confirm_overwrite=confirm)
        result = await manager.pack()
    except JobAborted:
        console.print("Aborting...")
        return 0
    except PackError as e:
        console.print(f"[bold red]x[/bold red] {e}")
        return 1
    finally:
        await executor.close()

    console.print("[bold green]v[/bold green] Package written")
    _print_result(result)
    return 0


def cmd_pack(args: argparse.Namespace) -> int:
    """Pack the database.

    Wraps the async implementation with ``asyncio.run()``.
    """
    return asyncio.run(_async_pack(args))


# ============================================================================
# Main entry point
# ============================================================================


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pg-pack",
        description=(
            "Pack a PostgreSQL database (schema and data) into a single "
            "replayable SQL script"
        ),
    )

    parser.add_argument("-o", "--output", required=True, help="Output file")

    conn = parser.add_argument_group("connection")
    conn.add_argument("--host", default=None, help="PostgreSQL host (default: localhost)")
    conn.add_argument("-p", "--port", type=int, default=None, help="PostgreSQL port (default: 5432)")
    conn.add_argument("-u", "--user", default=None, help="PostgreSQL username (default: postgres)")
    conn.add_argument("--password", default=None, help="PostgreSQL password (prompted if omitted)")
    conn.add_argument("-d", "--database", default=None, help="PostgreSQL database")
    conn.add_argument(
        "-s", "--ssl", action="store_true", help="Require SSL when connecting to the database"
    )
    conn.add_argument("--profile", default=None, help="Connection profile from the config file")
    conn.add_argument(
        "--config", default=None, help=f"Config file (default: ./{DEFAULT_CONFIG_FILE} if present)"
    )

    pack = parser.add_argument_group("package")
    pack.add_argument(
        "-c",
        "--compress",
        action="store_true",
        help="Compress the final package into a '.pack' file instead of plain '.sql'",
    )
    pack.add_argument(
        "-D",
        "--data-only",
        action="store_true",
        help="Only pack tables' data records (exclude schemas)",
    )
    pack.add_argument(
        "--record-mode",
        default=None,
        help="'INSERT' (safer) or 'COPY' (faster & lighter). Defaults to 'COPY'",
    )
    pack.add_argument(
        "-y", "--yes", action="store_true", help="Overwrite an existing output without asking"
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    parser.set_defaults(func=cmd_pack)
    return parser


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point.

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.verbose)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
