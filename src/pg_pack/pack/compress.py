"""Compression stage for finished package files.

The orchestrator hands the finished plain script to a ``Compressor`` and
deletes the plain file afterwards.  ``BrotliCompressor`` is the default:
maximum quality, streamed in chunks so large packages never sit in memory.

Usage:
    compressed = BrotliCompressor().compress(Path("dump.sql"))
    # -> Path("dump.pack")
"""

import logging
from pathlib import Path
from typing import Protocol

import brotli

from pg_pack.exceptions import PackIOError

logger = logging.getLogger(__name__)

PACK_SUFFIX = ".pack"
CHUNK_SIZE = 1024 * 1024


def compressed_path_for(plain_path: str | Path) -> Path:
    """Replace the last extension with ``.pack`` (``dump`` -> ``dump.pack``)."""
    plain_path = Path(plain_path)
    if plain_path.suffix == PACK_SUFFIX:
        return plain_path.with_name(plain_path.name + PACK_SUFFIX)
    return plain_path.with_suffix(PACK_SUFFIX)


class Compressor(Protocol):
    """Turns a finished plain package into a compressed artifact."""

    def compress(self, plain_path: Path) -> Path:
        """Write the compressed artifact and return its path."""
        ...


class BrotliCompressor:
    """Brotli at maximum quality."""

    def __init__(self, quality: int = 11):
        self.quality = quality

    def compress(self, plain_path: Path) -> Path:
        target = compressed_path_for(plain_path)
        compressor = brotli.Compressor(quality=self.quality)
        try:
            with open(plain_path, "rb") as src, open(target, "wb") as dst:
                while chunk := src.read(CHUNK_SIZE):
                    dst.write(compressor.process(chunk))
                dst.write(compressor.finish())
        except OSError as e:
            raise PackIOError(f"error while compressing pack file: {e}") from e

        logger.info(
            "Compressed %s -> %s (%d -> %d bytes)",
            plain_path,
            target,
            plain_path.stat().st_size,
            target.stat().st_size,
        )
        return target
