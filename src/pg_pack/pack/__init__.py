"""Pack job orchestration, lock handling and compression.

Usage:
    from pg_pack.pack import PackManager, PackResult
"""

from pg_pack.pack.compress import BrotliCompressor, Compressor, compressed_path_for
from pg_pack.pack.job import JobHandle, lock_path_for
from pg_pack.pack.manager import PackManager, PackResult, PackState

__all__ = [
    "PackManager",
    "PackResult",
    "PackState",
    "JobHandle",
    "lock_path_for",
    "Compressor",
    "BrotliCompressor",
    "compressed_path_for",
]
