"""Configuration management: credentials, pack options, TOML profiles.

Usage:
    >>> from pg_pack.config import load_pack_config, ConnectionCreds, PackOptions
"""

from pg_pack.config.loader import load_pack_config, resolve_profile
from pg_pack.config.models import ConnectionCreds, PackConfig, PackOptions, RecordMode

__all__ = [
    "load_pack_config",
    "resolve_profile",
    "ConnectionCreds",
    "PackConfig",
    "PackOptions",
    "RecordMode",
]
