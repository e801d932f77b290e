"""Load connection profiles and pack defaults from TOML."""

import os
import tomllib
from pathlib import Path

from pydantic import ValidationError

from pg_pack.config.models import ConnectionCreds, PackConfig
from pg_pack.exceptions import ConfigurationError

DEFAULT_CONFIG_FILE = "pg_pack.toml"
PROFILE_ENV_VAR = "PG_PACK_PROFILE"

# Keys of the [pack] table that map onto PackOptions fields
_PACK_DEFAULT_KEYS = {"record_mode", "data_only", "compress"}


def load_pack_config(config_path: Path | None = None) -> PackConfig:
    """Load pack configuration from a TOML file.

    Args:
        config_path: Path to the TOML file (default: ``./pg_pack.toml``)

    Returns:
        PackConfig with all profiles and ``[pack]`` defaults

    Raises:
        FileNotFoundError: If config file doesn't exist
        ConfigurationError: If a profile or the ``[pack]`` table is invalid
    """
    if config_path is None:
        config_path = Path.cwd() / DEFAULT_CONFIG_FILE

    if not config_path.exists():
        raise FileNotFoundError(f"Pack config not found: {config_path}")

    with open(config_path, "rb") as f:
        try:
            data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ConfigurationError(f"Invalid TOML in {config_path}: {e}") from e

    profiles = {}
    for name, profile_data in data.get("profiles", {}).items():
        try:
            profiles[name] = ConnectionCreds(**profile_data)
        except (ValidationError, TypeError) as e:
            raise ConfigurationError(f"Invalid profile '{name}': {e}") from e

    defaults = data.get("pack", {})
    unknown = set(defaults) - _PACK_DEFAULT_KEYS
    if unknown:
        raise ConfigurationError(
            f"Unknown keys in [pack]: {', '.join(sorted(unknown))}"
        )

    return PackConfig(profiles=profiles, defaults=defaults)


def resolve_profile(
    config: PackConfig, profile_name: str | None = None
) -> ConnectionCreds | None:
    """Pick the active profile.

    Priority:
    1. Explicit ``profile_name``
    2. ``PG_PACK_PROFILE`` env var
    3. None (caller falls back to command-line flags)

    Raises:
        ConfigurationError: If the named profile is not defined
    """
    name = profile_name or os.environ.get(PROFILE_ENV_VAR)
    if not name:
        return None

    if name not in config.profiles:
        available = ", ".join(config.profiles) or "(none)"
        raise ConfigurationError(
            f"Profile '{name}' not found. Available: {available}"
        )
    return config.profiles[name]
