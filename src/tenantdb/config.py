"""Configuration management for tenantdb."""

import configparser
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from tenantdb.exceptions import ConfigError

PROFILE_KEYS = (
    "database_url",
    "pool_min_size",
    "pool_max_size",
    "api_key",
    "log_file",
    "host",
    "port",
    "sslmode",
)


def load_profile(profile: str = "DEFAULT", path: Optional[Path] = None) -> dict[str, str]:
    """Load settings from ~/.tenantdb.cfg.

    Args:
        profile: Profile (section) name to load (default: "DEFAULT")
        path: Config file to read instead of ~/.tenantdb.cfg

    Returns:
        Dict with the keys of PROFILE_KEYS that the profile sets

    Raises:
        ConfigError: If the profile doesn't exist
    """
    cfg_path = path or Path.home() / ".tenantdb.cfg"
    if not cfg_path.exists():
        return {}

    config = configparser.ConfigParser()
    config.read(cfg_path)

    if profile != "DEFAULT" and profile not in config:
        available = [s for s in config.sections()] or ["DEFAULT"]
        raise ConfigError(
            f"Profile '{profile}' not found in {cfg_path}. "
            f"Available profiles: {', '.join(available)}"
        )

    section = config[profile]
    return {key: section[key].strip() for key in PROFILE_KEYS if key in section}


def _to_int(value: Optional[str], name: str, default: int) -> int:
    if value is None or value == "":
        return default
    try:
        return int(value)
    except ValueError as e:
        raise ConfigError(f"{name} must be an integer, got {value!r}") from e


@dataclass
class Config:
    """Configuration for tenantdb."""

    database_url: Optional[str] = None
    pool_min_size: int = 1
    pool_max_size: int = 10
    api_key: Optional[str] = None
    log_file: str = "database-operations.log"
    host: str = "127.0.0.1"
    port: int = 5000
    sslmode: Optional[str] = None

    @classmethod
    def from_env(
        cls,
        *,
        database_url: Optional[str] = None,
        pool_min_size: Optional[int] = None,
        pool_max_size: Optional[int] = None,
        api_key: Optional[str] = None,
        log_file: Optional[str] = None,
        host: Optional[str] = None,
        port: Optional[int] = None,
        sslmode: Optional[str] = None,
        profile: Optional[str] = None,
        config_path: Optional[Path] = None,
    ) -> "Config":
        """Load configuration from ~/.tenantdb.cfg, env vars, with CLI overrides.

        Priority (highest to lowest):
        1. Explicit parameters (CLI args)
        2. Environment variables
        3. ~/.tenantdb.cfg profile
        """
        profile_name = profile or os.environ.get("TENANTDB_PROFILE", "DEFAULT")
        file_cfg = load_profile(profile_name, config_path)

        def resolve(explicit, env_keys, cfg_key):
            if explicit is not None:
                return explicit
            for env_key in env_keys:
                env_val = os.environ.get(env_key)
                if env_val is not None:
                    return env_val
            return file_cfg.get(cfg_key)

        defaults = cls()
        return cls(
            database_url=resolve(
                database_url, ("TENANTDB_DATABASE_URL", "DATABASE_URL"), "database_url"
            ),
            pool_min_size=_to_int(
                resolve(pool_min_size, ("TENANTDB_POOL_MIN",), "pool_min_size"),
                "pool_min_size",
                defaults.pool_min_size,
            ),
            pool_max_size=_to_int(
                resolve(pool_max_size, ("TENANTDB_POOL_MAX",), "pool_max_size"),
                "pool_max_size",
                defaults.pool_max_size,
            ),
            api_key=resolve(api_key, ("TENANTDB_API_KEY",), "api_key"),
            log_file=resolve(log_file, ("TENANTDB_LOG_FILE",), "log_file")
            or defaults.log_file,
            host=resolve(host, ("TENANTDB_HOST",), "host") or defaults.host,
            port=_to_int(
                resolve(port, ("TENANTDB_PORT", "PORT"), "port"), "port", defaults.port
            ),
            sslmode=resolve(sslmode, ("TENANTDB_SSLMODE",), "sslmode"),
        )

    def validate_for_db_ops(self) -> None:
        """Validate that settings required for database operations are usable.

        Raises:
            ConfigError: If the database URL is missing or pool sizes are invalid.
        """
        problems = []
        if not self.database_url:
            problems.append(
                "database_url (use --database-url, TENANTDB_DATABASE_URL or DATABASE_URL)"
            )
        if self.pool_min_size < 1:
            problems.append("pool_min_size must be at least 1")
        if self.pool_max_size < self.pool_min_size:
            problems.append("pool_max_size must not be smaller than pool_min_size")

        if problems:
            raise ConfigError(
                "Invalid configuration:\n  - " + "\n  - ".join(problems)
            )
