"""
Static configuration for batchcache.

Values are read from environment variables (and a ``.env`` file) once at
import, and again whenever ``Config.load()`` is called. A value that fails to
parse or falls outside its bounds is replaced by its default and the problem
is recorded in ``Config.get_metrics().validation_errors``; nothing here raises
outside production.

Environment Variables
---------------------
- ENVIRONMENT: development / testing / staging / production (default: development)
- DEBUG: Debug mode flag (default: False)
- LOG_LEVEL: Logging level (default: INFO)
- LOG_JSON: Force JSON console logs (default: JSON only in production)
- DATABASE_URL: SQLAlchemy async URL (default: local SQLite via aiosqlite)
- DATABASE_POOL_SIZE / DATABASE_MAX_OVERFLOW / DATABASE_POOL_RECYCLE /
  DATABASE_POOL_TIMEOUT / DATABASE_ECHO: engine tuning
- STORE_MAX_IDS_PER_QUERY: Chunk size for id-membership reads (default: 1000)
- CACHE_CONCURRENT_IO: Issue per-type store calls concurrently (default: True)

Per-batch state and relation catalogs are not configuration; they belong to
the cache and are supplied at ``EntityCache.init``.
"""

import logging
import os
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, Optional, TypeVar

from dotenv import load_dotenv

load_dotenv()

T = TypeVar("T")

_TRUE = frozenset({"true", "yes", "1", "on"})
_FALSE = frozenset({"false", "no", "0", "off"})
_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class Environment(Enum):
    """Deployment environment types."""

    DEVELOPMENT = "development"
    TESTING = "testing"
    STAGING = "staging"
    PRODUCTION = "production"

    @classmethod
    def from_string(cls, value: str) -> "Environment":
        """
        Parse an environment name; unknown names mean development.

        >>> Environment.from_string("Production") is Environment.PRODUCTION
        True
        """
        try:
            return cls(value.lower())
        except ValueError:
            # Runs before setup_logging, so this goes to the root logger.
            logging.warning("Unknown environment %r, defaulting to development", value)
            return cls.DEVELOPMENT


class ConfigLoadReport:
    """Where each value came from on the last load, and what was rejected."""

    def __init__(self) -> None:
        self.env_vars_loaded: Dict[str, bool] = {}
        self.validation_errors: Dict[str, str] = {}
        self.last_reload: Optional[str] = None

    def get_summary(self) -> Dict[str, Any]:
        from_env = [key for key, loaded in self.env_vars_loaded.items() if loaded]
        return {
            "total_configs": len(self.env_vars_loaded),
            "from_environment": from_env,
            "validation_errors": dict(self.validation_errors),
            "last_reload": self.last_reload,
        }


def _parse_bool(raw: str) -> bool:
    normalized = raw.strip().lower()
    if normalized in _TRUE:
        return True
    if normalized in _FALSE:
        return False
    raise ValueError("is not a valid boolean")


def _int_between(min_val: Optional[int] = None, max_val: Optional[int] = None) -> Callable[[str], int]:
    def parse(raw: str) -> int:
        try:
            value = int(raw)
        except ValueError:
            raise ValueError("is not a valid integer") from None
        if min_val is not None and value < min_val:
            raise ValueError(f"is below minimum {min_val}")
        if max_val is not None and value > max_val:
            raise ValueError(f"exceeds maximum {max_val}")
        return value

    return parse


class Config:
    """
    Centralized static configuration; never instantiated.

    >>> if Config.is_production():
    ...     logger.info("Running in production mode")
    """

    _report: Optional[ConfigLoadReport] = None
    _validated: bool = False

    ENVIRONMENT: str = "development"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    LOG_JSON: Optional[bool] = None

    DATABASE_URL: str = "sqlite+aiosqlite:///./batchcache.db"
    DATABASE_POOL_SIZE: int = 5
    DATABASE_MAX_OVERFLOW: int = 10
    DATABASE_POOL_RECYCLE: int = 1800
    DATABASE_POOL_TIMEOUT: int = 30
    DATABASE_ECHO: bool = False

    STORE_MAX_IDS_PER_QUERY: int = 1000
    CACHE_CONCURRENT_IO: bool = True

    @classmethod
    def _read(cls, key: str, default: T, parse: Optional[Callable[[str], T]] = None) -> T:
        """Return the parsed environment value for ``key``, or ``default``."""
        raw = os.getenv(key)
        cls._report.env_vars_loaded[key] = raw is not None
        if raw is None:
            return default
        if parse is None:
            return raw  # type: ignore[return-value]

        try:
            return parse(raw)
        except ValueError as exc:
            message = f"{key}={raw!r} {exc}, using default {default!r}"
            logging.warning(message)
            cls._report.validation_errors[key] = message
            return default

    @classmethod
    def load(cls) -> None:
        """(Re)read every value from the environment."""
        cls._report = ConfigLoadReport()

        cls.ENVIRONMENT = cls._read("ENVIRONMENT", "development")
        cls.DEBUG = cls._read("DEBUG", False, _parse_bool)
        cls.LOG_LEVEL = cls._read("LOG_LEVEL", "INFO").upper()
        cls.LOG_JSON = cls._read("LOG_JSON", None, _parse_bool)

        cls.DATABASE_URL = cls._read("DATABASE_URL", "sqlite+aiosqlite:///./batchcache.db")
        cls.DATABASE_POOL_SIZE = cls._read("DATABASE_POOL_SIZE", 5, _int_between(1, 200))
        cls.DATABASE_MAX_OVERFLOW = cls._read("DATABASE_MAX_OVERFLOW", 10, _int_between(0, 200))
        cls.DATABASE_POOL_RECYCLE = cls._read("DATABASE_POOL_RECYCLE", 1800, _int_between(60))
        cls.DATABASE_POOL_TIMEOUT = cls._read("DATABASE_POOL_TIMEOUT", 30, _int_between(1, 600))
        cls.DATABASE_ECHO = cls._read("DATABASE_ECHO", False, _parse_bool)

        cls.STORE_MAX_IDS_PER_QUERY = cls._read(
            "STORE_MAX_IDS_PER_QUERY", 1000, _int_between(1, 100_000)
        )
        cls.CACHE_CONCURRENT_IO = cls._read("CACHE_CONCURRENT_IO", True, _parse_bool)

        if cls.LOG_LEVEL not in _LOG_LEVELS:
            cls._report.validation_errors["LOG_LEVEL"] = f"unknown level {cls.LOG_LEVEL!r}"
            cls.LOG_LEVEL = "INFO"

        cls._report.last_reload = datetime.now(timezone.utc).isoformat()

    @classmethod
    def validate(cls) -> None:
        """
        Load once and sanity-check the result.

        Raises
        ------
        ValueError
            If ``DATABASE_URL`` is empty in production.
        """
        if cls._validated:
            return

        logger = logging.getLogger(__name__)
        cls.load()

        if not cls.DATABASE_URL:
            if cls.is_production():
                raise ValueError("DATABASE_URL environment variable is required")
            logger.warning("DATABASE_URL is empty; the SQLAlchemy store will not start")

        if cls.is_production():
            if cls.DATABASE_URL.startswith("sqlite"):
                logger.warning("Production environment is using a SQLite store")
            if cls.DEBUG:
                logger.warning("DEBUG mode enabled in production")

        if cls._report.validation_errors:
            logger.warning("Configuration warnings: %s", cls._report.validation_errors)

        cls._validated = True

    @classmethod
    def environment(cls) -> Environment:
        return Environment.from_string(cls.ENVIRONMENT)

    @classmethod
    def is_production(cls) -> bool:
        return cls.environment() is Environment.PRODUCTION

    @classmethod
    def is_development(cls) -> bool:
        return cls.environment() is Environment.DEVELOPMENT

    @classmethod
    def is_testing(cls) -> bool:
        return cls.environment() is Environment.TESTING

    @classmethod
    def is_staging(cls) -> bool:
        return cls.environment() is Environment.STAGING

    @classmethod
    def get_metrics(cls) -> Optional[ConfigLoadReport]:
        return cls._report

    @classmethod
    def get_config_summary(cls) -> Dict[str, Any]:
        """Non-sensitive snapshot; the database URL is reduced to its scheme."""
        return {
            "environment": cls.ENVIRONMENT,
            "debug": cls.DEBUG,
            "log_level": cls.LOG_LEVEL,
            "database_url_scheme": cls.DATABASE_URL.split(":", 1)[0],
            "database_pool_size": cls.DATABASE_POOL_SIZE,
            "database_max_overflow": cls.DATABASE_MAX_OVERFLOW,
            "store_max_ids_per_query": cls.STORE_MAX_IDS_PER_QUERY,
            "cache_concurrent_io": cls.CACHE_CONCURRENT_IO,
        }


Config.validate()
