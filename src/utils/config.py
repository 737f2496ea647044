"""
Configuration management for the Bakery Ledger application.

This module handles:
- Database path configuration
- Environment-specific configuration (development vs. production)
- Environment variable overrides for runtime settings
- Logging setup
"""

import logging
import os
from pathlib import Path
from typing import Optional

from .constants import DATABASE_FILENAME

logger = logging.getLogger(__name__)

ENV_PREFIX = "BAKERY_LEDGER_"

DEFAULT_DB_TIMEOUT = 30
DEFAULT_LOG_LEVEL = "INFO"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def _env_int(name: str, default: int) -> int:
    """Read a positive integer environment variable, falling back on bad input."""
    raw = os.environ.get(ENV_PREFIX + name)
    if raw is None:
        return default
    try:
        value = int(raw)
        if value <= 0:
            raise ValueError(raw)
        return value
    except ValueError:
        logger.warning(f"Invalid {ENV_PREFIX}{name}={raw!r}, using default {default}")
        return default


def _env_bool(name: str, default: bool) -> bool:
    """Read a boolean environment variable, falling back on bad input."""
    raw = os.environ.get(ENV_PREFIX + name)
    if raw is None:
        return default
    lowered = raw.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    logger.warning(f"Invalid {ENV_PREFIX}{name}={raw!r}, using default {default}")
    return default


class Config:
    """
    Application configuration manager.

    Handles all configuration settings including database paths,
    environment settings, and tunables read from ``BAKERY_LEDGER_*``
    environment variables.
    """

    def __init__(self, environment: str = "production"):
        """
        Initialize configuration.

        Args:
            environment: Environment mode - 'production' or 'development'
        """
        self.environment = environment

        if environment == "development":
            self._base_dir = self._get_project_data_dir()
        else:
            self._base_dir = self._get_user_documents_dir()

        self._database_dir = self._base_dir
        self._database_path = self._database_dir / DATABASE_FILENAME
        self._database_url_override = os.environ.get(ENV_PREFIX + "DATABASE_URL")

    def _get_project_data_dir(self) -> Path:
        """
        Get the project's data directory for development.

        Returns:
            Path to project data/ directory
        """
        project_root = Path(__file__).parent.parent.parent
        return project_root / "data"

    def _get_user_documents_dir(self) -> Path:
        """
        Get the user's Documents directory for production.

        Returns:
            Path to user's Documents folder with app subdirectory
        """
        return Path.home() / "Documents" / "BakeryLedger"

    def ensure_directories(self) -> None:
        """Create the database directory if it doesn't exist."""
        self._database_dir.mkdir(parents=True, exist_ok=True)

    @property
    def database_path(self) -> Path:
        """Full path to the database file."""
        return self._database_path

    @property
    def database_url(self) -> str:
        """
        SQLAlchemy database URL.

        ``BAKERY_LEDGER_DATABASE_URL`` takes precedence over the file path.

        Returns:
            Database URL string for SQLAlchemy
        """
        if self._database_url_override:
            return self._database_url_override
        db_path_str = str(self._database_path).replace("\\", "/")
        return f"sqlite:///{db_path_str}"

    @property
    def db_timeout(self) -> int:
        """SQLite busy timeout in seconds."""
        return _env_int("DB_TIMEOUT", DEFAULT_DB_TIMEOUT)

    @property
    def log_level(self) -> str:
        """Root log level name."""
        raw = os.environ.get(ENV_PREFIX + "LOG_LEVEL", DEFAULT_LOG_LEVEL).upper()
        if not isinstance(logging.getLevelName(raw), int):
            logger.warning(
                f"Invalid {ENV_PREFIX}LOG_LEVEL={raw!r}, using default {DEFAULT_LOG_LEVEL}"
            )
            return DEFAULT_LOG_LEVEL
        return raw

    @property
    def strict_stock_conversions(self) -> bool:
        """
        Whether stock and costing paths reject missing conversion paths.

        When False, those paths fall back to the unconverted quantity like
        purely informational conversions do.
        """
        return _env_bool("STRICT_CONVERSIONS", True)

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.environment == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment == "production"

    def database_exists(self) -> bool:
        """
        Check if database file exists.

        Returns:
            True if database file exists, False otherwise
        """
        return self._database_path.exists()

    def __repr__(self) -> str:
        """String representation of config."""
        return f"Config(environment='{self.environment}', database_url='{self.database_url}')"


_config_instance: Optional[Config] = None


def get_config(environment: Optional[str] = None) -> Config:
    """
    Get the global configuration instance.

    Once created, the singleton's environment cannot be changed by passing
    a different environment argument.

    Args:
        environment: Optional environment for initial creation. If None, uses
                    BAKERY_LEDGER_ENV or defaults to production. Ignored if
                    singleton already exists.

    Returns:
        Config instance
    """
    global _config_instance

    if _config_instance is None:
        if environment is None:
            environment = os.environ.get(ENV_PREFIX + "ENV", "production")
        _config_instance = Config(environment)
    elif environment is not None and environment != _config_instance.environment:
        logger.warning(
            f"get_config() called with environment='{environment}' but singleton "
            f"already exists with environment='{_config_instance.environment}'. "
            f"Returning existing singleton to prevent database switching."
        )

    return _config_instance


def reset_config() -> None:
    """
    Reset the global configuration instance.

    Useful for testing.
    """
    global _config_instance
    _config_instance = None


def configure_logging(level: Optional[str] = None) -> None:
    """
    Configure root logging for command-line use.

    Args:
        level: Optional level name; defaults to the configured log level
    """
    logging.basicConfig(
        level=level or get_config().log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

