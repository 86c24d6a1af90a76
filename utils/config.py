# utils/config.py
"""
Dashboard Configuration

Settings come from one of two sources:
- Streamlit Cloud: `DB_CONFIG` and `APP` tables in secrets.toml
- Local: a `.env` file (or the process environment)

Both are flattened into the same upper-case keys, then parsed once into
typed containers: DatabaseConfig for the Postgres connection and
DashboardSettings for caching, paging and feature flags.
"""

import os
import logging
from pathlib import Path
from dotenv import load_dotenv
from typing import Dict, Any, Mapping
from dataclasses import asdict, dataclass, fields

logger = logging.getLogger(__name__)

# secrets.toml [DB_CONFIG] key -> flattened setting key
_DB_SECRET_KEYS = {
    'host': 'DB_HOST',
    'port': 'DB_PORT',
    'user': 'DB_USER',
    'password': 'DB_PASSWORD',
    'database': 'DB_NAME',
    'dialect': 'DB_DIALECT',
}


def is_running_on_streamlit_cloud() -> bool:
    """Detect if running on Streamlit Cloud"""
    try:
        import streamlit as st
        return hasattr(st, 'secrets') and len(st.secrets) > 0
    except Exception:
        return False


def _env_int(source: Mapping[str, Any], key: str, default: int, minimum: int = 0) -> int:
    """Integer setting; unparseable or too-small values fall back to the default."""
    raw = source.get(key)
    if raw in (None, ''):
        return default
    try:
        value = int(str(raw).strip())
    except ValueError:
        logger.warning(f"Setting {key}={raw!r} is not an integer, using {default}")
        return default
    if value < minimum:
        logger.warning(f"Setting {key}={value} is below {minimum}, using {default}")
        return default
    return value


def _env_flag(source: Mapping[str, Any], key: str, default: bool) -> bool:
    raw = source.get(key)
    if raw in (None, ''):
        return default
    return str(raw).strip().lower() in ('true', '1', 'yes', 'on')


# =============================================================================
# CONTAINERS
# =============================================================================

@dataclass
class DatabaseConfig:
    """Postgres connection settings"""
    host: str = ""
    port: int = 5432
    user: str = ""
    password: str = ""
    database: str = "postgres"
    dialect: str = "postgresql+psycopg2"

    @classmethod
    def from_source(cls, source: Mapping[str, Any]) -> 'DatabaseConfig':
        return cls(
            host=str(source.get('DB_HOST') or ''),
            port=_env_int(source, 'DB_PORT', 5432, minimum=1),
            user=str(source.get('DB_USER') or ''),
            password=str(source.get('DB_PASSWORD') or ''),
            database=str(source.get('DB_NAME') or source.get('DB_DATABASE') or 'postgres'),
            dialect=str(source.get('DB_DIALECT') or 'postgresql+psycopg2'),
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def is_configured(self) -> bool:
        return bool(self.host and self.user and self.password)


@dataclass
class DashboardSettings:
    """
    Event dashboard tuning.

    Field names double as the upper-case setting keys, so
    get_app_setting("CACHE_TTL_SECONDS") reads cache_ttl_seconds.
    """
    db_pool_size: int = 5
    db_pool_recycle: int = 3600
    cache_ttl_seconds: int = 60
    page_size: int = 10
    leaderboard_size: int = 5
    default_period_window: int = 8
    timezone: str = "Asia/Tokyo"
    enable_export: bool = True
    enable_debug_mode: bool = False

    @classmethod
    def from_source(cls, source: Mapping[str, Any]) -> 'DashboardSettings':
        defaults = cls()
        return cls(
            db_pool_size=_env_int(source, 'DB_POOL_SIZE', defaults.db_pool_size, minimum=1),
            db_pool_recycle=_env_int(source, 'DB_POOL_RECYCLE', defaults.db_pool_recycle),
            cache_ttl_seconds=_env_int(source, 'CACHE_TTL_SECONDS', defaults.cache_ttl_seconds),
            page_size=_env_int(source, 'PAGE_SIZE', defaults.page_size, minimum=1),
            leaderboard_size=_env_int(source, 'LEADERBOARD_SIZE', defaults.leaderboard_size, minimum=1),
            default_period_window=_env_int(source, 'DEFAULT_PERIOD_WINDOW', defaults.default_period_window),
            timezone=str(source.get('TIMEZONE') or defaults.timezone),
            enable_export=_env_flag(source, 'ENABLE_EXPORT', defaults.enable_export),
            enable_debug_mode=_env_flag(source, 'ENABLE_DEBUG_MODE', defaults.enable_debug_mode),
        )

    def as_settings(self) -> Dict[str, Any]:
        """Upper-case key view used by get_app_setting()."""
        return {f.name.upper(): getattr(self, f.name) for f in fields(self)}


# =============================================================================
# SINGLETON
# =============================================================================

class Config:
    """
    Configuration singleton

    Usage:
        from utils.config import config

        db_config = config.get_db_config()
        ttl = config.settings.cache_ttl_seconds
        page_size = config.get_app_setting("PAGE_SIZE", 10)

        if config.is_feature_enabled("EXPORT"):
            ...
    """

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self):
        if self._initialized:
            return

        self.is_cloud = is_running_on_streamlit_cloud()
        source = self._read_cloud_source() if self.is_cloud else self._read_local_source()
        self._db_config = DatabaseConfig.from_source(source)
        self._settings = DashboardSettings.from_source(source)
        self._log_config_status()
        self._initialized = True

    @staticmethod
    def _read_cloud_source() -> Dict[str, Any]:
        """Flatten secrets.toml [DB_CONFIG] and [APP] into setting keys"""
        import streamlit as st

        source: Dict[str, Any] = {}
        for secret_key, value in st.secrets.get("DB_CONFIG", {}).items():
            source[_DB_SECRET_KEYS.get(secret_key, secret_key.upper())] = value
        source.update(st.secrets.get("APP", {}))

        logger.info("☁️ Running in STREAMLIT CLOUD")
        return source

    @staticmethod
    def _read_local_source() -> Dict[str, Any]:
        """Load the first .env found, then read the process environment"""
        for env_path in (Path.cwd() / ".env", Path(__file__).parent.parent / ".env"):
            if env_path.exists():
                load_dotenv(env_path)
                logger.info(f"Loaded .env from: {env_path}")
                break

        logger.info("💻 Running in LOCAL environment")
        return dict(os.environ)

    def _log_config_status(self):
        # Engine creation raises later; pages without a database still load
        if self._db_config.is_configured():
            logger.info(f"✅ Database: {self._db_config.host}/{self._db_config.database}")
        else:
            logger.warning("⚠️ Database not configured: set DB_HOST, DB_USER and DB_PASSWORD")
        logger.debug(f"Dashboard settings: cache ttl {self._settings.cache_ttl_seconds}s, "
                     f"page size {self._settings.page_size}")

    # ==================== PUBLIC GETTERS ====================

    def get_db_config(self) -> Dict[str, Any]:
        return self._db_config.to_dict()

    def is_db_configured(self) -> bool:
        return self._db_config.is_configured()

    @property
    def settings(self) -> DashboardSettings:
        return self._settings

    def get_app_setting(self, key: str, default: Any = None) -> Any:
        return self._settings.as_settings().get(key.upper(), default)

    def is_feature_enabled(self, feature: str) -> bool:
        """ENABLE_<FEATURE> flag; unknown features count as enabled"""
        return self.get_app_setting(f"ENABLE_{feature.upper()}", True)

    @property
    def db_config(self) -> Dict[str, Any]:
        return self.get_db_config()

    @property
    def app_config(self) -> Dict[str, Any]:
        return self._settings.as_settings()


# ==================== SINGLETON INSTANCE ====================

config = Config()

IS_RUNNING_ON_CLOUD = config.is_cloud
DB_CONFIG = config.db_config
APP_CONFIG = config.app_config

__all__ = [
    'config',
    'Config',
    'DatabaseConfig',
    'DashboardSettings',
    'IS_RUNNING_ON_CLOUD',
    'DB_CONFIG',
    'APP_CONFIG',
]
