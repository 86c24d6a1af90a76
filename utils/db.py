# utils/db.py
"""
Database Connection Management

Features:
- Singleton engine with thread-safe double-checked locking
- Connection pooling with auto-reconnect
- Health check utilities
- Query execution helpers
"""

import pandas as pd
from sqlalchemy import create_engine, text
from sqlalchemy.pool import QueuePool
from sqlalchemy.exc import OperationalError
from urllib.parse import quote_plus
import logging
import threading
from typing import Tuple, Optional, Dict, Any

from .config import config

logger = logging.getLogger(__name__)

# ==================== SINGLETON ENGINE ====================

_engine = None
_engine_lock = threading.Lock()


def get_db_engine():
    """
    Get SQLAlchemy database engine (singleton pattern)

    Thread-safe implementation using double-checked locking.

    Returns:
        SQLAlchemy Engine instance

    Raises:
        ValueError: database settings are missing
    """
    global _engine

    if _engine is None:
        with _engine_lock:
            if _engine is None:
                _engine = _create_engine()

    return _engine


def build_db_url(db_config: Dict[str, Any]) -> str:
    """SQLAlchemy URL from a config dict (password URL-quoted)."""
    password = quote_plus(str(db_config["password"]))
    return (
        f"{db_config['dialect']}://{db_config['user']}:{password}"
        f"@{db_config['host']}:{db_config['port']}/{db_config['database']}"
    )


def _create_engine():
    """Create new database engine with configured settings"""
    if not config.is_db_configured():
        logger.error("Missing required database configuration")
        raise ValueError("Missing required database configuration. Please check .env file.")

    db_config = config.get_db_config()
    settings = config.settings

    url = build_db_url(db_config)
    logger.info(
        f"🔌 Creating database engine: {db_config['dialect']}://{db_config['user']}:***"
        f"@{db_config['host']}:{db_config['port']}/{db_config['database']}"
    )

    pool_size = settings.db_pool_size
    pool_recycle = settings.db_pool_recycle

    engine = create_engine(
        url,
        poolclass=QueuePool,
        pool_size=pool_size,
        max_overflow=10,
        pool_timeout=30,
        pool_recycle=pool_recycle,
        pool_pre_ping=True,
        echo=False
    )

    logger.info(f"✅ Database engine created (pool_size={pool_size}, recycle={pool_recycle}s)")

    return engine


# ==================== CONNECTION MANAGEMENT ====================

def check_db_connection() -> Tuple[bool, Optional[str]]:
    """
    Check if database connection is healthy

    Returns:
        Tuple of (is_connected: bool, error_message: str or None)
    """
    try:
        engine = get_db_engine()
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True, None
    except OperationalError as e:
        logger.error(f"❌ Database connection failed: {e}")
        return False, "Cannot connect to database. Please check your network connection."
    except Exception as e:
        logger.error(f"❌ Database error: {e}")
        return False, f"Database error: {str(e)}"


def reset_db_engine():
    """Dispose the engine; the next query reconnects."""
    global _engine

    with _engine_lock:
        if _engine is not None:
            try:
                _engine.dispose()
                logger.info("🔄 Database engine disposed")
            except Exception as e:
                logger.error(f"Error disposing engine: {e}")
            _engine = None


def get_connection_pool_status() -> Dict[str, Any]:
    """Connection pool statistics for the admin status panel"""
    if _engine is None:
        return {"status": "not_initialized"}

    try:
        pool = _engine.pool
        return {
            "status": "active",
            "pool_size": pool.size(),
            "checked_in": pool.checkedin(),
            "checked_out": pool.checkedout(),
            "overflow": pool.overflow(),
        }
    except Exception as e:
        return {"status": "error", "error": str(e)}


# ==================== QUERY HELPERS ====================

def execute_query_df(query: str, params: Dict = None) -> pd.DataFrame:
    """Execute SELECT query and return results as DataFrame"""
    engine = get_db_engine()
    return pd.read_sql(text(query), engine, params=params or {})


__all__ = [
    'get_db_engine',
    'build_db_url',
    'check_db_connection',
    'reset_db_engine',
    'get_connection_pool_status',
    'execute_query_df',
]
