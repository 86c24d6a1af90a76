# utils/__init__.py
"""
Shared Utilities Package for Streamlit Apps

This package contains common utilities shared across all pages:
- config: Configuration management (local + Streamlit Cloud)
- db: Database connection management with pooling

Usage:
    # Import specific modules
    from utils.db import get_db_engine, execute_query_df
    from utils.config import config

    # Or import commonly used items directly
    from utils import get_db_engine, config
"""

# Configuration
from .config import (
    config,
    Config,
    DashboardSettings,
    IS_RUNNING_ON_CLOUD,
    DB_CONFIG,
    APP_CONFIG,
)

# Database
from .db import (
    get_db_engine,
    check_db_connection,
    reset_db_engine,
    execute_query_df,
    get_connection_pool_status,
)

__all__ = [
    # Config
    'config',
    'Config',
    'DashboardSettings',
    'IS_RUNNING_ON_CLOUD',
    'DB_CONFIG',
    'APP_CONFIG',

    # Database
    'get_db_engine',
    'check_db_connection',
    'reset_db_engine',
    'execute_query_df',
    'get_connection_pool_status',
]

__version__ = '2.0.0'
