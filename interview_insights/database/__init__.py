"""
数据库模块 - PostgreSQL
"""

from .base import DatabaseManager
from .column_mapping import COLUMN_MAP, from_columns, to_columns
from .init_db import init_database
from .session_service import SessionService

__all__ = [
    'DatabaseManager',
    'COLUMN_MAP',
    'from_columns',
    'to_columns',
    'init_database',
    'SessionService',
]
