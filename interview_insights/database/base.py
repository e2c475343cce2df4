"""
PostgreSQL 数据库操作基类
"""

import asyncpg
import logging
from typing import Optional, Dict, Any
from contextlib import asynccontextmanager

from ..config import Settings, parse_postgres_config

logger = logging.getLogger(__name__)


class DatabaseManager:
    """PostgreSQL 数据库管理器"""

    def __init__(self, postgres_config: Dict[str, Any], min_size: int = 2, max_size: int = 10):
        """
        初始化数据库管理器

        Args:
            postgres_config: asyncpg 连接参数（host, port, user, password, database）
        """
        self.config = postgres_config
        self.min_size = min_size
        self.max_size = max_size
        self._pool: Optional[asyncpg.Pool] = None
        logger.info(f"数据库管理器初始化: {postgres_config['host']}:{postgres_config['port']}")

    @classmethod
    def from_settings(cls, settings: Settings) -> "DatabaseManager":
        return cls(parse_postgres_config(settings.database_url))

    async def connect(self):
        """建立 PostgreSQL 连接池"""
        if not self._pool:
            self._pool = await asyncpg.create_pool(
                **self.config,
                min_size=self.min_size,
                max_size=self.max_size
            )
            logger.info("PostgreSQL 连接池已建立")

    async def disconnect(self):
        """关闭连接池"""
        if self._pool:
            await self._pool.close()
            self._pool = None
            logger.info("数据库连接已关闭")

    @asynccontextmanager
    async def get_connection(self):
        """
        获取数据库连接（上下文管理器）

        Usage:
            async with db.get_connection() as conn:
                async with conn.transaction():
                    await conn.execute("UPDATE ...")
        """
        if not self._pool:
            await self.connect()
        async with self._pool.acquire() as conn:
            yield conn

