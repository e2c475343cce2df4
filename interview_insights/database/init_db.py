"""
PostgreSQL 数据库初始化模块
负责创建面试会话表和索引
"""

import asyncio
import logging

from ..config import Settings, configure_logging
from .base import DatabaseManager

logger = logging.getLogger(__name__)


async def init_database(db: DatabaseManager):
    """
    初始化 PostgreSQL 数据库，创建所有必要的表和索引
    所有 DDL 都是 IF NOT EXISTS，重复执行无副作用
    """
    async with db.get_connection() as conn:
        try:
            # ================================================================
            # 面试会话表
            # ================================================================
            await conn.execute('''
                CREATE TABLE IF NOT EXISTS interview_sessions (
                    session_id TEXT PRIMARY KEY,
                    candidate_name TEXT NOT NULL,
                    candidate_email TEXT,
                    position TEXT NOT NULL,
                    status TEXT NOT NULL DEFAULT 'scheduled',
                    vapi_call_id TEXT UNIQUE,
                    vapi_assistant_id TEXT,
                    duration INTEGER,
                    final_transcript TEXT,
                    recording_url TEXT,
                    vapi_summary JSONB,
                    vapi_success_evaluation JSONB,
                    vapi_structured_data JSONB,
                    analysis_score INTEGER,
                    analysis_feedback TEXT,
                    category_scores JSONB,
                    strengths JSONB,
                    areas_for_improvement JSONB,
                    hiring_recommendation TEXT,
                    key_insights JSONB,
                    question_scores JSONB,
                    interview_metrics JSONB,
                    started_at TIMESTAMP,
                    completed_at TIMESTAMP,
                    created_at TIMESTAMP NOT NULL DEFAULT NOW(),
                    updated_at TIMESTAMP NOT NULL DEFAULT NOW()
                )
            ''')
            logger.info("✓ interview_sessions 表已创建/验证")

            # ================================================================
            # 索引创建
            # ================================================================
            await conn.execute('''
                CREATE INDEX IF NOT EXISTS idx_interview_sessions_status
                ON interview_sessions(status)
            ''')

            await conn.execute('''
                CREATE INDEX IF NOT EXISTS idx_interview_sessions_updated
                ON interview_sessions(updated_at DESC)
            ''')

            logger.info(f"✓ 数据库初始化完成: {db.config['database']}")

        except Exception as e:
            logger.error(f"✗ 数据库初始化失败: {e}")
            raise


async def _main():
    settings = Settings.from_env()
    configure_logging(settings.log_level)
    db = DatabaseManager.from_settings(settings)
    try:
        await init_database(db)
    finally:
        await db.disconnect()


if __name__ == "__main__":
    # 直接运行此文件时初始化数据库
    asyncio.run(_main())
