import asyncio
import logging
import weakref
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from ..base import DatabaseManager
from ..column_mapping import decode_column, encode_column

logger = logging.getLogger(__name__)

SESSION_TABLE = "interview_sessions"

# Webhook 可以写入的原始数据列
ARTIFACT_COLUMNS = frozenset({
    "final_transcript",
    "recording_url",
    "vapi_summary",
    "vapi_success_evaluation",
    "vapi_structured_data",
    "vapi_assistant_id",
    "duration",
    "status",
    "started_at",
    "completed_at",
})

# 分析和接口返回需要的列
SESSION_RECORD_COLUMNS = [
    "session_id", "candidate_name", "position", "status", "duration",
    "final_transcript", "recording_url", "started_at", "completed_at",
    "vapi_summary", "vapi_success_evaluation", "vapi_structured_data",
    "analysis_score", "analysis_feedback", "category_scores", "strengths",
    "areas_for_improvement", "hiring_recommendation", "key_insights",
    "question_scores", "interview_metrics",
]


class BaseService:
    """基础服务类，提供通用数据库操作"""

    # session_id -> 锁；无人持有时自动回收
    _session_locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()

    def __init__(self, db: DatabaseManager):
        self.db = db

    @asynccontextmanager
    async def _session_lock(self, session_id: str):
        """同一进程内按 session_id 串行化写操作；跨进程靠行锁"""
        lock = self._session_locks.get(session_id)
        if lock is None:
            lock = asyncio.Lock()
            self._session_locks[session_id] = lock
        async with lock:
            yield

    async def _lock_session_row(self, conn, session_id: str) -> bool:
        """在事务内锁定会话行，返回会话是否存在"""
        row = await conn.fetchrow(
            f'SELECT session_id FROM {SESSION_TABLE} WHERE session_id = $1 FOR UPDATE',
            session_id
        )
        return row is not None

    async def _fetch_record(self, conn, session_id: str) -> Optional[Dict[str, Any]]:
        select_clause = ", ".join(SESSION_RECORD_COLUMNS)
        row = await conn.fetchrow(
            f'SELECT {select_clause} FROM {SESSION_TABLE} WHERE session_id = $1',
            session_id
        )
        return self._decode_row(row)

    def _artifact_updates(self, columns: Dict[str, Any]) -> Dict[str, Any]:
        """
        校验原始数据列并丢弃值为 None 的列

        Raises:
            ValueError: 包含不允许写入的列
        """
        unknown = set(columns) - ARTIFACT_COLUMNS
        if unknown:
            raise ValueError(f"不允许写入的列: {sorted(unknown)}")
        return {column: value for column, value in columns.items() if value is not None}

    def _build_update(self, session_id: str, columns: Dict[str, Any]) -> Tuple[str, List[Any]]:
        """构建局部更新 SQL，只写入给定列和 updated_at"""
        updates = []
        params = []
        param_idx = 1

        for column, value in columns.items():
            updates.append(f'{column} = ${param_idx}')
            params.append(encode_column(column, value))
            param_idx += 1

        updates.append(f'updated_at = ${param_idx}')
        params.append(datetime.now())
        param_idx += 1

        params.append(session_id)
        sql = f"UPDATE {SESSION_TABLE} SET {', '.join(updates)} WHERE session_id = ${param_idx}"
        return sql, params

    def _decode_row(self, row) -> Optional[Dict[str, Any]]:
        if row is None:
            return None
        return {key: decode_column(key, value) for key, value in dict(row).items()}
