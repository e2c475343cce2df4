import logging
from typing import Any, Dict, Optional

from ...exceptions import AnalysisPersistenceError, InterviewInsightsError, SessionNotFoundError
from .base import BaseService, SESSION_TABLE

logger = logging.getLogger(__name__)


class ArtifactService(BaseService):
    """会话原始数据服务：Vapi 回传的转录、录音和分析片段"""

    async def save_artifacts(self, session_id: str, **columns: Any) -> None:
        """
        局部更新会话的原始数据列，值为 None 的列跳过

        Raises:
            ValueError: 包含不允许写入的列
            SessionNotFoundError: 会话不存在
            AnalysisPersistenceError: 数据库写入失败
        """
        updates = self._artifact_updates(columns)
        if not updates:
            return

        async with self._session_lock(session_id):
            try:
                async with self.db.get_connection() as conn:
                    async with conn.transaction():
                        if not await self._lock_session_row(conn, session_id):
                            raise SessionNotFoundError(session_id)

                        sql, params = self._build_update(session_id, updates)
                        await conn.execute(sql, *params)
            except InterviewInsightsError:
                raise
            except Exception as e:
                logger.error(f"保存原始数据失败: {session_id}, 错误: {e}", exc_info=True)
                raise AnalysisPersistenceError(f"保存原始数据失败: {session_id}") from e

        logger.info(f"已保存原始数据: {session_id} -> {sorted(updates)}")

    async def get_session_record(self, session_id: str) -> Optional[Dict[str, Any]]:
        """获取会话记录（分析所需的列）"""
        async with self.db.get_connection() as conn:
            return await self._fetch_record(conn, session_id)

    async def find_session_id_by_call_id(self, call_id: str) -> Optional[str]:
        """根据 Vapi 通话ID查找会话"""
        async with self.db.get_connection() as conn:
            row = await conn.fetchrow(
                f'SELECT session_id FROM {SESSION_TABLE} WHERE vapi_call_id = $1',
                call_id
            )
        return row['session_id'] if row else None
