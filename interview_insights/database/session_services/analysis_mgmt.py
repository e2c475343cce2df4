import logging
from typing import Any, Callable, Dict, Optional, Tuple

from ...exceptions import AnalysisPersistenceError, InterviewInsightsError, SessionNotFoundError
from ...models.analysis import AnalysisResult
from ..column_mapping import COLUMN_MAP, from_columns, to_columns
from .base import BaseService, SESSION_TABLE

logger = logging.getLogger(__name__)

RecordAnalyzer = Callable[[Dict[str, Any]], AnalysisResult]


class AnalysisStoreService(BaseService):
    """分析结果持久化服务：只对已存在的会话做局部更新，从不插入"""

    async def save_analysis(self, session_id: str, result: AnalysisResult) -> None:
        """
        把分析结果写入会话记录

        只更新分析结果对应的列和 updated_at，其余列保持不变；同样的结果重复写入，
        除 updated_at 外记录不变。

        Raises:
            SessionNotFoundError: 会话不存在
            AnalysisPersistenceError: 数据库写入失败
        """
        columns = to_columns(result)

        async with self._session_lock(session_id):
            try:
                async with self.db.get_connection() as conn:
                    async with conn.transaction():
                        if not await self._lock_session_row(conn, session_id):
                            raise SessionNotFoundError(session_id)

                        sql, params = self._build_update(session_id, columns)
                        await conn.execute(sql, *params)
            except InterviewInsightsError:
                raise
            except Exception as e:
                logger.error(f"保存分析结果失败: {session_id}, 错误: {e}", exc_info=True)
                raise AnalysisPersistenceError(f"保存分析结果失败: {session_id}") from e

        logger.info(f"已保存分析结果: {session_id} (score={result.overall_score}, {result.hiring_recommendation})")

    async def reanalyze(
        self,
        session_id: str,
        analyze: RecordAnalyzer,
        artifacts: Optional[Dict[str, Any]] = None,
        keep_existing: bool = False
    ) -> Tuple[Dict[str, Any], AnalysisResult]:
        """
        在一个事务内完成：锁定会话行 -> 写入原始数据 -> 读取全部片段 -> 分析 -> 写入结果

        行锁覆盖整个过程。多个进程同时处理同一会话时，后拿到锁的一方一定能读到
        前者提交的全部片段，最后写入的分析结果总是基于所有已收到的片段。

        Args:
            session_id: 会话ID
            analyze: 根据锁定后读到的会话记录计算分析结果
            artifacts: 分析前先写入的原始数据列，值为 None 的列跳过
            keep_existing: 会话已有分析结果时直接返回，不重新计算

        Returns:
            (会话记录, 分析结果)

        Raises:
            ValueError: 包含不允许写入的原始数据列
            SessionNotFoundError: 会话不存在
            AnalysisPersistenceError: 数据库读写失败，事务整体回滚
        """
        updates = self._artifact_updates(artifacts or {})

        async with self._session_lock(session_id):
            try:
                async with self.db.get_connection() as conn:
                    async with conn.transaction():
                        if not await self._lock_session_row(conn, session_id):
                            raise SessionNotFoundError(session_id)

                        if updates:
                            sql, params = self._build_update(session_id, updates)
                            await conn.execute(sql, *params)

                        record = await self._fetch_record(conn, session_id)
                        if keep_existing and record.get("analysis_score") is not None:
                            return record, from_columns(record)

                        result = analyze(record)
                        sql, params = self._build_update(session_id, to_columns(result))
                        await conn.execute(sql, *params)
            except InterviewInsightsError:
                raise
            except Exception as e:
                logger.error(f"重新分析失败: {session_id}, 错误: {e}", exc_info=True)
                raise AnalysisPersistenceError(f"重新分析失败: {session_id}") from e

        logger.info(
            f"已重新分析: {session_id} (原始数据 {sorted(updates)}, "
            f"score={result.overall_score}, {result.hiring_recommendation})"
        )
        return record, result

    async def get_analysis(self, session_id: str) -> Optional[AnalysisResult]:
        """读取已保存的分析结果，尚未分析时返回 None"""
        select_clause = ", ".join(COLUMN_MAP.values())
        async with self.db.get_connection() as conn:
            row = await conn.fetchrow(
                f'SELECT {select_clause} FROM {SESSION_TABLE} WHERE session_id = $1',
                session_id
            )
        data = self._decode_row(row)
        if not data or data.get("analysis_score") is None:
            return None
        return from_columns(data)
