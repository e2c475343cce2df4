"""
会话持久化服务 - 门面模式 (Facade)
通过组合多个子服务来实现分析结果和原始数据的持久化
"""

import logging
from typing import Any, Dict, Optional, Tuple

from ..models.analysis import AnalysisResult
from .base import DatabaseManager
from .session_services.analysis_mgmt import AnalysisStoreService, RecordAnalyzer
from .session_services.artifact_mgmt import ArtifactService

logger = logging.getLogger(__name__)


class SessionService:
    """
    会话持久化门面类
    将请求转发到具体的子服务处理
    """

    def __init__(self, db: DatabaseManager):
        self.analysis = AnalysisStoreService(db)
        self.artifacts = ArtifactService(db)
        logger.info("SessionService (Facade) 初始化完成")

    # --- 分析结果 (AnalysisStoreService) ---

    async def save_analysis(self, session_id: str, result: AnalysisResult) -> None:
        await self.analysis.save_analysis(session_id, result)

    async def get_analysis(self, session_id: str) -> Optional[AnalysisResult]:
        return await self.analysis.get_analysis(session_id)

    async def reanalyze(
        self,
        session_id: str,
        analyze: RecordAnalyzer,
        artifacts: Optional[Dict[str, Any]] = None,
        keep_existing: bool = False
    ) -> Tuple[Dict[str, Any], AnalysisResult]:
        return await self.analysis.reanalyze(session_id, analyze, artifacts=artifacts, keep_existing=keep_existing)

    # --- 原始数据 (ArtifactService) ---

    async def save_artifacts(self, session_id: str, **columns: Any) -> None:
        await self.artifacts.save_artifacts(session_id, **columns)

    async def get_session_record(self, session_id: str) -> Optional[Dict[str, Any]]:
        return await self.artifacts.get_session_record(session_id)

    async def find_session_id_by_call_id(self, call_id: str) -> Optional[str]:
        return await self.artifacts.find_session_id_by_call_id(call_id)
