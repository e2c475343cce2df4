"""
面试分析服务
负责两条触发路径：
- Webhook 推送：保存 Vapi 原始数据后立即重新分析并落库
- 按需拉取：读取结果时如果尚未分析，则用已保存的原始数据现场计算并落库
两条路径都在同一个持有行锁的事务里完成 "写原始数据 -> 读全部片段 -> 分析 -> 写结果"
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional

from ..core.analysis import AnalysisNormalizer, get_normalizer
from ..core.report import generate_summary_report
from ..database.column_mapping import from_columns
from ..database.session_service import SessionService
from ..exceptions import (
    AnalysisPersistenceError,
    InterviewInsightsError,
    SessionNotFoundError,
    TranscriptAnalysisError,
)
from ..models.analysis import AnalysisResult
from ..models.fragments import AnalysisFragments, StructuredDataFragment

logger = logging.getLogger(__name__)


@dataclass
class AnalysisOutcome:
    """一次分析的结果；保存失败时 result 仍然可用"""
    result: AnalysisResult
    saved: bool
    error: Optional[Exception] = None


class AnalysisService:
    """面试分析服务"""

    def __init__(
        self,
        session_service: SessionService,
        normalizer: Optional[AnalysisNormalizer] = None,
        transcript_analyzer=None
    ):
        """
        Args:
            session_service: 持久化门面
            normalizer: 归一化器，默认使用单例
            transcript_analyzer: 可选的 TranscriptAnalysisService，没有 Vapi 分析数据时兜底
        """
        self.sessions = session_service
        self.normalizer = normalizer or get_normalizer()
        self.transcript_analyzer = transcript_analyzer

    def analyze(self, fragments: AnalysisFragments) -> AnalysisResult:
        return self.normalizer.analyze(fragments)

    async def analyze_and_save(self, session_id: str, fragments: AnalysisFragments) -> AnalysisOutcome:
        """
        计算分析结果并保存到会话

        保存失败不会使结果失效：错误放在 outcome.error 中交给调用方记录或重试。
        """
        result = self.analyze(fragments)

        try:
            await self.sessions.save_analysis(session_id, result)
        except (AnalysisPersistenceError, SessionNotFoundError) as e:
            logger.error(f"[AnalysisService] 会话 {session_id} 分析结果保存失败: {e}")
            return AnalysisOutcome(result=result, saved=False, error=e)

        return AnalysisOutcome(result=result, saved=True)

    async def ingest_artifacts(self, session_id: str, **artifacts: Any) -> AnalysisOutcome:
        """
        保存 Vapi 原始数据并基于该会话已收到的全部片段重新分析

        每次都在行锁内重新读取所有片段，因此分多次到达的 artifact、重复投递的事件，
        以及不同进程并发处理的事件，最终都收敛到同一份结果。

        Raises:
            SessionNotFoundError: 会话不存在
            AnalysisPersistenceError: 写入失败，原始数据和分析结果都未保存
        """
        _, result = await self.sessions.reanalyze(
            session_id,
            lambda record: self.analyze(fragments_from_record(record)),
            artifacts=artifacts
        )

        logger.info(
            f"[AnalysisService] 会话 {session_id} 分析完成: "
            f"{result.overall_score}/100, {result.hiring_recommendation}"
        )
        return AnalysisOutcome(result=result, saved=True)

    async def get_results(
        self,
        session_id: Optional[str] = None,
        use_llm_fallback: bool = False,
        api_config: Optional[Dict[str, Any]] = None,
        call_id: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        获取面试结果（按需拉取）

        已有分析结果时直接读取；否则用保存的原始数据计算并落库。

        Args:
            session_id: 会话ID
            use_llm_fallback: 没有任何 Vapi 分析片段时，是否调用 LLM 分析转录文本
            api_config: LLM 调用的 API 配置
            call_id: Vapi 通话ID，未提供 session_id 时用它查找会话

        Raises:
            ValueError: session_id 和 call_id 都未提供
            SessionNotFoundError: 会话不存在
        """
        session_id = await self._resolve_session_id(session_id, call_id)

        record = await self.sessions.get_session_record(session_id)
        if record is None:
            raise SessionNotFoundError(session_id)

        if record.get("analysis_score") is not None:
            return build_results_payload(record, from_columns(record))

        outcome, record = await self._analyze_stored(
            session_id, record, use_llm_fallback, api_config, keep_existing=True
        )
        return build_results_payload(record, outcome.result, analysis_saved=outcome.saved)

    async def batch_analysis(
        self,
        session_ids: Iterable[str],
        use_llm_fallback: bool = False,
        api_config: Optional[Dict[str, Any]] = None
    ) -> Dict[str, List[str]]:
        """
        批量重新分析（处理积压或规则调整后重算）

        逐个会话用已保存的原始数据重新计算并覆盖已有结果，单个会话失败不影响其余会话。

        Returns:
            {"successful": [...], "failed": [...]}
        """
        results = {"successful": [], "failed": []}

        for session_id in session_ids:
            try:
                record = await self.sessions.get_session_record(session_id)
                if record is None:
                    raise SessionNotFoundError(session_id)

                outcome, _ = await self._analyze_stored(session_id, record, use_llm_fallback, api_config)
            except InterviewInsightsError as e:
                logger.error(f"[AnalysisService] 批量分析失败: {session_id}, 错误: {e}")
                results["failed"].append(session_id)
                continue

            results["successful" if outcome.saved else "failed"].append(session_id)

        logger.info(
            f"[AnalysisService] 批量分析完成: 成功 {len(results['successful'])}, "
            f"失败 {len(results['failed'])}"
        )
        return results

    async def _resolve_session_id(self, session_id: Optional[str], call_id: Optional[str]) -> str:
        if session_id:
            return session_id
        if not call_id:
            raise ValueError("需要提供 session_id 或 call_id")

        found = await self.sessions.find_session_id_by_call_id(call_id)
        if found is None:
            raise SessionNotFoundError(call_id)
        return found

    async def _analyze_stored(
        self,
        session_id: str,
        record: Dict[str, Any],
        use_llm_fallback: bool,
        api_config: Optional[Dict[str, Any]],
        keep_existing: bool = False
    ):
        """
        用已保存的原始数据分析并落库

        LLM 调用放在事务之外，拿到行锁后再基于最新记录决定是否使用它的结果。
        写入失败时仍返回基于 record 计算的结果，outcome.saved 为 False。

        Returns:
            (AnalysisOutcome, 会话记录)
        """
        llm_structured = None
        if use_llm_fallback:
            llm_structured = await self._transcript_structured_data(fragments_from_record(record), api_config)

        def analyze(locked_record: Dict[str, Any]) -> AnalysisResult:
            fragments = fragments_from_record(locked_record)
            if llm_structured is not None and not has_vendor_analysis(fragments):
                fragments = fragments.model_copy(update={"structured_data": llm_structured})
            return self.analyze(fragments)

        try:
            record, result = await self.sessions.reanalyze(session_id, analyze, keep_existing=keep_existing)
        except AnalysisPersistenceError as e:
            logger.error(f"[AnalysisService] 会话 {session_id} 分析结果保存失败: {e}")
            return AnalysisOutcome(result=analyze(record), saved=False, error=e), record

        return AnalysisOutcome(result=result, saved=True), record

    async def _transcript_structured_data(
        self,
        fragments: AnalysisFragments,
        api_config: Optional[Dict[str, Any]]
    ) -> Optional[StructuredDataFragment]:
        """没有任何 Vapi 分析片段时，用 LLM 分析转录文本得到一份 structured data"""
        if has_vendor_analysis(fragments) or not fragments.transcript or self.transcript_analyzer is None:
            return None

        try:
            return await self.transcript_analyzer.analyze_transcript(
                transcript=fragments.transcript,
                candidate_name=fragments.candidate_name,
                position=fragments.position,
                duration=fragments.duration,
                api_config=api_config
            )
        except (TranscriptAnalysisError, ValueError) as e:
            logger.warning(f"[AnalysisService] LLM 转录分析失败，继续使用启发式分析: {e}")
            return None


def has_vendor_analysis(fragments: AnalysisFragments) -> bool:
    return any(
        fragment is not None
        for fragment in (fragments.structured_data, fragments.summary, fragments.success_evaluation)
    )


def fragments_from_record(record: Dict[str, Any]) -> AnalysisFragments:
    """把会话记录中保存的原始数据转成分析输入"""
    return AnalysisFragments.from_raw(
        candidate_name=record.get("candidate_name") or "",
        position=record.get("position") or "",
        structured_data=record.get("vapi_structured_data"),
        summary=record.get("vapi_summary"),
        success_evaluation=record.get("vapi_success_evaluation"),
        transcript=record.get("final_transcript"),
        duration=record.get("duration")
    )


def build_results_payload(record: Dict[str, Any], result: AnalysisResult, analysis_saved: bool = True) -> Dict[str, Any]:
    """把会话记录和分析结果整理成接口返回格式"""
    candidate_name = record.get("candidate_name") or ""
    position = record.get("position") or ""
    completed_at = record.get("completed_at")
    analysis = result.to_api()

    return {
        "id": record.get("session_id"),
        "candidateName": candidate_name,
        "position": position,
        "duration": record.get("duration") or 0,
        "status": record.get("status"),
        "overallScore": analysis["overallScore"],
        "analysisFeedback": analysis["detailedFeedback"],
        "strengths": analysis["strengths"],
        "areasForImprovement": analysis["areasForImprovement"],
        "finalTranscript": record.get("final_transcript") or "",
        "recordingUrl": record.get("recording_url") or "",
        "completedAt": completed_at.isoformat() if hasattr(completed_at, "isoformat") else (completed_at or ""),
        "analysisSaved": analysis_saved,
        "enhancedAnalysis": {
            "categoryScores": analysis["categoryScores"],
            "hiringRecommendation": analysis["hiringRecommendation"],
            "keyInsights": analysis["keyInsights"],
            "questionAnalysis": analysis["questionAnalysis"],
            "interviewFlow": analysis["interviewFlow"],
            "summaryReport": generate_summary_report(result, candidate_name, position),
        },
    }
