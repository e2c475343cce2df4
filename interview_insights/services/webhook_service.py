"""
Vapi Webhook 处理服务
"""

import hashlib
import hmac
import json
import logging
from datetime import datetime
from typing import Any, Dict, Mapping, Optional, Union

from pydantic import ValidationError

from ..config import Settings
from ..database.session_service import SessionService
from ..exceptions import WebhookPayloadError, WebhookSignatureError
from ..models.webhook import VapiWebhookEvent, as_datetime, extract_analysis
from .analysis_service import AnalysisService

logger = logging.getLogger(__name__)

# 携带转录和分析数据的事件
ANALYSIS_EVENT_TYPES = ("end-of-call-report", "artifact")
CALL_START_EVENT_TYPE = "call-start"
CALL_END_EVENT_TYPE = "call-end"
SIGNATURE_PREFIX = "sha256="


class WebhookService:
    """Vapi Webhook 处理服务"""

    def __init__(self, settings: Settings, session_service: SessionService, analysis_service: AnalysisService):
        self.settings = settings
        self.sessions = session_service
        self.analysis = analysis_service

    def verify_signature(self, payload: Union[bytes, str], signature: Optional[str]) -> bool:
        """
        校验 HMAC-SHA256 签名

        未配置密钥时跳过校验（仅用于开发环境）。
        """
        secret = self.settings.webhook_secret
        if not secret:
            logger.warning("[Webhook] 未配置 VAPI_WEBHOOK_SECRET，跳过签名校验")
            return True
        if not signature:
            return False

        body = payload.encode("utf-8") if isinstance(payload, str) else payload
        expected = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()

        received = signature.strip()
        if received.startswith(SIGNATURE_PREFIX):
            received = received[len(SIGNATURE_PREFIX):]

        # 以字节比较，非 ASCII 的签名只会校验失败
        return hmac.compare_digest(expected.encode("ascii"), received.lower().encode("utf-8", errors="replace"))

    def signature_from_headers(self, headers: Mapping[str, str]) -> Optional[str]:
        """从请求头中取签名，头名称大小写不敏感"""
        header = self.settings.signature_header.lower()
        for key, value in headers.items():
            if key.lower() == header:
                return value
        return None

    def parse_event(self, payload: Union[bytes, str]) -> VapiWebhookEvent:
        """
        解析 Webhook 请求体

        Raises:
            WebhookPayloadError: 不是合法 JSON 或缺少事件类型
        """
        try:
            data = json.loads(payload)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise WebhookPayloadError(f"请求体不是合法 JSON: {e}") from e

        if not isinstance(data, dict):
            raise WebhookPayloadError("请求体必须是 JSON 对象")

        try:
            return VapiWebhookEvent.model_validate(data)
        except ValidationError as e:
            raise WebhookPayloadError(f"事件格式错误: {e.error_count()} 个错误") from e

    async def handle(self, payload: Union[bytes, str], signature: Optional[str] = None) -> Dict[str, Any]:
        """
        处理一次 Webhook 投递

        Vapi 至少投递一次，重复投递时结果幂等。

        Raises:
            WebhookSignatureError: 签名校验失败
            WebhookPayloadError: 请求体无法解析
            AnalysisPersistenceError: 数据库写入失败，事务已回滚，Vapi 重试投递即可
        """
        if not self.verify_signature(payload, signature):
            logger.warning("[Webhook] 签名校验失败")
            raise WebhookSignatureError("Invalid webhook signature")

        event = self.parse_event(payload)
        logger.info(f"[Webhook] 收到事件: {event.type}, call_id={event.call_id}")

        session_id = None
        if event.type in ANALYSIS_EVENT_TYPES:
            session_id = await self._handle_analysis_event(event)
        elif event.type == CALL_START_EVENT_TYPE:
            session_id = await self._handle_call_start(event)
        elif event.type == CALL_END_EVENT_TYPE:
            session_id = await self._handle_call_end(event)
        else:
            logger.info(f"[Webhook] 未处理的事件类型: {event.type}")

        return {
            "success": True,
            "message": f"Processed {event.type} event",
            "sessionId": session_id,
        }

    async def _resolve_session(self, event: VapiWebhookEvent) -> Optional[str]:
        if not event.call_id:
            logger.warning(f"[Webhook] {event.type} 事件缺少 call.id，忽略")
            return None

        session_id = await self.sessions.find_session_id_by_call_id(event.call_id)
        if session_id is None:
            logger.warning(f"[Webhook] 未找到通话对应的会话: {event.call_id}")
        return session_id

    async def _handle_analysis_event(self, event: VapiWebhookEvent) -> Optional[str]:
        """保存转录、录音和分析片段，然后重新分析"""
        session_id = await self._resolve_session(event)
        if session_id is None:
            return None

        analysis = extract_analysis(event) or {}
        await self.analysis.ingest_artifacts(
            session_id,
            final_transcript=event.transcript,
            recording_url=event.recording_url,
            vapi_summary=analysis.get("summary"),
            vapi_success_evaluation=analysis.get("successEvaluation"),
            vapi_structured_data=analysis.get("structuredData"),
            duration=event.duration_minutes
        )
        return session_id

    async def _handle_call_start(self, event: VapiWebhookEvent) -> Optional[str]:
        """通话开始：会话进入 in_progress，记录开始时间和助手ID"""
        session_id = await self._resolve_session(event)
        if session_id is None:
            return None

        started_at = event.call.started_at or as_datetime(event.timestamp) or datetime.now()
        await self.sessions.save_artifacts(
            session_id,
            status="in_progress",
            started_at=_to_local_naive(started_at),
            vapi_assistant_id=event.call.assistant_id
        )
        logger.info(f"[Webhook] 会话 {session_id} 通话开始")
        return session_id

    async def _handle_call_end(self, event: VapiWebhookEvent) -> Optional[str]:
        """通话结束：记录时长和完成时间"""
        session_id = await self._resolve_session(event)
        if session_id is None:
            return None

        ended_at = event.call.ended_at if event.call else None
        await self.sessions.save_artifacts(
            session_id,
            status="completed",
            duration=event.duration_minutes,
            completed_at=_to_local_naive(ended_at) if ended_at else datetime.now()
        )
        logger.info(f"[Webhook] 会话 {session_id} 通话结束")
        return session_id


def _to_local_naive(value: datetime) -> datetime:
    """数据库使用不带时区的本地时间"""
    if value.tzinfo is None:
        return value
    return value.astimezone().replace(tzinfo=None)
