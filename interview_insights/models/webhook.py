"""
Vapi Webhook 事件数据模型
除事件类型外的字段都是宽松解析的：单个字段格式错误只会被当作缺失，
不会让整次投递被拒绝，转录和分析片段照常保存
"""

import json
import logging
from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, field_validator

from .fragments import as_number, as_text, load_duration

logger = logging.getLogger(__name__)

EVALUATION_ROOT_FIELDS = ("successful", "score", "feedback", "details")
DATETIME_ADAPTER = TypeAdapter(datetime)


def as_datetime(value: Any) -> Optional[datetime]:
    """按 pydantic 的规则解析时间，无法识别时返回 None"""
    if value is None or isinstance(value, bool):
        return None
    try:
        return DATETIME_ADAPTER.validate_python(value)
    except ValidationError:
        logger.warning(f"[Webhook] 无法解析的时间，按缺失处理: {value!r}")
        return None


def as_object(value: Any) -> Optional[Dict[str, Any]]:
    """对象字段：接受字典或 JSON 字符串，其他形状视为缺失"""
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except json.JSONDecodeError:
            logger.warning("[Webhook] 对象字段不是合法 JSON，按缺失处理")
            return None
    return value if isinstance(value, dict) else None


class WebhookModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")


class VapiCall(WebhookModel):
    """通话信息"""
    id: Optional[str] = Field(default=None, description="通话ID")
    assistant_id: Optional[str] = Field(default=None, alias="assistantId", description="助手ID")
    status: Optional[str] = Field(default=None, description="通话状态")
    started_at: Optional[datetime] = Field(default=None, alias="startedAt", description="开始时间")
    ended_at: Optional[datetime] = Field(default=None, alias="endedAt", description="结束时间")
    cost: Optional[float] = Field(default=None, description="通话费用")

    @field_validator("id", "assistant_id", "status", mode="before")
    @classmethod
    def _text(cls, v):
        return as_text(v) or None

    @field_validator("started_at", "ended_at", mode="before")
    @classmethod
    def _timestamp(cls, v):
        return as_datetime(v)

    @field_validator("cost", mode="before")
    @classmethod
    def _cost(cls, v):
        return as_number(v)


class VapiMessage(WebhookModel):
    """end-of-call-report 等事件的消息体"""
    type: Optional[str] = Field(default=None, description="消息类型")
    transcript: Optional[str] = Field(default=None, description="完整转录")
    recording_url: Optional[str] = Field(default=None, alias="recordingUrl", description="录音地址")
    analysis: Optional[Dict[str, Any]] = Field(default=None, description="分析数据")

    @field_validator("type", "transcript", "recording_url", mode="before")
    @classmethod
    def _text(cls, v):
        return as_text(v) or None

    @field_validator("analysis", mode="before")
    @classmethod
    def _analysis(cls, v):
        return as_object(v)


class VapiArtifact(WebhookModel):
    """artifact 事件"""
    type: Optional[str] = Field(default=None, description="artifact 类型")
    transcript: Optional[str] = Field(default=None, description="完整转录")
    recording_url: Optional[str] = Field(default=None, alias="recordingUrl", description="录音地址")
    summary: Any = Field(default=None, description="Summary 数据")
    evaluation: Any = Field(default=None, description="Success Evaluation 数据")
    data: Any = Field(default=None, description="Structured Data 数据")

    @field_validator("type", "transcript", "recording_url", mode="before")
    @classmethod
    def _text(cls, v):
        return as_text(v) or None


class VapiWebhookEvent(WebhookModel):
    """Vapi Webhook 事件"""
    type: str = Field(..., description="事件类型")
    call: Optional[VapiCall] = Field(default=None, description="通话信息")
    message: Optional[VapiMessage] = Field(default=None, description="消息体")
    artifact: Optional[VapiArtifact] = Field(default=None, description="artifact")
    timestamp: Optional[str] = Field(default=None, description="事件时间戳")

    @field_validator("call", "message", "artifact", mode="before")
    @classmethod
    def _object(cls, v):
        if isinstance(v, BaseModel):
            return v
        return as_object(v)

    @field_validator("timestamp", mode="before")
    @classmethod
    def _timestamp(cls, v):
        return as_text(v) or None

    @property
    def call_id(self) -> Optional[str]:
        return self.call.id if self.call else None

    @property
    def transcript(self) -> Optional[str]:
        if self.message and self.message.transcript:
            return self.message.transcript
        if self.artifact and self.artifact.transcript:
            return self.artifact.transcript
        return None

    @property
    def recording_url(self) -> Optional[str]:
        if self.message and self.message.recording_url:
            return self.message.recording_url
        if self.artifact and self.artifact.recording_url:
            return self.artifact.recording_url
        return None

    @property
    def duration_minutes(self) -> Optional[int]:
        """由通话开始/结束时间推算的时长（分钟，四舍五入）"""
        if not self.call or not self.call.started_at or not self.call.ended_at:
            return None
        try:
            seconds = (self.call.ended_at - self.call.started_at).total_seconds()
        except TypeError:
            # 一个带时区、一个不带时区
            logger.warning(f"[Webhook] 通话时间格式不一致，无法计算时长: {self.call_id}")
            return None
        return load_duration(seconds / 60)


def extract_analysis(event: VapiWebhookEvent) -> Optional[Dict[str, Any]]:
    """
    从 Webhook 事件中提取分析数据

    end-of-call-report 把分析放在 message.analysis；artifact 事件则分别放在
    artifact.summary / evaluation / data。

    Returns:
        {"summary", "successEvaluation", "structuredData"}，没有分析数据时返回 None
    """
    if event.message and event.message.analysis:
        return event.message.analysis

    if event.artifact:
        evaluation = event.artifact.evaluation
        if evaluation is None and event.artifact.type == "success-evaluation":
            # 有时评估字段直接放在 artifact 根上
            extra = event.artifact.model_extra or {}
            evaluation = {key: extra[key] for key in EVALUATION_ROOT_FIELDS if key in extra} or None

        analysis = {
            "summary": event.artifact.summary,
            "successEvaluation": evaluation,
            "structuredData": event.artifact.data,
        }
        if any(value is not None for value in analysis.values()):
            return analysis

    return None
