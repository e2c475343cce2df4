"""
分析片段数据模型
Vapi 回传的分析数据没有固定 schema，这里在入口处统一做一次形状校验和默认值填充，
之后的归一化逻辑只面对有类型的字段
"""

import json
import math
import logging
from typing import Any, Dict, List, Optional, Type, TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

logger = logging.getLogger(__name__)

FragmentT = TypeVar("FragmentT", bound=BaseModel)


# ============================================================================
# 宽松类型转换
# ============================================================================

def as_number(value: Any) -> Optional[float]:
    """把厂商给出的分数转成 float，无法识别时返回 None"""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float, bool)):
        return str(value)
    return ""


def as_text_list(value: Any) -> List[str]:
    """单个字符串视为单元素列表，丢弃 None 和无法转成文本的元素"""
    if value is None:
        return []
    if isinstance(value, str):
        return [value] if value.strip() else []
    if not isinstance(value, (list, tuple)):
        return []
    items = []
    for item in value:
        if isinstance(item, str):
            items.append(item)
        elif isinstance(item, (int, float)) and not isinstance(item, bool):
            items.append(str(item))
    return items


def as_dict_list(value: Any) -> List[Dict[str, Any]]:
    if not isinstance(value, (list, tuple)):
        return []
    return [item for item in value if isinstance(item, (dict, BaseModel))]


class FragmentModel(BaseModel):
    """片段基类：同时接受厂商的 camelCase 字段和 snake_case 字段"""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


# ============================================================================
# Summary 片段（问答分析）
# ============================================================================

class SummaryQuestion(FragmentModel):
    """Summary 中的单条问答"""
    question: str = Field(default="", description="问题")
    answer: str = Field(default="", description="回答")
    score: float = Field(default=0, description="该题评分")
    key_points: List[str] = Field(default_factory=list, alias="keyPoints", description="回答要点")
    evaluation: str = Field(default="", description="该题点评")

    @field_validator("question", "answer", "evaluation", mode="before")
    @classmethod
    def _text(cls, v):
        return as_text(v)

    @field_validator("score", mode="before")
    @classmethod
    def _score(cls, v):
        return as_number(v) or 0

    @field_validator("key_points", mode="before")
    @classmethod
    def _points(cls, v):
        return as_text_list(v)


class SummaryFragment(FragmentModel):
    """Summary 片段"""
    questions: List[SummaryQuestion] = Field(default_factory=list, description="问答列表")
    overall_flow: Optional[str] = Field(default=None, alias="overallFlow", description="整体流程描述")
    average_score: Optional[float] = Field(default=None, alias="averageScore", description="平均分")

    @field_validator("questions", mode="before")
    @classmethod
    def _questions(cls, v):
        return as_dict_list(v)

    @field_validator("overall_flow", mode="before")
    @classmethod
    def _flow(cls, v):
        return as_text(v) or None

    @field_validator("average_score", mode="before")
    @classmethod
    def _average(cls, v):
        return as_number(v)


# ============================================================================
# Success Evaluation 片段
# ============================================================================

class SuccessEvaluationFragment(FragmentModel):
    """Success Evaluation 片段"""
    successful: Optional[bool] = Field(default=None, description="是否通过")
    score: Optional[float] = Field(default=None, description="评估分数")
    feedback: Optional[str] = Field(default=None, description="评估反馈")
    details: Optional[str] = Field(default=None, description="评估细节")

    @model_validator(mode="before")
    @classmethod
    def _bare_value(cls, data):
        # Vapi 的 successEvaluation 经常直接是 true / 8 这样的裸值
        if isinstance(data, bool):
            return {"successful": data}
        if isinstance(data, (int, float)):
            return {"score": data}
        return data

    @field_validator("successful", mode="before")
    @classmethod
    def _successful(cls, v):
        if isinstance(v, bool):
            return v
        if isinstance(v, str) and v.strip().lower() in ("true", "false"):
            return v.strip().lower() == "true"
        return None

    @field_validator("score", mode="before")
    @classmethod
    def _score(cls, v):
        return as_number(v)

    @field_validator("feedback", "details", mode="before")
    @classmethod
    def _text(cls, v):
        return as_text(v) or None


# ============================================================================
# Structured Data 片段
# ============================================================================

class QuestionResponse(FragmentModel):
    """Structured Data 中的单题分析"""
    question: str = Field(default="", description="问题")
    answer: str = Field(default="", description="回答")
    response_quality: float = Field(default=0, alias="responseQuality", description="回答质量评分")
    feedback: str = Field(default="", description="该题反馈")
    key_points: List[str] = Field(default_factory=list, alias="keyPoints", description="回答要点")

    @field_validator("question", "answer", "feedback", mode="before")
    @classmethod
    def _text(cls, v):
        return as_text(v)

    @field_validator("response_quality", mode="before")
    @classmethod
    def _quality(cls, v):
        return as_number(v) or 0

    @field_validator("key_points", mode="before")
    @classmethod
    def _points(cls, v):
        return as_text_list(v)


class StructuredDataFragment(FragmentModel):
    """Structured Data 片段（最高优先级的数据源）"""
    overall_score: Optional[float] = Field(default=None, alias="overallScore", description="总分")
    category_scores: Dict[str, float] = Field(default_factory=dict, alias="categoryScores", description="分类评分")
    strengths: List[str] = Field(default_factory=list, description="优势")
    areas_for_improvement: List[str] = Field(default_factory=list, alias="areasForImprovement", description="待改进")
    hiring_recommendation: Optional[str] = Field(default=None, alias="hiringRecommendation", description="录用建议")
    key_insights: List[str] = Field(default_factory=list, alias="keyInsights", description="关键洞察")
    question_responses: List[QuestionResponse] = Field(default_factory=list, alias="questionResponses", description="逐题分析")
    interview_metrics: Dict[str, Any] = Field(default_factory=dict, alias="interviewMetrics", description="面试指标")
    reasoning: Optional[str] = Field(default=None, description="推荐理由")

    @field_validator("overall_score", mode="before")
    @classmethod
    def _overall(cls, v):
        return as_number(v)

    @field_validator("category_scores", mode="before")
    @classmethod
    def _categories(cls, v):
        if not isinstance(v, dict):
            return {}
        scores = {}
        for key, raw in v.items():
            number = as_number(raw)
            if number is not None:
                scores[str(key)] = number
        return scores

    @field_validator("strengths", "areas_for_improvement", "key_insights", mode="before")
    @classmethod
    def _lists(cls, v):
        return as_text_list(v)

    @field_validator("hiring_recommendation", "reasoning", mode="before")
    @classmethod
    def _text(cls, v):
        return as_text(v) or None

    @field_validator("question_responses", mode="before")
    @classmethod
    def _responses(cls, v):
        return as_dict_list(v)

    @field_validator("interview_metrics", mode="before")
    @classmethod
    def _metrics(cls, v):
        return v if isinstance(v, dict) else {}


# ============================================================================
# 片段加载
# ============================================================================

def load_fragment(model: Type[FragmentT], raw: Any) -> Optional[FragmentT]:
    """
    把原始数据加载为片段模型

    支持 None、字典、模型实例以及 JSON 字符串。无法解析或形状不对的片段视为缺失，
    不向上抛出异常，保证部分数据异常不会阻塞其余结果的保存。

    Args:
        model: 目标片段模型
        raw: 原始数据

    Returns:
        片段实例，缺失或无效时返回 None
    """
    if raw is None:
        return None
    if isinstance(raw, model):
        return raw

    if isinstance(raw, (bytes, bytearray)):
        raw = raw.decode("utf-8", errors="replace")
    if isinstance(raw, str):
        if not raw.strip():
            return None
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.warning(f"[Fragments] {model.__name__} 不是合法 JSON，按缺失处理: {e}")
            return None

    try:
        return model.model_validate(raw)
    except ValidationError as e:
        logger.warning(f"[Fragments] {model.__name__} 形状校验失败，按缺失处理: {e.error_count()} 个错误")
        return None


def load_duration(raw: Any) -> Optional[int]:
    """面试时长（分钟），非正数视为缺失"""
    number = as_number(raw)
    if number is None:
        return None
    minutes = int(math.floor(number + 0.5))
    return minutes if minutes > 0 else None


class AnalysisFragments(BaseModel):
    """一次分析的全部输入"""
    candidate_name: str = Field(..., description="候选人姓名")
    position: str = Field(..., description="应聘岗位")
    structured_data: Optional[StructuredDataFragment] = Field(default=None, description="Structured Data 片段")
    summary: Optional[SummaryFragment] = Field(default=None, description="Summary 片段")
    success_evaluation: Optional[SuccessEvaluationFragment] = Field(default=None, description="Success Evaluation 片段")
    transcript: Optional[str] = Field(default=None, description="完整转录文本")
    duration: Optional[int] = Field(default=None, description="面试时长（分钟）")

    @classmethod
    def from_raw(
        cls,
        candidate_name: str,
        position: str,
        structured_data: Any = None,
        summary: Any = None,
        success_evaluation: Any = None,
        transcript: Optional[Union[str, Any]] = None,
        duration: Any = None
    ) -> "AnalysisFragments":
        """从任意形状的原始数据构建输入，逐个片段做宽松加载"""
        return cls(
            candidate_name=candidate_name or "",
            position=position or "",
            structured_data=load_fragment(StructuredDataFragment, structured_data),
            summary=load_fragment(SummaryFragment, summary),
            success_evaluation=load_fragment(SuccessEvaluationFragment, success_evaluation),
            transcript=transcript if isinstance(transcript, str) and transcript.strip() else None,
            duration=load_duration(duration)
        )
