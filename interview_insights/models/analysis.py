"""
面试分析结果数据模型
AnalysisResult 是所有片段归一化之后的唯一输出
"""

from typing import Dict, List, Literal

from pydantic import BaseModel, ConfigDict, Field

HiringRecommendation = Literal["Strong Yes", "Yes", "Maybe", "No"]

DEFAULT_RECOMMENDATION: HiringRecommendation = "Maybe"

# 固定的四个分类，顺序即报告中的展示顺序
CANONICAL_CATEGORIES = ("communication", "technical", "experience", "culturalFit")


def default_category_scores() -> Dict[str, int]:
    return {category: 0 for category in CANONICAL_CATEGORIES}


class ResultModel(BaseModel):
    """对外输出 camelCase，内部使用 snake_case"""
    model_config = ConfigDict(populate_by_name=True)


class QuestionAnalysis(ResultModel):
    """单题分析"""
    question: str = Field(default="", description="问题")
    answer: str = Field(default="", description="回答")
    score: int = Field(default=0, ge=0, le=100, description="该题评分 (0-100)")
    feedback: str = Field(default="", description="该题反馈")
    key_points: List[str] = Field(default_factory=list, alias="keyPoints", description="回答要点")


class InterviewFlow(ResultModel):
    """面试流程启发式评分"""
    engagement: int = Field(default=0, ge=0, le=100, description="投入度")
    clarity: int = Field(default=0, ge=0, le=100, description="表达清晰度")
    completeness: int = Field(default=0, ge=0, le=100, description="回答完整度")


class AnalysisResult(ResultModel):
    """归一化后的面试分析结果，所有字段都有安全默认值"""
    overall_score: int = Field(default=0, ge=0, le=100, alias="overallScore", description="总分 (0-100)")
    category_scores: Dict[str, int] = Field(
        default_factory=default_category_scores, alias="categoryScores", description="分类评分"
    )
    strengths: List[str] = Field(default_factory=list, description="优势")
    areas_for_improvement: List[str] = Field(default_factory=list, alias="areasForImprovement", description="待改进")
    detailed_feedback: str = Field(default="", alias="detailedFeedback", description="详细反馈")
    hiring_recommendation: HiringRecommendation = Field(
        default=DEFAULT_RECOMMENDATION, alias="hiringRecommendation", description="录用建议"
    )
    key_insights: List[str] = Field(default_factory=list, alias="keyInsights", description="关键洞察")
    question_analysis: List[QuestionAnalysis] = Field(
        default_factory=list, alias="questionAnalysis", description="逐题分析"
    )
    interview_flow: InterviewFlow = Field(default_factory=InterviewFlow, alias="interviewFlow", description="流程评分")

    def to_api(self) -> dict:
        """接口返回格式（camelCase）"""
        return self.model_dump(by_alias=True)
