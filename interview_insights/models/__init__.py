"""
数据模型
"""

from .analysis import (
    CANONICAL_CATEGORIES,
    AnalysisResult,
    HiringRecommendation,
    InterviewFlow,
    QuestionAnalysis,
)
from .fragments import (
    AnalysisFragments,
    QuestionResponse,
    StructuredDataFragment,
    SuccessEvaluationFragment,
    SummaryFragment,
    SummaryQuestion,
    load_fragment,
)
from .webhook import VapiWebhookEvent, extract_analysis

__all__ = [
    'CANONICAL_CATEGORIES',
    'AnalysisResult',
    'HiringRecommendation',
    'InterviewFlow',
    'QuestionAnalysis',
    'AnalysisFragments',
    'QuestionResponse',
    'StructuredDataFragment',
    'SuccessEvaluationFragment',
    'SummaryFragment',
    'SummaryQuestion',
    'load_fragment',
    'VapiWebhookEvent',
    'extract_analysis',
]
