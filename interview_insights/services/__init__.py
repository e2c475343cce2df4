"""
服务层：分析触发、Webhook 处理、转录 LLM 分析
"""

from .analysis_service import AnalysisOutcome, AnalysisService, build_results_payload, fragments_from_record
from .transcript_analysis_service import TranscriptAnalysisService, parse_analysis_response
from .webhook_service import WebhookService

__all__ = [
    'AnalysisOutcome',
    'AnalysisService',
    'build_results_payload',
    'fragments_from_record',
    'TranscriptAnalysisService',
    'parse_analysis_response',
    'WebhookService',
]
