from .analysis import AnalysisNormalizer, generate_detailed_feedback, get_normalizer
from .report import generate_summary_report

__all__ = [
    'AnalysisNormalizer',
    'generate_detailed_feedback',
    'get_normalizer',
    'generate_summary_report',
]
