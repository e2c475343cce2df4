"""
面试分析报告生成
把 AnalysisResult 渲染为固定结构的 Markdown 文档，所有段落始终输出
"""

from ..models.analysis import AnalysisResult

CATEGORY_LABELS = (
    ("communication", "Communication"),
    ("technical", "Technical"),
    ("experience", "Experience"),
    ("culturalFit", "Cultural Fit"),
)


def _bullets(items) -> str:
    return "\n".join(f"• {item}" for item in items)


def generate_summary_report(analysis: AnalysisResult, candidate_name: str, position: str) -> str:
    """
    生成便于阅读的分析报告

    Args:
        analysis: 分析结果
        candidate_name: 候选人姓名
        position: 应聘岗位

    Returns:
        str: Markdown 报告
    """
    category_lines = "\n".join(
        f"- {label}: {analysis.category_scores.get(key, 0)}/100"
        for key, label in CATEGORY_LABELS
    )
    flow = analysis.interview_flow

    report = f"""
# Interview Analysis Report

**Candidate:** {candidate_name}
**Position:** {position}
**Overall Score:** {analysis.overall_score}/100
**Recommendation:** {analysis.hiring_recommendation}

## Category Scores
{category_lines}

## Strengths
{_bullets(analysis.strengths)}

## Areas for Improvement
{_bullets(analysis.areas_for_improvement)}

## Interview Flow Analysis
- Engagement: {flow.engagement}/100
- Clarity: {flow.clarity}/100
- Completeness: {flow.completeness}/100

## Key Insights
{_bullets(analysis.key_insights)}

## Detailed Feedback
{analysis.detailed_feedback}
"""
    return report.strip()
