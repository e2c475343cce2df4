"""
面试分析归一化模块
把 Vapi 的 structured data / summary / success evaluation / 转录文本 / 时长
合并为一份 AnalysisResult

处理顺序即优先级：
1. Structured Data（最高优先级，直接覆盖）
2. Summary（问答合并，按问题前缀去重）
3. Success Evaluation（仅在录用建议仍为默认值时推导）
4. 流程启发式评分（需要转录文本和时长）
5. 总分回退：分类非零均值
6. 详细反馈回退：分段拼接
7. 录用建议回退：按总分阈值
"""

import logging
from typing import List

from ..models.analysis import (
    CANONICAL_CATEGORIES,
    DEFAULT_RECOMMENDATION,
    AnalysisResult,
    InterviewFlow,
    QuestionAnalysis,
)
from ..models.fragments import (
    AnalysisFragments,
    StructuredDataFragment,
    SuccessEvaluationFragment,
    SummaryFragment,
)
from .flow import analyze_interview_flow
from .scoring import (
    calculate_overall_score,
    clamp_score,
    determine_hiring_recommendation,
    normalize_recommendation,
)

logger = logging.getLogger(__name__)

# 判断两条问答是否为同一问题时比较的前缀长度
QUESTION_MATCH_PREFIX = 20


class AnalysisNormalizer:
    """面试分析归一化器（无状态，可复用）"""

    def analyze(self, fragments: AnalysisFragments) -> AnalysisResult:
        """
        合并全部片段，生成归一化的分析结果

        缺失的片段直接跳过，对应字段保持默认值；同样的输入总是得到同样的输出。

        Args:
            fragments: 分析输入

        Returns:
            AnalysisResult: 归一化结果
        """
        analysis = AnalysisResult()

        if fragments.structured_data is not None:
            self._process_structured_data(fragments.structured_data, analysis)

        if fragments.summary is not None:
            self._process_summary(fragments.summary, analysis)

        feedback_from_evaluation = False
        if fragments.success_evaluation is not None:
            feedback_from_evaluation = self._process_success_evaluation(fragments.success_evaluation, analysis)

        if fragments.transcript and fragments.duration and fragments.duration > 0:
            self._process_interview_flow(fragments.transcript, fragments.duration, analysis)

        if analysis.overall_score == 0:
            analysis.overall_score = calculate_overall_score(analysis.category_scores)

        if not feedback_from_evaluation:
            analysis.detailed_feedback = generate_detailed_feedback(analysis)

        if analysis.hiring_recommendation == DEFAULT_RECOMMENDATION:
            analysis.hiring_recommendation = determine_hiring_recommendation(analysis.overall_score)

        logger.debug(
            f"[AnalysisNormalizer] {fragments.candidate_name} / {fragments.position}: "
            f"score={analysis.overall_score}, recommendation={analysis.hiring_recommendation}"
        )
        return analysis

    def _process_structured_data(self, structured: StructuredDataFragment, analysis: AnalysisResult):
        if structured.overall_score is not None:
            analysis.overall_score = clamp_score(structured.overall_score)

        if structured.category_scores:
            scores = {category: 0 for category in CANONICAL_CATEGORIES}
            for category, score in structured.category_scores.items():
                scores[category] = clamp_score(score)
            analysis.category_scores = scores

        if structured.strengths:
            analysis.strengths = list(structured.strengths)

        if structured.areas_for_improvement:
            analysis.areas_for_improvement = list(structured.areas_for_improvement)

        recommendation = normalize_recommendation(structured.hiring_recommendation)
        if recommendation:
            analysis.hiring_recommendation = recommendation
        elif structured.hiring_recommendation:
            logger.warning(f"[AnalysisNormalizer] 无法识别的录用建议，忽略: {structured.hiring_recommendation}")

        if structured.key_insights:
            analysis.key_insights = list(structured.key_insights)

        if structured.question_responses:
            analysis.question_analysis = [
                QuestionAnalysis(
                    question=qr.question,
                    answer=qr.answer,
                    score=clamp_score(qr.response_quality),
                    feedback=qr.feedback,
                    key_points=list(qr.key_points)
                )
                for qr in structured.question_responses
            ]

    def _process_summary(self, summary: SummaryFragment, analysis: AnalysisResult):
        summary_questions = [
            QuestionAnalysis(
                question=q.question,
                answer=q.answer,
                score=clamp_score(q.score),
                feedback=q.evaluation,
                key_points=list(q.key_points)
            )
            for q in summary.questions
        ]

        if not analysis.question_analysis:
            analysis.question_analysis = summary_questions
        else:
            # 已有 structured data 的逐题分析时，只补充没有出现过的问题
            for candidate in summary_questions:
                if not _has_matching_question(analysis.question_analysis, candidate.question):
                    analysis.question_analysis.append(candidate)

        if summary.overall_flow:
            analysis.key_insights.append(f"Interview Flow: {summary.overall_flow}")

    def _process_success_evaluation(self, evaluation: SuccessEvaluationFragment, analysis: AnalysisResult) -> bool:
        """返回 True 表示 detailed_feedback 已由评估反馈填充"""
        if evaluation.successful is not None and analysis.hiring_recommendation == DEFAULT_RECOMMENDATION:
            # 此时总分回退还没执行，只有 structured data 提供的总分会参与判断
            if evaluation.successful:
                analysis.hiring_recommendation = "Strong Yes" if analysis.overall_score >= 80 else "Yes"
            else:
                analysis.hiring_recommendation = "No"

        if evaluation.details:
            analysis.key_insights.append(evaluation.details)

        if evaluation.feedback:
            analysis.detailed_feedback = evaluation.feedback
            return True
        return False

    def _process_interview_flow(self, transcript: str, duration: int, analysis: AnalysisResult):
        flow = analyze_interview_flow(transcript, duration)
        analysis.interview_flow = InterviewFlow(
            engagement=flow["engagement"],
            clarity=flow["clarity"],
            completeness=flow["completeness"]
        )
        analysis.areas_for_improvement.extend(flow["suggestions"])


def _has_matching_question(existing: List[QuestionAnalysis], question: str) -> bool:
    prefix = question.lower()[:QUESTION_MATCH_PREFIX]
    return any(prefix in qa.question.lower() for qa in existing)


def generate_detailed_feedback(analysis: AnalysisResult) -> str:
    """
    拼接详细反馈

    分段顺序：总体表现、分类明细、优势、待改进、其他洞察；空段落整段省略，段落间空一行。
    """
    parts = [f"Overall Performance: {analysis.overall_score}/100"]

    categories = ", ".join(
        f"{category}: {score}/100"
        for category, score in analysis.category_scores.items()
        if score > 0
    )
    if categories:
        parts.append(f"Category Breakdown: {categories}")

    if analysis.strengths:
        parts.append(f"Key Strengths: {'; '.join(analysis.strengths)}")

    if analysis.areas_for_improvement:
        parts.append(f"Areas for Improvement: {'; '.join(analysis.areas_for_improvement)}")

    if analysis.key_insights:
        parts.append(f"Additional Insights: {'; '.join(analysis.key_insights)}")

    return "\n\n".join(parts)


# 全局单例
_normalizer = None


def get_normalizer() -> AnalysisNormalizer:
    """获取归一化器单例"""
    global _normalizer
    if _normalizer is None:
        _normalizer = AnalysisNormalizer()
    return _normalizer
