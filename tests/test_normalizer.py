import itertools
import math

import pytest

from interview_insights.core.analysis import AnalysisNormalizer, generate_detailed_feedback
from interview_insights.core.flow import (
    CLARITY_SUGGESTION,
    COMPLETENESS_SUGGESTION,
    ENGAGEMENT_SUGGESTION,
)
from interview_insights.models.analysis import CANONICAL_CATEGORIES, AnalysisResult
from interview_insights.models.fragments import AnalysisFragments

RECOMMENDATIONS = {"Strong Yes", "Yes", "Maybe", "No"}

STRUCTURED = {
    "overallScore": 82,
    "categoryScores": {"communication": 85, "technical": 78, "experience": 80, "culturalFit": 88},
    "strengths": ["Clear communicator"],
    "areasForImprovement": ["System design depth"],
    "keyInsights": ["Strong React background"],
    "questionResponses": [
        {"question": "Tell me about your React experience", "answer": "Five years", "responseQuality": 84},
    ],
}
SUMMARY = {
    "questions": [
        {"question": "Tell me about your React experience and background", "answer": "...", "score": 70},
        {"question": "Why do you want this role?", "answer": "Growth", "score": 75, "evaluation": "Motivated"},
    ],
    "overallFlow": "Smooth and structured",
}
EVALUATION = {"successful": True, "details": "Meets the bar"}
TRANSCRIPT = "Interviewer: Hi. Candidate: Um hello."


def _fragments(**kwargs):
    return AnalysisFragments.from_raw(candidate_name="Jane Doe", position="Frontend Engineer", **kwargs)


@pytest.fixture
def normalizer():
    return AnalysisNormalizer()


def _assert_well_formed(result: AnalysisResult):
    scores = [result.overall_score, *result.category_scores.values()]
    scores += [qa.score for qa in result.question_analysis]
    scores += [result.interview_flow.engagement, result.interview_flow.clarity, result.interview_flow.completeness]
    for score in scores:
        assert isinstance(score, int)
        assert not math.isnan(score)
        assert 0 <= score <= 100
    assert result.hiring_recommendation in RECOMMENDATIONS
    assert set(CANONICAL_CATEGORIES) <= set(result.category_scores)
    assert result.detailed_feedback


def test_no_fragments_yields_defaults(normalizer):
    result = normalizer.analyze(_fragments())

    assert result.overall_score == 0
    assert result.category_scores == {category: 0 for category in CANONICAL_CATEGORIES}
    assert result.strengths == []
    assert result.question_analysis == []
    assert result.interview_flow.model_dump() == {"engagement": 0, "clarity": 0, "completeness": 0}
    assert result.detailed_feedback == "Overall Performance: 0/100"
    assert result.hiring_recommendation == "No"


@pytest.mark.parametrize("present", list(itertools.product([False, True], repeat=5)))
def test_every_fragment_combination_is_well_formed(normalizer, present):
    structured, summary, evaluation, transcript, duration = present
    fragments = _fragments(
        structured_data=STRUCTURED if structured else None,
        summary=SUMMARY if summary else None,
        success_evaluation=EVALUATION if evaluation else None,
        transcript=TRANSCRIPT if transcript else None,
        duration=3 if duration else None,
    )

    _assert_well_formed(normalizer.analyze(fragments))


def test_structured_overall_score_takes_precedence(normalizer):
    result = normalizer.analyze(_fragments(structured_data={
        "overallScore": 82,
        "categoryScores": {"communication": 50, "technical": 40},
    }))

    assert result.overall_score == 82


def test_overall_score_falls_back_to_category_mean(normalizer):
    result = normalizer.analyze(_fragments(structured_data={
        "categoryScores": {"communication": 80, "technical": 60},
    }))

    assert result.overall_score == 70
    assert result.hiring_recommendation == "Maybe"


def test_category_mean_rounds_half_up(normalizer):
    result = normalizer.analyze(_fragments(structured_data={
        "categoryScores": {"communication": 80, "technical": 61},
    }))

    assert result.overall_score == 71


@pytest.mark.parametrize("score, expected", [
    (85, "Strong Yes"),
    (75, "Yes"),
    (60, "Maybe"),
    (59, "No"),
])
def test_recommendation_thresholds(normalizer, score, expected):
    result = normalizer.analyze(_fragments(structured_data={"overallScore": score}))

    assert result.hiring_recommendation == expected


@pytest.mark.parametrize("raw, expected", [
    ("Strong Hire", "Strong Yes"),
    ("hire", "Yes"),
    ("No Hire", "No"),
    ("Strong Yes", "Strong Yes"),
])
def test_recommendation_vocabulary_is_mapped(normalizer, raw, expected):
    result = normalizer.analyze(_fragments(structured_data={"overallScore": 65, "hiringRecommendation": raw}))

    assert result.hiring_recommendation == expected


def test_unknown_recommendation_falls_back_to_thresholds(normalizer):
    result = normalizer.analyze(_fragments(structured_data={"overallScore": 90, "hiringRecommendation": "Definitely"}))

    assert result.hiring_recommendation == "Strong Yes"


def test_summary_questions_are_deduplicated_by_prefix(normalizer):
    result = normalizer.analyze(_fragments(structured_data=STRUCTURED, summary=SUMMARY))

    questions = [qa.question for qa in result.question_analysis]
    assert questions == ["Tell me about your React experience", "Why do you want this role?"]
    assert result.question_analysis[0].score == 84
    assert result.question_analysis[1].feedback == "Motivated"


def test_summary_questions_used_outright_without_structured_data(normalizer):
    result = normalizer.analyze(_fragments(summary=SUMMARY))

    assert len(result.question_analysis) == 2
    assert result.question_analysis[0].score == 70
    assert result.key_insights == ["Interview Flow: Smooth and structured"]


def test_successful_flag_without_score_yields_yes(normalizer):
    result = normalizer.analyze(_fragments(success_evaluation={"successful": True}))

    assert result.overall_score == 0
    assert result.hiring_recommendation == "Yes"


def test_bare_boolean_evaluation_yields_yes(normalizer):
    result = normalizer.analyze(_fragments(success_evaluation=True))

    assert result.hiring_recommendation == "Yes"


def test_successful_flag_with_high_structured_score_yields_strong_yes(normalizer):
    result = normalizer.analyze(_fragments(
        structured_data={"overallScore": 80},
        success_evaluation={"successful": True},
    ))

    assert result.hiring_recommendation == "Strong Yes"


def test_unsuccessful_flag_yields_no_before_thresholds(normalizer):
    result = normalizer.analyze(_fragments(
        structured_data={"overallScore": 90},
        success_evaluation={"successful": False},
    ))

    assert result.hiring_recommendation == "No"


def test_structured_recommendation_beats_success_evaluation(normalizer):
    result = normalizer.analyze(_fragments(
        structured_data={"overallScore": 90, "hiringRecommendation": "Yes"},
        success_evaluation={"successful": False},
    ))

    assert result.hiring_recommendation == "Yes"


def test_evaluation_feedback_is_kept_as_detailed_feedback(normalizer):
    result = normalizer.analyze(_fragments(
        structured_data=STRUCTURED,
        success_evaluation={"successful": True, "feedback": "Solid candidate."},
    ))

    assert result.detailed_feedback == "Solid candidate."


def test_key_insights_accumulate_in_order(normalizer):
    result = normalizer.analyze(_fragments(
        structured_data=STRUCTURED,
        summary=SUMMARY,
        success_evaluation=EVALUATION,
    ))

    assert result.key_insights == [
        "Strong React background",
        "Interview Flow: Smooth and structured",
        "Meets the bar",
    ]


def test_detailed_feedback_fallback_omits_empty_sections(normalizer):
    result = normalizer.analyze(_fragments(structured_data={
        "overallScore": 80,
        "categoryScores": {"communication": 90, "technical": 0},
        "strengths": ["A", "B"],
        "keyInsights": ["K"],
    }))

    assert result.detailed_feedback == (
        "Overall Performance: 80/100\n\n"
        "Category Breakdown: communication: 90/100\n\n"
        "Key Strengths: A; B\n\n"
        "Additional Insights: K"
    )


def test_generate_detailed_feedback_includes_areas():
    result = AnalysisResult(overall_score=50, areas_for_improvement=["Depth", "Pace"])

    assert generate_detailed_feedback(result) == "Overall Performance: 50/100\n\nAreas for Improvement: Depth; Pace"


def test_extra_category_keys_pass_through(normalizer):
    result = normalizer.analyze(_fragments(structured_data={"categoryScores": {"technical_skills": 77}}))

    assert result.category_scores["technical_skills"] == 77
    assert result.category_scores["communication"] == 0
    assert result.overall_score == 77


def test_scores_are_clamped_and_rounded(normalizer):
    result = normalizer.analyze(_fragments(structured_data={
        "overallScore": 120,
        "categoryScores": {"communication": -5, "technical": 72.5},
    }))

    assert result.overall_score == 100
    assert result.category_scores["communication"] == 0
    assert result.category_scores["technical"] == 73


def test_flow_heuristics_run_with_transcript_and_duration(normalizer):
    result = normalizer.analyze(_fragments(transcript=TRANSCRIPT, duration=1))

    assert result.interview_flow.model_dump() == {"engagement": 50, "clarity": 43, "completeness": 3}
    assert result.areas_for_improvement == [ENGAGEMENT_SUGGESTION, CLARITY_SUGGESTION, COMPLETENESS_SUGGESTION]


def test_flow_suggestions_append_after_structured_areas(normalizer):
    result = normalizer.analyze(_fragments(structured_data=STRUCTURED, transcript=TRANSCRIPT, duration=1))

    assert result.areas_for_improvement[0] == "System design depth"
    assert result.areas_for_improvement[1:] == [ENGAGEMENT_SUGGESTION, CLARITY_SUGGESTION, COMPLETENESS_SUGGESTION]


@pytest.mark.parametrize("duration", [None, 0, -3])
def test_flow_heuristics_skipped_without_positive_duration(normalizer, duration):
    result = normalizer.analyze(_fragments(transcript=TRANSCRIPT, duration=duration))

    assert result.interview_flow.model_dump() == {"engagement": 0, "clarity": 0, "completeness": 0}
    assert result.areas_for_improvement == []


def test_malformed_json_fragments_are_treated_as_absent(normalizer):
    malformed = normalizer.analyze(_fragments(
        structured_data="{not json",
        summary="[oops",
        success_evaluation="{'successful': true}",
    ))

    assert malformed == normalizer.analyze(_fragments())


def test_json_string_fragments_are_parsed(normalizer):
    result = normalizer.analyze(_fragments(structured_data='{"overallScore": 82}'))

    assert result.overall_score == 82


def test_analyze_is_deterministic(normalizer):
    fragments = _fragments(
        structured_data=STRUCTURED,
        summary=SUMMARY,
        success_evaluation=EVALUATION,
        transcript=TRANSCRIPT,
        duration=2,
    )

    first = normalizer.analyze(fragments)
    second = normalizer.analyze(fragments)

    assert first.model_dump_json() == second.model_dump_json()


def test_analyze_does_not_mutate_fragments(normalizer):
    fragments = _fragments(structured_data=STRUCTURED, summary=SUMMARY, success_evaluation=EVALUATION)
    before = fragments.model_dump_json()

    normalizer.analyze(fragments)

    assert fragments.model_dump_json() == before
