import pytest

from interview_insights.models.fragments import (
    AnalysisFragments,
    StructuredDataFragment,
    SuccessEvaluationFragment,
    SummaryFragment,
    load_duration,
    load_fragment,
)


def test_load_fragment_parses_json_string():
    fragment = load_fragment(SummaryFragment, '{"questions": [{"question": "Q1", "score": "7", "keyPoints": "one"}]}')

    assert fragment.questions[0].question == "Q1"
    assert fragment.questions[0].score == 7
    assert fragment.questions[0].key_points == ["one"]


@pytest.mark.parametrize("raw", [None, "", "   ", "{not json", b"[oops", ["a", "list"], 42])
def test_load_fragment_treats_bad_input_as_absent(raw):
    assert load_fragment(StructuredDataFragment, raw) is None


def test_load_fragment_returns_existing_instance():
    fragment = StructuredDataFragment(overall_score=70)

    assert load_fragment(StructuredDataFragment, fragment) is fragment


@pytest.mark.parametrize("raw, successful, score", [
    (True, True, None),
    ("false", False, None),
    (8, None, 8),
    ({"successful": "true", "score": "9.5"}, True, 9.5),
    ({"successful": "maybe"}, None, None),
])
def test_success_evaluation_accepts_bare_values(raw, successful, score):
    fragment = load_fragment(SuccessEvaluationFragment, raw)

    assert fragment.successful is successful
    assert fragment.score == score


def test_structured_data_lenient_coercion():
    fragment = load_fragment(StructuredDataFragment, {
        "overallScore": "high",
        "categoryScores": {"communication": "80", "technical": None, "experience": True},
        "strengths": "Clear communicator",
        "areasForImprovement": ["Depth", None, 3],
        "keyInsights": None,
        "questionResponses": [{"question": "Q", "responseQuality": "n/a"}, "junk"],
        "interviewMetrics": "none",
    })

    assert fragment.overall_score is None
    assert fragment.category_scores == {"communication": 80}
    assert fragment.strengths == ["Clear communicator"]
    assert fragment.areas_for_improvement == ["Depth", "3"]
    assert fragment.key_insights == []
    assert len(fragment.question_responses) == 1
    assert fragment.question_responses[0].response_quality == 0
    assert fragment.interview_metrics == {}


def test_snake_case_fields_are_accepted():
    fragment = load_fragment(StructuredDataFragment, {"overall_score": 75, "key_insights": ["x"]})

    assert fragment.overall_score == 75
    assert fragment.key_insights == ["x"]


@pytest.mark.parametrize("raw, expected", [
    (12, 12),
    ("12", 12),
    (2.5, 3),
    (0.4, None),
    (0, None),
    (-1, None),
    (True, None),
    ("soon", None),
])
def test_load_duration(raw, expected):
    assert load_duration(raw) == expected


def test_from_raw_drops_blank_transcript():
    fragments = AnalysisFragments.from_raw(candidate_name=None, position="Engineer", transcript="   ")

    assert fragments.candidate_name == ""
    assert fragments.transcript is None
    assert fragments.structured_data is None
