"""
面试流程启发式评分
基于转录文本和面试时长估算投入度、清晰度和完整度
"""

import re

from .scoring import round_half_up

# 理想语速区间（词/分钟）
OPTIMAL_PACE_RANGE = (150, 200)
OPTIMAL_PACE = 175

# 理想句长区间（词/句）
OPTIMAL_SENTENCE_RANGE = (15, 25)
OPTIMAL_SENTENCE_LENGTH = 20

EXPECTED_WORDS_PER_MINUTE = 150
EXPECTED_INTERACTIONS_PER_MINUTE = 2
MAX_FILLER_PENALTY = 30

ENGAGEMENT_THRESHOLD = 60
CLARITY_THRESHOLD = 70
COMPLETENESS_THRESHOLD = 70

ENGAGEMENT_SUGGESTION = "Increase engagement and participation in interview discussions"
CLARITY_SUGGESTION = "Improve clarity and structure in responses"
COMPLETENESS_SUGGESTION = "Provide more complete and detailed answers to questions"

WORD_SPLIT_PATTERN = re.compile(r"\s+")
INTERACTION_PATTERN = re.compile(r"interviewer:|candidate:", re.IGNORECASE)
SENTENCE_SPLIT_PATTERN = re.compile(r"[.!?]+")
FILLER_WORD_PATTERN = re.compile(r"\b(um|uh|like|you know|actually|basically)\b", re.IGNORECASE)


def count_words(transcript: str) -> int:
    # 与句子计数一致：首尾空白切出的空段同样计数
    return len(WORD_SPLIT_PATTERN.split(transcript))


def count_sentences(transcript: str) -> int:
    # 末尾的标点会切出一个空段，同样计数
    return len(SENTENCE_SPLIT_PATTERN.split(transcript))


def count_interactions(transcript: str) -> int:
    return len(INTERACTION_PATTERN.findall(transcript))


def count_filler_words(transcript: str) -> int:
    return len(FILLER_WORD_PATTERN.findall(transcript))


def calculate_pace_score(words_per_minute: float) -> float:
    low, high = OPTIMAL_PACE_RANGE
    if low <= words_per_minute <= high:
        return 100
    return max(0, 100 - abs(words_per_minute - OPTIMAL_PACE) * 2)


def calculate_engagement_score(words_per_minute: float, interaction_count: int, duration: float) -> int:
    """投入度 = (语速分 + 互动分) / 2"""
    pace_score = calculate_pace_score(words_per_minute)

    expected_interactions = duration * EXPECTED_INTERACTIONS_PER_MINUTE
    interaction_score = min(100, interaction_count / expected_interactions * 100)

    return round_half_up((pace_score + interaction_score) / 2)


def calculate_clarity_score(transcript: str) -> int:
    """清晰度 = 句长基础分 - 口头禅惩罚"""
    avg_words_per_sentence = count_words(transcript) / count_sentences(transcript)

    low, high = OPTIMAL_SENTENCE_RANGE
    if low <= avg_words_per_sentence <= high:
        clarity_base = 100
    else:
        clarity_base = max(0, 100 - abs(avg_words_per_sentence - OPTIMAL_SENTENCE_LENGTH) * 3)

    filler_penalty = min(MAX_FILLER_PENALTY, count_filler_words(transcript) * 2)

    return max(0, round_half_up(clarity_base - filler_penalty))


def calculate_completeness_score(transcript: str, duration: float) -> int:
    """完整度 = 实际词数 / 按时长估算的期望词数"""
    expected_words = duration * EXPECTED_WORDS_PER_MINUTE
    completeness_ratio = min(1, count_words(transcript) / expected_words)
    return round_half_up(completeness_ratio * 100)


def analyze_interview_flow(transcript: str, duration: float) -> dict:
    """
    计算流程评分

    Args:
        transcript: 完整转录文本
        duration: 面试时长（分钟），必须大于 0

    Returns:
        {"engagement", "clarity", "completeness", "suggestions"}
    """
    if duration <= 0:
        raise ValueError("duration 必须大于 0")

    words_per_minute = count_words(transcript) / duration

    engagement = calculate_engagement_score(words_per_minute, count_interactions(transcript), duration)
    clarity = calculate_clarity_score(transcript)
    completeness = calculate_completeness_score(transcript, duration)

    suggestions = []
    if engagement < ENGAGEMENT_THRESHOLD:
        suggestions.append(ENGAGEMENT_SUGGESTION)
    if clarity < CLARITY_THRESHOLD:
        suggestions.append(CLARITY_SUGGESTION)
    if completeness < COMPLETENESS_THRESHOLD:
        suggestions.append(COMPLETENESS_SUGGESTION)

    return {
        "engagement": engagement,
        "clarity": clarity,
        "completeness": completeness,
        "suggestions": suggestions,
    }
