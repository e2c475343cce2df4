"""
评分工具函数：取整、截断、总分回退计算和录用建议阈值
"""

import math
from typing import Dict, Optional

from ..models.analysis import HiringRecommendation

# 厂商 structured data 中常见的另一套录用建议措辞
RECOMMENDATION_ALIASES: Dict[str, HiringRecommendation] = {
    "strong yes": "Strong Yes",
    "strong hire": "Strong Yes",
    "yes": "Yes",
    "hire": "Yes",
    "maybe": "Maybe",
    "no": "No",
    "no hire": "No",
}


def round_half_up(value: float) -> int:
    """四舍五入（.5 向上取整），避免 Python round() 的银行家舍入"""
    return int(math.floor(value + 0.5))


def clamp_score(value: float) -> int:
    """取整并截断到 [0, 100]"""
    return max(0, min(100, round_half_up(value)))


def calculate_overall_score(category_scores: Dict[str, float]) -> int:
    """
    用分类评分回退计算总分

    只统计非零分类的均值；没有任何非零分类时返回 0。
    """
    valid_scores = [score for score in category_scores.values() if score > 0]
    if not valid_scores:
        return 0
    return clamp_score(sum(valid_scores) / len(valid_scores))


def determine_hiring_recommendation(overall_score: float) -> HiringRecommendation:
    """根据总分给出录用建议"""
    if overall_score >= 85:
        return "Strong Yes"
    if overall_score >= 75:
        return "Yes"
    if overall_score >= 60:
        return "Maybe"
    return "No"


def normalize_recommendation(value: Optional[str]) -> Optional[HiringRecommendation]:
    """把厂商给出的录用建议映射到四值枚举，无法识别时返回 None"""
    if not value:
        return None
    key = " ".join(value.replace("_", " ").replace("-", " ").split()).lower()
    return RECOMMENDATION_ALIASES.get(key)
