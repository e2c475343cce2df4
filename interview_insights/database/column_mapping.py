"""
分析结果字段 <-> 数据库列 映射
camelCase / snake_case 字段与持久化列名的对应关系只在这里维护
"""

import json
from typing import Any, Dict, Mapping

from ..models.analysis import AnalysisResult

# AnalysisResult 字段名 -> interview_sessions 列名
COLUMN_MAP: Dict[str, str] = {
    "overall_score": "analysis_score",
    "category_scores": "category_scores",
    "strengths": "strengths",
    "areas_for_improvement": "areas_for_improvement",
    "detailed_feedback": "analysis_feedback",
    "hiring_recommendation": "hiring_recommendation",
    "key_insights": "key_insights",
    "question_analysis": "question_scores",
    "interview_flow": "interview_metrics",
}

FIELD_MAP: Dict[str, str] = {column: field for field, column in COLUMN_MAP.items()}

# 以 JSONB 存储的列
JSON_COLUMNS = frozenset({
    "category_scores",
    "strengths",
    "areas_for_improvement",
    "key_insights",
    "question_scores",
    "interview_metrics",
    "vapi_summary",
    "vapi_success_evaluation",
    "vapi_structured_data",
})


def to_columns(result: AnalysisResult) -> Dict[str, Any]:
    """AnalysisResult -> {列名: 值}"""
    data = result.model_dump(by_alias=True)
    return {
        column: data[AnalysisResult.model_fields[field].alias or field]
        for field, column in COLUMN_MAP.items()
    }


def from_columns(row: Mapping[str, Any]) -> AnalysisResult:
    """{列名: 值} -> AnalysisResult，缺失或为 NULL 的列使用默认值"""
    values = {}
    for column, field in FIELD_MAP.items():
        if column not in row:
            continue
        value = decode_column(column, row[column])
        if value is not None:
            values[field] = value
    return AnalysisResult.model_validate(values)


def encode_column(column: str, value: Any) -> Any:
    """写入前把 JSONB 列序列化为字符串"""
    if column in JSON_COLUMNS and value is not None:
        return json.dumps(value, ensure_ascii=False)
    return value


def decode_column(column: str, value: Any) -> Any:
    if column in JSON_COLUMNS and isinstance(value, str):
        return json.loads(value)
    return value
