"""
转录文本 LLM 分析服务
当 Vapi 没有回传任何分析数据时，用 Smart LLM 直接评估面试转录，
结果以 Structured Data 片段的形式交给归一化器
"""

import json
import logging
import re
from typing import Any, Dict, Optional

from langchain_core.messages import HumanMessage, SystemMessage
from pydantic import ValidationError

from ..config import Settings
from ..core.llms import get_llm_for_settings
from ..exceptions import TranscriptAnalysisError
from ..models.fragments import StructuredDataFragment

logger = logging.getLogger(__name__)

FENCED_JSON_PATTERN = re.compile(r'```(?:json)?\s*(\{.*?\})\s*```', re.DOTALL)

SYSTEM_PROMPT = (
    "You are an expert HR analyst and senior technical recruiter tasked with evaluating "
    "a candidate's interview performance. You have extensive experience in talent assessment "
    "across multiple industries and excel at providing structured, actionable feedback."
)


class TranscriptAnalysisService:
    """转录文本分析服务"""

    def __init__(self, settings: Settings, llm=None):
        """
        Args:
            settings: 服务配置
            llm: 可选的聊天模型实例（需支持 ainvoke），默认按配置创建
        """
        self.settings = settings
        self._llm = llm

    async def analyze_transcript(
        self,
        transcript: str,
        candidate_name: str,
        position: str,
        duration: Optional[int] = None,
        api_config: Optional[Dict[str, Any]] = None
    ) -> StructuredDataFragment:
        """
        分析面试转录

        Args:
            transcript: 完整转录文本
            candidate_name: 候选人姓名
            position: 应聘岗位
            duration: 面试时长（分钟）
            api_config: 请求方的 API 配置

        Returns:
            StructuredDataFragment: 可直接交给归一化器的分析片段

        Raises:
            TranscriptAnalysisError: 转录过短、模型调用失败或响应无法解析
            ValueError: 没有可用的 LLM 配置
        """
        if not transcript or len(transcript.strip()) < self.settings.min_transcript_chars:
            raise TranscriptAnalysisError(
                f"转录文本过短，至少需要 {self.settings.min_transcript_chars} 个字符"
            )

        llm = self._llm or get_llm_for_settings(self.settings, api_config)
        prompt = build_analysis_prompt(transcript, candidate_name, position, duration)

        logger.info(f"[TranscriptAnalysis] 开始分析 {candidate_name} ({position})，转录长度 {len(transcript)} 字符")

        try:
            response = await llm.ainvoke([
                SystemMessage(content=SYSTEM_PROMPT),
                HumanMessage(content=prompt)
            ])
        except Exception as e:
            logger.error(f"[TranscriptAnalysis] LLM 调用失败: {e}", exc_info=True)
            raise TranscriptAnalysisError(f"LLM 调用失败: {e}") from e

        response_text = response.content if isinstance(response.content, str) else str(response.content)
        logger.debug(f"[TranscriptAnalysis] LLM 原始响应长度: {len(response_text)} 字符")

        fragment = parse_analysis_response(response_text)
        logger.info(
            f"[TranscriptAnalysis] 分析完成: {fragment.overall_score}/100, {fragment.hiring_recommendation}"
        )
        return fragment


def build_analysis_prompt(
    transcript: str,
    candidate_name: str,
    position: str,
    duration: Optional[int] = None
) -> str:
    """构建分析 Prompt"""
    duration_text = f"{duration} minutes" if duration else "Unknown"

    return f"""
INTERVIEW CONTEXT:
====================
Candidate Name: {candidate_name or 'Unknown'}
Position Applied For: {position or 'Unknown'}
Interview Duration: {duration_text}

EVALUATION CRITERIA:
1. **Communication Skills**: Clarity of expression, articulation, ability to explain complex concepts
2. **Technical Knowledge**: Depth of knowledge relevant to the position
3. **Experience Relevance**: How well their background matches the role requirements
4. **Cultural Fit**: Alignment with professional values, collaboration potential
5. **Question Response Quality**: Completeness, relevance, and insight in answers

FULL INTERVIEW TRANSCRIPT:
==========================
{transcript}

OUTPUT FORMAT:
==============
You MUST respond with ONLY a valid JSON object in the following exact format. Do not include any text before or after the JSON:

{{
  "overallScore": 85,
  "categoryScores": {{
    "communication": 88,
    "technical": 82,
    "experience": 80,
    "culturalFit": 85
  }},
  "strengths": ["Specific strength with concrete examples from the transcript"],
  "areasForImprovement": ["Specific area with suggestions for improvement"],
  "hiringRecommendation": "Hire",
  "keyInsights": ["Key insight about the candidate's potential and fit"],
  "questionResponses": [
    {{
      "question": "Question asked by the interviewer",
      "answer": "Summary of the candidate's answer",
      "responseQuality": 80,
      "feedback": "Feedback on this answer",
      "keyPoints": ["Key point from the answer"]
    }}
  ],
  "reasoning": "3-4 sentences explaining the overall assessment"
}}

IMPORTANT NOTES:
- Use hiring recommendations: "Strong Hire", "Hire", "Maybe", "No Hire"
- All scores should be between 0-100
- Provide specific, actionable feedback based on the actual transcript content
- Be fair and objective in your assessment
""".strip()


def extract_json_object(response_text: str) -> Dict[str, Any]:
    """
    从 LLM 响应中提取 JSON 对象

    依次尝试：直接解析、markdown 代码块、第一个 '{' 到最后一个 '}' 之间的内容。

    Raises:
        TranscriptAnalysisError: 找不到合法的 JSON 对象
    """
    text = response_text.strip()
    candidates = [text]

    fenced = FENCED_JSON_PATTERN.search(text)
    if fenced:
        candidates.append(fenced.group(1))

    start = text.find("{")
    end = text.rfind("}")
    if start != -1 and end > start:
        candidates.append(text[start:end + 1])

    for candidate in candidates:
        try:
            data = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        if isinstance(data, dict):
            return data

    logger.error(f"[TranscriptAnalysis] 无法从响应中提取 JSON，前500字符: {text[:500]}")
    raise TranscriptAnalysisError("LLM 响应中没有合法的 JSON 对象")


def parse_analysis_response(response_text: str) -> StructuredDataFragment:
    """
    解析并校验 LLM 的分析响应

    Raises:
        TranscriptAnalysisError: JSON 无法提取，或缺少 0-100 之间的总分
    """
    data = extract_json_object(response_text)

    try:
        fragment = StructuredDataFragment.model_validate(data)
    except ValidationError as e:
        raise TranscriptAnalysisError(f"分析结果格式错误: {e.error_count()} 个错误") from e

    if fragment.overall_score is None or not 0 <= fragment.overall_score <= 100:
        raise TranscriptAnalysisError(f"分析结果缺少有效总分: {fragment.overall_score}")

    return fragment
