"""
异常定义
"""


class InterviewInsightsError(Exception):
    """所有业务异常的基类"""
    pass


class WebhookSignatureError(InterviewInsightsError):
    """Webhook 签名校验失败"""
    pass


class WebhookPayloadError(InterviewInsightsError):
    """Webhook 请求体无法解析"""
    pass


class SessionNotFoundError(InterviewInsightsError):
    """找不到对应的面试会话"""

    def __init__(self, key: str):
        super().__init__(f"面试会话不存在: {key}")
        self.key = key


class AnalysisPersistenceError(InterviewInsightsError):
    """分析结果写入数据库失败"""
    pass


class TranscriptAnalysisError(InterviewInsightsError):
    """LLM 转录分析失败（响应无法解析或校验不通过）"""
    pass
